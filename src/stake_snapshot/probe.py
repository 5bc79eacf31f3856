"""
Raw storage probing of a mapping(address => Stake) at a historical block.

For a mapping at base slot p, the value for key k lives at
keccak256(pad32(k) ++ pad32(p)); the first word of the Stake struct there
is the deposit.
"""
import logging
from decimal import Decimal
from typing import Optional

from eth_abi import encode as abi_encode
from eth_utils import keccak

from .errors import RpcError
from .utils import format_amount, hex_to_int, normalize_address

logger = logging.getLogger(__name__)


def storage_key(address: str, slot_index: int) -> str:
    """0x-prefixed storage position of `address` in the mapping at `slot_index`."""
    position = keccak(abi_encode(["address", "uint256"], [normalize_address(address), slot_index]))
    return "0x" + position.hex()


class StorageProbe:
    def __init__(self, client) -> None:
        self._client = client

    def read_balance(self, candidate: str, slot_index: int, registry_address: str, target_block: int) -> Optional[Decimal]:
        """Balance at exactly `target_block`, or None on any remote failure."""
        key = storage_key(candidate, slot_index)
        try:
            word = self._client.get_storage_at(registry_address, key, target_block)
            return format_amount(hex_to_int(word))
        except (RpcError, ValueError, TypeError) as e:
            logger.warning("probe %s at block %d failed: %s", candidate, target_block, e)
            return None
