"""Hex, address and amount helpers shared by the scanner and the probe."""
from decimal import Decimal, localcontext
from typing import Optional

from eth_utils import is_address, to_checksum_address, to_normalized_address

from .errors import ConfigurationError

WEI_DECIMALS = 18


def hex_to_int(h: Optional[str]) -> int:
    if not h or h == "0x":
        return 0
    return int(h, 16)


def to_block_hex(n: int) -> str:
    return hex(int(n))


def topic_to_address(topic_hex: str) -> str:
    """topics[i] are 32-byte values; addresses are right-aligned (last 20 bytes)."""
    clean = (topic_hex or "").lower().replace("0x", "")
    if len(clean) != 64:
        raise ValueError(f"not a 32-byte topic: {topic_hex!r}")
    return "0x" + clean[-40:]


def normalize_address(addr: str) -> str:
    """Lowercase 0x-prefixed form; raises ConfigurationError on anything else."""
    if not isinstance(addr, str) or not is_address(addr):
        raise ConfigurationError(f"invalid address: {addr!r}")
    return to_normalized_address(addr)


def checksum(addr_hex: str) -> str:
    return to_checksum_address(normalize_address(addr_hex))


def format_amount(raw: int, decimals: int = WEI_DECIMALS) -> Decimal:
    """Scale an unsigned integer word down by 10**decimals without rounding."""
    if raw < 0:
        raise ValueError("amount words are unsigned")
    # uint256 has up to 78 digits, beyond the default context precision
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(raw).scaleb(-decimals)
