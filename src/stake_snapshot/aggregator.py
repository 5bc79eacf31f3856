"""Threshold filtering and credential construction."""
import logging
from decimal import Decimal
from typing import FrozenSet, Mapping

from .models import CredentialEntry, as_decimal
from .networks import format_did, get_network
from .utils import normalize_address

logger = logging.getLogger(__name__)


def aggregate(
    balances: Mapping[str, Decimal],
    minimum_balance: Decimal,
    chain_id: int,
    registry_address: str,
    snapshot_block: int,
) -> FrozenSet[CredentialEntry]:
    minimum_balance = as_decimal(minimum_balance)
    get_network(chain_id)
    registry = normalize_address(registry_address)
    entries = {
        CredentialEntry(
            did=format_did(candidate, chain_id),
            chain_id=chain_id,
            stake_amount=balance,
            minimum_balance=minimum_balance,
            snapshot_block=snapshot_block,
            registry_address=registry,
        )
        for candidate, balance in balances.items()
        if balance >= minimum_balance
    }
    logger.info("%d of %d candidate(s) hold at least %s", len(entries), len(balances), minimum_balance)
    return frozenset(entries)
