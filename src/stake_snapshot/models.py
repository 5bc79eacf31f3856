"""Value types flowing through the snapshot pipeline."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Union

from .utils import checksum


@dataclass(frozen=True)
class EventRecord:
    address: str
    block_number: int
    transaction_hash: str


def as_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 rather than its binary float expansion
    return Decimal(str(value))


def json_number(value: Union[Decimal, int, float]) -> Union[int, float]:
    """Integral amounts render as JSON integers, the rest as floats."""
    value = as_decimal(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass(frozen=True)
class CredentialEntry:
    did: str
    chain_id: int
    stake_amount: Decimal
    minimum_balance: Decimal
    snapshot_block: int
    registry_address: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "did": self.did,
            "issuerFields": [
                {
                    "chainId": self.chain_id,
                    "stakeAmount": json_number(self.stake_amount),
                    "minimumBalance": json_number(self.minimum_balance),
                    "snapshotBlock": self.snapshot_block,
                    "stakingPoolAddress": checksum(self.registry_address),
                }
            ],
        }


@dataclass(frozen=True)
class SnapshotDocument:
    credential_namespace: str
    snapshot_block: int
    credentials: FrozenSet[CredentialEntry] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "credentials", frozenset(self.credentials))

    @property
    def is_empty(self) -> bool:
        return not self.credentials

    def to_dict(self) -> Dict[str, Any]:
        return {
            "credentialNamespace": self.credential_namespace,
            "snapshotBlock": self.snapshot_block,
            "credentials": [c.to_dict() for c in sorted(self.credentials, key=lambda c: c.did)],
        }
