"""
Point-in-time stake snapshot engine.

    LogScanner -> candidates -> RetryCoordinator(StorageProbe) -> balances
               -> aggregate -> SnapshotDocument

Every input is explicit; the engine touches neither the environment nor
the filesystem. Configuration problems surface before the first probe.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .aggregator import aggregate
from .coordinator import ProgressCallback, RetryCoordinator
from .errors import ConfigurationError
from .layout import StorageLayoutProvider
from .models import SnapshotDocument, as_decimal
from .networks import get_network
from .probe import StorageProbe
from .scanner import STAKE_ADDED_TOPIC, LogScanner
from .utils import normalize_address

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "snapshot1.roles.consortiapool.apps.energyweb.iam.ewc"


@dataclass(frozen=True)
class SnapshotRequest:
    registry_address: str
    chain_id: int
    target_block: int
    minimum_balance: Decimal
    credential_namespace: str = DEFAULT_NAMESPACE
    from_block: int = 0
    event_topic: str = STAKE_ADDED_TOPIC
    entity: str = "StakingPool"
    field: str = "stakes"

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "minimum_balance", as_decimal(self.minimum_balance))
        except (ArithmeticError, ValueError, TypeError):
            raise ConfigurationError(f"invalid minimum balance: {self.minimum_balance!r}") from None


class SnapshotEngine:
    def __init__(
        self,
        client,
        layout: StorageLayoutProvider,
        *,
        max_workers: int = 6,
        max_attempts: Optional[int] = 8,
        backoff: float = 0.5,
        on_progress: Optional[ProgressCallback] = None,
        coordinator: Optional[RetryCoordinator] = None,
    ) -> None:
        self.layout = layout
        self.scanner = LogScanner(client)
        self.coordinator = coordinator or RetryCoordinator(
            StorageProbe(client),
            max_workers=max_workers,
            max_attempts=max_attempts,
            backoff=backoff,
            on_progress=on_progress,
        )

    def validate(self, request: SnapshotRequest) -> int:
        """Check the request and return the base slot to probe."""
        get_network(request.chain_id)
        normalize_address(request.registry_address)
        if request.target_block < 0 or request.from_block < 0:
            raise ConfigurationError("block numbers must be non-negative")
        if request.from_block > request.target_block:
            raise ConfigurationError(
                f"from block {request.from_block} is after target block {request.target_block}"
            )
        if not request.minimum_balance.is_finite() or request.minimum_balance < 0:
            raise ConfigurationError("minimum balance must be a finite, non-negative number")
        if not request.credential_namespace:
            raise ConfigurationError("credential namespace is empty")
        return self.layout.slot_of(request.entity, request.field)

    def take_snapshot(self, request: SnapshotRequest) -> SnapshotDocument:
        slot = self.validate(request)
        registry = normalize_address(request.registry_address)
        logger.info(
            "snapshot of %s on chain %d at block %d (min balance %s, slot %d)",
            registry, request.chain_id, request.target_block, request.minimum_balance, slot,
        )
        candidates = self.scanner.scan(registry, request.event_topic, request.target_block, request.from_block)
        balances = self.coordinator.resolve(candidates, slot, registry, request.target_block)
        credentials = aggregate(
            balances, request.minimum_balance, request.chain_id, registry, request.target_block
        )
        return SnapshotDocument(
            credential_namespace=request.credential_namespace,
            snapshot_block=request.target_block,
            credentials=credentials,
        )
