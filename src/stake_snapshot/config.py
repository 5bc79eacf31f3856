"""
Process configuration.

Values come from the environment, with a `.env` file (python-dotenv)
filling whatever the environment leaves unset. The CLI may override any of
them afterwards.
"""
import os
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from dotenv import dotenv_values, find_dotenv

from .engine import DEFAULT_NAMESPACE, SnapshotRequest
from .errors import ConfigurationError
from .layout import ArtifactLayoutProvider, StaticLayoutProvider, StorageLayoutProvider
from .networks import EW_CHAIN_ID, get_network
from .utils import normalize_address

DEFAULT_STAKING_POOL = "0x181A8b2a5AEb25941F6A79b4aE43dBb1968c417A"
STAKES_ENTITY = "StakingPool"
STAKES_FIELD = "stakes"


@dataclass(frozen=True)
class SnapshotSettings:
    chain_id: int = EW_CHAIN_ID
    rpc_url: Optional[str] = None
    registry_address: str = DEFAULT_STAKING_POOL
    start_block: int = 0
    end_block: Optional[int] = None
    min_balance: Decimal = Decimal(700)
    namespace: str = DEFAULT_NAMESPACE
    stakes_slot: Optional[int] = None
    layout_file: Optional[str] = None
    output_dir: str = "snapshots"
    max_workers: int = 6
    max_attempts: Optional[int] = 8
    backoff: float = 0.5
    rpc_timeout: float = 120
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def override(self, **changes) -> "SnapshotSettings":
        """Copy with every non-None keyword applied, then re-validated."""
        applied = {k: v for k, v in changes.items() if v is not None}
        if applied.get("max_attempts") == 0:
            applied["max_attempts"] = None
        return validate(replace(self, **applied))

    def endpoint(self) -> str:
        url = self.rpc_url or get_network(self.chain_id).rpc_url
        if not url:
            raise ConfigurationError(f"no RPC endpoint configured for chain {self.chain_id}")
        return url

    def layout_provider(self) -> StorageLayoutProvider:
        if self.layout_file:
            return ArtifactLayoutProvider.from_file(self.layout_file)
        if self.stakes_slot is not None:
            return StaticLayoutProvider({(STAKES_ENTITY, STAKES_FIELD): self.stakes_slot})
        raise ConfigurationError("set SNAPSHOT_STAKES_SLOT or SNAPSHOT_LAYOUT_FILE")

    def request(self, target_block: int) -> SnapshotRequest:
        return SnapshotRequest(
            registry_address=self.registry_address,
            chain_id=self.chain_id,
            target_block=target_block,
            minimum_balance=self.min_balance,
            credential_namespace=self.namespace,
            from_block=self.start_block,
            entity=STAKES_ENTITY,
            field=STAKES_FIELD,
        )


def _get(env: Mapping[str, Optional[str]], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _int(env, name: str, default: Optional[int]) -> Optional[int]:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return int(raw, 0)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _float(env, name: str, default: float) -> float:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _decimal(env, name: str, default: Decimal) -> Decimal:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if not value.is_finite():
        raise ConfigurationError(f"{name} must be finite, got {raw!r}")
    return value


def validate(settings: SnapshotSettings) -> SnapshotSettings:
    get_network(settings.chain_id)
    normalize_address(settings.registry_address)
    if settings.start_block < 0:
        raise ConfigurationError("SNAPSHOT_START_BLOCK must be non-negative")
    if settings.end_block is not None and settings.end_block < settings.start_block:
        raise ConfigurationError("SNAPSHOT_END_BLOCK must not precede SNAPSHOT_START_BLOCK")
    if not settings.min_balance.is_finite() or settings.min_balance < 0:
        raise ConfigurationError("SNAPSHOT_MIN_BALANCE must be a finite, non-negative number")
    if settings.stakes_slot is not None and settings.stakes_slot < 0:
        raise ConfigurationError("SNAPSHOT_STAKES_SLOT must be non-negative")
    if settings.max_workers < 1:
        raise ConfigurationError("SNAPSHOT_MAX_WORKERS must be at least 1")
    if settings.max_attempts is not None and settings.max_attempts < 1:
        raise ConfigurationError("SNAPSHOT_MAX_ATTEMPTS must be at least 1 (0 for unbounded)")
    if settings.backoff < 0 or settings.rpc_timeout <= 0:
        raise ConfigurationError("SNAPSHOT_BACKOFF and RPC_TIMEOUT must be positive")
    return settings


def load_settings(env: Optional[Mapping[str, Optional[str]]] = None) -> SnapshotSettings:
    """Build settings from `env`, or from os.environ layered over `.env`."""
    if env is None:
        env = {**dotenv_values(find_dotenv(usecwd=True)), **os.environ}

    attempts = _int(env, "SNAPSHOT_MAX_ATTEMPTS", 8)
    settings = SnapshotSettings(
        chain_id=_int(env, "CHAIN_ID", EW_CHAIN_ID),
        rpc_url=_get(env, "RPC_URL"),
        registry_address=_get(env, "STAKINGPOOL") or DEFAULT_STAKING_POOL,
        start_block=_int(env, "SNAPSHOT_START_BLOCK", 0),
        end_block=_int(env, "SNAPSHOT_END_BLOCK", None),
        min_balance=_decimal(env, "SNAPSHOT_MIN_BALANCE", Decimal(700)),
        namespace=_get(env, "SNAPSHOT_NAMESPACE") or DEFAULT_NAMESPACE,
        stakes_slot=_int(env, "SNAPSHOT_STAKES_SLOT", None),
        layout_file=_get(env, "SNAPSHOT_LAYOUT_FILE"),
        output_dir=_get(env, "SNAPSHOT_OUTPUT_DIR") or "snapshots",
        max_workers=_int(env, "SNAPSHOT_MAX_WORKERS", 6),
        max_attempts=None if attempts == 0 else attempts,
        backoff=_float(env, "SNAPSHOT_BACKOFF", 0.5),
        rpc_timeout=_float(env, "RPC_TIMEOUT", 120),
        log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
        log_file=_get(env, "LOG_FILE"),
    )
    return validate(settings)
