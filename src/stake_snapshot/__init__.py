from .aggregator import aggregate
from .coordinator import RetryCoordinator
from .engine import SnapshotEngine, SnapshotRequest
from .errors import (
    ConfigurationError,
    DiscoveryError,
    ExhaustedRetries,
    RpcError,
    SnapshotError,
    TransientRemoteError,
    UnknownChainError,
)
from .layout import ArtifactLayoutProvider, StaticLayoutProvider, StorageLayoutProvider
from .models import CredentialEntry, EventRecord, SnapshotDocument
from .probe import StorageProbe, storage_key
from .rpc import RpcClient
from .scanner import STAKE_ADDED_TOPIC, LogScanner
from .writer import SnapshotWriter

__version__ = "0.1.0"
