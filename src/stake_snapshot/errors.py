"""
Exception hierarchy for snapshot computation.

Remote failures during storage probing are transient and retried by the
coordinator; configuration and discovery failures abort the run.
"""
from typing import Iterable, Optional


class SnapshotError(Exception):
    """Base class for every error raised by stake_snapshot."""


class RpcError(SnapshotError):
    def __init__(self, message: str, *, code: Optional[int] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class TransientRemoteError(RpcError):
    """Timeout, connection failure, rate limit or an unavailable historical block."""


class ConfigurationError(SnapshotError):
    pass


class UnknownChainError(ConfigurationError):
    def __init__(self, chain_id: int) -> None:
        super().__init__(f"{chain_id} is not a known chain identifier")
        self.chain_id = chain_id


class DiscoveryError(SnapshotError):
    """The candidate log scan failed."""


class ExhaustedRetries(SnapshotError):
    def __init__(self, candidates: Iterable[str], attempts: int) -> None:
        self.candidates = frozenset(candidates)
        self.attempts = attempts
        super().__init__(
            f"{len(self.candidates)} candidate(s) unresolved after {attempts} attempt(s)"
        )
