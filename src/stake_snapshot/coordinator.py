"""
Pass-based retry of storage probes across all candidates.

Every pass probes the pending candidates on a bounded thread pool and
waits for the whole pass; the ones that failed form the next pass. Passes
never overlap. Between passes the coordinator backs off exponentially and
gives up with ExhaustedRetries after `max_attempts` passes
(`max_attempts=None` retries forever).
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Callable, Dict, Iterable, Optional, Set

from .errors import ExhaustedRetries
from .probe import StorageProbe

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class _PassCollector:
    """Thread-safe sink for one pass: resolved balances and the next retry set."""

    def __init__(self, resolved: Dict[str, Decimal], total: int, on_progress: Optional[ProgressCallback] = None) -> None:
        self._lock = threading.Lock()
        self._total = total
        self._on_progress = on_progress
        self.resolved = resolved
        self.retry: Set[str] = set()

    def add(self, candidate: str, balance: Optional[Decimal]) -> None:
        with self._lock:
            if balance is None:
                self.retry.add(candidate)
            else:
                self.resolved[candidate] = balance
            if self._on_progress is not None:
                self._on_progress(len(self.resolved), self._total)


class RetryCoordinator:
    def __init__(
        self,
        probe: StorageProbe,
        *,
        max_workers: int = 6,
        max_attempts: Optional[int] = 8,
        backoff: float = 0.5,
        max_backoff: float = 8.0,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be at least 1 or None")
        self.probe = probe
        self.max_workers = max_workers
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.max_backoff = max_backoff
        self._sleep = sleep
        self._on_progress = on_progress

    def resolve(self, candidates: Iterable[str], slot_index: int, registry_address: str, target_block: int) -> Dict[str, Decimal]:
        pending = set(candidates)
        total = len(pending)
        resolved: Dict[str, Decimal] = {}
        attempt = 0
        delay = self.backoff

        while pending:
            attempt += 1
            if attempt > 1:
                logger.info("pass %d: retrying %d candidate(s) after %.1fs", attempt, len(pending), delay)
                self._sleep(delay)
                delay = min(delay * 2, self.max_backoff)

            collector = _PassCollector(resolved, total, self._on_progress)

            def run(candidate: str) -> None:
                collector.add(candidate, self.probe.read_balance(candidate, slot_index, registry_address, target_block))

            # sorted so the submission order is reproducible
            with ThreadPoolExecutor(max_workers=self.max_workers) as ex:
                for future in [ex.submit(run, c) for c in sorted(pending)]:
                    future.result()

            pending = collector.retry
            logger.info("pass %d: %d/%d resolved, %d to retry", attempt, len(resolved), total, len(pending))
            if pending and self.max_attempts is not None and attempt >= self.max_attempts:
                raise ExhaustedRetries(pending, attempt)

        return resolved
