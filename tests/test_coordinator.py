"""Tests for pass-based retry of storage probes."""
import threading
import time
from decimal import Decimal

import pytest

from stake_snapshot.coordinator import RetryCoordinator
from stake_snapshot.errors import ExhaustedRetries
from stake_snapshot.probe import StorageProbe

from .fakes import ALICE, BOB, CAROL, ERIN, POOL, STAKES_SLOT


class ScriptedProbe:
    """Fails each candidate a scripted number of times, then returns its balance."""

    def __init__(self, balances, failures=None, delay=0.0):
        self.balances = balances
        self.failures = dict(failures or {})
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def read_balance(self, candidate, slot_index, registry_address, target_block):
        with self._lock:
            self.calls.append(candidate)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            with self._lock:
                if self.failures.get(candidate, 0) > 0:
                    self.failures[candidate] -= 1
                    return None
            return self.balances[candidate]
        finally:
            with self._lock:
                self.in_flight -= 1


class TestRetryCoordinator:
    def test_single_pass_when_everything_resolves(self, sleeps):
        probe = ScriptedProbe({ALICE: Decimal(20), BOB: Decimal(5)})
        coordinator = RetryCoordinator(probe, sleep=sleeps.append)

        assert coordinator.resolve({ALICE, BOB}, STAKES_SLOT, POOL, 100) == {ALICE: 20, BOB: 5}
        assert sorted(probe.calls) == sorted([ALICE, BOB])
        assert sleeps == []

    def test_retried_candidate_resolves_with_correct_balance(self, sleeps):
        """A candidate failing twice appears once, after the third pass."""
        probe = ScriptedProbe({ALICE: Decimal(20), ERIN: Decimal(10)}, failures={ERIN: 2})
        coordinator = RetryCoordinator(probe, sleep=sleeps.append)

        resolved = coordinator.resolve({ALICE, ERIN}, STAKES_SLOT, POOL, 100)

        assert resolved == {ALICE: Decimal(20), ERIN: Decimal(10)}
        assert probe.calls.count(ERIN) == 3
        assert probe.calls.count(ALICE) == 1

    def test_backoff_doubles_and_caps(self, sleeps):
        probe = ScriptedProbe({ALICE: Decimal(1)}, failures={ALICE: 5})
        coordinator = RetryCoordinator(probe, backoff=1.0, max_backoff=4.0, sleep=sleeps.append)

        coordinator.resolve({ALICE}, STAKES_SLOT, POOL, 100)

        assert sleeps == [1.0, 2.0, 4.0, 4.0, 4.0]

    def test_exhausted_retries(self, sleeps):
        probe = ScriptedProbe({ALICE: Decimal(1), BOB: Decimal(2)}, failures={BOB: 10})
        coordinator = RetryCoordinator(probe, max_attempts=3, sleep=sleeps.append)

        with pytest.raises(ExhaustedRetries) as excinfo:
            coordinator.resolve({ALICE, BOB}, STAKES_SLOT, POOL, 100)

        assert excinfo.value.candidates == frozenset({BOB})
        assert excinfo.value.attempts == 3
        assert probe.calls.count(BOB) == 3

    def test_unbounded_attempts(self, sleeps):
        probe = ScriptedProbe({ALICE: Decimal(1)}, failures={ALICE: 20})
        coordinator = RetryCoordinator(probe, max_attempts=None, backoff=0, sleep=sleeps.append)

        assert coordinator.resolve({ALICE}, STAKES_SLOT, POOL, 100) == {ALICE: Decimal(1)}
        assert len(sleeps) == 20

    def test_fan_out_is_bounded(self, sleeps):
        balances = {"0x%040x" % i: Decimal(i) for i in range(1, 25)}
        probe = ScriptedProbe(balances, delay=0.01)
        coordinator = RetryCoordinator(probe, max_workers=3, sleep=sleeps.append)

        assert coordinator.resolve(balances, STAKES_SLOT, POOL, 100) == balances
        assert 1 <= probe.max_in_flight <= 3

    def test_empty_candidate_set(self, sleeps):
        probe = ScriptedProbe({})
        assert RetryCoordinator(probe, sleep=sleeps.append).resolve(set(), STAKES_SLOT, POOL, 1) == {}
        assert probe.calls == []

    def test_progress_reports_resolved_count(self, sleeps):
        seen = []
        probe = ScriptedProbe({ALICE: Decimal(1), BOB: Decimal(2), CAROL: Decimal(3)}, failures={CAROL: 1})
        coordinator = RetryCoordinator(
            probe, sleep=sleeps.append, on_progress=lambda done, total: seen.append((done, total))
        )

        coordinator.resolve({ALICE, BOB, CAROL}, STAKES_SLOT, POOL, 1)

        assert len(seen) == 4
        assert all(total == 3 for _, total in seen)
        assert seen[-1] == (3, 3)

    def test_against_ledger(self, ledger, sleeps):
        ledger.stake(ALICE, 1, 20)
        ledger.fail_next(ALICE, 2)
        coordinator = RetryCoordinator(StorageProbe(ledger), sleep=sleeps.append)

        assert coordinator.resolve({ALICE}, STAKES_SLOT, POOL, 1) == {ALICE: Decimal(20)}
        assert ledger.storage_reads == [(ALICE, 1)] * 3

    @pytest.mark.parametrize("kwargs", [{"max_workers": 0}, {"max_attempts": 0}])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            RetryCoordinator(ScriptedProbe({}), **kwargs)
