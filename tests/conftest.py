import pytest

from stake_snapshot.layout import StaticLayoutProvider

from .fakes import STAKES_SLOT, FakeLedger


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def layout():
    return StaticLayoutProvider({("StakingPool", "stakes"): STAKES_SLOT})


@pytest.fixture
def sleeps():
    """Records requested delays instead of sleeping; pass `sleeps.append` as `sleep`."""
    return []
