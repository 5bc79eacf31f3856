from decimal import Decimal

import pytest

from stake_snapshot.aggregator import aggregate
from stake_snapshot.errors import ConfigurationError, UnknownChainError
from stake_snapshot.models import CredentialEntry
from stake_snapshot.networks import format_did, get_network, register_network

from .fakes import ALICE, BOB, CAROL, POOL


class TestAggregate:
    def test_threshold_is_inclusive(self):
        balances = {ALICE: Decimal(20), BOB: Decimal(5), CAROL: Decimal(2)}
        entries = aggregate(balances, Decimal(5), 246, POOL, 100)
        assert {e.did for e in entries} == {f"did:ethr:ewc:{ALICE}", f"did:ethr:ewc:{BOB}"}

    def test_entry_fields(self):
        (entry,) = aggregate({ALICE: Decimal(20)}, Decimal(5), 246, POOL.upper().replace("0X", "0x"), 100)
        assert entry == CredentialEntry(
            did=f"did:ethr:ewc:{ALICE}",
            chain_id=246,
            stake_amount=Decimal(20),
            minimum_balance=Decimal(5),
            snapshot_block=100,
            registry_address=POOL,
        )

    def test_result_is_a_set(self):
        balances = {ALICE: Decimal(20), BOB: Decimal(7)}
        first = aggregate(balances, Decimal(5), 246, POOL, 100)
        second = aggregate(dict(reversed(list(balances.items()))), Decimal(5), 246, POOL, 100)
        assert isinstance(first, frozenset)
        assert first == second

    def test_unknown_chain(self):
        with pytest.raises(UnknownChainError):
            aggregate({}, Decimal(5), 999999, POOL, 1)

    def test_integer_threshold(self):
        (entry,) = aggregate({ALICE: Decimal(20), BOB: Decimal(4)}, 5, 246, POOL, 1)
        assert entry.minimum_balance == Decimal(5)
        assert isinstance(entry.minimum_balance, Decimal)

    def test_fractional_threshold(self):
        balances = {ALICE: Decimal("4.999999999999999999"), BOB: Decimal("5.000000000000000001")}
        assert {e.did for e in aggregate(balances, Decimal(5), 246, POOL, 1)} == {f"did:ethr:ewc:{BOB}"}


class TestNetworks:
    def test_default_table(self):
        assert get_network(246).name == "ewc"
        assert get_network(73799).name == "volta"

    def test_volta_did(self):
        assert format_did(ALICE, 73799) == f"did:ethr:volta:{ALICE}"

    def test_register_network(self):
        register_network(1337, "volta")
        assert format_did(BOB, 1337) == f"did:ethr:volta:{BOB}"

    def test_unknown_chain_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            format_did(ALICE, 42)

    def test_invalid_name(self):
        with pytest.raises(ConfigurationError):
            register_network(5, "bad:name")
