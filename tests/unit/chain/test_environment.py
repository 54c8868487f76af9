"""Tests for the simulated environment: addresses, clock, native value, transactions."""

import pytest
from eth_utils import keccak

from cpamm.chain import Contract, Environment, transactional
from cpamm.config import DEFAULT_AMM_CONFIG
from cpamm.errors import AddressInUse, InsufficientBalance, UnknownContract
from cpamm.models.events import Sync, Transfer
from tests.helpers import ALICE, BOB, DEPLOYER, E18, GENESIS_TIMESTAMP, make_token


class Counter(Contract):
    """Minimal contract with plain state."""

    def __init__(self, env: Environment, deployer: str) -> None:
        super().__init__(env, env.create_address(deployer))
        self.count = 0
        self.history: list[int] = []

    @transactional
    def bump(self, fail: bool = False) -> int:
        self.count += 1
        self.history.append(self.count)
        self.env.emit(Sync(contract=self.address, reserve0=self.count, reserve1=0))
        if fail:
            raise RuntimeError("bump failed")
        return self.count


class TestAddresses:
    """Tests for deterministic contract addresses."""

    def test_create_address_matches_derivation(self, env):
        """The first address is keccak256(deployer ++ uint64 0)[12:]."""
        deployer_bytes = bytes.fromhex(DEPLOYER[2:])
        expected = "0x" + keccak(deployer_bytes + (0).to_bytes(8, "big"))[12:].hex()
        assert env.create_address(DEPLOYER) == expected

    def test_nonce_increments(self, env):
        """Each deployment uses the next nonce."""
        first = env.create_address(DEPLOYER)
        second = env.create_address(DEPLOYER)
        assert first != second

    def test_reproducible_across_environments(self):
        """Fresh environments hand out the same addresses."""
        first = Environment(timestamp=GENESIS_TIMESTAMP)
        second = Environment(timestamp=GENESIS_TIMESTAMP)
        assert [first.create_address(ALICE) for _ in range(3)] == [
            second.create_address(ALICE) for _ in range(3)
        ]

    def test_register_twice_raises(self, env):
        """Two contracts cannot share an address."""
        counter = Counter(env, DEPLOYER)
        with pytest.raises(AddressInUse):
            Contract(env, counter.address)

    def test_lookup(self, env):
        """Lookups are case-insensitive and fail loudly for unknown addresses."""
        counter = Counter(env, DEPLOYER)
        assert env.find(counter.address.upper().replace("0X", "0x")) is counter
        assert env.contract(counter.address) is counter
        assert env.find(ALICE) is None
        with pytest.raises(UnknownContract):
            env.contract(ALICE)

    def test_token_lookup_rejects_non_tokens(self, env):
        """token() only returns fungible assets."""
        counter = Counter(env, DEPLOYER)
        token = make_token(env, "TKN")
        assert env.token(token.address) is token
        with pytest.raises(UnknownContract):
            env.token(counter.address)


class TestClockAndNativeValue:
    """Tests for the block clock and native balances."""

    def test_defaults(self):
        """Without arguments the default config and the wall clock are used."""
        env = Environment()
        assert env.config is DEFAULT_AMM_CONFIG
        assert env.timestamp > GENESIS_TIMESTAMP

    def test_advance_time(self, env):
        """The clock moves forward by the given seconds."""
        assert env.advance_time(15) == GENESIS_TIMESTAMP + 15
        assert env.timestamp == GENESIS_TIMESTAMP + 15

    def test_cannot_go_back_in_time(self, env):
        """Negative time steps are rejected."""
        with pytest.raises(ValueError):
            env.advance_time(-1)

    def test_fund_and_transfer(self, env):
        """Native value can be credited and moved."""
        env.fund(ALICE, 5 * E18)
        env.transfer_native(ALICE, BOB, 2 * E18)
        assert env.native_balance_of(ALICE) == 3 * E18
        assert env.native_balance_of(BOB) == 2 * E18

    def test_transfer_insufficient(self, env):
        """Moving more native value than held fails."""
        with pytest.raises(InsufficientBalance):
            env.transfer_native(ALICE, BOB, 1)


class TestAtomic:
    """Tests for all-or-nothing execution."""

    def test_commit(self, env):
        """A successful call keeps its state and events."""
        counter = Counter(env, DEPLOYER)
        assert counter.bump() == 1
        assert counter.count == 1
        assert len(env.events_of(Sync)) == 1

    def test_rollback_restores_state_and_events(self, env):
        """A failed call leaves state and events as before."""
        counter = Counter(env, DEPLOYER)
        counter.bump()

        with pytest.raises(RuntimeError, match="bump failed"):
            counter.bump(fail=True)

        assert counter.count == 1
        assert counter.history == [1]
        assert len(env.events_of(Sync)) == 1

    def test_nested_rollback_only_unwinds_inner(self, env):
        """An inner failure keeps the outer block's changes."""
        counter = Counter(env, DEPLOYER)
        with env.atomic():
            counter.bump()
            with pytest.raises(RuntimeError):
                counter.bump(fail=True)
        assert counter.count == 1

    def test_outer_failure_unwinds_committed_inner(self, env):
        """An outer failure unwinds committed inner calls too."""
        counter = Counter(env, DEPLOYER)
        env.fund(ALICE, 10)
        with pytest.raises(KeyError):
            with env.atomic():
                counter.bump()
                env.transfer_native(ALICE, BOB, 10)
                raise KeyError("abort")
        assert counter.count == 0
        assert env.native_balance_of(ALICE) == 10
        assert env.native_balance_of(BOB) == 0

    def test_rollback_forgets_new_contracts_and_nonces(self, env):
        """Contracts created in a failed block disappear and free their address."""
        with pytest.raises(RuntimeError):
            with env.atomic():
                created = Counter(env, DEPLOYER)
                raise RuntimeError("abort")
        assert env.find(created.address) is None
        # The nonce was released, so the next deployment reuses the address
        assert Counter(env, DEPLOYER).address == created.address

    def test_events_of_filters_by_contract(self, env):
        """events_of filters by type and emitting contract."""
        first = make_token(env, "ONE")
        second = make_token(env, "TWO")
        first.transfer(DEPLOYER, ALICE, 1)
        second.transfer(DEPLOYER, ALICE, 2)
        assert [e.value for e in env.events_of(Transfer, second.address)][-1] == 2
        assert len(env.events_of(Transfer)) == 4
        assert len(env.events) == 4

    def test_only_touched_contracts_are_snapshotted(self, env, monkeypatch):
        """A call captures the contracts it changes, not every registered one."""
        tokens = [make_token(env, f"T{i}") for i in range(5)]
        snapshotted = []
        real_snapshot = Contract.snapshot

        def recording(contract):
            snapshotted.append(contract.address)
            return real_snapshot(contract)

        monkeypatch.setattr(Contract, "snapshot", recording)
        tokens[0].transfer(DEPLOYER, ALICE, 1)

        assert snapshotted == [tokens[0].address]

    def test_snapshot_shared_by_nested_savepoints(self, env):
        """Unwinding an inner block does not leak into the outer block's pre-image."""
        counter = Counter(env, DEPLOYER)
        with pytest.raises(KeyError):
            with env.atomic():
                with pytest.raises(RuntimeError):
                    counter.bump(fail=True)
                counter.bump()
                counter.bump()
                raise KeyError("abort")
        assert counter.count == 0
        assert counter.history == []

    def test_rollback_restores_native_journal(self, env):
        """Accounts first credited inside a failed block disappear again."""
        env.fund(ALICE, 5)
        with pytest.raises(RuntimeError):
            with env.atomic():
                env.transfer_native(ALICE, BOB, 2)
                env.fund(BOB, 1)
                raise RuntimeError("abort")
        assert env.native_balance_of(ALICE) == 5
        assert env.native_balance_of(BOB) == 0


class TestLogging:
    """Tests for structured logging with the default structlog configuration."""

    def test_emitted_events_are_logged(self, env, capsys):
        """Every emitted event is logged under its name."""
        token = make_token(env, "LOG")
        capsys.readouterr()

        token.transfer(DEPLOYER, ALICE, 1)

        captured = capsys.readouterr()
        assert "event_emitted" in captured.out
        assert "event_name" in captured.out
        assert "Transfer" in captured.out
        assert token.address[-8:] in captured.out

    def test_reverted_transaction_is_logged(self, env, capsys):
        """Unwinding logs the error class."""
        counter = Counter(env, DEPLOYER)
        with pytest.raises(RuntimeError):
            counter.bump(fail=True)

        captured = capsys.readouterr()
        assert "transaction_reverted" in captured.out
        assert "RuntimeError" in captured.out
