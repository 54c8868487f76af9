"""Tests for the native-asset wrapper."""

import pytest

from cpamm.errors import InsufficientBalance
from cpamm.models.events import Deposit, Withdrawal
from tests.helpers import ALICE, E18


@pytest.fixture
def wrapper(deployment):
    return deployment.wrapped_native


class TestWrappedNative:
    """Tests for wrapping and unwrapping native value."""

    def test_deposit(self, env, wrapper):
        """Depositing wraps native value 1:1."""
        env.fund(ALICE, 10 * E18)
        wrapper.deposit(ALICE, 4 * E18)

        assert wrapper.balance_of(ALICE) == 4 * E18
        assert env.native_balance_of(ALICE) == 6 * E18
        assert env.native_balance_of(wrapper.address) == wrapper.total_supply == 4 * E18
        deposit = env.events_of(Deposit)[-1]
        assert (deposit.dst, deposit.wad) == (ALICE, 4 * E18)

    def test_withdraw(self, env, wrapper):
        """Withdrawing unwraps back to native value."""
        env.fund(ALICE, 10 * E18)
        wrapper.deposit(ALICE, 4 * E18)
        wrapper.withdraw(ALICE, 1 * E18)

        assert wrapper.balance_of(ALICE) == 3 * E18
        assert env.native_balance_of(ALICE) == 7 * E18
        assert env.native_balance_of(wrapper.address) == wrapper.total_supply == 3 * E18
        withdrawal = env.events_of(Withdrawal)[-1]
        assert (withdrawal.src, withdrawal.wad) == (ALICE, 1 * E18)

    def test_deposit_without_native_balance(self, env, wrapper):
        """Depositing without native value fails."""
        with pytest.raises(InsufficientBalance):
            wrapper.deposit(ALICE, 1)
        assert wrapper.total_supply == 0

    def test_withdraw_more_than_wrapped(self, env, wrapper):
        """Withdrawing more than wrapped fails."""
        env.fund(ALICE, 1 * E18)
        wrapper.deposit(ALICE, 1 * E18)
        with pytest.raises(InsufficientBalance):
            wrapper.withdraw(ALICE, 1 * E18 + 1)
        assert env.native_balance_of(ALICE) == 0

    def test_wrapped_value_is_transferable(self, env, wrapper):
        """Wrapped value moves like any other token."""
        env.fund(ALICE, 1 * E18)
        wrapper.deposit(ALICE, 1 * E18)
        wrapper.transfer(ALICE, wrapper.address, 1 * E18)
        assert wrapper.balance_of(wrapper.address) == 1 * E18
