"""Native-asset wrapper.

Wraps the environment's native value 1:1 into a fungible asset so the AMM
can treat it like any other token.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cpamm.chain.environment import transactional
from cpamm.errors import InsufficientBalance
from cpamm.models.events import Deposit, Withdrawal
from cpamm.models.types import ensure_uint, normalize_address
from cpamm.tokens.erc20 import FungibleToken

if TYPE_CHECKING:
    from cpamm.chain.environment import Environment


class WrappedNative(FungibleToken):
    """Fungible wrapper around native value.

    The total supply always equals the native balance held by the wrapper.
    """

    def __init__(
        self,
        env: Environment,
        deployer: str,
        name: str = "Wrapped Native",
        symbol: str = "WNATIVE",
        *,
        address: str | None = None,
    ) -> None:
        super().__init__(env, deployer, name, symbol, 18, address=address)

    @transactional
    def deposit(self, sender: str, value: int) -> None:
        """Wrap value of sender's native balance.

        Raises:
            InsufficientBalance: If sender holds less native value than value
        """
        sender_norm = normalize_address(sender, validate=True)
        value = ensure_uint(value, "value")
        self.env.transfer_native(sender_norm, self.address, value)
        self.balances[sender_norm] = self.balances.get(sender_norm, 0) + value
        self.total_supply += value
        self.env.emit(Deposit(contract=self.address, dst=sender_norm, wad=value))

    @transactional
    def withdraw(self, sender: str, amount: int) -> None:
        """Unwrap amount back to sender's native balance.

        Raises:
            InsufficientBalance: If sender holds less than amount wrapped
        """
        sender_norm = normalize_address(sender, validate=True)
        amount = ensure_uint(amount, "amount")
        balance = self.balances.get(sender_norm, 0)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: balance of {sender_norm} is {balance} < {amount}"
            )
        self.balances[sender_norm] = balance - amount
        self.total_supply -= amount
        self.env.transfer_native(self.address, sender_norm, amount)
        self.env.emit(Withdrawal(contract=self.address, src=sender_norm, wad=amount))
