"""In-memory fungible asset with the standard transfer/allowance interface.

This is the collaborator the AMM core moves assets through. The caller
identity is passed explicitly as the first argument of every mutating call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cpamm.chain.contract import Contract
from cpamm.chain.environment import transactional
from cpamm.constants import INFINITE_ALLOWANCE, ZERO_ADDRESS
from cpamm.errors import InsufficientAllowance, InsufficientBalance
from cpamm.models.events import Approval, Transfer
from cpamm.models.types import ensure_uint, normalize_address

if TYPE_CHECKING:
    from cpamm.chain.environment import Environment


class FungibleToken(Contract):
    """Fungible asset with balances, allowances and a total supply.

    Args:
        env: Environment the token lives in
        deployer: Account deploying the token; receives the initial supply
        name: Token name
        symbol: Token symbol
        decimals: Display decimals (default: 18)
        initial_supply: Amount minted to the deployer on creation
        address: Explicit address. Defaults to the deployer's next address.
    """

    def __init__(
        self,
        env: Environment,
        deployer: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        initial_supply: int = 0,
        *,
        address: str | None = None,
    ) -> None:
        super().__init__(env, address if address is not None else env.create_address(deployer))
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self.balances: dict[str, int] = {}
        self.allowances: dict[str, dict[str, int]] = {}
        if initial_supply:
            self._mint(
                normalize_address(deployer, validate=True),
                ensure_uint(initial_supply, "initial_supply"),
            )

    def balance_of(self, holder: str) -> int:
        return self.balances.get(normalize_address(holder), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(normalize_address(owner), {}).get(normalize_address(spender), 0)

    @transactional
    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Allow spender to move up to amount of owner's balance."""
        owner_norm = normalize_address(owner, validate=True)
        spender_norm = normalize_address(spender, validate=True)
        amount = ensure_uint(amount, "amount")
        self.allowances.setdefault(owner_norm, {})[spender_norm] = amount
        self.env.emit(
            Approval(contract=self.address, owner=owner_norm, spender=spender_norm, value=amount)
        )
        return True

    @transactional
    def transfer(self, sender: str, to: str, amount: int) -> bool:
        """Move amount from sender to to.

        Raises:
            InsufficientBalance: If sender holds less than amount
        """
        self._transfer(
            normalize_address(sender, validate=True),
            normalize_address(to, validate=True),
            ensure_uint(amount, "amount"),
        )
        return True

    @transactional
    def transfer_from(self, sender: str, owner: str, to: str, amount: int) -> bool:
        """Move amount from owner to to, spending sender's allowance.

        An allowance of INFINITE_ALLOWANCE is never decremented.

        Raises:
            InsufficientAllowance: If sender may move less than amount
            InsufficientBalance: If owner holds less than amount
        """
        sender_norm = normalize_address(sender, validate=True)
        owner_norm = normalize_address(owner, validate=True)
        amount = ensure_uint(amount, "amount")
        allowed = self.allowance(owner_norm, sender_norm)
        if allowed != INFINITE_ALLOWANCE:
            if allowed < amount:
                raise InsufficientAllowance(
                    f"{self.symbol}: allowance of {sender_norm} over {owner_norm} "
                    f"is {allowed} < {amount}"
                )
            self.allowances.setdefault(owner_norm, {})[sender_norm] = allowed - amount
        self._transfer(owner_norm, normalize_address(to, validate=True), amount)
        return True

    # --- Internal ledger operations ---

    def _transfer(self, sender: str, to: str, amount: int) -> None:
        balance = self.balances.get(sender, 0)
        if balance < amount:
            raise InsufficientBalance(f"{self.symbol}: balance of {sender} is {balance} < {amount}")
        self.balances[sender] = balance - amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self.env.emit(Transfer(contract=self.address, sender=sender, recipient=to, value=amount))

    def _mint(self, to: str, amount: int) -> None:
        self.total_supply += amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self.env.emit(
            Transfer(contract=self.address, sender=ZERO_ADDRESS, recipient=to, value=amount)
        )

    def _burn(self, holder: str, amount: int) -> None:
        balance = self.balances.get(holder, 0)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: cannot burn {amount} from {holder} holding {balance}"
            )
        self.balances[holder] = balance - amount
        self.total_supply -= amount
        self.env.emit(
            Transfer(contract=self.address, sender=holder, recipient=ZERO_ADDRESS, value=amount)
        )
