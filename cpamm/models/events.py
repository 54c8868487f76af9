"""Pydantic models for events emitted by the AMM contracts.

Each model mirrors one on-chain log. ``contract`` is the address of the
emitting contract.
"""

from pydantic import BaseModel, Field

from cpamm.models.types import Address, Uint256


class Event(BaseModel):
    """Base class for all emitted events."""

    contract: Address

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def name(self) -> str:
        return type(self).__name__


class PairCreated(Event):
    """A new pair ledger was created by the registry."""

    token0: Address
    token1: Address
    pair: Address
    # Number of pairs after this one was appended
    index: int = Field(ge=1)


class Transfer(Event):
    """Fungible asset moved between holders (mints and burns use the zero address)."""

    sender: Address = Field(alias="from")
    recipient: Address = Field(alias="to")
    value: Uint256


class Approval(Event):
    """Allowance set by an owner for a spender."""

    owner: Address
    spender: Address
    value: Uint256


class Mint(Event):
    """Liquidity added to a pair."""

    sender: Address
    amount0: Uint256
    amount1: Uint256


class Burn(Event):
    """Liquidity removed from a pair."""

    sender: Address
    amount0: Uint256
    amount1: Uint256
    to: Address


class Swap(Event):
    """Assets exchanged through a pair."""

    sender: Address
    amount0_in: Uint256 = Field(alias="amount0In")
    amount1_in: Uint256 = Field(alias="amount1In")
    amount0_out: Uint256 = Field(alias="amount0Out")
    amount1_out: Uint256 = Field(alias="amount1Out")
    to: Address


class Sync(Event):
    """Pair reserves were reconciled to balances."""

    reserve0: Uint256
    reserve1: Uint256


class Deposit(Event):
    """Native value wrapped."""

    dst: Address
    wad: Uint256


class Withdrawal(Event):
    """Native value unwrapped."""

    src: Address
    wad: Uint256


__all__ = [
    "Event",
    "PairCreated",
    "Transfer",
    "Approval",
    "Mint",
    "Burn",
    "Swap",
    "Sync",
    "Deposit",
    "Withdrawal",
]
