"""Pydantic models and shared types for AMM data structures."""

from cpamm.models.events import (
    Approval,
    Burn,
    Deposit,
    Event,
    Mint,
    PairCreated,
    Swap,
    Sync,
    Transfer,
    Withdrawal,
)
from cpamm.models.types import Address, Uint256, normalize_address

__all__ = [
    # Types
    "Address",
    "Uint256",
    "normalize_address",
    # Events
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
