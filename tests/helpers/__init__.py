"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Accounts, amounts and the genesis timestamp
- factories: Environment, token and liquidity factory functions
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    DEPLOYER,
    E18,
    FEE_RECIPIENT,
    GENESIS_TIMESTAMP,
    TOKEN_SUPPLY,
)
from tests.helpers.factories import (
    FlashBorrower,
    add_pair_liquidity,
    make_env,
    make_sorted_tokens,
    make_token,
)

__all__ = [
    # Constants
    "DEPLOYER",
    "ALICE",
    "BOB",
    "FEE_RECIPIENT",
    "E18",
    "GENESIS_TIMESTAMP",
    "TOKEN_SUPPLY",
    # Factories
    "make_env",
    "make_token",
    "make_sorted_tokens",
    "add_pair_liquidity",
    "FlashBorrower",
]
