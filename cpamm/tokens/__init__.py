"""Fungible asset collaborators used by the AMM core."""

from cpamm.tokens.erc20 import FungibleToken
from cpamm.tokens.weth import WrappedNative

__all__ = [
    "FungibleToken",
    "WrappedNative",
]
