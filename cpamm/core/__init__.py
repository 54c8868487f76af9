"""Core contracts: pair ledger and pair registry."""

from cpamm.core.addressing import compute_pair_address, pair_salt, sort_tokens
from cpamm.core.factory import PairRegistry
from cpamm.core.pair import Pair, SwapCallee

__all__ = [
    "Pair",
    "PairRegistry",
    "SwapCallee",
    "compute_pair_address",
    "pair_salt",
    "sort_tokens",
]
