"""Periphery: quoting library and router."""

from cpamm.periphery.library import (
    get_amount_in,
    get_amount_out,
    get_amounts_in,
    get_amounts_out,
    get_reserves,
    pair_for,
    quote,
)
from cpamm.periphery.router import LiquidityAdded, LiquidityRemoved, Router

__all__ = [
    "Router",
    "LiquidityAdded",
    "LiquidityRemoved",
    "quote",
    "get_amount_out",
    "get_amount_in",
    "get_amounts_out",
    "get_amounts_in",
    "get_reserves",
    "pair_for",
]
