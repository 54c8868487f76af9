"""Constant-product AMM engine - pair registry, pair ledgers and router."""

from cpamm.chain import Environment
from cpamm.config import DEFAULT_AMM_CONFIG, AMMConfig
from cpamm.core import Pair, PairRegistry
from cpamm.deployment import Deployment, deploy
from cpamm.periphery import Router
from cpamm.tokens import FungibleToken, WrappedNative

__version__ = "0.1.0"
__all__ = [
    "AMMConfig",
    "DEFAULT_AMM_CONFIG",
    "Deployment",
    "Environment",
    "FungibleToken",
    "Pair",
    "PairRegistry",
    "Router",
    "WrappedNative",
    "deploy",
    "__version__",
]
