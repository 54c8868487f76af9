"""Simulated execution environment (addresses, clock, native value, transactions)."""

from cpamm.chain.contract import Contract
from cpamm.chain.environment import Environment, transactional

__all__ = [
    "Contract",
    "Environment",
    "transactional",
]
