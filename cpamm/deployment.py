"""Deployment context: one registry, one wrapper and one router, wired together.

Built once per environment and passed to whatever drives the AMM, instead
of keeping the contracts in module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from cpamm.chain.environment import Environment
from cpamm.core.factory import PairRegistry
from cpamm.core.pair import Pair
from cpamm.periphery.router import Router
from cpamm.tokens.weth import WrappedNative

logger = structlog.get_logger()


@dataclass(frozen=True)
class Deployment:
    """Handles to the contracts of one AMM deployment."""

    env: Environment
    registry: PairRegistry
    wrapped_native: WrappedNative
    router: Router

    def pair(self, token_a: str, token_b: str) -> Pair | None:
        """The pair contract for two tokens, if it has been created."""
        address = self.registry.get_pair(token_a, token_b)
        if address is None:
            return None
        return self.env.contract(address)  # type: ignore[return-value]


def deploy(env: Environment, deployer: str, fee_to_setter: str | None = None) -> Deployment:
    """Deploy registry, native wrapper and router in that order.

    Args:
        env: Environment to deploy into
        deployer: Account paying for and owning the deployment
        fee_to_setter: Account allowed to switch the protocol fee
                       (default: the deployer)

    Returns:
        Deployment holding all three contracts
    """
    registry = PairRegistry(env, deployer, fee_to_setter)
    wrapped_native = WrappedNative(env, deployer)
    router = Router(env, deployer, registry.address, wrapped_native.address)
    logger.info(
        "amm_deployed",
        registry=registry.address,
        wrapped_native=wrapped_native.address,
        router=router.address,
    )
    return Deployment(env=env, registry=registry, wrapped_native=wrapped_native, router=router)
