"""Pytest configuration and fixtures."""

import pytest

from cpamm.chain import Environment
from cpamm.constants import INFINITE_ALLOWANCE
from cpamm.core import Pair
from cpamm.deployment import Deployment, deploy
from cpamm.tokens import FungibleToken
from tests.helpers import DEPLOYER, E18, make_env, make_sorted_tokens


@pytest.fixture
def env() -> Environment:
    """Fresh environment at the genesis timestamp with the default config."""
    return make_env()


@pytest.fixture
def deployment(env: Environment) -> Deployment:
    """Registry, wrapper and router deployed by DEPLOYER."""
    return deploy(env, DEPLOYER)


@pytest.fixture
def tokens(env: Environment, deployment: Deployment) -> tuple[FungibleToken, FungibleToken]:
    """Two tokens in canonical order, whole supply held by DEPLOYER."""
    return make_sorted_tokens(env)


@pytest.fixture
def token0(tokens: tuple[FungibleToken, FungibleToken]) -> FungibleToken:
    return tokens[0]


@pytest.fixture
def token1(tokens: tuple[FungibleToken, FungibleToken]) -> FungibleToken:
    return tokens[1]


@pytest.fixture
def pair(
    env: Environment,
    deployment: Deployment,
    token0: FungibleToken,
    token1: FungibleToken,
) -> Pair:
    """Empty pair for (token0, token1)."""
    address = deployment.registry.create_pair(token0.address, token1.address)
    return env.contract(address)  # type: ignore[return-value]


@pytest.fixture
def approved_router(
    deployment: Deployment,
    token0: FungibleToken,
    token1: FungibleToken,
) -> Deployment:
    """Deployment whose router may spend DEPLOYER's tokens without limit."""
    token0.approve(DEPLOYER, deployment.router.address, INFINITE_ALLOWANCE)
    token1.approve(DEPLOYER, deployment.router.address, INFINITE_ALLOWANCE)
    return deployment


@pytest.fixture
def funded_deployer(env: Environment) -> str:
    """DEPLOYER with 1000 units of native value."""
    env.fund(DEPLOYER, 1000 * E18)
    return DEPLOYER
