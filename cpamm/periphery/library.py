"""Constant-product quoting math and route helpers.

Formula: amount_out = (amount_in * 997 * reserve_out) / (reserve_in * 1000 + amount_in * 997)

The 997/1000 factor accounts for the 0.3% fee. All functions here are pure
or read-only; none of them mutate a pair.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cpamm.constants import FEE_DENOMINATOR, FEE_NUMERATOR
from cpamm.core.addressing import compute_pair_address, sort_tokens
from cpamm.core.pair import Pair
from cpamm.errors import (
    InsufficientAmount,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientOutputAmount,
    InvalidPath,
    PairNotFound,
)
from cpamm.models.types import normalize_address
from cpamm.safe_int import S

if TYPE_CHECKING:
    from cpamm.chain.environment import Environment


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Amount of B worth amount_a of A at the current reserve ratio (no fee).

    Raises:
        InsufficientAmount: If amount_a is zero
        InsufficientLiquidity: If either reserve is zero
    """
    if amount_a <= 0:
        raise InsufficientAmount("Quote amount must be positive")
    if reserve_a <= 0 or reserve_b <= 0:
        raise InsufficientLiquidity(f"Empty reserves ({reserve_a}, {reserve_b})")
    return (S(amount_a) * S(reserve_b) // S(reserve_a)).value


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Calculate output amount using constant product formula.

    Args:
        amount_in: Input token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool

    Returns:
        Output token amount (rounded down)

    Raises:
        InsufficientInputAmount: If amount_in is zero
        InsufficientLiquidity: If either reserve is zero
    """
    if amount_in <= 0:
        raise InsufficientInputAmount("Input amount must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserves ({reserve_in}, {reserve_out})")

    amount_in_with_fee = S(amount_in) * S(FEE_NUMERATOR)
    numerator = amount_in_with_fee * S(reserve_out)
    denominator = S(reserve_in) * S(FEE_DENOMINATOR) + amount_in_with_fee

    return (numerator // denominator).value


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int) -> int:
    """Calculate required input for desired output.

    Formula: amount_in = (res_in * out * 1000) / ((res_out - out) * 997) + 1

    Args:
        amount_out: Desired output token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool

    Returns:
        Required input token amount (rounded up)

    Raises:
        InsufficientOutputAmount: If amount_out is zero
        InsufficientLiquidity: If either reserve is zero or amount_out drains reserve_out
    """
    if amount_out <= 0:
        raise InsufficientOutputAmount("Output amount must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserves ({reserve_in}, {reserve_out})")
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"Output {amount_out} drains reserve {reserve_out}")

    numerator = S(reserve_in) * S(amount_out) * S(FEE_DENOMINATOR)
    denominator = (S(reserve_out) - S(amount_out)) * S(FEE_NUMERATOR)

    return ((numerator // denominator) + S(1)).value


def pair_for(registry: str, token_a: str, token_b: str, init_code_hash: bytes) -> str:
    """Pair address for a token pair, computed without any state lookup."""
    return compute_pair_address(registry, token_a, token_b, init_code_hash)


def pair_at(env: Environment, registry: str, token_a: str, token_b: str) -> Pair:
    """Resolve the pair contract for a token pair.

    Raises:
        PairNotFound: If no pair has been created at the derived address
    """
    address = pair_for(registry, token_a, token_b, env.config.init_code_hash_bytes)
    pair = env.find(address)
    if not isinstance(pair, Pair):
        raise PairNotFound(f"No pair for ({token_a}, {token_b}) at {address}")
    return pair


def get_reserves(env: Environment, registry: str, token_a: str, token_b: str) -> tuple[int, int]:
    """Reserves of a pair ordered as (reserve_a, reserve_b).

    Raises:
        PairNotFound: If the pair does not exist
    """
    token0, _ = sort_tokens(token_a, token_b)
    reserve0, reserve1, _ = pair_at(env, registry, token_a, token_b).get_reserves()
    if normalize_address(token_a) == token0:
        return reserve0, reserve1
    return reserve1, reserve0


def normalize_path(path: list[str]) -> list[str]:
    """Validate a swap path and normalize its addresses.

    Raises:
        InvalidPath: If the path has fewer than 2 tokens
    """
    if len(path) < 2:
        raise InvalidPath(f"Path needs at least 2 tokens, got {len(path)}")
    return [normalize_address(token, validate=True) for token in path]


def get_amounts_out(env: Environment, registry: str, amount_in: int, path: list[str]) -> list[int]:
    """Chain get_amount_out along a path.

    Returns:
        Amounts at every step, starting with amount_in

    Raises:
        InvalidPath: If the path has fewer than 2 tokens
        PairNotFound: If a hop has no pair
        InsufficientLiquidity: If a hop's pair is empty
    """
    tokens = normalize_path(path)
    amounts = [amount_in]
    for token_in, token_out in zip(tokens, tokens[1:]):
        reserve_in, reserve_out = get_reserves(env, registry, token_in, token_out)
        amounts.append(get_amount_out(amounts[-1], reserve_in, reserve_out))
    return amounts


def get_amounts_in(env: Environment, registry: str, amount_out: int, path: list[str]) -> list[int]:
    """Chain get_amount_in backwards along a path.

    Returns:
        Amounts at every step, ending with amount_out

    Raises:
        InvalidPath: If the path has fewer than 2 tokens
        PairNotFound: If a hop has no pair
        InsufficientLiquidity: If a hop's pair is empty or too shallow
    """
    tokens = normalize_path(path)
    amounts = [amount_out]
    for token_in, token_out in zip(reversed(tokens[:-1]), reversed(tokens[1:])):
        reserve_in, reserve_out = get_reserves(env, registry, token_in, token_out)
        amounts.insert(0, get_amount_in(amounts[0], reserve_in, reserve_out))
    return amounts
