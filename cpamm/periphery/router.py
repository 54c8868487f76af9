"""Router: multi-step user operations over pair ledgers.

The router resolves pairs by computing their deterministic address, moves
the caller's assets into the pair and then calls the pair's
``mint``/``burn``/``swap``. It never writes reserves itself. Each public
operation checks its deadline once on entry and runs as one transaction, so
a failure in any hop unwinds every pair the call touched.

Supports:
- Adding and removing liquidity (tokens or native value)
- Exact-input and exact-output swaps along multi-hop paths
- Native value in and out through the wrapper at either end of a path
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import structlog

from cpamm.chain.contract import Contract
from cpamm.chain.environment import transactional
from cpamm.core.addressing import sort_tokens
from cpamm.errors import (
    ExcessiveInputAmount,
    Expired,
    InsufficientAAmount,
    InsufficientBAmount,
    InsufficientOutputAmount,
    InvalidPath,
)
from cpamm.models.types import ensure_uint, normalize_address
from cpamm.periphery import library

if TYPE_CHECKING:
    from cpamm.chain.environment import Environment
    from cpamm.core.factory import PairRegistry
    from cpamm.core.pair import Pair
    from cpamm.tokens.weth import WrappedNative

logger = structlog.get_logger()


class LiquidityAdded(NamedTuple):
    """Amounts actually deposited and shares issued."""

    amount_a: int
    amount_b: int
    liquidity: int


class LiquidityRemoved(NamedTuple):
    """Amounts paid out, in the caller's (token_a, token_b) order."""

    amount_a: int
    amount_b: int


class Router(Contract):
    """Orchestrates liquidity and swap operations against pair ledgers.

    Args:
        env: Environment the router lives in
        deployer: Account deploying the router
        registry: Address of the pair registry
        wrapped_native: Address of the native-asset wrapper
    """

    def __init__(
        self,
        env: Environment,
        deployer: str,
        registry: str,
        wrapped_native: str,
    ) -> None:
        super().__init__(env, env.create_address(deployer))
        self.registry = normalize_address(registry, validate=True)
        self.wrapped_native = normalize_address(wrapped_native, validate=True)

    # --- Wiring ---

    def _registry(self) -> PairRegistry:
        return self.env.contract(self.registry)  # type: ignore[return-value]

    def _wrapper(self) -> WrappedNative:
        return self.env.contract(self.wrapped_native)  # type: ignore[return-value]

    def _pair(self, token_a: str, token_b: str) -> Pair:
        return library.pair_at(self.env, self.registry, token_a, token_b)

    def _pair_address(self, token_a: str, token_b: str) -> str:
        return library.pair_for(
            self.registry, token_a, token_b, self.env.config.init_code_hash_bytes
        )

    def _ensure(self, deadline: int) -> None:
        if deadline < self.env.timestamp:
            raise Expired(f"Deadline {deadline} is before block time {self.env.timestamp}")

    # --- Quotes (read-only) ---

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        return library.quote(amount_a, reserve_a, reserve_b)

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        return library.get_amount_out(amount_in, reserve_in, reserve_out)

    # Name used for the pure single-hop quote
    quote_out = get_amount_out

    def get_amount_in(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        return library.get_amount_in(amount_out, reserve_in, reserve_out)

    def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        """Quote an exact-input swap along path; element 0 is amount_in."""
        return library.get_amounts_out(self.env, self.registry, amount_in, path)

    def get_amounts_in(self, amount_out: int, path: list[str]) -> list[int]:
        """Quote an exact-output swap along path; the last element is amount_out."""
        return library.get_amounts_in(self.env, self.registry, amount_out, path)

    # --- Liquidity ---

    def _add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
    ) -> tuple[int, int]:
        """Create the pair if needed and size the deposit to the current ratio."""
        registry = self._registry()
        if registry.get_pair(token_a, token_b) is None:
            registry.create_pair(token_a, token_b)

        reserve_a, reserve_b = library.get_reserves(self.env, self.registry, token_a, token_b)
        if reserve_a == 0 and reserve_b == 0:
            return amount_a_desired, amount_b_desired

        amount_b_optimal = library.quote(amount_a_desired, reserve_a, reserve_b)
        if amount_b_optimal <= amount_b_desired:
            if amount_b_optimal < amount_b_min:
                raise InsufficientBAmount(
                    f"B amount {amount_b_optimal} below minimum {amount_b_min}"
                )
            return amount_a_desired, amount_b_optimal

        amount_a_optimal = library.quote(amount_b_desired, reserve_b, reserve_a)
        if amount_a_optimal > amount_a_desired:
            raise InsufficientAAmount(
                f"A amount {amount_a_optimal} exceeds desired {amount_a_desired}"
            )
        if amount_a_optimal < amount_a_min:
            raise InsufficientAAmount(f"A amount {amount_a_optimal} below minimum {amount_a_min}")
        return amount_a_optimal, amount_b_desired

    @transactional
    def add_liquidity(
        self,
        sender: str,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
    ) -> LiquidityAdded:
        """Deposit both tokens at the current ratio and mint shares to to.

        The router must be approved for both tokens by sender. The pair is
        created if it does not exist; an empty pair takes the desired amounts
        as-is.

        Raises:
            Expired: Past deadline
            InsufficientAAmount / InsufficientBAmount: Ratio-matched amount below its minimum
        """
        self._ensure(deadline)
        amount_a, amount_b = self._add_liquidity(
            token_a,
            token_b,
            ensure_uint(amount_a_desired, "amount_a_desired"),
            ensure_uint(amount_b_desired, "amount_b_desired"),
            ensure_uint(amount_a_min, "amount_a_min"),
            ensure_uint(amount_b_min, "amount_b_min"),
        )
        pair = self._pair(token_a, token_b)
        self.env.token(token_a).transfer_from(self.address, sender, pair.address, amount_a)
        self.env.token(token_b).transfer_from(self.address, sender, pair.address, amount_b)
        liquidity = pair.mint(self.address, to)

        logger.debug(
            "liquidity_added",
            pair=pair.address[-8:],
            amount_a=amount_a,
            amount_b=amount_b,
            liquidity=liquidity,
        )
        return LiquidityAdded(amount_a, amount_b, liquidity)

    @transactional
    def add_liquidity_native(
        self,
        sender: str,
        token: str,
        amount_token_desired: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        value: int,
    ) -> LiquidityAdded:
        """Deposit a token against native value; unused value is refunded.

        Returns:
            LiquidityAdded with amount_a = token amount, amount_b = native amount
        """
        self._ensure(deadline)
        value = ensure_uint(value, "value")
        self.env.transfer_native(sender, self.address, value)
        amount_token, amount_native = self._add_liquidity(
            token,
            self.wrapped_native,
            ensure_uint(amount_token_desired, "amount_token_desired"),
            value,
            ensure_uint(amount_token_min, "amount_token_min"),
            ensure_uint(amount_native_min, "amount_native_min"),
        )
        pair = self._pair(token, self.wrapped_native)
        self.env.token(token).transfer_from(self.address, sender, pair.address, amount_token)
        wrapper = self._wrapper()
        wrapper.deposit(self.address, amount_native)
        wrapper.transfer(self.address, pair.address, amount_native)
        liquidity = pair.mint(self.address, to)
        if value > amount_native:
            self.env.transfer_native(self.address, sender, value - amount_native)

        logger.debug(
            "liquidity_added",
            pair=pair.address[-8:],
            amount_a=amount_token,
            amount_b=amount_native,
            liquidity=liquidity,
        )
        return LiquidityAdded(amount_token, amount_native, liquidity)

    def _remove_liquidity(
        self,
        sender: str,
        token_a: str,
        token_b: str,
        liquidity: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
    ) -> LiquidityRemoved:
        pair = self._pair(token_a, token_b)
        pair.transfer_from(self.address, sender, pair.address, liquidity)
        amount0, amount1 = pair.burn(self.address, to)

        token0, _ = sort_tokens(token_a, token_b)
        if normalize_address(token_a) == token0:
            amount_a, amount_b = amount0, amount1
        else:
            amount_a, amount_b = amount1, amount0
        if amount_a < amount_a_min:
            raise InsufficientAAmount(f"A amount {amount_a} below minimum {amount_a_min}")
        if amount_b < amount_b_min:
            raise InsufficientBAmount(f"B amount {amount_b} below minimum {amount_b_min}")

        logger.debug(
            "liquidity_removed",
            pair=pair.address[-8:],
            amount_a=amount_a,
            amount_b=amount_b,
            liquidity=liquidity,
        )
        return LiquidityRemoved(amount_a, amount_b)

    @transactional
    def remove_liquidity(
        self,
        sender: str,
        token_a: str,
        token_b: str,
        liquidity: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
    ) -> LiquidityRemoved:
        """Burn liquidity shares of sender and pay both tokens to to.

        The router must be approved for the pair's shares by sender.

        Raises:
            Expired: Past deadline
            PairNotFound: The pair does not exist
            InsufficientAAmount / InsufficientBAmount: Payout below its minimum
        """
        self._ensure(deadline)
        return self._remove_liquidity(
            sender,
            token_a,
            token_b,
            ensure_uint(liquidity, "liquidity"),
            ensure_uint(amount_a_min, "amount_a_min"),
            ensure_uint(amount_b_min, "amount_b_min"),
            to,
        )

    @transactional
    def remove_liquidity_native(
        self,
        sender: str,
        token: str,
        liquidity: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
    ) -> LiquidityRemoved:
        """Burn shares of a token/native pair, paying the native side unwrapped.

        Returns:
            LiquidityRemoved with amount_a = token amount, amount_b = native amount
        """
        self._ensure(deadline)
        amount_token, amount_native = self._remove_liquidity(
            sender,
            token,
            self.wrapped_native,
            ensure_uint(liquidity, "liquidity"),
            ensure_uint(amount_token_min, "amount_token_min"),
            ensure_uint(amount_native_min, "amount_native_min"),
            self.address,
        )
        self.env.token(token).transfer(self.address, to, amount_token)
        self._wrapper().withdraw(self.address, amount_native)
        self.env.transfer_native(self.address, to, amount_native)
        return LiquidityRemoved(amount_token, amount_native)

    # --- Swaps ---

    def _swap(self, amounts: list[int], path: list[str], to: str) -> None:
        """Execute precomputed hops; input for the first hop must already be in its pair."""
        for i, (token_in, token_out) in enumerate(zip(path, path[1:])):
            token0, _ = sort_tokens(token_in, token_out)
            amount_out = amounts[i + 1]
            if token_in == token0:
                amount0_out, amount1_out = 0, amount_out
            else:
                amount0_out, amount1_out = amount_out, 0
            # Each hop pays straight into the next hop's pair
            recipient = self._pair_address(token_out, path[i + 2]) if i < len(path) - 2 else to
            self._pair(token_in, token_out).swap(self.address, amount0_out, amount1_out, recipient)

        logger.debug(
            "swap_executed",
            hops=len(path) - 1,
            amount_in=amounts[0],
            amount_out=amounts[-1],
        )

    @transactional
    def swap_exact_tokens_for_tokens(
        self,
        sender: str,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
    ) -> list[int]:
        """Sell exactly amount_in of path[0] for as much of path[-1] as possible.

        Returns:
            Amounts at every hop, starting with amount_in

        Raises:
            Expired: Past deadline
            InsufficientOutputAmount: Final amount below amount_out_min
        """
        self._ensure(deadline)
        amount_out_min = ensure_uint(amount_out_min, "amount_out_min")
        path = library.normalize_path(path)
        amounts = self.get_amounts_out(ensure_uint(amount_in, "amount_in"), path)
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmount(f"Output {amounts[-1]} below minimum {amount_out_min}")
        self.env.token(path[0]).transfer_from(
            self.address, sender, self._pair_address(path[0], path[1]), amounts[0]
        )
        self._swap(amounts, path, to)
        return amounts

    @transactional
    def swap_tokens_for_exact_tokens(
        self,
        sender: str,
        amount_out: int,
        amount_in_max: int,
        path: list[str],
        to: str,
        deadline: int,
    ) -> list[int]:
        """Buy exactly amount_out of path[-1], paying at most amount_in_max of path[0].

        Raises:
            Expired: Past deadline
            ExcessiveInputAmount: Required input above amount_in_max
        """
        self._ensure(deadline)
        amount_in_max = ensure_uint(amount_in_max, "amount_in_max")
        path = library.normalize_path(path)
        amounts = self.get_amounts_in(ensure_uint(amount_out, "amount_out"), path)
        if amounts[0] > amount_in_max:
            raise ExcessiveInputAmount(f"Input {amounts[0]} above maximum {amount_in_max}")
        self.env.token(path[0]).transfer_from(
            self.address, sender, self._pair_address(path[0], path[1]), amounts[0]
        )
        self._swap(amounts, path, to)
        return amounts

    def _require_native_start(self, path: list[str]) -> None:
        if path[0] != self.wrapped_native:
            raise InvalidPath(f"Path must start with the native wrapper, got {path[0]}")

    def _require_native_end(self, path: list[str]) -> None:
        if path[-1] != self.wrapped_native:
            raise InvalidPath(f"Path must end with the native wrapper, got {path[-1]}")

    def _pay_in_native(self, amount: int, path: list[str]) -> None:
        """Wrap native value held by the router into the first hop's pair."""
        wrapper = self._wrapper()
        wrapper.deposit(self.address, amount)
        wrapper.transfer(self.address, self._pair_address(path[0], path[1]), amount)

    def _pay_out_native(self, amount: int, to: str) -> None:
        self._wrapper().withdraw(self.address, amount)
        self.env.transfer_native(self.address, to, amount)

    @transactional
    def swap_exact_native_for_tokens(
        self,
        sender: str,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        value: int,
    ) -> list[int]:
        """Sell exactly value of native for as much of path[-1] as possible."""
        self._ensure(deadline)
        amount_out_min = ensure_uint(amount_out_min, "amount_out_min")
        value = ensure_uint(value, "value")
        path = library.normalize_path(path)
        self._require_native_start(path)
        amounts = self.get_amounts_out(value, path)
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmount(f"Output {amounts[-1]} below minimum {amount_out_min}")
        self.env.transfer_native(sender, self.address, value)
        self._pay_in_native(amounts[0], path)
        self._swap(amounts, path, to)
        return amounts

    @transactional
    def swap_tokens_for_exact_native(
        self,
        sender: str,
        amount_out: int,
        amount_in_max: int,
        path: list[str],
        to: str,
        deadline: int,
    ) -> list[int]:
        """Buy exactly amount_out of native, paying at most amount_in_max of path[0]."""
        self._ensure(deadline)
        amount_in_max = ensure_uint(amount_in_max, "amount_in_max")
        path = library.normalize_path(path)
        self._require_native_end(path)
        amounts = self.get_amounts_in(ensure_uint(amount_out, "amount_out"), path)
        if amounts[0] > amount_in_max:
            raise ExcessiveInputAmount(f"Input {amounts[0]} above maximum {amount_in_max}")
        self.env.token(path[0]).transfer_from(
            self.address, sender, self._pair_address(path[0], path[1]), amounts[0]
        )
        self._swap(amounts, path, self.address)
        self._pay_out_native(amounts[-1], to)
        return amounts

    @transactional
    def swap_exact_tokens_for_native(
        self,
        sender: str,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
    ) -> list[int]:
        """Sell exactly amount_in of path[0] for as much native value as possible."""
        self._ensure(deadline)
        amount_out_min = ensure_uint(amount_out_min, "amount_out_min")
        path = library.normalize_path(path)
        self._require_native_end(path)
        amounts = self.get_amounts_out(ensure_uint(amount_in, "amount_in"), path)
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmount(f"Output {amounts[-1]} below minimum {amount_out_min}")
        self.env.token(path[0]).transfer_from(
            self.address, sender, self._pair_address(path[0], path[1]), amounts[0]
        )
        self._swap(amounts, path, self.address)
        self._pay_out_native(amounts[-1], to)
        return amounts

    @transactional
    def swap_native_for_exact_tokens(
        self,
        sender: str,
        amount_out: int,
        path: list[str],
        to: str,
        deadline: int,
        value: int,
    ) -> list[int]:
        """Buy exactly amount_out of path[-1] with native value; the rest is refunded."""
        self._ensure(deadline)
        value = ensure_uint(value, "value")
        path = library.normalize_path(path)
        self._require_native_start(path)
        amounts = self.get_amounts_in(ensure_uint(amount_out, "amount_out"), path)
        if amounts[0] > value:
            raise ExcessiveInputAmount(f"Input {amounts[0]} above sent value {value}")
        self.env.transfer_native(sender, self.address, value)
        self._pay_in_native(amounts[0], path)
        self._swap(amounts, path, to)
        if value > amounts[0]:
            self.env.transfer_native(self.address, sender, value - amounts[0])
        return amounts
