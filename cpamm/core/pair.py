"""Pair ledger: reserves of two assets under the constant-product invariant.

The pair holds two fungible assets and is itself the fungible LP share
token. Deposits and share redemptions follow a push-then-call pattern:
callers transfer assets (or shares) to the pair first, then call
``mint``/``burn``/``swap``, which measure what arrived as
``balance - reserve``.

The swap invariant, with a 0.3% fee taken from whichever side received
input:

    (balance0 * 1000 - amount0_in * 3) * (balance1 * 1000 - amount1_in * 3)
        >= reserve0 * reserve1 * 1000**2
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import structlog

from cpamm.chain.environment import transactional
from cpamm.constants import (
    FEE_DENOMINATOR,
    FEE_INPUT_WEIGHT,
    LP_TOKEN_DECIMALS,
    LP_TOKEN_NAME,
    LP_TOKEN_SYMBOL,
    PROTOCOL_FEE_DENOMINATOR,
    Q112,
    ZERO_ADDRESS,
)
from cpamm.errors import (
    Forbidden,
    InsufficientInitialLiquidity,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InvalidCallee,
    InvalidTo,
    InvariantViolation,
    Locked,
    ReserveOverflow,
)
from cpamm.models.events import Burn, Mint, Swap, Sync
from cpamm.models.types import ensure_uint, normalize_address
from cpamm.safe_int import S, UintOverflow
from cpamm.tokens.erc20 import FungibleToken

if TYPE_CHECKING:
    from cpamm.chain.environment import Environment
    from cpamm.core.factory import PairRegistry

logger = structlog.get_logger()

# Block timestamps are stored modulo 2**32
TIMESTAMP_MODULUS = 2**32


@runtime_checkable
class SwapCallee(Protocol):
    """Recipient of a flash swap.

    Called after the optimistic output transfer and before the invariant
    check, so the callee can use the output and repay within the same call.
    """

    def swap_callback(self, sender: str, amount0_out: int, amount1_out: int, data: bytes) -> None:
        ...


class Pair(FungibleToken):
    """Reserve ledger for one canonical token pair.

    Args:
        env: Environment the pair lives in
        registry: Address of the registry that created the pair
        address: Deterministic pair address computed by the registry
    """

    def __init__(self, env: Environment, registry: str, *, address: str) -> None:
        super().__init__(
            env,
            registry,
            LP_TOKEN_NAME,
            LP_TOKEN_SYMBOL,
            LP_TOKEN_DECIMALS,
            address=address,
        )
        self.registry = normalize_address(registry, validate=True)
        self.token0 = ZERO_ADDRESS
        self.token1 = ZERO_ADDRESS
        self.reserve0 = 0
        self.reserve1 = 0
        self.block_timestamp_last = 0
        self.price0_cumulative_last = 0
        self.price1_cumulative_last = 0
        # reserve0 * reserve1 as of the last liquidity event (protocol fee only)
        self.k_last = 0
        self._unlocked = True

    # --- Guard ---

    @contextlib.contextmanager
    def _lock(self) -> Iterator[None]:
        """Single in-flight call per pair; released on every exit path."""
        if not self._unlocked:
            raise Locked(f"Pair {self.address} is locked")
        self._unlocked = False
        try:
            yield
        finally:
            self._unlocked = True

    @property
    def locked(self) -> bool:
        return not self._unlocked

    # --- Views ---

    def get_reserves(self) -> tuple[int, int, int]:
        """Return (reserve0, reserve1, block_timestamp_last)."""
        return self.reserve0, self.reserve1, self.block_timestamp_last

    def _balances(self) -> tuple[int, int]:
        return (
            self.env.token(self.token0).balance_of(self.address),
            self.env.token(self.token1).balance_of(self.address),
        )

    def _registry(self) -> PairRegistry:
        return self.env.contract(self.registry)  # type: ignore[return-value]

    # --- Setup ---

    @transactional
    def initialize(self, sender: str, token0: str, token1: str) -> None:
        """Bind the pair to its tokens. Only the registry may call this once."""
        if normalize_address(sender) != self.registry:
            raise Forbidden(f"Only the registry can initialize pair {self.address}")
        if self.token0 != ZERO_ADDRESS:
            raise Forbidden(f"Pair {self.address} is already initialized")
        self.token0 = normalize_address(token0, validate=True)
        self.token1 = normalize_address(token1, validate=True)

    # --- Internal accounting ---

    def _safe_transfer(self, token: str, to: str, amount: int) -> None:
        self.env.token(token).transfer(self.address, to, amount)

    def _update(self, balance0: int, balance1: int, reserve0: int, reserve1: int) -> None:
        """Write balances into reserves and accumulate prices for the elapsed time."""
        try:
            balance0 = S(balance0).to_uint(112)
            balance1 = S(balance1).to_uint(112)
        except UintOverflow as err:
            raise ReserveOverflow(f"Balances ({balance0}, {balance1}) exceed uint112") from err

        block_timestamp = self.env.timestamp % TIMESTAMP_MODULUS
        time_elapsed = (block_timestamp - self.block_timestamp_last) % TIMESTAMP_MODULUS
        if time_elapsed > 0 and reserve0 != 0 and reserve1 != 0:
            # UQ112x112 prices; overflow of the accumulators is intended
            price0 = S(reserve1) * Q112 // reserve0
            price1 = S(reserve0) * Q112 // reserve1
            self.price0_cumulative_last = (
                S(self.price0_cumulative_last).wrapping_add(price0 * time_elapsed).value
            )
            self.price1_cumulative_last = (
                S(self.price1_cumulative_last).wrapping_add(price1 * time_elapsed).value
            )

        self.reserve0 = balance0
        self.reserve1 = balance1
        self.block_timestamp_last = block_timestamp
        self.env.emit(Sync(contract=self.address, reserve0=balance0, reserve1=balance1))

    def _mint_fee(self, reserve0: int, reserve1: int) -> bool:
        """Mint the protocol's share of fee growth to fee_to, if enabled.

        The protocol receives 1/6 of the growth in sqrt(k) since the last
        liquidity event.

        Returns:
            True if the protocol fee is switched on
        """
        fee_to = self._registry().fee_to
        fee_on = fee_to != ZERO_ADDRESS
        if fee_on:
            if self.k_last != 0:
                root_k = (S(reserve0) * reserve1).sqrt()
                root_k_last = S(self.k_last).sqrt()
                if root_k > root_k_last:
                    numerator = S(self.total_supply) * (root_k - root_k_last)
                    denominator = root_k * PROTOCOL_FEE_DENOMINATOR + root_k_last
                    liquidity = (numerator // denominator).value
                    if liquidity > 0:
                        self._mint(fee_to, liquidity)
                        logger.debug(
                            "protocol_fee_minted",
                            pair=self.address[-8:],
                            fee_to=fee_to[-8:],
                            liquidity=liquidity,
                        )
        elif self.k_last != 0:
            self.k_last = 0
        return fee_on

    # --- Liquidity ---

    @transactional
    def mint(self, sender: str, to: str) -> int:
        """Issue shares for the assets deposited since the last update.

        Args:
            sender: Caller (recorded in the Mint event)
            to: Recipient of the new shares

        Returns:
            Number of shares issued

        Raises:
            InsufficientInitialLiquidity: First deposit does not exceed the locked minimum
            InsufficientLiquidityMinted: Deposit is worth zero shares
        """
        with self._lock():
            sender_norm = normalize_address(sender, validate=True)
            to_norm = normalize_address(to, validate=True)
            reserve0, reserve1, _ = self.get_reserves()
            balance0, balance1 = self._balances()
            amount0 = (S(balance0) - reserve0).value
            amount1 = (S(balance1) - reserve1).value

            fee_on = self._mint_fee(reserve0, reserve1)
            # Read after _mint_fee, which can change the supply
            total_supply = self.total_supply
            minimum_liquidity = self.env.config.minimum_liquidity
            if total_supply == 0:
                root = (S(amount0) * amount1).sqrt()
                if root <= minimum_liquidity:
                    raise InsufficientInitialLiquidity(
                        f"sqrt({amount0} * {amount1}) = {root.value} <= {minimum_liquidity}"
                    )
                liquidity = (root - minimum_liquidity).value
                if minimum_liquidity > 0:
                    self._mint(self.env.config.liquidity_lock_address, minimum_liquidity)
            else:
                share0 = S(amount0) * total_supply // reserve0
                share1 = S(amount1) * total_supply // reserve1
                liquidity = share0.min(share1).value

            if liquidity <= 0:
                raise InsufficientLiquidityMinted(
                    f"Deposit ({amount0}, {amount1}) mints no shares"
                )
            self._mint(to_norm, liquidity)

            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self.k_last = (S(self.reserve0) * self.reserve1).value

            self.env.emit(
                Mint(contract=self.address, sender=sender_norm, amount0=amount0, amount1=amount1)
            )
            logger.debug(
                "liquidity_minted",
                pair=self.address[-8:],
                amount0=amount0,
                amount1=amount1,
                liquidity=liquidity,
            )
            return liquidity

    @transactional
    def burn(self, sender: str, to: str) -> tuple[int, int]:
        """Redeem the shares held by the pair itself for a pro-rata slice of both assets.

        Args:
            sender: Caller (recorded in the Burn event)
            to: Recipient of the assets

        Returns:
            (amount0, amount1) paid out

        Raises:
            InsufficientLiquidityBurned: Either payout would be zero
        """
        with self._lock():
            sender_norm = normalize_address(sender, validate=True)
            to_norm = normalize_address(to, validate=True)
            reserve0, reserve1, _ = self.get_reserves()
            balance0, balance1 = self._balances()
            liquidity = self.balance_of(self.address)

            fee_on = self._mint_fee(reserve0, reserve1)
            total_supply = self.total_supply
            if total_supply == 0:
                raise InsufficientLiquidityBurned(f"Pair {self.address} has no shares outstanding")
            # Balances rather than reserves, so donated assets go pro-rata to holders
            amount0 = (S(liquidity) * balance0 // total_supply).value
            amount1 = (S(liquidity) * balance1 // total_supply).value
            if amount0 == 0 or amount1 == 0:
                raise InsufficientLiquidityBurned(
                    f"Burning {liquidity} shares pays out ({amount0}, {amount1})"
                )

            self._burn(self.address, liquidity)
            self._safe_transfer(self.token0, to_norm, amount0)
            self._safe_transfer(self.token1, to_norm, amount1)
            balance0, balance1 = self._balances()

            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self.k_last = (S(self.reserve0) * self.reserve1).value

            self.env.emit(
                Burn(
                    contract=self.address,
                    sender=sender_norm,
                    amount0=amount0,
                    amount1=amount1,
                    to=to_norm,
                )
            )
            logger.debug(
                "liquidity_burned",
                pair=self.address[-8:],
                amount0=amount0,
                amount1=amount1,
                liquidity=liquidity,
            )
            return amount0, amount1

    # --- Trading ---

    @transactional
    def swap(
        self,
        sender: str,
        amount0_out: int,
        amount1_out: int,
        to: str,
        data: bytes = b"",
    ) -> None:
        """Send out the requested amounts, then require the invariant to hold.

        Input must already be in the pair, or be paid by ``to`` inside
        ``swap_callback`` when ``data`` is non-empty (flash swap).

        Raises:
            InsufficientOutputAmount: Both outputs are zero
            InsufficientLiquidity: An output is not below its reserve
            InvalidTo: to is one of the pair's tokens
            InvalidCallee: data is given but to cannot receive the callback
            InsufficientInputAmount: No input reached the pair
            InvariantViolation: The fee-adjusted product would decrease
        """
        amount0_out = ensure_uint(amount0_out, "amount0_out")
        amount1_out = ensure_uint(amount1_out, "amount1_out")
        with self._lock():
            if amount0_out == 0 and amount1_out == 0:
                raise InsufficientOutputAmount("Swap must request some output")
            reserve0, reserve1, _ = self.get_reserves()
            if amount0_out >= reserve0 or amount1_out >= reserve1:
                raise InsufficientLiquidity(
                    f"Output ({amount0_out}, {amount1_out}) "
                    f"exceeds reserves ({reserve0}, {reserve1})"
                )

            sender_norm = normalize_address(sender, validate=True)
            to_norm = normalize_address(to, validate=True)
            if to_norm in (self.token0, self.token1):
                raise InvalidTo(f"Swap output cannot be sent to token {to_norm}")

            # Optimistic transfer; unwound by the enclosing transaction on failure
            if amount0_out > 0:
                self._safe_transfer(self.token0, to_norm, amount0_out)
            if amount1_out > 0:
                self._safe_transfer(self.token1, to_norm, amount1_out)
            if data:
                callee = self.env.find(to_norm)
                if not isinstance(callee, SwapCallee):
                    raise InvalidCallee(f"{to_norm} cannot receive a flash swap callback")
                callee.swap_callback(sender_norm, amount0_out, amount1_out, data)
            balance0, balance1 = self._balances()

            remaining0 = reserve0 - amount0_out
            remaining1 = reserve1 - amount1_out
            amount0_in = balance0 - remaining0 if balance0 > remaining0 else 0
            amount1_in = balance1 - remaining1 if balance1 > remaining1 else 0
            if amount0_in == 0 and amount1_in == 0:
                raise InsufficientInputAmount("No input reached the pair")

            balance0_adjusted = S(balance0) * FEE_DENOMINATOR - S(amount0_in) * FEE_INPUT_WEIGHT
            balance1_adjusted = S(balance1) * FEE_DENOMINATOR - S(amount1_in) * FEE_INPUT_WEIGHT
            k_before = S(reserve0) * reserve1 * FEE_DENOMINATOR**2
            if balance0_adjusted * balance1_adjusted < k_before:
                raise InvariantViolation(
                    f"K: ({balance0}, {balance1}) with inputs ({amount0_in}, {amount1_in}) "
                    f"does not preserve ({reserve0}, {reserve1})"
                )

            self._update(balance0, balance1, reserve0, reserve1)
            self.env.emit(
                Swap(
                    contract=self.address,
                    sender=sender_norm,
                    amount0_in=amount0_in,
                    amount1_in=amount1_in,
                    amount0_out=amount0_out,
                    amount1_out=amount1_out,
                    to=to_norm,
                )
            )
            logger.debug(
                "pair_swap",
                pair=self.address[-8:],
                amount0_in=amount0_in,
                amount1_in=amount1_in,
                amount0_out=amount0_out,
                amount1_out=amount1_out,
            )

    # --- Reconciliation ---

    @transactional
    def skim(self, to: str) -> None:
        """Send balances in excess of reserves to to."""
        with self._lock():
            to_norm = normalize_address(to, validate=True)
            balance0, balance1 = self._balances()
            excess0 = (S(balance0) - self.reserve0).value
            excess1 = (S(balance1) - self.reserve1).value
            if excess0 > 0:
                self._safe_transfer(self.token0, to_norm, excess0)
            if excess1 > 0:
                self._safe_transfer(self.token1, to_norm, excess1)

    @transactional
    def sync(self) -> None:
        """Force reserves to match balances."""
        with self._lock():
            balance0, balance1 = self._balances()
            self._update(balance0, balance1, self.reserve0, self.reserve1)
