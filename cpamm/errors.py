"""AMM error classes.

Every failure aborts the enclosing operation and unwinds all state it touched.
The class names map to the revert reasons of the on-chain protocol
(e.g. ``InvariantViolation`` is the ``K`` check).
"""


class AMMError(Exception):
    """Base error for AMM operations."""

    pass


# --- Input validation ---


class InputError(AMMError):
    """Caller supplied arguments that can never succeed."""

    pass


class IdenticalAssets(InputError):
    """Both sides of a pair are the same asset."""

    pass


class ZeroAddress(InputError):
    """The zero address cannot be used as an asset."""

    pass


class PairExists(InputError):
    """A ledger already exists for this canonical pair."""

    pass


class PairNotFound(InputError):
    """No ledger exists for this pair."""

    pass


class Expired(InputError):
    """The operation deadline has passed."""

    pass


class InvalidPath(InputError):
    """Swap path is too short or does not start/end with the required asset."""

    pass


class InvalidTo(InputError):
    """Swap output cannot be sent to one of the pair's own tokens."""

    pass


class InvalidCallee(InputError):
    """Flash-swap recipient does not implement swap_callback."""

    pass


class Forbidden(InputError):
    """Caller is not authorized for this operation."""

    pass


class InvalidAmount(InputError, ValueError):
    """Amount is not a non-negative integer within uint256 range."""

    pass


class UnknownContract(InputError):
    """No contract is registered at the given address."""

    pass


class AddressInUse(InputError):
    """A contract is already registered at the given address."""

    pass


# --- Economic guards ---


class GuardError(AMMError):
    """An economic guard (slippage or minimum amount) rejected the operation."""

    pass


class InsufficientOutputAmount(GuardError):
    """Output is zero or below the caller's minimum."""

    pass


class InsufficientInputAmount(GuardError):
    """Input is zero or no input reached the ledger."""

    pass


class InsufficientAAmount(GuardError):
    """Amount of token A is below the caller's minimum."""

    pass


class InsufficientBAmount(GuardError):
    """Amount of token B is below the caller's minimum."""

    pass


class InsufficientAmount(GuardError):
    """Quote requested for a zero amount."""

    pass


class ExcessiveInputAmount(GuardError):
    """Required input exceeds the caller's maximum."""

    pass


class InsufficientLiquidityMinted(GuardError):
    """Deposit would mint zero shares."""

    pass


class InsufficientLiquidityBurned(GuardError):
    """Burn would pay out zero of one asset."""

    pass


class InsufficientInitialLiquidity(GuardError):
    """First deposit does not exceed the locked minimum liquidity."""

    pass


# --- Invariants ---


class InvariantError(AMMError):
    """A pool invariant would be broken."""

    pass


class InvariantViolation(InvariantError):
    """Fee-adjusted product of reserves would decrease (the K check)."""

    pass


class InsufficientLiquidity(InvariantError):
    """Reserves are empty or too small for the requested output."""

    pass


class ReserveOverflow(InvariantError):
    """Balance does not fit in a uint112 reserve."""

    pass


# --- Reentrancy ---


class Locked(AMMError):
    """Ledger is already executing a call."""

    pass


# --- Fungible asset collaborator ---


class TokenError(AMMError):
    """Error raised by a fungible asset."""

    pass


class InsufficientBalance(TokenError):
    """Holder balance is below the transfer amount."""

    pass


class InsufficientAllowance(TokenError):
    """Spender allowance is below the transfer amount."""

    pass
