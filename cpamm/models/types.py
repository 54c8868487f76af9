"""Shared type definitions for addresses and token amounts.

These types are used across the event models and the contract layer.
"""

import re
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from cpamm.errors import InvalidAmount

# Maximum uint256 value
UINT256_MAX = 2**256 - 1

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")


def validate_uint256(value: Any) -> int:
    """Validate that a value is a valid uint256 integer.

    Args:
        value: Value to validate (int or decimal string)

    Returns:
        The value as an int

    Raises:
        ValueError: If value is not a non-negative integer within uint256 range
    """
    if isinstance(value, bool):
        raise ValueError("Uint256 cannot be a bool")

    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError as err:
            raise ValueError(f"Uint256 must be a decimal integer string: '{value}'") from err

    if not isinstance(value, int):
        raise ValueError(f"Uint256 must be int or string, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"Uint256 cannot be negative: {value}")
    if value > UINT256_MAX:
        raise ValueError(f"Uint256 overflow: {value} > 2^256-1")

    return value


# Ethereum-style address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# 256-bit unsigned integer (validated)
Uint256 = Annotated[
    int,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer"),
]


def ensure_uint(value: Any, name: str) -> int:
    """Check that a caller-supplied amount is a uint256.

    Args:
        value: The amount to check
        name: Parameter name for the error message

    Returns:
        The amount as an int

    Raises:
        InvalidAmount: If the amount is not a non-negative integer in range
    """
    if isinstance(value, str):
        raise InvalidAmount(f"{name} must be an int, got str")
    try:
        return validate_uint256(value)
    except ValueError as err:
        raise InvalidAmount(f"Invalid {name}: {err}") from err


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an address to lowercase.

    Args:
        address: An address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.
                  If False (default), returns normalized form without validation.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid address

    Note:
        Lowercase fixed-width hex sorts lexicographically in the same order as
        the underlying 160-bit integer, so normalized addresses can be
        compared directly to canonicalize token pairs.
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid address.

    Args:
        address: String to validate

    Returns:
        True if valid address format
    """
    if not isinstance(address, str):
        return False
    return _ADDRESS_RE.fullmatch(address) is not None


def address_to_bytes(address: str) -> bytes:
    """Convert a 0x-prefixed address to its 20 raw bytes."""
    return bytes.fromhex(normalize_address(address, validate=True)[2:])
