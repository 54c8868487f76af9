"""Deterministic pair addressing.

A pair's address depends only on the registry address, the canonical token
pair and the init code hash:

    salt = keccak256(token0 ++ token1)
    pair = keccak256(0xff ++ registry ++ salt ++ init_code_hash)[12:]

so the router can find a pair without asking the registry.
"""

from __future__ import annotations

from eth_abi.packed import encode_packed
from eth_utils import keccak

from cpamm.constants import ZERO_ADDRESS
from cpamm.errors import IdenticalAssets, ZeroAddress
from cpamm.models.types import address_to_bytes, normalize_address

CREATE2_PREFIX = b"\xff"


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Canonicalize a token pair to (lower, higher).

    Raises:
        IdenticalAssets: If both tokens are the same
        ZeroAddress: If the lower token is the zero address
    """
    token_a_norm = normalize_address(token_a, validate=True)
    token_b_norm = normalize_address(token_b, validate=True)
    if token_a_norm == token_b_norm:
        raise IdenticalAssets(f"Identical assets: {token_a_norm}")
    if token_a_norm < token_b_norm:
        token0, token1 = token_a_norm, token_b_norm
    else:
        token0, token1 = token_b_norm, token_a_norm
    if token0 == ZERO_ADDRESS:
        raise ZeroAddress("Zero address cannot be a pair asset")
    return token0, token1


def pair_salt(token_a: str, token_b: str) -> bytes:
    """Salt for a pair: keccak256 of the packed canonical token addresses."""
    token0, token1 = sort_tokens(token_a, token_b)
    return keccak(
        encode_packed(["address", "address"], [address_to_bytes(token0), address_to_bytes(token1)])
    )


def compute_pair_address(
    registry: str,
    token_a: str,
    token_b: str,
    init_code_hash: bytes,
) -> str:
    """Compute the address a pair has (or will have) without any state lookup.

    Args:
        registry: Address of the pair registry
        token_a: One token of the pair (any order)
        token_b: The other token
        init_code_hash: 32-byte hash shared by registry and router

    Returns:
        Lowercase 0x-prefixed pair address
    """
    if len(init_code_hash) != 32:
        raise ValueError(f"init_code_hash must be 32 bytes, got {len(init_code_hash)}")
    digest = keccak(
        CREATE2_PREFIX + address_to_bytes(registry) + pair_salt(token_a, token_b) + init_code_hash
    )
    return "0x" + digest[12:].hex()
