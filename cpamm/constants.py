"""Protocol constants for the constant-product AMM.

Centralizes fee parameters, integer bounds and well-known addresses.
"""

from eth_utils import keccak

from cpamm.models.types import is_valid_address

# Swap fee: 0.3% of the input, expressed as 997/1000 kept
FEE_NUMERATOR = 997
FEE_DENOMINATOR = 1000
# Fee weight used in the invariant check: balance * 1000 - amount_in * 3
FEE_INPUT_WEIGHT = FEE_DENOMINATOR - FEE_NUMERATOR

# Shares permanently locked on the first mint of every pair
MINIMUM_LIQUIDITY = 1000

# Protocol fee takes 1/(PROTOCOL_FEE_DENOMINATOR + 1) of the growth in sqrt(k)
PROTOCOL_FEE_DENOMINATOR = 5

# Integer bounds
UINT256_MAX = 2**256 - 1

# Fixed-point resolution of the price accumulators (UQ112x112)
Q112 = 2**112

# Allowance value treated as unlimited (never decremented)
INFINITE_ALLOWANCE = UINT256_MAX


def _validate_address(name: str, address: str) -> str:
    """Validate and return a well-known address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


ZERO_ADDRESS = _validate_address("zero", "0x0000000000000000000000000000000000000000")

# Hash standing in for keccak256(pair creation code) in CREATE2 derivation.
# Registry and router must agree on it, so both read it from AMMConfig.
PAIR_INIT_CODE_HASH = "0x" + keccak(text="cpamm.core.pair.Pair:v1").hex()

# Default LP share token metadata
LP_TOKEN_NAME = "CPAMM Liquidity"
LP_TOKEN_SYMBOL = "CPAMM-LP"
LP_TOKEN_DECIMALS = 18
