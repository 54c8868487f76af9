"""Shared account constants for tests.

All addresses are lowercase for consistency with normalize_address().

Usage:
    from tests.helpers import ALICE, E18
    # or
    from tests.helpers.constants import ALICE, E18
"""

# =============================================================================
# Externally owned accounts
# =============================================================================

DEPLOYER = "0x" + "d0" * 20  # Deploys registry, wrapper, router and tokens
ALICE = "0x" + "a1" * 20  # Liquidity provider / trader
BOB = "0x" + "b0" * 20  # Second trader
FEE_RECIPIENT = "0x" + "fe" * 20  # Protocol fee destination

# =============================================================================
# Amounts and time
# =============================================================================

E18 = 10**18

# Fixed genesis time so pair timestamps are reproducible
GENESIS_TIMESTAMP = 1_700_000_000

# Default supply minted to the deployer for each test token
TOKEN_SUPPLY = 10_000 * E18
