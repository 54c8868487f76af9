"""Configuration for the AMM engine."""

from __future__ import annotations

import os
from dataclasses import dataclass

from cpamm.constants import MINIMUM_LIQUIDITY, PAIR_INIT_CODE_HASH, ZERO_ADDRESS
from cpamm.models.types import normalize_address


@dataclass(frozen=True)
class AMMConfig:
    """Centralized configuration for the pair ledgers and router.

    The registry and the router must be built from the same config: the
    router derives pair addresses off-line with ``pair_init_code_hash``.

    Attributes:
        minimum_liquidity: Shares locked forever on a pair's first mint
            (default: 1000)
        liquidity_lock_address: Holder that receives the locked shares
            (default: the zero address, which nobody controls)
        pair_init_code_hash: 32-byte hex hash mixed into CREATE2-style pair
            address derivation
    """

    minimum_liquidity: int = MINIMUM_LIQUIDITY
    liquidity_lock_address: str = ZERO_ADDRESS
    pair_init_code_hash: str = PAIR_INIT_CODE_HASH

    def __post_init__(self) -> None:
        if self.minimum_liquidity < 0:
            raise ValueError(f"minimum_liquidity cannot be negative: {self.minimum_liquidity}")
        object.__setattr__(
            self,
            "liquidity_lock_address",
            normalize_address(self.liquidity_lock_address, validate=True),
        )
        code_hash = self.pair_init_code_hash.lower()
        if not code_hash.startswith("0x"):
            code_hash = "0x" + code_hash
        if len(code_hash) != 66:
            raise ValueError(f"pair_init_code_hash must be 32 bytes: {self.pair_init_code_hash}")
        bytes.fromhex(code_hash[2:])  # raises ValueError on non-hex input
        object.__setattr__(self, "pair_init_code_hash", code_hash)

    @property
    def init_code_hash_bytes(self) -> bytes:
        return bytes.fromhex(self.pair_init_code_hash[2:])

    @classmethod
    def from_env(cls) -> AMMConfig:
        """Build a config from environment variables.

        - CPAMM_MINIMUM_LIQUIDITY: locked shares on first mint (default: 1000)
        - CPAMM_LIQUIDITY_LOCK_ADDRESS: holder of the locked shares (default: zero address)
        - CPAMM_PAIR_INIT_CODE_HASH: hash used for pair address derivation
        """
        return cls(
            minimum_liquidity=int(
                os.environ.get("CPAMM_MINIMUM_LIQUIDITY", str(MINIMUM_LIQUIDITY))
            ),
            liquidity_lock_address=os.environ.get("CPAMM_LIQUIDITY_LOCK_ADDRESS", ZERO_ADDRESS),
            pair_init_code_hash=os.environ.get("CPAMM_PAIR_INIT_CODE_HASH", PAIR_INIT_CODE_HASH),
        )


# Default configuration instance
DEFAULT_AMM_CONFIG = AMMConfig()
