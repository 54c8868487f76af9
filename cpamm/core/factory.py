"""Pair registry: creates and indexes one pair ledger per unordered token pair."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from cpamm.chain.contract import Contract
from cpamm.chain.environment import transactional
from cpamm.constants import ZERO_ADDRESS
from cpamm.core.addressing import compute_pair_address, sort_tokens
from cpamm.core.pair import Pair
from cpamm.errors import Forbidden, PairExists
from cpamm.models.events import PairCreated
from cpamm.models.types import normalize_address

if TYPE_CHECKING:
    from cpamm.chain.environment import Environment

logger = structlog.get_logger()


class PairRegistry(Contract):
    """Registry of pair ledgers.

    Pairs are keyed by their canonical (token0, token1) tuple and live at an
    address derived from the registry address and that key, so callers can
    compute where a pair is (or will be) without querying the registry.
    The registry never touches reserves.

    Args:
        env: Environment the registry lives in
        deployer: Account deploying the registry
        fee_to_setter: Account allowed to switch the protocol fee.
                       Defaults to the deployer.
    """

    def __init__(self, env: Environment, deployer: str, fee_to_setter: str | None = None) -> None:
        super().__init__(env, env.create_address(deployer))
        self.fee_to = ZERO_ADDRESS
        self.fee_to_setter = normalize_address(
            fee_to_setter if fee_to_setter is not None else deployer, validate=True
        )
        self.pairs: dict[tuple[str, str], str] = {}
        self.all_pairs_list: list[str] = []

    def pair_address_for(self, token_a: str, token_b: str) -> str:
        """Address the pair for these tokens has, whether created yet or not."""
        return compute_pair_address(
            self.address, token_a, token_b, self.env.config.init_code_hash_bytes
        )

    @transactional
    def create_pair(self, token_a: str, token_b: str) -> str:
        """Create the pair ledger for a token pair.

        Args:
            token_a: One token (any order)
            token_b: The other token

        Returns:
            Address of the new pair

        Raises:
            IdenticalAssets: If both tokens are the same
            ZeroAddress: If a token is the zero address
            PairExists: If the pair was already created
        """
        token0, token1 = sort_tokens(token_a, token_b)
        if (token0, token1) in self.pairs:
            raise PairExists(f"Pair for ({token0}, {token1}) already exists")

        address = self.pair_address_for(token0, token1)
        pair = Pair(self.env, self.address, address=address)
        pair.initialize(self.address, token0, token1)

        self.pairs[(token0, token1)] = address
        self.all_pairs_list.append(address)
        index = len(self.all_pairs_list)
        self.env.emit(
            PairCreated(
                contract=self.address,
                token0=token0,
                token1=token1,
                pair=address,
                index=index,
            )
        )
        logger.debug(
            "pair_created",
            pair=address[-8:],
            token0=token0[-8:],
            token1=token1[-8:],
            index=index,
        )
        return address

    def get_pair(self, token_a: str, token_b: str) -> str | None:
        """Get the pair for a token pair (order independent).

        Returns:
            Pair address if created, None otherwise
        """
        token_a_norm = normalize_address(token_a)
        token_b_norm = normalize_address(token_b)
        pair_key = (min(token_a_norm, token_b_norm), max(token_a_norm, token_b_norm))
        return self.pairs.get(pair_key)

    def all_pairs(self, index: int) -> str:
        """Address of the index-th created pair (0-based)."""
        return self.all_pairs_list[index]

    def all_pairs_length(self) -> int:
        return len(self.all_pairs_list)

    # --- Protocol fee administration ---

    @transactional
    def set_fee_to(self, sender: str, fee_to: str) -> None:
        """Direct the protocol fee to fee_to (the zero address switches it off)."""
        self._require_setter(sender)
        self.fee_to = normalize_address(fee_to, validate=True)
        logger.info("fee_to_changed", fee_to=self.fee_to[-8:])

    @transactional
    def set_fee_to_setter(self, sender: str, fee_to_setter: str) -> None:
        """Hand the fee administration right to another account."""
        self._require_setter(sender)
        self.fee_to_setter = normalize_address(fee_to_setter, validate=True)
        logger.info("fee_to_setter_changed", fee_to_setter=self.fee_to_setter[-8:])

    def _require_setter(self, sender: str) -> None:
        if normalize_address(sender) != self.fee_to_setter:
            raise Forbidden(f"{sender} is not the fee_to_setter")
