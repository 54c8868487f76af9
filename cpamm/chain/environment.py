"""In-memory execution environment for the AMM contracts.

The Environment plays the part of the chain: it hands out deterministic
addresses, keeps the block clock and native balances, collects emitted
events and provides all-or-nothing execution. Every public mutating
contract method runs inside ``Environment.atomic()`` (see ``transactional``),
so a failure anywhere in a call chain leaves every touched contract exactly
as it was before the outermost failing call.
"""

from __future__ import annotations

import contextlib
import functools
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

import structlog
from eth_abi.packed import encode_packed
from eth_utils import keccak

from cpamm.config import DEFAULT_AMM_CONFIG, AMMConfig
from cpamm.errors import AddressInUse, InsufficientBalance, UnknownContract
from cpamm.models.events import Event
from cpamm.models.types import address_to_bytes, ensure_uint, normalize_address

if TYPE_CHECKING:
    from cpamm.chain.contract import Contract
    from cpamm.tokens.erc20 import FungibleToken

logger = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")
E = TypeVar("E", bound=Event)


@dataclass
class _Savepoint:
    """Pre-images of everything changed since entry to an atomic block.

    Contract states are captured on first touch, native balances and nonces
    on first write. None marks a key that did not exist yet.
    """

    event_count: int
    states: dict[str, dict[str, Any]] = field(default_factory=dict)
    created: list[str] = field(default_factory=list)
    native: dict[str, int | None] = field(default_factory=dict)
    nonces: dict[str, int | None] = field(default_factory=dict)


class Environment:
    """Simulated chain state shared by all contracts of one deployment.

    Args:
        config: AMM configuration shared by registry, pairs and router.
                Defaults to DEFAULT_AMM_CONFIG.
        timestamp: Initial block timestamp in seconds. Defaults to the
                   current wall-clock time.
    """

    def __init__(self, config: AMMConfig | None = None, timestamp: int | None = None) -> None:
        self.config = config if config is not None else DEFAULT_AMM_CONFIG
        self.timestamp = int(time.time()) if timestamp is None else timestamp
        self._contracts: dict[str, Contract] = {}
        self._native: dict[str, int] = {}
        self._nonces: dict[str, int] = {}
        self._events: list[Event] = []
        self._savepoints: list[_Savepoint] = []

    # --- Addresses and contracts ---

    def create_address(self, deployer: str) -> str:
        """Derive the next contract address for a deployer.

        Address = keccak256(deployer ++ nonce)[12:], with a per-deployer nonce,
        so deployments are reproducible across runs.
        """
        deployer_norm = normalize_address(deployer, validate=True)
        nonce = self._nonces.get(deployer_norm, 0)
        self._journal(self._nonces, "nonces", deployer_norm)
        self._nonces[deployer_norm] = nonce + 1
        packed = encode_packed(["address", "uint64"], [address_to_bytes(deployer_norm), nonce])
        digest = keccak(packed)
        return "0x" + digest[12:].hex()

    def register(self, contract: Contract) -> None:
        """Register a contract at its address.

        Raises:
            AddressInUse: If another contract already lives there
        """
        if contract.address in self._contracts:
            raise AddressInUse(f"Address {contract.address} already holds a contract")
        self._contracts[contract.address] = contract
        for savepoint in self._savepoints:
            savepoint.created.append(contract.address)
        logger.debug(
            "contract_registered",
            kind=type(contract).__name__,
            address=contract.address[-8:],
        )

    def find(self, address: str) -> Contract | None:
        """Get the contract at an address, or None."""
        return self._contracts.get(normalize_address(address))

    def contract(self, address: str) -> Contract:
        """Get the contract at an address.

        Raises:
            UnknownContract: If nothing is registered there
        """
        found = self.find(address)
        if found is None:
            raise UnknownContract(f"No contract at {address}")
        return found

    def token(self, address: str) -> FungibleToken:
        """Get the fungible asset at an address.

        Raises:
            UnknownContract: If nothing (or something other than a token) is registered there
        """
        from cpamm.tokens.erc20 import FungibleToken

        found = self.contract(address)
        if not isinstance(found, FungibleToken):
            raise UnknownContract(f"Contract at {address} is not a fungible asset")
        return found

    # --- Block clock ---

    def advance_time(self, seconds: int) -> int:
        """Move the block clock forward and return the new timestamp."""
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards: {seconds}")
        self.timestamp += seconds
        return self.timestamp

    # --- Native value ---

    def native_balance_of(self, account: str) -> int:
        return self._native.get(normalize_address(account), 0)

    def fund(self, account: str, amount: int) -> None:
        """Credit native value to an account (genesis allocation)."""
        amount = ensure_uint(amount, "amount")
        account_norm = normalize_address(account, validate=True)
        self._set_native(account_norm, self._native.get(account_norm, 0) + amount)

    def transfer_native(self, sender: str, to: str, amount: int) -> None:
        """Move native value between accounts.

        Raises:
            InsufficientBalance: If sender holds less than amount
        """
        amount = ensure_uint(amount, "amount")
        sender_norm = normalize_address(sender, validate=True)
        to_norm = normalize_address(to, validate=True)
        balance = self._native.get(sender_norm, 0)
        if balance < amount:
            raise InsufficientBalance(f"Native balance of {sender_norm} is {balance} < {amount}")
        self._set_native(sender_norm, balance - amount)
        self._set_native(to_norm, self._native.get(to_norm, 0) + amount)

    def _set_native(self, account: str, amount: int) -> None:
        self._journal(self._native, "native", account)
        self._native[account] = amount

    # --- Events ---

    def emit(self, event: Event) -> None:
        self._events.append(event)
        logger.debug(
            "event_emitted",
            event_name=event.name,
            contract=event.contract[-8:],
        )

    @property
    def events(self) -> list[Event]:
        """All events emitted by committed (or still running) operations."""
        return list(self._events)

    def events_of(self, event_type: type[E], contract: str | None = None) -> list[E]:
        """Events of one type, optionally restricted to an emitting contract."""
        contract_norm = normalize_address(contract) if contract is not None else None
        return [
            e
            for e in self._events
            if isinstance(e, event_type) and (contract_norm is None or e.contract == contract_norm)
        ]

    # --- Transactions ---

    def _journal(self, store: dict[str, int], kind: str, key: str) -> None:
        """Record the value of store[key] in every open savepoint that lacks it."""
        for savepoint in self._savepoints:
            pre_images = getattr(savepoint, kind)
            if key not in pre_images:
                pre_images[key] = store.get(key)

    def touch(self, contract: Contract) -> None:
        """Capture a contract's state before it changes.

        Must run before the first mutation inside an atomic block; the
        ``transactional`` decorator does this for the contract it wraps.
        """
        pending = [sp for sp in self._savepoints if contract.address not in sp.states]
        if pending:
            state = contract.snapshot()
            for savepoint in pending:
                savepoint.states[contract.address] = state

    def _rollback(self, savepoint: _Savepoint) -> None:
        for address in savepoint.created:
            self._contracts.pop(address, None)
        for address, state in savepoint.states.items():
            contract = self._contracts.get(address)
            if contract is not None:
                contract.restore(state)
        journals = ((self._native, savepoint.native), (self._nonces, savepoint.nonces))
        for store, pre_images in journals:
            for key, value in pre_images.items():
                if value is None:
                    store.pop(key, None)
                else:
                    store[key] = value
        del self._events[savepoint.event_count :]

    @contextlib.contextmanager
    def atomic(self) -> Iterator[None]:
        """Run a block all-or-nothing.

        On any exception, every contract state, native balance, nonce and
        event recorded since entry is restored, then the exception propagates.
        Blocks nest; each level restores only its own changes.
        """
        savepoint = _Savepoint(event_count=len(self._events))
        self._savepoints.append(savepoint)
        try:
            yield
        except Exception as err:
            self._rollback(savepoint)
            logger.debug(
                "transaction_reverted",
                error=type(err).__name__,
                depth=len(self._savepoints),
            )
            raise
        finally:
            self._savepoints.pop()


def transactional(method: Callable[P, R]) -> Callable[P, R]:
    """Run a contract method inside ``self.env.atomic()``."""

    @functools.wraps(method)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        contract = args[0]
        env = contract.env  # type: ignore[attr-defined]
        with env.atomic():
            env.touch(contract)
            return method(*args, **kwargs)

    return wrapper
