"""Base class for stateful contracts living in an Environment."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, ClassVar

from cpamm.models.types import normalize_address

if TYPE_CHECKING:
    from cpamm.chain.environment import Environment


class Contract:
    """A contract with an address and plain, snapshot-able state.

    Subclasses must keep their state in plain data (ints, strings, dicts,
    lists) and refer to other contracts by address only, so that the
    environment can snapshot and restore it when a transaction unwinds.
    """

    # Attributes that wire the contract to its environment; not state
    _wiring: ClassVar[frozenset[str]] = frozenset({"env", "address"})

    def __init__(self, env: Environment, address: str) -> None:
        self.env = env
        self.address = normalize_address(address, validate=True)
        env.register(self)

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the contract's state."""
        return copy.deepcopy({k: v for k, v in vars(self).items() if k not in self._wiring})

    def restore(self, state: dict[str, Any]) -> None:
        """Replace the contract's state with a copy of a snapshot.

        The snapshot may be shared by nested savepoints, so it is never aliased.
        """
        for key in [k for k in vars(self) if k not in self._wiring]:
            delattr(self, key)
        vars(self).update(copy.deepcopy(state))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"
