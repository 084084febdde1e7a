"""MachineGuards registry."""
from __future__ import annotations

from typing import Any

from tick_machine.types import Dwell, Predicate


class MachineGuards:
    """Named transition predicates shared by one or more machines.

    Transitions declared with a guard name keep the name, not the
    function: the registry is consulted on every evaluation, so
    registering a new function under an existing name retargets every
    transition that uses it.
    """

    def __init__(self) -> None:
        self._guards: dict[str, Predicate] = {}

    def register(self, name: str, fn: Predicate) -> None:
        """Bind ``name`` to ``fn``, replacing any earlier binding."""
        self._guards[name] = fn

    def require(self, name: str) -> None:
        """Raise KeyError unless ``name`` is bound. Used when declaring transitions."""
        if name not in self._guards:
            known = ", ".join(self._guards) or "none"
            raise KeyError(f"Guard '{name}' is not registered (known guards: {known})")

    def check(self, name: str, data: Any, dwell: Dwell) -> bool:
        self.require(name)
        return bool(self._guards[name](data, dwell))

    def has(self, name: str) -> bool:
        return name in self._guards

    def names(self) -> list[str]:
        """Guard names in registration order."""
        return list(self._guards)
