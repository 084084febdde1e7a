"""Shared value types, callback aliases and errors for tick-machine."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union


@dataclass(frozen=True, slots=True)
class Metadata:
    """Passed to every callback fired by an entry, a tick or an exit.

    ``from_state`` is ``None`` only for the first entry into the initial
    state. ``duration`` is ``None`` unless timer mode was on for the dwell.
    """

    from_state: str | None
    to_state: str
    tick_count: int
    duration: float | None
    delta: float | None = None


@dataclass(frozen=True, slots=True)
class Dwell:
    """Tick count and duration of the current dwell, as seen by predicates."""

    tick_count: int
    duration: float | None


Callback = Callable[[Any, Metadata], None]
Predicate = Callable[[Any, Dwell], bool]
UnsubscribeWhen = Callable[[Any, int, int], bool]
ThresholdValue = Union[float, Callable[[], float]]


@dataclass(frozen=True, slots=True)
class Threshold:
    """Minimum dwell: a fixed number or a provider called on every entry."""

    value: ThresholdValue = 0

    def __post_init__(self) -> None:
        if not callable(self.value) and self.value < 0:
            raise ValueError(f"Threshold must be non-negative, got {self.value!r}")

    def resolve(self) -> float:
        if callable(self.value):
            return self.value()
        return self.value


@dataclass(frozen=True, slots=True)
class Transition:
    """Guarded edge. ``predicate`` is a callable or a registered guard name."""

    predicate: Predicate | str
    target: str


@dataclass(frozen=True, slots=True)
class Matcher:
    """Filters metadata by destination and, optionally, by origin."""

    to_state: str
    from_state: str | None = None

    def accepts(self, meta: Metadata) -> bool:
        if meta.to_state != self.to_state:
            return False
        return self.from_state is None or meta.from_state == self.from_state


@dataclass(eq=False, slots=True)
class Subscription:
    """One entry in a subscription channel.

    Compared by identity so the same callback can be subscribed twice and
    removed one registration at a time.
    """

    callback: Callback
    matcher: Matcher | None = None
    until: UnsubscribeWhen | None = None

    def accepts(self, meta: Metadata) -> bool:
        return self.matcher is None or self.matcher.accepts(meta)


class MachineError(Exception):
    """Base class for state machine declaration and subscription errors."""


class UnknownStateError(MachineError, KeyError):
    """Raised when a state name is not part of the machine's graph."""

    def __init__(self, state_name: str, message: str) -> None:
        self.state_name = state_name
        super().__init__(message)

    def __str__(self) -> str:
        return str(self.args[0])


class SameStateTransitionError(MachineError, ValueError):
    """Raised when a transition would leave and re-enter the same state."""

    def __init__(self, state_name: str) -> None:
        self.state_name = state_name
        super().__init__(f"Cannot transition to same state: '{state_name}'")


class NamingCollisionError(MachineError, ValueError):
    """Raised when recorded machines share a state name."""

    def __init__(self, state_name: str) -> None:
        self.state_name = state_name
        super().__init__(
            f"Naming collision: state '{state_name}' exists in multiple state machines."
        )
