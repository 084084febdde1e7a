"""StateMachine - graph ownership, the process loop and subscriptions."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from tick_machine.builder import GraphBuilder
from tick_machine.guards import MachineGuards
from tick_machine.state import State
from tick_machine.types import (
    Callback,
    Dwell,
    Matcher,
    Metadata,
    Subscription,
    Transition,
    UnknownStateError,
    UnsubscribeWhen,
)

logger = logging.getLogger(__name__)


def _read_delta(data: Any, alias: str) -> float | None:
    if isinstance(data, Mapping):
        return data.get(alias)
    return getattr(data, alias, None)


def _always(data: Any, times_entered: int, tick_count: int) -> bool:
    return True


class StateMachine:
    """A graph of named states driven one ``process`` call per tick.

    On each call the current state's transitions are scanned in
    declaration order; the first whose predicate holds is the candidate.
    The candidate is taken only if the current dwell has lasted at least
    ``min_ticks`` ticks and ``min_duration`` time. Otherwise, or when no
    predicate holds, the current state ticks.
    """

    def __init__(self, initial: str, *, guards: MachineGuards | None = None) -> None:
        self._initial = initial
        self._guards = guards
        self._states: dict[str, State] = {}
        self._ensure_state(initial)
        self._current = initial
        self._previous: str | None = None
        self._delta_alias: str | None = None
        self._initialised = False
        self._on_tick: list[Callback] = []

    # -- Graph --

    @property
    def states(self) -> Mapping[str, State]:
        return MappingProxyType(self._states)

    @property
    def initial_state(self) -> str:
        return self._initial

    @property
    def guards(self) -> MachineGuards | None:
        return self._guards

    def declare(self) -> GraphBuilder:
        """Return a builder positioned on the initial state."""
        return GraphBuilder(self, home=self._initial, dest=self._initial)

    def _ensure_state(self, name: str) -> State:
        state = self._states.get(name)
        if state is None:
            state = self._states[name] = State(name)
        return state

    def _require_state(self, name: str) -> State:
        state = self._states.get(name)
        if state is None:
            raise UnknownStateError(
                name, f"'{name}' not found in states: {', '.join(self._states)}"
            )
        return state

    # -- Timer mode --

    def timers(self, alias: str = "dt") -> StateMachine:
        """Read ``data[alias]`` as the per-tick delta and track durations."""
        self._delta_alias = alias
        logger.debug("timer mode on, delta read from %r", alias)
        return self

    @property
    def timing(self) -> bool:
        return self._delta_alias is not None

    @property
    def delta_alias(self) -> str | None:
        return self._delta_alias

    # -- Runtime --

    @property
    def current_state(self) -> str:
        return self._current

    @property
    def previous_state(self) -> str | None:
        return self._previous

    def init(self, data: Any = None) -> StateMachine:
        """Enter the initial state. Only the first call has an effect."""
        if self._initialised:
            return self
        self._initialised = True
        self._current = self._initial
        self._states[self._initial].enter(data, None, self.timing)
        return self

    def process(self, data: Any) -> StateMachine:
        state = self._states[self._current]
        delta = _read_delta(data, self._delta_alias) if self.timing else None
        dwell_duration: float | None = None
        if self.timing and state.duration is not None:
            dwell_duration = state.duration + (delta or 0)

        dwell = Dwell(tick_count=state.tick_count, duration=dwell_duration)
        transition = self._find_transition(state, data, dwell)

        if transition is not None and self._admits(state, dwell):
            self._transition(state, transition.target, data, dwell)
        else:
            if transition is not None:
                logger.debug(
                    "%r -> %r held: %d/%s ticks, %s/%s duration",
                    state.name, transition.target, state.tick_count,
                    state.min_ticks, dwell_duration, state.min_duration,
                )
            state.tick(data, delta)
            meta = Metadata(
                from_state=state.name,
                to_state=state.name,
                tick_count=state.tick_count,
                duration=dwell_duration,
                delta=delta,
            )
            for fn in list(self._on_tick):
                fn(data, meta)
        return self

    def _find_transition(self, state: State, data: Any, dwell: Dwell) -> Transition | None:
        for transition in state.transitions:
            if self._check(transition, data, dwell):
                return transition
        return None

    def _check(self, transition: Transition, data: Any, dwell: Dwell) -> bool:
        predicate = transition.predicate
        if isinstance(predicate, str):
            if self._guards is None:
                raise KeyError(f"Guard '{predicate}' used on a machine without a guard registry")
            return self._guards.check(predicate, data, dwell)
        return bool(predicate(data, dwell))

    @staticmethod
    def _admits(state: State, dwell: Dwell) -> bool:
        if dwell.tick_count < state.min_ticks:
            return False
        return dwell.duration is None or dwell.duration >= state.min_duration

    def _transition(self, state: State, target: str, data: Any, dwell: Dwell) -> None:
        logger.debug(
            "%r -> %r after %d ticks (duration %s)",
            state.name, target, dwell.tick_count, dwell.duration,
        )
        state.exit(data, Metadata(
            from_state=state.name,
            to_state=target,
            tick_count=dwell.tick_count,
            duration=dwell.duration,
        ))
        self._previous = state.name
        self._current = target
        self._states[target].enter(data, state.name, self.timing)

    # -- Subscriptions --

    def on_enter(self, state_name: str, fn: Callback) -> StateMachine:
        """Call ``fn`` once per entry into ``state_name``."""
        self._subscribable(state_name).subscribe_enter(Subscription(fn))
        return self

    def on_every(self, state_name: str, fn: Callback) -> StateMachine:
        """Call ``fn`` on entry and on every tick while in ``state_name``."""
        self._subscribable(state_name).subscribe_every(Subscription(fn))
        return self

    def on_end(self, state_name: str, fn: Callback) -> StateMachine:
        """Call ``fn`` when ``state_name`` is exited."""
        self._subscribable(state_name).subscribe_end(Subscription(fn))
        return self

    def off(self, state_name: str, fn: Callback) -> StateMachine:
        """Remove ``fn`` from the enter, every or end channel of ``state_name``."""
        self._subscribable(state_name).unsubscribe(fn)
        return self

    def match(
        self,
        fn: Callback,
        *,
        to: str | None = None,
        from_state: str | None = None,
        until: UnsubscribeWhen | None = None,
    ) -> StateMachine:
        """Call ``fn`` on entries and ticks of ``to``, optionally only from ``from_state``.

        ``until(data, times_entered, tick_count)`` is checked after each
        call; once it returns True the subscription is removed.
        """
        if to is None:
            raise ValueError("A matched subscription needs a 'to' state")
        target = self._subscribable(to)
        if from_state is not None:
            self._subscribable(from_state)
        target.subscribe_matched(
            Subscription(fn, matcher=Matcher(to_state=to, from_state=from_state), until=until)
        )
        return self

    def once(self, state_name: str, fn: Callback) -> StateMachine:
        """Call ``fn`` the next time ``state_name`` is entered or ticks, then forget it."""
        return self.match(fn, to=state_name, until=_always)

    def on_tick(self, fn: Callback) -> StateMachine:
        """Call ``fn`` on every tick that does not transition, whatever the state."""
        self._on_tick.append(fn)
        return self

    def off_tick(self, fn: Callback) -> StateMachine:
        try:
            self._on_tick.remove(fn)
        except ValueError:
            pass
        return self

    def _subscribable(self, state_name: str) -> State:
        state = self._states.get(state_name)
        if state is None:
            raise UnknownStateError(
                state_name,
                f"Cannot subscribe to state '{state_name}' because no state with that name exists.",
            )
        return state
