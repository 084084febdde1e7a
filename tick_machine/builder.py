"""GraphBuilder - fluent declaration of states and transitions."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from tick_machine.types import (
    Callback,
    Predicate,
    SameStateTransitionError,
    Threshold,
    ThresholdValue,
    Transition,
)

if TYPE_CHECKING:
    from tick_machine.machine import StateMachine
    from tick_machine.state import State

UNITS = ("ticks", "duration")


@dataclass(frozen=True)
class GraphBuilder:
    """Declaration cursor over a machine's graph.

    ``home`` is the source of transitions added with :meth:`when`;
    ``dest`` is the state that :meth:`transition_to` last named and the
    one lifecycle callbacks and thresholds apply to. Every call returns a
    builder, so chains read top to bottom::

        machine = StateMachine("idle")
        (machine.declare()
            .transition_to("walk").when(lambda data, dwell: data["walk"])
            .state("walk").transition_to("idle").when(lambda data, dwell: not data["walk"]))
    """

    machine: StateMachine
    home: str
    dest: str

    @property
    def _dest_state(self) -> State:
        return self.machine.states[self.dest]

    def transition_to(self, state_name: str) -> GraphBuilder:
        if state_name == self.home:
            raise SameStateTransitionError(state_name)
        self.machine._ensure_state(state_name)
        return replace(self, dest=state_name)

    def when(self, predicate: Predicate | str) -> GraphBuilder:
        """Add a transition from home to dest, taken when ``predicate`` holds.

        ``predicate`` may be the name of a guard in the machine's registry.
        """
        if self.home == self.dest:
            raise SameStateTransitionError(self.dest)
        if isinstance(predicate, str):
            if self.machine.guards is None:
                raise KeyError(f"Guard '{predicate}' used on a machine without a guard registry")
            self.machine.guards.require(predicate)
        self.machine.states[self.home].transitions.append(
            Transition(predicate=predicate, target=self.dest)
        )
        return self

    or_when = when

    def on_enter(self, fn: Callback) -> GraphBuilder:
        self._dest_state.enter_callback = fn
        return self

    def on_tick(self, fn: Callback) -> GraphBuilder:
        self._dest_state.tick_callback = fn
        return self

    def on_exit(self, fn: Callback) -> GraphBuilder:
        self._dest_state.exit_callback = fn
        return self

    def for_at_least(self, value: ThresholdValue, unit: str = "ticks") -> GraphBuilder:
        """Gate every transition out of dest on a minimum dwell.

        ``unit`` is ``"ticks"`` or ``"duration"``; a duration gate turns
        timer mode on if it is off. ``value`` may be a zero-argument
        callable, re-evaluated each time dest is entered.
        """
        if unit not in UNITS:
            raise ValueError(f"Unknown unit {unit!r}, expected one of {UNITS}")
        threshold = Threshold(value)
        if unit == "ticks":
            self._dest_state.set_min_ticks(threshold)
        else:
            if not self.machine.timing:
                self.machine.timers()
            self._dest_state.set_min_duration(threshold)
        return self

    def state(self, state_name: str) -> GraphBuilder:
        """Move both home and dest to an existing state."""
        self.machine._require_state(state_name)
        return replace(self, home=state_name, dest=state_name)

    def init(self, data: Any = None) -> StateMachine:
        return self.machine.init(data)
