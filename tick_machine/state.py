"""State - one node of the graph, with its lifecycle fan-out."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from tick_machine.types import (
    Callback,
    Metadata,
    Subscription,
    Threshold,
    Transition,
)

logger = logging.getLogger(__name__)


class State:
    """A named node owning its transitions, thresholds and subscriptions.

    Counters are reset on every entry. Thresholds are resolved on entry
    and held for the whole dwell, so a provider that changes its answer
    mid-dwell only affects the next visit.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self.transitions: list[Transition] = []

        self.enter_callback: Callback | None = None
        self.tick_callback: Callback | None = None
        self.exit_callback: Callback | None = None

        self._min_ticks_threshold = Threshold()
        self._min_duration_threshold = Threshold()
        self._min_ticks: float | None = None
        self._min_duration: float | None = None

        self._tick_count = 0
        self._duration: float | None = None
        self._times_entered = 0

        self._on_enter: list[Subscription] = []
        self._on_every: list[Subscription] = []
        self._on_end: list[Subscription] = []
        self._matched: list[Subscription] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def duration(self) -> float | None:
        return self._duration

    @property
    def times_entered(self) -> int:
        return self._times_entered

    @property
    def min_ticks(self) -> float:
        """Tick gate for the current dwell.

        Resolved on entry. A state gated before it was ever entered (the
        host skipped ``init``) resolves once here and keeps that value.
        """
        if self._min_ticks is None:
            self._min_ticks = self._min_ticks_threshold.resolve()
        return self._min_ticks

    @property
    def min_duration(self) -> float:
        """Duration gate for the current dwell."""
        if self._min_duration is None:
            self._min_duration = self._min_duration_threshold.resolve()
        return self._min_duration

    def set_min_ticks(self, threshold: Threshold) -> None:
        self._min_ticks_threshold = threshold
        if self._times_entered == 0:
            self._min_ticks = None

    def set_min_duration(self, threshold: Threshold) -> None:
        self._min_duration_threshold = threshold
        if self._times_entered == 0:
            self._min_duration = None

    def __repr__(self) -> str:
        return f"State({self._name!r}, tick_count={self._tick_count})"

    # -- Subscription channels --

    def subscribe_enter(self, subscription: Subscription) -> None:
        self._on_enter.append(subscription)

    def subscribe_every(self, subscription: Subscription) -> None:
        self._on_every.append(subscription)

    def subscribe_end(self, subscription: Subscription) -> None:
        self._on_end.append(subscription)

    def subscribe_matched(self, subscription: Subscription) -> None:
        self._matched.append(subscription)

    def unsubscribe(self, callback: Callback) -> bool:
        """Remove the first registration of ``callback`` from enter/every/end.

        Returns True if something was removed.
        """
        for channel in (self._on_enter, self._on_every, self._on_end):
            for sub in channel:
                if sub.callback == callback:
                    channel.remove(sub)
                    return True
        return False

    # -- Lifecycle --

    def enter(self, data: Any, from_state: str | None, record_duration: bool) -> None:
        self._times_entered += 1
        self._min_ticks = self._min_ticks_threshold.resolve()
        self._min_duration = self._min_duration_threshold.resolve()
        self._tick_count = 0
        self._duration = 0 if record_duration else None

        meta = Metadata(
            from_state=from_state,
            to_state=self._name,
            tick_count=0,
            duration=self._duration,
        )
        # Channels are copied before any callback runs; changes made during
        # this entry apply from the next event on.
        on_enter, on_every, matched = list(self._on_enter), list(self._on_every), list(self._matched)
        if self.enter_callback is not None:
            self.enter_callback(data, meta)

        # Entry counts as the 0th tick for the every channel.
        fired = self._fan_out(on_enter, data, meta)
        fired += self._fan_out(on_every, data, meta)
        fired += self._fan_out(matched, data, meta)
        self._expire(fired, data)

    def tick(self, data: Any, delta: float | None) -> None:
        if delta is not None and self._duration is not None:
            self._duration += delta
        self._tick_count += 1

        meta = Metadata(
            from_state=self._name,
            to_state=self._name,
            tick_count=self._tick_count,
            duration=self._duration,
            delta=delta,
        )
        on_every, matched = list(self._on_every), list(self._matched)
        fired = self._fan_out(on_every, data, meta)
        fired += self._fan_out(matched, data, meta)
        self._expire(fired, data)

        if self.tick_callback is not None:
            self.tick_callback(data, meta)

    def exit(self, data: Any, meta: Metadata) -> None:
        on_end = list(self._on_end)
        if self.exit_callback is not None:
            self.exit_callback(data, meta)
        self._fan_out(on_end, data, meta)

    # -- Internals --

    @staticmethod
    def _fan_out(
        channel: list[Subscription], data: Any, meta: Metadata,
    ) -> list[Subscription]:
        fired: list[Subscription] = []
        for sub in channel:
            if sub.accepts(meta):
                sub.callback(data, meta)
                fired.append(sub)
        return fired

    def _expire(self, fired: Iterable[Subscription], data: Any) -> None:
        expired = [
            sub for sub in fired
            if sub.until is not None
            and sub.until(data, self._times_entered, self._tick_count)
        ]
        for sub in expired:
            for channel in (self._on_enter, self._on_every, self._on_end, self._matched):
                if sub in channel:
                    channel.remove(sub)
                    break
            logger.debug("state %r: subscription %r expired", self._name, sub.callback)
