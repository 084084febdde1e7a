"""FlightRecorder - per-state occupancy statistics across machines."""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from tick_machine.machine import StateMachine
from tick_machine.types import Callback, Metadata, NamingCollisionError

logger = logging.getLogger(__name__)


@dataclass
class Recording:
    """Occupancy of one state.

    ``count`` entries, ``time`` ticked in total, ``current`` ticked in the
    ongoing (or most recent) dwell, ``longest`` single dwell so far.
    """

    count: int = 0
    time: float = 0
    current: float = 0
    longest: float = 0


class FlightRecorder:
    """Subscribes to one or more machines and keeps a Recording per state.

    State names must be unique across all recorded machines. Ticks add
    the machine's delta when it runs in timer mode and one unit otherwise.
    Only entries and ticks that happen after construction are observed.
    """

    def __init__(self, *machines: StateMachine) -> None:
        self._records: dict[str, Recording] = {}
        for machine in machines:
            for name in machine.states:
                if name in self._records:
                    raise NamingCollisionError(name)
                self._records[name] = Recording()

        for machine in machines:
            self._attach(machine)

    def _attach(self, machine: StateMachine) -> None:
        for name in machine.states:
            machine.on_enter(name, self._make_enter_handler(name))
        machine.on_tick(self._make_tick_handler(machine))
        logger.debug("recording states: %s", ", ".join(machine.states))

    def _make_enter_handler(self, name: str) -> Callback:
        record = self._records[name]

        def on_enter(data: Any, meta: Metadata) -> None:
            record.count += 1
            record.current = 0

        return on_enter

    def _make_tick_handler(self, machine: StateMachine) -> Callback:
        def on_tick(data: Any, meta: Metadata) -> None:
            record = self._records.get(meta.to_state)
            if record is None:
                return
            step = (meta.delta or 0) if machine.timing else 1
            record.time += step
            record.current += step
            if record.current > record.longest:
                record.longest = record.current

        return on_tick

    # -- Read access --

    @property
    def records(self) -> Mapping[str, Recording]:
        return MappingProxyType(self._records)

    def __getitem__(self, state_name: str) -> Recording:
        return self._records[state_name]

    def __contains__(self, state_name: object) -> bool:
        return state_name in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> dict[str, dict[str, float]]:
        """Plain-dict copy of every Recording."""
        return {
            name: dataclasses.asdict(record)
            for name, record in self._records.items()
        }
