"""tick-machine - Declarative tick-driven state machines with telemetry."""
from __future__ import annotations

from tick_machine.builder import GraphBuilder
from tick_machine.guards import MachineGuards
from tick_machine.machine import StateMachine
from tick_machine.recorder import FlightRecorder, Recording
from tick_machine.state import State
from tick_machine.types import (
    Dwell,
    MachineError,
    Metadata,
    NamingCollisionError,
    SameStateTransitionError,
    Threshold,
    UnknownStateError,
)

__all__ = [
    "StateMachine",
    "GraphBuilder",
    "State",
    "MachineGuards",
    "FlightRecorder",
    "Recording",
    "Metadata",
    "Dwell",
    "Threshold",
    "MachineError",
    "UnknownStateError",
    "SameStateTransitionError",
    "NamingCollisionError",
]
