"""Walker -- a character state machine with a flight recorder.

Demonstrates:
- Declaring states, transitions and dwell thresholds with the builder
- Driving the machine once per frame with a fixed timestep
- Subscribing to entries and one-shot events
- Reading per-state occupancy from a FlightRecorder

Run: python -m examples.walker
"""

from tick_machine import FlightRecorder, StateMachine

DT = 0.1

# One input frame per tick: which keys are held.
FRAMES = (
    [set()] * 3
    + [{"right"}] * 6
    + [{"right", "space"}]
    + [set()] * 8
    + [{"left"}] * 4
    + [set()] * 2
)


def build() -> StateMachine:
    machine = StateMachine("idle").timers("dt")
    (machine.declare()
        .transition_to("walking").when(lambda data, dwell: data["keys"] & {"left", "right"})
        .transition_to("jumping").when(lambda data, dwell: "space" in data["keys"])
        .state("walking")
        .transition_to("jumping").when(lambda data, dwell: "space" in data["keys"])
        .transition_to("idle").when(lambda data, dwell: not data["keys"])
        # A jump always lasts at least half a second.
        .state("jumping")
        .for_at_least(0.5, "duration")
        .transition_to("idle").when(lambda data, dwell: True))
    return machine


def main() -> None:
    print("=== Walker ===\n")

    machine = build()
    recorder = FlightRecorder(machine)

    for name in machine.states:
        machine.on_enter(
            name,
            lambda data, meta: print(f"  {meta.from_state or '-':>8} -> {meta.to_state}"),
        )
    machine.once("jumping", lambda data, meta: print("  (first jump!)"))

    machine.init({"keys": set(), "dt": DT})
    for keys in FRAMES:
        machine.process({"keys": keys, "dt": DT})

    print("\n  state      count   time  longest")
    for name, record in recorder.snapshot().items():
        print(
            f"  {name:<9} {record['count']:>5} {record['time']:>6.1f} {record['longest']:>8.1f}"
        )


if __name__ == "__main__":
    main()
