"""Unit tests for State lifecycle and Threshold/Matcher value types."""
import pytest

from tick_machine import Metadata, State, Threshold
from tick_machine.types import Matcher, Subscription


def test_new_state_counters():
    state = State("idle")
    assert state.name == "idle"
    assert state.tick_count == 0
    assert state.duration is None
    assert state.times_entered == 0
    assert state.transitions == []


def test_enter_resets_counters():
    state = State("idle")
    state.enter({}, None, record_duration=True)
    state.tick({}, 2)
    state.tick({}, 3)
    assert (state.tick_count, state.duration) == (2, 5)

    state.enter({}, "walk", record_duration=True)

    assert (state.tick_count, state.duration) == (0, 0)
    assert state.times_entered == 2


def test_enter_without_duration():
    state = State("idle")
    state.enter({}, None, record_duration=False)
    state.tick({}, 2)

    assert state.duration is None
    assert state.tick_count == 1


def test_counters_reset_before_enter_callback():
    seen = []
    state = State("idle")
    state.enter_callback = lambda d, m: seen.append((state.tick_count, state.duration, m))
    state.enter({}, None, record_duration=True)
    state.tick({}, 4)

    state.enter({}, "walk", record_duration=True)

    assert seen[1][:2] == (0, 0)
    assert seen[1][2] == Metadata(from_state="walk", to_state="idle", tick_count=0, duration=0)


def test_tick_metadata():
    seen = []
    state = State("walk")
    state.subscribe_every(Subscription(lambda d, m: seen.append(m)))
    state.enter({}, "idle", record_duration=True)
    state.tick({}, 0.5)

    assert seen == [
        Metadata(from_state="idle", to_state="walk", tick_count=0, duration=0),
        Metadata(from_state="walk", to_state="walk", tick_count=1, duration=0.5, delta=0.5),
    ]


def test_exit_fires_end_channel_only():
    calls = []
    state = State("idle")
    state.subscribe_end(Subscription(lambda d, m: calls.append("end")))
    state.subscribe_every(Subscription(lambda d, m: calls.append("every")))
    state.subscribe_matched(Subscription(lambda d, m: calls.append("matched"), matcher=Matcher("idle")))

    state.exit({}, Metadata(from_state="idle", to_state="walk", tick_count=0, duration=None))

    assert calls == ["end"]


def test_thresholds_resolved_on_entry():
    values = iter([2, 5])
    state = State("idle")
    state.set_min_ticks(Threshold(lambda: next(values)))

    state.enter({}, None, record_duration=False)
    assert state.min_ticks == 2
    assert state.min_ticks == 2

    state.enter({}, "walk", record_duration=False)
    assert state.min_ticks == 5


def test_threshold_set_mid_dwell_waits_for_next_entry():
    state = State("idle")
    state.enter({}, None, record_duration=False)
    state.set_min_ticks(Threshold(3))

    assert state.min_ticks == 0
    state.enter({}, "walk", record_duration=False)
    assert state.min_ticks == 3


def test_unsubscribe_returns_whether_removed():
    def cb(data, meta):
        pass

    state = State("idle")
    state.subscribe_every(Subscription(cb))

    assert state.unsubscribe(cb) is True
    assert state.unsubscribe(cb) is False


def test_until_only_checked_for_fired_subscriptions():
    """A subscription that did not match is never expired."""
    checks = []
    state = State("run")
    state.subscribe_matched(Subscription(
        lambda d, m: None,
        matcher=Matcher(to_state="run", from_state="walk"),
        until=lambda d, entered, ticks: checks.append(entered) or True,
    ))

    state.enter({}, "idle", record_duration=False)
    state.tick({}, None)
    assert checks == []

    state.enter({}, "walk", record_duration=False)
    assert checks == [2]
    state.enter({}, "walk", record_duration=False)
    assert checks == [2]


class TestThreshold:

    def test_literal(self):
        assert Threshold(3).resolve() == 3

    def test_default_zero(self):
        assert Threshold().resolve() == 0

    def test_provider_called_each_resolve(self):
        calls = []
        threshold = Threshold(lambda: calls.append(1) or len(calls))
        assert threshold.resolve() == 1
        assert threshold.resolve() == 2

    def test_negative_literal_rejected(self):
        with pytest.raises(ValueError):
            Threshold(-0.5)


class TestMatcher:

    def test_to_only(self):
        matcher = Matcher(to_state="walk")
        assert matcher.accepts(Metadata(None, "walk", 0, None))
        assert matcher.accepts(Metadata("walk", "walk", 3, None))
        assert not matcher.accepts(Metadata("walk", "idle", 3, None))

    def test_from_and_to(self):
        matcher = Matcher(to_state="walk", from_state="idle")
        assert matcher.accepts(Metadata("idle", "walk", 0, None))
        assert not matcher.accepts(Metadata("run", "walk", 0, None))
        assert not matcher.accepts(Metadata(None, "walk", 0, None))
