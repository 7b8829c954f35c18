"""Tests for the virtual-time event scheduler."""

import pytest

from hybrid_sim.core.enums import EventState
from hybrid_sim.core.errors import InvalidDelay, SchedulerFatalError
from hybrid_sim.core.scheduler import Scheduler


def test_distinct_fire_times_run_in_time_order():
    scheduler = Scheduler()
    fired = []
    for delay in [5.0, 1.0, 3.0, 0.5, 4.0]:
        scheduler.schedule(delay, lambda d=delay: fired.append((d, scheduler.now)))

    scheduler.run()

    assert [d for d, _ in fired] == [0.5, 1.0, 3.0, 4.0, 5.0]
    assert all(d == now for d, now in fired)


def test_equal_fire_times_run_in_enqueue_order():
    scheduler = Scheduler()
    fired = []
    for label in "abcdef":
        scheduler.schedule(2.0, fired.append, label)

    scheduler.run()

    assert fired == list("abcdef")


def test_sequence_ids_increase_and_order_handles():
    scheduler = Scheduler()
    first = scheduler.schedule(1.0, lambda: None)
    second = scheduler.schedule(1.0, lambda: None)
    earlier = scheduler.schedule(0.5, lambda: None)

    assert first.sequence_id < second.sequence_id < earlier.sequence_id
    assert sorted([second, first, earlier]) == [earlier, first, second]


def test_clock_only_advances_on_dequeue():
    scheduler = Scheduler()
    scheduler.schedule(10.0, lambda: None)

    assert scheduler.now == 0.0
    scheduler.run(stop_time=5.0)
    assert scheduler.now == 0.0

    scheduler.run()
    assert scheduler.now == 10.0


def test_negative_delay_is_rejected():
    scheduler = Scheduler()
    with pytest.raises(InvalidDelay):
        scheduler.schedule(-0.1, lambda: None)
    with pytest.raises(InvalidDelay):
        scheduler.schedule(float("nan"), lambda: None)
    assert scheduler.pending_count == 0


def test_callbacks_can_schedule_more_events():
    scheduler = Scheduler()
    times = []

    def tick(remaining):
        times.append(scheduler.now)
        if remaining:
            scheduler.schedule(1.5, tick, remaining - 1)

    scheduler.schedule(1.0, tick, 3)
    processed = scheduler.run()

    assert times == [1.0, 2.5, 4.0, 5.5]
    assert processed == 4
    assert scheduler.pending_count == 0


def test_zero_delay_event_scheduled_from_callback_runs_after_queued_peers():
    scheduler = Scheduler()
    order = []

    def first():
        order.append("first")
        scheduler.schedule_now(order.append, "nested")

    scheduler.schedule(1.0, first)
    scheduler.schedule(1.0, order.append, "second")
    scheduler.run()

    assert order == ["first", "second", "nested"]


def test_run_includes_events_at_stop_time_and_keeps_later_ones():
    scheduler = Scheduler()
    fired = []
    scheduler.schedule(20.0, fired.append, "at-stop")
    late = scheduler.schedule(20.5, fired.append, "late")

    scheduler.run(stop_time=20.0)

    assert fired == ["at-stop"]
    assert scheduler.is_pending(late)
    assert scheduler.next_event_time() == 20.5


def test_cancel_before_firing_prevents_callback():
    scheduler = Scheduler()
    fired = []
    handle = scheduler.schedule(1.0, fired.append, "x")

    scheduler.cancel(handle)
    scheduler.run()

    assert fired == []
    assert handle.state is EventState.CANCELLED
    assert scheduler.pending_count == 0


def test_cancelled_event_does_not_move_clock():
    scheduler = Scheduler()
    handle = scheduler.schedule(100.0, lambda: None)
    scheduler.cancel(handle)

    assert scheduler.next_event_time() is None
    assert scheduler.run() == 0
    assert scheduler.now == 0.0


def test_stop_time_ignores_cancelled_events_before_it():
    scheduler = Scheduler()
    fired = []
    scheduler.cancel(scheduler.schedule(3.0, fired.append, "cancelled"))
    live = scheduler.schedule(5.0, fired.append, "live")

    scheduler.run(stop_time=4.0)

    assert fired == []
    assert scheduler.now == 0.0
    assert scheduler.next_event_time() == 5.0

    scheduler.run()

    assert fired == ["live"]
    assert scheduler.now == 5.0
    assert live.state is EventState.FIRED


def test_cancel_after_firing_or_twice_is_noop():
    scheduler = Scheduler()
    fired = []
    handle = scheduler.schedule(1.0, fired.append, "x")
    scheduler.run()

    scheduler.cancel(handle)
    assert handle.state is EventState.FIRED

    other = scheduler.schedule(1.0, fired.append, "y")
    scheduler.cancel(other)
    scheduler.cancel(other)
    scheduler.run()
    assert fired == ["x"]


def test_callback_error_aborts_run():
    scheduler = Scheduler()
    fired = []

    def broken():
        raise RuntimeError("boom")

    scheduler.schedule(1.0, fired.append, "before")
    bad = scheduler.schedule_with_context(7, 2.0, broken)
    scheduler.schedule(3.0, fired.append, "after")

    with pytest.raises(SchedulerFatalError) as excinfo:
        scheduler.run()

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert excinfo.value.time == 2.0
    assert excinfo.value.sequence_id == bad.sequence_id
    assert excinfo.value.context == 7
    assert fired == ["before"]
    assert scheduler.pending_count == 1


def test_destroy_discards_pending_events():
    scheduler = Scheduler()
    fired = []
    scheduler.schedule(1.0, fired.append, "a")
    scheduler.run()
    pending = [scheduler.schedule(d, fired.append, d) for d in (1.0, 2.0)]
    last_id = pending[-1].sequence_id

    scheduler.destroy()
    scheduler.run()

    assert fired == ["a"]
    assert scheduler.pending_count == 0
    assert scheduler.now == 0.0
    assert all(h.state is EventState.CANCELLED for h in pending)
    assert scheduler.schedule(1.0, lambda: None).sequence_id > last_id


def test_context_is_tagged_and_inherited():
    scheduler = Scheduler()
    seen = []

    def parent():
        seen.append(("parent", scheduler.context))
        scheduler.schedule(1.0, lambda: seen.append(("child", scheduler.context)))

    scheduler.schedule_with_context(3, 1.0, parent)
    scheduler.schedule(1.0, lambda: seen.append(("root", scheduler.context)))
    scheduler.run()

    assert seen == [("parent", 3), ("root", None), ("child", 3)]
    assert scheduler.context is None


def test_events_processed_counts_only_fired_callbacks():
    scheduler = Scheduler()
    scheduler.schedule(1.0, lambda: None)
    handle = scheduler.schedule(2.0, lambda: None)
    scheduler.cancel(handle)

    scheduler.run()

    assert scheduler.events_processed == 1
