import random
import threading
from datetime import date, datetime, timedelta

import click
import pytest

from pyago import pyelapsed as el
from pyago.pyelapsed import ElapsedDuration, LiveSession
from pyago.pyjdate import InvalidDateInput, InvalidRangeInput


def test_difference_fixture_start_date():
    # 1403/12/01 -> 1404/02/29; Esfand 1403 has 30 days.
    assert el.difference("2025-02-19", "2025-05-19") == ElapsedDuration(0, 2, 28)


def test_difference_identity():
    for value in ("2025-02-19", date(1979, 2, 11), datetime(2024, 3, 20, 8, 30)):
        assert el.difference(value, value) == ElapsedDuration(0, 0, 0)


def test_difference_multi_year():
    assert el.difference("1979-02-11", "2025-02-19") == ElapsedDuration(46, 0, 9)


@pytest.mark.parametrize(
    "start, end, expected",
    [
        # Borrow from Esfand of a common year (29 days).
        ("2024-02-19", "2024-04-17", ElapsedDuration(0, 1, 28)),
        # Borrow from Esfand of a leap year (30 days).
        ("2025-02-18", "2025-04-18", ElapsedDuration(0, 1, 29)),
        # Borrow from a 31-day month.
        ("2024-04-19", "2024-05-21", ElapsedDuration(0, 1, 1)),
        # Borrow from a 30-day month.
        ("2024-10-21", "2024-11-21", ElapsedDuration(0, 1, 1)),
    ],
)
def test_difference_borrows_real_month_length(start, end, expected):
    assert el.difference(start, end) == expected


def test_difference_is_normalized():
    rng = random.Random(7)
    base = date(1990, 1, 1)
    for _ in range(2000):
        start = base + timedelta(days=rng.randrange(0, 365 * 40))
        end = start + timedelta(days=rng.randrange(0, 365 * 5))
        result = el.difference(start, end)
        assert result.years >= 0
        assert 0 <= result.months <= 11
        assert 0 <= result.days <= 30


def test_difference_backwards_is_negated():
    forward = el.difference("2025-02-19", "2025-05-19")
    backward = el.difference("2025-05-19", "2025-02-19")
    assert backward == ElapsedDuration(0, -2, -28)
    assert backward == -forward
    assert backward.is_negative
    assert not forward.is_negative


def test_difference_validates_both_endpoints():
    with pytest.raises(InvalidDateInput):
        el.difference("garbage", "2025-02-19")
    with pytest.raises(InvalidDateInput):
        el.difference("2025-02-19", "2025-02-30")


def test_elapsed_since_uses_clock(clock):
    result = el.elapsed_since("2025-02-19", clock=clock.now)
    assert result.duration == ElapsedDuration(0, 2, 28)
    assert (result.years, result.months, result.days) == (0, 2, 28)
    assert result.session is None
    result.stop()


def test_elapsed_since_live_without_callback_starts_nothing(clock, scheduler):
    result = el.elapsed_since("2025-02-19", live=True, clock=clock.now, scheduler=scheduler)
    assert result.session is None
    assert scheduler.jobs == []


def test_elapsed_since_rejects_invalid_start():
    with pytest.raises(InvalidDateInput):
        el.elapsed_since("not a date")


def test_live_session_ticks_and_stops(clock, scheduler):
    updates = []
    result = el.elapsed_since("2025-02-19", live=True, on_update=updates.append, clock=clock.now, scheduler=scheduler)
    assert result.duration == ElapsedDuration(0, 2, 28)
    assert result.session.running
    assert updates == []

    scheduler.advance(3)
    assert len(updates) == 3
    magnitudes = [u.approximate_days() for u in updates]
    assert magnitudes == sorted(magnitudes)

    result.stop()
    assert result.session.state == LiveSession.STOPPED
    scheduler.advance(10)
    assert len(updates) == 3
    assert scheduler.active_jobs == 0


def test_live_session_follows_the_calendar(clock, scheduler):
    updates = []
    result = el.elapsed_since(
        "2025-02-19",
        live=True,
        on_update=updates.append,
        clock=clock.now,
        scheduler=scheduler,
        interval=86400,
    )
    scheduler.advance(3 * 86400)
    result.stop()
    assert updates == [
        ElapsedDuration(0, 2, 29),
        ElapsedDuration(0, 2, 30),
        ElapsedDuration(0, 3, 0),
    ]


def test_live_session_stop_is_idempotent(clock, scheduler):
    session = LiveSession(lambda: ElapsedDuration(), lambda _d: None, scheduler=scheduler).start()
    session.stop()
    session.stop()
    assert session.state == LiveSession.STOPPED
    with pytest.raises(RuntimeError):
        session.start()


def test_live_session_stop_from_callback(clock, scheduler):
    updates = []

    def on_update(duration):
        updates.append(duration)
        session.stop()

    session = LiveSession(lambda: ElapsedDuration(days=1), on_update, scheduler=scheduler).start()
    scheduler.advance(5)
    assert updates == [ElapsedDuration(days=1)]


def test_live_sessions_are_independent(clock, scheduler):
    first, second = [], []
    a = el.elapsed_since("2025-02-19", live=True, on_update=first.append, clock=clock.now, scheduler=scheduler)
    b = el.elapsed_since("2024-03-20", live=True, on_update=second.append, clock=clock.now, scheduler=scheduler)
    scheduler.advance(2)
    a.stop()
    scheduler.advance(2)
    b.stop()
    assert len(first) == 2
    assert len(second) == 4
    assert second[0] == el.difference("2024-03-20", "2025-05-19")


def test_live_session_with_thread_timer():
    ticked = threading.Event()
    updates = []

    def on_update(duration):
        updates.append(duration)
        if len(updates) >= 2:
            ticked.set()

    result = el.elapsed_since("2025-02-19", live=True, on_update=on_update, interval=0.01)
    assert ticked.wait(5)
    result.stop()
    count = len(updates)
    threading.Event().wait(0.05)
    assert len(updates) == count


def test_elapsed_since_jalali(clock):
    result = el.elapsed_since_jalali(1403, 12, 1, clock=clock.now)
    assert result.duration == ElapsedDuration(0, 2, 28)
    assert el.elapsed_since_jalali("1403", " 12 ", "1", clock=clock.now).duration == result.duration


def test_elapsed_since_jalali_live(clock, scheduler):
    updates = []
    result = el.elapsed_since_jalali(
        1404, 2, 29, live=True, on_update=updates.append, clock=clock.now, scheduler=scheduler, interval=86400
    )
    assert result.duration == ElapsedDuration(0, 0, 0)
    scheduler.advance(86400)
    result.stop()
    assert updates == [ElapsedDuration(0, 0, 1)]


@pytest.mark.parametrize("month, day", [(0, 1), (13, 1), (1, 0), (1, 32)])
def test_elapsed_since_jalali_range_errors(month, day):
    with pytest.raises(InvalidRangeInput):
        el.elapsed_since_jalali(1403, month, day)


def test_elapsed_since_jalali_coarse_day_bound(clock):
    # Day 31 of Esfand does not exist but passes the coarse check.
    el.elapsed_since_jalali(1403, 12, 31, clock=clock.now)


def test_elapsed_since_jalali_rejects_non_numbers():
    with pytest.raises(InvalidDateInput):
        el.elapsed_since_jalali("abc", 1, 1)
    with pytest.raises(InvalidDateInput):
        el.elapsed_since_jalali(1403, True, 1)


def test_display_units_and_format():
    duration = ElapsedDuration(1, 2, 3)
    assert el.display_units(duration, "years") == [(1, "years"), (2, "months"), (3, "days")]
    assert el.display_units(duration, "months") == [(14, "months"), (3, "days")]
    assert el.display_units(duration, "days", total_days=428) == [(428, "days")]
    assert el.format_elapsed(ElapsedDuration(0, 2, 0), "years") == "2 months"
    assert el.format_elapsed(ElapsedDuration(), "years") == el.NOTHING_ELAPSED
    assert el.format_elapsed(ElapsedDuration(0, -2, -28), "years") == "2 months, 28 days remaining"
    with pytest.raises(click.ClickException, match="total day count"):
        el.display_units(duration, "days")
    with pytest.raises(click.ClickException, match="Unknown display format"):
        el.display_units(duration, "weeks")


def test_total_days_between():
    assert el.total_days_between("2025-02-19", "2025-05-19") == 89
    assert el.total_days_between("2025-05-19", "2025-02-19") == -89
