"""Elapsed time in the Jalali calendar, live sessions and CLI commands."""

# pylint: disable=line-too-long,missing-function-docstring

from __future__ import annotations

import threading
from dataclasses import astuple, dataclass
from datetime import datetime
from typing import Callable, Optional

import click

from pyago.pyjdate import (
    DateInput,
    InvalidDateInput,
    InvalidRangeInput,
    days_in_jalali_month,
    format_gregorian,
    parse_instant,
    to_jalali,
)
from pyago.pyprogress import range_progress, status_text

DEFAULT_START_DATE = "2025-02-19"
LIVE_INTERVAL_SECONDS = 1.0
DISPLAY_FORMATS = ("years", "months", "days")
DEFAULT_DISPLAY_FORMAT = "months"
NOTHING_ELAPSED = "No time has passed yet."

Clock = Callable[[], datetime]
Tick = Callable[[], None]
Scheduler = Callable[[float, Tick], Callable[[], None]]


@dataclass(frozen=True)
class ElapsedDuration:
    """Normalized Jalali calendar difference.

    For a forward range ``months`` is in 0-11 and ``days`` in 0-30. A backward
    range is the forward difference with every component negated.
    """

    years: int = 0
    months: int = 0
    days: int = 0

    def __neg__(self) -> "ElapsedDuration":
        return ElapsedDuration(-self.years, -self.months, -self.days)

    @property
    def is_negative(self) -> bool:
        return self.years < 0 or self.months < 0 or self.days < 0

    @property
    def is_zero(self) -> bool:
        return self.years == 0 and self.months == 0 and self.days == 0

    def approximate_days(self) -> int:
        return self.years * 365 + self.months * 30 + self.days


UpdateCallback = Callable[[ElapsedDuration], None]


def _subtract(start: tuple[int, int, int], end: tuple[int, int, int]) -> ElapsedDuration:
    if end < start:
        return -_subtract(end, start)

    years = end[0] - start[0]
    months = end[1] - start[1]
    days = end[2] - start[2]

    if days < 0:
        months -= 1
        prev_month = 12 if end[1] == 1 else end[1] - 1
        prev_year = end[0] - 1 if end[1] == 1 else end[0]
        days += days_in_jalali_month(prev_month, prev_year)

    if months < 0:
        years -= 1
        months += 12

    return ElapsedDuration(years, months, days)


def difference(start: DateInput, end: DateInput) -> ElapsedDuration:
    """Years, months and days from ``start`` to ``end`` in the Jalali calendar.

    Both endpoints are validated before either is converted. Borrowing uses the
    real length of the Jalali month preceding ``end``.
    """
    start_dt = parse_instant(start)
    end_dt = parse_instant(end)
    return _subtract(astuple(to_jalali(start_dt)), astuple(to_jalali(end_dt)))


def repeat_every(interval: float, tick: Tick) -> Callable[[], None]:
    """Call ``tick`` every ``interval`` seconds on a daemon thread.

    Returns a function that cancels the timer.
    """
    cancelled = threading.Event()

    def run() -> None:
        while not cancelled.wait(interval):
            tick()

    threading.Thread(target=run, name="pyago-live", daemon=True).start()
    return cancelled.set


class LiveSession:
    """Recomputes an elapsed duration on a fixed interval until stopped.

    The session owns exactly one timer. ``stop`` is terminal and idempotent;
    once it returns, ``on_update`` is not called again.
    """

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"

    def __init__(
        self,
        compute: Callable[[], ElapsedDuration],
        on_update: UpdateCallback,
        interval: float = LIVE_INTERVAL_SECONDS,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._compute = compute
        self._on_update = on_update
        self._interval = interval
        self._scheduler = scheduler or repeat_every
        self._cancel: Optional[Callable[[], None]] = None
        self._lock = threading.RLock()
        self.state = self.IDLE

    @property
    def running(self) -> bool:
        return self.state == self.RUNNING

    def start(self) -> "LiveSession":
        with self._lock:
            if self.state != self.IDLE:
                raise RuntimeError(f"Cannot start a {self.state} live session.")
            self.state = self.RUNNING
            self._cancel = self._scheduler(self._interval, self._tick)
        return self

    def stop(self) -> None:
        with self._lock:
            if self.state == self.STOPPED:
                return
            self.state = self.STOPPED
            cancel, self._cancel = self._cancel, None
        if cancel is not None:
            cancel()

    def _tick(self) -> None:
        # Held across the callback so stop() from another thread waits for it.
        with self._lock:
            if self.state != self.RUNNING:
                return
            self._on_update(self._compute())


@dataclass(frozen=True)
class ElapsedResult:
    """Initial duration plus the live session, when one was started."""

    duration: ElapsedDuration
    session: Optional[LiveSession] = None

    @property
    def years(self) -> int:
        return self.duration.years

    @property
    def months(self) -> int:
        return self.duration.months

    @property
    def days(self) -> int:
        return self.duration.days

    def stop(self) -> None:
        if self.session is not None:
            self.session.stop()


def _run(
    compute: Callable[[], ElapsedDuration],
    live: bool,
    on_update: Optional[UpdateCallback],
    scheduler: Optional[Scheduler],
    interval: float,
) -> ElapsedResult:
    initial = compute()
    session = None
    if live and callable(on_update):
        session = LiveSession(compute, on_update, interval, scheduler).start()
    return ElapsedResult(initial, session)


def elapsed_since(
    start: DateInput,
    live: bool = False,
    on_update: Optional[UpdateCallback] = None,
    *,
    clock: Optional[Clock] = None,
    scheduler: Optional[Scheduler] = None,
    interval: float = LIVE_INTERVAL_SECONDS,
) -> ElapsedResult:
    """Difference between ``start`` and now, optionally kept up to date.

    With ``live`` and an ``on_update`` callback a :class:`LiveSession` sends
    a fresh duration every ``interval`` seconds until ``stop()`` is called.
    Live mode without a callback starts nothing.
    """
    start_dt = parse_instant(start)
    now = clock or datetime.now

    def compute() -> ElapsedDuration:
        return difference(start_dt, now())

    return _run(compute, live, on_update, scheduler, interval)


def _coerce_int(value, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidDateInput(f"Invalid Jalali {name}: {value!r}. Please provide valid numbers.")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise InvalidDateInput(f"Invalid Jalali {name}: {value!r}. Please provide valid numbers.") from exc


def elapsed_since_jalali(
    year,
    month,
    day,
    live: bool = False,
    on_update: Optional[UpdateCallback] = None,
    *,
    clock: Optional[Clock] = None,
    scheduler: Optional[Scheduler] = None,
    interval: float = LIVE_INTERVAL_SECONDS,
) -> ElapsedResult:
    """Like :func:`elapsed_since` but the start is a Jalali year/month/day.

    Only coarse bounds are checked: month 1-12 and day 1-31.
    """
    jy = _coerce_int(year, "year")
    jm = _coerce_int(month, "month")
    jd = _coerce_int(day, "day")
    if jm < 1 or jm > 12:
        raise InvalidRangeInput("Month must be between 1 and 12.")
    if jd < 1 or jd > 31:
        raise InvalidRangeInput("Day must be between 1 and 31.")
    start = (jy, jm, jd)
    now = clock or datetime.now

    def compute() -> ElapsedDuration:
        return _subtract(start, astuple(to_jalali(now())))

    return _run(compute, live, on_update, scheduler, interval)


def total_days_between(start: DateInput, end: DateInput) -> int:
    return (parse_instant(end).date() - parse_instant(start).date()).days


def display_units(
    duration: ElapsedDuration,
    fmt: str = DEFAULT_DISPLAY_FORMAT,
    total_days: Optional[int] = None,
) -> list[tuple[int, str]]:
    """Non-zero (value, label) pairs for the chosen display format."""
    if fmt == "years":
        units = [(duration.years, "years"), (duration.months, "months"), (duration.days, "days")]
    elif fmt == "months":
        units = [(duration.years * 12 + duration.months, "months"), (duration.days, "days")]
    elif fmt == "days":
        if total_days is None:
            raise click.ClickException("The days format needs the total day count.")
        units = [(total_days, "days")]
    else:
        raise click.ClickException(f"Unknown display format: {fmt}")
    return [(abs(value), label) for value, label in units if value != 0]


def format_elapsed(
    duration: ElapsedDuration,
    fmt: str = DEFAULT_DISPLAY_FORMAT,
    total_days: Optional[int] = None,
) -> str:
    units = display_units(duration, fmt, total_days)
    if not units:
        return NOTHING_ELAPSED
    text = ", ".join(f"{value} {label}" for value, label in units)
    if duration.is_negative or (total_days is not None and total_days < 0):
        return f"{text} remaining"
    return text


def _fixed_clock(dt: datetime) -> Clock:
    def clock() -> datetime:
        return dt

    return clock


def _describe(dt: datetime) -> str:
    return f"{format_gregorian(dt)} (Jalali {to_jalali(dt)})"


def _follow_live(compute_days: Callable[[], int], start_dt: datetime, display_format: str, ticks: Optional[int]) -> None:
    done = threading.Event()
    count = 0

    def on_update(duration: ElapsedDuration) -> None:
        nonlocal count
        click.echo(f"Elapsed: {format_elapsed(duration, display_format, compute_days())}")
        count += 1
        if ticks is not None and count >= ticks:
            done.set()

    result = elapsed_since(start_dt, live=True, on_update=on_update)
    try:
        while not done.wait(0.5):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        result.stop()
        click.echo("Live session stopped.", err=True)


format_option = click.option(
    "-f",
    "--format",
    "display_format",
    type=click.Choice(DISPLAY_FORMATS, case_sensitive=False),
    default=DEFAULT_DISPLAY_FORMAT,
    envvar="PYAGO_FORMAT",
    show_default=True,
    help="Show years/months/days, total months and days, or total days.",
)


@click.group()
def ago_cli():
    return None


@click.command()
@click.option(
    "-s",
    "--start",
    type=str,
    default=DEFAULT_START_DATE,
    envvar="PYAGO_START_DATE",
    show_default=True,
    help="Start date (Gregorian date string or unix timestamp).",
)
@click.option("--now", "now_value", type=str, default=None, help="Evaluate at this instant instead of the current time.")
@click.option("--live", is_flag=True, default=False, help="Keep updating once per second until interrupted.")
@click.option("--ticks", type=click.IntRange(min=1), default=None, help="Stop live mode after this many updates.")
@format_option
def since(start: str, now_value: Optional[str], live: bool, ticks: Optional[int], display_format: str):
    """Show time elapsed since the start date in the Jalali calendar."""
    if live and now_value is not None:
        raise click.ClickException("--now cannot be combined with --live.")
    start_dt = parse_instant(start)
    now_dt = parse_instant(now_value) if now_value is not None else datetime.now()
    click.echo(f"Start:   {_describe(start_dt)}")
    click.echo(f"Now:     {_describe(now_dt)}")
    duration = difference(start_dt, now_dt)
    click.echo(f"Elapsed: {format_elapsed(duration, display_format, total_days_between(start_dt, now_dt))}")
    if live:
        _follow_live(lambda: total_days_between(start_dt, datetime.now()), start_dt, display_format, ticks)


@click.command()
@click.option("-s", "--start", type=str, required=True, help="Start date (Gregorian date string or unix timestamp).")
@click.option("-e", "--end", type=str, required=True, help="End date (Gregorian date string or unix timestamp).")
@format_option
def between(start: str, end: str, display_format: str):
    """Show the Jalali calendar difference between two dates."""
    start_dt = parse_instant(start)
    end_dt = parse_instant(end)
    click.echo(f"Start:   {_describe(start_dt)}")
    click.echo(f"End:     {_describe(end_dt)}")
    duration = difference(start_dt, end_dt)
    click.echo(f"Elapsed: {format_elapsed(duration, display_format, total_days_between(start_dt, end_dt))}")


@click.command()
@click.option("-y", "--year", type=str, required=True, help="Jalali year.")
@click.option("-m", "--month", type=str, required=True, help="Jalali month number (1-12).")
@click.option("-d", "--day", type=str, required=True, help="Jalali day of month (1-31).")
@click.option("--now", "now_value", type=str, default=None, help="Evaluate at this instant instead of the current time.")
def jalali(year: str, month: str, day: str, now_value: Optional[str]):
    """Show time elapsed since a Jalali date."""
    clock = _fixed_clock(parse_instant(now_value)) if now_value is not None else None
    result = elapsed_since_jalali(year, month, day, clock=clock)
    click.echo(f"Elapsed: {format_elapsed(result.duration, 'years')}")


@click.command()
@click.option("-s", "--start", type=str, required=True, help="Range start (Gregorian date string or unix timestamp).")
@click.option("-e", "--end", type=str, required=True, help="Range end (Gregorian date string or unix timestamp).")
@click.option("--now", "now_value", type=str, default=None, help="Evaluate at this instant instead of the current time.")
def progress(start: str, end: str, now_value: Optional[str]):
    """Show progress through a date range."""
    result = range_progress(start, end, now_value)
    if result is None:
        raise click.ClickException("Start date must be before end date.")
    click.echo(f"Progress: {round(result.progress)}%")
    click.echo(f"Status:   {status_text(result)}")
    click.echo(f"Total:    {result.total_days} days")


for cmd in (since, between, jalali, progress):
    ago_cli.add_command(cmd)


if __name__ == "__main__":
    ago_cli()
