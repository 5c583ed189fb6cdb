"""Gregorian to Jalali conversion, date parsing and CLI commands."""

# pylint: disable=line-too-long,missing-function-docstring

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Union

import click

DateInput = Union[date, datetime, str, int, float]

GREGORIAN_DAYS_BEFORE_MONTH = [0, 31, 59, 90, 120, 151, 181, 212, 243, 273, 304, 334]

# Remainders of year % 33 that fall on a leap year in the 33-year cycle.
JALALI_LEAP_REMAINDERS = frozenset({1, 5, 9, 13, 17, 22, 26, 30})

DAYS_PER_33_YEARS = 12053
DAYS_PER_4_YEARS = 1461


class InvalidDateInput(click.ClickException):
    """Value does not describe a real Gregorian date."""


class InvalidRangeInput(click.ClickException):
    """Month or day number outside its calendar bounds."""


@dataclass(frozen=True, order=True)
class JalaliDate:
    year: int
    month: int
    day: int

    def __str__(self) -> str:
        return f"{self.year:04d}/{self.month:02d}/{self.day:02d}"


@dataclass(frozen=True)
class Epoch:
    """Anchor pair used to keep the day count small."""

    jalali_base: int
    gregorian_base: int


# Conversion anchors. The split at 1600 is kept as-is; both anchors describe
# the same linear count but produce different intermediate magnitudes.
EPOCH_UNTIL_1600 = Epoch(jalali_base=0, gregorian_base=621)
EPOCH_AFTER_1600 = Epoch(jalali_base=979, gregorian_base=1600)


def _epoch_for(gy: int) -> Epoch:
    if gy <= 1600:
        return EPOCH_UNTIL_1600
    return EPOCH_AFTER_1600


def is_jalali_leap_year(year: int) -> bool:
    """33-year cycle approximation of the Jalali leap rule."""
    return year % 33 in JALALI_LEAP_REMAINDERS


def days_in_jalali_month(month: int, year: int) -> int:
    if month < 1 or month > 12:
        raise InvalidRangeInput("Month must be between 1 and 12.")
    if month <= 6:
        return 31
    if month <= 11:
        return 30
    return 30 if is_jalali_leap_year(year) else 29


def gregorian_to_jalali(gy: int, gm: int, gd: int) -> tuple[int, int, int]:
    epoch = _epoch_for(gy)
    gy_base = gy - epoch.gregorian_base
    gy2 = gy_base + 1 if gm > 2 else gy_base

    days = (
        365 * gy_base
        + (gy2 + 3) // 4
        - (gy2 + 99) // 100
        + (gy2 + 399) // 400
        - 80
        + gd
        + GREGORIAN_DAYS_BEFORE_MONTH[gm - 1]
    )

    jy = epoch.jalali_base + 33 * (days // DAYS_PER_33_YEARS)
    days %= DAYS_PER_33_YEARS

    jy += 4 * (days // DAYS_PER_4_YEARS)
    days %= DAYS_PER_4_YEARS

    if days > 365:
        jy += (days - 1) // 365
        days = (days - 1) % 365

    if days < 186:
        jm = 1 + days // 31
        jd = 1 + days % 31
    else:
        jm = 7 + (days - 186) // 30
        jd = 1 + (days - 186) % 30

    return jy, jm, jd


def to_jalali(value: DateInput) -> JalaliDate:
    """Convert a Gregorian date, datetime, date string or timestamp to Jalali.

    The input is parsed and validated before any arithmetic runs, so an
    unparseable value raises :class:`InvalidDateInput` and never yields a
    partial result.
    """
    instant = parse_instant(value)
    return JalaliDate(*gregorian_to_jalali(instant.year, instant.month, instant.day))


def local_timezone() -> timezone:
    tzinfo = datetime.now().astimezone().tzinfo
    if tzinfo is not None and isinstance(tzinfo, timezone):
        return tzinfo
    return timezone.utc


def parse_timezone_offset(offset: str) -> timezone:
    raw = offset.strip()
    if raw.upper() == "Z":
        return timezone.utc
    sign = 1 if raw[0] == "+" else -1
    payload = raw[1:]
    hours = minutes = "00"
    if ":" in payload:
        hours, minutes = payload.split(":", 1)
    elif len(payload) in (2, 4):
        hours = payload[:2]
        minutes = payload[2:] if len(payload) == 4 else "00"
    else:
        raise InvalidDateInput(f"Invalid timezone offset: {offset}")
    delta = timedelta(hours=int(hours), minutes=int(minutes)) * sign
    return timezone(delta)


def split_datetime_parts(raw: str) -> tuple[str, str, str]:
    date_part = raw
    time_part = ""
    tz_part = ""
    if "T" in raw:
        date_part, time_part = raw.split("T", 1)
    elif " " in raw:
        tokens = raw.split()
        time_index = next((i for i, token in enumerate(tokens) if ":" in token), None)
        if time_index is not None:
            date_part = " ".join(tokens[:time_index])
            time_part = tokens[time_index]
            if time_index + 1 < len(tokens) and tokens[time_index + 1][0] in "+-":
                time_part = f"{time_part}{tokens[time_index + 1]}"
    if time_part:
        if time_part.upper().endswith("Z"):
            tz_part = "Z"
            time_part = time_part[:-1]
        else:
            idx = max(time_part.rfind("+"), time_part.rfind("-"))
            if idx > 0:
                tz_part = time_part[idx:]
                time_part = time_part[:idx]
    return date_part, time_part, tz_part


def parse_date_parts(date_part: str) -> tuple[int, int, int]:
    raw = date_part.strip().replace(",", "")
    if raw.isdigit() and len(raw) == 8:
        return int(raw[:4]), int(raw[4:6]), int(raw[6:])
    sep = "-" if "-" in raw else "/" if "/" in raw else None
    if sep is None:
        for fmt in ("%b %d %Y", "%B %d %Y", "%d %b %Y", "%d %B %Y"):
            try:
                dt = datetime.strptime(raw, fmt)
            except ValueError:
                continue
            return dt.year, dt.month, dt.day
        raise InvalidDateInput(f"Invalid date: {date_part}")
    parts = raw.split(sep)
    if len(parts) != 3:
        raise InvalidDateInput(f"Invalid date: {date_part}")
    if len(parts[0]) == 4:
        year, month, day = parts
    elif len(parts[2]) == 4:
        day, month, year = parts
    else:
        raise InvalidDateInput(f"Invalid date: {date_part}")
    return int(year), int(month), int(day)


def parse_time_parts(time_part: str) -> tuple[int, int, int, int]:
    if not time_part:
        return 0, 0, 0, 0
    microsecond = 0
    if "." in time_part:
        time_part, micro_str = time_part.split(".", 1)
        microsecond = int(micro_str.ljust(6, "0")[:6])
    parts = [int(part) for part in time_part.split(":")]
    if len(parts) > 3:
        raise InvalidDateInput(f"Invalid time: {time_part}")
    hour, minute, second = (parts + [0, 0])[:3]
    return hour, minute, second, microsecond


def is_epoch_candidate(value: str) -> bool:
    raw = value.strip()
    if raw.startswith(("+", "-")):
        raw = raw[1:]
    if not raw:
        return False
    if "." in raw:
        left, right = raw.split(".", 1)
        return left.isdigit() and right.isdigit()
    return raw.isdigit() and len(raw) >= 10


def parse_epoch(value: Union[str, int, float]) -> datetime:
    try:
        ts = float(value)
    except ValueError as exc:
        raise InvalidDateInput(f"Invalid unix timestamp: {value}") from exc
    if not math.isfinite(ts):
        raise InvalidDateInput(f"Invalid unix timestamp: {value}")
    try:
        return datetime.fromtimestamp(ts, tz=local_timezone())
    except (OverflowError, OSError, ValueError) as exc:
        raise InvalidDateInput(f"Unix timestamp out of range: {value}") from exc


def to_local(dt: datetime) -> datetime:
    try:
        return dt.astimezone()
    except (OverflowError, ValueError) as exc:
        raise InvalidDateInput(f"Date out of range in local time: {dt.isoformat()}") from exc


def parse_date_string(value: str) -> datetime:
    raw = value.strip()
    if not raw:
        raise InvalidDateInput("Empty date string.")
    if is_epoch_candidate(raw):
        return parse_epoch(raw)
    date_part, time_part, tz_part = split_datetime_parts(raw)
    try:
        year, month, day = parse_date_parts(date_part)
        hour, minute, second, microsecond = parse_time_parts(time_part)
        tzinfo = parse_timezone_offset(tz_part) if tz_part else None
        dt = datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tzinfo)
    except ValueError as exc:
        raise InvalidDateInput(f"Invalid date: {value}") from exc
    if dt.tzinfo is not None:
        return to_local(dt)
    return dt


def parse_instant(value: DateInput) -> datetime:
    """Return ``value`` as a datetime, raising :class:`InvalidDateInput` otherwise.

    Naive values are kept as local wall time; aware values are moved into the
    local timezone so the calendar date matches what the user sees.
    """
    if isinstance(value, datetime):
        return to_local(value) if value.tzinfo is not None else value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool) or value is None:
        raise InvalidDateInput(f"Invalid date: {value!r}")
    if isinstance(value, (int, float)):
        return parse_epoch(value)
    if isinstance(value, str):
        return parse_date_string(value)
    raise InvalidDateInput(f"Unsupported date value: {value!r}")


def format_gregorian(dt: datetime) -> str:
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


@click.group()
def jdate_cli():
    return None


@click.command()
def current():
    """Print today's date in both calendars."""
    now = datetime.now().astimezone().replace(microsecond=0)
    j = to_jalali(now)
    click.echo(f"Gregorian: {format_gregorian(now)} {now:%H:%M:%S}")
    click.echo(f"Jalali:    {j}")


@click.command()
@click.argument("value", type=str)
def convert(value: str):
    """Convert a Gregorian date (string or unix timestamp) to Jalali.

    Examples: '2025-02-19', '2025/02/19 10:43', 'Feb 19 2025', '1739952000'.
    """
    instant = parse_instant(value)
    j = to_jalali(instant)
    leap = "yes" if is_jalali_leap_year(j.year) else "no"
    click.echo(f"Gregorian:    {format_gregorian(instant)}")
    click.echo(f"Jalali:       {j}")
    click.echo(f"Month length: {days_in_jalali_month(j.month, j.year)} days")
    click.echo(f"Leap year:    {leap}")


for cmd in (current, convert):
    jdate_cli.add_command(cmd)


if __name__ == "__main__":
    jdate_cli()
