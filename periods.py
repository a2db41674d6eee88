"""
periods.py

Calendar boundaries used to bucket activities into day, week and month.

Every function takes an optional reference instant `ref` (default: now) and an
optional zone `tz` (default: settings.TIMEZONE). A naive `ref` is read as wall
clock time in that zone; an aware one is converted into it. Returned datetimes
are aware and expressed in the resolved zone.

Weeks start on Monday. A Sunday belongs to the week that began six days earlier.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional, Union

import pytz

import settings

TzLike = Union[str, dt.tzinfo, None]

END_OF_DAY = dt.time(23, 59, 59, 999000)


def resolve_timezone(tz: TzLike = None) -> dt.tzinfo:
    """Turn a zone name, tzinfo or None (configured default) into a tzinfo."""
    if tz is None:
        tz = settings.TIMEZONE
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def _localize(zone: dt.tzinfo, naive: dt.datetime) -> dt.datetime:
    # pytz zones need localize() to pick the right offset
    if hasattr(zone, "localize"):
        return zone.localize(naive)
    return naive.replace(tzinfo=zone)


def to_local(ref: Optional[dt.datetime] = None, tz: TzLike = None) -> dt.datetime:
    """Return `ref` (or now) as an aware datetime in the resolved zone."""
    zone = resolve_timezone(tz)
    if ref is None:
        return dt.datetime.now(pytz.UTC).astimezone(zone)
    if ref.tzinfo is None:
        return _localize(zone, ref)
    return ref.astimezone(zone)


def local_date(ref: Optional[dt.datetime] = None, tz: TzLike = None) -> dt.date:
    """Calendar date of `ref` in the resolved zone."""
    return to_local(ref, tz).date()


def _at(day: dt.date, time: dt.time, tz: TzLike) -> dt.datetime:
    return _localize(resolve_timezone(tz), dt.datetime.combine(day, time))


def start_of_day(ref: Optional[dt.datetime] = None, tz: TzLike = None) -> dt.datetime:
    return _at(local_date(ref, tz), dt.time.min, tz)


def end_of_day(ref: Optional[dt.datetime] = None, tz: TzLike = None) -> dt.datetime:
    """23:59:59.999 on the calendar day of `ref`."""
    return _at(local_date(ref, tz), END_OF_DAY, tz)


def start_of_week(ref: Optional[dt.datetime] = None, tz: TzLike = None) -> dt.datetime:
    """Midnight of the Monday on or before `ref`."""
    today = local_date(ref, tz)
    return _at(today - dt.timedelta(days=today.weekday()), dt.time.min, tz)


def start_of_month(ref: Optional[dt.datetime] = None, tz: TzLike = None) -> dt.datetime:
    return _at(local_date(ref, tz).replace(day=1), dt.time.min, tz)
