"""
emission_stats.py

Aggregates stored activities into the figures shown on the dashboard.

- compute_stats(activities): today / this week / this month totals plus the
  monthly breakdown per category.
- build_trend(activities, window_days): one point per day, oldest first,
  days without activity filled with 0.
- progress_to_goal(current, goal): share of the monthly goal used and a
  good / warning / danger status.

Aggregation always sums the `emission` stored on each activity; it never
recomputes it from type and value. Activities may be Activity objects or plain
mappings (rows read back from storage). Odd stored data is tolerated: an
unknown category counts as "other", an unreadable date is skipped and a
non-numeric emission counts as 0.
"""

from __future__ import annotations

import datetime as dt
import math
import numbers
from collections import defaultdict
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, TypedDict

from co2_engine import CATEGORIES, round2
from errors import InvalidArgumentError
from periods import TzLike, start_of_month, start_of_week, to_local
from utils import safe_float

DEFAULT_TREND_DAYS = 14


class EmissionStats(TypedDict):
    daily: float
    weekly: float
    monthly: float
    by_category: Dict[str, float]


class TrendPoint(TypedDict):
    date: str
    emission: float


class GoalProgress(TypedDict):
    percentage: float
    status: str


def activity_field(activity: Any, name: str) -> Any:
    if isinstance(activity, Mapping):
        return activity.get(name)
    return getattr(activity, name, None)


def activity_date(activity: Any) -> Optional[dt.date]:
    """Calendar date of an activity, None when it cannot be read."""
    value = activity_field(activity, "date")
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def activity_emission(activity: Any) -> float:
    emission = safe_float(activity_field(activity, "emission"))
    return emission if math.isfinite(emission) else 0.0


def activity_category(activity: Any) -> str:
    category = activity_field(activity, "category")
    return category if category in CATEGORIES else "other"


def _as_date(value: dt.date) -> dt.date:
    return value.date() if isinstance(value, dt.datetime) else value


def filter_by_date_range(activities: Iterable[Any], start: dt.date, end: dt.date) -> List[Any]:
    """Activities dated within [start, end], both ends included."""
    start, end = _as_date(start), _as_date(end)
    result = []
    for activity in activities:
        day = activity_date(activity)
        if day is not None and start <= day <= end:
            result.append(activity)
    return result


def total_emissions(activities: Iterable[Any]) -> float:
    """Unrounded sum of stored emissions."""
    return sum((activity_emission(a) for a in activities), 0.0)


def emissions_by_category(activities: Iterable[Any]) -> Dict[str, float]:
    """Emission per category; every category is present, rounded at the end."""
    result = {category: 0.0 for category in CATEGORIES}
    for activity in activities:
        result[activity_category(activity)] += activity_emission(activity)
    return {category: round2(total) for category, total in result.items()}


def compute_stats(
    activities: Iterable[Any],
    now: Optional[dt.datetime] = None,
    tz: TzLike = None,
) -> EmissionStats:
    """
    Daily, weekly and monthly totals for one user's activities.

    Each window runs from its start (today, Monday of this week, the 1st of
    this month) up to the end of today, in the zone `tz`. Activities dated in
    the future are not counted. The category breakdown covers the monthly
    window only. Sums are rounded to 2 decimals once, after adding.
    """
    ref = to_local(now, tz)
    today = ref.date()
    records = list(activities)

    daily = filter_by_date_range(records, today, today)
    weekly = filter_by_date_range(records, start_of_week(ref, tz).date(), today)
    monthly = filter_by_date_range(records, start_of_month(ref, tz).date(), today)

    return {
        "daily": round2(total_emissions(daily)),
        "weekly": round2(total_emissions(weekly)),
        "monthly": round2(total_emissions(monthly)),
        "by_category": emissions_by_category(monthly),
    }


def build_trend(
    activities: Iterable[Any],
    window_days: int = DEFAULT_TREND_DAYS,
    now: Optional[dt.datetime] = None,
    tz: TzLike = None,
) -> List[TrendPoint]:
    """
    Daily emission series for the last `window_days` days, today included.

    Always returns exactly `window_days` points in ascending date order; a day
    without activities has emission 0. Dates are ISO strings (YYYY-MM-DD).
    """
    if isinstance(window_days, bool) or not isinstance(window_days, int) or window_days <= 0:
        raise InvalidArgumentError(f"window_days must be a positive integer, got {window_days!r}")

    today = to_local(now, tz).date()

    by_date: Dict[dt.date, float] = defaultdict(float)
    for activity in activities:
        day = activity_date(activity)
        if day is not None:
            by_date[day] += activity_emission(activity)

    trend: List[TrendPoint] = []
    for offset in range(window_days - 1, -1, -1):
        day = today - dt.timedelta(days=offset)
        trend.append({"date": day.isoformat(), "emission": round2(by_date.get(day, 0.0))})
    return trend


def average_daily(
    activities: Iterable[Any],
    days: int = 30,
    now: Optional[dt.datetime] = None,
    tz: TzLike = None,
) -> float:
    """Mean daily emission over the last `days` days, empty days included."""
    trend = build_trend(activities, days, now=now, tz=tz)
    return round2(sum(point["emission"] for point in trend) / days)


def _finite_number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError(f"{name} must be a finite number, got {value!r}")
    try:
        number = float(value)
    except OverflowError:
        raise InvalidArgumentError(f"{name} is too large, got {value!r}") from None
    if not math.isfinite(number):
        raise InvalidArgumentError(f"{name} must be a finite number, got {value!r}")
    return number


def progress_to_goal(current: float, goal: float) -> GoalProgress:
    """
    Share of the monthly goal already used.

    percentage is capped at 100. status is "good" up to 60 %, "warning" up to
    85 % and "danger" above that. goal must be a positive number.
    """
    current = _finite_number(current, "current")
    goal = _finite_number(goal, "goal")
    if goal <= 0:
        raise InvalidArgumentError(f"goal must be positive, got {goal!r}")

    percentage = min(current * 100 / goal, 100.0)

    if percentage <= 60:
        return {"percentage": percentage, "status": "good"}
    if percentage <= 85:
        return {"percentage": percentage, "status": "warning"}
    return {"percentage": percentage, "status": "danger"}


def category_shares(by_category: Dict[str, float]) -> Dict[str, float]:
    """Percentage of the total per category (1 decimal), all 0 when nothing was logged."""
    total = sum(by_category.values())
    if total <= 0:
        return {category: 0.0 for category in by_category}
    return {category: round(value * 100 / total, 1) for category, value in by_category.items()}
