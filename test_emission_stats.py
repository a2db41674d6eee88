import copy
import datetime as dt

import pytest

from activities import Activity
from emission_stats import (
    average_daily,
    build_trend,
    category_shares,
    compute_stats,
    emissions_by_category,
    filter_by_date_range,
    progress_to_goal,
)
from errors import InvalidArgumentError

UTC = dt.timezone.utc
# Wednesday; the week started Monday 2024-03-18
REF = dt.datetime(2024, 3, 20, 12, 0, tzinfo=UTC)
TODAY = REF.date()


def make_activity(day, emission, category="transport", activity_type="car_petrol", value=1.0):
    return Activity(
        id=f"{day}-{category}-{emission}",
        user_id="u1",
        category=category,
        type=activity_type,
        value=value,
        unit="km",
        emission=emission,
        date=day.isoformat() if isinstance(day, dt.date) else day,
    )


def days_ago(n):
    return TODAY - dt.timedelta(days=n)


# -----------------------------
# compute_stats
# -----------------------------
def test_stats_of_empty_list_are_zero():
    stats = compute_stats([], now=REF, tz=UTC)
    assert stats == {
        "daily": 0,
        "weekly": 0,
        "monthly": 0,
        "by_category": {"transport": 0, "energy": 0, "diet": 0, "other": 0},
    }


def test_old_activity_falls_outside_every_window():
    activities = [
        make_activity(TODAY, 1.2, "transport", "car_petrol", 10),
        make_activity(days_ago(40), 2.5, "energy", "electricity", 5),
    ]
    stats = compute_stats(activities, now=REF, tz=UTC)
    assert stats["daily"] == 1.2
    assert stats["weekly"] == 1.2
    assert stats["monthly"] == 1.2
    assert stats["by_category"] == {"transport": 1.2, "energy": 0, "diet": 0, "other": 0}


def test_windows_are_nested():
    activities = [
        make_activity(dt.date(2024, 3, 20), 1.0, "diet", "beef"),
        make_activity(dt.date(2024, 3, 18), 2.0, "energy", "electricity"),
        make_activity(dt.date(2024, 3, 17), 3.0, "transport"),   # Sunday of last week
        make_activity(dt.date(2024, 3, 1), 4.0, "other", "misc"),
        make_activity(dt.date(2024, 2, 29), 5.0, "transport"),   # previous month
        make_activity(dt.date(2024, 3, 21), 9.0, "transport"),   # tomorrow
    ]
    stats = compute_stats(activities, now=REF, tz=UTC)
    assert stats["daily"] == 1.0
    assert stats["weekly"] == 3.0
    assert stats["monthly"] == 10.0
    assert stats["monthly"] >= stats["weekly"] >= stats["daily"]
    assert stats["by_category"] == {"transport": 3.0, "energy": 2.0, "diet": 1.0, "other": 4.0}


def test_sums_are_rounded_once_at_the_end():
    activities = [make_activity(TODAY, 0.1), make_activity(TODAY, 0.2), make_activity(TODAY, 0.004)]
    stats = compute_stats(activities, now=REF, tz=UTC)
    assert stats["daily"] == 0.3
    assert stats["by_category"]["transport"] == 0.3


def test_category_breakdown_matches_monthly_total():
    activities = [
        make_activity(days_ago(i % 19), 0.37 * (i + 1), ["transport", "energy", "diet", "other"][i % 4])
        for i in range(25)
    ]
    stats = compute_stats(activities, now=REF, tz=UTC)
    assert sum(stats["by_category"].values()) == pytest.approx(stats["monthly"])


def test_stored_emission_is_summed_not_recomputed():
    # 10 km by petrol car would be 1.2 kg with today's factors
    activities = [make_activity(TODAY, 7.77, "transport", "car_petrol", 10)]
    assert compute_stats(activities, now=REF, tz=UTC)["daily"] == 7.77


def test_malformed_stored_data_is_tolerated():
    activities = [
        {"date": TODAY.isoformat(), "category": "travel", "emission": 1.5},
        {"date": TODAY.isoformat(), "emission": 2.0},
        {"date": "not-a-date", "category": "energy", "emission": 100.0},
        {"date": None, "category": "energy", "emission": 100.0},
        {"date": TODAY.isoformat(), "category": "diet", "emission": "abc"},
        {"date": TODAY.isoformat(), "category": "diet", "emission": None},
        {"date": f"{TODAY.isoformat()}T08:15:00Z", "category": "energy", "emission": 0.5},
        make_activity(TODAY, 1.0, "diet"),
    ]
    stats = compute_stats(activities, now=REF, tz=UTC)
    assert stats["daily"] == 5.0
    assert stats["by_category"] == {"transport": 0, "energy": 0.5, "diet": 1.0, "other": 3.5}


def test_compute_stats_is_idempotent_and_does_not_mutate_input():
    activities = [
        {"date": TODAY.isoformat(), "category": "energy", "emission": 2.25},
        {"date": days_ago(3).isoformat(), "category": "diet", "emission": 6.0},
    ]
    snapshot = copy.deepcopy(activities)
    first = compute_stats(activities, now=REF, tz=UTC)
    second = compute_stats(activities, now=REF, tz=UTC)
    assert first == second
    assert activities == snapshot


def test_compute_stats_accepts_a_generator():
    stats = compute_stats((make_activity(TODAY, e) for e in (1.0, 2.0)), now=REF, tz=UTC)
    assert stats["daily"] == 3.0
    assert stats["monthly"] == 3.0


def test_today_depends_on_zone():
    ref = dt.datetime(2024, 3, 17, 23, 30, tzinfo=UTC)   # already Monday 18th in Tokyo
    activities = [make_activity(dt.date(2024, 3, 18), 4.0), make_activity(dt.date(2024, 3, 17), 1.0)]
    assert compute_stats(activities, now=ref, tz=UTC)["daily"] == 1.0
    tokyo = compute_stats(activities, now=ref, tz="Asia/Tokyo")
    assert tokyo["daily"] == 4.0
    assert tokyo["weekly"] == 4.0


def test_filter_by_date_range_is_inclusive():
    activities = [make_activity(days_ago(n), 1.0) for n in range(5)]
    kept = filter_by_date_range(activities, days_ago(3), days_ago(1))
    assert [a.date for a in kept] == [days_ago(n).isoformat() for n in (1, 2, 3)]


def test_emissions_by_category_always_has_all_keys():
    assert emissions_by_category([]) == {"transport": 0, "energy": 0, "diet": 0, "other": 0}


# -----------------------------
# build_trend
# -----------------------------
def test_empty_trend_is_zero_filled():
    trend = build_trend([], 14, now=REF, tz=UTC)
    assert len(trend) == 14
    assert all(point["emission"] == 0 for point in trend)
    assert trend[-1]["date"] == "2024-03-20"
    assert trend[0]["date"] == "2024-03-07"
    dates = [dt.date.fromisoformat(p["date"]) for p in trend]
    assert all(b - a == dt.timedelta(days=1) for a, b in zip(dates, dates[1:]))


def test_trend_defaults_to_fourteen_days():
    assert len(build_trend([], now=REF, tz=UTC)) == 14


def test_trend_sums_each_day_exactly():
    activities = [
        make_activity(TODAY, 1.25),
        make_activity(TODAY, 0.5, "diet"),
        make_activity(days_ago(2), 3.0, "energy"),
        make_activity(days_ago(10), 8.0),          # outside a 7-day window
        make_activity(TODAY + dt.timedelta(days=1), 2.0),
    ]
    trend = build_trend(activities, 7, now=REF, tz=UTC)
    assert [p["date"] for p in trend] == [days_ago(n).isoformat() for n in range(6, -1, -1)]
    assert [p["emission"] for p in trend] == [0, 0, 0, 0, 3.0, 0, 1.75]


def test_trend_of_one_day_is_today_only():
    trend = build_trend([make_activity(TODAY, 0.1), make_activity(TODAY, 0.2)], 1, now=REF, tz=UTC)
    assert trend == [{"date": "2024-03-20", "emission": 0.3}]


@pytest.mark.parametrize("window", [0, -3, 2.5, "7", None, True])
def test_trend_rejects_invalid_window(window):
    with pytest.raises(InvalidArgumentError):
        build_trend([], window, now=REF, tz=UTC)


def test_trend_agrees_with_daily_stat():
    activities = [make_activity(TODAY, 0.33), make_activity(TODAY, 0.67, "energy"), make_activity(days_ago(1), 5.0)]
    stats = compute_stats(activities, now=REF, tz=UTC)
    assert build_trend(activities, 3, now=REF, tz=UTC)[-1]["emission"] == stats["daily"]


def test_average_daily_counts_empty_days():
    activities = [make_activity(TODAY, 30.0), make_activity(dt.date(2024, 3, 1), 15.0), make_activity(days_ago(45), 99.0)]
    assert average_daily(activities, 30, now=REF, tz=UTC) == 1.5


# -----------------------------
# progress_to_goal
# -----------------------------
@pytest.mark.parametrize(
    "current, goal, percentage, status",
    [
        (0, 500, 0, "good"),
        (300, 500, 60, "good"),
        (301, 500, 60.2, "warning"),
        (425, 500, 85, "warning"),
        (450, 500, 90, "danger"),
        (500, 500, 100, "danger"),
        (1000, 500, 100, "danger"),
    ],
)
def test_progress_to_goal(current, goal, percentage, status):
    result = progress_to_goal(current, goal)
    assert result["percentage"] == pytest.approx(percentage)
    assert result["status"] == status


def test_progress_exact_boundaries():
    assert progress_to_goal(300, 500) == {"percentage": 60, "status": "good"}
    assert progress_to_goal(1000, 500) == {"percentage": 100, "status": "danger"}


@pytest.mark.parametrize("goal", [0, -10, float("nan"), float("inf"), "500", None])
def test_progress_rejects_invalid_goal(goal):
    with pytest.raises(InvalidArgumentError):
        progress_to_goal(100, goal)


def test_progress_rejects_non_finite_current():
    with pytest.raises(InvalidArgumentError):
        progress_to_goal(float("nan"), 500)


@pytest.mark.parametrize("goal", [10**400, -(10**400)])
def test_progress_rejects_goal_too_large_for_float(goal):
    with pytest.raises(InvalidArgumentError):
        progress_to_goal(100, goal)


def test_category_shares():
    assert category_shares({"transport": 30.0, "energy": 10.0, "diet": 0.0, "other": 0.0}) == {
        "transport": 75.0, "energy": 25.0, "diet": 0.0, "other": 0.0,
    }
    assert category_shares({"transport": 0, "energy": 0, "diet": 0, "other": 0})["energy"] == 0.0
