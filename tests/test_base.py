from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from task_analytics.base import (
    BaseCalculator,
    percentage,
    round_half_up,
    task_hours,
    task_market,
    task_product,
    task_reporter_id,
)
from task_analytics.settings import AnalyticsSettings


@pytest.fixture
def calc():
    return BaseCalculator()


def test_round_half_up_rounds_halves_away_from_down():
    assert round_half_up(0.125) == 0.13
    assert round_half_up(2.5, 0) == 3
    assert round_half_up(-2.5, 0) == -2
    assert isinstance(round_half_up(1.4, 0), int)


def test_percentage_is_clamped_and_safe_on_zero():
    assert percentage(1, 3) == 33
    assert percentage(1, 2) == 50
    assert percentage(5, 2) == 100
    assert percentage(1, 0) == 0


def test_numeric_fields_never_raise():
    assert task_hours({"timeInHours": "2.5"}) == 2.5
    assert task_hours({"timeInHours": "abc"}) == 0
    assert task_hours({"timeInHours": float("nan")}) == 0
    assert task_hours({"timeInHours": -3}) == 0
    assert task_hours({}) == 0


def test_single_value_labels_take_first_list_entry():
    assert task_product({"product": ["", "app", "web"]}) == "app"
    assert task_product({"product": "  web "}) == "web"
    assert task_market({}) == "unknown"
    assert task_reporter_id({"reporterId": 7}) == "7"
    assert task_reporter_id({"reporterUID": "r1", "reporterId": "r2"}) == "r1"


@pytest.mark.parametrize(
    "task, expected",
    [
        ({"timeInHours": 2}, True),
        ({"id": "t1"}, True),
        ({"id": "t1", "timeInHours": ""}, True),
        ({"id": "t1", "timeInHours": "abc"}, False),
        ({"id": "t1", "timeInHours": True}, False),
        ({"category": "design"}, False),
        ({}, False),
        (None, False),
        ("task", False),
    ],
)
def test_validate_task(calc, task, expected):
    assert calc.validate_task(task) is expected


def test_filter_tasks_by_user_checks_both_user_fields(calc):
    tasks = [
        {"id": 1, "userUID": "u1"},
        {"id": 2, "userId": "u1"},
        {"id": 3, "userUID": "u2"},
        "not-a-task",
    ]
    assert [task["id"] for task in calc.filter_tasks_by_user(tasks, "u1")] == [1, 2]
    assert len(calc.filter_tasks_by_user(tasks)) == 4
    assert calc.filter_tasks_by_user(None, "u1") == []


def test_cache_key_is_deterministic_and_order_independent(calc):
    tasks = [{"id": 1, "timeInHours": 2}, {"id": 2, "timeInHours": 3}]
    key = calc.generate_cache_key(tasks, "2024-01")
    assert key == calc.generate_cache_key(list(reversed(tasks)), "2024-01")
    assert key.startswith("2024-01_all_2_")


def test_cache_key_changes_with_user_and_content(calc):
    tasks = [{"id": 1, "timeInHours": 2}]
    base_key = calc.generate_cache_key(tasks, "2024-01")
    assert calc.generate_cache_key(tasks, "2024-01", "u1") != base_key
    assert calc.generate_cache_key([{"id": 1, "timeInHours": 2.5}], "2024-01") != base_key
    assert calc.generate_cache_key([], "2024-01") == "2024-01_all_empty"
    assert calc.generate_cache_key([], "2024-01", "u1") == "2024-01_user-u1_empty"


def test_parse_date_accepts_supported_shapes(calc):
    expected = datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)
    assert calc.parse_date("2024-03-05T10:00:00Z") == expected
    assert calc.parse_date(datetime(2024, 3, 5, 10, 0)) == expected
    assert calc.parse_date(date(2024, 3, 5)) == datetime(2024, 3, 5, tzinfo=timezone.utc)
    assert calc.parse_date(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert calc.parse_date({"seconds": 86400}) == datetime(1970, 1, 2, tzinfo=timezone.utc)
    assert calc.parse_date({"_seconds": 86400, "_nanoseconds": 0}) == datetime(
        1970, 1, 2, tzinfo=timezone.utc
    )
    stamp = SimpleNamespace(seconds=86400, nanoseconds=0)
    assert calc.parse_date(stamp) == datetime(1970, 1, 2, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, "", "not a date", {"foo": 1}, True, [1, 2]])
def test_parse_date_returns_none_for_garbage(calc, value):
    assert calc.parse_date(value) is None


def test_week_key_uses_iso_weeks(calc):
    assert calc.get_week_key(datetime(2024, 1, 1, tzinfo=timezone.utc)) == "2024-W01"
    assert calc.get_week_key(date(2021, 1, 3)) == "2020-W53"


def test_day_key_follows_reporting_timezone():
    calc = BaseCalculator(AnalyticsSettings(timezone="America/New_York"))
    moment = datetime(2024, 1, 1, 2, 0, tzinfo=timezone.utc)
    assert calc.get_day_key(moment) == "2023-12-31"
    assert BaseCalculator().get_day_key(moment) == "2024-01-01"


def test_empty_analytics_shape(calc):
    empty = calc.get_empty_analytics("2024-01", "u1")
    assert empty["monthId"] == "2024-01"
    assert empty["userId"] == "u1"
    assert empty["topReporter"] == {}
    assert all(value == 0 for value in empty["summary"].values())
    for key in ("categories", "markets", "products", "aiAnalytics", "trends", "dailyAnalytics"):
        assert empty[key] == {}
    assert empty["cacheKey"] == "2024-01_user-u1_empty"
    assert empty["lastCalculated"]


def test_rounding_leaves_unscalable_values_unchanged():
    assert round_half_up(1e307) == 1e307
    assert percentage(1e10, 1e-300) == 100


def test_far_past_dates_outside_reporting_timezone_are_skipped():
    calc = BaseCalculator(AnalyticsSettings(timezone="America/New_York"))
    assert calc.local_date("0001-01-01T01:00:00Z") is None
    assert calc.task_local_date({"createdAt": "2024-01-01T10:00:00Z"}) == date(2024, 1, 1)
    assert calc.local_date(date(2024, 1, 1)) == date(2024, 1, 1)
    assert calc.get_day_key(datetime(1, 1, 1, 1, tzinfo=timezone.utc)) == "0001-01-01"
