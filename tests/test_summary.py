import pytest

from task_analytics.base import empty_summary
from task_analytics.settings import AnalyticsSettings
from task_analytics.summary import SummaryCalculator


@pytest.fixture
def tasks():
    return [
        {
            "id": "t1",
            "timeInHours": 2,
            "timeSpentOnAI": 1,
            "status": "completed",
            "category": "development",
            "userUID": "u1",
            "reporterUID": "r1",
        },
        {
            "id": "t2",
            "timeInHours": 3,
            "status": "pending",
            "category": "design",
            "userUID": "u2",
        },
    ]


def test_summary_totals(tasks):
    summary = SummaryCalculator().calculate_summary(tasks)

    assert summary["totalTasks"] == 2
    assert summary["totalHours"] == 5
    assert summary["totalTimeWithAI"] == 1
    assert summary["averageHoursPerTask"] == 2.5
    assert summary["tasksWithAI"] == 1
    assert summary["aiUsagePercentage"] == 50
    assert summary["completedTasks"] == 1
    assert summary["completionRate"] == 50
    assert summary["uniqueUsers"] == 2
    assert summary["uniqueReporters"] == 1


def test_summary_ignores_invalid_records(tasks):
    summary = SummaryCalculator().calculate_summary(tasks + [None, "x", {"category": "video"}])
    assert summary["totalTasks"] == 2


def test_summary_of_nothing_is_all_zero():
    assert SummaryCalculator().calculate_summary([]) == empty_summary()
    assert SummaryCalculator().calculate_summary(None) == empty_summary()


def test_completed_status_is_configurable(tasks):
    calc = SummaryCalculator(AnalyticsSettings(completed_status="pending"))
    assert calc.calculate_summary(tasks)["completedTasks"] == 1
    assert calc.calculate_summary(tasks)["completionRate"] == 50


def test_category_breakdown(tasks):
    categories = SummaryCalculator().calculate_category_analytics(
        tasks + [{"id": "t3", "timeInHours": 1}]
    )

    assert set(categories) == {"development", "design", "uncategorized"}
    development = categories["development"]
    assert development["count"] == 1
    assert development["totalHours"] == 2
    assert development["tasksWithAI"] == 1
    assert development["aiUsagePercentage"] == 100
    assert development["completionRate"] == 100
    assert categories["design"]["completionRate"] == 0
    assert sum(entry["count"] for entry in categories.values()) == 3


def test_performance_score_components(tasks):
    performance = SummaryCalculator().calculate_performance_analytics(tasks)

    assert performance["efficiency"] == 50
    assert performance["productivity"] == 5
    assert performance["quality"] == 100
    assert performance["completedTasks"] == 1
    assert performance["totalTasks"] == 2
    assert performance["overallScore"] == pytest.approx(50.15, abs=0.01)


def test_performance_quality_counts_issue_free_tasks(tasks):
    tasks[1]["issues"] = ["late"]
    performance = SummaryCalculator().calculate_performance_analytics(tasks)
    assert performance["quality"] == 50

    tasks[1]["quality"] = "high"
    assert SummaryCalculator().calculate_performance_analytics(tasks)["quality"] == 100


def test_performance_score_is_clamped():
    heavy = [{"id": i, "timeInHours": 1000, "status": "completed"} for i in range(3)]
    performance = SummaryCalculator().calculate_performance_analytics(heavy)
    assert performance["overallScore"] == 100
    assert SummaryCalculator().calculate_performance_analytics([])["overallScore"] == 0


def test_huge_hour_values_do_not_break_totals():
    tasks = [{"id": "t1", "timeInHours": 1e307}, {"id": "t2", "timeInHours": 2}]
    summary = SummaryCalculator().calculate_summary(tasks)

    assert summary["totalTasks"] == 2
    assert summary["totalHours"] == pytest.approx(1e307)
    assert SummaryCalculator().calculate_performance_analytics(tasks)["overallScore"] == 100
