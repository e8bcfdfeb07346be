"""Whole-set totals, category breakdowns and the composite performance score."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List

from .base import (
    BaseCalculator,
    empty_summary,
    percentage,
    round_half_up,
    task_ai_time,
    task_category,
    task_hours,
    task_reporter_id,
    task_user_id,
)

EFFICIENCY_WEIGHT = 0.4
PRODUCTIVITY_WEIGHT = 0.3
QUALITY_WEIGHT = 0.3
PRODUCTIVITY_SCALE = 10


def _has_no_issues(task: Mapping) -> bool:
    issues = task.get("issues")
    return not issues or task.get("quality") == "high"


class SummaryCalculator(BaseCalculator):
    def calculate_summary(self, tasks: Any) -> Dict[str, Any]:
        valid = self.valid_tasks(tasks)
        if not valid:
            return empty_summary()

        total_hours = 0.0
        total_ai_time = 0.0
        tasks_with_ai = 0
        completed = 0
        users = set()
        reporters = set()
        for task in valid:
            total_hours += task_hours(task)
            ai_time = task_ai_time(task)
            total_ai_time += ai_time
            if ai_time > 0:
                tasks_with_ai += 1
            if self.is_completed(task):
                completed += 1
            user_id = task_user_id(task)
            if user_id:
                users.add(user_id)
            reporter_id = task_reporter_id(task)
            if reporter_id:
                reporters.add(reporter_id)

        total_tasks = len(valid)
        return {
            "totalTasks": total_tasks,
            "totalHours": round_half_up(total_hours),
            "totalTimeWithAI": round_half_up(total_ai_time),
            "averageHoursPerTask": round_half_up(total_hours / total_tasks),
            "tasksWithAI": tasks_with_ai,
            "aiUsagePercentage": percentage(tasks_with_ai, total_tasks),
            "completedTasks": completed,
            "completionRate": percentage(completed, total_tasks),
            "uniqueUsers": len(users),
            "uniqueReporters": len(reporters),
        }

    def calculate_category_analytics(self, tasks: Any) -> Dict[str, Dict[str, Any]]:
        groups: Dict[str, List[Mapping]] = {}
        for task in self.valid_tasks(tasks):
            groups.setdefault(task_category(task), []).append(task)

        categories: Dict[str, Dict[str, Any]] = {}
        for category, members in groups.items():
            count = len(members)
            hours = sum(task_hours(task) for task in members)
            ai_time = sum(task_ai_time(task) for task in members)
            with_ai = sum(1 for task in members if task_ai_time(task) > 0)
            completed = sum(1 for task in members if self.is_completed(task))
            categories[category] = {
                "count": count,
                "totalHours": round_half_up(hours),
                "totalTimeWithAI": round_half_up(ai_time),
                "averageHours": round_half_up(hours / count),
                "tasksWithAI": with_ai,
                "aiUsagePercentage": percentage(with_ai, count),
                "completedTasks": completed,
                "completionRate": percentage(completed, count),
            }
        return categories

    def calculate_performance_analytics(self, tasks: Any) -> Dict[str, Any]:
        """Blend completion, logged hours and issue-free share into one score.

        ``productivity`` is the raw hour total; it only enters the overall
        score after dividing by ``PRODUCTIVITY_SCALE``.
        """
        valid = self.valid_tasks(tasks)
        if not valid:
            return {
                "efficiency": 0,
                "productivity": 0,
                "quality": 0,
                "overallScore": 0,
                "completedTasks": 0,
                "totalTasks": 0,
                "totalHours": 0,
            }

        total = len(valid)
        completed = sum(1 for task in valid if self.is_completed(task))
        total_hours = sum(task_hours(task) for task in valid)
        issue_free = sum(1 for task in valid if _has_no_issues(task))

        efficiency = completed / total * 100
        productivity = total_hours
        quality = issue_free / total * 100
        overall = round_half_up(
            efficiency * EFFICIENCY_WEIGHT
            + (productivity / PRODUCTIVITY_SCALE) * PRODUCTIVITY_WEIGHT
            + quality * QUALITY_WEIGHT
        )

        return {
            "efficiency": round_half_up(efficiency),
            "productivity": round_half_up(productivity),
            "quality": round_half_up(quality),
            "overallScore": min(100, max(0, overall)),
            "completedTasks": completed,
            "totalTasks": total,
            "totalHours": round_half_up(total_hours),
        }


__all__ = ["SummaryCalculator"]
