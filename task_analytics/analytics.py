"""Analytics orchestrator combining every calculator into one dashboard result."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from .ai import AICalculator
from .base import (
    BaseCalculator,
    percentage,
    round_half_up,
    task_ai_time,
    task_category,
    task_hours,
    task_reporter_id,
    utc_now_iso,
)
from .cards import CardType, extract_all_metrics, extract_card_metric
from .directory import ReferenceDirectory
from .entities import MarketCalculator, ProductCalculator, ReporterCalculator
from .settings import AnalyticsSettings
from .summary import SummaryCalculator

LOGGER = logging.getLogger(__name__)


def _bucket() -> Dict[str, Any]:
    return {"count": 0, "totalHours": 0.0, "totalAITime": 0.0}


def _round_fields(entry: Dict[str, Any], *names: str) -> None:
    for name in names:
        entry[name] = round_half_up(entry[name])


class AnalyticsCalculator(BaseCalculator):
    """Single entry point producing the full analytics payload for a task set.

    The calculator holds no per-call state: every method reads only its
    arguments, so one instance can be shared between callers and threads.
    """

    def __init__(self, settings: Optional[AnalyticsSettings] = None) -> None:
        super().__init__(settings)
        self.summary = SummaryCalculator(self.settings)
        self.ai = AICalculator(self.settings)
        self.reporters = ReporterCalculator(self.settings)
        self.products = ProductCalculator(self.settings)
        self.markets = MarketCalculator(self.settings)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def calculate_all_analytics(
        self,
        tasks: Any,
        month_id: Optional[str],
        user_id: Optional[str] = None,
        reporters: Any = None,
        strict: bool = False,
    ) -> Dict[str, Any]:
        """Build the full analytics payload for one month of tasks.

        Failures are logged and degrade to the empty result carrying the
        input's ``cacheKey``. With ``strict=True`` they propagate instead, so
        callers that memoise results can tell a fallback from a real answer.
        """
        cache_key = None
        try:
            scoped = self.filter_tasks_by_user(tasks, user_id)
            cache_key = self.generate_cache_key(scoped, month_id, user_id)
            valid = self.valid_tasks(scoped)
            if not valid:
                empty = self.get_empty_analytics(month_id, user_id)
                empty["cacheKey"] = cache_key
                return empty

            summary = self.summary.calculate_summary(valid)
            ai_analytics = self.ai.calculate_ai_analytics(valid)
            result = {
                "monthId": month_id,
                "userId": user_id,
                "summary": summary,
                "categories": self.summary.calculate_category_analytics(valid),
                "performance": self.summary.calculate_performance_analytics(valid),
                "markets": self.markets.calculate_entities(valid),
                "products": self.products.calculate_entities(valid),
                "aiAnalytics": ai_analytics,
                "trends": self.calculate_trends(valid),
                "dailyAnalytics": self.calculate_daily_analytics(valid),
                "topReporter": self.calculate_top_reporter_analytics(valid, reporters),
                "leaderboards": {
                    "reporters": self.reporters.calculate_metrics(valid, reporters),
                    "products": self.products.calculate_metrics(valid),
                    "markets": self.markets.calculate_metrics(valid),
                },
                "lastCalculated": utc_now_iso(),
                "cacheKey": cache_key,
            }
            LOGGER.debug(
                "Calculated analytics for %s: %d tasks, %.2f hours, %d AI tasks",
                cache_key,
                summary["totalTasks"],
                summary["totalHours"],
                ai_analytics["totalAITasks"],
            )
            return result
        except Exception:
            if strict:
                raise
            LOGGER.exception("Failed to calculate analytics for month %s", month_id)
            empty = self.get_empty_analytics(month_id, user_id)
            if cache_key is not None:
                empty["cacheKey"] = cache_key
            return empty

    def calculate_trends(self, tasks: Any) -> Dict[str, Any]:
        weekly: Dict[str, Dict[str, Any]] = {}
        daily: Dict[str, Dict[str, Any]] = {}
        category_trends: Dict[str, Dict[str, Any]] = {}
        ai_trends: Dict[str, Dict[str, Any]] = {}

        for task in self.valid_tasks(tasks):
            day = self.task_local_date(task)
            if day is None:
                continue
            week_key = self.get_week_key(day)
            day_key = self.get_day_key(day)
            hours = task_hours(task)
            ai_time = task_ai_time(task)

            for bucket in (
                weekly.setdefault(week_key, _bucket()),
                daily.setdefault(day_key, _bucket()),
            ):
                bucket["count"] += 1
                bucket["totalHours"] += hours
                bucket["totalAITime"] += ai_time

            trend = category_trends.setdefault(
                task_category(task), {"count": 0, "totalHours": 0.0, "weekly": {}}
            )
            trend["count"] += 1
            trend["totalHours"] += hours
            trend["weekly"][week_key] = trend["weekly"].get(week_key, 0) + 1

            if ai_time > 0:
                ai_entry = ai_trends.setdefault(week_key, {"count": 0, "totalTime": 0.0})
                ai_entry["count"] += 1
                ai_entry["totalTime"] += ai_time

        for bucket in list(weekly.values()) + list(daily.values()):
            _round_fields(bucket, "totalHours", "totalAITime")
        for trend in category_trends.values():
            _round_fields(trend, "totalHours")
            trend["weekly"] = dict(sorted(trend["weekly"].items()))
        for ai_entry in ai_trends.values():
            _round_fields(ai_entry, "totalTime")

        return {
            "weekly": dict(sorted(weekly.items())),
            "daily": dict(sorted(daily.items())),
            "categoryTrends": category_trends,
            "aiTrends": dict(sorted(ai_trends.items())),
        }

    def calculate_daily_analytics(self, tasks: Any) -> Dict[str, Dict[str, Any]]:
        daily: Dict[str, Dict[str, Any]] = {}
        for task in self.valid_tasks(tasks):
            day = self.task_local_date(task)
            if day is None:
                continue
            entry = daily.setdefault(
                self.get_day_key(day),
                {"count": 0, "totalHours": 0.0, "totalAITime": 0.0, "aiTasks": 0, "categories": {}},
            )
            ai_time = task_ai_time(task)
            entry["count"] += 1
            entry["totalHours"] += task_hours(task)
            entry["totalAITime"] += ai_time
            if ai_time > 0:
                entry["aiTasks"] += 1
            category = task_category(task)
            entry["categories"][category] = entry["categories"].get(category, 0) + 1

        for entry in daily.values():
            _round_fields(entry, "totalHours", "totalAITime")
        return dict(sorted(daily.items()))

    def calculate_top_reporter_analytics(self, tasks: Any, reporters: Any = None) -> Dict[str, Any]:
        """Reporter with the most tasks; the first one seen wins a tie."""
        groups: Dict[str, List[Mapping]] = {}
        for task in self.valid_tasks(tasks):
            reporter_id = task_reporter_id(task)
            if reporter_id is None:
                continue
            groups.setdefault(reporter_id, []).append(task)
        if not groups:
            return {}

        top_id = None
        top_count = 0
        for reporter_id, members in groups.items():
            if len(members) > top_count:
                top_id, top_count = reporter_id, len(members)

        members = groups[top_id]
        hours = sum(task_hours(task) for task in members)
        ai_time = sum(task_ai_time(task) for task in members)
        categories: Dict[str, int] = {}
        for task in members:
            category = task_category(task)
            categories[category] = categories.get(category, 0) + 1

        directory = ReferenceDirectory(reporters)
        return {
            "id": top_id,
            "name": directory.resolve_name(top_id),
            "email": directory.resolve_email(top_id),
            "count": top_count,
            "totalHours": round_half_up(hours),
            "totalAITime": round_half_up(ai_time),
            "averageHours": round_half_up(hours / top_count),
            "aiUsagePercentage": percentage(ai_time, hours),
            "categories": categories,
        }

    # ------------------------------------------------------------------
    # Card facade
    # ------------------------------------------------------------------
    def get_metric_for_card(
        self, card_type: Any, analytics: Any, category: Optional[str] = None
    ) -> Dict[str, Any]:
        return extract_card_metric(card_type, analytics, category).to_dict()

    def get_all_metrics(self, analytics: Any) -> Dict[str, Dict[str, Any]]:
        return {card: metric.to_dict() for card, metric in extract_all_metrics(analytics).items()}

    @staticmethod
    def card_types() -> List[str]:
        return [card.value for card in CardType]


_calculator_instance: Optional[AnalyticsCalculator] = None


def get_analytics_calculator() -> AnalyticsCalculator:
    global _calculator_instance
    if _calculator_instance is None:
        _calculator_instance = AnalyticsCalculator()
    return _calculator_instance


__all__ = ["AnalyticsCalculator", "get_analytics_calculator"]
