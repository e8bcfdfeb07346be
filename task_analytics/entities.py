"""Group-by-entity aggregators for reporters, products and markets."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from .base import (
    BaseCalculator,
    percentage,
    round_half_up,
    task_ai_time,
    task_category,
    task_hours,
    task_market,
    task_product,
    task_reporter_id,
    task_user_id,
)
from .directory import ReferenceDirectory


class EntityCalculator(BaseCalculator):
    """Groups validated tasks by one entity key and ranks entities by volume.

    Subclasses set ``entity_name`` and implement :meth:`entity_key`; they can
    extend :meth:`build_entry` with entity-specific fields.
    """

    entity_name = "Entity"

    @property
    def _singular(self) -> str:
        return self.entity_name[0].lower() + self.entity_name[1:]

    def entity_key(self, task: Mapping) -> Optional[str]:
        raise NotImplementedError

    def group(self, tasks: Any) -> Dict[str, List[Mapping]]:
        groups: Dict[str, List[Mapping]] = {}
        for task in self.valid_tasks(tasks):
            key = self.entity_key(task)
            if key is None:
                continue
            groups.setdefault(key, []).append(task)
        return groups

    def build_entry(
        self, key: str, members: List[Mapping], directory: ReferenceDirectory
    ) -> Dict[str, Any]:
        count = len(members)
        hours = sum(task_hours(task) for task in members)
        ai_time = sum(task_ai_time(task) for task in members)
        with_ai = sum(1 for task in members if task_ai_time(task) > 0)
        completed = sum(1 for task in members if self.is_completed(task))
        categories: Dict[str, int] = {}
        for task in members:
            category = task_category(task)
            categories[category] = categories.get(category, 0) + 1
        return {
            "name": key,
            "count": count,
            "totalTasks": count,
            "totalHours": round_half_up(hours),
            "totalTimeWithAI": round_half_up(ai_time),
            "averageHours": round_half_up(hours / count) if count else 0,
            "tasksWithAI": with_ai,
            "aiUsagePercentage": percentage(with_ai, count),
            "completedTasks": completed,
            "pendingTasks": count - completed,
            "completionRate": percentage(completed, count),
            "categories": categories,
        }

    def calculate_entities(
        self, tasks: Any, references: Any = None
    ) -> Dict[str, Dict[str, Any]]:
        """Per-entity statistics keyed by entity name, in first-seen order."""
        directory = ReferenceDirectory(references)
        return {
            key: self.build_entry(key, members, directory)
            for key, members in self.group(tasks).items()
        }

    def calculate_metrics(self, tasks: Any, references: Any = None) -> Dict[str, Any]:
        directory = ReferenceDirectory(references)
        groups = self.group(tasks)
        ranked = sorted(
            (self.build_entry(key, members, directory) for key, members in groups.items()),
            key=lambda entry: entry["totalTasks"],
            reverse=True,
        )

        total_entities = len(ranked)
        total_tasks = sum(entry["totalTasks"] for entry in ranked)
        total_hours = sum(task_hours(task) for members in groups.values() for task in members)
        name = self.entity_name
        return {
            f"total{name}s": total_entities,
            f"{self._singular}Stats": ranked,
            f"averageTasksPer{name}": round_half_up(total_tasks / total_entities)
            if total_entities
            else 0,
            f"averageHoursPer{name}": round_half_up(total_hours / total_entities)
            if total_entities
            else 0,
            f"top{name}": ranked[0] if ranked else {},
            "totalTasks": total_tasks,
            "totalHours": round_half_up(total_hours),
        }


class _ContributorMixin:
    """Adds distinct user and reporter counts to an entity entry."""

    @staticmethod
    def contributor_fields(members: List[Mapping]) -> Dict[str, int]:
        users = {task_user_id(task) for task in members} - {None}
        reporters = {task_reporter_id(task) for task in members} - {None}
        return {"uniqueUsers": len(users), "uniqueReporters": len(reporters)}


class ReporterCalculator(EntityCalculator):
    entity_name = "Reporter"

    def entity_key(self, task: Mapping) -> Optional[str]:
        return task_reporter_id(task)

    def build_entry(
        self, key: str, members: List[Mapping], directory: ReferenceDirectory
    ) -> Dict[str, Any]:
        entry = super().build_entry(key, members, directory)
        entry["id"] = key
        entry["name"] = directory.resolve_name(key)
        entry["email"] = directory.resolve_email(key)
        return entry

    def calculate_reporter_roster(self, tasks: Any, reporters: Any = None) -> Dict[str, Any]:
        """Every known reporter, including those without tasks, ranked by volume.

        Tasks attributed to reporters missing from ``reporters`` are ignored.
        """
        directory = ReferenceDirectory(reporters)
        groups = self.group(tasks)
        roster = [
            self.build_entry(reporter_id, groups.get(reporter_id, []), directory)
            for reporter_id in directory.known_ids()
        ]
        roster.sort(key=lambda entry: entry["totalTasks"], reverse=True)
        total_tasks = sum(entry["totalTasks"] for entry in roster)
        return {
            "reporters": roster,
            "totalReporters": len(roster),
            "averageTasksPerReporter": round_half_up(total_tasks / len(roster)) if roster else 0,
            "totalTasks": total_tasks,
        }


class ProductCalculator(_ContributorMixin, EntityCalculator):
    entity_name = "Product"

    def entity_key(self, task: Mapping) -> Optional[str]:
        return task_product(task)

    def build_entry(
        self, key: str, members: List[Mapping], directory: ReferenceDirectory
    ) -> Dict[str, Any]:
        entry = super().build_entry(key, members, directory)
        entry.update(self.contributor_fields(members))
        markets: Dict[str, int] = {}
        for task in members:
            market = task_market(task)
            markets[market] = markets.get(market, 0) + 1
        entry["markets"] = markets
        return entry


class MarketCalculator(_ContributorMixin, EntityCalculator):
    entity_name = "Market"

    def entity_key(self, task: Mapping) -> Optional[str]:
        return task_market(task)

    def task_country(self, task: Mapping) -> str:
        country = task.get("country")
        if country in (None, ""):
            country = task_market(task)
        code = str(country).strip().lower()
        return code if code in self.settings.market_countries else "misc"

    def build_entry(
        self, key: str, members: List[Mapping], directory: ReferenceDirectory
    ) -> Dict[str, Any]:
        entry = super().build_entry(key, members, directory)
        entry.update(self.contributor_fields(members))
        products: Dict[str, int] = {}
        for task in members:
            product = task_product(task)
            products[product] = products.get(product, 0) + 1
        entry["products"] = products
        entry["countries"] = sorted({self.task_country(task) for task in members})
        return entry

    def calculate_country_breakdown(self, tasks: Any) -> Dict[str, Dict[str, Any]]:
        buckets: Dict[str, Dict[str, Any]] = {
            code: {"count": 0, "hours": 0.0} for code in self.settings.market_countries
        }
        buckets["misc"] = {"count": 0, "hours": 0.0}
        for task in self.valid_tasks(tasks):
            bucket = buckets[self.task_country(task)]
            bucket["count"] += 1
            bucket["hours"] += task_hours(task)
        for bucket in buckets.values():
            bucket["averageHours"] = (
                round_half_up(bucket["hours"] / bucket["count"]) if bucket["count"] else 0
            )
            bucket["hours"] = round_half_up(bucket["hours"])
        return buckets

    def calculate_metrics(self, tasks: Any, references: Any = None) -> Dict[str, Any]:
        metrics = super().calculate_metrics(tasks, references)
        metrics["countryBreakdown"] = self.calculate_country_breakdown(tasks)
        return metrics


__all__ = [
    "EntityCalculator",
    "MarketCalculator",
    "ProductCalculator",
    "ReporterCalculator",
]
