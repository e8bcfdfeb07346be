"""AI usage analytics: adoption, per-model breakdown and estimated savings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Dict, List

from .base import (
    BaseCalculator,
    round_half_up,
    task_ai_models,
    task_ai_time,
    task_hours,
    task_market,
    task_product,
)


class AICalculator(BaseCalculator):
    def ai_tasks(self, tasks: Any) -> List[Mapping]:
        return [task for task in self.valid_tasks(tasks) if task_ai_time(task) > 0]

    def calculate_ai_analytics(self, tasks: Any) -> Dict[str, Any]:
        valid = self.valid_tasks(tasks)
        ai_tasks = [task for task in valid if task_ai_time(task) > 0]

        total_ai_tasks = len(ai_tasks)
        total_ai_time = sum(task_ai_time(task) for task in ai_tasks)
        usage = total_ai_tasks / len(valid) * 100 if valid else 0.0
        average = total_ai_time / total_ai_tasks if total_ai_tasks else 0.0

        return {
            "totalAITasks": total_ai_tasks,
            "totalAITime": round_half_up(total_ai_time),
            "aiUsagePercentage": round_half_up(min(100.0, usage)),
            "averageAITimePerTask": round_half_up(average),
            "aiModels": self.calculate_ai_models_analytics(ai_tasks),
            "aiEfficiency": round_half_up(min(100.0, self.calculate_ai_efficiency(ai_tasks))),
            "aiCostSavings": round_half_up(self.calculate_ai_cost_savings(ai_tasks)),
            "byProduct": self.calculate_ai_breakdown_by_product(valid),
            "byMarket": self.calculate_ai_breakdown_by_market(valid),
        }

    def calculate_ai_models_analytics(self, ai_tasks: List[Mapping]) -> Dict[str, Dict[str, Any]]:
        models: Dict[str, Dict[str, Any]] = {}
        for task in ai_tasks:
            ai_time = task_ai_time(task)
            if ai_time <= 0:
                continue
            for model in task_ai_models(task):
                entry = models.setdefault(model, {"count": 0, "totalTime": 0.0})
                entry["count"] += 1
                entry["totalTime"] += ai_time

        for model, entry in models.items():
            average = entry["totalTime"] / entry["count"]
            entry["efficiency"] = self.calculate_model_efficiency(average)
            entry["averageTime"] = round_half_up(average)
            entry["totalTime"] = round_half_up(entry["totalTime"])
        return models

    def calculate_model_efficiency(self, average_time: float) -> int:
        # Fixed heuristic; not derived from measured model performance.
        time_factor = min(100.0, (average_time / 2) * 100)
        return round_half_up((self.settings.model_base_efficiency + time_factor) / 2, 0)

    def calculate_ai_efficiency(self, ai_tasks: List[Mapping]) -> float:
        """Average share of each AI task's elapsed time assumed saved by AI."""
        if not ai_tasks:
            return 0.0
        rate = self.settings.ai_time_savings_rate
        total = 0.0
        for task in ai_tasks:
            hours = task_hours(task)
            if hours > 0:
                total += (task_ai_time(task) * rate) / hours * 100
        return total / len(ai_tasks)

    def calculate_ai_cost_savings(self, ai_tasks: List[Mapping]) -> float:
        rate = self.settings.ai_time_savings_rate
        return sum(task_ai_time(task) * rate * self.settings.hourly_rate for task in ai_tasks)

    def calculate_ai_breakdown_by_product(self, tasks: Any) -> Dict[str, Dict[str, Any]]:
        return self._breakdown(tasks, task_product)

    def calculate_ai_breakdown_by_market(self, tasks: Any) -> Dict[str, Dict[str, Any]]:
        return self._breakdown(tasks, task_market)

    def _breakdown(
        self, tasks: Any, key_fn: Callable[[Mapping], str]
    ) -> Dict[str, Dict[str, Any]]:
        breakdown: Dict[str, Dict[str, Any]] = {}
        for task in self.ai_tasks(tasks):
            entry = breakdown.setdefault(
                key_fn(task), {"count": 0, "totalAITime": 0.0, "aiModels": {}}
            )
            entry["count"] += 1
            entry["totalAITime"] += task_ai_time(task)
            for model in task_ai_models(task):
                entry["aiModels"][model] = entry["aiModels"].get(model, 0) + 1

        for entry in breakdown.values():
            entry["averageAITime"] = round_half_up(entry["totalAITime"] / entry["count"])
            entry["totalAITime"] = round_half_up(entry["totalAITime"])
        return breakdown


__all__ = ["AICalculator"]
