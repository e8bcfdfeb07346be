"""Shared primitives for the task analytics calculators."""

from __future__ import annotations

import hashlib
import json
import logging
import math
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from dateutil.parser import parse as dateutil_parse

from .settings import AnalyticsSettings

LOGGER = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"
UNKNOWN = "unknown"

IDENTITY_FIELDS = (
    "id",
    "taskId",
    "timeInHours",
    "reporterUID",
    "reporterId",
    "userUID",
    "userId",
)


# ---------------------------------------------------------------------------
# Helper utilities
# ---------------------------------------------------------------------------


def _float(value: Any) -> float:
    if value in (None, "") or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _ensure_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _serialise_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def round_half_up(value: float, digits: int = 2) -> Any:
    """Round like JavaScript's ``Math.round`` (halves go up), to ``digits`` places."""
    factor = 10 ** digits
    scaled = value * factor
    if not math.isfinite(scaled):
        # Too large to scale; already coarser than the requested precision.
        return value
    rounded = math.floor(scaled + 0.5) / factor
    if digits == 0:
        return int(rounded)
    return rounded


def percentage(part: float, whole: float) -> int:
    """Whole-number percentage of ``part`` in ``whole``, clamped to 0..100."""
    if whole <= 0:
        return 0
    if part >= whole:
        return 100
    return max(0, round_half_up(part / whole * 100, 0))


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _label(value: Any, default: str) -> str:
    if isinstance(value, (list, tuple)):
        value = next((entry for entry in value if entry not in (None, "")), None)
    if value in (None, ""):
        return default
    text = str(value).strip()
    return text or default


def task_hours(task: Mapping) -> float:
    return max(0.0, _float(task.get("timeInHours")))


def task_ai_time(task: Mapping) -> float:
    return max(0.0, _float(task.get("timeSpentOnAI")))


def task_category(task: Mapping) -> str:
    return _label(task.get("category"), UNCATEGORIZED)


def task_product(task: Mapping) -> str:
    return _label(task.get("product"), UNKNOWN)


def task_market(task: Mapping) -> str:
    return _label(task.get("market"), UNKNOWN)


def task_ai_models(task: Mapping) -> List[str]:
    models = task.get("aiModels")
    if not isinstance(models, (list, tuple)):
        return []
    return [str(model).strip() for model in models if model not in (None, "") and str(model).strip()]


def _foreign_key(task: Mapping, primary: str, fallback: str) -> Optional[str]:
    value = task.get(primary)
    if value in (None, ""):
        value = task.get(fallback)
    if value in (None, ""):
        return None
    return str(value)


def task_reporter_id(task: Mapping) -> Optional[str]:
    return _foreign_key(task, "reporterUID", "reporterId")


def task_user_id(task: Mapping) -> Optional[str]:
    return _foreign_key(task, "userUID", "userId")


def empty_summary() -> Dict[str, Any]:
    return {
        "totalTasks": 0,
        "totalHours": 0,
        "totalTimeWithAI": 0,
        "averageHoursPerTask": 0,
        "tasksWithAI": 0,
        "aiUsagePercentage": 0,
        "completedTasks": 0,
        "completionRate": 0,
        "uniqueUsers": 0,
        "uniqueReporters": 0,
    }


# ---------------------------------------------------------------------------
# Base calculator
# ---------------------------------------------------------------------------


class BaseCalculator:
    """Validation, keying and date handling shared by every calculator."""

    def __init__(self, settings: Optional[AnalyticsSettings] = None) -> None:
        self.settings = settings or AnalyticsSettings()
        self._tz = self.settings.tzinfo

    # ------------------------------------------------------------------
    # Task selection
    # ------------------------------------------------------------------
    def validate_task(self, task: Any) -> bool:
        if not isinstance(task, Mapping):
            return False
        if not any(task.get(name) not in (None, "") for name in IDENTITY_FIELDS):
            return False
        hours = task.get("timeInHours")
        if hours in (None, ""):
            return True
        if isinstance(hours, bool):
            return False
        try:
            float(hours)
        except (TypeError, ValueError):
            return False
        return True

    def valid_tasks(self, tasks: Any) -> List[Mapping]:
        return [task for task in _ensure_list(tasks) if self.validate_task(task)]

    def filter_tasks_by_user(self, tasks: Any, user_id: Optional[str] = None) -> List[Any]:
        candidates = _ensure_list(tasks)
        if user_id in (None, ""):
            return candidates
        wanted = str(user_id)
        return [
            task
            for task in candidates
            if isinstance(task, Mapping) and task_user_id(task) == wanted
        ]

    def is_completed(self, task: Mapping) -> bool:
        return task.get("status") == self.settings.completed_status

    # ------------------------------------------------------------------
    # Cache keys
    # ------------------------------------------------------------------
    def generate_cache_key(
        self, tasks: Any, month_id: Optional[str], user_id: Optional[str] = None
    ) -> str:
        """Build a stable memoisation key for ``(tasks, month_id, user_id)``.

        Each task is hashed independently and the digests are sorted, so the
        key ignores task ordering but changes whenever any task's content does.
        """
        scope = "all" if user_id in (None, "") else f"user-{user_id}"
        prefix = f"{month_id}_{scope}"
        candidates = _ensure_list(tasks)
        if not candidates:
            return f"{prefix}_empty"
        digests = sorted(self._task_digest(task) for task in candidates)
        combined = hashlib.sha256("|".join(digests).encode("utf-8")).hexdigest()[:20]
        return f"{prefix}_{len(candidates)}_{combined}"

    @staticmethod
    def _task_digest(task: Any) -> str:
        try:
            payload = json.dumps(task, sort_keys=True, default=_serialise_value)
        except (TypeError, ValueError):
            payload = repr(task)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------
    def parse_date(self, value: Any) -> Optional[datetime]:
        """Parse ISO strings, dates, epoch milliseconds or ``{seconds}`` timestamps.

        Always returns an aware UTC datetime, or ``None`` when the value cannot
        be interpreted.
        """
        try:
            return self._coerce_datetime(value)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            LOGGER.debug("Skipping unparsable date %r: %s", value, exc)
            return None

    def _coerce_datetime(self, value: Any) -> Optional[datetime]:
        if value in (None, "") or isinstance(value, bool):
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        if isinstance(value, date):
            return datetime.combine(value, time(), tzinfo=timezone.utc)
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        if isinstance(value, Mapping):
            seconds = value.get("seconds", value.get("_seconds"))
            if seconds in (None, "") or isinstance(seconds, bool):
                return None
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            return datetime.fromtimestamp(float(seconds) + float(nanos) / 1e9, tz=timezone.utc)
        if hasattr(value, "seconds") and not isinstance(value, (str, timedelta)):
            nanos = getattr(value, "nanoseconds", 0) or 0
            return datetime.fromtimestamp(
                float(value.seconds) + float(nanos) / 1e9, tz=timezone.utc
            )
        if isinstance(value, str):
            parsed = dateutil_parse(value)
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
        return None

    def local_date(self, value: Any) -> Optional[date]:
        """Calendar date of ``value`` in the reporting timezone, or ``None``.

        Instants that cannot be shifted into the reporting timezone (for
        example ``0001-01-01`` west of UTC) yield ``None``.
        """
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        moment = self.parse_date(value)
        if moment is None:
            return None
        try:
            return moment.astimezone(self._tz).date()
        except (OverflowError, ValueError) as exc:
            LOGGER.debug("Skipping date %r outside the reporting range: %s", value, exc)
            return None

    def task_local_date(self, task: Mapping) -> Optional[date]:
        return self.local_date(task.get("createdAt"))

    def _local_date(self, value: Any) -> date:
        if isinstance(value, datetime):
            local = self.local_date(value)
            # Fall back to the UTC calendar date when the shift overflows.
            return local if local is not None else value.date()
        return value

    def get_week_key(self, value: Any) -> str:
        year, week, _ = self._local_date(value).isocalendar()
        return f"{year}-W{week:02d}"

    def get_day_key(self, value: Any) -> str:
        return self._local_date(value).isoformat()

    # ------------------------------------------------------------------
    # Canonical empty result
    # ------------------------------------------------------------------
    def get_empty_analytics(
        self, month_id: Optional[str], user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        return {
            "monthId": month_id,
            "userId": user_id,
            "summary": empty_summary(),
            "categories": {},
            "performance": {},
            "markets": {},
            "products": {},
            "aiAnalytics": {},
            "trends": {},
            "dailyAnalytics": {},
            "topReporter": {},
            "leaderboards": {},
            "lastCalculated": utc_now_iso(),
            "cacheKey": self.generate_cache_key([], month_id, user_id),
        }


__all__ = [
    "BaseCalculator",
    "UNCATEGORIZED",
    "UNKNOWN",
    "empty_summary",
    "percentage",
    "round_half_up",
    "task_ai_models",
    "task_ai_time",
    "task_category",
    "task_hours",
    "task_market",
    "task_product",
    "task_reporter_id",
    "task_user_id",
    "utc_now_iso",
]
