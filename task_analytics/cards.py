"""Dashboard card identifiers and the extractors that map analytics onto them."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

LOGGER = logging.getLogger(__name__)


class UnknownCardError(KeyError):
    """Raised when a card identifier is outside the supported set."""

    def __init__(self, card_type: Any):
        super().__init__(card_type)
        self.card_type = card_type

    def __str__(self) -> str:
        return f"Unknown metric type: {self.card_type}"


class CardType(str, Enum):
    TOTAL_TASKS = "total-tasks"
    TOTAL_HOURS = "total-hours"
    AI_COMBINED = "ai-combined"
    DEVELOPMENT = "development"
    DESIGN = "design"
    VIDEO = "video"
    USER_PERFORMANCE = "user-performance"
    TOP_REPORTER = "top-reporter"
    MARKETS = "markets"
    PRODUCTS = "products"


CATEGORY_CARDS = frozenset({CardType.DEVELOPMENT, CardType.DESIGN, CardType.VIDEO})


@dataclass
class CardMetric:
    value: Any = 0
    additional_data: Dict[str, Any] = field(default_factory=dict)
    is_loading: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "additionalData": self.additional_data,
            "isLoading": self.is_loading,
            "error": self.error,
        }


def get_card_type(card_type: Union[str, CardType]) -> CardType:
    if isinstance(card_type, CardType):
        return card_type
    try:
        return CardType(card_type)
    except ValueError:
        raise UnknownCardError(card_type) from None


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------

Extraction = Tuple[Any, Dict[str, Any]]


def _section(source: Any, key: str) -> Mapping:
    value = source.get(key) if isinstance(source, Mapping) else None
    return value if isinstance(value, Mapping) else {}


def _number(source: Mapping, key: str) -> Any:
    value = source.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _total_tasks(analytics: Mapping, category: Optional[str]) -> Extraction:
    summary = _section(analytics, "summary")
    return _number(summary, "totalTasks"), {
        "completedTasks": _number(summary, "completedTasks"),
        "completionRate": _number(summary, "completionRate"),
        "averageHours": _number(summary, "averageHoursPerTask"),
    }


def _total_hours(analytics: Mapping, category: Optional[str]) -> Extraction:
    summary = _section(analytics, "summary")
    return _number(summary, "totalHours"), {
        "averageHours": _number(summary, "averageHoursPerTask"),
        "totalTasks": _number(summary, "totalTasks"),
    }


def _ai_combined(analytics: Mapping, category: Optional[str]) -> Extraction:
    ai = _section(analytics, "aiAnalytics")
    return _number(ai, "totalAITasks"), {
        "totalAITime": _number(ai, "totalAITime"),
        "aiUsagePercentage": _number(ai, "aiUsagePercentage"),
        "aiEfficiency": _number(ai, "aiEfficiency"),
        "aiCostSavings": _number(ai, "aiCostSavings"),
        "aiModels": dict(_section(ai, "aiModels")),
    }


def _category(analytics: Mapping, category: Optional[str]) -> Extraction:
    data = _section(_section(analytics, "categories"), category or "")
    return _number(data, "count"), {
        "category": category,
        "totalHours": _number(data, "totalHours"),
        "averageHours": _number(data, "averageHours"),
        "aiUsagePercentage": _number(data, "aiUsagePercentage"),
        "completionRate": _number(data, "completionRate"),
    }


def _user_performance(analytics: Mapping, category: Optional[str]) -> Extraction:
    # The card shows how many people contributed; the score lives in additionalData.
    summary = _section(analytics, "summary")
    performance = _section(analytics, "performance")
    return _number(summary, "uniqueUsers"), {
        "efficiency": _number(performance, "efficiency"),
        "productivity": _number(performance, "productivity"),
        "quality": _number(performance, "quality"),
        "completedTasks": _number(performance, "completedTasks"),
        "overallScore": _number(performance, "overallScore"),
    }


def _top_reporter(analytics: Mapping, category: Optional[str]) -> Extraction:
    summary = _section(analytics, "summary")
    top = _section(analytics, "topReporter")
    board = _section(_section(analytics, "leaderboards"), "reporters")
    return _number(summary, "uniqueReporters"), {
        "reporterId": top.get("id"),
        "reporterName": top.get("name") or "No Reporter",
        "topReporterTasks": _number(top, "count"),
        "totalHours": _number(top, "totalHours"),
        "averageHours": _number(top, "averageHours"),
        "aiUsagePercentage": _number(top, "aiUsagePercentage"),
        "averageTasksPerReporter": _number(board, "averageTasksPerReporter"),
    }


def _entity_card(section_key: str, entity_name: str) -> Callable[[Mapping, Optional[str]], Extraction]:
    board_key = section_key

    def extract(analytics: Mapping, category: Optional[str]) -> Extraction:
        entities = _section(analytics, section_key)
        board = _section(_section(analytics, "leaderboards"), board_key)
        top = _section(board, f"top{entity_name}")
        additional = {
            f"{entity_name.lower()}Data": dict(entities),
            "totalTasks": _number(_section(analytics, "summary"), "totalTasks"),
            f"top{entity_name}Name": top.get("name") or f"No {entity_name}",
            f"top{entity_name}Tasks": _number(top, "totalTasks"),
            f"top{entity_name}Hours": _number(top, "totalHours"),
            f"averageTasksPer{entity_name}": _number(board, f"averageTasksPer{entity_name}"),
            f"averageHoursPer{entity_name}": _number(board, f"averageHoursPer{entity_name}"),
        }
        if "countryBreakdown" in board:
            additional["countryBreakdown"] = dict(board["countryBreakdown"])
        return len(entities), additional

    return extract


CARD_EXTRACTORS: Dict[CardType, Callable[[Mapping, Optional[str]], Extraction]] = {
    CardType.TOTAL_TASKS: _total_tasks,
    CardType.TOTAL_HOURS: _total_hours,
    CardType.AI_COMBINED: _ai_combined,
    CardType.DEVELOPMENT: _category,
    CardType.DESIGN: _category,
    CardType.VIDEO: _category,
    CardType.USER_PERFORMANCE: _user_performance,
    CardType.TOP_REPORTER: _top_reporter,
    CardType.MARKETS: _entity_card("markets", "Market"),
    CardType.PRODUCTS: _entity_card("products", "Product"),
}


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


def extract_card_metric(
    card_type: Union[str, CardType], analytics: Any, category: Optional[str] = None
) -> CardMetric:
    """Return the display metric for one card; never raises."""
    try:
        card = get_card_type(card_type)
    except UnknownCardError as exc:
        LOGGER.warning("Unknown dashboard card requested: %r", card_type)
        return CardMetric(error=str(exc))

    if not isinstance(analytics, Mapping):
        return CardMetric()

    if card in CATEGORY_CARDS and not category:
        category = card.value
    try:
        value, additional = CARD_EXTRACTORS[card](analytics, category)
    except Exception as exc:  # pragma: no cover - defensive logging
        LOGGER.exception("Failed to extract metric for card %s: %s", card.value, exc)
        return CardMetric(error=str(exc) or exc.__class__.__name__)
    return CardMetric(value=value, additional_data=additional)


def extract_all_metrics(analytics: Any) -> Dict[str, CardMetric]:
    return {card.value: extract_card_metric(card, analytics) for card in CardType}


__all__ = [
    "CARD_EXTRACTORS",
    "CardMetric",
    "CardType",
    "UnknownCardError",
    "extract_all_metrics",
    "extract_card_metric",
    "get_card_type",
]
