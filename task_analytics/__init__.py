"""Aggregation engine behind the team task-board analytics dashboard."""

from .analytics import AnalyticsCalculator, get_analytics_calculator
from .cache import AnalyticsCache
from .cards import CardMetric, CardType, UnknownCardError, get_card_type
from .listeners import ListenerRegistry
from .settings import AnalyticsSettings

__all__ = [
    "AnalyticsCache",
    "AnalyticsCalculator",
    "AnalyticsSettings",
    "CardMetric",
    "CardType",
    "ListenerRegistry",
    "UnknownCardError",
    "get_analytics_calculator",
    "get_card_type",
]
