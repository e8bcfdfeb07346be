"""Tunable constants for the analytics engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, TypeVar

import pytz
from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "TASKBOARD_"
DEFAULT_MARKET_COUNTRIES: Tuple[str, ...] = ("at", "it", "gr", "fr")

_T = TypeVar("_T")


def _read_env(name: str, default: _T, parser: Callable[[str], _T]) -> _T:
    raw = os.getenv(f"{ENV_PREFIX}{name}")
    if raw is None or raw.strip() == "":
        return default
    try:
        return parser(raw.strip())
    except (TypeError, ValueError):
        LOGGER.warning(
            "Ignoring invalid value %r for %s%s; using default %r",
            raw,
            ENV_PREFIX,
            name,
            default,
        )
        return default


def _parse_countries(raw: str) -> Tuple[str, ...]:
    countries = tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    if not countries:
        raise ValueError("At least one country code is required")
    return countries


def _parse_positive_int(raw: str) -> int:
    value = int(raw)
    if value <= 0:
        raise ValueError("Value must be positive")
    return value


def _parse_non_negative_float(raw: str) -> float:
    value = float(raw)
    if value < 0:
        raise ValueError("Value must not be negative")
    return value


def resolve_timezone(tz_name: Optional[str]):
    """Return a pytz timezone for ``tz_name``, falling back to UTC."""
    if not tz_name:
        return pytz.utc
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        LOGGER.warning("Unknown timezone %r; falling back to UTC", tz_name)
        return pytz.utc


@dataclass(frozen=True)
class AnalyticsSettings:
    """Named heuristics and reporting options used by every calculator.

    The AI savings rate, hourly rate and base model efficiency are estimates
    rather than measured figures, so deployments can override them through
    ``TASKBOARD_*`` environment variables (see :meth:`from_env`).
    """

    ai_time_savings_rate: float = 0.3
    hourly_rate: float = 50.0
    model_base_efficiency: float = 75.0
    completed_status: str = "completed"
    timezone: str = "UTC"
    market_countries: Tuple[str, ...] = field(default=DEFAULT_MARKET_COUNTRIES)
    cache_ttl_seconds: float = 120.0
    cache_max_size: int = 30

    @classmethod
    def from_env(cls) -> "AnalyticsSettings":
        load_dotenv()
        defaults = cls()
        tz_name = _read_env("TIMEZONE", defaults.timezone, str)
        if resolve_timezone(tz_name) is pytz.utc and tz_name.upper() != "UTC":
            tz_name = "UTC"
        return cls(
            ai_time_savings_rate=_read_env(
                "AI_TIME_SAVINGS_RATE", defaults.ai_time_savings_rate, _parse_non_negative_float
            ),
            hourly_rate=_read_env("HOURLY_RATE", defaults.hourly_rate, _parse_non_negative_float),
            model_base_efficiency=_read_env(
                "MODEL_BASE_EFFICIENCY", defaults.model_base_efficiency, _parse_non_negative_float
            ),
            completed_status=_read_env("COMPLETED_STATUS", defaults.completed_status, str),
            timezone=tz_name,
            market_countries=_read_env(
                "MARKET_COUNTRIES", defaults.market_countries, _parse_countries
            ),
            cache_ttl_seconds=_read_env(
                "CACHE_TTL_SECONDS", defaults.cache_ttl_seconds, _parse_non_negative_float
            ),
            cache_max_size=_read_env("CACHE_MAX_SIZE", defaults.cache_max_size, _parse_positive_int),
        )

    @property
    def tzinfo(self):
        return resolve_timezone(self.timezone)


__all__ = ["AnalyticsSettings", "resolve_timezone", "DEFAULT_MARKET_COUNTRIES"]
