"""Best-effort lookups that turn reporter and user ids into display labels."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional

UNKNOWN_REPORTER = "Unknown Reporter"

_ID_FIELDS = ("id", "uid", "reporterUID")
_NAME_FIELDS = ("name", "displayName", "email")


class ReferenceDirectory:
    """Read-only index over reporter or user reference records.

    Malformed entries are skipped rather than rejected so that label
    enrichment can never fail an aggregation.
    """

    def __init__(self, references: Optional[Iterable[Any]] = None) -> None:
        self._by_id: Dict[str, Mapping] = {}
        if not isinstance(references, (list, tuple)):
            return
        for reference in references:
            if not isinstance(reference, Mapping):
                continue
            for key in _ID_FIELDS:
                value = reference.get(key)
                if value in (None, ""):
                    continue
                self._by_id.setdefault(str(value), reference)

    def __len__(self) -> int:
        return len({id(reference) for reference in self._by_id.values()})

    def __contains__(self, entity_id: Any) -> bool:
        return entity_id not in (None, "") and str(entity_id) in self._by_id

    def resolve(self, entity_id: Optional[str]) -> Dict[str, Any]:
        if entity_id in (None, ""):
            return {}
        return dict(self._by_id.get(str(entity_id), {}))

    def resolve_name(self, entity_id: Optional[str], fallback: str = UNKNOWN_REPORTER) -> str:
        reference = self._by_id.get(str(entity_id)) if entity_id not in (None, "") else None
        if not reference:
            return fallback
        for key in _NAME_FIELDS:
            value = reference.get(key)
            if value:
                return str(value)
        return fallback

    def resolve_email(self, entity_id: Optional[str]) -> str:
        reference = self._by_id.get(str(entity_id)) if entity_id not in (None, "") else None
        if not reference or not reference.get("email"):
            return ""
        return str(reference["email"])

    def known_ids(self) -> Iterable[str]:
        """Primary id of each distinct reference, in input order."""
        seen = set()
        for entity_id, reference in self._by_id.items():
            marker = id(reference)
            if marker in seen:
                continue
            seen.add(marker)
            yield entity_id


__all__ = ["ReferenceDirectory", "UNKNOWN_REPORTER"]
