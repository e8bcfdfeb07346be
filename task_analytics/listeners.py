"""Registry of live data subscriptions and their cancel handles."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List

LOGGER = logging.getLogger(__name__)

CancelHandle = Callable[[], None]


class ListenerRegistry:
    """Thread-safe map from a subscription key to its cancel callable.

    Only one live subscription is kept per key; registering an already live
    key is refused so that duplicate listeners are never attached.
    """

    def __init__(self) -> None:
        self._handles: Dict[str, CancelHandle] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)

    def register(self, key: str, cancel: CancelHandle) -> bool:
        if not callable(cancel):
            raise TypeError("cancel handle must be callable")
        with self._lock:
            if key in self._handles:
                LOGGER.debug("Listener %s already registered", key)
                return False
            self._handles[key] = cancel
            return True

    def unregister(self, key: str) -> bool:
        with self._lock:
            cancel = self._handles.pop(key, None)
        if cancel is None:
            return False
        self._cancel(key, cancel)
        return True

    def get(self, key: str) -> CancelHandle:
        with self._lock:
            if key not in self._handles:
                raise KeyError(f"Unknown listener '{key}'")
            return self._handles[key]

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._handles

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._handles)

    def clear(self) -> None:
        """Cancel and remove every registered listener."""
        with self._lock:
            handles = list(self._handles.items())
            self._handles.clear()
        for key, cancel in handles:
            self._cancel(key, cancel)

    @staticmethod
    def _cancel(key: str, cancel: CancelHandle) -> None:
        try:
            cancel()
        except Exception:  # pragma: no cover - defensive logging
            LOGGER.exception("Failed to cancel listener %s", key)


__all__ = ["CancelHandle", "ListenerRegistry"]
