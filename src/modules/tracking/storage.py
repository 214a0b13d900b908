"""Durable string key-value storage.

Backs state that must outlive the current process: the tracking session
identity and the pending-payment handoff marker.  ``CacheKeyValueStore``
writes to the Django cache (Redis in production) with no expiry.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional, Protocol

from django.core.cache import cache as default_cache

ACTIVE_DELIVERY_KEY = "activeTrackingDeliveryOrderId"
ACTIVE_COURIER_KEY = "activeTrackingDasherId"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class CacheKeyValueStore:
    """Key-value store on a Django cache backend; entries never expire."""

    def __init__(self, cache=None, prefix: str = "campusdash") -> None:
        self._cache = cache if cache is not None else default_cache
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get(self, key: str) -> Optional[str]:
        value = self._cache.get(self._key(key))
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        self._cache.set(self._key(key), str(value), timeout=None)

    def remove(self, key: str) -> None:
        self._cache.delete(self._key(key))


class MemoryKeyValueStore:
    """Process-local store, for tests and single-process tools."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = str(value)

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)
