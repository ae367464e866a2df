from __future__ import annotations
import threading, time
from typing import Any, Callable, Dict, Optional, Protocol

from .types import CacheEntry
from .config import CACHE_TTL_HOURS


class KeyedStore(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]: ...
    def set(self, key: str, value: Dict[str, Any]) -> None: ...
    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-wide keyed store; values are plain JSON-safe dicts."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            val = self._data.get(key)
            return dict(val) if val is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            self._data[key] = dict(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class TTLCache:
    """Time-boxed view over a KeyedStore.

    An entry is readable while ``now - captured_at < ttl``. Expired entries
    read as absent but stay in the backing store until overwritten.
    """

    def __init__(self, store: KeyedStore, ttl_seconds: float = CACHE_TTL_HOURS * 3600,
                 clock: Callable[[], float] = time.time, prefix: str = "ai_suggestions_"):
        self.store = store
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[CacheEntry]:
        raw = self.store.get(self._key(key))
        if not raw:
            return None
        try:
            entry = CacheEntry(key=key, value=str(raw["value"]), captured_at=float(raw["captured_at"]))
        except (KeyError, TypeError, ValueError):
            return None
        if self._clock() - entry.captured_at >= self.ttl_seconds:
            return None
        return entry

    def put(self, key: str, value: str) -> CacheEntry:
        entry = CacheEntry(key=key, value=value, captured_at=self._clock())
        self.store.set(self._key(key), {"value": entry.value, "captured_at": entry.captured_at})
        return entry
