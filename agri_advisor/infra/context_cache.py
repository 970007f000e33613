"""Last-known-good cache for context fetches."""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Optional, Tuple


@dataclass(frozen=True)
class CachedValue:
    value: object
    fetched_at: datetime


class MemoryContextCache:
    def __init__(self, max_items: int, ttl_seconds: int) -> None:
        self._max_items = max(1, int(max_items))
        self._ttl_seconds = max(1, int(ttl_seconds))
        self._items: "OrderedDict[str, Tuple[CachedValue, float]]" = OrderedDict()
        self._lock = Lock()

    @staticmethod
    def make_key(field_name: str, user_id: str, region: str, season: str) -> str:
        return "|".join((field_name, user_id or "", (region or "").lower(), season))

    def get(self, cache_key: str) -> Optional[CachedValue]:
        now = time.monotonic()
        with self._lock:
            item = self._items.get(cache_key)
            if not item:
                return None
            cached, expires_at = item
            if expires_at <= now:
                self._items.pop(cache_key, None)
                return None
            self._items.move_to_end(cache_key)
            return cached

    def set(self, cache_key: str, value: object, fetched_at: datetime) -> None:
        expires_at = time.monotonic() + self._ttl_seconds
        with self._lock:
            self._items[cache_key] = (CachedValue(value=value, fetched_at=fetched_at), expires_at)
            self._items.move_to_end(cache_key)
            while len(self._items) > self._max_items:
                self._items.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
