"""In-memory TTL cache for fetched holdings and verified tokens."""

import time
import threading
from typing import Any

from portfolio_dashboard.config import AUTH_CACHE_TTL, PORTFOLIO_CACHE_TTL


class CacheService:
    """Thread-safe key/value store whose entries expire after a TTL."""

    def __init__(self, default_ttl: int = 300):
        self._entries: dict[str, tuple[Any, float]] = {}
        self._default_ttl = default_ttl
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        expires_at = time.monotonic() + (self._default_ttl if ttl is None else ttl)
        with self._lock:
            self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix; returns how many were removed."""
        with self._lock:
            stale = [k for k in self._entries if k.startswith(prefix)]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def purge_expired(self) -> int:
        now = time.monotonic()
        with self._lock:
            stale = [k for k, (_, exp) in self._entries.items() if now >= exp]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Global cache instances
portfolio_cache = CacheService(default_ttl=PORTFOLIO_CACHE_TTL)
token_cache = CacheService(default_ttl=AUTH_CACHE_TTL)
