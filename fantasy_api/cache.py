# fantasy_api/cache.py
from __future__ import annotations

import threading
import time
from typing import Any, Dict, Mapping, Optional, Tuple


def make_key(*parts: str) -> str:
    """
    Enforce namespaced cache keys to avoid collisions.
    Example:
      make_key("squads", "12345") -> "squads:12345"
    """
    key = ":".join([str(p).strip() for p in parts if str(p).strip()])
    if not key:
        raise ValueError("Cache key parts must not all be empty")
    return key


class CacheLayer:
    """
    In-memory TTL cache shared by the scraping components.

    Each entry lives under a purpose ("match_list", "match_format", "squads",
    "scorecard") with a default TTL for that purpose. Reads and writes are
    guarded by one lock; concurrent writers to the same key are last-writer-wins.
    """

    def __init__(self, ttls: Optional[Mapping[str, float]] = None, default_ttl: float = 60):
        self._ttls: Dict[str, float] = dict(ttls or {})
        self._default_ttl = default_ttl
        # key -> (expires_at_epoch, value)
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def ttl_for(self, purpose: str) -> float:
        return self._ttls.get(purpose, self._default_ttl)

    def get(self, purpose: str, key: str) -> Optional[Any]:
        ckey = make_key(purpose, key)
        with self._lock:
            item = self._entries.get(ckey)
            if not item:
                return None

            expires_at, value = item
            if time.time() > expires_at:
                self._entries.pop(ckey, None)
                return None

            return value

    def set(self, purpose: str, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_for(purpose) if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            # Do not cache if TTL is invalid
            return
        now = time.time()
        with self._lock:
            self._prune_locked(now)
            self._entries[make_key(purpose, key)] = (now + ttl, value)

    def prune_expired(self) -> int:
        """Drop every expired entry; returns how many were dropped."""
        with self._lock:
            return self._prune_locked(time.time())

    def _prune_locked(self, now: float) -> int:
        expired = [k for k, (exp, _) in self._entries.items() if now > exp]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def invalidate(self, purpose: str, key: Optional[str] = None) -> None:
        """Drop one key, or every key of a purpose when `key` is None."""
        with self._lock:
            if key is not None:
                self._entries.pop(make_key(purpose, key), None)
                return
            prefix = make_key(purpose) + ":"
            for k in [k for k in self._entries if k.startswith(prefix)]:
                del self._entries[k]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def debug_snapshot(self) -> Dict[str, float]:
        """
        Returns current cache keys with remaining TTL (seconds).
        Useful for debugging.
        """
        now = time.time()
        with self._lock:
            self._prune_locked(now)
            return {k: max(0.0, exp - now) for k, (exp, _) in self._entries.items()}
