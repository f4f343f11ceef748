"""In-process edge cache."""

import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from thermweb_monitor.cache.base import EdgeCache


class MemoryEdgeCache(EdgeCache):
    """Dictionary-backed cache with per-entry expiry.

    State is lost on restart, so this backend suits tests and single-process
    deployments where alert state may start fresh.
    """

    def __init__(self, clock: Callable[[], float] = time.time, purge_every: int = 100) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()
        self._purge_every = max(1, purge_every)
        self._puts = 0

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            self._entries[key] = (value, expires_at)
            self._puts += 1
            if self._puts % self._purge_every == 0:
                self._purge_locked()

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def keys(self) -> List[str]:
        now = self._clock()
        with self._lock:
            return sorted(
                key
                for key, (_, expires_at) in self._entries.items()
                if expires_at is None or expires_at > now
            )

    def _purge_locked(self) -> int:
        now = self._clock()
        expired = [
            key
            for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked()
