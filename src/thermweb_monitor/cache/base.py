"""Edge cache interface.

The edge cache is a plain string key-value store with optional expiry. It
backs both the reverse-proxy response cache and the alert state store.
There are no transactions: the last write for a key wins.

Expired entries are dropped when read and swept periodically on write, so
keys that are never read again do not accumulate.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class EdgeCache(ABC):
    """Key-value cache used for proxied responses and alert state."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or expired."""

    @abstractmethod
    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store a value atomically, optionally expiring after ``ttl`` seconds."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if something was removed."""

    @abstractmethod
    def keys(self) -> List[str]:
        """List live (non-expired) keys."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Drop expired entries from storage. Returns how many were removed."""
