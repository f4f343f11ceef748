"""File-backed edge cache with atomic writes for crash-safe persistence."""

import hashlib
import json
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import structlog

from thermweb_monitor.cache.base import EdgeCache

log = structlog.get_logger()


class FileEdgeCache(EdgeCache):
    """Stores one JSON envelope per key in a directory.

    Each entry is written to a temp file in the same directory and renamed
    over the target, so a reader sees either the old or the new value and
    never a partial write.

    Envelope format:
        {"key": "<original key>", "value": "<string>", "expires_at": <epoch or null>}
    """

    ENTRY_SUFFIX = ".entry.json"

    def __init__(
        self,
        cache_dir: Union[str, Path],
        clock: Callable[[], float] = time.time,
        purge_every: int = 100,
    ) -> None:
        """Initialize file cache.

        Args:
            cache_dir: Directory for cache entries (created on first write)
            clock: Epoch-seconds clock used for expiry
            purge_every: Sweep expired entries from disk after this many writes
        """
        self.cache_dir = Path(cache_dir)
        self._clock = clock
        self._purge_every = max(1, purge_every)
        self._puts = 0
        self._puts_lock = threading.Lock()

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}{self.ENTRY_SUFFIX}"

    def _read_envelope(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            envelope = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            log.warning("cache_entry_corrupted", path=str(path), error=str(e))
            return None

        if not isinstance(envelope, dict) or not isinstance(envelope.get("value"), str):
            log.warning("cache_entry_corrupted", path=str(path), error="bad envelope")
            return None
        return envelope

    def _expired(self, envelope: Dict[str, Any]) -> bool:
        expires_at = envelope.get("expires_at")
        return expires_at is not None and float(expires_at) <= self._clock()

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        envelope = self._read_envelope(path)
        if envelope is None:
            return None
        if self._expired(envelope):
            path.unlink(missing_ok=True)
            return None
        return envelope["value"]

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Write an entry atomically.

        Raises:
            PermissionError: If writing to the cache directory is not allowed
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        envelope = {
            "key": key,
            "value": value,
            "expires_at": self._clock() + ttl if ttl else None,
        }
        content = json.dumps(envelope, ensure_ascii=False)

        # Atomic write: temp file in same directory, then rename
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.cache_dir,
            prefix=".tmp-entry-",
            suffix=".json",
        )
        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(temp_path, self._path_for(key))
        except PermissionError:
            Path(temp_path).unlink(missing_ok=True)
            log.error("cache_write_permission_denied", path=str(self.cache_dir))
            raise
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

        with self._puts_lock:
            self._puts += 1
            due = self._puts % self._purge_every == 0
        if due:
            self.purge_expired()

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        existed = path.exists()
        path.unlink(missing_ok=True)
        return existed

    def keys(self) -> List[str]:
        if not self.cache_dir.exists():
            return []
        found = []
        for path in self.cache_dir.glob(f"*{self.ENTRY_SUFFIX}"):
            envelope = self._read_envelope(path)
            if envelope is None or self._expired(envelope):
                continue
            key = envelope.get("key")
            if isinstance(key, str):
                found.append(key)
        return sorted(found)

    def purge_expired(self) -> int:
        if not self.cache_dir.exists():
            return 0
        removed = 0
        for path in self.cache_dir.glob(f"*{self.ENTRY_SUFFIX}"):
            envelope = self._read_envelope(path)
            if envelope is not None and self._expired(envelope):
                path.unlink(missing_ok=True)
                removed += 1
        if removed:
            log.debug("cache_entries_purged", removed=removed, path=str(self.cache_dir))
        return removed
