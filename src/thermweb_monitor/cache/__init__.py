"""Edge cache backends for proxied responses and alert state."""

from thermweb_monitor.cache.base import EdgeCache
from thermweb_monitor.cache.file import FileEdgeCache
from thermweb_monitor.cache.memory import MemoryEdgeCache
from thermweb_monitor.config import MonitorSettings

__all__ = ["EdgeCache", "FileEdgeCache", "MemoryEdgeCache", "create_cache"]


def create_cache(settings: MonitorSettings) -> EdgeCache:
    """Build the cache backend selected in settings."""
    if settings.cache_backend == "memory":
        return MemoryEdgeCache()
    assert settings.cache_dir is not None  # enforced by settings validation
    return FileEdgeCache(settings.cache_dir)
