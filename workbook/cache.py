"""
In-process TTL cache for domain services.

This cache sits beside the service request engine, never inside it:
domain services derive a key with generate_cache_key(), look it up here, and
only call the engine on a miss. BaseService and the transports never touch it.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheSettings:
    """Per-domain TTLs, in seconds."""

    contacts_ttl: int = 900
    jobs_ttl: int = 300
    resources_ttl: int = 900

    @classmethod
    def from_env(cls) -> "CacheSettings":
        return cls(
            contacts_ttl=int(os.getenv("CACHE_CONTACTS_TTL", "900")),
            jobs_ttl=int(os.getenv("CACHE_JOBS_TTL", "300")),
            resources_ttl=int(os.getenv("CACHE_RESOURCES_TTL", "900")),
        )


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


class CacheManager:
    """
    Thread-safe TTL cache.

    Expired entries are evicted lazily, on read and when listing keys.
    """

    def __init__(self, settings: Optional[CacheSettings] = None, clock=time.monotonic):
        self.settings = settings or CacheSettings()
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at <= self._clock():
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1

        logger.debug("Cache HIT: %s", key)
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if ttl is None:
            ttl = self.settings.contacts_ttl
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
        logger.debug("Cache SET: %s (ttl=%ss)", key, ttl)
        return True

    def set_contacts(self, key: str, value: Any) -> bool:
        return self.set(key, value, self.settings.contacts_ttl)

    def set_jobs(self, key: str, value: Any) -> bool:
        return self.set(key, value, self.settings.jobs_ttl)

    def set_resources(self, key: str, value: Any) -> bool:
        return self.set(key, value, self.settings.resources_ttl)

    def delete(self, key: str) -> int:
        with self._lock:
            removed = self._entries.pop(key, None)
        return 0 if removed is None else 1

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with `prefix`. Returns the number removed."""
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("Cache DEL %d keys with prefix %s", len(doomed), prefix)
        return len(doomed)

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Cache flushed")

    def keys(self) -> List[str]:
        with self._lock:
            self._evict_expired()
            return list(self._entries)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            self._evict_expired()
            return {
                "hits": self._hits,
                "misses": self._misses,
                "keys": len(self._entries),
            }

    def _evict_expired(self) -> None:
        now = self._clock()
        for key in [k for k, e in self._entries.items() if e.expires_at <= now]:
            del self._entries[key]
