"""
In-process cache of lookup results.

Entries expire after a TTL (24h by default). Expired entries are dropped by
the read that finds them; there is no background sweep and no size limit.
Nothing survives a restart.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import config
from services.binfinder.models import CollectionEntry
from services.common.logging_utils import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    stored_at: float
    payload: tuple[CollectionEntry, ...]


def make_cache_key(council_id: str, raw_text: str) -> str:
    return f"{council_id}|{raw_text.lower()}"


class ResultCache:
    """
    TTL cache keyed by make_cache_key().

    get/put are individually atomic. Concurrent misses for the same key are
    not collapsed: each caller fetches and the last put wins.
    """

    def __init__(self, ttl_seconds: Optional[int] = None, clock: Callable[[], float] = time.time):
        self.ttl_seconds = config.CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at > self.ttl_seconds

    def get(self, key: str) -> Optional[list[CollectionEntry]]:
        """Cached payload, or None on a miss (including an expired entry, which is evicted)."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss: %s", key)
                return None
            if self._is_expired(entry, now):
                del self._entries[key]
                logger.debug("Cache expired: %s", key)
                return None
        logger.debug("Cache hit: %s", key)
        return list(entry.payload)

    def put(self, key: str, payload: list[CollectionEntry]) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, stored_at=self._clock(), payload=tuple(payload))
        logger.debug("Cache store: %s (%d entries)", key, len(payload))

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
