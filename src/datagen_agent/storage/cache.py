"""In-process TTL caches for catalog search results and dataset samples."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from ..constants import SAMPLE_CACHE_TTL_SEC, SEARCH_CACHE_TTL_SEC
from ..utils.text import normalize_topic

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


class TTLStore:
    """Key/value store with absolute per-entry expiry.

    Expired entries are reported as misses on read even when the background
    sweeper has not run yet. The optional ``max_entries`` bound evicts the least
    recently used key.
    """

    def __init__(
        self,
        ttl_sec: float,
        *,
        sweep_interval_sec: float | None = None,
        max_entries: int | None = None,
        clock: Clock = time.monotonic,
        name: str = "cache",
    ) -> None:
        if ttl_sec <= 0:
            raise ValueError("ttl_sec must be positive")
        self.ttl_sec = float(ttl_sec)
        self.sweep_interval_sec = float(sweep_interval_sec or ttl_sec / 6)
        self.max_entries = max_entries if max_entries and max_entries > 0 else None
        self.name = name
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_sec: float | None = None) -> None:
        expires_at = self._clock() + float(ttl_sec or self.ttl_sec)
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("%s evicted %s (size bound)", self.name, evicted)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("%s swept %d expired entries", self.name, len(expired))
        return len(expired)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "keys": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "ttl_sec": self.ttl_sec,
                "max_entries": self.max_entries,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def start_sweeper(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name=f"{self.name}-sweeper", daemon=True)
        self._sweeper.start()

    def close(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval_sec):
            try:
                self.purge_expired()
            except Exception:  # pragma: no cover - keep the sweeper alive
                logger.exception("%s sweep failed", self.name)


class CacheService:
    """Two cache partitions: short-lived search contexts and long-lived samples."""

    def __init__(
        self,
        *,
        search_ttl_sec: float = SEARCH_CACHE_TTL_SEC,
        sample_ttl_sec: float = SAMPLE_CACHE_TTL_SEC,
        sweep_divisor: int = 6,
        max_entries: int | None = None,
        clock: Clock = time.monotonic,
        start_sweepers: bool = False,
    ) -> None:
        divisor = max(1, int(sweep_divisor))
        self.search = TTLStore(
            search_ttl_sec,
            sweep_interval_sec=search_ttl_sec / divisor,
            max_entries=max_entries,
            clock=clock,
            name="search-cache",
        )
        self.samples = TTLStore(
            sample_ttl_sec,
            sweep_interval_sec=sample_ttl_sec / divisor,
            max_entries=max_entries,
            clock=clock,
            name="sample-cache",
        )
        if start_sweepers:
            self.start()

    @staticmethod
    def search_key(topic: str) -> str:
        return f"search:{normalize_topic(topic)}"

    @staticmethod
    def sample_key(source_type: str, reference: str) -> str:
        return f"sample:{source_type}:{reference}"

    def get_search_context(self, topic: str) -> Any | None:
        key = self.search_key(topic)
        cached = self.search.get(key)
        logger.debug("Cache %s for %s", "HIT" if cached is not None else "MISS", key)
        return cached

    def set_search_context(self, topic: str, context: Any) -> None:
        self.search.set(self.search_key(topic), context)

    def get_sample(self, source_type: str, reference: str) -> Any | None:
        key = self.sample_key(source_type, reference)
        cached = self.samples.get(key)
        logger.debug("Cache %s for %s", "HIT" if cached is not None else "MISS", key)
        return cached

    def set_sample(self, source_type: str, reference: str, sample: Any) -> None:
        self.samples.set(self.sample_key(source_type, reference), sample)

    def clear_all(self) -> None:
        self.search.clear()
        self.samples.clear()
        logger.info("All caches cleared")

    def stats(self) -> dict[str, Any]:
        return {"search": self.search.stats(), "sample": self.samples.stats()}

    def start(self) -> None:
        self.search.start_sweeper()
        self.samples.start_sweeper()

    def close(self) -> None:
        self.search.close()
        self.samples.close()
