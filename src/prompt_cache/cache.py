#!/usr/bin/env python3
"""
System Prompt Cache
In-memory caching of assembled system prompts with TTL and bounded size

Implements:
- get(context) → prompt | None
- set(context, prompt)
- invalidate_user(user_id)
- stats() → {size, oldest_entry_age_ms}
- clear_expired() / clear() / close()
- get_metrics() → {hits, misses, writes, evictions, ...}
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .config import CacheConfig
from .eviction import build_eviction_policy
from .key_generator import CacheKeyGenerator, ContextDescriptor
from .observability import CacheEventRecord
from .sweeper import ExpirySweeper

logger = logging.getLogger(__name__)

ContextLike = Union[ContextDescriptor, Mapping[str, Any]]
EventSink = Callable[[Dict[str, Any]], None]


@dataclass(frozen=True)
class CacheEntry:
    value: str
    inserted_at: float
    user_id: str


class SystemPromptCache:
    """
    Bounded in-memory cache in front of system prompt assembly.

    Design principles:
    - Graceful degradation: anything unexpected is a miss, never an error
    - Lazy expiry: stale entries are dropped by the get that finds them
    - Insertion-order eviction by default; reads do not refresh position
    - One lock per instance: every public operation is atomic
    """

    def __init__(
        self,
        capacity: int = 100,
        ttl_sec: float = 3600,
        eviction_policy: str = "fifo",
        clock: Optional[Callable[[], float]] = None,
        key_generator: Optional[CacheKeyGenerator] = None,
        on_event: Optional[EventSink] = None,
    ):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        if ttl_sec <= 0:
            raise ValueError(f"ttl_sec must be positive, got {ttl_sec}")

        self.capacity = capacity
        self.ttl_sec = ttl_sec
        self.eviction = build_eviction_policy(eviction_policy)
        self.key_generator = key_generator or CacheKeyGenerator()

        self._clock = clock or time.time
        self._on_event = on_event
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._sweeper: Optional[ExpirySweeper] = None

        self.metrics = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "evictions": 0,
            "expirations": 0,
            "invalidations": 0,
            "start_time": self._clock(),
        }

        logger.info(
            f"SystemPromptCache initialized (capacity={capacity}, ttl={ttl_sec}s, "
            f"eviction={self.eviction.name})"
        )

    @classmethod
    def from_config(
        cls,
        config: CacheConfig,
        clock: Optional[Callable[[], float]] = None,
        on_event: Optional[EventSink] = None,
    ) -> "SystemPromptCache":
        cache = cls(
            capacity=config.capacity,
            ttl_sec=config.ttl_sec,
            eviction_policy=config.eviction_policy,
            clock=clock,
            on_event=on_event,
        )
        if config.sweep_interval_sec > 0:
            cache.attach_sweeper(ExpirySweeper(cache, config.sweep_interval_sec))
        return cache

    def attach_sweeper(self, sweeper: ExpirySweeper) -> None:
        if self._sweeper is not None and self._sweeper is not sweeper:
            self._sweeper.stop()
        self._sweeper = sweeper
        sweeper.start()

    def _key_for(self, context: Any) -> Optional[tuple]:
        if isinstance(context, Mapping):
            context = ContextDescriptor.from_dict(context)
        if not isinstance(context, ContextDescriptor):
            return None
        user_id = str(context.user_id or "")
        if not user_id:
            return None
        return self.key_generator.generate_cache_key(context), user_id

    def _is_stale(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.inserted_at > self.ttl_sec

    def get(self, context: ContextLike) -> Optional[str]:
        """
        Return the cached prompt for this context, or None.

        An entry older than the TTL is deleted here and reported as a miss.
        """
        resolved = self._key_for(context)
        if resolved is None:
            logger.debug(f"Unusable context for cache get: {type(context).__name__}")
            return None
        key, user_id = resolved

        events: List[CacheEventRecord] = []
        with self._lock:
            entry = self._entries.get(key)
            now = self._clock()

            if entry is not None and self._is_stale(entry, now):
                del self._entries[key]
                self.metrics["expirations"] += 1
                self._track(events, "expire", len(self._entries), key, user_id, reason="ttl")
                entry = None

            if entry is None:
                self.metrics["misses"] += 1
                self._track(events, "miss", len(self._entries), key, user_id)
                result = None
            else:
                self.eviction.on_access(self._entries, key)
                self.metrics["hits"] += 1
                self._track(events, "hit", len(self._entries), key, user_id)
                result = entry.value

        logger.debug(f"System prompt cache {'HIT' if result is not None else 'MISS'} (key={key})")
        self._emit(events)
        return result

    def set(self, context: ContextLike, value: str) -> None:
        """
        Store a prompt for this context, evicting once if the store is full.

        Overwriting an existing key resets its timestamp and makes it the
        newest entry. Never raises for capacity pressure.
        """
        resolved = self._key_for(context)
        if resolved is None:
            logger.debug(f"Unusable context for cache set: {type(context).__name__}")
            return
        key, user_id = resolved

        events: List[CacheEventRecord] = []
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.capacity:
                victim = self.eviction.select_victim(self._entries)
                if victim is not None:
                    evicted = self._entries.pop(victim)
                    self.metrics["evictions"] += 1
                    self._track(events, "evict", len(self._entries), victim, evicted.user_id, reason="capacity")
                    logger.debug(f"Evicted {victim} ({self.eviction.name}, capacity={self.capacity})")

            self._entries[key] = CacheEntry(value=value, inserted_at=self._clock(), user_id=user_id)
            self.metrics["writes"] += 1
            self._track(events, "write", len(self._entries), key, user_id)

        logger.debug(f"Cached system prompt (key={key}, ttl={self.ttl_sec}s)")
        self._emit(events)

    def invalidate_user(self, user_id: str) -> None:
        """Drop every entry belonging to user_id, regardless of TTL or band."""
        user_id = str(user_id)
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if entry.user_id == user_id]
            for key in doomed:
                del self._entries[key]
            self.metrics["invalidations"] += len(doomed)
            size = len(self._entries)

        if not doomed:
            return
        logger.info(f"Invalidated {len(doomed)} cached prompts for user {user_id}")
        events: List[CacheEventRecord] = []
        self._track(events, "invalidate", size, user_id=user_id, count=len(doomed), reason="user_change")
        self._emit(events)

    def stats(self) -> Dict[str, Optional[int]]:
        """Size and age of the oldest entry in ms. Never expires anything."""
        with self._lock:
            size = len(self._entries)
            if not self._entries:
                return {"size": 0, "oldest_entry_age_ms": None}
            oldest = min(entry.inserted_at for entry in self._entries.values())
            age_ms = max(0, int((self._clock() - oldest) * 1000))
        return {"size": size, "oldest_entry_age_ms": age_ms}

    def clear_expired(self) -> int:
        """Remove all expired entries. Used by the background sweeper."""
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if self._is_stale(entry, now)]
            for key in stale:
                del self._entries[key]
            self.metrics["expirations"] += len(stale)
            size = len(self._entries)

        if stale:
            logger.info(f"Cleared {len(stale)} expired cache entries")
            events: List[CacheEventRecord] = []
            self._track(events, "expire", size, count=len(stale), reason="sweep")
            self._emit(events)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            cleared = len(self._entries)
            self._entries.clear()

        logger.debug(f"Cleared {cleared} cache entries")
        events: List[CacheEventRecord] = []
        self._track(events, "clear", 0, count=cleared)
        self._emit(events)

    def get_metrics(self) -> Dict[str, Any]:
        """Counters since construction."""
        with self._lock:
            metrics = dict(self.metrics)
            entries = len(self._entries)
            now = self._clock()

        total_requests = metrics["hits"] + metrics["misses"]
        hit_rate = (metrics["hits"] / total_requests * 100) if total_requests > 0 else 0

        return {
            "hits": metrics["hits"],
            "misses": metrics["misses"],
            "hit_rate_percent": round(hit_rate, 1),
            "total_requests": total_requests,
            "writes": metrics["writes"],
            "evictions": metrics["evictions"],
            "expirations": metrics["expirations"],
            "invalidations": metrics["invalidations"],
            "cache_entries": entries,
            "uptime_seconds": int(now - metrics["start_time"]),
        }

    def close(self) -> None:
        """Stop the sweeper (if any) and drop all entries."""
        if self._sweeper is not None:
            self._sweeper.stop()
            self._sweeper = None
        self.clear()
        logger.info("SystemPromptCache closed")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _track(self, events: List[CacheEventRecord], event: str, size: int,
               key: Optional[str] = None, user_id: Optional[str] = None, **extra: Any) -> None:
        if self._on_event is not None:
            events.append(CacheEventRecord(event, size, key, user_id, **extra))

    def _emit(self, events: List[CacheEventRecord]) -> None:
        if self._on_event is None:
            return
        for record in events:
            try:
                self._on_event(record.to_dict())
            except Exception as e:
                logger.warning(f"Cache event sink error: {e}")
