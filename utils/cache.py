"""
Context-keyed TTL cache for generated story segments and choice lists.

Entries expire lazily (checked on access, never by a background timer) and
each mapping is bounded by ``max_entries``.  Eviction is strictly by
insertion order, oldest first; reads never refresh an entry.
"""

import itertools
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from numbers import Real
from typing import Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from story_context import StoryContext, context_key

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000
DEFAULT_MAX_ENTRIES = 500

SEGMENTS = "segments"
CHOICES = "choices"

V = TypeVar("V")


class CacheConfigError(ValueError):
    """Raised when the cache is constructed with an invalid ttl or size limit."""


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class CacheEntry(Generic[V]):
    value: V
    inserted_at: float  # clock milliseconds
    seq: int  # tie-break for equal timestamps


class _Store(Generic[V]):
    """One bounded mapping. Not thread-safe; ContextCache holds the lock."""

    def __init__(self, name: str):
        self.name = name
        # Kept in (inserted_at, seq) order: overwrites are moved to the end
        self.entries: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()

    def lookup(self, key: str, now: float, ttl_ms: float) -> Tuple[Optional[V], bool]:
        """Return (value, expired). Expired entries are removed."""
        entry = self.entries.get(key)
        if entry is None:
            return None, False
        if now - entry.inserted_at >= ttl_ms:
            del self.entries[key]
            return None, True
        return entry.value, False

    def insert(self, key: str, entry: CacheEntry[V], max_entries: int, ttl_ms: float) -> Tuple[int, int]:
        """Insert *entry* and restore the size bound. Return (expired, evicted)."""
        self.entries.pop(key, None)
        self.entries[key] = entry

        expired = self.drop_expired(entry.inserted_at, ttl_ms)
        evicted = 0
        while len(self.entries) > max_entries:
            self.entries.popitem(last=False)
            evicted += 1
        return expired, evicted

    def drop_expired(self, now: float, ttl_ms: float) -> int:
        # Oldest entries sit at the front, so stop at the first live one
        dropped = 0
        while self.entries:
            oldest = next(iter(self.entries.values()))
            if now - oldest.inserted_at < ttl_ms:
                break
            self.entries.popitem(last=False)
            dropped += 1
        return dropped


def _validate(ttl_ms, max_entries) -> None:
    if isinstance(ttl_ms, bool) or not isinstance(ttl_ms, Real) or not ttl_ms > 0:
        raise CacheConfigError(f"ttl_ms must be a positive number, got {ttl_ms!r}")
    if isinstance(max_entries, bool) or not isinstance(max_entries, int) or max_entries <= 0:
        raise CacheConfigError(f"max_entries must be a positive integer, got {max_entries!r}")


class ContextCache:
    """
    Memoizes story segments and choice lists against a StoryContext.

    Two independent mappings share one TTL and size policy.  All access goes
    through a single lock; metrics and log output happen after it is released.

    Args:
        ttl_ms: Lifetime of an entry in milliseconds.
        max_entries: Upper bound on entries per mapping.
        clock: Zero-argument callable returning monotonic milliseconds.
        metrics: Optional CacheMetrics collector.

    Raises:
        CacheConfigError: If ttl_ms or max_entries is not positive.
    """

    def __init__(
        self,
        ttl_ms: float = DEFAULT_TTL_MS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Optional[Callable[[], float]] = None,
        metrics=None,
    ):
        _validate(ttl_ms, max_entries)
        self.ttl_ms = ttl_ms
        self.max_entries = max_entries
        self._clock = clock or _monotonic_ms
        self._metrics = metrics
        self._lock = threading.Lock()
        self._seq = itertools.count()
        self._segments: _Store[str] = _Store(SEGMENTS)
        self._choices: _Store[Tuple[str, ...]] = _Store(CHOICES)

    @classmethod
    def from_config(cls, config, **kwargs) -> "ContextCache":
        """Build a cache from the ``cache.*`` section of a Config."""
        return cls(
            ttl_ms=config.get("cache.ttl_ms", DEFAULT_TTL_MS),
            max_entries=config.get("cache.max_entries", DEFAULT_MAX_ENTRIES),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, store: _Store, context: StoryContext):
        key = context_key(context)
        with self._lock:
            value, expired = store.lookup(key, self._clock(), self.ttl_ms)

        if expired:
            logger.debug("Expired %s entry for user %r", store.name, context.user_id)
        if self._metrics is not None:
            if expired:
                self._metrics.track_expiration(store.name)
            if value is None:
                self._metrics.track_miss(store.name)
            else:
                self._metrics.track_hit(store.name)
        return value

    def _set(self, store: _Store, context: StoryContext, value) -> None:
        key = context_key(context)
        with self._lock:
            entry = CacheEntry(value=value, inserted_at=self._clock(), seq=next(self._seq))
            expired, evicted = store.insert(key, entry, self.max_entries, self.ttl_ms)

        if evicted:
            logger.debug("Evicted %d oldest %s entr%s", evicted, store.name, "y" if evicted == 1 else "ies")
        if self._metrics is not None:
            self._metrics.track_set(store.name)
            self._metrics.track_expiration(store.name, expired)
            self._metrics.track_eviction(store.name, evicted)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_story_segment(self, context: StoryContext, segment: str) -> None:
        self._set(self._segments, context, segment)

    def get_story_segment(self, context: StoryContext) -> Optional[str]:
        return self._get(self._segments, context)

    def set_choices(self, context: StoryContext, choices: Sequence[str]) -> None:
        self._set(self._choices, context, tuple(choices))

    def get_choices(self, context: StoryContext) -> Optional[List[str]]:
        stored = self._get(self._choices, context)
        return list(stored) if stored is not None else None

    def clear(self) -> None:
        """Drop every entry from both mappings."""
        with self._lock:
            self._segments.entries = OrderedDict()
            self._choices.entries = OrderedDict()
        if self._metrics is not None:
            self._metrics.track_clear()
        logger.debug("Story cache cleared")

    def purge_expired(self) -> int:
        """Remove expired entries from both mappings now; return how many."""
        with self._lock:
            now = self._clock()
            removed = {store.name: store.drop_expired(now, self.ttl_ms) for store in (self._segments, self._choices)}
        if self._metrics is not None:
            for name, count in removed.items():
                self._metrics.track_expiration(name, count)
        return sum(removed.values())

    def size(self) -> Dict[str, int]:
        """Raw entry count per mapping (may include unobserved expired entries)."""
        with self._lock:
            return {SEGMENTS: len(self._segments.entries), CHOICES: len(self._choices.entries)}
