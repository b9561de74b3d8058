import threading
from collections import defaultdict
from typing import Dict

STORES = ("segments", "choices")
_COUNTERS = ("hits", "misses", "sets", "expirations", "evictions")


class CacheMetrics:
    """Thread-safe counters for story cache activity, kept per store."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[str, Dict[str, int]] = {store: defaultdict(int) for store in STORES}
        self._clears = 0

    def _incr(self, store: str, counter: str, amount: int = 1) -> None:
        if amount <= 0:
            return
        with self._lock:
            self._counts.setdefault(store, defaultdict(int))[counter] += amount

    def track_hit(self, store: str) -> None:
        self._incr(store, "hits")

    def track_miss(self, store: str) -> None:
        self._incr(store, "misses")

    def track_set(self, store: str) -> None:
        self._incr(store, "sets")

    def track_expiration(self, store: str, count: int = 1) -> None:
        self._incr(store, "expirations", count)

    def track_eviction(self, store: str, count: int = 1) -> None:
        self._incr(store, "evictions", count)

    def track_clear(self) -> None:
        with self._lock:
            self._clears += 1

    def hit_ratio(self, store: str) -> float:
        with self._lock:
            counts = self._counts.get(store, {})
            lookups = counts.get("hits", 0) + counts.get("misses", 0)
            return counts.get("hits", 0) / lookups if lookups else 0.0

    def get_stats(self) -> dict:
        with self._lock:
            stores = {
                store: {name: counts.get(name, 0) for name in _COUNTERS}
                for store, counts in self._counts.items()
            }
            return {"stores": stores, "clears": self._clears}

    def get_prometheus_format(self) -> str:
        stats = self.get_stats()
        lines = []
        for store, counts in stats["stores"].items():
            for name, value in counts.items():
                lines.append(f'story_cache_{name}_total{{store="{store}"}} {value}')
        lines.append(f'story_cache_clears_total {stats["clears"]}')
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        with self._lock:
            self._counts = {store: defaultdict(int) for store in STORES}
            self._clears = 0
