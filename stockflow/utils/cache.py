"""
Caching module for the model simulator
Holds the most recently accumulated flow-per-stock vector, keyed by simulated time
"""

from typing import NamedTuple, Optional
import logging

import numpy as np

from stockflow.types import CacheStatsDict, ElementArray

logger = logging.getLogger(__name__)


class CachedFlows(NamedTuple):
    """Flow-per-stock vector valid at simulated time t"""

    t: float
    value: ElementArray


class FlowPerStockCache:
    """
    Single-slot cache for flow-per-stock vectors

    The slot is either empty or holds one CachedFlows entry. It is only ever
    replaced as a whole, never partially updated. Lookups hand out copies so
    callers cannot alter the cached vector.
    """

    def __init__(self):
        self._entry: Optional[CachedFlows] = None
        self._stats = {"hits": 0, "misses": 0}

    @property
    def entry(self) -> Optional[CachedFlows]:
        return self._entry

    def get(self, t: float, count: bool = True) -> Optional[ElementArray]:
        """
        Return a copy of the cached vector if it is valid at exactly t

        Args:
            t: Simulated time of the requested evaluation
            count: Add the lookup to the hit/miss statistics

        Returns:
            Copy of the cached vector, or None on a miss
        """
        entry = self._entry
        hit = entry is not None and entry.t == t
        if count:
            self.record_lookups(hits=int(hit), misses=int(not hit))
        if hit:
            logger.debug(f"Flow cache hit at t={t}")
            return entry.value.copy()
        return None

    def record_lookups(self, hits: int = 0, misses: int = 0) -> None:
        """Add lookups made with count=False to the statistics"""
        self._stats["hits"] += hits
        self._stats["misses"] += misses

    def put(self, t: float, value: ElementArray) -> None:
        """Replace the cached entry"""
        self._entry = CachedFlows(t, np.array(value, dtype=float))

    def clear(self) -> None:
        """Empty the slot and reset statistics"""
        self._entry = None
        self._stats["hits"] = 0
        self._stats["misses"] = 0

    def get_stats(self) -> CacheStatsDict:
        """
        Get cache statistics

        Returns:
            Dictionary with the cached time, hit and miss counts and the
            hit rate as a percentage
        """
        total_requests = self._stats["hits"] + self._stats["misses"]
        hit_rate = (
            (self._stats["hits"] / total_requests * 100)
            if total_requests > 0
            else 0.0
        )
        return {
            "cached_t": self._entry.t if self._entry is not None else None,
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "hit_rate": round(hit_rate, 2),
        }
