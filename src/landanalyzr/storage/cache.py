"""In-memory cache for derived parcel metrics.

Results are keyed by a SHA-256 hash of the canonical JSON of the inputs
(parcel, comparison set, reference time), so a cache hit is guaranteed to
return what recomputing would. Entries are evicted least-recently-used
once the cache is full.
"""

import hashlib
import json
import logging
from collections import OrderedDict
from collections.abc import Callable, Sequence
from datetime import datetime

from ..analysis.calculator import resolve_as_of
from ..models.metrics import DerivedMetrics
from ..models.parcel import ParcelRecord

logger = logging.getLogger(__name__)

# Default number of cached results
DEFAULT_MAX_ENTRIES = 1024

ComputeFn = Callable[[ParcelRecord, Sequence[ParcelRecord], datetime], DerivedMetrics]


class MetricsCache:
    """Bounded LRU cache for DerivedMetrics.

    Example:
        cache = MetricsCache()
        analyzer = ParcelAnalyzer()

        metrics = cache.get_or_compute(parcel, visible, analyzer.analyze, as_of=now)

        stats = cache.stats()
        print(f"Hit rate: {stats['hit_rate']:.0%}")
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        """Initialize the cache.

        Args:
            max_entries: Maximum number of cached results (default 1024)
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, DerivedMetrics] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def cache_key(
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord],
        as_of: datetime,
    ) -> str:
        """SHA-256 of the canonical JSON of the inputs."""
        payload = {
            "parcel": parcel.model_dump(mode="json"),
            "comparison_set": [p.model_dump(mode="json") for p in comparison_set],
            "as_of": as_of.isoformat(),
        }
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def get_or_compute(
        self,
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord] | None,
        compute: ComputeFn,
        as_of: datetime | None = None,
    ) -> DerivedMetrics:
        """Return the cached result for these inputs, computing it on a miss.

        Args:
            parcel: Parcel to analyze
            comparison_set: Population for relative metrics
            compute: Called as compute(parcel, comparison_set, as_of) on a miss
            as_of: Reference time; part of the key

        Returns:
            DerivedMetrics for the inputs
        """
        comparison_set = list(comparison_set or [])
        as_of = resolve_as_of(as_of)
        key = self.cache_key(parcel, comparison_set, as_of)

        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            self._hits += 1
            return cached

        self._misses += 1
        result = compute(parcel, comparison_set, as_of)
        self._entries[key] = result
        if len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug(f"Evicted oldest metrics entry, {len(self._entries)} cached")
        return result

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> int:
        """Drop every cached result.

        Returns:
            Number of entries removed
        """
        removed = len(self._entries)
        self._entries.clear()
        return removed

    def stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dict with entry count, capacity, hits, misses, evictions and hit rate
        """
        lookups = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
        }
