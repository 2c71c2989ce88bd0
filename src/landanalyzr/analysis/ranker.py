"""Percentile ranking of parcels against a comparison set.

One routine backs every dataset-relative presentation: "cheaper than X% of
parcels", the market-position indicator and the area price-benchmark bar.
"""

import logging
from bisect import bisect_left
from collections.abc import Callable, Sequence
from datetime import datetime
from enum import Enum

from ..config import Settings, config
from ..models.metrics import CategoryBadge, ParcelPercentiles, PercentileRank
from ..models.parcel import ParcelRecord, ParcelStatus
from .buildable import BuildableCalculator
from .calculator import ValuationCalculator
from .numeric import round_half_up

logger = logging.getLogger(__name__)


class RankMetric(str, Enum):
    """Metrics a parcel can be ranked on."""

    PRICE = "price"
    PRICE_PER_SQM = "price_per_sqm"
    ROI = "roi"
    SIZE = "size"
    PRICE_PER_BUILDABLE_SQM = "price_per_buildable_sqm"


class PercentileRanker:
    """Rank parcels by percentile within a comparison set.

    A metric is only ranked when at least ``min_percentile_population``
    parcels have a valid value for it; below that every parcel gets None
    ("unavailable"), never 0.

    Percentile = round(rank / (n - 1) x 100), where rank is the number of
    valid values strictly below the parcel's value, so equal values always
    share a percentile. Sorting is O(n log n) per metric per call.

    Example:
        ranker = PercentileRanker()

        ranks = ranker.rank_metric(RankMetric.PRICE_PER_SQM, visible_parcels)
        pct = ranker.parcel_percentiles(parcel, visible_parcels)
        print(f"Cheaper than {pct.price_per_sqm.cheaper_than}% of parcels")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        calculator: ValuationCalculator | None = None,
    ):
        """Initialize ranker.

        Args:
            settings: Optional Settings instance.
            calculator: Optional ValuationCalculator used for ROI values.
        """
        self.settings = settings or config
        self.calc = calculator or ValuationCalculator(self.settings)
        self.buildable = BuildableCalculator(self.settings)
        self._extractors: dict[RankMetric, Callable[[ParcelRecord], float | None]] = {
            RankMetric.PRICE: self._price,
            RankMetric.PRICE_PER_SQM: self._price_per_sqm,
            RankMetric.ROI: self._roi,
            RankMetric.SIZE: self._size,
            RankMetric.PRICE_PER_BUILDABLE_SQM: self._price_per_buildable_sqm,
        }

    # =========================================================================
    # Metric Extraction
    # =========================================================================

    @staticmethod
    def _price(parcel: ParcelRecord) -> float | None:
        return parcel.total_price if parcel.total_price > 0 else None

    @staticmethod
    def _price_per_sqm(parcel: ParcelRecord) -> float | None:
        return parcel.price_per_sqm

    @staticmethod
    def _size(parcel: ParcelRecord) -> float | None:
        if parcel.total_price <= 0 or parcel.size_sqm <= 0:
            return None
        return parcel.size_sqm

    def _roi(self, parcel: ParcelRecord) -> float | None:
        return self.calc.headline_roi(parcel.total_price, parcel.projected_value)

    def _price_per_buildable_sqm(self, parcel: ParcelRecord) -> float | None:
        value = self.buildable.buildable_value(parcel)
        if value is None:
            return None
        return parcel.total_price / value.total_buildable_area

    def metric_value(self, metric: RankMetric | str, parcel: ParcelRecord) -> float | None:
        """Value of a metric for one parcel, None when the parcel is not valid for it.

        Raises:
            ValueError: If the metric name is unknown.
        """
        try:
            metric = RankMetric(metric)
        except ValueError:
            raise ValueError(
                f"Unknown metric {metric!r}. Available: {[m.value for m in RankMetric]}"
            ) from None
        return self._extractors[metric](parcel)

    # =========================================================================
    # Ranking
    # =========================================================================

    def rank_metric(
        self,
        metric: RankMetric | str,
        comparison_set: Sequence[ParcelRecord],
    ) -> dict[str, int | None]:
        """Percentile of every parcel in the set for one metric.

        Args:
            metric: Metric to rank on
            comparison_set: Population of parcels

        Returns:
            Mapping of parcel id to percentile (0-100), or None for parcels
            without a valid value and for every parcel when the valid
            population is below the floor.
        """
        result: dict[str, int | None] = {p.id: None for p in comparison_set}

        pairs = []
        for parcel in comparison_set:
            value = self.metric_value(metric, parcel)
            if value is not None:
                pairs.append((parcel.id, value))

        if len(pairs) < self.settings.min_percentile_population:
            logger.debug(
                f"Only {len(pairs)} valid parcels for {RankMetric(metric).value}, "
                f"percentiles unavailable"
            )
            return result

        ordered = sorted(value for _, value in pairs)
        denominator = len(ordered) - 1
        for parcel_id, value in pairs:
            rank = bisect_left(ordered, value)
            result[parcel_id] = round_half_up(rank / denominator * 100)
        return result

    def _population(
        self,
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord],
    ) -> list[ParcelRecord]:
        population = list(comparison_set)
        if all(p.id != parcel.id for p in population):
            population.append(parcel)
        return population

    def percentile_of(
        self,
        metric: RankMetric | str,
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord],
    ) -> PercentileRank | None:
        """Percentile of one parcel; the parcel joins the population if absent."""
        value = self.metric_value(metric, parcel)
        if value is None:
            return None

        population = self._population(parcel, comparison_set)
        ranks = self.rank_metric(metric, population)
        percentile = ranks.get(parcel.id)
        if percentile is None:
            return None

        valid = sum(1 for p in population if self.metric_value(metric, p) is not None)
        return PercentileRank(
            metric=RankMetric(metric).value,
            value=value,
            percentile=percentile,
            population=valid,
        )

    def parcel_percentiles(
        self,
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord] | None,
    ) -> ParcelPercentiles | None:
        """Percentiles on every metric for one parcel.

        Returns:
            ParcelPercentiles with a per-metric None where unavailable, or
            None when no comparison set is supplied.
        """
        if not comparison_set:
            return None
        return ParcelPercentiles(
            **{
                metric.value: self.percentile_of(metric, parcel, comparison_set)
                for metric in RankMetric
            }
        )

    # =========================================================================
    # Category Leaders
    # =========================================================================

    def best_in_category(
        self,
        comparison_set: Sequence[ParcelRecord],
        as_of: datetime | None = None,
    ) -> dict[str, list[CategoryBadge]]:
        """Badges for the category leaders among available parcels.

        Categories: cheapest price/sqm, highest ROI, best score (unless the
        same parcel already leads ROI) and most in-demand (at least medium
        demand, and not already the cheapest or highest-ROI parcel). Ties go
        to the parcel listed first.

        Returns:
            Mapping of parcel id to its badges; empty with fewer than the
            minimum number of available parcels.
        """
        from .market import MarketSignalEngine
        from .scorer import InvestmentScorer

        available = [
            p for p in comparison_set if p.status in (None, ParcelStatus.AVAILABLE)
        ]
        if len(available) < self.settings.min_percentile_population:
            return {}

        scorer = InvestmentScorer(self.settings, self.calc)
        market = MarketSignalEngine(self.settings, self.calc)

        def leader(values: dict[str, float | None], lowest: bool = False) -> str | None:
            best_id, best_value = None, None
            for parcel_id, value in values.items():
                if value is None:
                    continue
                if best_value is None or (value < best_value if lowest else value > best_value):
                    best_id, best_value = parcel_id, value
            return best_id

        scores = {}
        velocities = {}
        for p in available:
            score = scorer.investment_score(p)
            scores[p.id] = None if score is None else score.total
            demand = market.demand_velocity(p, as_of)
            if demand is not None and demand.velocity >= self.settings.demand_medium_velocity:
                velocities[p.id] = demand.velocity

        cheapest = leader({p.id: self._price_per_sqm(p) for p in available}, lowest=True)
        top_roi = leader({p.id: self._roi(p) for p in available})
        top_score = leader(scores)
        top_demand = leader(velocities)

        badges: dict[str, list[CategoryBadge]] = {}

        def add(parcel_id: str | None, key: str, label: str) -> None:
            if parcel_id is not None:
                badges.setdefault(parcel_id, []).append(CategoryBadge(key=key, label=label))

        add(cheapest, "cheapest_price_sqm", "Cheapest per sqm")
        add(top_roi, "highest_roi", "Top return")
        if top_score != top_roi:
            add(top_score, "best_score", "Top score")
        if top_demand not in (cheapest, top_roi):
            add(top_demand, "most_in_demand", "Most in demand")
        return badges
