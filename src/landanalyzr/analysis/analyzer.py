"""Single entry point producing every derived metric for a parcel.

Screens that show ROI, score or percentile for the same parcel go through
ParcelAnalyzer so the numbers always agree.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, TypeVar

from ..config import Settings, config
from ..models.metrics import CategoryBadge, DerivedMetrics
from ..models.parcel import ParcelRecord
from .buildable import BuildableCalculator
from .calculator import ValuationCalculator, resolve_as_of
from .geo import centroid, estimate_commute_times, perimeter
from .market import MarketSignalEngine
from .ranker import PercentileRanker
from .scenarios import ScenarioGenerator
from .scorer import InvestmentScorer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ParcelAnalyzer:
    """Compute the full DerivedMetrics bag for parcels.

    Each metric is computed in isolation: an unexpected error in one is
    logged and leaves that field empty without blocking the others.

    Example:
        analyzer = ParcelAnalyzer()

        metrics = analyzer.analyze(parcel, comparison_set=visible, as_of=now)
        print(f"True ROI: {metrics.waterfall.true_roi}%")

        for metrics in analyzer.analyze_batch(visible, as_of=now):
            print(metrics.parcel_id, metrics.score.total if metrics.score else "-")
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize analyzer and its engines.

        Args:
            settings: Optional Settings instance shared by every engine.
        """
        self.settings = settings or config
        self.calc = ValuationCalculator(self.settings)
        self.scorer = InvestmentScorer(self.settings, self.calc)
        self.ranker = PercentileRanker(self.settings, self.calc)
        self.market = MarketSignalEngine(self.settings, self.calc)
        self.buildable = BuildableCalculator(self.settings)
        self.scenarios = ScenarioGenerator(self.settings, self.calc)

    def _safe(self, parcel_id: str, name: str, func: Callable[..., T], *args: Any) -> T | None:
        try:
            return func(*args)
        except Exception as e:
            logger.warning(f"Failed to compute {name} for {parcel_id}: {e}")
            return None

    def analyze(
        self,
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord] | None = None,
        as_of: datetime | None = None,
        badges: dict[str, list[CategoryBadge]] | None = None,
    ) -> DerivedMetrics:
        """Compute every derived metric for one parcel.

        Args:
            parcel: Parcel to analyze
            comparison_set: Population for percentile and market-relative metrics
            as_of: Reference time for day counts (default now, UTC)
            badges: Precomputed category badges for the comparison set

        Returns:
            DerivedMetrics with each metric None where unavailable.
        """
        as_of = resolve_as_of(as_of)
        comparison_set = list(comparison_set or [])
        pid = parcel.id

        waterfall = self._safe(pid, "waterfall", self.calc.analyze_parcel, parcel)
        holding_years = self.calc.holding_years(parcel.readiness_estimate)

        alternatives = None
        if waterfall is not None:
            alternatives = self._safe(
                pid,
                "alternatives",
                self.buildable.alternative_returns,
                parcel.total_price,
                waterfall.net_profit,
                holding_years,
            )

        if badges is None and comparison_set:
            badges = self._safe(
                pid, "badges", self.ranker.best_in_category, comparison_set, as_of
            )

        center = self._safe(pid, "centroid", centroid, parcel.coordinates)
        commute_times = []
        if center is not None:
            commute_times = self._safe(
                pid, "commute times", estimate_commute_times, center.lat, center.lng, self.settings
            ) or []

        price_per_dunam = None
        if parcel.price_per_sqm is not None:
            price_per_dunam = parcel.price_per_sqm * 1000

        area_trend = None
        if comparison_set and parcel.city:
            area_trend = self._safe(
                pid, "area trend", self.market.area_price_trend, parcel.city, comparison_set
            )

        return DerivedMetrics(
            parcel_id=pid,
            as_of=as_of,
            price_per_sqm=parcel.price_per_sqm,
            price_per_dunam=price_per_dunam,
            waterfall=waterfall,
            monthly_payment=self._safe(
                pid, "monthly payment", self.calc.monthly_payment, parcel.total_price
            ),
            tax_authority=self._safe(
                pid, "tax authority", self.calc.price_vs_tax_authority, parcel
            ),
            days_on_market=self._safe(
                pid, "days on market", self.calc.days_on_market, parcel.created_at, as_of
            ),
            timeline=self._safe(
                pid, "timeline", self.calc.investment_timeline, parcel.zoning_stage, as_of
            ),
            score=self._safe(pid, "score", self.scorer.investment_score, parcel),
            completeness=self._safe(pid, "completeness", self.scorer.data_completeness, parcel),
            risk=self._safe(pid, "risk", self.scorer.risk_level, parcel, comparison_set),
            verdict=self._safe(pid, "verdict", self.scorer.verdict, parcel, comparison_set, as_of),
            percentiles=self._safe(
                pid, "percentiles", self.ranker.parcel_percentiles, parcel, comparison_set
            ),
            badges=(badges or {}).get(pid, []),
            demand=self._safe(pid, "demand", self.market.demand_velocity, parcel, as_of),
            below_market=self._safe(
                pid, "below market", self.market.below_market, parcel, comparison_set
            ),
            area_trend=area_trend,
            buildable=self._safe(pid, "buildable", self.buildable.buildable_value, parcel),
            alternatives=alternatives,
            scenarios=self._safe(
                pid,
                "scenarios",
                self.scenarios.sensitivity_scenarios,
                parcel.total_price,
                parcel.projected_value,
                holding_years,
                parcel.size_sqm,
                parcel.zoning_stage,
            ) or [],
            centroid=center,
            perimeter_m=self._safe(pid, "perimeter", perimeter, parcel.coordinates),
            commute_times=commute_times,
        )

    def analyze_batch(
        self,
        parcels: Sequence[ParcelRecord],
        as_of: datetime | None = None,
    ) -> list[DerivedMetrics]:
        """Analyze every parcel against the batch as its comparison set.

        Args:
            parcels: Parcels to analyze; also the comparison set
            as_of: Reference time shared by every parcel

        Returns:
            DerivedMetrics per parcel, in input order.
        """
        as_of = resolve_as_of(as_of)
        parcels = list(parcels)
        badges = self.ranker.best_in_category(parcels, as_of)

        results = []
        for parcel in parcels:
            results.append(self.analyze(parcel, parcels, as_of, badges=badges))

        logger.info(f"Analyzed {len(results)} parcels")
        return results
