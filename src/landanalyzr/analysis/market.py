"""Market signals derived from a comparison set.

Demand velocity, market temperature, area price trend and below-market
detection. All of them share the comparison-set contract with the
percentile ranker: the set is only a population, never mutated.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from ..config import Settings, config
from ..models.metrics import (
    AreaPriceTrend,
    BelowMarket,
    DemandTier,
    DemandVelocity,
    MarketTemperature,
    Temperature,
    TrendDirection,
)
from ..models.parcel import ParcelRecord, ParcelStatus
from .calculator import ValuationCalculator, resolve_as_of
from .numeric import mean, pct_change, round_half_up

logger = logging.getLogger(__name__)

DEMAND_LABELS = {
    DemandTier.HIGH: "High demand",
    DemandTier.MEDIUM: "Steady demand",
    DemandTier.LOW: "Low demand",
}


@dataclass(frozen=True)
class AreaDeviation:
    """Parcel price/sqm against the mean of its same-city peers."""

    delta_pct: float
    parcel_price_sqm: float
    area_avg_price_sqm: float
    peer_count: int


def _same_city(city: str, parcel: ParcelRecord) -> bool:
    return parcel.city.casefold() == city.casefold()


class MarketSignalEngine:
    """Compute demand and market-level signals.

    Example:
        engine = MarketSignalEngine()

        temp = engine.market_temperature(visible_parcels, as_of=now)
        trend = engine.area_price_trend("Hadera", visible_parcels)
        if trend:
            print(f"{trend.city}: {trend.direction.value} {trend.change_pct}%")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        calculator: ValuationCalculator | None = None,
    ):
        self.settings = settings or config
        self.calc = calculator or ValuationCalculator(self.settings)

    # =========================================================================
    # Demand
    # =========================================================================

    def days_listed(self, parcel: ParcelRecord, as_of: datetime | None = None) -> int | None:
        """Whole days since listing, at least 1; None without a listing date."""
        if parcel.created_at is None:
            return None
        return max(1, (resolve_as_of(as_of) - parcel.created_at).days)

    def is_fresh(self, parcel: ParcelRecord, as_of: datetime | None = None) -> bool:
        """Listed within the fresh-listing window."""
        if parcel.created_at is None:
            return False
        days = (resolve_as_of(as_of) - parcel.created_at).days
        return days <= self.settings.fresh_listing_days

    def demand_velocity(
        self,
        parcel: ParcelRecord,
        as_of: datetime | None = None,
    ) -> DemandVelocity | None:
        """Views per day since listing, bucketed into low/medium/high.

        Returns:
            DemandVelocity, or None if the listing date is unknown.
        """
        days = self.days_listed(parcel, as_of)
        if days is None:
            return None

        velocity = parcel.views / days
        if velocity >= self.settings.demand_high_velocity:
            tier = DemandTier.HIGH
        elif velocity >= self.settings.demand_medium_velocity:
            tier = DemandTier.MEDIUM
        else:
            tier = DemandTier.LOW

        return DemandVelocity(
            velocity=round_half_up(velocity, 1),
            tier=tier,
            label=DEMAND_LABELS[tier],
        )

    # =========================================================================
    # Market Temperature
    # =========================================================================

    def market_temperature(
        self,
        comparison_set: Sequence[ParcelRecord],
        as_of: datetime | None = None,
    ) -> MarketTemperature | None:
        """Heat score (0-100) of the visible market.

        heat = availability x 40 + fresh share x 30 + min(avg ROI, 200) / 200 x 30

        Parcels without a status count as available. Average ROI is taken over
        parcels with a known ROI and floored at 0.

        Returns:
            MarketTemperature, or None for an empty set.
        """
        if not comparison_set:
            return None
        s = self.settings
        as_of = resolve_as_of(as_of)
        total = len(comparison_set)

        available = sum(
            1 for p in comparison_set if p.status in (None, ParcelStatus.AVAILABLE)
        )
        fresh = sum(1 for p in comparison_set if self.is_fresh(p, as_of))
        rois = []
        for p in comparison_set:
            roi = self.calc.headline_roi(p.total_price, p.projected_value)
            if roi is not None:
                rois.append(roi)
        avg_roi = max(0.0, mean(rois) or 0.0)

        availability_ratio = available / total
        fresh_ratio = fresh / total
        roi_share = min(avg_roi, s.temperature_roi_cap_pct) / s.temperature_roi_cap_pct
        heat = (
            availability_ratio * s.temperature_availability_weight
            + fresh_ratio * s.temperature_fresh_weight
            + roi_share * s.temperature_roi_weight
        )
        heat = round_half_up(heat, 1)

        if heat >= s.temperature_hot_cut:
            temperature = Temperature.HOT
        elif heat >= s.temperature_warm_cut:
            temperature = Temperature.WARM
        else:
            temperature = Temperature.COLD

        return MarketTemperature(
            heat_score=heat,
            temperature=temperature,
            total=total,
            availability_ratio=round_half_up(availability_ratio, 2),
            fresh_ratio=round_half_up(fresh_ratio, 2),
            avg_roi=round_half_up(avg_roi, 1),
        )

    # =========================================================================
    # Area Comparisons
    # =========================================================================

    def area_price_trend(
        self,
        city: str,
        comparison_set: Sequence[ParcelRecord],
    ) -> AreaPriceTrend | None:
        """Direction of price/sqm in a city, older listings vs newer listings.

        Dated same-city records with a valid price/sqm are sorted by listing
        date and split in half; the newer half's mean is compared with the
        older half's.

        Returns:
            AreaPriceTrend, or None with fewer than the minimum dated records.
        """
        records = sorted(
            (
                p
                for p in comparison_set
                if _same_city(city, p) and p.created_at is not None and p.price_per_sqm is not None
            ),
            key=lambda p: (p.created_at, p.id),
        )
        if len(records) < self.settings.trend_min_records:
            logger.debug(f"Only {len(records)} dated records in {city!r}, trend unavailable")
            return None

        half = len(records) // 2
        older_avg = mean([p.price_per_sqm for p in records[:half]])
        newer_avg = mean([p.price_per_sqm for p in records[half:]])
        change = pct_change(newer_avg, older_avg)
        if change is None:
            return None

        change = round_half_up(change, 1)
        if abs(change) < self.settings.trend_stable_pct:
            direction = TrendDirection.STABLE
        elif change > 0:
            direction = TrendDirection.UP
        else:
            direction = TrendDirection.DOWN

        return AreaPriceTrend(
            city=city,
            direction=direction,
            change_pct=change,
            older_avg_price_sqm=round_half_up(older_avg, 2),
            newer_avg_price_sqm=round_half_up(newer_avg, 2),
            sample_size=len(records),
        )

    def area_deviation(
        self,
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord],
    ) -> AreaDeviation | None:
        """Percent difference of the parcel's price/sqm vs same-city peers.

        Peers exclude the parcel itself and records without a valid price/sqm.
        Returns None with fewer than the minimum number of peers.
        """
        parcel_psm = parcel.price_per_sqm
        if parcel_psm is None:
            return None

        peers = [
            p.price_per_sqm
            for p in comparison_set
            if p.id != parcel.id and _same_city(parcel.city, p) and p.price_per_sqm is not None
        ]
        if len(peers) < self.settings.below_market_min_peers:
            return None

        area_avg = mean(peers)
        delta = pct_change(parcel_psm, area_avg)
        if delta is None:
            return None
        return AreaDeviation(
            delta_pct=delta,
            parcel_price_sqm=parcel_psm,
            area_avg_price_sqm=area_avg,
            peer_count=len(peers),
        )

    def below_market(
        self,
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord],
    ) -> BelowMarket | None:
        """Area price comparison, suppressed when the difference is small.

        Returns:
            BelowMarket when |delta| >= the minimum delta, else None.
        """
        deviation = self.area_deviation(parcel, comparison_set)
        if deviation is None:
            return None
        if abs(deviation.delta_pct) < self.settings.below_market_min_delta_pct:
            return None

        return BelowMarket(
            city=parcel.city,
            delta_pct=round_half_up(deviation.delta_pct, 1),
            parcel_price_sqm=round_half_up(deviation.parcel_price_sqm, 2),
            area_avg_price_sqm=round_half_up(deviation.area_avg_price_sqm, 2),
            peer_count=deviation.peer_count,
        )
