"""Investment scoring, risk assessment and verdicts for land parcels.

The score blends five normalized sub-factors (0-1) with configured weights
that sum to 10:
- ROI: headline ROI / 200, clamped
- Zoning: position in the planning pipeline
- Readiness: shorter horizon scores higher
- Size: piecewise-linear favorability curve
- Completeness: share of optional inputs present

Risk is additive: each factor contributes non-negative points and the level
(1-5) is read from fixed cut points, so adding a risk factor can never lower
the level.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from ..config import Settings, config
from ..models.metrics import (
    DataCompleteness,
    InvestmentGrade,
    InvestmentScore,
    InvestmentVerdict,
    RiskAssessment,
    ScoreFactor,
    VerdictTier,
)
from ..models.parcel import ParcelRecord, ZoningStage
from .calculator import STAGE_LABELS, ValuationCalculator
from .geo import MIN_RING_VERTICES
from .market import MarketSignalEngine
from .numeric import clamp, lerp, round_half_up
from .ranker import PercentileRanker, RankMetric

logger = logging.getLogger(__name__)

# Land size (sqm) -> favorability. Mid-size plots are easiest to resell.
SIZE_CURVE = [
    (250, 0.2),
    (500, 0.6),
    (1000, 1.0),
    (5000, 1.0),
    (10000, 0.6),
    (50000, 0.3),
]

# Normalized readiness factor per horizon bucket.
READINESS_FACTORS = [
    (("1-3",), 1.0, "1-3 year horizon, fast return and good liquidity"),
    (("3-5",), 2 / 3, "3-5 year horizon, medium-term investment"),
    (("5+", "5-"), 1 / 6, "5+ year horizon, long-term investment that needs patience"),
]
NEUTRAL_FACTOR = 0.5

GRADE_TIERS = [
    (9.0, "A+", "excellent"),
    (8.0, "A", "excellent"),
    (7.0, "A-", "very good"),
    (6.0, "B+", "good"),
    (5.0, "B", "good"),
    (4.0, "B-", "fair"),
    (3.0, "C+", "weak"),
]

ZONING_RISK_POINTS = {
    ZoningStage.AGRICULTURAL: 30,
    ZoningStage.MASTER_PLAN_DEPOSIT: 25,
    ZoningStage.MASTER_PLAN_APPROVED: 18,
    ZoningStage.DETAILED_PLAN_PREP: 15,
    ZoningStage.DETAILED_PLAN_DEPOSIT: 10,
    ZoningStage.DETAILED_PLAN_APPROVED: 5,
    ZoningStage.DEVELOPER_TENDER: 3,
    ZoningStage.BUILDING_PERMIT: 1,
}
UNKNOWN_ZONING_RISK = 20
BASE_MARKET_RISK = 5

RISK_LABELS = {
    1: "Low risk",
    2: "Low-medium risk",
    3: "Medium risk",
    4: "Medium-high risk",
    5: "High risk",
}

VERDICT_LABELS = {
    VerdictTier.HOT: "Hot deal",
    VerdictTier.EXCELLENT: "Excellent investment",
    VerdictTier.GOOD: "Good opportunity",
    VerdictTier.FAIR: "Worth a look",
    VerdictTier.POOR: "Needs careful review",
}

COMPLETENESS_FIELDS = [
    "size_sqm",
    "projected_value",
    "zoning_stage",
    "readiness_estimate",
    "density_units_per_dunam",
    "tax_authority_value",
    "coordinates",
    "created_at",
]


class InvestmentScorer:
    """Composite investment score, risk level and verdict for a parcel.

    Example:
        scorer = InvestmentScorer()

        score = scorer.investment_score(parcel)
        risk = scorer.risk_level(parcel, visible_parcels)
        verdict = scorer.verdict(parcel, visible_parcels, as_of=now)
        print(f"{score.total}/10 ({score.grade.grade}), {risk.label}, {verdict.label}")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        calculator: ValuationCalculator | None = None,
    ):
        """Initialize scorer.

        Args:
            settings: Optional Settings instance.
            calculator: Optional ValuationCalculator shared with other engines.
        """
        self.settings = settings or config
        self.calc = calculator or ValuationCalculator(self.settings)
        self.ranker = PercentileRanker(self.settings, self.calc)
        self.market = MarketSignalEngine(self.settings, self.calc)

    # =========================================================================
    # Data Completeness
    # =========================================================================

    def data_completeness(self, parcel: ParcelRecord) -> DataCompleteness:
        """Share of optional inputs that are present on the record."""
        present, missing = [], []
        for name in COMPLETENESS_FIELDS:
            value = getattr(parcel, name)
            if name == "coordinates":
                has_value = len(value) >= MIN_RING_VERTICES
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                has_value = value > 0
            else:
                has_value = value is not None
            (present if has_value else missing).append(name)

        return DataCompleteness(
            ratio=len(present) / len(COMPLETENESS_FIELDS),
            present=present,
            missing=missing,
        )

    # =========================================================================
    # Investment Score
    # =========================================================================

    def _roi_factor(self, roi: float) -> tuple[float, str]:
        normalized = clamp(roi / self.settings.score_roi_ceiling_pct)
        pct = round_half_up(roi)
        if roi >= 200:
            text = f"Exceptional return +{pct}%, potential to triple the investment"
        elif roi >= 150:
            text = f"Very high return +{pct}%, above the market average"
        elif roi >= 100:
            text = f"Good return +{pct}%, doubles the investment"
        elif roi >= 50:
            text = f"Reasonable return +{pct}%, beats a bank deposit"
        else:
            text = f"Low return +{pct}%, compare alternatives"
        return normalized, text

    @staticmethod
    def _zoning_factor(stage: ZoningStage | None) -> tuple[float, str]:
        if stage is None:
            return 0.0, "Planning stage unknown"
        label = STAGE_LABELS[stage]
        if stage.position >= 6:
            text = f"{label}, very close to construction"
        elif stage.position >= 4:
            text = f"{label}, good planning progress"
        elif stage.position >= 2:
            text = f"{label}, in process"
        else:
            text = f"{label}, early stage with a long horizon"
        return stage.progress, text

    @staticmethod
    def _readiness_factor(readiness: str | None) -> tuple[float, str]:
        readiness = readiness or ""
        for markers, factor, text in READINESS_FACTORS:
            if any(marker in readiness for marker in markers):
                return factor, text
        return NEUTRAL_FACTOR, "Horizon unknown, check with an advisor"

    @staticmethod
    def _size_factor(size_sqm: float) -> tuple[float, str]:
        if size_sqm <= 0:
            return NEUTRAL_FACTOR, "Size unknown"
        factor = lerp(size_sqm, SIZE_CURVE)
        dunam = round_half_up(size_sqm / 1000, 1)
        if factor >= 0.9:
            text = f"{dunam} dunam, a highly tradeable plot size"
        elif size_sqm > 5000:
            text = f"{dunam} dunam, large plot with a narrower buyer pool"
        else:
            text = f"{dunam} dunam, small plot"
        return factor, text

    def investment_score(self, parcel: ParcelRecord) -> InvestmentScore | None:
        """Weighted 0-10 investment score with its factor breakdown.

        Returns:
            InvestmentScore, or None when price or projected value is unknown.
        """
        roi = self.calc.headline_roi(parcel.total_price, parcel.projected_value)
        if roi is None:
            logger.debug(f"Parcel {parcel.id}: no ROI, score unavailable")
            return None

        completeness = self.data_completeness(parcel)
        components = {
            "roi": ("Expected return", *self._roi_factor(roi)),
            "zoning": ("Planning stage", *self._zoning_factor(parcel.zoning_stage)),
            "readiness": ("Time horizon", *self._readiness_factor(parcel.readiness_estimate)),
            "size": ("Plot size", *self._size_factor(parcel.size_sqm)),
            "completeness": (
                "Data completeness",
                completeness.ratio,
                f"{completeness.percent}% of key data available",
            ),
        }

        factors = []
        raw_total = 0.0
        for key, (label, normalized, explanation) in components.items():
            weight = self.settings.score_weights.get(key, 0.0)
            normalized = clamp(normalized)
            raw_total += normalized * weight
            factors.append(
                ScoreFactor(
                    key=key,
                    label=label,
                    normalized=round_half_up(normalized, 3),
                    max_points=weight,
                    points=round_half_up(normalized * weight, 2),
                    explanation=explanation,
                )
            )

        total = min(10.0, round_half_up(raw_total, 1))
        return InvestmentScore(total=total, grade=self.investment_grade(total), factors=factors)

    @staticmethod
    def investment_grade(score: float) -> InvestmentGrade:
        """Letter grade for a 0-10 score."""
        for threshold, grade, tier in GRADE_TIERS:
            if score >= threshold:
                return InvestmentGrade(grade=grade, tier=tier)
        return InvestmentGrade(grade="C", tier="weak")

    # =========================================================================
    # Risk
    # =========================================================================

    def risk_level(
        self,
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord] | None = None,
    ) -> RiskAssessment | None:
        """Risk level 1-5 from additive risk points.

        Contributions: zoning stage, time horizon, price deviation vs the
        area, ROI extremity, baseline market risk, incomplete data and large
        parcel liquidity.

        Returns:
            RiskAssessment with factors most severe first, or None if price is unknown.
        """
        if parcel.total_price <= 0:
            return None
        s = self.settings
        contributions: list[tuple[float, str | None]] = []

        if parcel.zoning_stage is None:
            contributions.append((UNKNOWN_ZONING_RISK, "Planning stage unknown"))
        else:
            zoning_risk = ZONING_RISK_POINTS[parcel.zoning_stage]
            if zoning_risk >= 25:
                contributions.append((zoning_risk, "Early planning stage"))
            elif zoning_risk >= 15:
                contributions.append((zoning_risk, "Planning in process"))
            else:
                contributions.append((zoning_risk, None))

        readiness = parcel.readiness_estimate or ""
        if "1-3" in readiness:
            time_risk = 8
        elif "5+" in readiness or "5-" in readiness:
            time_risk = 25
        else:
            time_risk = 15
        contributions.append((time_risk, "Long investment horizon (5+ years)" if time_risk >= 20 else None))

        if comparison_set:
            deviation = self.market.area_deviation(parcel, comparison_set)
            if deviation is not None:
                if deviation.delta_pct > 20:
                    contributions.append((20, "Price well above the area average"))
                elif deviation.delta_pct > 10:
                    contributions.append((10, "Price above the area average"))
                elif deviation.delta_pct < -20:
                    contributions.append((5, "Price far below the area average, verify"))

        roi = self.calc.headline_roi(parcel.total_price, parcel.projected_value)
        if roi is not None:
            if roi > 300:
                contributions.append((15, "Very high projected return, verify"))
            elif roi > 200:
                contributions.append((8, None))
            elif roi < 30:
                contributions.append((5, "Low projected return"))

        contributions.append((BASE_MARKET_RISK, None))

        completeness = self.data_completeness(parcel)
        if completeness.ratio < s.low_completeness_threshold:
            contributions.append((10, "Incomplete listing data"))

        if parcel.size_sqm > s.large_parcel_sqm:
            contributions.append((5, "Large parcel, lower liquidity"))

        risk_points = sum(points for points, _ in contributions)
        level = 1 + sum(1 for cut in s.risk_level_cut_points if risk_points > cut)
        level = min(level, 5)

        ranked = sorted(
            (c for c in contributions if c[1] is not None),
            key=lambda c: -c[0],
        )
        return RiskAssessment(
            level=level,
            label=RISK_LABELS[level],
            risk_points=risk_points,
            factors=[label for _, label in ranked],
        )

    # =========================================================================
    # Verdict
    # =========================================================================

    def verdict(
        self,
        parcel: ParcelRecord,
        comparison_set: Sequence[ParcelRecord] | None,
        as_of: datetime | None = None,
    ) -> InvestmentVerdict | None:
        """Headline verdict from score, ROI, price/sqm percentile and freshness.

        Decision table (first match wins):
        - hot: score >= 8, fresh listing, and ROI >= 200% or price/sqm in the
          cheapest 15% of the set
        - excellent: score >= 7, and ROI >= 150% or price/sqm in the cheapest 30%
        - good: score >= 5
        - fair: score >= 3 and price/sqm not in the most expensive quartile
        - poor: everything else

        Returns:
            InvestmentVerdict, or None when the score or the price/sqm
            percentile is unavailable.
        """
        if not comparison_set:
            return None
        score = self.investment_score(parcel)
        if score is None:
            return None
        rank = self.ranker.percentile_of(RankMetric.PRICE_PER_SQM, parcel, comparison_set)
        if rank is None:
            return None

        roi = self.calc.headline_roi(parcel.total_price, parcel.projected_value)
        pct = rank.percentile
        fresh = self.market.is_fresh(parcel, as_of)
        total = score.total
        roi_pct = round_half_up(roi)

        if total >= 8 and fresh and (roi >= 200 or pct <= 15):
            tier = VerdictTier.HOT
            if pct <= 15:
                description = f"Cheaper per sqm than {rank.cheaper_than}% of parcels, score {total}/10"
            else:
                description = f"Exceptional return +{roi_pct}%, score {total}/10"
        elif total >= 7 and (roi >= 150 or pct <= 30):
            tier = VerdictTier.EXCELLENT
            if pct <= 30:
                description = f"Attractive price, cheaper per sqm than {rank.cheaper_than}% of parcels"
            else:
                description = f"High return +{roi_pct}% with score {total}/10"
        elif total >= 5:
            tier = VerdictTier.GOOD
            description = f"Score {total}/10, return +{roi_pct}%"
        elif total >= 3 and pct < 75:
            tier = VerdictTier.FAIR
            description = f"Score {total}/10, check planning and taxation"
        else:
            tier = VerdictTier.POOR
            if pct >= 75:
                description = f"Price per sqm above {pct}% of parcels, needs review"
            else:
                description = f"Score {total}/10, higher risk investment"

        return InvestmentVerdict(
            tier=tier,
            label=VERDICT_LABELS[tier],
            description=description,
            score=total,
            roi=round_half_up(roi, 1),
            price_sqm_percentile=pct,
            is_fresh=fresh,
        )
