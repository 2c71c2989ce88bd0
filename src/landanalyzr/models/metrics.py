"""Derived investment metric models.

Every calculator returns one of these frozen models, or None when the metric
is unavailable (missing input, insufficient population, degenerate geometry).
None always means "unknown"; a real zero is reported as zero.
"""

import math
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field


class _Metric(BaseModel):
    model_config = {"frozen": True}


# =============================================================================
# Geo
# =============================================================================


class LatLng(_Metric):
    lat: float
    lng: float


class CommuteTime(_Metric):
    """Driving estimate to a major city."""

    city: str
    straight_km: float = Field(..., ge=0, description="Great-circle distance")
    road_km: float = Field(..., ge=0, description="Straight-line distance x road correction")
    driving_minutes: int = Field(..., ge=0)


# =============================================================================
# Valuation
# =============================================================================


class CAGRResult(_Metric):
    cagr: float = Field(..., description="Compound annual growth rate percentage")
    years: float = Field(..., gt=0)


class TransactionCosts(_Metric):
    """Entry costs paid on purchase."""

    purchase_tax: float = Field(..., ge=0)
    attorney_fees: float = Field(..., ge=0)
    appraiser_fee: float = Field(..., ge=0)
    registration_fee: float = Field(..., ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def deductible(self) -> float:
        """Purchase tax + attorney fees, the costs deducted in the tax waterfall."""
        return self.purchase_tax + self.attorney_fees

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> float:
        return self.deductible + self.appraiser_fee + self.registration_fee


class HoldingCosts(_Metric):
    """Annual carrying costs of holding undeveloped land."""

    arnona: float = Field(..., ge=0, description="Municipal property tax per year")
    management: float = Field(..., ge=0)
    arnona_per_sqm: float = Field(..., ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_annual(self) -> float:
        return self.arnona + self.management


class ProfitWaterfall(_Metric):
    """Gross-to-net profit breakdown with Israeli tax modeling.

    Invariant: net_profit == gross_profit - transaction_costs
    - betterment_levy - capital_gains_tax.
    """

    total_price: float
    projected_value: float
    holding_years: float

    gross_profit: float
    costs: TransactionCosts
    transaction_costs: float = Field(..., description="Deductible entry costs")
    betterment_levy: float = Field(..., ge=0)
    taxable_profit: float = Field(..., ge=0)
    capital_gains_tax: float = Field(..., ge=0)
    net_profit: float

    annual_holding: HoldingCosts
    holding_costs: float = Field(..., ge=0, description="Annual holding x holding years")
    total_investment: float = Field(..., ge=0)

    true_roi: int | None = Field(default=None, description="Net profit / price, percent")
    headline_roi: int | None = Field(default=None, description="Gross profit / price, percent")
    cagr: CAGRResult | None = None


class MonthlyPayment(_Metric):
    monthly: int
    down_payment: int
    loan_amount: int
    total_interest: int
    rate: float
    years: int
    ltv: float


class DaysOnMarket(_Metric):
    days: int = Field(..., ge=0)
    label: str


class StageStatus(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    FUTURE = "future"


class TimelineStage(_Metric):
    stage: str
    label: str
    duration_months: int
    status: StageStatus


class InvestmentTimeline(_Metric):
    """Planning pipeline progress for a parcel."""

    stages: list[TimelineStage]
    current_stage: str
    elapsed_months: int
    remaining_months: int
    total_months: int
    progress_pct: int = Field(..., ge=0, le=100)
    estimated_year: int


# =============================================================================
# Score & risk
# =============================================================================


class ScoreFactor(_Metric):
    """One weighted component of the investment score."""

    key: str
    label: str
    normalized: float = Field(..., ge=0, le=1)
    max_points: float = Field(..., ge=0)
    points: float = Field(..., ge=0)
    explanation: str


class InvestmentGrade(_Metric):
    grade: str
    tier: str


class InvestmentScore(_Metric):
    total: float = Field(..., ge=0, le=10)
    grade: InvestmentGrade
    factors: list[ScoreFactor] = Field(default_factory=list)


class DataCompleteness(_Metric):
    ratio: float = Field(..., ge=0, le=1)
    present: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percent(self) -> int:
        return math.floor(self.ratio * 100 + 0.5)


class RiskAssessment(_Metric):
    """Risk level 1 (low) to 5 (very high) with its contributing factors."""

    level: int = Field(..., ge=1, le=5)
    label: str
    risk_points: float = Field(..., ge=0)
    factors: list[str] = Field(
        default_factory=list, description="Contributing factors, most severe first"
    )


class VerdictTier(str, Enum):
    HOT = "hot"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class InvestmentVerdict(_Metric):
    tier: VerdictTier
    label: str
    description: str
    score: float
    roi: float
    price_sqm_percentile: int
    is_fresh: bool


# =============================================================================
# Percentiles
# =============================================================================


class PercentileRank(_Metric):
    """Position of a parcel's metric value within a comparison set."""

    metric: str
    value: float
    percentile: int = Field(..., ge=0, le=100, description="Share of the set below this value")
    population: int = Field(..., ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cheaper_than(self) -> int:
        """For price metrics: share of parcels more expensive than this one."""
        return 100 - self.percentile


class ParcelPercentiles(_Metric):
    price: PercentileRank | None = None
    price_per_sqm: PercentileRank | None = None
    roi: PercentileRank | None = None
    size: PercentileRank | None = None
    price_per_buildable_sqm: PercentileRank | None = None


class CategoryBadge(_Metric):
    key: str
    label: str


# =============================================================================
# Market signals
# =============================================================================


class DemandTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DemandVelocity(_Metric):
    velocity: float = Field(..., ge=0, description="Views per day on market")
    tier: DemandTier
    label: str


class Temperature(str, Enum):
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"


class MarketTemperature(_Metric):
    heat_score: float = Field(..., ge=0, le=100)
    temperature: Temperature
    total: int
    availability_ratio: float
    fresh_ratio: float
    avg_roi: float


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class AreaPriceTrend(_Metric):
    city: str
    direction: TrendDirection
    change_pct: float
    older_avg_price_sqm: float
    newer_avg_price_sqm: float
    sample_size: int


class BelowMarket(_Metric):
    """Parcel price/sqm vs the mean of same-city peers."""

    city: str
    delta_pct: float = Field(..., description="Negative = below market")
    parcel_price_sqm: float
    area_avg_price_sqm: float
    peer_count: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_below_market(self) -> bool:
        return self.delta_pct < 0


class TaxAuthorityComparison(_Metric):
    tax_authority_value: float
    delta_pct: float = Field(..., description="Asking price vs government valuation")


# =============================================================================
# Buildable value & alternatives
# =============================================================================


class BuildableValue(_Metric):
    density: float
    estimated_units: float
    total_buildable_area: float
    price_per_buildable_sqm: int
    price_per_unit: int
    efficiency_ratio: float = Field(..., description="Buildable area / land area")


class AlternativeOutcome(_Metric):
    name: str
    annual_rate_pct: float | None = Field(default=None, description="Nominal annual rate")
    future_value: float
    profit: float
    real_return_pct: float | None = Field(default=None, description="Inflation-adjusted annual rate")


class AlternativeReturns(_Metric):
    principal: float
    years: float
    inflation_rate: float
    land: AlternativeOutcome
    bank: AlternativeOutcome
    equity: AlternativeOutcome


# =============================================================================
# Scenarios
# =============================================================================


class Scenario(_Metric):
    name: str
    factor: float
    waterfall: ProfitWaterfall

    @computed_field  # type: ignore[prop-decorator]
    @property
    def net_profit(self) -> float:
        return self.waterfall.net_profit

    @computed_field  # type: ignore[prop-decorator]
    @property
    def true_roi(self) -> int | None:
        return self.waterfall.true_roi


# =============================================================================
# Aggregate
# =============================================================================


class DerivedMetrics(_Metric):
    """All derived metrics for one parcel against one comparison set.

    Each field is independently nullable; a missing input suppresses only the
    metrics that depend on it.
    """

    parcel_id: str
    as_of: datetime

    price_per_sqm: float | None = None
    price_per_dunam: float | None = None

    waterfall: ProfitWaterfall | None = None
    monthly_payment: MonthlyPayment | None = None
    tax_authority: TaxAuthorityComparison | None = None
    days_on_market: DaysOnMarket | None = None
    timeline: InvestmentTimeline | None = None

    score: InvestmentScore | None = None
    completeness: DataCompleteness | None = None
    risk: RiskAssessment | None = None
    verdict: InvestmentVerdict | None = None

    percentiles: ParcelPercentiles | None = None
    badges: list[CategoryBadge] = Field(default_factory=list)

    demand: DemandVelocity | None = None
    below_market: BelowMarket | None = None
    area_trend: AreaPriceTrend | None = None

    buildable: BuildableValue | None = None
    alternatives: AlternativeReturns | None = None
    scenarios: list[Scenario] = Field(default_factory=list)

    centroid: LatLng | None = None
    perimeter_m: float | None = None
    commute_times: list[CommuteTime] = Field(default_factory=list)
