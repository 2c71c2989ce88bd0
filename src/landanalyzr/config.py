"""Configuration system for LandAnalyzr.

Uses pydantic-settings to load configuration from environment variables
and .env files with defaults calibrated for the Israeli land market.
Every tax rate, threshold and benchmark constant used by the calculators
lives here so a rate change is a single edit.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MajorCity(BaseModel):
    """Commute destination with fixed coordinates."""

    name: str
    lat: float
    lng: float


DEFAULT_MAJOR_CITIES = [
    MajorCity(name="Tel Aviv", lat=32.0853, lng=34.7818),
    MajorCity(name="Jerusalem", lat=31.7683, lng=35.2137),
    MajorCity(name="Haifa", lat=32.7940, lng=34.9896),
    MajorCity(name="Beer Sheva", lat=31.2530, lng=34.7915),
    MajorCity(name="Ben Gurion Airport", lat=32.0055, lng=34.8854),
    MajorCity(name="Herzliya", lat=32.1629, lng=34.7913),
]


class Settings(BaseSettings):
    """Analytics settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables are prefixed with LANDANALYZR_
    (e.g., LANDANALYZR_PURCHASE_TAX_PCT=0.08).
    """

    model_config = SettingsConfigDict(
        env_prefix="LANDANALYZR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Transaction costs (fractions of purchase price)
    purchase_tax_pct: float = Field(default=0.06, ge=0, description="Purchase tax on land")
    attorney_fee_pct: float = Field(default=0.0175, ge=0, description="Attorney fees incl. VAT")
    appraiser_fee_pct: float = Field(default=0.003, ge=0)
    appraiser_fee_min: float = Field(default=2000, ge=0)
    appraiser_fee_max: float = Field(default=8000, ge=0)
    registration_fee: float = Field(default=167, ge=0, description="Land registry fee")

    # Exit taxes
    betterment_levy_pct: float = Field(
        default=0.5, ge=0, le=1, description="Levy on appreciation from zoning change"
    )
    capital_gains_pct: float = Field(default=0.25, ge=0, le=1)

    # Annual holding costs (per sqm)
    arnona_per_sqm: float = Field(default=2.5, ge=0, description="Municipal tax, early zoning")
    arnona_per_sqm_advanced: float = Field(
        default=5.0, ge=0, description="Municipal tax once a detailed plan is approved"
    )
    management_per_sqm: float = Field(default=1.5, ge=0)

    # Holding period inferred from readiness buckets
    holding_years_by_readiness: dict[str, int] = Field(
        default={"1-3": 2, "3-5": 4, "5+": 7},
    )
    default_holding_years: int = Field(default=5, ge=1)

    # Investment score weights (sum to 10)
    score_weights: dict[str, float] = Field(
        default={
            "roi": 4.0,
            "zoning": 2.5,
            "readiness": 1.5,
            "size": 1.0,
            "completeness": 1.0,
        },
    )
    score_roi_ceiling_pct: float = Field(
        default=200.0, gt=0, description="ROI at which the ROI factor saturates"
    )

    # Risk level cut points on cumulative risk points (levels 1-4; above is 5)
    risk_level_cut_points: list[float] = Field(default=[20, 35, 50, 70])
    low_completeness_threshold: float = Field(default=0.6, ge=0, le=1)
    large_parcel_sqm: float = Field(default=10000, gt=0)

    # Verdict decision table
    fresh_listing_days: int = Field(default=30, ge=0)

    # Percentiles
    min_percentile_population: int = Field(default=3, ge=2)

    # Demand velocity tiers (views per day)
    demand_high_velocity: float = Field(default=3.0, gt=0)
    demand_medium_velocity: float = Field(default=1.0, gt=0)

    # Market temperature
    temperature_availability_weight: float = Field(default=40.0, ge=0)
    temperature_fresh_weight: float = Field(default=30.0, ge=0)
    temperature_roi_weight: float = Field(default=30.0, ge=0)
    temperature_roi_cap_pct: float = Field(default=200.0, gt=0)
    temperature_hot_cut: float = Field(default=55.0)
    temperature_warm_cut: float = Field(default=30.0)

    # Area trend and below-market signal
    trend_min_records: int = Field(default=4, ge=2)
    trend_stable_pct: float = Field(default=2.0, ge=0)
    below_market_min_peers: int = Field(default=2, ge=1)
    below_market_min_delta_pct: float = Field(default=5.0, ge=0)

    # Alternative investment benchmarks (annual)
    bank_deposit_rate: float = Field(default=0.045, description="Bank deposit benchmark")
    equity_index_rate: float = Field(default=0.09, description="TA-125 historical return")
    inflation_rate: float = Field(default=0.03)

    # Buildable value
    assumed_unit_size_sqm: float = Field(default=100.0, gt=0)

    # Commute estimation
    road_correction_factor: float = Field(
        default=1.35, ge=1, description="Road distance / straight-line distance"
    )
    average_driving_speed_kmh: float = Field(default=60.0, gt=0)
    major_cities: list[MajorCity] = Field(default_factory=lambda: list(DEFAULT_MAJOR_CITIES))

    # Mortgage estimate defaults
    mortgage_ltv: float = Field(default=0.5, ge=0, le=1)
    mortgage_annual_rate: float = Field(default=0.06, ge=0)
    mortgage_years: int = Field(default=15, ge=1)


# Singleton instance for easy import
config = Settings()
