"""Pytest fixtures and test utilities."""

from datetime import datetime, timedelta, timezone

import pytest

from landanalyzr.analysis import (
    BuildableCalculator,
    InvestmentScorer,
    MarketSignalEngine,
    ParcelAnalyzer,
    PercentileRanker,
    ScenarioGenerator,
    ValuationCalculator,
)
from landanalyzr.models.parcel import ParcelRecord, ParcelStatus, ZoningStage

AS_OF = datetime(2026, 1, 1, tzinfo=timezone.utc)

HADERA_TRIANGLE = [
    (32.4400, 34.9100),
    (32.4410, 34.9100),
    (32.4405, 34.9110),
]


@pytest.fixture
def as_of() -> datetime:
    """Fixed reference time so day counts are reproducible."""
    return AS_OF


@pytest.fixture
def calculator() -> ValuationCalculator:
    """ValuationCalculator instance."""
    return ValuationCalculator()


@pytest.fixture
def scorer() -> InvestmentScorer:
    """InvestmentScorer instance."""
    return InvestmentScorer()


@pytest.fixture
def ranker() -> PercentileRanker:
    """PercentileRanker instance."""
    return PercentileRanker()


@pytest.fixture
def market() -> MarketSignalEngine:
    """MarketSignalEngine instance."""
    return MarketSignalEngine()


@pytest.fixture
def buildable() -> BuildableCalculator:
    """BuildableCalculator instance."""
    return BuildableCalculator()


@pytest.fixture
def scenarios() -> ScenarioGenerator:
    """ScenarioGenerator instance."""
    return ScenarioGenerator()


@pytest.fixture
def analyzer() -> ParcelAnalyzer:
    """ParcelAnalyzer instance."""
    return ParcelAnalyzer()


@pytest.fixture
def make_parcel():
    """Factory for parcels with sensible defaults."""

    def _make(**overrides) -> ParcelRecord:
        data = {
            "id": "parcel",
            "city": "Hadera",
            "total_price": 500000,
            "projected_value": 900000,
            "size_sqm": 1000,
        }
        data.update(overrides)
        return ParcelRecord(**data)

    return _make


@pytest.fixture
def sample_parcel() -> ParcelRecord:
    """Fully populated Hadera parcel: 500k asking, 900k projected, 1 dunam."""
    return ParcelRecord(
        id="p1",
        city="Hadera",
        block_number="10042",
        number="17",
        status=ParcelStatus.AVAILABLE,
        total_price=500000,
        projected_value=900000,
        tax_authority_value=450000,
        size_sqm=1000,
        zoning_stage=ZoningStage.DETAILED_PLAN_PREP,
        readiness_estimate="3-5",
        density_units_per_dunam=8,
        coordinates=HADERA_TRIANGLE,
        views=60,
        created_at=AS_OF - timedelta(days=12),
    )


@pytest.fixture
def hadera_parcels(sample_parcel: ParcelRecord) -> list[ParcelRecord]:
    """Four Hadera parcels at 400-700 per sqm, listed over the second half of 2025."""
    return [
        sample_parcel,
        ParcelRecord(
            id="p2",
            city="Hadera",
            status=ParcelStatus.AVAILABLE,
            total_price=400000,
            projected_value=1000000,
            size_sqm=1000,
            zoning_stage=ZoningStage.MASTER_PLAN_APPROVED,
            readiness_estimate="5+",
            views=20,
            created_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
        ),
        ParcelRecord(
            id="p3",
            city="Hadera",
            status=ParcelStatus.SOLD,
            total_price=600000,
            projected_value=900000,
            size_sqm=1000,
            zoning_stage=ZoningStage.DETAILED_PLAN_DEPOSIT,
            readiness_estimate="3-5",
            views=100,
            created_at=datetime(2025, 9, 1, tzinfo=timezone.utc),
        ),
        ParcelRecord(
            id="p4",
            city="Hadera",
            status=ParcelStatus.AVAILABLE,
            total_price=700000,
            projected_value=1400000,
            size_sqm=1000,
            zoning_stage=ZoningStage.DETAILED_PLAN_APPROVED,
            readiness_estimate="1-3",
            views=10,
            created_at=datetime(2025, 11, 1, tzinfo=timezone.utc),
        ),
    ]


@pytest.fixture
def comparison_set(hadera_parcels: list[ParcelRecord]) -> list[ParcelRecord]:
    """Hadera parcels plus one Netanya parcel with an unknown projected value."""
    return hadera_parcels + [
        ParcelRecord(
            id="p5",
            city="Netanya",
            total_price=1000000,
            size_sqm=500,
        ),
    ]
