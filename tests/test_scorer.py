"""Tests for InvestmentScorer."""

from datetime import timedelta

import pytest

from landanalyzr.analysis import InvestmentScorer
from landanalyzr.models.metrics import VerdictTier
from landanalyzr.models.parcel import ParcelRecord, ZoningStage


@pytest.fixture
def top_parcel(make_parcel, as_of) -> ParcelRecord:
    """Cheap, fully documented parcel with a building permit and 300% ROI."""
    return make_parcel(
        id="top",
        total_price=100000,
        projected_value=400000,
        zoning_stage=ZoningStage.BUILDING_PERMIT,
        readiness_estimate="1-3",
        density_units_per_dunam=10,
        tax_authority_value=120000,
        coordinates=[(32.44, 34.91), (32.441, 34.91), (32.4405, 34.911)],
        created_at=as_of - timedelta(days=3),
    )


class TestDataCompleteness:
    """Test data completeness ratio."""

    def test_full_record(self, scorer: InvestmentScorer, sample_parcel: ParcelRecord):
        """Every optional input present."""
        completeness = scorer.data_completeness(sample_parcel)
        assert completeness.ratio == 1.0
        assert completeness.percent == 100
        assert completeness.missing == []

    def test_sparse_record(self, scorer: InvestmentScorer, make_parcel):
        """Only size and projected value present."""
        completeness = scorer.data_completeness(make_parcel())
        assert completeness.present == ["size_sqm", "projected_value"]
        assert completeness.ratio == 0.25
        assert "coordinates" in completeness.missing


class TestInvestmentScore:
    """Test the weighted 0-10 score."""

    def test_sample_parcel(self, scorer: InvestmentScorer, sample_parcel: ParcelRecord):
        """80% ROI, detailed plan in prep, 3-5 years, 1 dunam, complete data."""
        score = scorer.investment_score(sample_parcel)
        assert score.total == 5.7
        assert score.grade.grade == "B"
        assert [f.key for f in score.factors] == [
            "roi", "zoning", "readiness", "size", "completeness",
        ]

    def test_points_add_up(self, scorer: InvestmentScorer, sample_parcel: ParcelRecord):
        """Factor points sum to the total."""
        score = scorer.investment_score(sample_parcel)
        assert sum(f.points for f in score.factors) == pytest.approx(score.total, abs=0.05)
        for factor in score.factors:
            assert 0 <= factor.normalized <= 1
            assert factor.points <= factor.max_points

    def test_perfect_parcel(self, scorer: InvestmentScorer, top_parcel: ParcelRecord):
        """Every factor maxed out."""
        score = scorer.investment_score(top_parcel)
        assert score.total == 10.0
        assert score.grade.grade == "A+"

    def test_higher_roi_scores_higher(self, scorer: InvestmentScorer, make_parcel):
        """All else equal, a better return raises the score."""
        low = scorer.investment_score(make_parcel(projected_value=600000))
        high = scorer.investment_score(make_parcel(projected_value=1000000))
        assert high.total > low.total

    def test_missing_inputs(self, scorer: InvestmentScorer, make_parcel):
        """No price or no projected value: score unavailable."""
        assert scorer.investment_score(make_parcel(total_price=0)) is None
        assert scorer.investment_score(make_parcel(projected_value=0)) is None

    @pytest.mark.parametrize(
        "score,grade",
        [(9.5, "A+"), (8.0, "A"), (7.2, "A-"), (6.0, "B+"), (5.7, "B"), (4.1, "B-"), (3.0, "C+"), (2.9, "C")],
    )
    def test_grades(self, score, grade):
        """Grade tiers."""
        assert InvestmentScorer.investment_grade(score).grade == grade


class TestRiskLevel:
    """Test additive risk assessment."""

    def test_sample_parcel(
        self,
        scorer: InvestmentScorer,
        sample_parcel: ParcelRecord,
        hadera_parcels: list[ParcelRecord],
    ):
        """Planning in process, medium horizon, price near the area average."""
        risk = scorer.risk_level(sample_parcel, hadera_parcels)
        assert risk.risk_points == 35
        assert risk.level == 2
        assert risk.label == "Low-medium risk"
        assert risk.factors == ["Planning in process"]

    def test_unknown_everything(self, scorer: InvestmentScorer, make_parcel):
        """Unknown zoning and sparse data add risk."""
        risk = scorer.risk_level(make_parcel(projected_value=0, size_sqm=0))
        assert risk.risk_points == 50
        assert risk.level == 3
        assert risk.factors == ["Planning stage unknown", "Incomplete listing data"]

    def test_factors_most_severe_first(self, scorer: InvestmentScorer, make_parcel):
        """Factors are ordered by their contribution."""
        parcel = make_parcel(
            total_price=100000,
            projected_value=500000,
            size_sqm=20000,
            zoning_stage=ZoningStage.AGRICULTURAL,
            readiness_estimate="5+",
        )
        risk = scorer.risk_level(parcel)
        assert risk.level == 5
        assert risk.factors == [
            "Early planning stage",
            "Long investment horizon (5+ years)",
            "Very high projected return, verify",
            "Incomplete listing data",
            "Large parcel, lower liquidity",
        ]

    def test_adding_risk_never_lowers_level(self, scorer: InvestmentScorer, make_parcel):
        """A large parcel is at least as risky as the same parcel at normal size."""
        base = scorer.risk_level(make_parcel(zoning_stage=ZoningStage.DETAILED_PLAN_PREP))
        large = scorer.risk_level(
            make_parcel(zoning_stage=ZoningStage.DETAILED_PLAN_PREP, size_sqm=20000)
        )
        assert large.risk_points > base.risk_points
        assert large.level >= base.level

    def test_price_above_area(
        self, scorer: InvestmentScorer, hadera_parcels: list[ParcelRecord], make_parcel
    ):
        """Paying well above the area average is a risk factor."""
        pricey = make_parcel(id="x", total_price=900000, projected_value=1500000)
        risk = scorer.risk_level(pricey, hadera_parcels)
        assert "Price well above the area average" in risk.factors

    def test_unknown_price(self, scorer: InvestmentScorer, make_parcel):
        """No price, no risk level."""
        assert scorer.risk_level(make_parcel(total_price=0)) is None


class TestVerdict:
    """Test the verdict decision table."""

    def test_good(
        self,
        scorer: InvestmentScorer,
        sample_parcel: ParcelRecord,
        comparison_set: list[ParcelRecord],
        as_of,
    ):
        """Score 5.7 with a mid-range price is a good opportunity."""
        verdict = scorer.verdict(sample_parcel, comparison_set, as_of)
        assert verdict.tier == VerdictTier.GOOD
        assert verdict.price_sqm_percentile == 25
        assert verdict.is_fresh

    def test_hot(
        self,
        scorer: InvestmentScorer,
        top_parcel: ParcelRecord,
        comparison_set: list[ParcelRecord],
        as_of,
    ):
        """Top score, cheapest per sqm and freshly listed."""
        verdict = scorer.verdict(top_parcel, comparison_set, as_of)
        assert verdict.tier == VerdictTier.HOT
        assert verdict.score == 10.0
        assert verdict.price_sqm_percentile == 0

    def test_stale_listing_is_not_hot(
        self,
        scorer: InvestmentScorer,
        top_parcel: ParcelRecord,
        comparison_set: list[ParcelRecord],
        as_of,
    ):
        """Without freshness the same parcel is excellent, not hot."""
        stale = top_parcel.model_copy(update={"created_at": as_of - timedelta(days=100)})
        verdict = scorer.verdict(stale, comparison_set, as_of)
        assert verdict.tier == VerdictTier.EXCELLENT
        assert not verdict.is_fresh

    def test_fair(self, scorer: InvestmentScorer, comparison_set: list[ParcelRecord], make_parcel, as_of):
        """Middling score at a low price is worth a look."""
        parcel = make_parcel(
            id="fair",
            total_price=300000,
            projected_value=450000,
            zoning_stage=ZoningStage.MASTER_PLAN_DEPOSIT,
            readiness_estimate="3-5",
        )
        verdict = scorer.verdict(parcel, comparison_set, as_of)
        assert verdict.score == 3.9
        assert verdict.tier == VerdictTier.FAIR

    def test_poor(self, scorer: InvestmentScorer, comparison_set: list[ParcelRecord], make_parcel, as_of):
        """Low score in the most expensive quartile."""
        parcel = make_parcel(
            id="poor",
            total_price=900000,
            projected_value=950000,
            zoning_stage=ZoningStage.AGRICULTURAL,
            readiness_estimate="5+",
        )
        verdict = scorer.verdict(parcel, comparison_set, as_of)
        assert verdict.tier == VerdictTier.POOR
        assert verdict.price_sqm_percentile == 80

    def test_hot_never_bottom_quartile_score(
        self,
        scorer: InvestmentScorer,
        comparison_set: list[ParcelRecord],
        make_parcel,
        as_of,
    ):
        """Huge ROI alone does not make a hot deal."""
        parcel = make_parcel(
            id="hype",
            total_price=100000,
            projected_value=1000000,
            created_at=as_of - timedelta(days=1),
        )
        verdict = scorer.verdict(parcel, comparison_set, as_of)
        assert verdict.score < 8
        assert verdict.tier != VerdictTier.HOT

    def test_unavailable(
        self,
        scorer: InvestmentScorer,
        sample_parcel: ParcelRecord,
        comparison_set: list[ParcelRecord],
        as_of,
    ):
        """No set, tiny set or no score: no verdict."""
        assert scorer.verdict(sample_parcel, None, as_of) is None
        assert scorer.verdict(sample_parcel, comparison_set[:1], as_of) is None
        assert scorer.verdict(comparison_set[4], comparison_set, as_of) is None
