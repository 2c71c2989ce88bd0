"""Tests for the parcel model and naming adapter."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from landanalyzr.models.metrics import DataCompleteness
from landanalyzr.models.parcel import (
    ParcelRecord,
    ParcelStatus,
    ZoningStage,
    normalize_parcels,
)


class TestNamingAdapter:
    """Test dual naming convention support."""

    def test_camel_and_snake_case_match(self):
        """Both conventions produce the same canonical record."""
        snake = ParcelRecord.from_raw({
            "id": "a",
            "total_price": 500000,
            "projected_value": 900000,
            "size_sqm": 1000,
            "zoning_stage": "MASTER_PLAN_DEPOSIT",
            "readiness_estimate": "3-5",
            "density_units_per_dunam": 8,
            "created_at": "2025-06-01T00:00:00Z",
        })
        camel = ParcelRecord.from_raw({
            "id": "a",
            "totalPrice": 500000,
            "projectedValue": 900000,
            "sizeSqM": 1000,
            "zoningStage": "MASTER_PLAN_DEPOSIT",
            "readinessEstimate": "3-5",
            "densityUnitsPerDunam": 8,
            "createdAt": "2025-06-01T00:00:00Z",
        })
        assert snake == camel

    def test_size_sqm_lowercase_m_alias(self):
        """sizeSqm is accepted as well as sizeSqM."""
        parcel = ParcelRecord.from_raw({"id": "a", "sizeSqm": 750})
        assert parcel.size_sqm == 750

    def test_integer_id_becomes_string(self):
        """Numeric ids are normalized to strings."""
        parcel = ParcelRecord.from_raw({"id": 42})
        assert parcel.id == "42"

    def test_enum_members_accepted(self):
        """Enum members pass through unchanged."""
        parcel = ParcelRecord(
            id="a",
            zoning_stage=ZoningStage.BUILDING_PERMIT,
            status=ParcelStatus.SOLD,
        )
        assert parcel.zoning_stage == ZoningStage.BUILDING_PERMIT
        assert parcel.status == ParcelStatus.SOLD

    def test_numeric_strings_parsed(self):
        """Amounts given as strings are parsed."""
        parcel = ParcelRecord.from_raw(
            {"id": "a", "totalPrice": "500000", "taxAuthorityValue": "450000"}
        )
        assert parcel.total_price == 500000
        assert parcel.tax_authority_value == 450000


class TestClamping:
    """Test invalid inputs are treated as missing, not raised."""

    def test_negative_price_clamped(self):
        """Negative price becomes 0 and suppresses price per sqm."""
        parcel = ParcelRecord.from_raw({"id": "a", "total_price": -100, "size_sqm": 500})
        assert parcel.total_price == 0
        assert parcel.price_per_sqm is None

    def test_negative_views_clamped(self):
        """Negative views become 0."""
        parcel = ParcelRecord.from_raw({"id": "a", "views": -5})
        assert parcel.views == 0

    def test_non_numeric_amounts_are_missing(self):
        """Unparseable amounts and views become 0."""
        parcel = ParcelRecord.from_raw({
            "id": "a",
            "totalPrice": "n/a",
            "projected_value": "TBD",
            "size_sqm": [1000],
            "views": "many",
        })
        assert parcel.total_price == 0
        assert parcel.projected_value == 0
        assert parcel.size_sqm == 0
        assert parcel.views == 0

    def test_non_numeric_optional_fields_are_missing(self):
        """Unparseable optional values become None."""
        parcel = ParcelRecord.from_raw({
            "id": "a",
            "total_price": 500000,
            "tax_authority_value": "unknown",
            "densityUnitsPerDunam": "?",
        })
        assert parcel.total_price == 500000
        assert parcel.tax_authority_value is None
        assert parcel.density_units_per_dunam is None

    def test_non_positive_density_is_missing(self):
        """Zero density means unknown."""
        parcel = ParcelRecord.from_raw({"id": "a", "density_units_per_dunam": 0})
        assert parcel.density_units_per_dunam is None

    def test_unknown_zoning_stage_is_missing(self):
        """Unrecognized zoning stage is treated as absent."""
        parcel = ParcelRecord.from_raw({"id": "a", "zoningStage": "SOMETHING_ELSE"})
        assert parcel.zoning_stage is None

    def test_lowercase_status(self):
        """Status is case-insensitive."""
        parcel = ParcelRecord.from_raw({"id": "a", "status": "available"})
        assert parcel.status == ParcelStatus.AVAILABLE

    def test_blank_readiness_is_missing(self):
        """Whitespace readiness is treated as absent."""
        parcel = ParcelRecord.from_raw({"id": "a", "readiness_estimate": "  "})
        assert parcel.readiness_estimate is None


class TestCoordinates:
    """Test boundary ring normalization."""

    def test_dict_vertices_accepted(self):
        """{lat, lng} objects are converted to pairs."""
        parcel = ParcelRecord.from_raw({
            "id": "a",
            "coordinates": [{"lat": 32.1, "lng": 34.8}, {"lat": 32.2, "lng": 34.9}],
        })
        assert parcel.coordinates == [(32.1, 34.8), (32.2, 34.9)]

    def test_non_finite_vertices_dropped(self):
        """NaN and malformed vertices are ignored."""
        parcel = ParcelRecord.from_raw({
            "id": "a",
            "coordinates": [[32.1, 34.8], [float("nan"), 34.9], ["x"], [32.3, 35.0]],
        })
        assert parcel.coordinates == [(32.1, 34.8), (32.3, 35.0)]


class TestParcelRecord:
    """Test derived properties and immutability."""

    def test_price_per_sqm(self, sample_parcel: ParcelRecord):
        """Price per sqm = price / size."""
        assert sample_parcel.price_per_sqm == 500.0
        assert sample_parcel.dunam == 1.0

    def test_naive_datetime_assumed_utc(self):
        """Naive timestamps are interpreted as UTC."""
        parcel = ParcelRecord.from_raw({"id": "a", "created_at": "2025-06-01T12:00:00"})
        assert parcel.created_at == datetime(2025, 6, 1, 12, tzinfo=timezone.utc)

    def test_frozen(self, sample_parcel: ParcelRecord):
        """Records are immutable."""
        with pytest.raises(ValidationError):
            sample_parcel.total_price = 1

    def test_zoning_progress(self):
        """Progress runs from 0 (agricultural) to 1 (building permit)."""
        assert ZoningStage.AGRICULTURAL.progress == 0.0
        assert ZoningStage.BUILDING_PERMIT.progress == 1.0
        assert ZoningStage.DETAILED_PLAN_APPROVED.is_advanced
        assert not ZoningStage.DETAILED_PLAN_DEPOSIT.is_advanced


class TestNormalizeParcels:
    """Test batch normalization."""

    def test_skips_records_without_id(self, caplog):
        """Structurally unusable records are logged and skipped."""
        parcels = normalize_parcels([
            {"id": "a", "totalPrice": 100},
            {"totalPrice": 200},
            {"id": "c", "total_price": 300},
        ])
        assert [p.id for p in parcels] == ["a", "c"]
        assert "Skipping invalid parcel record" in caplog.text

    def test_passes_through_records(self, sample_parcel: ParcelRecord):
        """Existing ParcelRecords are kept as-is."""
        assert normalize_parcels([sample_parcel]) == [sample_parcel]

    def test_bad_field_values_keep_the_record(self):
        """A bad value in one field does not drop the parcel."""
        parcels = normalize_parcels([
            {"id": "a", "totalPrice": "n/a", "sizeSqM": 1000},
            {"id": "b", "total_price": 400000, "tax_authority_value": "unknown"},
        ])
        assert [p.id for p in parcels] == ["a", "b"]
        assert parcels[1].total_price == 400000

    def test_skips_non_mapping_entries(self, caplog):
        """Entries that are not objects are logged and skipped."""
        parcels = normalize_parcels([{"id": "a", "total_price": 1}, 5, "b", None])
        assert [p.id for p in parcels] == ["a"]
        assert "Skipping parcel record of type int" in caplog.text


class TestDataCompleteness:
    """Test the completeness percentage."""

    def test_percent_rounds_half_up(self):
        """5 of 8 fields is 62.5%, shown as 63."""
        assert DataCompleteness(ratio=0.625).percent == 63
        assert DataCompleteness(ratio=1.0).percent == 100
