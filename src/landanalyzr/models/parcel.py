"""Land parcel data model and the field-naming adapter.

Parcel records arrive from two historical naming conventions (legacy
snake_case ``total_price`` and newer camelCase ``totalPrice``). Both are
accepted here, once, so the calculators only ever see the canonical shape.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    ValidationError,
    ValidationInfo,
    computed_field,
    field_validator,
)

logger = logging.getLogger(__name__)


class ZoningStage(str, Enum):
    """Planning pipeline stages, ordered from raw land to building permit."""

    AGRICULTURAL = "AGRICULTURAL"
    MASTER_PLAN_DEPOSIT = "MASTER_PLAN_DEPOSIT"
    MASTER_PLAN_APPROVED = "MASTER_PLAN_APPROVED"
    DETAILED_PLAN_PREP = "DETAILED_PLAN_PREP"
    DETAILED_PLAN_DEPOSIT = "DETAILED_PLAN_DEPOSIT"
    DETAILED_PLAN_APPROVED = "DETAILED_PLAN_APPROVED"
    DEVELOPER_TENDER = "DEVELOPER_TENDER"
    BUILDING_PERMIT = "BUILDING_PERMIT"

    @property
    def position(self) -> int:
        """0-based position in the pipeline."""
        return list(ZoningStage).index(self)

    @property
    def progress(self) -> float:
        """Fraction of the pipeline completed (0.0 agricultural, 1.0 permit)."""
        return self.position / (len(ZoningStage) - 1)

    @property
    def is_advanced(self) -> bool:
        """Detailed plan approved or later."""
        return self.position >= ZoningStage.DETAILED_PLAN_APPROVED.position


class ParcelStatus(str, Enum):
    """Listing status of a parcel."""

    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    IN_PROCESS = "IN_PROCESS"


class ParcelRecord(BaseModel):
    """Canonical land parcel record.

    Immutable within a calculation call. Negative amounts are clamped to 0,
    which every calculator reads as "unknown", so a bad upstream value never
    crashes a render.
    """

    # Identification
    id: str = Field(..., description="Opaque identifier, unique within a comparison set")
    city: str = Field(default="", description="Grouping key for area comparisons")
    block_number: str | None = Field(
        default=None, validation_alias=AliasChoices("block_number", "blockNumber")
    )
    number: str | None = Field(default=None, description="Parcel number within the block")
    status: ParcelStatus | None = Field(default=None)

    # Pricing
    total_price: float = Field(
        default=0, ge=0, validation_alias=AliasChoices("total_price", "totalPrice")
    )
    projected_value: float = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("projected_value", "projectedValue"),
        description="Expected value after zoning maturity; 0 means unknown",
    )
    tax_authority_value: float | None = Field(
        default=None,
        validation_alias=AliasChoices("tax_authority_value", "taxAuthorityValue"),
    )

    # Land details
    size_sqm: float = Field(
        default=0, ge=0, validation_alias=AliasChoices("size_sqm", "sizeSqM", "sizeSqm")
    )
    zoning_stage: ZoningStage | None = Field(
        default=None, validation_alias=AliasChoices("zoning_stage", "zoningStage")
    )
    readiness_estimate: str | None = Field(
        default=None, validation_alias=AliasChoices("readiness_estimate", "readinessEstimate")
    )
    density_units_per_dunam: float | None = Field(
        default=None,
        validation_alias=AliasChoices("density_units_per_dunam", "densityUnitsPerDunam"),
    )
    coordinates: list[tuple[float, float]] = Field(
        default_factory=list, description="Boundary ring of (lat, lng) vertices"
    )

    # Activity
    views: int = Field(default=0, ge=0)
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("updated_at", "updatedAt")
    )

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }

    @field_validator("total_price", "projected_value", "size_sqm", "views", mode="before")
    @classmethod
    def _clamp_non_negative(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == "":
            return 0
        try:
            number = float(value)
        except (TypeError, ValueError):
            logger.debug(f"Non-numeric {info.field_name} {value!r}, treating as missing")
            return 0
        if not math.isfinite(number) or number < 0:
            return 0
        return int(number) if info.field_name == "views" else number

    @field_validator("tax_authority_value", "density_units_per_dunam", mode="before")
    @classmethod
    def _optional_positive(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == "":
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            logger.debug(f"Non-numeric {info.field_name} {value!r}, treating as missing")
            return None
        if not math.isfinite(number) or number <= 0:
            return None
        return number

    @field_validator("id", "block_number", "number", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("city", mode="before")
    @classmethod
    def _city_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("zoning_stage", "status", mode="before")
    @classmethod
    def _unknown_enum_is_missing(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == "":
            return None
        enum_cls = ZoningStage if info.field_name == "zoning_stage" else ParcelStatus
        try:
            return enum_cls(str(getattr(value, "value", value)).upper())
        except ValueError:
            logger.debug(f"Unknown {info.field_name} {value!r}, treating as missing")
            return None

    @field_validator("readiness_estimate", mode="before")
    @classmethod
    def _blank_readiness(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("coordinates", mode="before")
    @classmethod
    def _valid_vertices(cls, value: Any) -> Any:
        if not value:
            return []
        vertices = []
        for vertex in value:
            if isinstance(vertex, Mapping):
                vertex = (vertex.get("lat"), vertex.get("lng"))
            try:
                lat, lng = float(vertex[0]), float(vertex[1])
            except (TypeError, ValueError, IndexError):
                continue
            if math.isfinite(lat) and math.isfinite(lng):
                vertices.append((lat, lng))
        return vertices

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def price_per_sqm(self) -> float | None:
        """Asking price per square meter, None when price or size is unknown."""
        if self.total_price <= 0 or self.size_sqm <= 0:
            return None
        return self.total_price / self.size_sqm

    @property
    def dunam(self) -> float | None:
        """Area in dunams (1 dunam = 1000 sqm)."""
        return self.size_sqm / 1000 if self.size_sqm > 0 else None

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> "ParcelRecord":
        """Build a canonical record from either naming convention."""
        return cls.model_validate(dict(data))


def normalize_parcels(records: Iterable[Mapping[str, Any] | ParcelRecord]) -> list[ParcelRecord]:
    """Normalize a batch of raw records, skipping structurally unusable ones.

    Args:
        records: Raw mappings (snake_case or camelCase) or ParcelRecords.

    Returns:
        Canonical ParcelRecords in input order.
    """
    parcels = []
    for raw in records:
        if isinstance(raw, ParcelRecord):
            parcels.append(raw)
            continue
        if not isinstance(raw, Mapping):
            logger.warning(f"Skipping parcel record of type {type(raw).__name__}: {raw!r}")
            continue
        try:
            parcels.append(ParcelRecord.from_raw(raw))
        except ValidationError as e:
            logger.warning(f"Skipping invalid parcel record {raw.get('id')!r}: {e}")
    return parcels
