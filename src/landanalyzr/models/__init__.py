"""Data models for LandAnalyzr."""

from landanalyzr.models.metrics import DerivedMetrics, ProfitWaterfall
from landanalyzr.models.parcel import (
    ParcelRecord,
    ParcelStatus,
    ZoningStage,
    normalize_parcels,
)

__all__ = [
    "DerivedMetrics",
    "ParcelRecord",
    "ParcelStatus",
    "ProfitWaterfall",
    "ZoningStage",
    "normalize_parcels",
]
