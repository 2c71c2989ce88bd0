"""LandAnalyzr: deterministic investment analytics for land parcels."""

from landanalyzr.analysis import ParcelAnalyzer
from landanalyzr.config import Settings, config
from landanalyzr.models import DerivedMetrics, ParcelRecord, ZoningStage, normalize_parcels

__version__ = "0.1.0"

__all__ = [
    "DerivedMetrics",
    "ParcelAnalyzer",
    "ParcelRecord",
    "Settings",
    "ZoningStage",
    "config",
    "normalize_parcels",
]
