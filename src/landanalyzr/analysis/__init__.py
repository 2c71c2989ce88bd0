"""Investment analysis modules for land parcels.

This package provides the valuation calculator, scoring and risk
classification, percentile ranking, market signals, buildable value and
sensitivity scenarios, plus the ParcelAnalyzer facade that combines them.
"""

from .analyzer import ParcelAnalyzer
from .buildable import BuildableCalculator
from .calculator import ValuationCalculator
from .market import MarketSignalEngine
from .ranker import PercentileRanker, RankMetric
from .scenarios import ScenarioGenerator
from .scorer import InvestmentScorer

__all__ = [
    "BuildableCalculator",
    "InvestmentScorer",
    "MarketSignalEngine",
    "ParcelAnalyzer",
    "PercentileRanker",
    "RankMetric",
    "ScenarioGenerator",
    "ValuationCalculator",
]
