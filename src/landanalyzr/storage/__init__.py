"""Storage modules for derived-metric memoization.

Calculators are pure, so their results can be cached by the content of
their inputs at the call boundary.
"""

from .cache import MetricsCache

__all__ = ["MetricsCache"]
