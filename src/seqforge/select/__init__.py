"""Choose the final driver set from a search pool."""

from seqforge.select.selector import Selector, is_valid_driver
from seqforge.select.stats import CoverageStats, coverage_stats

__all__ = ["CoverageStats", "Selector", "coverage_stats", "is_valid_driver"]
