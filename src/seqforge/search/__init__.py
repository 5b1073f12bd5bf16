"""Sequence search strategies, coverage repair and corpus replay."""

from seqforge.search.engine import SearchEngine, Strategy
from seqforge.search.seeds import ReplayReport, SeedChain, load_seed_chains

__all__ = ["ReplayReport", "SearchEngine", "SeedChain", "Strategy", "load_seed_chains"]
