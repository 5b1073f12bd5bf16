"""Aggregate coverage statistics for a set of sequences."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel

from seqforge.graph.query import DependencyGraph
from seqforge.sequence.models import Sequence


class CoverageStats(BaseModel):
    """How much of the dependency graph a set of sequences exercises."""

    sequences: int = 0
    dynamic_sequences: int = 0
    total_calls: int = 0
    max_length: int = 0
    functions_covered: int = 0
    edges_covered: int = 0
    total_functions: int = 0
    total_edges: int = 0

    @property
    def function_coverage(self) -> float:
        return self.functions_covered / self.total_functions if self.total_functions else 0.0

    @property
    def edge_coverage(self) -> float:
        return self.edges_covered / self.total_edges if self.total_edges else 0.0

    @property
    def avg_calls_per_function(self) -> float:
        """Total calls divided by covered functions: how often each is revisited."""
        return self.total_calls / self.functions_covered if self.functions_covered else 0.0


def coverage_stats(sequences: Iterable[Sequence], graph: DependencyGraph) -> CoverageStats:
    functions: set[int] = set()
    edges: set[int] = set()
    count = dynamic = total_calls = max_length = 0

    for seq in sequences:
        count += 1
        if not seq.is_fixed_length:
            dynamic += 1
        total_calls += len(seq)
        max_length = max(max_length, len(seq))
        functions |= seq.functions
        edges |= seq.covered_edges

    return CoverageStats(
        sequences=count,
        dynamic_sequences=dynamic,
        total_calls=total_calls,
        max_length=max_length,
        functions_covered=len(functions),
        edges_covered=len(edges),
        total_functions=graph.function_count,
        total_edges=graph.edge_count,
    )
