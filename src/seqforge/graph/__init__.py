"""Function dependency graph."""

from seqforge.graph.builder import DependencyGraphBuilder
from seqforge.graph.query import DependencyEdge, DependencyGraph

__all__ = ["DependencyEdge", "DependencyGraph", "DependencyGraphBuilder"]
