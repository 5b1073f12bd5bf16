"""Read-only view over the function dependency graph."""

from __future__ import annotations

from dataclasses import dataclass

import networkx as nx

from seqforge.catalog.core import Catalog
from seqforge.catalog.models import FunctionSignature, TypeRef
from seqforge.exceptions import GraphError
from seqforge.oracle.base import AccessMode


@dataclass(frozen=True)
class DependencyEdge:
    """`producer`'s return value can fill parameter `param` of `consumer`."""

    producer: int
    consumer: int
    param: int
    mode: AccessMode


class DependencyGraph:
    """Dependency edges between catalog functions, plus per-function facts.

    Edge ids are positions in `edges`. A networkx MultiDiGraph mirrors the
    edges (one keyed edge per id) for traversal and statistics.
    """

    def __init__(
        self,
        catalog: Catalog,
        edges: list[DependencyEdge],
        substitutions: list[dict[str, TypeRef]],
        start_flags: list[bool],
        end_flags: list[bool],
    ) -> None:
        self.catalog = catalog
        self.edges = list(edges)
        self._substitutions = substitutions
        self._start = start_flags
        self._end = end_flags
        self._lookup: dict[tuple[int, int, int], int] = {}
        self._producers: dict[tuple[int, int], list[tuple[int, int]]] = {}

        self.graph = nx.MultiDiGraph()
        for i, fn in enumerate(catalog):
            self.graph.add_node(i, name=fn.name, start=start_flags[i], end=end_flags[i])
        for edge_id, edge in enumerate(self.edges):
            self._lookup[(edge.producer, edge.consumer, edge.param)] = edge_id
            self._producers.setdefault((edge.consumer, edge.param), []).append(
                (edge.producer, edge_id)
            )
            self.graph.add_edge(
                edge.producer, edge.consumer, key=edge_id,
                param=edge.param, mode=edge.mode.value,
            )

    def __len__(self) -> int:
        return len(self.catalog)

    @property
    def function_count(self) -> int:
        return len(self.catalog)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def function(self, index: int) -> FunctionSignature:
        return self.catalog[index]

    def index_of(self, name: str) -> int:
        index = self.catalog.index_of(name)
        if index is None:
            raise GraphError(f"Unknown function: {name}")
        return index

    def substitutions(self, index: int) -> dict[str, TypeRef]:
        return self._substitutions[index]

    def is_start(self, index: int) -> bool:
        return self._start[index]

    def is_end(self, index: int) -> bool:
        return self._end[index]

    def edge(self, edge_id: int) -> DependencyEdge:
        return self.edges[edge_id]

    def edge_between(self, producer: int, consumer: int, param: int) -> int | None:
        """Id of the edge feeding `consumer`'s `param` from `producer`, if any."""
        return self._lookup.get((producer, consumer, param))

    def producers(self, consumer: int, param: int) -> list[tuple[int, int]]:
        """(producer, edge_id) pairs that can fill `consumer`'s `param`."""
        return list(self._producers.get((consumer, param), ()))

    def consumers_of(self, producer: int) -> list[int]:
        """Functions that can take `producer`'s return value somewhere."""
        if not self.graph.has_node(producer):
            return []
        return sorted(self.graph.successors(producer))

    def get_stats(self) -> dict:
        """Get dependency graph statistics."""
        mode_counts: dict[str, int] = {}
        for edge in self.edges:
            mode_counts[edge.mode.value] = mode_counts.get(edge.mode.value, 0) + 1

        isolated = sum(1 for n in self.graph.nodes if self.graph.degree(n) == 0)
        simple = nx.DiGraph(self.graph)
        self_loops = nx.number_of_selfloops(simple)

        return {
            "functions": self.function_count,
            "edges": self.edge_count,
            "edge_modes": mode_counts,
            "start_functions": sum(self._start),
            "end_functions": sum(self._end),
            "isolated_functions": isolated,
            "self_loops": self_loops,
            "excluded_functions": len(self.catalog.excluded),
        }
