"""Build the function dependency graph from a signature catalog."""

from __future__ import annotations

import logging

from seqforge.catalog.core import Catalog
from seqforge.catalog.models import FunctionKind
from seqforge.graph.query import DependencyEdge, DependencyGraph
from seqforge.oracle.base import (
    AccessMode,
    FixedTypeSubstitution,
    FunctionConventions,
    SubstitutionPolicy,
    TypeOracle,
    substitute_type,
)
from seqforge.oracle.rust import RustConventions, RustTypeOracle

logger = logging.getLogger("seqforge.graph")


class DependencyGraphBuilder:
    """Computes which functions can feed which parameters of which others.

    An edge (p, c, k, mode) exists when the oracle says p's return value can
    be passed as c's k-th parameter. End functions never produce and start
    functions never consume. Each function's generic parameters are
    substituted with its own map before the oracle is asked.
    """

    def __init__(
        self,
        oracle: TypeOracle | None = None,
        conventions: FunctionConventions | None = None,
        policy: SubstitutionPolicy | None = None,
    ) -> None:
        self.oracle = oracle or RustTypeOracle()
        self.conventions = conventions or RustConventions(self.oracle)
        self.policy = policy or FixedTypeSubstitution()
        self.edges: list[DependencyEdge] = []

    def build(self, catalog: Catalog) -> DependencyGraph:
        """Build the graph. Rebuilding starts from scratch."""
        self.edges = []

        substitutions = [self.policy.substitutions_for(fn) for fn in catalog]
        start = [self.conventions.is_start(fn, substitutions[i])
                 for i, fn in enumerate(catalog)]
        end = [self.conventions.is_end(fn, substitutions[i])
               for i, fn in enumerate(catalog)]

        # Generic-kind functions are never admitted, so edges touching them
        # could never be covered
        usable = [fn.kind == FunctionKind.BARE for fn in catalog]

        for i, producer in enumerate(catalog):
            if end[i] or not usable[i] or producer.output is None:
                continue
            output = substitute_type(producer.output, substitutions[i])
            if output is None:
                continue

            for j, consumer in enumerate(catalog):
                if start[j] or not usable[j]:
                    continue
                for k, input_type in enumerate(consumer.inputs):
                    param = substitute_type(input_type, substitutions[j])
                    if param is None:
                        continue
                    mode = self.oracle.classify(output, param)
                    if mode == AccessMode.INCOMPATIBLE:
                        continue
                    self.edges.append(DependencyEdge(i, j, k, mode))
                    logger.debug(
                        f"{producer.name} -> {consumer.name}[{k}] ({mode.value})"
                    )

        logger.info(
            f"Found {len(self.edges)} dependencies among {len(catalog)} functions"
        )
        return DependencyGraph(catalog, self.edges, substitutions, start, end)
