"""Pick the sequences that become fuzz drivers.

The heuristic policy is a greedy max-coverage selection. Each round takes
the sequence adding the most not-yet-covered functions, breaking ties by
new edges and then by shorter length. Sequences with a variable-length
fuzzable tail are exhausted first, since they let the fuzzer grow inputs
freely, then fixed-length ones fill in what is left.

Sequences without fuzzable params or with dead calls before their last
call never make useful drivers and are not candidates.
"""

from __future__ import annotations

import logging
import random

from seqforge.config import SelectionConfig
from seqforge.graph.query import DependencyGraph
from seqforge.sequence.models import Sequence

logger = logging.getLogger("seqforge.select")


def is_valid_driver(sequence: Sequence) -> bool:
    return sequence.has_fuzzables and not sequence.has_dead_calls


class Selector:
    """Selection policies over a search pool."""

    def __init__(self, graph: DependencyGraph, seed: int = 0) -> None:
        self.graph = graph
        self.rng = random.Random(seed)

    def select(self, pool: list[Sequence], config: SelectionConfig) -> list[Sequence]:
        """Dispatch on `config.policy`."""
        policy = config.policy
        if policy == "heuristic":
            chosen = self.heuristic(pool, config.max_size, config.stop_at_all_functions)
        elif policy == "random":
            chosen = self.random(pool, config.max_size)
        elif policy == "first":
            chosen = self.first(pool, config.max_size)
        elif policy in ("per_function", "per_function_random"):
            chosen = self.per_function_random(pool, config.max_size)
        else:
            raise ValueError(f"Unknown selection policy: {policy}")

        if not chosen:
            logger.warning(f"Selection policy '{policy}' chose no sequences")
        else:
            logger.info(f"Selected {len(chosen)} of {len(pool)} sequences ({policy})")
        return chosen

    # -------------------------------------------------------------------
    # Greedy coverage selection
    # -------------------------------------------------------------------

    def heuristic(
        self,
        pool: list[Sequence],
        max_size: int | None = None,
        stop_at_all_functions: bool = False,
    ) -> list[Sequence]:
        valid = [i for i, seq in enumerate(pool) if is_valid_driver(seq)]
        if not valid:
            return []

        reachable: set[int] = set()
        for i in valid:
            reachable |= pool[i].functions
        total_edges = self.graph.edge_count

        covered_functions: set[int] = set()
        covered_edges: set[int] = set()
        chosen: list[int] = []
        chosen_set: set[int] = set()
        dynamic_tier = True

        while max_size is None or len(chosen) < max_size:
            best = self._best_candidate(
                pool, valid, chosen_set, dynamic_tier, covered_functions, covered_edges,
            )
            if dynamic_tier and (best is None or best[1] <= 0):
                logger.debug("Variable-length sequences add no functions, moving to fixed-length")
                dynamic_tier = False
                continue
            if best is None:
                break

            index = best[0]
            chosen.append(index)
            chosen_set.add(index)
            covered_functions |= pool[index].functions
            covered_edges |= pool[index].covered_edges

            if len(chosen) == len(valid):
                break
            if total_edges and len(covered_edges) == total_edges:
                break
            if stop_at_all_functions and len(covered_functions) == len(reachable):
                break

        return [pool[i] for i in chosen]

    @staticmethod
    def _best_candidate(
        pool: list[Sequence],
        valid: list[int],
        chosen: set[int],
        dynamic_tier: bool,
        covered_functions: set[int],
        covered_edges: set[int],
    ) -> tuple[int, int, int] | None:
        """(index, new functions, new edges) of the best candidate in a tier."""
        best: tuple[int, int, int] | None = None
        best_nodes = best_edges = best_len = 0

        for i in valid:
            if i in chosen:
                continue
            seq = pool[i]
            if seq.is_fixed_length == dynamic_tier:
                continue
            new_nodes = len(seq.functions - covered_functions)
            new_edges = len(seq.covered_edges - covered_edges)
            if (
                new_nodes > best_nodes
                or (new_nodes == best_nodes and new_edges > best_edges)
                or (new_nodes == best_nodes and new_edges == best_edges and len(seq) < best_len)
            ):
                best = (i, new_nodes, new_edges)
                best_nodes, best_edges, best_len = new_nodes, new_edges, len(seq)
        return best

    # -------------------------------------------------------------------
    # Baselines
    # -------------------------------------------------------------------

    def random(
        self,
        pool: list[Sequence],
        max_size: int | None = None,
        rng: random.Random | None = None,
    ) -> list[Sequence]:
        """Uniform random subset, in pick order."""
        rng = rng or self.rng
        size = len(pool) if max_size is None else min(max_size, len(pool))
        return [pool[i] for i in rng.sample(range(len(pool)), size)]

    def first(self, pool: list[Sequence], max_size: int | None = None) -> list[Sequence]:
        """First sequences in pool order that have fuzzable params."""
        chosen: list[Sequence] = []
        for seq in pool:
            if max_size is not None and len(chosen) >= max_size:
                break
            if seq.has_fuzzables:
                chosen.append(seq)
        return chosen

    def per_function_random(
        self,
        pool: list[Sequence],
        max_size: int | None = None,
        rng: random.Random | None = None,
        required: list[int] | None = None,
    ) -> list[Sequence]:
        """For each function still uncovered, a random unused sequence containing it.

        `required` defaults to every function the pool reaches, in index order.
        """
        rng = rng or self.rng
        if required is None:
            reached: set[int] = set()
            for seq in pool:
                reached |= seq.functions
            required = sorted(reached)

        containing: dict[int, list[int]] = {f: [] for f in required}
        for i, seq in enumerate(pool):
            for function in seq.functions:
                if function in containing:
                    containing[function].append(i)

        to_cover = list(required)
        used: set[int] = set()
        chosen: list[Sequence] = []
        while to_cover and (max_size is None or len(chosen) < max_size):
            function = to_cover[0]
            candidates = [i for i in containing[function] if i not in used]
            if not candidates:
                to_cover.pop(0)
                continue
            index = rng.choice(candidates)
            used.add(index)
            chosen.append(pool[index])
            covered = pool[index].functions
            to_cover = [f for f in to_cover if f not in covered]
        return chosen
