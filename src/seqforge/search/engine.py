"""Sequence search: grow a pool of admissible call sequences.

Every strategy works the same way. Start from an empty pool (or the empty
sequence), repeatedly pick a sequence and a function, and keep the result
of `Admission.try_extend` when it succeeds. Strategies differ only in how
they pick and when they stop:

  bfs / fast_bfs              breadth-first up to `bfs_max_len` calls
  bfs_end_point (+fast)       same, never extending an ended sequence
  try_deep_bfs                unbounded BFS until coverage stalls
  random_walk (+end_point)    uniform random picks for a fixed step count
  backward                    coverage repair from an empty pool
  default                     bfs_end_point, then coverage repair

Reverse construction and corpus replay build sequences for specific
functions instead of exploring.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from enum import Enum

from seqforge.catalog.models import FunctionKind
from seqforge.config import SearchConfig
from seqforge.exceptions import CorpusMismatchError
from seqforge.graph.query import DependencyGraph
from seqforge.search.seeds import ReplayReport, SeedChain
from seqforge.sequence.admission import Admission
from seqforge.sequence.models import Sequence, merge_sequences

logger = logging.getLogger("seqforge.search")


class Strategy(str, Enum):
    DEFAULT = "default"
    BFS = "bfs"
    FAST_BFS = "fast_bfs"
    BFS_END_POINT = "bfs_end_point"
    FAST_BFS_END_POINT = "fast_bfs_end_point"
    TRY_DEEP_BFS = "try_deep_bfs"
    RANDOM_WALK = "random_walk"
    RANDOM_WALK_END_POINT = "random_walk_end_point"
    BACKWARD = "backward"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class SearchEngine:
    """Owns the sequence pool and the per-function visited flags.

    Usage:
        engine = SearchEngine(graph)
        engine.run(Strategy.DEFAULT)
        pool = engine.sequences
    """

    def __init__(
        self,
        graph: DependencyGraph,
        admission: Admission | None = None,
        config: SearchConfig | None = None,
        library: str | None = None,
    ) -> None:
        self.graph = graph
        self.config = config or SearchConfig()
        self.admission = admission or Admission(graph)
        self.library = library if library is not None else graph.catalog.library
        self.sequences: list[Sequence] = []
        self.visited: list[bool] = [False] * graph.function_count
        self.rng = random.Random(self.config.seed)
        self._reverse_cache: dict[int, Sequence] = {}
        self._reverse_failed: set[int] = set()

    # -------------------------------------------------------------------
    # Pool and coverage bookkeeping
    # -------------------------------------------------------------------

    @property
    def target_coverage(self) -> int:
        """How many visited functions count as "everything"."""
        target = self.config.cover_target_for(self.library)
        if target is None:
            return self.graph.function_count
        return min(target, self.graph.function_count)

    def reset_visited(self) -> None:
        self.visited = [False] * self.graph.function_count

    def visited_count(self) -> int:
        return sum(self.visited)

    def check_all_visited(self) -> bool:
        return self.visited_count() >= self.target_coverage

    def is_sequence_ended(self, sequence: Sequence) -> bool:
        last = sequence.last_function
        return last is not None and self.graph.is_end(last)

    def _reset_pool(self, with_empty: bool = True) -> None:
        self.sequences = [Sequence()] if with_empty else []
        self.reset_visited()

    def _push(self, sequence: Sequence) -> None:
        self.sequences.append(sequence)
        if sequence.last_function is not None:
            self.visited[sequence.last_function] = True

    def _mark_visited_from_pool(self) -> None:
        self.reset_visited()
        for seq in self.sequences:
            for function in seq.functions:
                self.visited[function] = True

    def unvisited(self) -> list[int]:
        return [i for i, seen in enumerate(self.visited) if not seen]

    # -------------------------------------------------------------------
    # Strategy dispatch
    # -------------------------------------------------------------------

    def run(self, strategy: Strategy | str) -> list[Sequence]:
        """Run one strategy from scratch; returns the resulting pool."""
        strategy = Strategy(strategy)
        logger.info(f"Running {strategy.value} search over {self.graph.function_count} functions")

        if strategy == Strategy.BFS:
            self.bfs(self.config.bfs_max_len)
        elif strategy == Strategy.FAST_BFS:
            self.bfs(self.config.bfs_max_len, fast=True)
        elif strategy == Strategy.BFS_END_POINT:
            self.bfs(self.config.bfs_max_len, stop_at_end=True)
        elif strategy == Strategy.FAST_BFS_END_POINT:
            self.bfs(self.config.bfs_max_len, stop_at_end=True, fast=True)
        elif strategy == Strategy.TRY_DEEP_BFS:
            self.try_deep_bfs(self.config.try_deep_max_product)
        elif strategy == Strategy.RANDOM_WALK:
            self.random_walk(self.config.walk_steps_for(self.library))
        elif strategy == Strategy.RANDOM_WALK_END_POINT:
            self.random_walk(self.config.walk_steps_for(self.library), stop_at_end=True)
        elif strategy == Strategy.BACKWARD:
            self._reset_pool(with_empty=False)
            self.repair_coverage()
        else:
            self.bfs(self.config.bfs_max_len, stop_at_end=True)
            self.repair_coverage()

        logger.info(
            f"{strategy.value}: {len(self.sequences)} sequences, "
            f"{self.visited_count()}/{self.graph.function_count} functions visited"
        )
        return self.sequences

    def generate(self, strategies: Iterable[Strategy | str]) -> list[Sequence]:
        """Run several strategies and merge their pools in order.

        Structurally equal sequences are kept once. The visited flags are
        recomputed from the merged pool.
        """
        merged: list[Sequence] = []
        seen: set = set()
        for strategy in strategies:
            for seq in self.run(strategy):
                key = seq.key()
                if key in seen:
                    continue
                seen.add(key)
                merged.append(seq)
        self.sequences = merged
        self._mark_visited_from_pool()
        return self.sequences

    # -------------------------------------------------------------------
    # Forward search
    # -------------------------------------------------------------------

    def bfs(self, max_len: int, stop_at_end: bool = False, fast: bool = False) -> None:
        """Breadth-first extension up to `max_len` calls.

        With `fast`, functions already visited are not retried and the
        search returns as soon as the target coverage is reached.
        """
        self._reset_pool()
        n = self.graph.function_count

        for length in range(max_len):
            frontier = [
                seq for seq in self.sequences
                if len(seq) == length and not (stop_at_end and self.is_sequence_ended(seq))
            ]
            logger.debug(f"BFS length {length}: {len(frontier)} sequence(s) to extend")
            for seq in frontier:
                for function in range(n):
                    if fast and self.visited[function]:
                        continue
                    extended = self.admission.try_extend(seq, function)
                    if extended is None:
                        continue
                    self._push(extended)
                    if fast and self.check_all_visited():
                        logger.info("All target functions visited, stopping early")
                        return

    def try_deep_bfs(self, max_product: int) -> None:
        """BFS without a length bound until a pass adds no coverage.

        Also stops once the pool is large: past length 2, when
        pool size times covered functions reaches `max_product`.
        """
        self._reset_pool()
        n = self.graph.function_count
        covered_functions: set[int] = set()
        covered_edges: set[int] = set()

        for length in range(n):
            if length > 2 and len(self.sequences) * self.visited_count() >= max_product:
                logger.info(
                    f"Deep BFS budget reached at length {length} "
                    f"({len(self.sequences)} sequences)"
                )
                break

            frontier = [
                seq for seq in self.sequences
                if len(seq) == length and not self.is_sequence_ended(seq)
            ]
            found_new = False
            for seq in frontier:
                for function in range(n):
                    extended = self.admission.try_extend(seq, function)
                    if extended is None:
                        continue
                    if not extended.functions <= covered_functions:
                        covered_functions |= extended.functions
                        found_new = True
                    if not extended.covered_edges <= covered_edges:
                        covered_edges |= extended.covered_edges
                        found_new = True
                    self._push(extended)

            if not found_new:
                logger.info(f"Deep BFS found nothing new at length {length + 1}")
                break

    def random_walk(self, steps: int, stop_at_end: bool = False) -> None:
        """Extend uniformly random pool sequences with random functions."""
        self._reset_pool()
        n = self.graph.function_count
        if n == 0:
            return
        max_depth = self.config.random_walk_max_depth

        for _ in range(steps):
            seq = self.sequences[self.rng.randrange(len(self.sequences))]
            if stop_at_end and self.is_sequence_ended(seq):
                continue
            if max_depth > 0 and len(seq) >= max_depth:
                continue
            function = self.rng.randrange(n)
            extended = self.admission.try_extend(seq, function)
            if extended is not None:
                self._push(extended)

    # -------------------------------------------------------------------
    # Coverage repair
    # -------------------------------------------------------------------

    def candidates_for_merge(self) -> list[int]:
        """Pool indexes usable as prefixes when repairing coverage."""
        return [
            i for i, seq in enumerate(self.sequences)
            if len(seq) > 0 and not self.is_sequence_ended(seq) and not seq.has_dead_calls
        ]

    def _extend_merged(self, parts: list[tuple[int, Sequence]], target: int) -> Sequence | None:
        """Merge one prefix per parameter and admit `target` after them.

        Parameter k is bound to the last call of its own prefix, so every
        prefix feeds the call it was chosen for.
        """
        pinned: dict[int, int] = {}
        offset = 0
        for param, part in parts:
            offset += len(part)
            pinned[param] = offset - 1
        merged = merge_sequences(part for _, part in parts)
        return self.admission.try_extend(merged, target, pinned)

    def _repair_prefixes(
        self, target: int, candidates: list[int],
    ) -> list[tuple[int, Sequence]] | None:
        """One (param, prefix) per non-fuzzable param of `target`, or None.

        For each param, a candidate whose last call feeds it. A candidate
        that still has fuzzable params wins; otherwise the latest match does.
        """
        fn = self.graph.function(target)
        prefixes: list[tuple[int, Sequence]] = []
        for k in range(len(fn.inputs)):
            if self.admission.is_fuzzable_param(target, k):
                continue
            chosen: Sequence | None = None
            for index in candidates:
                candidate = self.sequences[index]
                if self.graph.edge_between(candidate.last_function, target, k) is None:
                    continue
                chosen = candidate
                if candidate.has_fuzzables:
                    break
            if chosen is None:
                return None
            prefixes.append((k, chosen))
        return prefixes

    def repair_coverage(self) -> int:
        """Cover unvisited functions by merging pool sequences as prefixes.

        Runs passes until one covers nothing, at most one pass per
        function that was unvisited at the start. Returns how many
        functions were newly covered.
        """
        unvisited = self.unvisited()
        newly_covered = 0

        for _ in range(len(unvisited)):
            candidates = self.candidates_for_merge()
            covered_now: set[int] = set()
            for target in unvisited:
                prefixes = self._repair_prefixes(target, candidates)
                if prefixes is None:
                    continue
                extended = self._extend_merged(prefixes, target)
                if extended is None:
                    logger.debug(f"Merged prefixes cannot admit {self.graph.function(target).name}")
                    continue
                self._push(extended)
                covered_now.add(target)

            if not covered_now:
                break
            newly_covered += len(covered_now)
            unvisited = [i for i in unvisited if i not in covered_now]

        logger.info(
            f"Coverage repair covered {newly_covered} function(s), "
            f"{len(unvisited)} still unvisited"
        )
        return newly_covered

    # -------------------------------------------------------------------
    # Reverse construction
    # -------------------------------------------------------------------

    def reverse_construct(self, target: int) -> Sequence | None:
        """Build a sequence ending in `target` by resolving producers backwards."""
        result, _ = self._reverse(target, frozenset())
        return result

    def _reverse(
        self, target: int, resolving: frozenset[int],
    ) -> tuple[Sequence | None, bool]:
        """Sequence for `target`, plus whether a producer cycle was cut below it.

        A failure with no cycle cut does not depend on `resolving` and is
        remembered; successes are always remembered.
        """
        if target in resolving:
            return None, True
        cached = self._reverse_cache.get(target)
        if cached is not None:
            return cached, False
        if target in self._reverse_failed:
            return None, False

        fn = self.graph.function(target)
        if fn.kind == FunctionKind.GENERIC:
            self._reverse_failed.add(target)
            return None, False
        resolving = resolving | {target}

        cut = False
        parts: list[tuple[int, Sequence]] = []
        for k in range(len(fn.inputs)):
            if self.admission.is_fuzzable_param(target, k):
                continue
            part = None
            for producer, _edge_id in self.graph.producers(target, k):
                if producer == target:
                    continue
                part, producer_cut = self._reverse(producer, resolving)
                cut = cut or producer_cut
                if part is not None:
                    break
            if part is None:
                break
            parts.append((k, part))
        else:
            result = self._extend_merged(parts, target)
            if result is not None:
                self._reverse_cache[target] = result
                return result, cut

        if not cut:
            self._reverse_failed.add(target)
        return None, cut

    # -------------------------------------------------------------------
    # Corpus replay
    # -------------------------------------------------------------------

    def replay(self, chains: Iterable[SeedChain], backfill: bool = False) -> ReplayReport:
        """Rebuild the pool from corpus seed chains.

        Chains naming functions the catalog has never heard of are dropped.
        A counted function the catalog knows but filtered out means the
        corpus belongs to another build of the library, which is fatal.
        """
        catalog = self.graph.catalog
        chains = list(chains)
        kept: list[SeedChain] = []
        frequency: dict[str, int] = {}

        for chain in chains:
            unknown = [name for name in chain.functions if not catalog.knows(name)]
            if unknown:
                logger.debug(f"Dropping seed chain with unknown function(s): {unknown}")
                continue
            for name in chain.functions:
                frequency[name] = frequency.get(name, 0) + chain.frequency
            kept.append(chain)

        for name in frequency:
            if catalog.index_of(name) is None:
                raise CorpusMismatchError(name)

        self._reset_pool(with_empty=False)
        reached: set[str] = set()
        for chain in kept:
            seq = Sequence()
            for name in chain.functions:
                extended = self.admission.try_extend(seq, catalog.index_of(name))
                if extended is None:
                    break
                self._push(extended)
                reached.add(name)
                seq = extended

        unreached = {name: count for name, count in frequency.items() if name not in reached}
        backfilled: list[str] = []
        if backfill:
            for name in sorted(unreached):
                seq = self.reverse_construct(catalog.index_of(name))
                if seq is not None:
                    self._push(seq)
                    backfilled.append(name)

        report = ReplayReport(
            chains_total=len(chains),
            chains_replayed=len(kept),
            sequences=len(self.sequences),
            reached=sorted(reached),
            unreached=unreached,
            absent_from_corpus=[fn.name for fn in catalog if fn.name not in frequency],
            backfilled=backfilled,
        )
        logger.info(
            f"Replayed {report.chains_replayed}/{report.chains_total} chains: "
            f"{len(report.reached)} reached, {len(report.unreached)} unreached, "
            f"{report.absent_count} absent from corpus"
        )
        return report
