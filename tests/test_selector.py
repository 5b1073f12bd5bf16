"""Tests for driver selection and coverage statistics."""

from __future__ import annotations

import logging

import pytest

from seqforge.config import SelectionConfig
from seqforge.graph.query import DependencyGraph
from seqforge.search.engine import SearchEngine, Strategy
from seqforge.select.selector import Selector, is_valid_driver
from seqforge.select.stats import coverage_stats
from seqforge.sequence.admission import Admission
from seqforge.sequence.models import Sequence


def _pool(graph: DependencyGraph, strategy: Strategy = Strategy.BFS) -> list[Sequence]:
    return SearchEngine(graph).run(strategy)


def _functions(sequences: list[Sequence]) -> list[list[int]]:
    return [[c.function for c in seq.calls] for seq in sequences]


class TestHeuristic:
    def test_stops_when_all_edges_covered(self, handle_graph: DependencyGraph):
        chosen = Selector(handle_graph).heuristic(_pool(handle_graph, Strategy.BFS_END_POINT))
        assert _functions(chosen) == [[0, 1, 2]]

    def test_fixed_tier_ranks_by_nodes_then_edges(self, builder_graph: DependencyGraph):
        chosen = Selector(builder_graph).heuristic(_pool(builder_graph))
        # [new, set, build] adds three functions, then [new, set, set] adds
        # only the set -> set edge; nothing else adds anything
        assert _functions(chosen) == [[0, 1, 2], [0, 1, 1]]

    def test_max_size(self, builder_graph: DependencyGraph):
        chosen = Selector(builder_graph).heuristic(_pool(builder_graph), max_size=1)
        assert _functions(chosen) == [[0, 1, 2]]

    def test_only_valid_drivers(self, builder_graph: DependencyGraph):
        chosen = Selector(builder_graph).heuristic(_pool(builder_graph))
        assert all(is_valid_driver(seq) for seq in chosen)

    def test_dynamic_tier_first(self, make_graph):
        graph = make_graph(
            {"name": "lib::Obj::new", "inputs": ["u8", "u16"], "output": "Obj"},
            {"name": "lib::Obj::feed", "inputs": ["&mut Obj", "&[u8]"]},
            {"name": "lib::Obj::tag", "inputs": ["&mut Obj", "u32"]},
        )
        chosen = Selector(graph).heuristic(_pool(graph))
        assert not chosen[0].is_fixed_length
        assert chosen[0].functions == {0, 1, 2}

    def test_ties_keep_pool_order(self, handle_graph: DependencyGraph):
        pool = [seq for seq in _pool(handle_graph, Strategy.BFS_END_POINT) if len(seq) <= 2]
        chosen = Selector(handle_graph).heuristic(pool)
        assert _functions(chosen) == [[0, 1], [0, 2]]

    def test_shorter_wins_ties(self, handle_graph: DependencyGraph):
        admission = Admission(handle_graph)
        opened = admission.try_extend(Sequence(), 0)
        written = admission.try_extend(opened, 1)
        written_twice = admission.try_extend(written, 1)
        chosen = Selector(handle_graph).heuristic([written_twice, written])
        assert chosen[0] is written

    def test_stop_at_all_functions(self, make_graph):
        graph = make_graph(
            {"name": "lib::open", "inputs": ["&str"], "output": "Handle"},
            {"name": "lib::close", "inputs": ["&Handle"]},
            {"name": "lib::sync", "inputs": ["&Handle"]},
            {"name": "lib::open_ro", "inputs": ["&str"], "output": "Handle"},
        )
        pool = _pool(graph, Strategy.BFS_END_POINT)
        full = Selector(graph).heuristic(pool)
        by_functions = Selector(graph).heuristic(pool, stop_at_all_functions=True)
        assert len(by_functions) <= len(full)
        covered = set()
        for seq in by_functions:
            covered |= seq.functions
        assert covered == {0, 1, 2, 3}

    def test_empty_pool(self, builder_graph: DependencyGraph):
        assert Selector(builder_graph).heuristic([]) == []


class TestBaselines:
    def test_random_subset(self, builder_graph: DependencyGraph):
        pool = _pool(builder_graph)
        chosen = Selector(builder_graph, seed=3).random(pool, max_size=5)
        assert len(chosen) == 5
        assert len({seq.key() for seq in chosen}) == 5

    def test_random_is_seeded(self, builder_graph: DependencyGraph):
        pool = _pool(builder_graph)
        first = Selector(builder_graph, seed=3).random(pool, max_size=4)
        second = Selector(builder_graph, seed=3).random(pool, max_size=4)
        assert _functions(first) == _functions(second)

    def test_first_skips_fuzzable_empty(self, builder_graph: DependencyGraph):
        chosen = Selector(builder_graph).first(_pool(builder_graph), max_size=2)
        assert _functions(chosen) == [[0, 1], [0, 0, 1]]

    def test_per_function_random_covers_pool(self, handle_graph: DependencyGraph):
        pool = _pool(handle_graph)
        chosen = Selector(handle_graph, seed=1).per_function_random(pool)
        covered = set()
        for seq in chosen:
            covered |= seq.functions
        assert covered == {0, 1, 2}
        assert len({seq.key() for seq in chosen}) == len(chosen)

    def test_per_function_required(self, handle_graph: DependencyGraph):
        pool = _pool(handle_graph)
        chosen = Selector(handle_graph, seed=1).per_function_random(pool, required=[2])
        assert len(chosen) == 1
        assert 2 in chosen[0].functions


class TestSelect:
    def test_dispatch(self, builder_graph: DependencyGraph):
        pool = _pool(builder_graph)
        selector = Selector(builder_graph)
        assert selector.select(pool, SelectionConfig(policy="first", max_size=1))
        assert selector.select(pool, SelectionConfig(policy="per_function"))

    def test_unknown_policy(self, builder_graph: DependencyGraph):
        with pytest.raises(ValueError):
            Selector(builder_graph).select([], SelectionConfig(policy="best"))

    def test_empty_result_warns(self, builder_graph: DependencyGraph, caplog):
        with caplog.at_level(logging.WARNING, logger="seqforge.select"):
            chosen = Selector(builder_graph).select([], SelectionConfig())
        assert chosen == []
        assert "chose no sequences" in caplog.text


class TestCoverageStats:
    def test_stats(self, handle_graph: DependencyGraph):
        chosen = Selector(handle_graph).heuristic(_pool(handle_graph, Strategy.BFS_END_POINT))
        stats = coverage_stats(chosen, handle_graph)

        assert stats.sequences == 1
        assert stats.dynamic_sequences == 1
        assert stats.total_calls == 3
        assert stats.functions_covered == 3
        assert stats.edges_covered == 2
        assert stats.function_coverage == 1.0
        assert stats.edge_coverage == 1.0
        assert stats.avg_calls_per_function == 1.0

    def test_empty(self, handle_graph: DependencyGraph):
        stats = coverage_stats([], handle_graph)
        assert stats.sequences == 0
        assert stats.function_coverage == 0.0
        assert stats.avg_calls_per_function == 0.0
