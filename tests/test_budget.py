"""Tests for fuzzer byte budgets."""

from __future__ import annotations

from seqforge.sequence.admission import Admission
from seqforge.sequence.budget import ByteBudget, ByteSlice
from seqforge.sequence.models import Sequence


class TestByteBudget:
    def test_fixed_then_dynamic(self, make_graph):
        graph = make_graph({"name": "lib::parse", "inputs": ["i32", "&[u8]"]})
        seq = Admission(graph).try_extend(Sequence(), 0)
        budget = ByteBudget.of(seq)

        assert budget.fixed_length == 4
        assert budget.min_length == 4
        assert budget.dynamic_param_count == 1
        assert budget.dynamic_param_index == 1
        assert budget.layout(10) == [
            ByteSlice(0, (0, 4)),
            ByteSlice(1, (4, 4), (4, 10)),
        ]

    def test_too_short(self):
        budget = ByteBudget(fixed_sizes=(4, 8), dynamic_slots=())
        assert budget.layout(11) is None
        assert budget.layout(12) == [ByteSlice(0, (0, 4)), ByteSlice(1, (4, 12))]

    def test_dynamic_region_split_evenly(self):
        budget = ByteBudget(fixed_sizes=(0, 0, 1), dynamic_slots=(0, 1))
        assert budget.dynamic_param_index is None
        assert budget.dynamic_chunk(11) == 5
        assert budget.layout(11) == [
            ByteSlice(0, (0, 0), (1, 6)),
            ByteSlice(1, (0, 0), (6, 11)),
            ByteSlice(2, (0, 1)),
        ]

    def test_option_fixed_part(self, make_graph):
        graph = make_graph({"name": "lib::f", "inputs": ["Option<String>", "u16"]})
        seq = Admission(graph).try_extend(Sequence(), 0)
        budget = ByteBudget.of(seq)
        assert budget.fixed_sizes == (1, 2)
        assert budget.dynamic_param_index == 0

    def test_empty_sequence(self):
        budget = ByteBudget.of(Sequence())
        assert budget.min_length == 0
        assert budget.layout(0) == []
        assert budget.dynamic_chunk(100) == 0
