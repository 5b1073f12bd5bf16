"""Fuzzer input byte budgets.

A driver receives one byte buffer and carves every fuzzable parameter out
of it. Fixed parts come first, in slot order; whatever is left is split
evenly between the variable-length parameters, again in slot order.
"""

from __future__ import annotations

from dataclasses import dataclass

from seqforge.sequence.models import Sequence


@dataclass(frozen=True)
class ByteSlice:
    """Byte ranges (half-open) feeding one fuzzable slot."""

    slot: int
    fixed: tuple[int, int]
    dynamic: tuple[int, int] | None = None


@dataclass(frozen=True)
class ByteBudget:
    fixed_sizes: tuple[int, ...]
    dynamic_slots: tuple[int, ...]

    @classmethod
    def of(cls, sequence: Sequence) -> ByteBudget:
        return cls(
            fixed_sizes=tuple(p.encoding.fixed_size for p in sequence.fuzzables),
            dynamic_slots=tuple(
                i for i, p in enumerate(sequence.fuzzables) if not p.encoding.is_fixed
            ),
        )

    @property
    def fixed_length(self) -> int:
        return sum(self.fixed_sizes)

    @property
    def min_length(self) -> int:
        return self.fixed_length

    @property
    def dynamic_param_count(self) -> int:
        return len(self.dynamic_slots)

    @property
    def dynamic_param_index(self) -> int | None:
        """Slot of the variable-length param when there is exactly one."""
        return self.dynamic_slots[0] if len(self.dynamic_slots) == 1 else None

    def dynamic_chunk(self, total: int) -> int:
        if not self.dynamic_slots or total < self.fixed_length:
            return 0
        return (total - self.fixed_length) // len(self.dynamic_slots)

    def layout(self, total: int) -> list[ByteSlice] | None:
        """Split a `total`-byte input; None if it is too short."""
        if total < self.min_length:
            return None
        chunk = self.dynamic_chunk(total)
        dynamic_rank = {slot: rank for rank, slot in enumerate(self.dynamic_slots)}

        slices: list[ByteSlice] = []
        offset = 0
        for slot, size in enumerate(self.fixed_sizes):
            dynamic = None
            if slot in dynamic_rank:
                start = self.fixed_length + dynamic_rank[slot] * chunk
                dynamic = (start, start + chunk)
            slices.append(ByteSlice(slot, (offset, offset + size), dynamic))
            offset += size
        return slices
