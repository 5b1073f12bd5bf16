"""Call sequences: the unit that becomes one fuzz driver.

Sequences are immutable. Extending one returns a new Sequence whose call
chain shares every earlier call with its parent, so exhaustive search can
branch thousands of times without copying prefixes.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import TYPE_CHECKING

from seqforge.catalog.models import TypeRef
from seqforge.oracle.base import AccessMode, FuzzableEncoding

if TYPE_CHECKING:
    from seqforge.catalog.core import Catalog


class ArgSource(str, Enum):
    FUZZABLE = "fuzzable"  # index is a fuzzable slot
    RESULT = "result"  # index is an earlier call in the same sequence


@dataclass(frozen=True)
class Arg:
    source: ArgSource
    index: int
    mode: AccessMode


@dataclass(frozen=True)
class Call:
    """One invocation: which function, and where each argument comes from."""

    function: int
    args: tuple[Arg, ...] = ()
    returns_value: bool = False

    def shifted(self, call_offset: int, slot_offset: int) -> Call:
        """Renumber argument references for concatenation after other calls."""
        if not call_offset and not slot_offset:
            return self
        args = tuple(
            replace(a, index=a.index + (slot_offset if a.source == ArgSource.FUZZABLE
                                        else call_offset))
            for a in self.args
        )
        return replace(self, args=args)


@dataclass(frozen=True)
class AccessState:
    """What has happened to one call's result so far."""

    moved: bool = False
    exclusive: int = 0  # completed exclusive borrows
    shared: int = 0  # completed shared borrows

    @property
    def unused(self) -> bool:
        return not self.moved and not self.exclusive and not self.shared

    @property
    def needs_mut(self) -> bool:
        return self.exclusive > 0


@dataclass(frozen=True)
class FuzzableParam:
    type: TypeRef
    encoding: FuzzableEncoding
    mutable: bool = False


class CallChain:
    """Persistent singly linked list of calls, newest last."""

    __slots__ = ("call", "parent", "length")

    def __init__(self, call: Call | None = None, parent: CallChain | None = None) -> None:
        self.call = call
        self.parent = parent
        self.length = parent.length + 1 if parent is not None else 0

    def append(self, call: Call) -> CallChain:
        return CallChain(call, self)

    def __len__(self) -> int:
        return self.length

    def __iter__(self) -> Iterator[Call]:
        calls: list[Call] = []
        node: CallChain | None = self
        while node is not None and node.call is not None:
            calls.append(node.call)
            node = node.parent
        return reversed(calls)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CallChain):
            return NotImplemented
        return self is other or (self.length == other.length and tuple(self) == tuple(other))

    def __hash__(self) -> int:
        return hash(tuple(self))


EMPTY_CHAIN = CallChain()


@dataclass(frozen=True)
class Sequence:
    """An ordered chain of calls plus its fuzzable, coverage and access bookkeeping."""

    chain: CallChain = EMPTY_CHAIN
    fuzzables: tuple[FuzzableParam, ...] = ()
    covered_edges: frozenset[int] = frozenset()
    access: tuple[AccessState, ...] = ()
    unsafe: bool = False
    traits: frozenset[str] = field(default_factory=frozenset)

    @cached_property
    def calls(self) -> tuple[Call, ...]:
        return tuple(self.chain)

    def __len__(self) -> int:
        return len(self.chain)

    @property
    def last_function(self) -> int | None:
        return self.chain.call.function if self.chain.call is not None else None

    @cached_property
    def functions(self) -> frozenset[int]:
        """Function indexes touched by this sequence."""
        return frozenset(call.function for call in self.calls)

    @property
    def has_fuzzables(self) -> bool:
        return bool(self.fuzzables)

    @property
    def is_fixed_length(self) -> bool:
        return all(p.encoding.is_fixed for p in self.fuzzables)

    @property
    def dynamic_param_count(self) -> int:
        return sum(1 for p in self.fuzzables if not p.encoding.is_fixed)

    def dead_calls(self) -> list[bool]:
        """Per call: True if it returns a value no later call consumes."""
        used: set[int] = set()
        for call in self.calls:
            for arg in call.args:
                if arg.source == ArgSource.RESULT:
                    used.add(arg.index)
        return [call.returns_value and i not in used for i, call in enumerate(self.calls)]

    @property
    def has_dead_calls(self) -> bool:
        """Dead calls anywhere except the last one, whose result may go unused."""
        return any(self.dead_calls()[:-1])

    def key(self) -> tuple[Call, ...]:
        """Structural identity, for de-duplicating pools."""
        return self.calls

    def to_dict(self, catalog: Catalog) -> dict:
        """JSON-friendly description for driver rendering."""
        from seqforge.sequence.budget import ByteBudget

        budget = ByteBudget.of(self)
        return {
            "calls": [
                {
                    "function": catalog[call.function].name,
                    "args": [
                        {"source": a.source.value, "index": a.index, "mode": a.mode.value}
                        for a in call.args
                    ],
                    "needs_mut": self.access[i].needs_mut,
                }
                for i, call in enumerate(self.calls)
            ],
            "fuzzables": [
                {
                    "type": str(p.type),
                    "fixed_size": p.encoding.fixed_size,
                    "dynamic": not p.encoding.is_fixed,
                    "mutable": p.mutable,
                }
                for p in self.fuzzables
            ],
            "min_length": budget.min_length,
            "dynamic_param_index": budget.dynamic_param_index,
            "unsafe": self.unsafe,
            "traits": sorted(self.traits),
            "covered_edges": sorted(self.covered_edges),
        }


def merge_sequences(sequences: Iterable[Sequence]) -> Sequence:
    """Concatenate sequences, renumbering call references and fuzzable slots.

    The first sequence's chain is reused as-is; later calls are appended.
    """
    sequences = list(sequences)
    if not sequences:
        return Sequence()
    merged = sequences[0]
    for seq in sequences[1:]:
        call_offset = len(merged)
        slot_offset = len(merged.fuzzables)
        chain = merged.chain
        for call in seq.calls:
            chain = chain.append(call.shifted(call_offset, slot_offset))
        merged = Sequence(
            chain=chain,
            fuzzables=merged.fuzzables + seq.fuzzables,
            covered_edges=merged.covered_edges | seq.covered_edges,
            access=merged.access + seq.access,
            unsafe=merged.unsafe or seq.unsafe,
            traits=merged.traits | seq.traits,
        )
    return merged
