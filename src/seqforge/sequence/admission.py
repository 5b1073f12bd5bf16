"""Admission: can one more call be appended to a sequence?

Every parameter of the candidate must be filled either from fuzzer bytes
or from the result of a call already in the sequence. Results follow
single-owner rules:

* a moved result is gone for good;
* within one call's argument list a result may be borrowed exclusively
  once, or shared any number of times, but not both, and not moved while
  borrowed;
* borrows end when the consuming call returns.

The fuzzer splits its input evenly between variable-length fuzzable
parameters, so a sequence may carry at most one of them.

Failure is an ordinary `None`, not an exception.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace

from seqforge.catalog.models import FunctionKind, TypeKind
from seqforge.graph.query import DependencyGraph
from seqforge.oracle.base import AccessMode, TypeOracle, substitute_type
from seqforge.oracle.rust import RustTypeOracle
from seqforge.sequence.models import (
    AccessState,
    Arg,
    ArgSource,
    Call,
    FuzzableParam,
    Sequence,
)

logger = logging.getLogger("seqforge.sequence")


class _CallBorrows:
    """Borrows taken while resolving a single call's arguments."""

    def __init__(self) -> None:
        self.moved: set[int] = set()
        self.exclusive: set[int] = set()
        self.shared: Counter[int] = Counter()

    def take(self, index: int, mode: AccessMode) -> bool:
        """Record an access to call `index`'s result; False if it conflicts."""
        if mode == AccessMode.MOVE:
            if index in self.exclusive or index in self.shared:
                return False
            self.moved.add(index)
        elif mode.is_exclusive:
            if index in self.exclusive or index in self.shared:
                return False
            self.exclusive.add(index)
        elif mode.is_shared:
            if index in self.exclusive:
                return False
            self.shared[index] += 1
        elif index in self.exclusive:  # copy reads the value
            return False
        return True


class Admission:
    """The try-extend primitive shared by every search strategy."""

    def __init__(
        self,
        graph: DependencyGraph,
        oracle: TypeOracle | None = None,
    ) -> None:
        self.graph = graph
        self.oracle = oracle or RustTypeOracle()

    def is_fuzzable_param(self, function: int, param: int) -> bool:
        fn = self.graph.function(function)
        subs = self.graph.substitutions(function)
        return self.oracle.fuzzable(fn.inputs[param], subs) is not None

    def try_extend(
        self,
        sequence: Sequence,
        function: int,
        pinned: dict[int, int] | None = None,
    ) -> Sequence | None:
        """Return `sequence` with a call to `function` appended, or None.

        `pinned` maps a parameter index to the call whose result must fill
        it; other parameters take the first call that fits.
        """
        fn = self.graph.function(function)
        if fn.kind == FunctionKind.GENERIC:
            logger.debug(f"Rejecting generic function {fn.name}")
            return None

        subs = self.graph.substitutions(function)
        returns_value = fn.output is not None and not (
            fn.output.kind == TypeKind.TUPLE and not fn.output.args
        )
        unsafe = sequence.unsafe or fn.is_unsafe
        traits = sequence.traits | {fn.trait_path} if fn.trait_path else sequence.traits

        fuzzables = list(sequence.fuzzables)
        covered = set(sequence.covered_edges)
        borrows = _CallBorrows()
        args: list[Arg] = []

        for k, param_type in enumerate(fn.inputs):
            encoding = self.oracle.fuzzable(param_type, subs)
            if encoding is not None:
                # Randomizable but no byte decoding, or several variable-length
                # regions inside one parameter
                if not encoding.encodable or encoding.dynamic_parts > 1:
                    return None
                concrete = substitute_type(param_type, subs) or param_type
                slot = len(fuzzables)
                fuzzables.append(FuzzableParam(
                    concrete, encoding, mutable=encoding.passing.is_exclusive,
                ))
                args.append(Arg(ArgSource.FUZZABLE, slot, encoding.passing))
                continue

            resolved = self._resolve(sequence, function, k, borrows, (pinned or {}).get(k))
            if resolved is None:
                return None
            call_index, edge_id, mode = resolved
            covered.add(edge_id)
            unsafe = unsafe or mode.is_unsafe
            args.append(Arg(ArgSource.RESULT, call_index, mode))

        access = list(sequence.access)
        for i in borrows.moved:
            access[i] = replace(access[i], moved=True)
        for i in borrows.exclusive:
            access[i] = replace(access[i], exclusive=access[i].exclusive + 1)
        for i, count in borrows.shared.items():
            access[i] = replace(access[i], shared=access[i].shared + count)
        access.append(AccessState())

        extended = Sequence(
            chain=sequence.chain.append(Call(function, tuple(args), returns_value)),
            fuzzables=tuple(fuzzables),
            covered_edges=frozenset(covered),
            access=tuple(access),
            unsafe=unsafe,
            traits=traits,
        )
        if extended.dynamic_param_count > 1:
            return None
        return extended

    def _resolve(
        self,
        sequence: Sequence,
        function: int,
        param: int,
        borrows: _CallBorrows,
        only: int | None = None,
    ) -> tuple[int, int, AccessMode] | None:
        """First earlier call whose result can still fill `param`.

        With `only`, that call is the single candidate.
        """
        for i, call in enumerate(sequence.calls):
            if only is not None and i != only:
                continue
            if sequence.access[i].moved or i in borrows.moved:
                continue
            edge_id = self.graph.edge_between(call.function, function, param)
            if edge_id is None:
                continue
            mode = self.graph.edge(edge_id).mode
            if not borrows.take(i, mode):
                continue
            return i, edge_id, mode
        return None
