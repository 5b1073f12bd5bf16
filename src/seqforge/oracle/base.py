"""Interfaces to the type-compatibility oracle and its companions.

The search core never inspects types itself. It asks an oracle two
questions: how (if at all) a producer's return value can be handed to a
consumer's parameter, and whether a parameter can be filled straight from
fuzzer bytes. Generic parameters are resolved beforehand by a pluggable
substitution policy.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from seqforge.catalog.models import FunctionSignature, TypeKind, TypeRef


class AccessMode(str, Enum):
    """How a producer's value reaches a consumer's parameter."""

    MOVE = "move"
    COPY = "copy"
    SHARED = "shared"
    EXCLUSIVE = "exclusive"
    UNSAFE_SHARED = "unsafe_shared"  # &*ptr
    UNSAFE_EXCLUSIVE = "unsafe_exclusive"  # &mut *ptr
    INCOMPATIBLE = "incompatible"

    @property
    def is_unsafe(self) -> bool:
        return self in (AccessMode.UNSAFE_SHARED, AccessMode.UNSAFE_EXCLUSIVE)

    @property
    def is_exclusive(self) -> bool:
        return self in (AccessMode.EXCLUSIVE, AccessMode.UNSAFE_EXCLUSIVE)

    @property
    def is_shared(self) -> bool:
        return self in (AccessMode.SHARED, AccessMode.UNSAFE_SHARED)


@dataclass(frozen=True)
class FuzzableEncoding:
    """How a randomizable parameter is decoded from fuzzer bytes.

    `fixed_size` is the byte count of the fixed part; `dynamic_parts` is how
    many variable-length regions the value needs (0 means fixed-size).
    """

    fixed_size: int = 0
    dynamic_parts: int = 0
    passing: AccessMode = AccessMode.COPY
    encodable: bool = True

    @property
    def is_fixed(self) -> bool:
        return self.dynamic_parts == 0

    @classmethod
    def unencodable(cls) -> FuzzableEncoding:
        return cls(encodable=False)


class TypeOracle(Protocol):
    """Decides type compatibility and randomizability."""

    def classify(
        self,
        producer: TypeRef,
        consumer: TypeRef,
        substitutions: Mapping[str, TypeRef] | None = None,
    ) -> AccessMode:
        """Access mode for passing a `producer` value as a `consumer` param.
        Must return INCOMPATIBLE, never raise, for shapes it does not know."""
        ...

    def fuzzable(
        self,
        ty: TypeRef,
        substitutions: Mapping[str, TypeRef] | None = None,
    ) -> FuzzableEncoding | None:
        """Encoding for a randomizable type, or None if it is not one."""
        ...


class FunctionConventions(Protocol):
    """Start/end markers restricting where a function may appear."""

    def is_start(self, fn: FunctionSignature, substitutions: Mapping[str, TypeRef]) -> bool:
        ...

    def is_end(self, fn: FunctionSignature, substitutions: Mapping[str, TypeRef]) -> bool:
        ...


class SubstitutionPolicy(Protocol):
    """Chooses concrete types for a function's generic parameters."""

    def substitutions_for(self, fn: FunctionSignature) -> dict[str, TypeRef]:
        ...


class FixedTypeSubstitution:
    """Map every generic type parameter to one concrete type (i32 by default).

    Explicit per-function substitutions in the catalog win over the default.
    """

    def __init__(self, concrete: TypeRef | None = None) -> None:
        self.concrete = concrete or TypeRef.primitive("i32")

    def substitutions_for(self, fn: FunctionSignature) -> dict[str, TypeRef]:
        subs = {name: self.concrete for name in fn.generics}
        subs.update(fn.substitutions)
        return subs


def substitute_type(ty: TypeRef, substitutions: Mapping[str, TypeRef]) -> TypeRef | None:
    """Replace generic parameters in `ty`; None if any remains unresolved."""
    if ty.kind == TypeKind.GENERIC:
        return substitutions.get(ty.name)
    if not ty.args:
        return ty
    args = []
    changed = False
    for arg in ty.args:
        new = substitute_type(arg, substitutions)
        if new is None:
            return None
        changed = changed or new is not arg
        args.append(new)
    if not changed:
        return ty
    return ty.model_copy(update={"args": tuple(args)})
