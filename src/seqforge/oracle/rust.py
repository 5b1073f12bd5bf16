"""Reference oracle for Rust-shaped signatures.

Compatibility rules (producer value -> consumer parameter):

    T        -> T        copy if T is Copy, else move
    &T       -> T        copy, when T is Copy
    T        -> &T       shared          T      -> &mut T   exclusive
    &T       -> &T       copy            &mut T -> &T       shared
    &mut T   -> &mut T   exclusive (reborrow)
    *const T -> &T       unsafe shared   *mut T -> &mut T   unsafe exclusive

Parameters that can be decoded from fuzzer bytes never take an edge, so
primitive plumbing does not show up as dependency coverage.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping

from seqforge.catalog.models import FunctionSignature, TypeKind, TypeRef
from seqforge.oracle.base import AccessMode, FuzzableEncoding, substitute_type

logger = logging.getLogger("seqforge.oracle")

PRIMITIVE_SIZES: dict[str, int] = {
    "bool": 1, "char": 4,
    "i8": 1, "u8": 1,
    "i16": 2, "u16": 2,
    "i32": 4, "u32": 4, "f32": 4,
    "i64": 8, "u64": 8, "f64": 8,
    "i128": 16, "u128": 16,
    "isize": 8, "usize": 8,
}

_OWNED_BUFFERS = {"String", "Vec"}


def _last_segment(name: str) -> str:
    return name.rsplit("::", 1)[-1]


def _has_generic(ty: TypeRef) -> bool:
    return ty.kind == TypeKind.GENERIC or any(_has_generic(a) for a in ty.args)


class RustTypeOracle:
    """Structural type-compatibility oracle for Rust-like TypeRefs."""

    def __init__(self, copy_types: Iterable[str] = (), strict: bool = True) -> None:
        self.copy_types = set(copy_types)
        self.strict = strict

    # ------------------------------------------------------------------
    # Compatibility
    # ------------------------------------------------------------------

    def classify(
        self,
        producer: TypeRef,
        consumer: TypeRef,
        substitutions: Mapping[str, TypeRef] | None = None,
    ) -> AccessMode:
        if substitutions:
            producer = substitute_type(producer, substitutions)
            consumer = substitute_type(consumer, substitutions)
            if producer is None or consumer is None:
                return AccessMode.INCOMPATIBLE
        try:
            return self._classify(producer, consumer)
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            logger.debug(f"Unrecognized type shape ({producer} -> {consumer}): {e}")
            return AccessMode.INCOMPATIBLE

    def _classify(self, producer: TypeRef, consumer: TypeRef) -> AccessMode:
        if _has_generic(producer) or _has_generic(consumer):
            return AccessMode.INCOMPATIBLE
        if self.strict and self.fuzzable(consumer) is not None:
            return AccessMode.INCOMPATIBLE

        if consumer.kind == TypeKind.REFERENCE:
            target = consumer.inner
            if target is None:
                return AccessMode.INCOMPATIBLE
            if producer == target:
                return AccessMode.EXCLUSIVE if consumer.mutable else AccessMode.SHARED
            if producer.inner != target:
                return AccessMode.INCOMPATIBLE
            if consumer.mutable:
                if producer.kind == TypeKind.REFERENCE and producer.mutable:
                    return AccessMode.EXCLUSIVE
                if producer.kind == TypeKind.RAW_POINTER and producer.mutable:
                    return AccessMode.UNSAFE_EXCLUSIVE
                return AccessMode.INCOMPATIBLE
            if producer.kind == TypeKind.REFERENCE:
                return AccessMode.SHARED if producer.mutable else AccessMode.COPY
            if producer.kind == TypeKind.RAW_POINTER:
                return AccessMode.UNSAFE_SHARED
            return AccessMode.INCOMPATIBLE

        if producer == consumer:
            return AccessMode.COPY if self.is_copy(consumer) else AccessMode.MOVE
        if (producer.kind == TypeKind.REFERENCE and producer.inner == consumer
                and self.is_copy(consumer)):
            return AccessMode.COPY
        return AccessMode.INCOMPATIBLE

    def is_copy(self, ty: TypeRef) -> bool:
        if ty.kind == TypeKind.PRIMITIVE:
            return ty.name != "str"
        if ty.kind == TypeKind.REFERENCE:
            return not ty.mutable
        if ty.kind == TypeKind.RAW_POINTER:
            return True
        if ty.kind in (TypeKind.ARRAY, TypeKind.TUPLE):
            return all(self.is_copy(a) for a in ty.args)
        if ty.kind == TypeKind.PATH:
            if ty.name in self.copy_types or _last_segment(ty.name) in self.copy_types:
                return True
            if _last_segment(ty.name) == "Option" and len(ty.args) == 1:
                return self.is_copy(ty.args[0])
        return False

    # ------------------------------------------------------------------
    # Randomizability
    # ------------------------------------------------------------------

    def fuzzable(
        self,
        ty: TypeRef,
        substitutions: Mapping[str, TypeRef] | None = None,
    ) -> FuzzableEncoding | None:
        if substitutions:
            ty = substitute_type(ty, substitutions)
            if ty is None:
                return None
        try:
            return self._encode(ty, in_tuple=False)
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            logger.debug(f"Unrecognized type shape {ty}: {e}")
            return None

    def _encode(self, ty: TypeRef, in_tuple: bool) -> FuzzableEncoding | None:
        kind = ty.kind
        if kind == TypeKind.PRIMITIVE:
            if ty.name == "str":
                return FuzzableEncoding(dynamic_parts=1, passing=AccessMode.MOVE)
            size = PRIMITIVE_SIZES.get(ty.name)
            return FuzzableEncoding(fixed_size=size) if size is not None else None

        if kind == TypeKind.REFERENCE:
            target = ty.inner
            if target is None:
                return None
            encoded = self._encode(target, in_tuple=False)
            if encoded is None:
                return None
            # Nested references and references inside tuples have no byte decoding
            if in_tuple or target.kind == TypeKind.REFERENCE or not encoded.encodable:
                return FuzzableEncoding.unencodable()
            passing = AccessMode.EXCLUSIVE if ty.mutable else AccessMode.SHARED
            return dataclasses.replace(encoded, passing=passing)

        if kind == TypeKind.PATH:
            name = _last_segment(ty.name)
            if name == "String" and not ty.args:
                return FuzzableEncoding(dynamic_parts=1, passing=AccessMode.MOVE)
            if name == "Vec" and len(ty.args) == 1:
                return self._encode_buffer(ty.args[0])
            if name == "Option" and len(ty.args) == 1:
                encoded = self._encode(ty.args[0], in_tuple)
                if encoded is None or not encoded.encodable:
                    return encoded
                return FuzzableEncoding(
                    fixed_size=1 + encoded.fixed_size,
                    dynamic_parts=encoded.dynamic_parts,
                    passing=self._passing(encoded),
                )
            return None

        if kind == TypeKind.SLICE:
            if ty.inner is None:
                return None
            return self._encode_buffer(ty.inner)

        if kind == TypeKind.ARRAY:
            if ty.inner is None or ty.length is None:
                return None
            encoded = self._encode(ty.inner, in_tuple)
            if encoded is None or not encoded.encodable:
                return encoded
            return FuzzableEncoding(
                fixed_size=encoded.fixed_size * ty.length,
                dynamic_parts=encoded.dynamic_parts * ty.length,
                passing=self._passing(encoded),
            )

        if kind == TypeKind.TUPLE:
            fixed = dynamic = 0
            for item in ty.args:
                encoded = self._encode(item, in_tuple=True)
                if encoded is None or not encoded.encodable:
                    return encoded
                fixed += encoded.fixed_size
                dynamic += encoded.dynamic_parts
            return FuzzableEncoding(
                fixed_size=fixed,
                dynamic_parts=dynamic,
                passing=AccessMode.COPY if dynamic == 0 else AccessMode.MOVE,
            )

        # raw pointers and unresolved generics
        return None

    def _encode_buffer(self, element: TypeRef) -> FuzzableEncoding | None:
        encoded = self._encode(element, in_tuple=False)
        if encoded is None or not encoded.encodable:
            return encoded
        return FuzzableEncoding(dynamic_parts=1 + encoded.dynamic_parts,
                                passing=AccessMode.MOVE)

    @staticmethod
    def _passing(encoded: FuzzableEncoding) -> AccessMode:
        return AccessMode.COPY if encoded.is_fixed else AccessMode.MOVE


class RustConventions:
    """Default start/end conventions.

    A start function needs nothing but fuzzer bytes. An end function returns
    nothing another call could consume and does not mutate any library value
    it was handed, so nothing useful can follow it.
    """

    def __init__(
        self,
        oracle: RustTypeOracle,
        start_functions: Iterable[str] = (),
        end_functions: Iterable[str] = (),
    ) -> None:
        self.oracle = oracle
        self.start_functions = set(start_functions)
        self.end_functions = set(end_functions)

    def is_start(self, fn: FunctionSignature, substitutions: Mapping[str, TypeRef]) -> bool:
        if fn.name in self.start_functions:
            return True
        return all(
            self.oracle.fuzzable(ty, substitutions) is not None for ty in fn.inputs
        )

    def is_end(self, fn: FunctionSignature, substitutions: Mapping[str, TypeRef]) -> bool:
        if fn.name in self.end_functions:
            return True
        for ty in fn.inputs:
            if (ty.kind == TypeKind.REFERENCE and ty.mutable
                    and self.oracle.fuzzable(ty, substitutions) is None):
                return False
        if fn.output is None:
            return True
        output = substitute_type(fn.output, substitutions)
        if output is None:
            return True
        return self.oracle.fuzzable(output) is not None
