"""Tests for the Rust-shaped type oracle and conventions."""

from __future__ import annotations

import pytest

from seqforge.catalog.models import FunctionSignature, TypeRef
from seqforge.catalog.parser import parse_type
from seqforge.oracle.base import AccessMode, FixedTypeSubstitution, substitute_type
from seqforge.oracle.rust import RustConventions, RustTypeOracle


@pytest.fixture
def oracle() -> RustTypeOracle:
    return RustTypeOracle(copy_types=["Point"])


def _classify(oracle: RustTypeOracle, producer: str, consumer: str) -> AccessMode:
    return oracle.classify(parse_type(producer), parse_type(consumer))


class TestClassify:
    @pytest.mark.parametrize("producer,consumer,mode", [
        ("Handle", "Handle", AccessMode.MOVE),
        ("Point", "Point", AccessMode.COPY),
        ("Handle", "&Handle", AccessMode.SHARED),
        ("Handle", "&mut Handle", AccessMode.EXCLUSIVE),
        ("&Handle", "&Handle", AccessMode.COPY),
        ("&mut Handle", "&Handle", AccessMode.SHARED),
        ("&mut Handle", "&mut Handle", AccessMode.EXCLUSIVE),
        ("&Point", "Point", AccessMode.COPY),
        ("*const Handle", "&Handle", AccessMode.UNSAFE_SHARED),
        ("*mut Handle", "&mut Handle", AccessMode.UNSAFE_EXCLUSIVE),
        ("&Handle", "&mut Handle", AccessMode.INCOMPATIBLE),
        ("&Handle", "Handle", AccessMode.INCOMPATIBLE),
        ("Handle", "Widget", AccessMode.INCOMPATIBLE),
    ])
    def test_modes(self, oracle: RustTypeOracle, producer: str, consumer: str, mode: AccessMode):
        assert _classify(oracle, producer, consumer) == mode

    def test_fuzzable_consumer_gets_no_edge(self, oracle: RustTypeOracle):
        assert _classify(oracle, "u32", "u32") == AccessMode.INCOMPATIBLE
        loose = RustTypeOracle(strict=False)
        assert _classify(loose, "u32", "u32") == AccessMode.COPY

    def test_generic_is_incompatible(self, oracle: RustTypeOracle):
        assert oracle.classify(TypeRef.generic("T"), TypeRef.generic("T")) == AccessMode.INCOMPATIBLE

    def test_substitutions_applied(self, oracle: RustTypeOracle):
        subs = {"T": TypeRef.path("Handle")}
        mode = oracle.classify(TypeRef.generic("T"), parse_type("&Handle"), subs)
        assert mode == AccessMode.SHARED

    def test_malformed_shape_does_not_raise(self, oracle: RustTypeOracle):
        broken = TypeRef(kind="reference")  # no pointee
        assert oracle.classify(TypeRef.path("Handle"), broken) == AccessMode.INCOMPATIBLE


class TestFuzzable:
    def test_not_fuzzable(self, oracle: RustTypeOracle):
        assert oracle.fuzzable(parse_type("Handle")) is None
        assert oracle.fuzzable(parse_type("*const u8")) is None

    def test_fixed_primitives(self, oracle: RustTypeOracle):
        enc = oracle.fuzzable(parse_type("i32"))
        assert enc.fixed_size == 4
        assert enc.is_fixed
        assert enc.passing == AccessMode.COPY

    def test_dynamic_buffers(self, oracle: RustTypeOracle):
        for text in ("&str", "String", "Vec<u8>", "&[u8]"):
            enc = oracle.fuzzable(parse_type(text))
            assert enc.dynamic_parts == 1, text
            assert enc.encodable

    def test_passing_for_references(self, oracle: RustTypeOracle):
        assert oracle.fuzzable(parse_type("&[u8]")).passing == AccessMode.SHARED
        assert oracle.fuzzable(parse_type("&mut [u8]")).passing == AccessMode.EXCLUSIVE
        assert oracle.fuzzable(parse_type("String")).passing == AccessMode.MOVE

    def test_composites(self, oracle: RustTypeOracle):
        assert oracle.fuzzable(parse_type("[u16; 3]")).fixed_size == 6
        assert oracle.fuzzable(parse_type("(u8, i64)")).fixed_size == 9
        assert oracle.fuzzable(parse_type("Option<u32>")).fixed_size == 5
        assert oracle.fuzzable(parse_type("Vec<String>")).dynamic_parts == 2

    def test_unencodable(self, oracle: RustTypeOracle):
        assert not oracle.fuzzable(parse_type("&&str")).encodable
        assert not oracle.fuzzable(parse_type("(u8, &str)")).encodable


class TestConventions:
    def _fn(self, inputs: list[str], output: str | None = None) -> FunctionSignature:
        data = {"name": "lib::f", "inputs": inputs}
        if output is not None:
            data["output"] = output
        return FunctionSignature.model_validate(data)

    def test_start(self, oracle: RustTypeOracle):
        conventions = RustConventions(oracle)
        assert conventions.is_start(self._fn([]), {})
        assert conventions.is_start(self._fn(["&str", "u8"]), {})
        assert not conventions.is_start(self._fn(["&Handle"]), {})

    def test_end(self, oracle: RustTypeOracle):
        conventions = RustConventions(oracle)
        assert conventions.is_end(self._fn(["&Handle"]), {})
        assert conventions.is_end(self._fn(["&Handle"], "usize"), {})
        assert not conventions.is_end(self._fn(["&mut Handle"]), {})
        assert not conventions.is_end(self._fn([], "Handle"), {})

    def test_overrides(self, oracle: RustTypeOracle):
        conventions = RustConventions(oracle, start_functions=["lib::f"], end_functions=["lib::f"])
        fn = self._fn(["&mut Handle"], "Handle")
        assert conventions.is_start(fn, {})
        assert conventions.is_end(fn, {})


class TestSubstitution:
    def test_fixed_policy_with_override(self):
        fn = FunctionSignature.model_validate({
            "name": "lib::pair",
            "generics": ["A", "B"],
            "inputs": ["A", "B"],
            "substitutions": {"B": "String"},
        })
        subs = FixedTypeSubstitution().substitutions_for(fn)
        assert subs["A"] == TypeRef.primitive("i32")
        assert subs["B"] == TypeRef.path("String")

    def test_unresolved_generic(self):
        ty = parse_type("Vec<T>", generics=["T"])
        assert substitute_type(ty, {}) is None
        assert str(substitute_type(ty, {"T": TypeRef.primitive("u8")})) == "Vec<u8>"
