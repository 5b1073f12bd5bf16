"""Shared test fixtures for seqforge."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from seqforge.catalog.core import Catalog
from seqforge.catalog.models import FunctionSignature
from seqforge.graph.builder import DependencyGraphBuilder
from seqforge.graph.query import DependencyGraph
from seqforge.oracle.rust import RustTypeOracle


@pytest.fixture
def make_catalog():
    """Build a catalog from signature dicts (types as Rust-like strings)."""

    def _make(*functions: dict, library: str = "testlib") -> Catalog:
        signatures = [FunctionSignature.model_validate(f) for f in functions]
        return Catalog.from_functions(signatures, library=library, oracle=RustTypeOracle())

    return _make


@pytest.fixture
def make_graph(make_catalog):
    def _make(*functions: dict, library: str = "testlib") -> DependencyGraph:
        return DependencyGraphBuilder().build(make_catalog(*functions, library=library))

    return _make


@pytest.fixture
def builder_graph(make_graph) -> DependencyGraph:
    """A by-value builder: new() -> Builder, set(Builder, i32) -> Builder, build(Builder) -> Widget.

    Indexes: new=0, set=1, build=2.
    """
    return make_graph(
        {"name": "lib::Builder::new", "inputs": [], "output": "Builder"},
        {"name": "lib::Builder::set", "inputs": ["Builder", "i32"], "output": "Builder"},
        {"name": "lib::Builder::build", "inputs": ["Builder"], "output": "Widget"},
    )


@pytest.fixture
def handle_graph(make_graph) -> DependencyGraph:
    """A borrowed handle: open(&str) -> Handle, write(&mut Handle, u32), close(&Handle).

    Indexes: open=0, write=1, close=2.
    """
    return make_graph(
        {"name": "lib::open", "inputs": ["&str"], "output": "Handle"},
        {"name": "lib::write", "inputs": ["&mut Handle", "u32"]},
        {"name": "lib::close", "inputs": ["&Handle"]},
    )


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    """A catalog JSON file, including one function hidden by visibility."""
    data = {
        "library": "testlib",
        "functions": [
            {"name": "lib::open", "inputs": ["&str"], "output": "Handle"},
            {"name": "lib::write", "inputs": ["&mut Handle", "u32"]},
            {"name": "lib::flags", "inputs": ["&Handle", "u32"], "output": "u32"},
            {"name": "lib::close", "inputs": ["&Handle"]},
            {"name": "lib::internal", "inputs": ["&Handle"], "visibility": "crate"},
        ],
    }
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def seeds_file(tmp_path: Path) -> Path:
    data = [
        {"functions": ["lib::open", "lib::write", "lib::close"], "frequency": 3},
        {"functions": ["lib::open", "lib::unknown"], "frequency": 1},
        ["lib::open", "lib::flags"],
    ]
    path = tmp_path / "seeds.json"
    path.write_text(json.dumps(data))
    return path
