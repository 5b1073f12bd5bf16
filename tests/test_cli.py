"""Tests for the CLI interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from seqforge import __version__
from seqforge.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(runner: CliRunner, tmp_path: Path) -> Path:
    """A tmp_path with an initialized .seqforge config."""
    result = runner.invoke(main, ["init", "--path", str(tmp_path), "--library", "testlib"])
    assert result.exit_code == 0, f"Init failed: {result.output}"
    return tmp_path


class TestCLIInit:
    def test_init_basic(self, runner: CliRunner, tmp_path: Path):
        result = runner.invoke(main, ["init", "--path", str(tmp_path)])
        assert result.exit_code == 0
        assert "Configuration saved" in result.output

    def test_init_creates_seqforge_dir(self, runner: CliRunner, tmp_path: Path):
        runner.invoke(main, ["init", "--path", str(tmp_path), "--library", "regex"])
        config_path = tmp_path / ".seqforge" / "config.json"
        assert config_path.exists()
        assert json.loads(config_path.read_text())["library"] == "regex"

    def test_init_nonexistent_path(self, runner: CliRunner):
        result = runner.invoke(main, ["init", "--path", "/nonexistent/path"])
        assert result.exit_code != 0


class TestCLIGraph:
    def test_graph(self, runner: CliRunner, catalog_file: Path):
        result = runner.invoke(main, ["graph", str(catalog_file)])
        assert result.exit_code == 0
        assert "Dependency Graph Statistics" in result.output
        assert "lib::internal" in result.output

    def test_graph_json(self, runner: CliRunner, catalog_file: Path):
        result = runner.invoke(main, ["graph", str(catalog_file), "--json"])
        assert result.exit_code == 0
        stats = json.loads(result.output)
        assert stats["functions"] == 4
        assert stats["excluded_functions"] == 1

    def test_graph_missing_catalog(self, runner: CliRunner, tmp_path: Path):
        result = runner.invoke(main, ["graph", str(tmp_path / "missing.json")])
        assert result.exit_code != 0

    def test_graph_bad_catalog(self, runner: CliRunner, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2")
        result = runner.invoke(main, ["graph", str(bad)])
        assert result.exit_code == 1


class TestCLIGenerate:
    def test_generate_output(self, runner: CliRunner, project: Path, catalog_file: Path):
        output = project / "drivers.json"
        result = runner.invoke(
            main,
            ["generate", str(catalog_file), "--path", str(project), "-o", str(output)],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert data["library"] == "testlib"
        assert data["sequences"]
        assert data["stats"]["sequences"] == len(data["sequences"])

    def test_generate_strategies(self, runner: CliRunner, catalog_file: Path):
        result = runner.invoke(
            main,
            ["generate", str(catalog_file), "-s", "bfs", "-s", "random_walk",
             "--seed", "7", "--select", "random", "-n", "3"],
        )
        assert result.exit_code == 0, result.output
        assert "Selected Drivers" in result.output

    def test_generate_unknown_strategy(self, runner: CliRunner, catalog_file: Path):
        result = runner.invoke(main, ["generate", str(catalog_file), "-s", "dfs"])
        assert result.exit_code != 0


class TestCLIReplay:
    def test_replay(self, runner: CliRunner, catalog_file: Path, seeds_file: Path):
        result = runner.invoke(main, ["replay", str(catalog_file), str(seeds_file)])
        assert result.exit_code == 0, result.output
        assert "Corpus Replay" in result.output

    def test_replay_output(
        self, runner: CliRunner, tmp_path: Path, catalog_file: Path, seeds_file: Path,
    ):
        output = tmp_path / "replayed.json"
        result = runner.invoke(
            main, ["replay", str(catalog_file), str(seeds_file), "-o", str(output)],
        )
        assert result.exit_code == 0, result.output
        assert len(json.loads(output.read_text())["sequences"]) == 5

    def test_replay_corpus_mismatch(self, runner: CliRunner, tmp_path: Path, catalog_file: Path):
        seeds = tmp_path / "mismatch.json"
        seeds.write_text(json.dumps([["lib::open", "lib::internal"]]))
        result = runner.invoke(main, ["replay", str(catalog_file), str(seeds)])
        assert result.exit_code == 1
        assert "lib::internal" in result.output

    def test_replay_bad_seeds(self, runner: CliRunner, tmp_path: Path, catalog_file: Path):
        seeds = tmp_path / "bad.json"
        seeds.write_text('"lib::open"')
        result = runner.invoke(main, ["replay", str(catalog_file), str(seeds)])
        assert result.exit_code == 1


class TestCLIConfig:
    def test_config_show(self, runner: CliRunner, project: Path):
        result = runner.invoke(main, ["config", "show", "--path", str(project)])
        assert result.exit_code == 0
        assert "bfs_max_len" in result.output

    def test_config_set_and_get(self, runner: CliRunner, project: Path):
        result = runner.invoke(
            main, ["config", "set", "search.bfs_max_len", "4", "--path", str(project)],
        )
        assert result.exit_code == 0
        result = runner.invoke(
            main, ["config", "get", "search.bfs_max_len", "--path", str(project)],
        )
        assert result.exit_code == 0
        assert "search.bfs_max_len = 4" in result.output

    def test_config_get_unknown(self, runner: CliRunner, project: Path):
        result = runner.invoke(main, ["config", "get", "search.depth", "--path", str(project)])
        assert result.exit_code == 1

    def test_config_set_unknown(self, runner: CliRunner, project: Path):
        result = runner.invoke(main, ["config", "set", "nope", "1", "--path", str(project)])
        assert result.exit_code == 1


class TestCLIVersion:
    def test_version(self, runner: CliRunner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
