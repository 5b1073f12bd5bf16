"""Command-line interface for seqforge."""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path

import click

from seqforge import __version__
from seqforge.config import (
    CONFIG_FILE,
    ProjectConfig,
    find_project_root,
    get_seqforge_dir,
    load_config,
    save_config,
    set_config_value,
)
from seqforge.exceptions import SeqForgeError
from seqforge.ui.console import Console

console = Console()


def _get_project_root(path: str | None = None) -> Path:
    """Find the project root or error."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return root

    root = find_project_root()
    if root is None:
        console.error(
            "No seqforge project found. Run 'seqforge init' first, "
            "or specify a path with --path."
        )
        sys.exit(1)
    return root


def _project_config(path: str | None) -> ProjectConfig:
    """Config of the enclosing project, or defaults outside one."""
    root = Path(path).resolve() if path else find_project_root()
    if root is None or not (get_seqforge_dir(root) / CONFIG_FILE).exists():
        return ProjectConfig()
    try:
        return load_config(root)
    except SeqForgeError as e:
        console.error(str(e))
        sys.exit(1)


def _build_graph(catalog_path: str, config: ProjectConfig):
    """Load and filter the catalog, then build its dependency graph."""
    from seqforge.catalog.core import load_catalog
    from seqforge.graph.builder import DependencyGraphBuilder
    from seqforge.oracle.base import FixedTypeSubstitution
    from seqforge.oracle.rust import RustConventions, RustTypeOracle

    conventions = config.conventions
    oracle = RustTypeOracle(copy_types=conventions.copy_types)
    policy = FixedTypeSubstitution()

    try:
        catalog = load_catalog(catalog_path, oracle=oracle, policy=policy)
    except SeqForgeError as e:
        console.error(str(e))
        sys.exit(1)
    if config.library:
        catalog.library = config.library
    catalog.filter_visibility(conventions.invisible_modules)
    catalog.filter_prelude_methods()

    builder = DependencyGraphBuilder(
        oracle=oracle,
        conventions=RustConventions(
            oracle, conventions.start_functions, conventions.end_functions,
        ),
        policy=policy,
    )
    return builder.build(catalog), oracle


def _write_output(output: str, sequences, catalog, stats) -> None:
    payload = {
        "library": catalog.library,
        "stats": stats.model_dump(),
        "sequences": [seq.to_dict(catalog) for seq in sequences],
    }
    Path(output).write_text(json.dumps(payload, indent=2))
    console.success(f"Wrote {len(sequences)} sequence(s) to {output}")


@click.group()
@click.version_option(version=__version__, prog_name="seqforge")
@click.option("--verbose", "-v", count=True, help="Log more (-v info, -vv debug).")
def main(verbose: int):
    """seqforge - call-sequence synthesis for library fuzz drivers."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--library", "-l", default=None, help="Library name for search tuning.")
def init(path: str | None, library: str | None):
    """Create a .seqforge configuration for a project."""
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(1)

    console.banner()
    console.info(f"Initializing seqforge for: {root}")

    config = load_config(root)
    if library:
        config.library = library
    save_config(root, config)
    console.success(f"Configuration saved for library '{config.library}'")


@main.command()
@click.argument("catalog", type=click.Path(exists=True, dir_okay=False))
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--json", "as_json", is_flag=True, help="Print statistics as JSON.")
def graph(catalog: str, path: str | None, as_json: bool):
    """Build the dependency graph of a signature catalog and show statistics."""
    config = _project_config(path)
    dep_graph, _ = _build_graph(catalog, config)
    stats = dep_graph.get_stats()

    if as_json:
        click.echo(json.dumps(stats, indent=2))
        return
    console.info(f"Library: {dep_graph.catalog.library}")
    console.show_graph_stats(stats)
    for name, reason in sorted(dep_graph.catalog.excluded.items()):
        console.console.print(f"  [dim]filtered {name}: {reason}[/dim]")


# =========================================================================
# Sequence generation
# =========================================================================

_STRATEGIES = [
    "default", "bfs", "fast_bfs", "bfs_end_point", "fast_bfs_end_point",
    "try_deep_bfs", "random_walk", "random_walk_end_point", "backward",
]
_POLICIES = ["heuristic", "random", "first", "per_function"]


@main.command()
@click.argument("catalog", type=click.Path(exists=True, dir_okay=False))
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option(
    "--strategy", "-s", "strategies",
    type=click.Choice(_STRATEGIES), multiple=True,
    help="Search strategy; repeat to merge several pools (default: default).",
)
@click.option("--select", "policy", type=click.Choice(_POLICIES), default=None,
              help="Selection policy (default from config).")
@click.option("--max-size", "-n", type=int, default=None, help="Maximum sequences to select.")
@click.option("--seed", type=int, default=None, help="Random seed.")
@click.option("--output", "-o", default=None, help="Write selected sequences as JSON.")
@click.option("--show", default=10, type=int, help="How many sequences to print.")
def generate(
    catalog: str, path: str | None, strategies: tuple[str, ...], policy: str | None,
    max_size: int | None, seed: int | None, output: str | None, show: int,
):
    """Search for call sequences and select the fuzz driver set.

    Examples:

        seqforge generate catalog.json

        seqforge generate catalog.json -s bfs -s random_walk --seed 7 -o drivers.json
    """
    from seqforge.search.engine import SearchEngine, Strategy
    from seqforge.select.selector import Selector
    from seqforge.select.stats import coverage_stats
    from seqforge.sequence.admission import Admission

    config = _project_config(path)
    if seed is not None:
        config.search.seed = seed
    if policy is not None:
        config.selection.policy = policy
    if max_size is not None:
        config.selection.max_size = max_size

    dep_graph, oracle = _build_graph(catalog, config)
    engine = SearchEngine(
        dep_graph,
        Admission(dep_graph, oracle),
        config.search,
    )

    start_time = time.time()
    pool = engine.generate([Strategy(s) for s in strategies or ("default",)])
    elapsed = time.time() - start_time
    console.info(
        f"Search produced {len(pool)} sequence(s), "
        f"{engine.visited_count()}/{dep_graph.function_count} functions visited "
        f"in {elapsed:.2f}s"
    )

    selector = Selector(dep_graph, seed=config.search.seed)
    chosen = selector.select(pool, config.selection)
    stats = coverage_stats(chosen, dep_graph)
    if not chosen:
        console.warning("No sequence qualifies as a fuzz driver")
    console.show_coverage_stats(stats, title="Selected Drivers")
    console.show_sequences(chosen, dep_graph.catalog, limit=show)

    if output:
        _write_output(output, chosen, dep_graph.catalog, stats)


@main.command()
@click.argument("catalog", type=click.Path(exists=True, dir_okay=False))
@click.argument("seeds", type=click.Path(exists=True, dir_okay=False))
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--backfill", is_flag=True,
              help="Reverse-construct corpus functions the replay did not reach.")
@click.option("--output", "-o", default=None, help="Write replayed sequences as JSON.")
def replay(catalog: str, seeds: str, path: str | None, backfill: bool, output: str | None):
    """Replay corpus seed chains against a catalog."""
    from seqforge.exceptions import CorpusMismatchError
    from seqforge.search.engine import SearchEngine
    from seqforge.search.seeds import load_seed_chains
    from seqforge.select.stats import coverage_stats
    from seqforge.sequence.admission import Admission

    config = _project_config(path)
    dep_graph, oracle = _build_graph(catalog, config)
    try:
        chains = load_seed_chains(Path(seeds))
    except SeqForgeError as e:
        console.error(str(e))
        sys.exit(1)

    engine = SearchEngine(
        dep_graph,
        Admission(dep_graph, oracle),
        config.search,
    )
    try:
        report = engine.replay(chains, backfill=backfill)
    except CorpusMismatchError as e:
        console.error(str(e))
        sys.exit(1)

    console.show_replay_report(report)
    stats = coverage_stats(engine.sequences, dep_graph)
    console.show_coverage_stats(stats, title="Replayed Sequences")
    if output:
        _write_output(output, engine.sequences, dep_graph.catalog, stats)


# =========================================================================
# Config Management
# =========================================================================

@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Manage seqforge configuration."""
    root = _get_project_root(path)
    config = load_config(root)

    if action == "show":
        console.console.print_json(json.dumps(config.model_dump(), indent=2))
    elif action == "get":
        if not key:
            console.error("Usage: seqforge config get <key>")
            sys.exit(1)
        data = config.model_dump()
        for part in key.split("."):
            if isinstance(data, dict) and part in data:
                data = data[part]
            else:
                console.error(f"Unknown key: {key}")
                sys.exit(1)
        console.console.print(f"{key} = {data}")
    elif action == "set":
        if not key or value is None:
            console.error("Usage: seqforge config set <key> <value>")
            sys.exit(1)
        try:
            # Try to parse as JSON for non-string values
            try:
                parsed_value = json.loads(value)
            except json.JSONDecodeError:
                parsed_value = value

            config = set_config_value(config, key, parsed_value)
            save_config(root, config)
            console.success(f"Set {key} = {parsed_value}")
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(1)


if __name__ == "__main__":
    main()
