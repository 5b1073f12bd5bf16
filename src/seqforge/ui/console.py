"""Rich-powered console output for seqforge."""

from __future__ import annotations

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from seqforge import __version__
from seqforge.catalog.core import Catalog
from seqforge.oracle.base import AccessMode
from seqforge.search.seeds import ReplayReport
from seqforge.select.stats import CoverageStats
from seqforge.sequence.models import ArgSource, Sequence

_ARG_PREFIX = {
    AccessMode.SHARED: "&",
    AccessMode.EXCLUSIVE: "&mut ",
    AccessMode.UNSAFE_SHARED: "&raw const ",
    AccessMode.UNSAFE_EXCLUSIVE: "&raw mut ",
}


def format_call(sequence: Sequence, index: int, catalog: Catalog) -> str:
    """One call as `_i = name(args)`; fuzzer slots show as `input[k]`."""
    call = sequence.calls[index]
    args = []
    for arg in call.args:
        name = f"input[{arg.index}]" if arg.source == ArgSource.FUZZABLE else f"_{arg.index}"
        args.append(_ARG_PREFIX.get(arg.mode, "") + name)
    text = f"{catalog[call.function].name}({', '.join(args)})"
    if call.returns_value:
        binding = "let mut" if sequence.access[index].needs_mut else "let"
        text = f"{binding} _{index} = {text}"
    return text


class Console:
    """Terminal output for seqforge using Rich."""

    def __init__(self) -> None:
        self.console = RichConsole()

    def banner(self) -> None:
        self.console.print(
            Panel(
                f"[bold cyan]seqforge[/bold cyan] [dim]v{__version__}[/dim]\n"
                "[dim]Call-sequence synthesis for fuzz drivers[/dim]",
                border_style="cyan",
                padding=(1, 2),
            )
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def show_graph_stats(self, stats: dict) -> None:
        """Display dependency graph statistics in a table."""
        table = Table(title="Dependency Graph Statistics", border_style="cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Count", justify="right", style="cyan")

        table.add_row("Functions", str(stats.get("functions", 0)))
        table.add_row("Dependencies", str(stats.get("edges", 0)))
        table.add_row("Start functions", str(stats.get("start_functions", 0)))
        table.add_row("End functions", str(stats.get("end_functions", 0)))
        table.add_row("Isolated functions", str(stats.get("isolated_functions", 0)))
        table.add_row("Self loops", str(stats.get("self_loops", 0)))
        table.add_row("Filtered out", str(stats.get("excluded_functions", 0)))

        edge_modes = stats.get("edge_modes", {})
        if edge_modes:
            table.add_section()
            for mode, count in sorted(edge_modes.items(), key=lambda x: -x[1]):
                table.add_row(f"  {mode} edges", str(count))

        self.console.print(table)

    def show_coverage_stats(self, stats: CoverageStats, title: str = "Coverage") -> None:
        table = Table(title=title, border_style="cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right", style="cyan")

        table.add_row("Sequences", str(stats.sequences))
        table.add_row("  variable-length", str(stats.dynamic_sequences))
        table.add_row("Total calls", str(stats.total_calls))
        table.add_row("Longest sequence", str(stats.max_length))
        table.add_row(
            "Functions covered",
            f"{stats.functions_covered}/{stats.total_functions} ({stats.function_coverage:.1%})",
        )
        table.add_row(
            "Edges covered",
            f"{stats.edges_covered}/{stats.total_edges} ({stats.edge_coverage:.1%})",
        )
        table.add_row("Calls per covered function", f"{stats.avg_calls_per_function:.2f}")
        self.console.print(table)

    def show_sequences(
        self, sequences: list[Sequence], catalog: Catalog, limit: int = 20
    ) -> None:
        """Display sequences as call trees."""
        for n, seq in enumerate(sequences[:limit]):
            label = f"[bold]#{n}[/bold] [dim]({len(seq)} calls, {len(seq.fuzzables)} inputs)[/dim]"
            if seq.unsafe:
                label += " [red]unsafe[/red]"
            tree = Tree(label)
            for i in range(len(seq)):
                tree.add(format_call(seq, i, catalog))
            self.console.print(tree)
        if len(sequences) > limit:
            self.console.print(f"[dim]... {len(sequences) - limit} more[/dim]")

    def show_replay_report(self, report: ReplayReport) -> None:
        self.console.print(
            Panel(
                f"[bold]Chains replayed:[/bold] {report.chains_replayed}/{report.chains_total}\n"
                f"[bold]Sequences:[/bold] {report.sequences}\n"
                f"[bold]Reached:[/bold] {len(report.reached)}\n"
                f"[bold]In corpus, not reached:[/bold] {len(report.unreached)}\n"
                f"[bold]Absent from corpus:[/bold] {report.absent_count}",
                title="[bold]Corpus Replay[/bold]",
                border_style="cyan",
            )
        )
        if report.unreached:
            self.console.print("\n[bold]Not reached (corpus frequency):[/bold]")
            for name, count in sorted(report.unreached.items(), key=lambda x: -x[1]):
                self.console.print(f"  [cyan]{name}[/cyan] {count}")
        if report.backfilled:
            self.console.print(f"\n[bold]Backfilled:[/bold] {', '.join(report.backfilled)}")
