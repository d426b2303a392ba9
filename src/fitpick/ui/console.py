"""Rich-powered console output for fitpick."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table

from fitpick import __version__
from fitpick.search.models import CandidateResult


class Console:
    """Terminal output for fitpick using Rich."""

    def __init__(self) -> None:
        self.console = RichConsole()

    def banner(self) -> None:
        """Show the fitpick banner."""
        self.console.print(
            Panel(
                f"[bold cyan]fitpick[/bold cyan] [dim]v{__version__}[/dim]\n"
                "[dim]Unit combinations that fit the allowance[/dim]",
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

    def show_results(self, results: list[CandidateResult], target: float) -> None:
        """Display search results, best first."""
        table = Table(title=f"Top {len(results)} for target {target:g}", border_style="cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Units")
        table.add_column("Sum", justify="right", style="bold")
        table.add_column("Gap", justify="right", style="cyan")

        for rank, result in enumerate(results, start=1):
            units = "\n".join(f"{p.size:g}  {p.label}" for p in result.picks)
            table.add_row(str(rank), units, f"{result.sum:g}", f"{result.gap:g}")

        self.console.print(table)

    def show_stats(self, stats: dict) -> None:
        """Display dataset statistics in a table."""
        table = Table(title="Dataset", border_style="cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Count", justify="right", style="cyan")

        table.add_row("Planned units", str(stats.get("planned", 0)))
        table.add_row("Ready units", str(stats.get("ready", 0)))
        table.add_row("Communities", str(stats.get("communities", 0)))

        self.console.print(table)

    def show_cache(self, sources: list[dict]) -> None:
        """Display the cached source files."""
        table = Table(title="Row cache", border_style="cyan")
        table.add_column("Source", style="bold")
        table.add_column("Rows", justify="right", style="cyan")

        for source in sources:
            table.add_row(Path(source["path"]).name, str(source["row_count"]))

        self.console.print(table)
