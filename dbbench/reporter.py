from __future__ import annotations

from typing import Dict, Iterable, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from dbbench.domain.models import Backend
from dbbench.orchestrator import CaseOutcome, SuiteResult
from dbbench.registry import CaseRegistry


def _mb(value: Optional[int]) -> str:
    return f"{value / (1024 * 1024):.2f}" if value else "N/A"


def print_catalog(
    registry: CaseRegistry, backend: Optional[Backend] = None, console: Optional[Console] = None
) -> None:
    """
    Render every registered case grouped by group, with its backend marks.

    When `backend` is given, cases it cannot run are dimmed.
    """
    console = console or Console()
    legend = ", ".join(f"{b.symbol}={b.value}" for b in Backend)
    table = Table(title="dbbench cases", box=box.ROUNDED, caption=f"Backends: {legend}")

    table.add_column("Group", style="blue")
    table.add_column("Case", style="cyan", no_wrap=True)
    table.add_column("Backends", style="magenta", no_wrap=True)
    table.add_column("Category", style="green")
    table.add_column("Description")

    for group in registry.groups():
        for index, case in enumerate(group.cases):
            style = "dim" if backend is not None and not case.is_supported(backend) else None
            table.add_row(
                group.name if index == 0 else "",
                case.name,
                case.backend_marks(),
                case.category.value,
                case.description,
                style=style,
            )
        table.add_section()

    console.print(table)


def print_outcomes(outcomes: Iterable[CaseOutcome], console: Optional[Console] = None) -> None:
    """
    Render case results as a rich table, one row per executed case.

    Skipped cases are listed with their reason instead of numbers.
    """
    console = console or Console()
    outcomes = list(outcomes)
    if not outcomes:
        console.print("[yellow]No results to display.[/yellow]")
        return

    table = Table(title="dbbench results", box=box.ROUNDED)
    table.add_column("Case", style="cyan", no_wrap=True)
    table.add_column("Workers", justify="right", style="blue")
    table.add_column("Budget", justify="right")
    table.add_column("Loops", justify="right", style="magenta")
    table.add_column("Rows", justify="right", style="magenta")
    table.add_column("Duration (s)", justify="right", style="green")
    table.add_column("Rate (rows/s)", justify="right", style="bold green")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")
    table.add_column("CPU %", justify="right", style="red")

    for outcome in outcomes:
        result = outcome.result
        if outcome.skipped or result is None:
            table.add_row(outcome.case.name, "", "", "", "", "", f"[dim]{outcome.reason or 'n/a'}[/dim]", "", "")
            continue
        profile = outcome.profile
        cpu = profile.cpu_percent if profile is not None else None
        name = outcome.case.name + (" [yellow](cancelled)[/yellow]" if result.cancelled else "")
        table.add_row(
            name,
            str(result.workers),
            result.budget.describe(),
            f"{result.loops:,}",
            f"{result.rows:,}",
            f"{result.elapsed_seconds:.1f}",
            f"{result.rate:,.2f}",
            _mb(profile.peak_rss_bytes if profile is not None else None),
            f"{cpu:.1f}" if cpu is not None else "N/A",
        )

    console.print(table)


def print_summary(summary: Dict[str, Optional[float]], console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title="Geometric mean by category", box=box.ROUNDED)
    table.add_column("Category", style="cyan")
    table.add_column("Geomean (rows/s)", justify="right", style="bold green")
    for category, value in summary.items():
        table.add_row(category, f"{value:,.0f}" if value is not None else "N/A")
    console.print(table)


def print_suite(suite: SuiteResult, console: Optional[Console] = None) -> None:
    console = console or Console()
    print_outcomes([o for o in suite.outcomes if not o.skipped], console)
    print_summary(suite.summary, console)
    status = "[yellow]cancelled[/yellow]" if suite.cancelled else "[green]complete[/green]"
    console.print(
        f"Suite {status}: {suite.chunks_run} chunk(s) of {suite.chunk:,} "
        f"(limit {suite.limit:,}, workers {suite.workers})"
    )


__all__ = ["print_catalog", "print_outcomes", "print_suite", "print_summary"]
