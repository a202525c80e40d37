from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from fiscal_core.collector import SweepStats
from fiscal_core.domain.models import Page, TimeBucket
from fiscal_core.strategies.abstract import MutationResult
from fiscal_core.utils.profiler import ProfileStats


def _cell(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, dict):
        return str(value.get("name") or value.get("plate") or value.get("id") or "…")
    return str(value)


def print_page(
    page: Page,
    fields: Sequence[str],
    *,
    title: str = "Results",
    warning: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render one page of records as a rich table with its pagination footer.
    """
    console = console or Console()
    if not page.items:
        console.print("[yellow]No records to display.[/yellow]")

    p = page.pagination
    caption = (
        f"Page {p.current_page}/{max(p.total_pages, 1)} │ {p.total_records:,} record(s)"
        f"{' │ more →' if p.has_next else ''}"
    )
    table = Table(title=title, box=box.ROUNDED, caption=caption)
    table.add_column("ID", style="cyan", no_wrap=True)
    for name in fields:
        table.add_column(name, style="magenta" if name == "record_type" else None)
    table.add_column("Created", style="green")

    for record in page.items:
        table.add_row(
            str(record.id),
            *(_cell(record.value(name)) for name in fields),
            record.created_at or "-",
        )

    if page.items:
        console.print(table)
    if warning:
        console.print(f"[bold yellow]⚠ {warning}[/bold yellow]")


def print_buckets(
    buckets: List[TimeBucket],
    *,
    title: str = "Daily records",
    console: Optional[Console] = None,
) -> None:
    """
    Render time buckets oldest first, one column per category plus the total.
    """
    console = console or Console()
    if not buckets:
        console.print("[yellow]No buckets to display.[/yellow]")
        return

    categories = list(buckets[0].counts.keys())
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Day", style="cyan", no_wrap=True)
    for name in categories:
        table.add_column(name, justify="right", style="magenta")
    table.add_column("Total", justify="right", style="bold green")

    for bucket in buckets:
        table.add_row(
            bucket.label,
            *(str(bucket.counts.get(name, 0)) for name in categories),
            str(bucket.total),
        )
    table.caption = f"{sum(b.total for b in buckets):,} record(s) in window"
    console.print(table)


def print_mutation(result: MutationResult, *, console: Optional[Console] = None) -> None:
    console = console or Console()
    style = "bold yellow" if result.simulated else "bold green"
    console.print(
        f"[{style}]{result.label.upper()}[/{style}] via {result.strategy_name} "
        f"(strategy {result.strategy_index + 1}, {len(result.attempts)} attempt(s))"
    )
    if result.simulated:
        console.print("[yellow]Simulated: nothing was changed on the server.[/yellow]")
    for err in result.real_errors:
        console.print(f"[dim]  error during fallback: {err}[/dim]")


def print_sweep(
    sweep: Optional[SweepStats],
    profile: Optional[ProfileStats] = None,
    *,
    console: Optional[Console] = None,
) -> None:
    """One-line cost summary of the sweep behind a command."""
    console = console or Console()
    parts = []
    if sweep is not None:
        parts.append(f"{sweep.pages} page request(s)")
        parts.append(f"{sweep.items:,} record(s)")
        if sweep.duplicates:
            parts.append(f"{sweep.duplicates} duplicate(s) dropped")
        if sweep.truncated:
            parts.append("[bold yellow]TRUNCATED[/bold yellow]")
    if profile is not None:
        parts.append(f"{profile.duration_seconds:.2f}s")
        if profile.peak_rss_mb is not None:
            parts.append(f"peak RSS {profile.peak_rss_mb:.1f} MB (+{profile.rss_growth_mb:.1f} MB)")
    if parts:
        console.print("[dim]Sweep: " + " │ ".join(parts) + "[/dim]")
