from __future__ import annotations

import asyncio
import sys
from contextlib import nullcontext
from typing import Awaitable, Callable, Optional, TypeVar

import typer

from fiscal_core.config import get_settings
from fiscal_core.domain.models import Page
from fiscal_core.errors import FiscalCoreError, user_message
from fiscal_core.infrastructure.http_client import FiscalApiClient
from fiscal_core.reporter import print_buckets, print_mutation, print_page, print_sweep
from fiscal_core.repository import (
    CollectionRepository,
    ListState,
    ListView,
    available_collections,
    resolve_collection,
)
from fiscal_core.utils.logging import configure_logging
from fiscal_core.utils.profiler import profile_block

app = typer.Typer(help="Fiscalization back-office data-access CLI.")

T = TypeVar("T")


def _run(collection: str, action: Callable[[CollectionRepository], Awaitable[T]]) -> T:
    """Build a repository for `collection`, run `action` on it, close the client."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    try:
        spec = resolve_collection(collection)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="COLLECTION") from exc

    async def _main() -> T:
        async with FiscalApiClient(settings) as api:
            return await action(CollectionRepository(api, spec, settings=settings))

    try:
        return asyncio.run(_main())
    except FiscalCoreError as exc:
        typer.secho(f"Error: {user_message(exc)}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"API={settings.api_base_url} env={settings.app_env} | "
        f"page_size={settings.page_size} sweep_max_pages={settings.sweep_max_pages} "
        f"strict={settings.sweep_strict} | search_min={settings.search_min_length} "
        f"debounce={settings.search_debounce_ms}ms | cache_ttl={settings.cache_ttl_seconds}s | "
        f"simulated_mutations={'on' if settings.simulated_mutations_enabled else 'off'}"
    )


@app.command()
def collections() -> None:
    """List known collections."""
    typer.echo("Available collections: " + ", ".join(available_collections()))


@app.command("list")
def list_page(
    collection: str = typer.Argument(..., help="Collection name (see `collections`)."),
    page: int = typer.Option(1, "--page", "-p", min=1),
    record_type: Optional[str] = typer.Option(None, "--type", "-t", help="Type filter."),
    sort_by: Optional[str] = typer.Option(None, "--sort-by"),
    sort_order: str = typer.Option("DESC", "--sort-order"),
) -> None:
    """
    Show one server page of a collection.
    """

    async def action(repo: CollectionRepository) -> None:
        view = ListView(
            repo,
            repo.query(page=page, record_type=record_type, sort_by=sort_by, sort_order=sort_order),
        )
        state = await view.load()
        if state.error:
            typer.secho(f"Error: {state.error}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        print_page(
            _as_page(state),
            repo.spec.search_fields,
            title=f"{collection} (page {page})",
        )

    _run(collection, action)


def _as_page(state: ListState) -> Page:
    return Page(items=state.items, pagination=state.pagination)


@app.command()
def search(
    collection: str = typer.Argument(...),
    text: str = typer.Argument(..., help="Search text (plate, document number, type...)."),
    page: int = typer.Option(1, "--page", "-p", min=1),
    record_type: Optional[str] = typer.Option(None, "--type", "-t"),
    server: bool = typer.Option(False, "--server", help="Use the backend /search route instead."),
    profile: bool = typer.Option(False, "--profile", help="Report sweep time and peak memory."),
) -> None:
    """
    Search a collection across all pages (or through the backend with --server).
    """

    async def action(repo: CollectionRepository) -> None:
        if server:
            result = await repo.server_search(text, page)
            print_page(result, repo.spec.search_fields, title=f"{collection} ~ {text!r} (server)")
            return
        view = ListView(repo, repo.query(page=page, record_type=record_type, search=text))
        with profile_block(f"search-{collection}") if profile else nullcontext() as stats:
            state = await view.load()
        if state.error:
            typer.secho(f"Error: {state.error}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        print_page(
            _as_page(state),
            repo.spec.search_fields,
            title=f"{collection} ~ {text!r}",
            warning=state.warning,
        )
        print_sweep(repo.sweep_stats(record_type), stats)

    _run(collection, action)


@app.command()
def daily(
    collection: str = typer.Argument("records"),
    days: Optional[int] = typer.Option(None, "--days", "-d", min=1, help="Window size in days."),
    record_type: Optional[str] = typer.Option(None, "--type", "-t"),
    profile: bool = typer.Option(False, "--profile", help="Report sweep time and peak memory."),
) -> None:
    """
    Count records per local day over the trailing window.
    """

    async def action(repo: CollectionRepository) -> None:
        with profile_block(f"daily-{collection}") if profile else nullcontext() as stats:
            buckets = await repo.daily_counts(days, record_type=record_type)
        print_buckets(buckets, title=f"{collection} per day")
        print_sweep(repo.sweep_stats(record_type), stats)

    _run(collection, action)


@app.command()
def remove(
    collection: str = typer.Argument(...),
    record_id: str = typer.Argument(..., help="Identifier of the record to remove."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """
    Remove (or deactivate) one record, falling back across supported routes.
    """
    if not yes:
        typer.confirm(f"Remove {collection}/{record_id}?", abort=True)

    async def action(repo: CollectionRepository) -> None:
        print_mutation(await repo.remove(record_id))

    _run(collection, action)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
