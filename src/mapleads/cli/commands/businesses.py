"""
Business commands - list, search, delete and export scraped businesses.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from mapleads.cli.common import (
    business_table,
    console,
    err_console,
    load_config,
    open_session,
    print_errors,
)
from mapleads.core.errors import ValidationError
from mapleads.core.models import ExportType, WebsiteFilter

app = typer.Typer(
    help="Browse and export scraped businesses",
    no_args_is_help=True,
)


@app.command("list")
def list_businesses(
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page to show"),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        min=1,
        help="Businesses per page (default from config)",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json)",
    ),
) -> None:
    """List all businesses, one page at a time.

    Examples:
        mapleads businesses list
        mapleads businesses list --page 2 --limit 20 --format json
    """
    config = load_config()

    async def _run() -> int:
        async with open_session(config) as session:
            ok = await session.results.load_paginated(page, limit or config.results.default_limit)
            if not ok:
                print_errors(session)
                return 1

            result_set = session.results.paginated
            if format == "json":
                console.print_json(data={
                    "data": [b.model_dump(mode="json", by_alias=True) for b in result_set.items],
                    "pagination": result_set.pagination.model_dump(),
                })
                return 0

            if not result_set.items:
                console.print("[dim]No businesses found.[/dim]")
                return 0

            view = session.display()
            console.print(business_table(view.title, view.items))
            pagination = result_set.pagination
            if pagination.pages > 1:
                console.print(f"[dim]Showing page {pagination.page} of {pagination.pages} ({pagination.total} total)[/dim]")
            return 0

    raise typer.Exit(asyncio.run(_run()))


@app.command("search")
def search_businesses(
    keyword: str = typer.Argument(..., help="Keyword of the search"),
    location: str = typer.Argument(..., help="Location of the search"),
    with_website: Optional[bool] = typer.Option(
        None,
        "--with-website/--without-website",
        help="Only show businesses with (or without) a website",
    ),
) -> None:
    """Show businesses already scraped for a search."""
    config = load_config()

    async def _run() -> int:
        async with open_session(config) as session:
            session.keyword, session.location = keyword, location
            if not session.has_search:
                err_console.print("[red]Please enter both keyword and location[/red]")
                return 1
            if not await session.load_results():
                print_errors(session)
                return 1

            view = session.display()
            items = view.items
            if with_website is not None:
                items = [b for b in items if b.has_website == with_website]
            if not items:
                console.print("[dim]No businesses found for this search.[/dim]")
                return 0
            console.print(business_table(view.title, items))
            return 0

    raise typer.Exit(asyncio.run(_run()))


@app.command("delete")
def delete_business(
    business_id: str = typer.Argument(..., help="ID of the business"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
) -> None:
    """Delete a business."""
    if not yes:
        typer.confirm("Are you sure you want to delete this business?", abort=True)

    config = load_config()

    async def _run() -> int:
        async with open_session(config) as session:
            if await session.delete_business(business_id):
                console.print(f"[green]Deleted[/green] {business_id}")
                return 0
            print_errors(session)
            return 1

    raise typer.Exit(asyncio.run(_run()))


@app.command("export")
def export_businesses(
    keyword: Optional[str] = typer.Option(None, "--keyword", "-k", help="Keyword of the search"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Location of the search"),
    export_type: ExportType = typer.Option(
        ExportType.SEARCH,
        "--type",
        "-t",
        help="Export the current search or all results",
    ),
    website: Optional[WebsiteFilter] = typer.Option(
        None,
        "--website",
        help="Only businesses with or without a website",
    ),
) -> None:
    """Export businesses to a spreadsheet on the server.

    Examples:
        mapleads businesses export -k "coffee shop" -l Austin
        mapleads businesses export -k bakery -l Austin --website without
        mapleads businesses export --type all
    """
    config = load_config()

    async def _run() -> int:
        async with open_session(config) as session:
            try:
                result = await session.request_export(
                    export_type=export_type,
                    has_website=website,
                    keyword=keyword,
                    location=location,
                )
            except ValidationError as e:
                err_console.print(f"[red]{e}[/red]")
                return 1

            if result is None:
                print_errors(session)
                return 1

            console.print("[bold green]Export Successful![/bold green]")
            console.print(f"{result.total_records} records exported to [cyan]{result.file_name}[/cyan]")
            console.print(f"[dim]{result.file_path}[/dim]")
            return 0

    raise typer.Exit(asyncio.run(_run()))


@app.command("history")
def search_history() -> None:
    """Show previously scraped searches."""
    from rich.table import Table

    config = load_config()

    async def _run() -> int:
        async with open_session(config) as session:
            entries = await session.fetch_search_history()
            if print_errors(session):
                return 1
            if not entries:
                console.print("[dim]No searches yet.[/dim]")
                return 0

            columns: list[str] = []
            for entry in entries:
                for column in entry:
                    if column not in columns and not column.startswith("_"):
                        columns.append(column)

            table = Table(title="Search History", show_header=True, header_style="bold magenta")
            for column in columns:
                table.add_column(column)
            for entry in entries:
                table.add_row(*(str(entry.get(column, "")) for column in columns))
            console.print(table)
            return 0

    raise typer.Exit(asyncio.run(_run()))
