"""
Scraper commands - start jobs, check and follow their status.
"""

from __future__ import annotations

import asyncio
import time

import typer
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from mapleads.cli.common import (
    business_table,
    console,
    err_console,
    job_table,
    load_config,
    open_session,
    print_errors,
)
from mapleads.core.errors import ValidationError
from mapleads.core.session import ScrapeSession, SessionState


def register(app: typer.Typer) -> None:
    """Attach the scraper commands to the root app."""
    app.command("search")(search)
    app.command("status")(status)
    app.command("ping")(ping)


def search(
    keyword: str = typer.Argument(..., help="Business type, e.g. 'coffee shop'"),
    location: str = typer.Argument(..., help="Where to search, e.g. 'Austin'"),
    watch: bool = typer.Option(
        True,
        "--watch/--no-watch",
        help="Follow progress until the job completes",
    ),
    max_wait: float = typer.Option(
        600.0,
        "--max-wait",
        "-w",
        help="Stop following after this many seconds",
    ),
) -> None:
    """Start a scrape job and follow its progress.

    Examples:
        mapleads search "coffee shop" Austin
        mapleads search bakery "New York" --no-watch
    """
    config = load_config()

    async def _run() -> int:
        async with open_session(config) as session:
            try:
                await session.submit_search(keyword, location)
            except ValidationError as e:
                err_console.print(f"[red]{e}[/red]")
                return 1
            if watch:
                await _follow(session, max_wait)
            return await _report(session, show_results=watch)

    raise typer.Exit(asyncio.run(_run()))


def status(
    keyword: str = typer.Argument(..., help="Keyword of the job"),
    location: str = typer.Argument(..., help="Location of the job"),
    watch: bool = typer.Option(
        False,
        "--watch/--no-watch",
        help="Keep following progress after the check",
    ),
    max_wait: float = typer.Option(600.0, "--max-wait", "-w", help="Seconds to follow"),
) -> None:
    """Check the status of a scrape job."""
    config = load_config()

    async def _run() -> int:
        async with open_session(config) as session:
            try:
                await session.check_status(keyword, location)
            except ValidationError as e:
                err_console.print(f"[red]{e}[/red]")
                return 1
            if watch:
                await _follow(session, max_wait)
            return await _report(session, show_results=False)

    raise typer.Exit(asyncio.run(_run()))


def ping() -> None:
    """Run the scraper service self check."""
    config = load_config()

    async def _run() -> int:
        async with open_session(config) as session:
            result = await session.test_scraper()
            if result is None and session.error:
                err_console.print(f"[red]Scraper unreachable:[/red] {session.error}")
                return 1
            console.print_json(data=result)
            return 0

    raise typer.Exit(asyncio.run(_run()))


async def _follow(session: ScrapeSession, max_wait: float) -> None:
    """Render a progress bar until the job reaches a terminal state."""
    deadline = time.monotonic() + max_wait

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"[cyan]Scraping {session.job.keyword} in {session.job.location}...", total=None)

        while time.monotonic() < deadline:
            job = session.job
            if job.progress is not None and job.progress.total:
                progress.update(task, completed=job.progress.processed or 0, total=job.progress.total)
            if session.state is SessionState.COMPLETED:
                break
            if session.state is SessionState.FAILED:
                err_console.print(f"[red]Job failed:[/red] {job.error}")
                break
            await asyncio.sleep(session.poller.interval / 2)
        else:
            err_console.print("[yellow]Stopped following before the job completed[/yellow]")

    session.stop_observing()


async def _report(session: ScrapeSession, show_results: bool) -> int:
    console.print(job_table(session.job))
    if show_results:
        await _show_results(session)
    return 1 if session.state is SessionState.FAILED else 0


async def _show_results(session: ScrapeSession) -> None:
    await session.load_results()
    view = session.display()
    if view.is_empty:
        console.print("[dim]No businesses found yet.[/dim]")
    else:
        console.print(business_table(view.title, view.items))
    print_errors(session)
