"""
Shared helpers for CLI commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from mapleads.core.config import AppConfig
from mapleads.core.errors import ConfigError
from mapleads.core.models import Business, Job
from mapleads.core.session import ScrapeSession

console = Console()
err_console = Console(stderr=True)

# Set by the root callback
state: dict[str, Any] = {"config_path": None}


def load_config() -> AppConfig:
    """Load app configuration, exiting with a message when invalid."""
    from mapleads.core.config import load_app_config
    from mapleads.core.logging import setup_logging

    path: Path | None = state.get("config_path")
    try:
        config = load_app_config(path)
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )
    return config


def open_session(config: AppConfig | None = None) -> ScrapeSession:
    """Create a session from configuration (use with `async with`)."""
    return ScrapeSession.from_config(config or load_config())


def print_errors(session: ScrapeSession) -> bool:
    """Print per-domain errors; returns True if there were any."""
    errors = session.errors
    for domain, message in errors.items():
        err_console.print(f"[red]{domain} error:[/red] {message}")
    return bool(errors)


def format_progress(job: Job) -> str:
    if job.progress is None or job.progress.total is None:
        return "-"
    return f"{job.progress.processed or 0} / {job.progress.total} ({job.percent}%)"


def job_table(job: Job) -> Table:
    table = Table(title="Scraping Status", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Keyword", job.keyword)
    table.add_row("Location", job.location)
    table.add_row("Status", job.status.value)
    table.add_row("Total Found", str(job.total_found))
    table.add_row("Progress", format_progress(job))
    if job.last_scraped_at:
        table.add_row("Last Scraped", job.last_scraped_at.strftime("%Y-%m-%d %H:%M"))
    if job.error:
        table.add_row("Error", f"[red]{job.error}[/red]")
    return table


def business_table(title: str, businesses: list[Business]) -> Table:
    table = Table(
        title=f"{title} ({len(businesses)} results)",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("ID", style="dim")
    table.add_column("Business Name", style="cyan")
    table.add_column("Address")
    table.add_column("Phone")
    table.add_column("Website", justify="center")
    table.add_column("Rating", justify="right")
    table.add_column("Category")

    for business in businesses:
        rating = "-"
        if business.rating is not None:
            rating = f"{business.rating}"
            if business.total_reviews:
                rating += f" ({business.total_reviews})"
        table.add_row(
            business.id,
            business.name,
            business.address,
            business.phone or "N/A",
            "[green]Yes[/green]" if business.has_website else "No",
            rating,
            business.category or "N/A",
        )
    return table
