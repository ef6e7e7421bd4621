"""
mapleads CLI - Main entry point.

Drives the remote Google Maps scraper: start jobs, follow their progress,
browse, delete and export the scraped businesses.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from mapleads import __app_name__, __version__
from mapleads.cli.common import console, state

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Terminal client for the Google Maps business scraper",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml (default: configs/app.yaml)",
    ),
) -> None:
    """mapleads - Google Maps business scraper client."""
    state["config_path"] = config


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import businesses, scraper  # noqa: E402

scraper.register(app)
app.add_typer(businesses.app, name="businesses", help="Browse and export scraped businesses")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Create a default configuration file."""
    path = state.get("config_path") or Path("configs/app.yaml")

    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists[/yellow] (use --force to overwrite)")
        raise typer.Exit(1)

    _create_default_app_config(path)

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - configuration written![/bold green]\n\n"
        f"Created: [cyan]{path}[/cyan]\n\n"
        "Next steps:\n"
        "  1. Point [cyan]api.base_url[/cyan] at your scraper (or set MAPLEADS_API_URL)\n"
        "  2. Check the service: [yellow]mapleads ping[/yellow]\n"
        "  3. Start a job: [yellow]mapleads search \"coffee shop\" Austin[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


def _create_default_app_config(path: Path) -> None:
    """Write the default app.yaml configuration."""
    default_config = """\
# mapleads Configuration

# Scraper API
api:
  base_url: ${MAPLEADS_API_URL:-https://map-scraper-backend.onrender.com/api}
  # Per-request timeout in seconds; leave unset to wait indefinitely
  timeout_seconds: null

# Job status polling
polling:
  interval_seconds: 1.0
  status_retries: 0
  refresh_results_on_tick: false

# Business listing
results:
  default_page: 1
  default_limit: 50

# Logging settings
logging:
  level: INFO
  file: null
  json_format: true
  rich_console: true
"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(default_config, encoding="utf-8")


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
