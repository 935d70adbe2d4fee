"""Command-line interface for Discord Advent Calendar Bot using Typer."""

import json
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .config import Config, ConfigurationError
from .dates import MalformedDateError, parse_day
from .logging_config import setup_structured_logging
from .models import RunOptions
from .runner import run_once

app = typer.Typer(
    name="adventcalendar-bot",
    help="Announce today's advent calendar entries to a Discord webhook",
    add_completion=False,
)


@app.callback()
def main(
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Logging level")
    ] = None,
) -> None:
    """Configure logging before any command runs."""
    setup_structured_logging(log_level or os.getenv("LOG_LEVEL", "INFO"))


@app.command()
def run(
    date: Annotated[
        Optional[str],
        typer.Option("--date", help="Reference day as YYYY-MM-DD (default: now)"),
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Log messages instead of posting them")
    ] = False,
    feed_file: Annotated[
        Optional[Path],
        typer.Option(
            "--feed-file",
            exists=True,
            dir_okay=False,
            readable=True,
            help="Read the feed from a file instead of RSS_FEED_URL",
        ),
    ] = None,
) -> None:
    """Run the announcement job once and print the result as JSON."""
    config = Config()
    if not config.webhook_url:
        typer.echo("✗ Error: DISCORD_WEBHOOK_URL is required", err=True)
        raise typer.Exit(1)

    try:
        now = parse_day(date) if date else datetime.now(UTC)
    except MalformedDateError as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)

    options = RunOptions(
        feed_text_override=(
            feed_file.read_text(encoding="utf-8") if feed_file else None
        ),
        dry_run=dry_run or config.dry_run,
    )

    try:
        result = run_once(config.get_bot_config(), now, options)
    except (ConfigurationError, RuntimeError, OSError) as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    app()
