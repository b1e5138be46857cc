"""Main CLI entry point for ledgermatch."""

import typer
from rich.console import Console

from ledgermatch import __version__
from ledgermatch.matching.cli import matching_cli
from ledgermatch.matching.metrics import start_metrics_server
from ledgermatch.storage.database import init_db
from ledgermatch.utils.config import get_settings
from ledgermatch.utils.logging import configure_logging

app = typer.Typer(
    name="ledgermatch",
    help="🔗 Similarity matching for duplicate documents and bank reconciliation",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]ledgermatch[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """
    ledgermatch - find duplicate documents and match bank transactions.

    Configuration comes from LEDGERMATCH_* environment variables or a .env file.
    """
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs,
        dev_mode=settings.debug,
    )

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    init_db(settings.database_url)

    if settings.prometheus_enabled:
        start_metrics_server(settings.metrics_port)


# Matching commands live in the matching package and are exposed at the top level.
app.command()(matching_cli.load)
app.command()(matching_cli.duplicates)
app.command()(matching_cli.reconcile)
app.command()(matching_cli.confirm)
app.command()(matching_cli.history)


if __name__ == "__main__":
    app()
