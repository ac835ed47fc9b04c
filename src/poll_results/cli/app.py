"""Typer CLI root application."""

import typer

from poll_results.core.config import get_settings
from poll_results.core.logging import setup_logging

app = typer.Typer(name="poll-results", help="Poll results and demographic breakdown CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, json_logs=settings.log_json)


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from poll_results.cli.polls_cmd import polls_app
    from poll_results.cli.results_cmd import breakdown, results

    app.add_typer(polls_app, name="polls", help="Poll, vote, like and report commands")
    app.command("breakdown")(breakdown)
    app.command("results")(results)


_register_subcommands()
