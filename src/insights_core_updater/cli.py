"""Command line entry point: ``insights-core-updater``.

Runs one check-and-update cycle and exits with 0 on success or no-op and
1 on failure.
"""

from __future__ import annotations

import asyncio
import json

import typer
from pydantic import ValidationError

from insights_core_updater import __version__
from insights_core_updater.config import Settings, get_settings
from insights_core_updater.logging import get_logger, setup_logging
from insights_core_updater.models import UpdateResult, UpdateStatus
from insights_core_updater.updater import CoreUpdater

app = typer.Typer(
    name="insights-core-updater",
    help="Download a new Insights Core egg when the published one changes.",
    add_completion=False,
)

_SAVE_STAGES = frozenset({"save_core", "save_signature", "save_cache"})


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"insights-core-updater {__version__}")
        raise typer.Exit()


def _report(result: UpdateResult) -> None:
    """Print the user-facing outcome of a run."""
    if result.status is UpdateStatus.NOT_REGISTERED:
        typer.echo("This host is not registered, nothing to do.")
    elif result.status is UpdateStatus.NO_UPDATE:
        typer.echo("Nothing to do.")
    elif result.status is UpdateStatus.AVAILABLE:
        typer.echo("Update available.")
    elif result.status is UpdateStatus.UPDATED:
        typer.echo(f"New Core saved at {result.core_path}.")
    elif result.failed_stage in _SAVE_STAGES:
        typer.echo("Core could not be saved.", err=True)
    else:
        typer.echo("Core could not be fetched.", err=True)


async def _execute(settings: Settings, check: bool) -> UpdateResult:
    updater = CoreUpdater(settings)
    try:
        if check:
            return await updater.check()
        return await updater.run()
    finally:
        await updater.close()


@app.command()
def main(
    check: bool = typer.Option(
        False, "--check", help="Only report whether an update is available."
    ),
    debug: bool = typer.Option(False, "--debug", help="Mirror log output to the console."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Check for a new Insights Core egg and download it if it changed."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if debug:
        settings = settings.model_copy(update={"debug": True})

    setup_logging(settings)
    log = get_logger("insights_core_updater.cli")
    log.debug("updater_started", version=__version__, check=check)

    try:
        result = asyncio.run(_execute(settings, check))
    except Exception as exc:
        log.exception("updater_crashed")
        typer.echo("Core could not be fetched.", err=True)
        raise typer.Exit(code=1) from exc

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _report(result)
    log.debug("updater_finished", status=result.status.value)
    raise typer.Exit(code=result.exit_code)


def run() -> None:
    """Run the application."""
    app()
