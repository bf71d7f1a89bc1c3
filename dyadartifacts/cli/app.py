"""Main Typer application — imports and registers all CLI commands.

Entry point: ``dyadartifacts`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer

from dyadartifacts.cli.commands.publish import bundle_cli_cmd, snapshot_cmd
from dyadartifacts.cli.commands.query import (
    attribution_cmd,
    fetch_cmd,
    list_cmd,
    path_cmd,
)
from dyadartifacts.config import get_settings

app = typer.Typer(
    name="dyadartifacts",
    help="dyadartifacts: publish and locate content-addressed Dyad artifacts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to DYADARTIFACTS_LOG_LEVEL or INFO).",
    ),
) -> None:
    """Configure logging for every subcommand."""
    level = (log_level or get_settings().log_level).upper()
    if level not in logging.getLevelNamesMapping():
        raise typer.BadParameter(
            f"unknown level {level!r}; use DEBUG, INFO, WARNING, ERROR or CRITICAL",
            param_hint="--log-level",
        )
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


# Register subcommands
app.command(name="bundle-cli", help="Bundle the Dyad CLI at a revision and register it.")(bundle_cli_cmd)
app.command(name="snapshot", help="Snapshot the source repository at a revision and register it.")(snapshot_cmd)
app.command(name="list", help="List artifacts bound in the manifest.")(list_cmd)
app.command(name="path", help="Print the local path of an artifact (fetching it if needed).")(path_cmd)
app.command(name="attribution", help="Print an artifact's ATTRIBUTION.md.")(attribution_cmd)
app.command(name="fetch", help="Install all eager (optionally lazy) artifacts.")(fetch_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
