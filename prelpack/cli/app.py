"""Main Typer application — imports and registers all CLI commands.

Entry point: ``prelpack`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from prelpack.cli.commands.inspect_cmd import inspect_cmd
from prelpack.cli.commands.pack import pack_cmd
from prelpack.config import PackerConfig

app = typer.Typer(
    name="prelpack",
    help="prelpack: pack a properties file and its container images into one archive.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to PRELPACK_LOG_LEVEL or INFO).",
    ),
) -> None:
    """Configure logging for every subcommand."""
    level = (log_level or PackerConfig().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# Register subcommands
app.command(name="pack", help="Pack a properties file and its images.")(pack_cmd)
app.command(name="inspect", help="List the contents of a packed archive.")(inspect_cmd)


@app.command(name="version", help="Show the prelpack version.")
def version_cmd() -> None:
    """Print the installed prelpack version."""
    from prelpack import __version__

    typer.echo(__version__)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
