"""``prelpack pack PROPS ARCHIVE`` — build a relocatable archive.

PROPS is a path, a ``file://`` or ``http(s)://`` URL, or ``-`` to read
the properties file from standard input.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from prelpack.config import PackerConfig
from prelpack.core.packer import Packer

console = Console()


def pack_cmd(
    props: str = typer.Argument(
        ...,
        help="Properties file path or URL, or '-' for standard input.",
    ),
    archive: Path = typer.Argument(
        ...,
        help="Destination archive path (.tgz).",
    ),
    exclusive: bool = typer.Option(
        False,
        "--exclusive",
        "-x",
        help="Fail if the destination archive already exists.",
    ),
    remove_partial: bool = typer.Option(
        False,
        "--remove-partial",
        help="Delete a partially written archive if writing fails.",
    ),
    insecure_registry: list[str] = typer.Option(
        [],
        "--insecure-registry",
        help="Registry host to reach over plain HTTP (repeatable).",
    ),
) -> None:
    """Pack a properties file and the images it references into ARCHIVE."""
    base = PackerConfig()
    config = base.model_copy(
        update={
            "exclusive_create": exclusive or base.exclusive_create,
            "remove_partial_archive": remove_partial or base.remove_partial_archive,
            "insecure_registries": [*base.insecure_registries, *insecure_registry],
        }
    )

    packer = Packer(config, console=console)
    try:
        result = packer.pack(props, archive)
    except Exception as exc:
        console.print(f"[bold red]Pack failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    images = [f"  {ref.short}" for ref in result.images] or ["  [dim](none)[/dim]"]
    console.print()
    console.print(
        Panel(
            "\n".join([
                "[bold green]Archive created![/bold green]",
                "",
                f"[bold]Archive:[/bold]  {result.archive_path} ({result.archive_size} bytes)",
                f"[bold]Source:[/bold]   {result.source.describe()} ({result.payload_size} bytes)",
                f"[bold]Images:[/bold]   {len(result.images)}",
                *images,
            ]),
            title="[bold]prelpack[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
