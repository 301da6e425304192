"""``prelpack inspect ARCHIVE`` — list what an archive contains.

Reads the properties file entry and the image layout's ``index.json``
straight from the compressed tar without extracting it.
"""

from __future__ import annotations

import tarfile
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from prelpack.config import PackerConfig
from prelpack.models.oci import OCI_INDEX_FILE, ImageIndex

console = Console()


def _member(tar: tarfile.TarFile, name: str) -> tarfile.TarInfo | None:
    for candidate in (f"./{name}", name):
        try:
            return tar.getmember(candidate)
        except KeyError:
            continue
    return None


def read_archive_summary(
    archive: Path, properties_file_name: str = "props"
) -> tuple[int | None, ImageIndex | None]:
    """Return ``(properties size, image index)`` for an archive.

    Either element is None when the archive lacks that entry.
    """
    with tarfile.open(archive, "r:gz") as tar:
        props = _member(tar, properties_file_name)
        index_member = _member(tar, OCI_INDEX_FILE)
        index = None
        if index_member is not None:
            fh = tar.extractfile(index_member)
            if fh is not None:
                with fh:
                    index = ImageIndex.model_validate_json(fh.read())
    return (props.size if props is not None else None), index


def inspect_cmd(
    archive: Path = typer.Argument(
        ...,
        help="Archive produced by 'prelpack pack'.",
    ),
) -> None:
    """Show the properties file and the images stored in ARCHIVE."""
    if not archive.exists():
        console.print(f"[bold red]Archive not found:[/bold red] {archive}")
        raise typer.Exit(code=1)

    config = PackerConfig()
    try:
        props_size, index = read_archive_summary(archive, config.properties_file_name)
    except (OSError, tarfile.TarError, ValidationError) as exc:
        console.print(f"[bold red]Cannot read archive:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if props_size is None:
        console.print(
            f"[yellow]No '{config.properties_file_name}' entry in archive.[/yellow]"
        )
    else:
        console.print(
            f"[bold]Properties file:[/bold] {config.properties_file_name} "
            f"({props_size} bytes)"
        )

    if index is None or not index.manifests:
        console.print("[dim]No images stored.[/dim]")
        return

    table = Table(title=f"Images in {archive.name}")
    table.add_column("Reference", style="cyan")
    table.add_column("Digest", style="green")
    table.add_column("Media Type")
    table.add_column("Size", justify="right")

    for desc in index.manifests:
        table.add_row(
            desc.ref_name or "-",
            desc.digest[:19],
            desc.media_type,
            str(desc.size),
        )

    console.print(table)
