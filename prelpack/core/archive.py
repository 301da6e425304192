"""Archive writer — streams the staging tree into a gzip-compressed tar.

The staging directory is added under the name ``.`` so the archive's
top-level entries are the staging directory's children and the root
directory entry itself is present.  Nothing is buffered in memory; the
tar stream is written straight into the destination file.
"""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path

from rich.console import Console

from prelpack.errors import ArchiveCreateError, ArchiveWriteError

logger = logging.getLogger(__name__)


def _normalize_owner(info: tarfile.TarInfo) -> tarfile.TarInfo:
    """Strip host ownership so the archive extracts the same anywhere."""
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    return info


def write_archive(
    staging_dir: Path,
    dest: Path,
    *,
    exclusive: bool = False,
    remove_partial: bool = False,
    console: Console | None = None,
) -> int:
    """Write the full tree under *staging_dir* to *dest* as a ``.tgz``.

    Parameters
    ----------
    staging_dir:
        Directory to archive; becomes ``.`` in the archive.
    dest:
        Destination file.  Truncated if it exists, unless *exclusive*.
    exclusive:
        Fail with ``ArchiveCreateError`` if *dest* already exists.
    remove_partial:
        Delete *dest* if streaming fails part way.  By default the
        partial file is left behind as a visible sign of the failure.
    console:
        Where the operator-facing progress line goes.

    Returns
    -------
    int:
        Size of the written archive in bytes.
    """
    dest = Path(dest)
    (console or Console()).print(
        f"Creating zipped archive {dest}", markup=False, highlight=False
    )

    try:
        out = open(dest, "xb" if exclusive else "wb")
    except OSError as exc:
        raise ArchiveCreateError(f"Error creating archive file: {exc}") from exc

    try:
        with out, tarfile.open(fileobj=out, mode="w|gz") as tar:
            tar.add(staging_dir, arcname=".", filter=_normalize_owner)
    except (OSError, tarfile.TarError) as exc:
        if remove_partial:
            dest.unlink(missing_ok=True)
        else:
            logger.warning("Partial archive left at %s", dest)
        raise ArchiveWriteError(f"Error writing archive {dest}: {exc}") from exc

    size = dest.stat().st_size
    logger.info("Wrote archive %s (%d bytes)", dest, size)
    return size
