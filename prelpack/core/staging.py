"""Staging area manager — one exclusive temp directory per pipeline run.

The staging directory is acquired before any other work and released on
every exit path.  Use ``staging_area()`` rather than pairing ``acquire``
and ``release`` by hand.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from prelpack.errors import StagingError
from prelpack.models.results import StagingDir

logger = logging.getLogger(__name__)


def acquire(
    prefix: str = "prel-packer",
    *,
    root: Path | None = None,
    mode: int = 0o755,
    properties_file_name: str = "props",
) -> StagingDir:
    """Create a uniquely named, writable staging directory.

    ``tempfile.mkdtemp`` guarantees the name is unique even when several
    runs share the same temp root.  Raises ``StagingError`` if creation or
    the permission step fails; a directory created before a failed
    permission step is removed again.
    """
    try:
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=root))
    except OSError as exc:
        raise StagingError(f"Error creating staging directory: {exc}") from exc

    try:
        os.chmod(path, mode)
    except OSError as exc:
        shutil.rmtree(path, ignore_errors=True)
        raise StagingError(
            f"Error setting permissions on staging directory {path}: {exc}"
        ) from exc

    logger.debug("Acquired staging directory %s", path)
    return StagingDir(path=path, properties_file_name=properties_file_name)


def release(staging: StagingDir) -> None:
    """Recursively remove the staging directory.

    An already-absent directory is not an error.
    """
    try:
        shutil.rmtree(staging.path)
    except FileNotFoundError:
        pass
    logger.debug("Released staging directory %s", staging.path)


@contextmanager
def staging_area(
    prefix: str = "prel-packer",
    *,
    root: Path | None = None,
    mode: int = 0o755,
    properties_file_name: str = "props",
) -> Iterator[StagingDir]:
    """Scoped staging directory: acquired on enter, released on any exit."""
    staging = acquire(
        prefix, root=root, mode=mode, properties_file_name=properties_file_name
    )
    try:
        yield staging
    finally:
        release(staging)
