"""Input resolver — obtains the properties payload and persists it.

The source identifier is turned into a ``PropsSource`` exactly once.
``resolve`` then runs exactly one branch: drain standard input, or read
the location through a ``LocationReader``.  Reader failures propagate
unchanged.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

import requests

from prelpack.errors import InputError, PersistenceError
from prelpack.models.results import StagingDir
from prelpack.models.sources import LocatedSource, PropsSource, StdinSource

logger = logging.getLogger(__name__)

STANDARD_INPUT_INDICATOR = "-"


@runtime_checkable
class LocationReader(Protocol):
    """Fetch-and-return-bytes capability for paths and URLs."""

    def read(self, location: str) -> bytes:
        """Return the full content at *location*.

        Implementations raise their own errors (``FileNotFoundError``,
        ``PermissionError``, network errors); callers propagate them.
        """
        ...


class FurlReader:
    """Reads local paths, ``file://`` URLs and ``http(s)://`` URLs.

    Parameters
    ----------
    session:
        ``requests.Session`` used for HTTP(S).  A new one is created if
        not provided.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: float = 60.0,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    def read(self, location: str) -> bytes:
        parsed = urlparse(location)
        scheme = parsed.scheme.lower()

        if scheme in ("http", "https"):
            logger.debug("Fetching %s", location)
            response = self._session.get(location, timeout=self._timeout)
            response.raise_for_status()
            return response.content

        if scheme == "file":
            return Path(unquote(parsed.path)).read_bytes()

        # A single letter "scheme" is a Windows drive, not a URL
        if scheme and len(scheme) > 1:
            raise ValueError(f"Unsupported location scheme {scheme!r}: {location}")

        return Path(location).expanduser().read_bytes()


def parse_source(
    identifier: str, stdin_indicator: str = STANDARD_INPUT_INDICATOR
) -> PropsSource:
    """Map a caller-supplied identifier to a ``PropsSource`` variant.

    Raises
    ------
    InputError
        If *identifier* is empty.
    """
    if not identifier:
        raise InputError("Properties source identifier is empty")
    if identifier == stdin_indicator:
        return StdinSource()
    return LocatedSource(location=identifier)


def _read_stream(stream: BinaryIO) -> bytes:
    try:
        return stream.read()
    except (OSError, ValueError) as exc:
        raise InputError(f"Error reading standard input: {exc}") from exc


def resolve(
    source: PropsSource,
    reader: LocationReader,
    *,
    stdin: BinaryIO | None = None,
) -> bytes:
    """Return the complete properties payload for *source*.

    Parameters
    ----------
    source:
        The resolved source variant.
    reader:
        Used only for ``LocatedSource``.
    stdin:
        Binary stream used for ``StdinSource``.  Defaults to
        ``sys.stdin.buffer``.
    """
    if isinstance(source, StdinSource):
        stream = stdin if stdin is not None else sys.stdin.buffer
        payload = _read_stream(stream)
    else:
        payload = reader.read(source.location)

    logger.info("Resolved %d bytes from %s", len(payload), source.describe())
    return bytes(payload)


def persist_payload(
    staging: StagingDir, payload: bytes, mode: int = 0o666
) -> Path:
    """Write *payload* verbatim into the staging directory.

    The permission bits are applied explicitly so the process umask does
    not change them.  Raises ``PersistenceError`` on failure.
    """
    target = staging.props_path
    try:
        target.write_bytes(payload)
        os.chmod(target, mode)
    except OSError as exc:
        raise PersistenceError(
            f"Error writing properties file {target}: {exc}"
        ) from exc

    logger.debug("Wrote properties file %s (%d bytes)", target, len(payload))
    return target
