"""Exception hierarchy for the archive-assembly pipeline.

Every failure the pipeline raises derives from ``PrelpackError``.  The
IO-flavoured errors also derive from ``OSError`` so callers that only
care about "an IO error happened" can catch them as such.  Failures from
the location reader are not wrapped; they propagate unchanged.
"""

from __future__ import annotations


class PrelpackError(Exception):
    """Base class for all prelpack errors."""


# ---------------------------------------------------------------------------
# Staging and input
# ---------------------------------------------------------------------------


class StagingError(PrelpackError, OSError):
    """Raised when the staging directory cannot be created or prepared."""


class InputError(PrelpackError, OSError):
    """Raised when standard input cannot be read to completion."""


class PersistenceError(PrelpackError, OSError):
    """Raised when the payload cannot be written into the staging directory."""


# ---------------------------------------------------------------------------
# Materialization
# ---------------------------------------------------------------------------


class ParseError(PrelpackError):
    """Raised when image references cannot be extracted from a payload."""


class PropertiesParseError(ParseError):
    """Raised when the properties payload is not a readable properties file."""


class InvalidReferenceError(ParseError, ValueError):
    """Raised when a string is not a valid container image reference."""


class StoreError(PrelpackError):
    """Raised when images cannot be stored into the image layout."""


class ImageStoreError(StoreError):
    """Raised when storing a specific image fails."""


class RegistryError(StoreError):
    """Raised when a registry request fails or returns unexpected content."""


class DigestMismatchError(StoreError):
    """Raised when fetched content does not hash to its expected digest."""


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


class ArchiveError(PrelpackError, OSError):
    """Base class for archive creation and write failures."""


class ArchiveCreateError(ArchiveError):
    """Raised when the destination archive file cannot be created."""


class ArchiveWriteError(ArchiveError):
    """Raised when streaming the tar/gzip content to the destination fails.

    The destination file may exist in a truncated state afterwards.
    """
