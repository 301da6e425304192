"""Container image reference parsing and normalization.

Follows the Docker distribution reference grammar::

    reference := [domain '/'] path [':' tag] ['@' digest]

The first path component is a domain only if it contains ``.`` or ``:``,
is ``localhost``, or contains upper-case characters.  Otherwise the
reference lives on Docker Hub (``docker.io``), and single-component Hub
names get the ``library/`` prefix.
"""

from __future__ import annotations

import re

from prelpack.errors import InvalidReferenceError
from prelpack.models.images import (
    DEFAULT_REGISTRY,
    DEFAULT_TAG,
    OFFICIAL_REPO_PREFIX,
    ImageRef,
)

_LEGACY_REGISTRY = "index.docker.io"

_PATH_COMPONENT = r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*"
_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_DOMAIN = rf"{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*(?::[0-9]+)?"
_TAG = r"[\w][\w.-]{0,127}"
_DIGEST = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9A-Fa-f]{32,}"

_REFERENCE_RE = re.compile(
    rf"^(?:(?P<domain>{_DOMAIN})/)?"
    rf"(?P<path>{_PATH_COMPONENT}(?:/{_PATH_COMPONENT})*)"
    rf"(?::(?P<tag>{_TAG}))?"
    rf"(?:@(?P<digest>{_DIGEST}))?$"
)

_DIGEST_HEX_LENGTHS = {"sha256": 64, "sha512": 128}

# Repository names are capped by the registry API
_MAX_NAME_LENGTH = 255


def _is_domain(component: str) -> bool:
    return (
        "." in component
        or ":" in component
        or component == "localhost"
        or component.lower() != component
    )


def _split(value: str) -> tuple[str | None, str, str | None, str | None]:
    """Return ``(domain, path, tag, digest)``; domain is None when implicit."""
    match = _REFERENCE_RE.match(value)
    if not match:
        raise InvalidReferenceError(f"Invalid image reference: {value!r}")

    domain = match.group("domain")
    path = match.group("path")
    if domain is not None and not _is_domain(domain):
        path = f"{domain}/{path}"
        domain = None

    if len(path) + len(domain or "") + 1 > _MAX_NAME_LENGTH:
        raise InvalidReferenceError(f"Repository name too long: {value!r}")

    digest = match.group("digest")
    if digest is not None:
        algorithm, _, hex_part = digest.partition(":")
        expected = _DIGEST_HEX_LENGTHS.get(algorithm)
        if expected is not None and len(hex_part) != expected:
            raise InvalidReferenceError(
                f"Invalid {algorithm} digest length in reference: {value!r}"
            )

    return domain, path, match.group("tag"), digest


def _looks_like_plain_value(path: str, tag: str | None) -> bool:
    # "db.example.com:5432", "localhost:8080", "12:30", "16:9"
    return (
        tag is not None
        and tag.isdigit()
        and "/" not in path
        and ("." in path or path == "localhost" or path.isdigit())
    )


def _normalize(
    domain: str | None, path: str, tag: str | None, digest: str | None
) -> ImageRef:
    registry = domain or DEFAULT_REGISTRY
    if registry == _LEGACY_REGISTRY:
        registry = DEFAULT_REGISTRY
    if registry == DEFAULT_REGISTRY and "/" not in path:
        path = OFFICIAL_REPO_PREFIX + path

    if tag is None and digest is None:
        tag = DEFAULT_TAG

    return ImageRef(registry=registry, repository=path, tag=tag, digest=digest)


def parse_reference(value: str) -> ImageRef:
    """Parse and normalize *value* into an ``ImageRef``.

    References with neither tag nor digest get the ``latest`` tag.

    Raises
    ------
    InvalidReferenceError
        If *value* does not match the reference grammar.
    """
    value = value.strip()
    if not value:
        raise InvalidReferenceError("Empty image reference")
    return _normalize(*_split(value))


def explicit_reference(value: str) -> ImageRef | None:
    """Parse *value* if it is unmistakably an image reference, else ``None``.

    A bare word such as ``true`` or ``nginx`` matches the grammar too, so
    only references carrying a tag, a digest, or a registry domain count.
    Host:port pairs and numeric pairs like ``12:30`` do not.
    """
    try:
        domain, path, tag, digest = _split(value.strip())
    except InvalidReferenceError:
        return None
    if domain is None and digest is None:
        if tag is None or _looks_like_plain_value(path, tag):
            return None
    return _normalize(domain, path, tag, digest)


def is_explicit_reference(value: str) -> bool:
    """Whether *value* is unmistakably an image reference."""
    return explicit_reference(value) is not None
