"""Container image reference model."""

from __future__ import annotations

from functools import total_ordering

from pydantic import BaseModel, ConfigDict

DEFAULT_REGISTRY = "docker.io"
DEFAULT_TAG = "latest"
OFFICIAL_REPO_PREFIX = "library/"


@total_ordering
class ImageRef(BaseModel):
    """A fully normalized container image reference.

    Always carries a registry and repository, and at least one of tag or
    digest.  Build instances with ``prelpack.core.reference.parse_reference``
    rather than directly.
    """

    model_config = ConfigDict(frozen=True)

    registry: str
    repository: str
    tag: str | None = None
    digest: str | None = None  # "sha256:<hex>"

    @property
    def name(self) -> str:
        """Registry-qualified repository name, without tag or digest."""
        return f"{self.registry}/{self.repository}"

    @property
    def reference(self) -> str:
        """The manifest reference to request: digest when pinned, else tag."""
        return self.digest or self.tag or DEFAULT_TAG

    @property
    def canonical(self) -> str:
        """Fully qualified string form, e.g. ``docker.io/library/busybox:latest``."""
        out = self.name
        if self.tag:
            out += f":{self.tag}"
        if self.digest:
            out += f"@{self.digest}"
        return out

    @property
    def short(self) -> str:
        """Familiar form with the Docker Hub defaults stripped."""
        out = self.canonical
        if self.registry == DEFAULT_REGISTRY:
            out = out.removeprefix(f"{DEFAULT_REGISTRY}/")
            out = out.removeprefix(OFFICIAL_REPO_PREFIX)
        return out

    def __str__(self) -> str:
        return self.canonical

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ImageRef):
            return NotImplemented
        return self.canonical < other.canonical
