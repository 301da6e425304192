"""OCI image-layout and registry manifest models.

Field names follow the OCI image spec JSON (``mediaType``,
``schemaVersion``); Python attributes are snake_case with aliases.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

OCI_LAYOUT_VERSION = "1.0.0"
OCI_LAYOUT_FILE = "oci-layout"
OCI_INDEX_FILE = "index.json"
OCI_BLOBS_DIR = "blobs"
REF_NAME_ANNOTATION = "org.opencontainers.image.ref.name"

OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
OCI_INDEX = "application/vnd.oci.image.index.v1+json"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"

INDEX_MEDIA_TYPES = frozenset({OCI_INDEX, DOCKER_MANIFEST_LIST})
MANIFEST_MEDIA_TYPES = (OCI_MANIFEST, OCI_INDEX, DOCKER_MANIFEST, DOCKER_MANIFEST_LIST)

_DIGEST_RE = re.compile(r"^[a-z0-9]+(?:[+._-][a-z0-9]+)*:[a-zA-Z0-9=_-]+$")


def split_digest(digest: str) -> tuple[str, str]:
    """Split ``algo:hex`` into its parts, rejecting malformed digests."""
    if not _DIGEST_RE.match(digest):
        raise ValueError(f"Invalid digest: {digest!r}")
    algorithm, _, encoded = digest.partition(":")
    return algorithm, encoded


class Descriptor(BaseModel):
    """An OCI content descriptor."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    media_type: str = Field(alias="mediaType")
    digest: str
    size: int
    urls: list[str] | None = None
    annotations: dict[str, str] | None = None
    platform: dict[str, Any] | None = None

    @field_validator("digest")
    @classmethod
    def _check_digest(cls, v: str) -> str:
        split_digest(v)
        return v

    @property
    def ref_name(self) -> str | None:
        return (self.annotations or {}).get(REF_NAME_ANNOTATION)

    @property
    def is_index(self) -> bool:
        return self.media_type in INDEX_MEDIA_TYPES

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ImageIndex(BaseModel):
    """The layout's ``index.json`` (also the shape of a registry index)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    schema_version: int = Field(default=2, alias="schemaVersion")
    media_type: str = Field(default=OCI_INDEX, alias="mediaType")
    manifests: list[Descriptor] = Field(default_factory=list)


class ImageManifest(BaseModel):
    """A single-platform image manifest: one config plus its layers."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    schema_version: int = Field(default=2, alias="schemaVersion")
    media_type: str | None = Field(default=None, alias="mediaType")
    config: Descriptor
    layers: list[Descriptor] = Field(default_factory=list)
