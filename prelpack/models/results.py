"""Pipeline result and staging handle models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from prelpack.models.images import ImageRef
from prelpack.models.sources import PropsSource


class StagingDir(BaseModel):
    """Handle for the ephemeral staging directory of one pipeline run."""

    model_config = ConfigDict(frozen=True)

    path: Path
    properties_file_name: str = "props"

    @property
    def props_path(self) -> Path:
        return self.path / self.properties_file_name


class PackResult(BaseModel):
    """Summary of a successful pack run."""

    model_config = ConfigDict(frozen=True)

    archive_path: Path
    source: PropsSource
    images: tuple[ImageRef, ...] = ()
    payload_size: int = 0
    archive_size: int = 0
