"""Image materializer — turns a properties payload into stored images.

The pipeline depends only on the ``ImageMaterializer`` protocol, so tests
and alternative stores can stand in for the registry-backed default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from prelpack.core import ocilayout, properties
from prelpack.core.registry import RegistryClient
from prelpack.models.images import ImageRef


@runtime_checkable
class ImageMaterializer(Protocol):
    """Capability the pipeline uses to populate the image layout."""

    def extract_image_references(self, payload: bytes) -> set[ImageRef]:
        """Return the image references named by *payload*.

        Raises ``ParseError`` if the payload cannot be parsed.
        """
        ...

    def store_images(self, staging_dir: Path, refs: set[ImageRef]) -> None:
        """Write *refs* into *staging_dir* as an image layout.

        Raises ``StoreError`` on any failure.
        """
        ...


class RegistryMaterializer:
    """Default materializer: properties parser plus registry-backed OCI layout."""

    def __init__(self, client: RegistryClient | None = None) -> None:
        self.client = client or RegistryClient()

    def extract_image_references(self, payload: bytes) -> set[ImageRef]:
        return properties.images(payload)

    def store_images(self, staging_dir: Path, refs: set[ImageRef]) -> None:
        ocilayout.store_images(staging_dir, refs, self.client)
