"""OCI image-layout store.

Layout written at the store root::

    oci-layout       {"imageLayoutVersion": "1.0.0"}
    index.json       one descriptor per image, annotated with its ref name
    blobs/<algo>/<hex>

Blobs are content addressed, so a blob shared by several images is
fetched and stored once.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

import requests

from prelpack.core.registry import FetchedManifest, RegistryClient
from prelpack.errors import ImageStoreError, StoreError
from prelpack.models.images import ImageRef
from prelpack.models.oci import (
    DOCKER_MANIFEST,
    INDEX_MEDIA_TYPES,
    OCI_BLOBS_DIR,
    OCI_INDEX,
    OCI_INDEX_FILE,
    OCI_LAYOUT_FILE,
    OCI_LAYOUT_VERSION,
    OCI_MANIFEST,
    REF_NAME_ANNOTATION,
    Descriptor,
    ImageIndex,
    ImageManifest,
    split_digest,
)

logger = logging.getLogger(__name__)

_NON_DISTRIBUTABLE_MARKERS = ("nondistributable", "foreign")


def _json_bytes(obj: object) -> bytes:
    return json.dumps(obj, indent=2, sort_keys=True).encode("utf-8") + b"\n"


class OCILayoutStore:
    """Writes pulled images into an OCI image layout.

    Parameters
    ----------
    root:
        Layout root directory.  Created if missing.
    client:
        Registry client used to pull manifests and blobs.
    """

    def __init__(self, root: Path, client: RegistryClient) -> None:
        self._root = Path(root)
        self._client = client

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Layout files
    # ------------------------------------------------------------------

    def init_layout(self) -> None:
        """Create the ``oci-layout`` marker and the blobs directory."""
        (self._root / OCI_BLOBS_DIR).mkdir(parents=True, exist_ok=True)
        (self._root / OCI_LAYOUT_FILE).write_bytes(
            _json_bytes({"imageLayoutVersion": OCI_LAYOUT_VERSION})
        )

    def write_index(self, descriptors: Iterable[Descriptor]) -> None:
        index = ImageIndex(
            manifests=sorted(descriptors, key=lambda d: d.ref_name or d.digest)
        )
        (self._root / OCI_INDEX_FILE).write_bytes(
            _json_bytes(index.model_dump(by_alias=True, exclude_none=True))
        )

    def blob_path(self, digest: str) -> Path:
        algorithm, encoded = split_digest(digest)
        return self._root / OCI_BLOBS_DIR / algorithm / encoded

    def has_blob(self, digest: str) -> bool:
        return self.blob_path(digest).is_file()

    def write_blob(self, data: bytes, digest: str) -> None:
        path = self.blob_path(digest)
        if path.exists():
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    # ------------------------------------------------------------------
    # Pulling
    # ------------------------------------------------------------------

    def _store_blob(self, ref: ImageRef, descriptor: Descriptor) -> None:
        if any(m in descriptor.media_type for m in _NON_DISTRIBUTABLE_MARKERS):
            logger.info(
                "Skipping non-distributable layer %s of %s", descriptor.digest, ref
            )
            return
        if self.has_blob(descriptor.digest):
            return
        self._client.fetch_blob(
            ref, descriptor.digest, self.blob_path(descriptor.digest)
        )

    def _store_manifest(self, ref: ImageRef, fetched: FetchedManifest) -> str:
        """Store *fetched* and, recursively, everything it points at.

        Returns the manifest's media type.
        """
        try:
            body = json.loads(fetched.data)
            if not isinstance(body, dict):
                raise ValueError("manifest is not a JSON object")
            is_index = _is_index(fetched.media_type, body)
            if is_index:
                children = ImageIndex.model_validate(body).manifests
            else:
                manifest = ImageManifest.model_validate(body)
        except ValueError as exc:
            raise ImageStoreError(
                f"Unreadable manifest {fetched.digest} for {ref}: {exc}"
            ) from exc

        if is_index:
            for child in children:
                if not self.has_blob(child.digest):
                    self._store_manifest(
                        ref, self._client.get_manifest(ref, child.digest)
                    )
        else:
            self._store_blob(ref, manifest.config)
            for layer in manifest.layers:
                self._store_blob(ref, layer)

        # Written last so a present manifest implies its content is present
        self.write_blob(fetched.data, fetched.digest)
        return (
            fetched.media_type
            or body.get("mediaType")
            or (OCI_INDEX if is_index else OCI_MANIFEST)
        )

    def store_image(self, ref: ImageRef) -> Descriptor:
        """Pull *ref* into the layout and return its index descriptor."""
        logger.info("Storing image %s", ref)
        try:
            fetched = self._client.get_manifest(ref)
            media_type = self._store_manifest(ref, fetched)
        except StoreError:
            raise
        except (requests.RequestException, OSError, ValueError) as exc:
            raise ImageStoreError(f"Error storing image {ref}: {exc}") from exc

        return Descriptor(
            media_type=media_type,
            digest=fetched.digest,
            size=len(fetched.data),
            annotations={REF_NAME_ANNOTATION: ref.canonical},
        )


def _is_index(media_type: str, body: dict) -> bool:
    if media_type in INDEX_MEDIA_TYPES:
        return True
    if media_type in (OCI_MANIFEST, DOCKER_MANIFEST):
        return False
    return "manifests" in body


def store_images(
    root: Path, refs: Iterable[ImageRef], client: RegistryClient
) -> list[Descriptor]:
    """Write an OCI layout at *root* containing every image in *refs*.

    With no references an empty but valid layout is written.
    """
    store = OCILayoutStore(root, client)
    store.init_layout()
    descriptors = [store.store_image(ref) for ref in sorted(refs)]
    store.write_index(descriptors)
    logger.info("Stored %d image(s) in %s", len(descriptors), root)
    return descriptors


def read_index(root: Path) -> list[Descriptor]:
    """Return the descriptors listed in the layout's ``index.json``."""
    data = (Path(root) / OCI_INDEX_FILE).read_bytes()
    return ImageIndex.model_validate_json(data).manifests
