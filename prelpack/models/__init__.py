"""prelpack data models — Pydantic v2; value objects are frozen."""

from prelpack.models.images import DEFAULT_REGISTRY, DEFAULT_TAG, ImageRef
from prelpack.models.oci import Descriptor, ImageIndex, ImageManifest
from prelpack.models.results import PackResult, StagingDir
from prelpack.models.sources import LocatedSource, PropsSource, StdinSource

__all__ = [
    # sources
    "PropsSource",
    "StdinSource",
    "LocatedSource",
    # images
    "ImageRef",
    "DEFAULT_REGISTRY",
    "DEFAULT_TAG",
    # oci
    "Descriptor",
    "ImageIndex",
    "ImageManifest",
    # results
    "PackResult",
    "StagingDir",
]
