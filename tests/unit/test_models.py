"""Tests for prelpack data models — source union, image refs, OCI descriptors."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from prelpack.models import (
    Descriptor,
    ImageRef,
    LocatedSource,
    PropsSource,
    StdinSource,
)
from prelpack.models.oci import REF_NAME_ANNOTATION, split_digest

DIGEST = "sha256:" + "d" * 64


class TestPropsSource:
    adapter = TypeAdapter(PropsSource)

    def test_discriminates_stdin(self):
        assert self.adapter.validate_python({"kind": "stdin"}) == StdinSource()

    def test_discriminates_location(self):
        src = self.adapter.validate_python({"kind": "location", "location": "a.props"})
        assert src == LocatedSource(location="a.props")

    def test_location_must_be_non_empty(self):
        with pytest.raises(ValidationError):
            LocatedSource(location="")

    def test_sources_are_frozen(self):
        src = LocatedSource(location="a.props")
        with pytest.raises(ValidationError):
            src.location = "b.props"  # type: ignore[misc]

    def test_describe(self):
        assert StdinSource().describe() == "<stdin>"
        assert LocatedSource(location="a.props").describe() == "a.props"


class TestImageRef:
    def test_str_is_canonical(self):
        ref = ImageRef(registry="docker.io", repository="library/busybox", tag="latest")
        assert str(ref) == "docker.io/library/busybox:latest"

    def test_short_keeps_non_hub_registry(self):
        ref = ImageRef(registry="ghcr.io", repository="org/app", tag="1")
        assert ref.short == "ghcr.io/org/app:1"

    def test_short_keeps_non_library_hub_namespace(self):
        ref = ImageRef(registry="docker.io", repository="bitnami/redis", tag="7")
        assert ref.short == "bitnami/redis:7"

    def test_reference_falls_back_to_latest(self):
        assert ImageRef(registry="r.io", repository="a").reference == "latest"


class TestDescriptor:
    def test_alias_round_trip(self):
        desc = Descriptor.model_validate(
            {
                "mediaType": "application/vnd.oci.image.manifest.v1+json",
                "digest": DIGEST,
                "size": 10,
                "annotations": {REF_NAME_ANNOTATION: "docker.io/library/busybox:latest"},
            }
        )
        assert desc.ref_name == "docker.io/library/busybox:latest"
        assert desc.to_json()["mediaType"] == desc.media_type
        assert "urls" not in desc.to_json()

    def test_rejects_bad_digest(self):
        with pytest.raises(ValidationError):
            Descriptor(media_type="x", digest="not-a-digest", size=1)

    def test_split_digest(self):
        assert split_digest(DIGEST) == ("sha256", "d" * 64)
