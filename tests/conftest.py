"""Shared test fixtures for prelpack."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import pytest
import requests

from prelpack.config import PackerConfig
from prelpack.core.registry import RegistryClient
from prelpack.models.images import ImageRef
from prelpack.models.oci import OCI_INDEX, OCI_MANIFEST

TOKEN_REALM = "https://auth.example.test/token"
DOCKER_HUB_HOST = "registry-1.docker.io"

BUSYBOX_PROPS = b"image=docker.io/library/busybox:latest\n"


def _digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def make_response(
    status: int,
    content: bytes = b"",
    headers: dict[str, str] | None = None,
    url: str = "",
) -> requests.Response:
    """Build a fully-read ``requests.Response`` without any network."""
    response = requests.Response()
    response.status_code = status
    response._content = content
    response._content_consumed = True
    response.headers.update(headers or {})
    response.url = url
    return response


class FakeRegistrySession:
    """Stands in for ``requests.Session`` in front of an in-memory registry.

    Images are keyed by ``(host, repository)``; every request is recorded.
    When ``require_token`` is set, registry requests without the issued
    bearer token get a ``401`` challenge.
    """

    def __init__(self, *, require_token: bool = False) -> None:
        self.require_token = require_token
        self.token = "anon-token"
        self.manifests: dict[tuple[str, str, str], tuple[str, bytes]] = {}
        self.blobs: dict[tuple[str, str, str], bytes] = {}
        self.requests: list[tuple[str, dict[str, Any]]] = []

    # ------------------------------------------------------------------
    # Registry content
    # ------------------------------------------------------------------

    def add_blob(self, repository: str, data: bytes, host: str = DOCKER_HUB_HOST) -> dict:
        digest = _digest(data)
        self.blobs[(host, repository, digest)] = data
        return {"mediaType": "application/octet-stream", "digest": digest, "size": len(data)}

    def add_manifest(
        self,
        repository: str,
        body: dict,
        media_type: str,
        tag: str | None = None,
        host: str = DOCKER_HUB_HOST,
    ) -> dict:
        data = json.dumps(body).encode("utf-8")
        digest = _digest(data)
        self.manifests[(host, repository, digest)] = (media_type, data)
        if tag:
            self.manifests[(host, repository, tag)] = (media_type, data)
        return {"mediaType": media_type, "digest": digest, "size": len(data)}

    def add_image(
        self,
        repository: str,
        tag: str | None = "latest",
        layers: tuple[bytes, ...] = (b"layer-one",),
        host: str = DOCKER_HUB_HOST,
    ) -> dict:
        """Add a single-platform OCI image; returns its manifest descriptor."""
        config = json.dumps(
            {"architecture": "amd64", "os": "linux", "repo": repository}
        ).encode("utf-8")
        config_desc = self.add_blob(repository, config, host)
        config_desc["mediaType"] = "application/vnd.oci.image.config.v1+json"
        layer_descs = []
        for layer in layers:
            desc = self.add_blob(repository, layer, host)
            desc["mediaType"] = "application/vnd.oci.image.layer.v1.tar+gzip"
            layer_descs.append(desc)
        body = {
            "schemaVersion": 2,
            "mediaType": OCI_MANIFEST,
            "config": config_desc,
            "layers": layer_descs,
        }
        return self.add_manifest(repository, body, OCI_MANIFEST, tag, host)

    def add_index(
        self,
        repository: str,
        tag: str,
        children: list[dict],
        host: str = DOCKER_HUB_HOST,
    ) -> dict:
        body = {"schemaVersion": 2, "mediaType": OCI_INDEX, "manifests": children}
        return self.add_manifest(repository, body, OCI_INDEX, tag, host)

    # ------------------------------------------------------------------
    # requests.Session surface
    # ------------------------------------------------------------------

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        self.requests.append((url, kwargs))
        if url.startswith(TOKEN_REALM):
            return make_response(200, json.dumps({"token": self.token}).encode())

        parsed = urlparse(url)
        host = parsed.netloc
        path = parsed.path.removeprefix("/v2/")
        headers = kwargs.get("headers") or {}

        if self.require_token and headers.get("Authorization") != f"Bearer {self.token}":
            challenge = f'Bearer realm="{TOKEN_REALM}",service="fake-registry"'
            return make_response(401, headers={"WWW-Authenticate": challenge}, url=url)

        if "/manifests/" in path:
            repository, _, reference = path.rpartition("/manifests/")
            found = self.manifests.get((host, repository, reference))
            if found is None:
                return make_response(404, url=url)
            media_type, data = found
            return make_response(
                200,
                data,
                {"Content-Type": media_type, "Docker-Content-Digest": _digest(data)},
                url,
            )

        if "/blobs/" in path:
            repository, _, digest = path.rpartition("/blobs/")
            data = self.blobs.get((host, repository, digest))
            if data is None:
                return make_response(404, url=url)
            return make_response(200, data, url=url)

        return make_response(404, url=url)

    def paths_requested(self, marker: str) -> list[str]:
        return [url for url, _ in self.requests if marker in url]


class RecordingMaterializer:
    """Materializer stand-in that records calls and writes a tiny layout."""

    def __init__(
        self,
        refs: set[ImageRef] | None = None,
        *,
        fail_extract: Exception | None = None,
        fail_store: Exception | None = None,
    ) -> None:
        self.refs = refs if refs is not None else set()
        self.fail_extract = fail_extract
        self.fail_store = fail_store
        self.extract_calls: list[bytes] = []
        self.store_calls: list[tuple[Path, set[ImageRef]]] = []
        self.props_present_at_store: list[bytes | None] = []

    def extract_image_references(self, payload: bytes) -> set[ImageRef]:
        self.extract_calls.append(payload)
        if self.fail_extract is not None:
            raise self.fail_extract
        return set(self.refs)

    def store_images(self, staging_dir: Path, refs: set[ImageRef]) -> None:
        props = staging_dir / "props"
        self.props_present_at_store.append(props.read_bytes() if props.exists() else None)
        self.store_calls.append((staging_dir, set(refs)))
        if self.fail_store is not None:
            raise self.fail_store
        (staging_dir / "oci-layout").write_text('{"imageLayoutVersion": "1.0.0"}')
        (staging_dir / "index.json").write_text('{"schemaVersion": 2, "manifests": []}')


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    """A private temp root so tests can see every staging directory."""
    root = tmp_path / "staging"
    root.mkdir()
    return root


@pytest.fixture
def packer_config(staging_root: Path) -> PackerConfig:
    """PackerConfig whose staging directories land in ``staging_root``."""
    return PackerConfig(staging_root=staging_root)


@pytest.fixture
def fake_registry() -> FakeRegistrySession:
    """An empty in-memory registry."""
    return FakeRegistrySession()


@pytest.fixture
def registry_client(fake_registry: FakeRegistrySession) -> RegistryClient:
    """A RegistryClient wired to the in-memory registry."""
    return RegistryClient(session=fake_registry)  # type: ignore[arg-type]


@pytest.fixture
def make_materializer() -> Callable[..., RecordingMaterializer]:
    """Factory fixture: build a RecordingMaterializer."""

    def _factory(**kwargs: Any) -> RecordingMaterializer:
        return RecordingMaterializer(**kwargs)

    return _factory


@pytest.fixture
def props_file(tmp_path: Path) -> Path:
    """A properties file on disk naming a single image."""
    path = tmp_path / "app.properties"
    path.write_bytes(BUSYBOX_PROPS)
    return path
