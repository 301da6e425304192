"""Registry HTTP API v2 client — anonymous pulls of manifests and blobs.

Public registries answer an unauthenticated request with ``401`` and a
``Bearer`` challenge; the client fetches an anonymous pull token from the
challenge realm and retries once.  Credentials are not supported.

Everything fetched is verified against its digest before it is returned
or moved into place.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import tempfile
from pathlib import Path

import requests
from pydantic import BaseModel, ConfigDict

from prelpack.errors import DigestMismatchError, RegistryError
from prelpack.models.images import DEFAULT_REGISTRY, ImageRef
from prelpack.models.oci import MANIFEST_MEDIA_TYPES, split_digest

logger = logging.getLogger(__name__)

DOCKER_HUB_API_HOST = "registry-1.docker.io"

_CHALLENGE_PARAM_RE = re.compile(r'(\w+)="([^"]*)"')
_CHUNK_SIZE = 1 << 16


class FetchedManifest(BaseModel):
    """Raw manifest bytes together with their media type and digest."""

    model_config = ConfigDict(frozen=True)

    media_type: str
    digest: str
    data: bytes


def compute_digest(data: bytes, algorithm: str = "sha256") -> str:
    """Return ``algo:hex`` for *data*."""
    return f"{algorithm}:{hashlib.new(algorithm, data).hexdigest()}"


def parse_bearer_challenge(header: str) -> dict[str, str] | None:
    """Parse a ``WWW-Authenticate: Bearer ...`` header into its parameters."""
    scheme, _, params = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return dict(_CHALLENGE_PARAM_RE.findall(params))


class RegistryClient:
    """Minimal pull-only registry client.

    Parameters
    ----------
    session:
        ``requests.Session`` used for all calls.
    timeout:
        Per-request timeout in seconds.
    insecure_registries:
        Registry hosts reached over plain ``http``.
    user_agent:
        Value of the ``User-Agent`` header.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: float = 60.0,
        insecure_registries: list[str] | tuple[str, ...] = (),
        user_agent: str = "prelpack",
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout
        self._insecure = set(insecure_registries)
        self._user_agent = user_agent
        self._tokens: dict[tuple[str, str], str] = {}

    # ------------------------------------------------------------------
    # URLs and auth
    # ------------------------------------------------------------------

    def base_url(self, registry: str) -> str:
        host = DOCKER_HUB_API_HOST if registry == DEFAULT_REGISTRY else registry
        scheme = "http" if registry in self._insecure else "https"
        return f"{scheme}://{host}/v2"

    def _fetch_token(self, challenge: dict[str, str], repository: str) -> str:
        realm = challenge.get("realm")
        if not realm:
            raise RegistryError("Bearer challenge without a realm")
        params = {"scope": challenge.get("scope") or f"repository:{repository}:pull"}
        if "service" in challenge:
            params["service"] = challenge["service"]

        response = self._session.get(
            realm,
            params=params,
            headers={"User-Agent": self._user_agent},
            timeout=self._timeout,
        )
        if not response.ok:
            raise RegistryError(
                f"Token request to {realm} failed: HTTP {response.status_code}"
            )
        body = response.json()
        token = body.get("token") or body.get("access_token")
        if not token:
            raise RegistryError(f"Token response from {realm} carried no token")
        return token

    def _get(
        self,
        ref: ImageRef,
        path: str,
        *,
        accept: str | None = None,
        stream: bool = False,
    ) -> requests.Response:
        url = f"{self.base_url(ref.registry)}/{ref.repository}/{path}"
        key = (ref.registry, ref.repository)

        def send() -> requests.Response:
            headers = {"User-Agent": self._user_agent}
            if accept:
                headers["Accept"] = accept
            token = self._tokens.get(key)
            if token:
                headers["Authorization"] = f"Bearer {token}"
            return self._session.get(
                url, headers=headers, stream=stream, timeout=self._timeout
            )

        response = send()
        if response.status_code == 401 and key not in self._tokens:
            challenge = parse_bearer_challenge(
                response.headers.get("WWW-Authenticate", "")
            )
            if challenge is not None:
                response.close()
                self._tokens[key] = self._fetch_token(challenge, ref.repository)
                response = send()

        if not response.ok:
            response.close()
            raise RegistryError(
                f"GET {url} failed: HTTP {response.status_code}"
            )
        return response

    # ------------------------------------------------------------------
    # Manifests
    # ------------------------------------------------------------------

    def get_manifest(
        self, ref: ImageRef, reference: str | None = None
    ) -> FetchedManifest:
        """Fetch the manifest (or index) for *ref*.

        *reference* overrides the tag/digest of *ref*, e.g. to fetch a
        child manifest of an index by digest.
        """
        reference = reference or ref.reference
        response = self._get(
            ref, f"manifests/{reference}", accept=", ".join(MANIFEST_MEDIA_TYPES)
        )
        data = response.content
        media_type = response.headers.get("Content-Type", "").split(";")[0].strip()

        if ":" in reference:
            algorithm, _ = split_digest(reference)
            digest = compute_digest(data, algorithm)
            if digest != reference:
                raise DigestMismatchError(
                    f"Manifest for {ref.name}@{reference} hashed to {digest}"
                )
        else:
            digest = compute_digest(data)
            advertised = response.headers.get("Docker-Content-Digest")
            if advertised and advertised.startswith("sha256:") and advertised != digest:
                raise DigestMismatchError(
                    f"Manifest for {ref.canonical} hashed to {digest}, "
                    f"registry advertised {advertised}"
                )

        logger.debug("Fetched manifest %s for %s (%s)", digest, ref, media_type)
        return FetchedManifest(media_type=media_type, digest=digest, data=data)

    # ------------------------------------------------------------------
    # Blobs
    # ------------------------------------------------------------------

    def fetch_blob(self, ref: ImageRef, digest: str, dest: Path) -> int:
        """Stream blob *digest* of *ref* to *dest*, verifying its digest.

        The content is written to a temporary file beside *dest* and only
        renamed into place once verified.  Returns the number of bytes.
        """
        algorithm, expected = split_digest(digest)
        hasher = hashlib.new(algorithm)
        size = 0

        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=".partial-")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                response = self._get(ref, f"blobs/{digest}", stream=True)
                with response:
                    for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                        hasher.update(chunk)
                        out.write(chunk)
                        size += len(chunk)

            if hasher.hexdigest() != expected:
                raise DigestMismatchError(
                    f"Blob {digest} from {ref.name} hashed to "
                    f"{algorithm}:{hasher.hexdigest()}"
                )
            os.replace(tmp_path, dest)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug("Fetched blob %s (%d bytes)", digest, size)
        return size
