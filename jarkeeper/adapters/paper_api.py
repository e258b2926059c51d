"""
Async client for PaperMC-style build registries (papermc.io API v1).

    GET {api}/{project}                            -> {"project": ..., "versions": [...]}
    GET {api}/{project}/{version}                  -> {"builds": {"latest": N, ...}}
    GET {api}/{project}/{version}/{build}/download -> jar bytes

No timeouts are applied: a stalled registry blocks the calling task until
the connection is closed from the other side.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from jarkeeper.internal.constants import DEFAULT_REGISTRY_URL, DOWNLOAD_CHUNK_SIZE
from jarkeeper.internal.logging import get_logger
from jarkeeper.kernel.artifacts import ArtifactStream, CacheKey
from jarkeeper.kernel.errors import JarKeeperError, NetworkError, NoVersionsError, NotFoundError
from jarkeeper.kernel.versions import MinecraftVersion, ServerVersion, parse_minecraft_version
from jarkeeper.kinds.base import ServerKind

logger = get_logger(__name__)


class PaperApiClient:
    """
    Implements the PatchRegistry port over HTTP.

    A shared httpx.AsyncClient can be injected (tests pass one built on
    httpx.MockTransport); otherwise a client is opened per call.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_REGISTRY_URL,
        client: Optional[httpx.AsyncClient] = None,
        chunk_size: int = DOWNLOAD_CHUNK_SIZE,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._chunk_size = chunk_size

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=None, follow_redirects=True) as client:
            yield client

    def _url(self, kind: ServerKind, *parts) -> str:
        return "/".join([self.base_url, kind.project, *(str(p) for p in parts)])

    async def _get_json(self, url: str, not_found: str) -> dict:
        try:
            async with self._session() as client:
                r = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(f"Request to {url} failed", cause=e) from e

        if r.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(not_found)
        if r.is_error:
            raise NetworkError(f"Registry answered {r.status_code} for {url}")

        try:
            data = r.json()
        except ValueError as e:
            raise NetworkError(f"Failed to decode registry response from {url}", cause=e) from e
        if not isinstance(data, dict):
            raise NetworkError(f"Unexpected registry response from {url}")
        return data

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_latest_patch(self, kind: ServerKind, version: MinecraftVersion) -> int:
        url = self._url(kind, version)
        data = await self._get_json(url, f"{kind.name}: nonexistent Minecraft version {version}")
        try:
            latest = data["builds"]["latest"]
        except (KeyError, TypeError) as e:
            raise NetworkError(f"{kind.name}: build list for {version} has no latest build", cause=e) from e
        try:
            return int(latest)
        except (TypeError, ValueError) as e:
            raise NetworkError(f"{kind.name}: latest build '{latest}' for {version} is not a number", cause=e) from e

    async def get_versions(self, kind: ServerKind) -> list[MinecraftVersion]:
        url = self._url(kind)
        data = await self._get_json(url, f"{kind.name}: unknown project {kind.project}")
        raw_versions = data.get("versions")
        if not isinstance(raw_versions, list):
            raise NetworkError(f"{kind.name}: version list missing from {url}")

        versions = []
        for text in raw_versions:
            try:
                versions.append(parse_minecraft_version(str(text)))
            except JarKeeperError:
                # Pre-releases such as "1.13-pre7" are not launchable releases
                logger.debug("Skipping unparseable registry version", kind=kind.name, version=text)
        return versions

    async def get_latest_version(self, kind: ServerKind) -> ServerVersion:
        versions = await self.get_versions(kind)
        if not versions:
            raise NoVersionsError(f"{kind.name}: no versions available")
        latest = max(versions)
        return ServerVersion(latest, await self.get_latest_patch(kind, latest))

    @asynccontextmanager
    async def download(self, key: CacheKey, build: int) -> AsyncIterator[ArtifactStream]:
        url = self._url(key.kind, key.version, build, "download")
        logger.info("Downloading artifact", url=url)

        async with self._session() as client:
            try:
                async with client.stream("GET", url) as response:
                    if response.status_code == httpx.codes.NOT_FOUND:
                        raise NotFoundError(f"{key.kind.name}: nonexistent server version {key.version}-{build}")
                    if response.is_error:
                        raise NetworkError(f"Registry answered {response.status_code} for {url}")

                    length = response.headers.get("Content-Length")
                    total = int(length) if length and length.isdigit() else None
                    yield ArtifactStream(total=total, chunks=self._iter_chunks(response, url))
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise NetworkError(f"Download of {url} failed", cause=e) from e

    async def _iter_chunks(self, response: httpx.Response, url: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes(chunk_size=self._chunk_size):
                yield chunk
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(f"Download of {url} interrupted", cause=e) from e
