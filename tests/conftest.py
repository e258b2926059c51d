import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import pytest

from jarkeeper.adapters.storage_fs import ArtifactCache
from jarkeeper.internal.logging import setup_logging
from jarkeeper.internal.paths import AppPaths
from jarkeeper.kernel.artifacts import ArtifactStream, CacheKey
from jarkeeper.kernel.errors import NetworkError, NoVersionsError, NotFoundError
from jarkeeper.kernel.service import ServerManager
from jarkeeper.kernel.versions import ServerVersion


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    """Configure logging once, with no output, before any CLI callback does."""
    setup_logging()


# --- Fakes ---

def payload_for(key, build: int) -> bytes:
    return f"{key}#{build};".encode() * 16


async def iter_bytes(*chunks: bytes):
    for chunk in chunks:
        yield chunk


class FakeRegistry:
    """
    In-memory PatchRegistry. Builds are keyed by "<kind>@<version>" text.

    - `broken` keys fail halfway through their download stream
    - `unreachable` keys fail when their latest build is queried
    """

    def __init__(self, latest: Optional[dict[str, int]] = None):
        self.latest = dict(latest or {})
        self.broken: set[str] = set()
        self.unreachable: set[str] = set()
        self.downloads: list[tuple[str, int]] = []
        self.finished: list[str] = []

    async def get_latest_patch(self, kind, version) -> int:
        text = f"{kind.name}@{version}"
        await asyncio.sleep(0)
        if text in self.unreachable:
            raise NetworkError(f"registry unreachable for {text}")
        if text not in self.latest:
            raise NotFoundError(f"{kind.name}: nonexistent Minecraft version {version}")
        return self.latest[text]

    async def get_versions(self, kind):
        return [
            CacheKey.parse(text).version
            for text in self.latest
            if text.startswith(f"{kind.name}@")
        ]

    async def get_latest_version(self, kind) -> ServerVersion:
        versions = await self.get_versions(kind)
        if not versions:
            raise NoVersionsError(f"{kind.name}: no versions available")
        newest = max(versions)
        return ServerVersion(newest, self.latest[f"{kind.name}@{newest}"])

    @asynccontextmanager
    async def download(self, key, build: int):
        text = str(key)
        self.downloads.append((text, build))
        payload = payload_for(key, build)
        half = len(payload) // 2
        registry = self

        async def chunks():
            yield payload[:half]
            await asyncio.sleep(0)
            if text in registry.broken:
                raise NetworkError(f"connection reset while downloading {text}")
            yield payload[half:]
            registry.finished.append(text)

        yield ArtifactStream(total=len(payload), chunks=chunks())


# --- Fixtures ---

@pytest.fixture
def app_paths(tmp_path) -> AppPaths:
    return AppPaths(root=tmp_path / "home").ensure()


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def cache(app_paths) -> ArtifactCache:
    return ArtifactCache(app_paths.cache_dir)


@pytest.fixture
def manager(app_paths, registry) -> ServerManager:
    return ServerManager(app_paths, registry, java_executable="java")


@pytest.fixture
def seed_cache():
    """Returns a function that puts a build for a key text straight into a cache."""
    def _seed(cache: ArtifactCache, key_text: str, build: int, data: Optional[bytes] = None):
        key = CacheKey.parse(key_text)
        body = payload_for(key, build) if data is None else data
        return asyncio.run(cache.cache(key, build, iter_bytes(body)))
    return _seed


@pytest.fixture
def fake_payload():
    return payload_for
