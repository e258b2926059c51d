"""
Moves artifacts from the registry into the cache.

Bulk refresh runs one unit per cache key concurrently. Units never cancel
each other: every unit runs to completion and its outcome is reported,
whatever happened to its siblings.
"""
import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Awaitable, Generic, Iterable, Optional, TypeVar

from jarkeeper.internal.logging import get_logger
from jarkeeper.kernel.artifacts import (
    ArtifactStore,
    ArtifactStream,
    CacheKey,
    CachedArtifact,
    PatchRegistry,
    ProgressCallback,
)
from jarkeeper.kernel.errors import BulkRefreshError, StorageError
from jarkeeper.kernel.versions import ServerVersion
from jarkeeper.kinds.base import ServerKind

logger = get_logger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------
# Structured concurrency
# ---------------------------------------------------------------------

@dataclass
class Outcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskSet:
    """
    Runs awaitables concurrently and collects every outcome, in submission
    order. A failing unit does not cancel the others.
    """

    def __init__(self):
        self._units: list[Awaitable] = []

    def add(self, awaitable: Awaitable) -> None:
        self._units.append(awaitable)

    def __len__(self) -> int:
        return len(self._units)

    async def wait(self) -> list[Outcome]:
        results = await asyncio.gather(*self._units, return_exceptions=True)
        outcomes = []
        for result in results:
            if isinstance(result, BaseException):
                outcomes.append(Outcome(error=result))
            else:
                outcomes.append(Outcome(value=result))
        return outcomes


@dataclass
class RefreshOutcome:
    key: CacheKey
    # None when the cached build was already the latest
    artifact: Optional[CachedArtifact] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def downloaded(self) -> bool:
        return self.artifact is not None


# ---------------------------------------------------------------------
# Downloader
# ---------------------------------------------------------------------

async def _observe(key: CacheKey, stream: ArtifactStream, on_progress: Optional[ProgressCallback]) -> AsyncIterator[bytes]:
    received = 0
    async for chunk in stream.chunks:
        received += len(chunk)
        if on_progress:
            on_progress(key, received, stream.total)
        yield chunk


class Downloader:
    def __init__(self, cache: ArtifactStore, registry: PatchRegistry):
        self.cache = cache
        self.registry = registry

    async def download_one(self, key: CacheKey, on_progress: Optional[ProgressCallback] = None) -> CachedArtifact:
        """
        Fetches the latest build for `key` into the cache, whatever is cached now.
        """
        build = await self.registry.get_latest_patch(key.kind, key.version)
        logger.info("Fetching build", key=str(key), build=build)
        async with self.registry.download(key, build) as stream:
            return await self.cache.cache(key, build, _observe(key, stream, on_progress))

    async def refresh_one(self, key: CacheKey, on_progress: Optional[ProgressCallback] = None) -> Optional[CachedArtifact]:
        if await self.cache.is_latest(key, self.registry):
            logger.debug("Artifact already current", key=str(key), build=self.cache.get_cached_patch(key))
            return None
        return await self.download_one(key, on_progress)

    async def bulk_refresh(
        self,
        keys: Optional[Iterable[CacheKey]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[RefreshOutcome]:
        """
        Brings every key (default: every cached key) up to date concurrently.

        Returns one outcome per distinct key, in key order. Raises
        BulkRefreshError listing every failed unit if any unit failed.
        """
        distinct = list(dict.fromkeys(self.cache.keys() if keys is None else keys))
        logger.info("Refreshing cached artifacts", count=len(distinct))

        tasks = TaskSet()
        for key in distinct:
            tasks.add(self.refresh_one(key, on_progress))

        outcomes = [
            RefreshOutcome(key=key, artifact=outcome.value, error=outcome.error)
            for key, outcome in zip(distinct, await tasks.wait())
        ]

        failures = [(o.key, o.error) for o in outcomes if not o.ok]
        for key, error in failures:
            logger.error("Refresh unit failed", key=str(key), error=str(error))
        if failures:
            raise BulkRefreshError(failures, outcomes)
        return outcomes

    async def fetch_to_file(
        self,
        kind: ServerKind,
        version: ServerVersion,
        destination: Path,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ServerVersion:
        """
        Downloads one build (the latest when `version` has none) to an
        arbitrary file. The cache is not touched.
        """
        key = CacheKey(kind=kind, version=version.minecraft)
        build = version.build
        if build is None:
            build = await self.registry.get_latest_patch(kind, version.minecraft)

        temp_path = destination.with_name(f".{destination.name}.tmp")
        try:
            async with self.registry.download(key, build) as stream:
                with open(temp_path, "wb") as f:
                    async for chunk in _observe(key, stream, on_progress):
                        f.write(chunk)
                    f.flush()
                    os.fsync(f.fileno())
            temp_path.replace(destination)
        except OSError as e:
            raise StorageError(f"Failed to write {destination}", cause=e) from e
        finally:
            if temp_path.exists():
                temp_path.unlink()

        logger.info("Downloaded artifact", key=str(key), build=build, path=str(destination))
        return version.with_build(build)
