"""
Contracts for cached artifacts and the registry they come from.

This is a core part of the kernel. It defines the 'port' the registry
adapter must provide and the values exchanged with the artifact cache.
"""
from abc import abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncContextManager, AsyncIterator, Callable, Optional, Protocol

from jarkeeper.kernel.errors import ParseError
from jarkeeper.kernel.versions import MinecraftVersion, ServerVersion, parse_minecraft_version
from jarkeeper.kinds.base import ServerKind
from jarkeeper.kinds.factory import get_kind


@dataclass(frozen=True)
class CacheKey:
    """
    Names one cached artifact file and one metadata entry.
    """
    kind: ServerKind
    version: MinecraftVersion

    def __str__(self) -> str:
        return f"{self.kind.name}@{self.version}"

    @classmethod
    def parse(cls, text: str) -> "CacheKey":
        kind_name, sep, version_text = text.partition("@")
        if not sep:
            raise ParseError(f"Cache key '{text}' is not of the form <kind>@<version>", component="key")
        return cls(kind=get_kind(kind_name), version=parse_minecraft_version(version_text))


@dataclass(frozen=True)
class CachedArtifact:
    """
    A cache entry as seen at one point in time: the cached build and the
    file holding it. Never persisted on its own.
    """
    version: ServerVersion
    path: Path


@dataclass
class ArtifactStream:
    """Bytes of one artifact as they arrive from the registry."""
    total: Optional[int]
    chunks: AsyncIterator[bytes]


# Called after every chunk with (key, bytes_so_far, total_or_None).
ProgressCallback = Callable[[CacheKey, int, Optional[int]], None]


class PatchRegistry(Protocol):
    """
    The interface (port) for a remote build registry.
    """

    @abstractmethod
    async def get_latest_patch(self, kind: ServerKind, version: MinecraftVersion) -> int:
        """
        Returns the newest build number known for `version`.

        Raises NotFoundError for unknown versions, NetworkError otherwise.
        """
        ...

    @abstractmethod
    async def get_versions(self, kind: ServerKind) -> list[MinecraftVersion]:
        ...

    @abstractmethod
    async def get_latest_version(self, kind: ServerKind) -> ServerVersion:
        """
        Returns the highest published version together with its latest build.
        """
        ...

    @abstractmethod
    def download(self, key: CacheKey, build: int) -> AsyncContextManager[ArtifactStream]:
        """
        Opens the byte stream for one build. The stream is only valid inside
        the returned context.
        """
        ...


class ArtifactStore(Protocol):
    """
    The interface (port) for the local artifact cache.
    """

    @abstractmethod
    def get_cached_patch(self, key: CacheKey) -> Optional[int]:
        ...

    @abstractmethod
    def entries(self) -> dict[CacheKey, int]:
        ...

    @abstractmethod
    def keys(self) -> list[CacheKey]:
        ...

    @abstractmethod
    def artifact(self, key: CacheKey) -> Optional[CachedArtifact]:
        ...

    @abstractmethod
    async def is_latest(self, key: CacheKey, registry: PatchRegistry) -> bool:
        """
        False when nothing is cached for `key` or the registry cannot confirm
        the cached build is the newest.
        """
        ...

    @abstractmethod
    async def cache(self, key: CacheKey, build: int, chunks: AsyncIterator[bytes]) -> CachedArtifact:
        """
        Stores the bytes as the artifact for `key` and records `build`. On
        failure the previous artifact and its entry are left as they were.
        """
        ...


class ServerLayout(Protocol):
    """
    Where a server's configs, worlds and plugins directories live.
    """

    @abstractmethod
    def server_dir(self, name: str) -> Path:
        ...
