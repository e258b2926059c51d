"""
Filesystem artifact cache: jar files plus a JSON metadata index.

The index (`cache.json`) maps "<kind>@<minecraft-version>" to the build
number held by the matching jar file. It is the single source of truth for
"which build do we have"; an entry is only written after the jar it
describes has been fully written and renamed into place.

Index mutations are serialized within one process. Several processes
sharing the same cache directory are not supported.
"""
import asyncio
import json
import os
import threading
from pathlib import Path
from typing import AsyncIterable, Optional

from jarkeeper.internal.constants import CACHE_META_FILE_NAME
from jarkeeper.internal.logging import get_logger
from jarkeeper.kernel.artifacts import CacheKey, CachedArtifact, PatchRegistry
from jarkeeper.kernel.errors import JarKeeperError, StorageError
from jarkeeper.kernel.versions import ServerVersion, is_up_to_date

logger = get_logger(__name__)


class ArtifactCache:
    def __init__(self, cache_dir: Path, meta_file_name: str = CACHE_META_FILE_NAME):
        self._cache_dir = cache_dir
        self._meta_path = cache_dir / meta_file_name
        self._lock = threading.Lock()

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def meta_path(self) -> Path:
        return self._meta_path

    # ------------------------------------------------------------------
    # Metadata index
    # ------------------------------------------------------------------

    def _read_index(self) -> dict[str, int]:
        if not self._meta_path.exists():
            return {}
        try:
            with open(self._meta_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise StorageError(f"Failed to read cache metadata {self._meta_path}", cause=e) from e
        except json.JSONDecodeError as e:
            raise StorageError(f"Failed to parse cache metadata {self._meta_path}", cause=e) from e

        if not isinstance(data, dict) or not all(
            isinstance(build, int) and not isinstance(build, bool) for build in data.values()
        ):
            raise StorageError(f"Cache metadata {self._meta_path} is not a mapping of builds")
        return data

    def _write_index(self, index: dict[str, int]) -> None:
        temp_path = self._meta_path.with_suffix(f"{self._meta_path.suffix}.tmp")
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(index, f, indent=2, sort_keys=True)
            temp_path.replace(self._meta_path)
        except OSError as e:
            raise StorageError(f"Failed to write cache metadata {self._meta_path}", cause=e) from e
        finally:
            if temp_path.exists():
                temp_path.unlink()

    def _set_build(self, key: CacheKey, build: int) -> None:
        with self._lock:
            index = self._read_index()
            index[str(key)] = build
            self._write_index(index)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def path_for(self, key: CacheKey) -> Path:
        return self._cache_dir / key.kind.artifact_filename(key.version)

    def get_cached_patch(self, key: CacheKey) -> Optional[int]:
        return self._read_index().get(str(key))

    def entries(self) -> dict[CacheKey, int]:
        """
        Every index entry, skipping keys whose kind or version no longer parse.
        """
        result = {}
        for text, build in self._read_index().items():
            try:
                result[CacheKey.parse(text)] = build
            except JarKeeperError as e:
                logger.warning("Ignoring unreadable cache entry", key=text, error=str(e))
        return result

    def keys(self) -> list[CacheKey]:
        return list(self.entries())

    def artifact(self, key: CacheKey) -> Optional[CachedArtifact]:
        build = self.get_cached_patch(key)
        if build is None:
            return None
        return CachedArtifact(version=ServerVersion(key.version, build), path=self.path_for(key))

    async def is_latest(self, key: CacheKey, registry: PatchRegistry) -> bool:
        cached = self.get_cached_patch(key)
        if cached is None:
            return False

        # If we can't ask the registry, we can't claim to be current either
        try:
            latest = await registry.get_latest_patch(key.kind, key.version)
        except JarKeeperError as e:
            logger.warning("Could not confirm latest build", key=str(key), cached=cached, error=str(e))
            return False
        return is_up_to_date(cached, latest)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def cache(self, key: CacheKey, build: int, chunks: AsyncIterable[bytes]) -> CachedArtifact:
        """
        Stores `chunks` as the artifact for `key` and records `build` for it.

        The bytes land in a temporary file that replaces the cached jar only
        once the stream is exhausted. The previous jar is kept aside until the
        index has been written and is put back if anything fails, so a failed
        call leaves the previous jar and index untouched.
        """
        target_path = self.path_for(key)
        temp_path = target_path.with_suffix(f"{target_path.suffix}.tmp")
        written = 0
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "wb") as f:
                async for chunk in chunks:
                    f.write(chunk)
                    written += len(chunk)
                f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            await asyncio.to_thread(self._commit, key, build, temp_path, target_path)
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"Failed to write artifact {target_path}", cause=e) from e
        finally:
            if temp_path.exists():
                temp_path.unlink()

        logger.info("Cached artifact", key=str(key), build=build, bytes=written, path=str(target_path))
        return CachedArtifact(version=ServerVersion(key.version, build), path=target_path)

    def _commit(self, key: CacheKey, build: int, temp_path: Path, target_path: Path) -> None:
        backup_path = target_path.with_suffix(f"{target_path.suffix}.bak")
        had_previous = target_path.exists()
        try:
            if had_previous:
                target_path.replace(backup_path)
            temp_path.replace(target_path)
            self._set_build(key, build)
        except OSError:
            # Jar and index must keep describing the same build
            if had_previous and backup_path.exists():
                backup_path.replace(target_path)
            elif not had_previous and target_path.exists():
                target_path.unlink()
            logger.error("Rolled back artifact", key=str(key), build=build, restored=had_previous)
            raise
        if had_previous:
            backup_path.unlink(missing_ok=True)

    def erase(self) -> None:
        """
        Clears the metadata index. Cached files are left on disk.
        """
        with self._lock:
            self._write_index({})
        logger.info("Cache metadata erased", path=str(self._meta_path))

    def purge(self) -> list[CacheKey]:
        """
        Deletes every indexed artifact file, then clears the index.
        """
        with self._lock:
            removed = []
            for text in self._read_index():
                try:
                    key = CacheKey.parse(text)
                except JarKeeperError:
                    continue
                path = self.path_for(key)
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    raise StorageError(f"Failed to delete cached artifact {path}", cause=e) from e
                removed.append(key)
            self._write_index({})
        logger.info("Cache purged", removed=[str(key) for key in removed])
        return removed
