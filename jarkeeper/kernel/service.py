"""
The operations exposed by the command line and the REST facade.

ServerManager wires the cache, the registry, the downloader and the
launcher around one AppPaths value. Every front end goes through it.
"""
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jarkeeper.adapters.paper_api import PaperApiClient
from jarkeeper.adapters.servers_fs import ServerRepository
from jarkeeper.adapters.storage_fs import ArtifactCache
from jarkeeper.internal.logging import get_logger
from jarkeeper.internal.paths import AppPaths
from jarkeeper.internal.settings import Settings
from jarkeeper.kernel.artifacts import CacheKey, CachedArtifact, PatchRegistry, ProgressCallback
from jarkeeper.kernel.config import ServerConfig
from jarkeeper.kernel.download import Downloader, RefreshOutcome
from jarkeeper.kernel.launch import ServerLauncher, StdioTarget
from jarkeeper.kernel.versions import ServerVersion, parse_version
from jarkeeper.kinds.factory import DEFAULT_KIND, get_kind

logger = get_logger(__name__)

LATEST = "latest"


@dataclass
class CachedEntry:
    key: CacheKey
    build: int
    path: Path
    present: bool


class ServerManager:
    def __init__(self, paths: AppPaths, registry: PatchRegistry, java_executable: Optional[str] = None):
        self.paths = paths
        self.registry = registry
        self.cache = ArtifactCache(paths.cache_dir)
        self.servers = ServerRepository(paths.servers_config_dir, paths.data_dir)
        self.downloader = Downloader(self.cache, registry)
        launcher_kwargs = {"java_executable": java_executable} if java_executable else {}
        self.launcher = ServerLauncher(self.cache, self.servers, **launcher_kwargs)

    @classmethod
    def from_settings(cls, paths: AppPaths, settings: Settings) -> "ServerManager":
        return cls(
            paths=paths,
            registry=PaperApiClient(base_url=settings.registry_url),
            java_executable=settings.java_executable,
        )

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    async def create(self, name: str, version: str, kind: str = DEFAULT_KIND, accept_eula: bool = False) -> ServerConfig:
        server_kind = get_kind(kind)
        if version.strip().lower() == LATEST:
            server_version = await self.registry.get_latest_version(server_kind)
            logger.info("Resolved latest version", kind=server_kind.name, version=str(server_version))
        else:
            server_version = parse_version(version)
        return self.servers.create(name, server_version, server_kind, accept_eula=accept_eula)

    def get(self, name: str) -> ServerConfig:
        return self.servers.get(name)

    def list_servers(self) -> list[ServerConfig]:
        return self.servers.list_servers()

    def remove(self, name: str) -> None:
        self.servers.remove(name)

    def cached_build(self, config: ServerConfig) -> Optional[int]:
        return self.cache.get_cached_patch(CacheKey(config.kind, config.version.minecraft))

    # ------------------------------------------------------------------
    # Launch
    # ------------------------------------------------------------------

    async def needs_refresh(self, config: ServerConfig) -> bool:
        key = CacheKey(config.kind, config.version.minecraft)
        return not await self.cache.is_latest(key, self.registry)

    async def prepare(self, config: ServerConfig, on_progress: Optional[ProgressCallback] = None) -> CachedArtifact:
        """
        Makes sure the newest build for `config` is cached and returns it.
        """
        key = CacheKey(config.kind, config.version.minecraft)
        await self.downloader.refresh_one(key, on_progress)
        return self.launcher.artifact(config)

    async def start(
        self,
        name: str,
        stdin: StdioTarget = None,
        stdout: StdioTarget = None,
        stderr: StdioTarget = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> subprocess.Popen:
        config = self.get(name)
        await self.prepare(config, on_progress)
        return self.launcher.launch(config, stdin=stdin, stdout=stdout, stderr=stderr)

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    async def download(
        self,
        version: str,
        destination: Optional[Path] = None,
        kind: str = DEFAULT_KIND,
        on_progress: Optional[ProgressCallback] = None,
    ) -> tuple[ServerVersion, Path]:
        """
        Downloads a build to an arbitrary file, outside the cache.
        """
        server_kind = get_kind(kind)
        server_version = parse_version(version)
        if destination is None:
            destination = Path(server_kind.artifact_filename(server_version.minecraft))
        fetched = await self.downloader.fetch_to_file(server_kind, server_version, destination, on_progress)
        return fetched, destination

    async def upgrade_cache(self, on_progress: Optional[ProgressCallback] = None) -> list[RefreshOutcome]:
        return await self.downloader.bulk_refresh(on_progress=on_progress)

    def purge_cache(self) -> list[CacheKey]:
        return self.cache.purge()

    def cached_artifacts(self) -> list[CachedEntry]:
        entries = []
        for key, build in sorted(self.cache.entries().items(), key=lambda item: str(item[0])):
            path = self.cache.path_for(key)
            entries.append(CachedEntry(key=key, build=build, path=path, present=path.is_file()))
        return entries
