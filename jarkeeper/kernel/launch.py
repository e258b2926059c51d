"""
Binds a server configuration to a cached artifact and starts it.

A server is launched with whichever build of its Minecraft version is
cached: the configuration pins the Minecraft version, the cache decides the
build.
"""
import subprocess
from pathlib import Path
from typing import IO, Optional, Union

from jarkeeper.internal.constants import DEFAULT_JAVA_EXECUTABLE
from jarkeeper.internal.logging import get_logger
from jarkeeper.kernel.artifacts import ArtifactStore, CacheKey, CachedArtifact, ServerLayout
from jarkeeper.kernel.config import ServerConfig
from jarkeeper.kernel.errors import StorageError, VersionMismatchError

logger = get_logger(__name__)

# Anything subprocess.Popen accepts for stdin/stdout/stderr
StdioTarget = Optional[Union[int, IO]]


class ServerLauncher:
    def __init__(self, cache: ArtifactStore, servers: ServerLayout, java_executable: str = DEFAULT_JAVA_EXECUTABLE):
        self.cache = cache
        self.servers = servers
        self.java_executable = java_executable

    def resolve(self, config: ServerConfig) -> CacheKey:
        wanted = config.version.minecraft
        for key in self.cache.entries():
            if key.kind == config.kind and key.version == wanted:
                return key
        raise VersionMismatchError(
            f"No cached {config.kind.name} artifact for Minecraft {wanted} (server '{config.name}')"
        )

    def artifact(self, config: ServerConfig) -> CachedArtifact:
        key = self.resolve(config)
        artifact = self.cache.artifact(key)
        if artifact is None:
            raise VersionMismatchError(f"Cache entry {key} vanished while resolving '{config.name}'")
        return artifact

    def _canonical_dir(self, config: ServerConfig, subdir: str) -> Path:
        path = self.servers.server_dir(config.name) / subdir
        try:
            resolved = path.resolve(strict=True)
        except OSError as e:
            raise StorageError(f"Canonicalize failed for {path}", cause=e) from e
        if not resolved.is_dir():
            raise StorageError(f"{path} is not a directory")
        return resolved

    def build_args(self, config: ServerConfig) -> list[str]:
        """
        Server arguments for `config`: the kind's convention over the
        canonical configs/worlds/plugins directories, then the configured
        extra server arguments in stored order.
        """
        args = config.kind.server_args(
            self._canonical_dir(config, "configs"),
            self._canonical_dir(config, "worlds"),
            self._canonical_dir(config, "plugins"),
        )
        return args + list(config.extra_server_args)

    def command(self, config: ServerConfig) -> list[str]:
        artifact = self.artifact(config)
        return [
            self.java_executable,
            *config.extra_java_args,
            "-jar",
            str(artifact.path.resolve()),
            *self.build_args(config),
        ]

    def launch(
        self,
        config: ServerConfig,
        stdin: StdioTarget = None,
        stdout: StdioTarget = None,
        stderr: StdioTarget = None,
    ) -> subprocess.Popen:
        """
        Spawns the server and returns at once. The process is not waited
        on or supervised.
        """
        command = self.command(config)
        # Servers drop caches and extra config files in their cwd; keep them
        # next to the rest of the configuration.
        cwd = self._canonical_dir(config, "configs")

        logger.info("Starting server", name=config.name, version=str(config.version), cwd=str(cwd))
        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
            )
        except OSError as e:
            logger.error("Failed to spawn server process", name=config.name, error=str(e))
            raise StorageError(f"Spawning the server process for '{config.name}' failed", cause=e) from e

        logger.info("Server process spawned", name=config.name, pid=process.pid)
        return process
