"""
Server instances on disk.

    <config>/servers/<name>.json    configuration document
    <data>/<name>/configs/          working directory of the server process
    <data>/<name>/worlds/
    <data>/<name>/plugins/
"""
import json
import re
import shutil
from pathlib import Path

from jarkeeper.internal.constants import SERVER_CONFIG_SUFFIX
from jarkeeper.internal.logging import get_logger
from jarkeeper.kernel.config import ServerConfig
from jarkeeper.kernel.errors import NotFoundError, ParseError, ServerExistsError, StorageError
from jarkeeper.kernel.versions import ServerVersion
from jarkeeper.kinds.base import ServerKind

logger = get_logger(__name__)

_SERVER_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class ServerRepository:
    def __init__(self, config_dir: Path, data_dir: Path):
        self._config_dir = config_dir
        self._data_dir = data_dir

    def config_path(self, name: str) -> Path:
        return self._config_dir / f"{name}{SERVER_CONFIG_SUFFIX}"

    def server_dir(self, name: str) -> Path:
        return self._data_dir / name

    def exists(self, name: str) -> bool:
        return self.config_path(name).is_file()

    def create(self, name: str, version: ServerVersion, kind: ServerKind, accept_eula: bool = False) -> ServerConfig:
        if not _SERVER_NAME_RE.match(name):
            raise ParseError(f"Invalid server name '{name}'", component="name")
        if self.exists(name):
            raise ServerExistsError(f"Server '{name}' already exists")

        config = ServerConfig(name=name, version=version, kind=kind)
        server_dir = self.server_dir(name)
        try:
            kind.initialize(server_dir)
            if accept_eula:
                (server_dir / "configs" / "eula.txt").write_text("eula=true\n", encoding="utf-8")
            self._write(config)
        except OSError as e:
            raise StorageError(f"Could not create server '{name}'", cause=e) from e

        logger.info("Server created", name=name, version=str(version), kind=kind.name, path=str(server_dir))
        return config

    def _write(self, config: ServerConfig) -> None:
        self._config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_path(config.name), "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2)
            f.write("\n")

    def get(self, name: str) -> ServerConfig:
        path = self.config_path(name)
        if not path.is_file():
            raise NotFoundError(f"No server named '{name}'")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise StorageError(f"Could not load config file: {path}", cause=e) from e
        except json.JSONDecodeError as e:
            raise ParseError(f"Parse error while loading config {path}", component="config", cause=e) from e

        config = ServerConfig.from_dict(data)
        # The file name is the key; data and config paths derive from it
        if config.name != name:
            raise ParseError(
                f"Config {path} names server '{config.name}', expected '{name}'", component="name"
            )
        return config

    def list_servers(self) -> list[ServerConfig]:
        if not self._config_dir.exists():
            return []
        try:
            paths = sorted(self._config_dir.glob(f"*{SERVER_CONFIG_SUFFIX}"))
        except OSError as e:
            raise StorageError(f"Failed to list servers directory {self._config_dir}", cause=e) from e
        return [self.get(path.stem) for path in paths]

    def remove(self, name: str) -> None:
        if not self.exists(name):
            raise NotFoundError(f"No server named '{name}'")
        server_dir = self.server_dir(name)
        try:
            if server_dir.exists():
                shutil.rmtree(server_dir)
            self.config_path(name).unlink()
        except OSError as e:
            raise StorageError(f"Failed to remove server '{name}'", cause=e) from e
        logger.info("Server removed", name=name)
