from abc import ABC, abstractmethod
from pathlib import Path

from jarkeeper.internal.constants import SERVER_SUBDIRS
from jarkeeper.kernel.versions import MinecraftVersion


class ServerKind(ABC):
    """
    One artifact flavor: where its builds come from and how its jar is
    launched. Instances are stateless and compared by name.
    """
    name: str
    # Project name under the registry API root.
    project: str

    def artifact_filename(self, version: MinecraftVersion) -> str:
        return f"{self.name}-{version}.jar"

    def initialize(self, server_dir: Path) -> None:
        """
        Creates the per-server directory layout.
        """
        for subdir in SERVER_SUBDIRS:
            (server_dir / subdir).mkdir(parents=True, exist_ok=True)

    @abstractmethod
    def server_args(self, configs_dir: Path, worlds_dir: Path, plugins_dir: Path) -> list[str]:
        """
        Arguments passed to the jar, given canonicalized server directories.
        """
        pass

    def __eq__(self, other) -> bool:
        return isinstance(other, ServerKind) and other.name == self.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<ServerKind {self.name}>"
