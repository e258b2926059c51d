import os
from dataclasses import dataclass
from pathlib import Path

from jarkeeper.internal.constants import (
    APP_NAME,
    CACHE_META_FILE_NAME,
    HOME_ENV_VAR,
    LOG_FILE_NAME,
)


# ---------------------------------------------------------------------
# Base directory
# ---------------------------------------------------------------------

def get_app_data_dir() -> Path:
    """
    Returns the application data directory.

    - $JARKEEPER_HOME when set
    - Windows: %APPDATA%\\jarkeeper
    - Linux/macOS: ~/.jarkeeper
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()

    if os.name == "nt":  # Windows
        base = os.environ.get("APPDATA", str(Path.home()))
        return Path(base) / APP_NAME
    return Path.home() / f".{APP_NAME}"


# ---------------------------------------------------------------------
# Directory layout
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class AppPaths:
    """
    Directory roots for one jarkeeper installation.

    Built once by an entry point and handed to every component, so tests
    can point a whole stack at a temporary directory.
    """
    root: Path

    @classmethod
    def from_env(cls) -> "AppPaths":
        return cls(root=get_app_data_dir())

    @property
    def config_dir(self) -> Path:
        return self.root / "config"

    @property
    def servers_config_dir(self) -> Path:
        return self.config_dir / "servers"

    @property
    def cache_dir(self) -> Path:
        return self.root / "cache"

    @property
    def cache_meta_file(self) -> Path:
        return self.cache_dir / CACHE_META_FILE_NAME

    @property
    def data_dir(self) -> Path:
        return self.root / "servers"

    @property
    def logs_dir(self) -> Path:
        return self.root / "logs"

    @property
    def log_file(self) -> Path:
        return self.logs_dir / LOG_FILE_NAME

    def ensure(self) -> "AppPaths":
        for path in (self.servers_config_dir, self.cache_dir, self.data_dir):
            path.mkdir(parents=True, exist_ok=True)
        return self


# ---------------------------------------------------------------------
# Debug
# ---------------------------------------------------------------------

if __name__ == "__main__":
    app_paths = AppPaths.from_env()
    print("App Data Dir:", app_paths.root)
    print("Config Dir:", app_paths.config_dir)
    print("Cache Dir:", app_paths.cache_dir)
    print("Cache Metadata:", app_paths.cache_meta_file)
    print("Server Data Dir:", app_paths.data_dir)
    print("Log File:", app_paths.log_file)
