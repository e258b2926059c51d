import os
from dataclasses import dataclass

from jarkeeper.internal.constants import (
    API_HOST,
    API_PORT,
    DEFAULT_JAVA_EXECUTABLE,
    DEFAULT_REGISTRY_URL,
    HOST_ENV_VAR,
    JAVA_ENV_VAR,
    PORT_ENV_VAR,
    REGISTRY_URL_ENV_VAR,
)


@dataclass(frozen=True)
class Settings:
    """Runtime knobs that are not directory roots."""
    registry_url: str = DEFAULT_REGISTRY_URL
    java_executable: str = DEFAULT_JAVA_EXECUTABLE
    api_host: str = API_HOST
    api_port: int = API_PORT

    @classmethod
    def from_env(cls) -> "Settings":
        port = os.environ.get(PORT_ENV_VAR)
        try:
            api_port = int(port) if port else API_PORT
        except ValueError:
            raise ValueError(f"{PORT_ENV_VAR} must be an integer, got {port!r}")

        return cls(
            registry_url=os.environ.get(REGISTRY_URL_ENV_VAR, DEFAULT_REGISTRY_URL).rstrip("/"),
            java_executable=os.environ.get(JAVA_ENV_VAR, DEFAULT_JAVA_EXECUTABLE),
            api_host=os.environ.get(HOST_ENV_VAR, API_HOST),
            api_port=api_port,
        )
