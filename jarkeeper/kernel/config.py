from dataclasses import dataclass, field
from typing import Any

from jarkeeper.kernel.errors import ParseError
from jarkeeper.kernel.versions import ServerVersion, parse_version
from jarkeeper.kinds.base import ServerKind
from jarkeeper.kinds.factory import DEFAULT_KIND, get_kind


def _require_str(data: dict, field_name: str) -> str:
    if field_name not in data:
        raise ParseError(f"'{field_name}' property does not exist", component=field_name)
    value = data[field_name]
    if not isinstance(value, str):
        raise ParseError(f"'{field_name}' is not a string", component=field_name)
    return value


def _optional_str_list(data: dict, field_name: str) -> list[str]:
    value = data.get(field_name, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ParseError(f"'{field_name}' is not a list of strings", component=field_name)
    return list(value)


@dataclass
class ServerConfig:
    """
    Persisted configuration of one server instance.
    """
    name: str
    version: ServerVersion
    kind: ServerKind
    extra_java_args: list[str] = field(default_factory=list)
    extra_server_args: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ServerConfig":
        if not isinstance(data, dict):
            raise ParseError("Server configuration must be an object", component="config")

        kind_name = data.get("kind", DEFAULT_KIND)
        if not isinstance(kind_name, str):
            raise ParseError("'kind' is not a string", component="kind")

        return cls(
            name=_require_str(data, "name"),
            version=parse_version(_require_str(data, "version")),
            kind=get_kind(kind_name),
            extra_java_args=_optional_str_list(data, "extra_java_args"),
            extra_server_args=_optional_str_list(data, "extra_server_args"),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": str(self.version),
            "kind": self.kind.name,
            "extra_java_args": list(self.extra_java_args),
            "extra_server_args": list(self.extra_server_args),
        }
