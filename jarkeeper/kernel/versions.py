"""
Version identifiers used across jarkeeper.

A Minecraft version is `MAJOR.MINOR[.PATCH]`; a server version appends the
registry build number: `MAJOR.MINOR[.PATCH][-BUILD]`. The build number is
assigned by the artifact registry and is unrelated to the Minecraft patch.
"""
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional

from jarkeeper.kernel.errors import ParseError

_MINECRAFT_COMPONENTS = ("major", "minor", "patch")


def _parse_component(value: str, component: str, text: str) -> int:
    if not (value.isascii() and value.isdigit()):
        if value == "":
            raise ParseError(f"Missing {component} component in version '{text}'", component=component)
        raise ParseError(f"Non-numeric {component} component '{value}' in version '{text}'", component=component)
    return int(value)


@total_ordering
@dataclass(frozen=True)
class MinecraftVersion:
    major: int
    minor: int
    patch: Optional[int] = None

    def _sort_key(self) -> tuple:
        # A missing patch sorts before any present one (1.17 < 1.17.0).
        return (self.major, self.minor, -1 if self.patch is None else self.patch)

    def __lt__(self, other: "MinecraftVersion") -> bool:
        if not isinstance(other, MinecraftVersion):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}"
        if self.patch is not None:
            text += f".{self.patch}"
        return text

    @classmethod
    def parse(cls, text: str) -> "MinecraftVersion":
        return parse_minecraft_version(text)


@dataclass(frozen=True)
class ServerVersion:
    minecraft: MinecraftVersion
    build: Optional[int] = None

    def __str__(self) -> str:
        text = str(self.minecraft)
        if self.build is not None:
            text += f"-{self.build}"
        return text

    def with_build(self, build: Optional[int]) -> "ServerVersion":
        return ServerVersion(self.minecraft, build)

    @classmethod
    def parse(cls, text: str) -> "ServerVersion":
        return parse_version(text)


def parse_minecraft_version(text: str) -> MinecraftVersion:
    """
    Parse `MAJOR.MINOR[.PATCH]`.

    >>> parse_minecraft_version("1.12.2")
    MinecraftVersion(major=1, minor=12, patch=2)
    """
    if "-" in text:
        raise ParseError(f"Unexpected build suffix in Minecraft version '{text}'", component="build")

    parts = text.strip().split(".")
    if len(parts) > len(_MINECRAFT_COMPONENTS):
        raise ParseError(f"Too many components in version '{text}'", component="patch")

    numbers = [
        _parse_component(value, component, text)
        for value, component in zip(parts, _MINECRAFT_COMPONENTS)
    ]
    if len(numbers) < 2:
        raise ParseError(f"No minor component in version '{text}'", component="minor")

    return MinecraftVersion(*numbers)


def parse_version(text: str) -> ServerVersion:
    """
    Parse `MAJOR.MINOR[.PATCH][-BUILD]`.

    >>> parse_version("1.12.2-4")
    ServerVersion(minecraft=MinecraftVersion(major=1, minor=12, patch=2), build=4)
    """
    minecraft_text, sep, build_text = text.strip().partition("-")
    minecraft = parse_minecraft_version(minecraft_text)
    build = _parse_component(build_text, "build", text) if sep else None
    return ServerVersion(minecraft, build)


def format_version(version) -> str:
    """Inverse of parse_version / parse_minecraft_version."""
    return str(version)


def is_up_to_date(cached_build: int, latest_build: int) -> bool:
    return cached_build >= latest_build
