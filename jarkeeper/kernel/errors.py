"""
Exception hierarchy for jarkeeper.

Every failure surfaced by the kernel and its adapters derives from
JarKeeperError, so the CLI and the REST facade can translate them in one
place. Nothing here is retried automatically.
"""
from typing import Optional


class JarKeeperError(Exception):
    """Base class for all jarkeeper errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


class ParseError(JarKeeperError, ValueError):
    """Malformed version or configuration text."""

    def __init__(self, message: str, component: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        self.component = component


class UnknownKindError(ParseError):
    """A server kind name that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"'{name}' is not a valid server kind", component="kind")
        self.name = name


class NetworkError(JarKeeperError):
    """Registry or download transport/decoding failure."""


class NotFoundError(JarKeeperError, LookupError):
    """Unknown upstream version/build, or unknown local server."""


class NoVersionsError(NotFoundError):
    """The registry returned an empty version list."""


class VersionMismatchError(NotFoundError):
    """No cache entry matches the Minecraft version a server is pinned to."""


class ServerExistsError(JarKeeperError):
    """A server with the requested name already exists."""


class StorageError(JarKeeperError, OSError):
    """Filesystem failure while reading or writing jarkeeper state."""


class BulkRefreshError(JarKeeperError):
    """
    One or more bulk refresh units failed.

    `failures` keeps every failed unit as a (key, exception) pair. `outcomes`
    holds the outcome of every unit, failed or not, when the caller has them.
    """

    def __init__(self, failures: list, outcomes: list | None = None):
        self.failures = list(failures)
        self.outcomes = list(outcomes or [])
        keys = ", ".join(str(key) for key, _ in self.failures)
        super().__init__(f"{len(self.failures)} refresh unit(s) failed: {keys}")
