"""
Shared plumbing for CLI commands: manager wiring, async bridging, error
reporting and download progress.
"""

import asyncio
from contextlib import contextmanager
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

from jarkeeper.internal.logging import get_logger
from jarkeeper.internal.paths import AppPaths
from jarkeeper.internal.settings import Settings
from jarkeeper.kernel.artifacts import CacheKey
from jarkeeper.kernel.errors import BulkRefreshError, JarKeeperError
from jarkeeper.kernel.service import ServerManager

logger = get_logger(__name__)

console = Console()
err_console = Console(stderr=True)

# ---------------------------------------------------------------------
# Async helper
# ---------------------------------------------------------------------

def run_async(coro):
    """
    Run an async coroutine from sync command code.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise RuntimeError("run_async() cannot be used inside a running event loop")

# ---------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------

def build_paths() -> AppPaths:
    return AppPaths.from_env().ensure()


def build_settings() -> Settings:
    try:
        return Settings.from_env()
    except ValueError as e:
        fail(str(e))


def build_manager() -> ServerManager:
    return ServerManager.from_settings(build_paths(), build_settings())

# ---------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------

def fail(message: str, code: int = 1):
    err_console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(code)


@contextmanager
def handle_errors() -> Iterator[None]:
    """
    Turns jarkeeper errors into a red message and exit code 1.
    """
    try:
        yield
    except BulkRefreshError as e:
        logger.error("Bulk refresh failed", failed=len(e.failures))
        for key, error in e.failures:
            err_console.print(f"[red]  {key}: {escape(str(error))}[/red]")
        fail(str(e))
    except JarKeeperError as e:
        logger.error("Command failed", error=str(e), error_type=type(e).__name__)
        fail(str(e))

# ---------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------

def download_progress() -> Progress:
    return Progress(
        TextColumn("[cyan]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=err_console,
        transient=True,
    )


class ProgressReporter:
    """
    Progress callback that keeps one bar per cache key.
    """

    def __init__(self, progress: Progress):
        self.progress = progress
        self._tasks: dict[CacheKey, TaskID] = {}

    def __call__(self, key: CacheKey, received: int, total: Optional[int]) -> None:
        task = self._tasks.get(key)
        if task is None:
            task = self.progress.add_task(str(key), total=total)
            self._tasks[key] = task
        self.progress.update(task, completed=received, total=total)
