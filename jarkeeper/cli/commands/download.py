from pathlib import Path
from typing import Optional

import typer

from jarkeeper.cli import core
from jarkeeper.kinds.factory import DEFAULT_KIND


def download(
    version: str = typer.Argument(..., help="Version to fetch: 1.16.5 for the latest build, 1.16.5-100 for a given one."),
    kind: str = typer.Option(DEFAULT_KIND, "--kind", "-k", help="Server kind."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Destination file."),
):
    """
    Download a server jar to a file, bypassing the cache.
    """
    manager = core.build_manager()
    with core.handle_errors():
        with core.download_progress() as progress:
            fetched, path = core.run_async(
                manager.download(version, destination=output, kind=kind, on_progress=core.ProgressReporter(progress))
            )
    core.console.print(f"[green]Downloaded {kind} {fetched}[/green] to {path}")
