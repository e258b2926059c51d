import importlib.metadata

import typer

from jarkeeper.internal.constants import APP_NAME
from jarkeeper.internal.logging import get_logger

logger = get_logger(__name__)


def version():
    """
    Show the jarkeeper version.
    """
    try:
        package_version = importlib.metadata.version(APP_NAME)
    except importlib.metadata.PackageNotFoundError:
        typer.echo(f"{APP_NAME} is not installed; version metadata not found.")
        logger.warning("Package version not found", package=APP_NAME)
        raise typer.Exit(1)
    typer.echo(f"{APP_NAME} version: {package_version}")
