import typer

from jarkeeper.cli import core
from jarkeeper.internal.logging import get_logger

logger = get_logger(__name__)


def start(
    name: str = typer.Argument(..., help="Server to start."),
    detach: bool = typer.Option(False, "--detach", "-d", help="Return once the server process is spawned."),
):
    """
    Start a server, downloading a newer build first when one exists.
    """
    manager = core.build_manager()
    with core.handle_errors():
        with core.download_progress() as progress:
            process = core.run_async(manager.start(name, on_progress=core.ProgressReporter(progress)))

    core.console.print(f"Server '{name}' started (pid {process.pid}).")
    if detach:
        return

    try:
        code = process.wait()
    except KeyboardInterrupt:
        # The server got the same SIGINT from the terminal; let it shut down.
        code = process.wait()
    logger.info("Server exited", name=name, code=code)
    if code != 0:
        raise typer.Exit(code)
