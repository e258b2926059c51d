import typer
from rich.table import Table

from jarkeeper.cli import core

cache_app = typer.Typer(help="Manage cached server jars.", no_args_is_help=True)


@cache_app.command("upgrade")
def upgrade():
    """
    Download the newest build of every cached version, concurrently.
    """
    manager = core.build_manager()
    with core.handle_errors():
        with core.download_progress() as progress:
            outcomes = core.run_async(manager.upgrade_cache(on_progress=core.ProgressReporter(progress)))

    if not outcomes:
        core.console.print("The cache is empty.")
        return
    for outcome in outcomes:
        if outcome.downloaded:
            core.console.print(f"[green]{outcome.key}[/green] upgraded to build {outcome.artifact.version.build}")
        else:
            core.console.print(f"{outcome.key} is up to date")


@cache_app.command("purge")
def purge(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
):
    """
    Delete every cached jar.
    """
    manager = core.build_manager()
    if not yes and not typer.confirm("Delete every cached server jar?"):
        raise typer.Exit(1)
    with core.handle_errors():
        removed = manager.purge_cache()
    core.console.print(f"Removed {len(removed)} cached artifact(s).")


@cache_app.command("list")
def list_cache():
    """
    Show cached jars and their builds.
    """
    manager = core.build_manager()
    with core.handle_errors():
        entries = manager.cached_artifacts()

    if not entries:
        core.console.print("The cache is empty.")
        return

    table = Table(title="Cached artifacts")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Build", justify="right", style="green")
    table.add_column("File")

    for entry in entries:
        location = str(entry.path) if entry.present else f"[red]{entry.path} (missing)[/red]"
        table.add_row(str(entry.key), str(entry.build), location)
    core.console.print(table)
