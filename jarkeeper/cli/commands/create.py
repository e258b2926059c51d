import typer

from jarkeeper.cli import core
from jarkeeper.kinds.factory import DEFAULT_KIND


def create(
    name: str = typer.Argument(..., help="Name of the new server."),
    version: str = typer.Argument(..., help="Minecraft version (e.g. 1.16.5), or 'latest'."),
    kind: str = typer.Option(DEFAULT_KIND, "--kind", "-k", help="Server kind."),
    accept_eula: bool = typer.Option(False, "--accept-eula", help="Write eula.txt accepting the Minecraft EULA."),
):
    """
    Create a server instance with empty configs, worlds and plugins directories.
    """
    manager = core.build_manager()
    with core.handle_errors():
        config = core.run_async(manager.create(name, version, kind, accept_eula=accept_eula))

    core.console.print(
        f"[green]Created server '{config.name}'[/green] ({config.kind.name} {config.version})"
    )
    core.console.print(f"Server directory: {manager.servers.server_dir(config.name)}")
    if not accept_eula:
        core.console.print("[yellow]The Minecraft EULA has not been accepted; the server will stop on first start until configs/eula.txt says eula=true.[/yellow]")
