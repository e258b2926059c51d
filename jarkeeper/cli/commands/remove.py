import typer

from jarkeeper.cli import core


def remove(
    name: str = typer.Argument(..., help="Server to remove."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
):
    """
    Delete a server's configuration and its configs, worlds and plugins.
    """
    manager = core.build_manager()
    with core.handle_errors():
        manager.get(name)

        if not yes:
            core.console.print(f"[red]This deletes every world and plugin of '{name}'.[/red]")
            typed = typer.prompt("Type the server name to confirm").strip()
            if typed != name:
                core.console.print("Aborted.")
                raise typer.Exit(1)

        manager.remove(name)
    core.console.print(f"[green]Removed server '{name}'.[/green]")
