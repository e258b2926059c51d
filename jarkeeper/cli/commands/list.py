from rich.table import Table

from jarkeeper.cli import core


def list_servers():
    """
    List the configured servers.
    """
    manager = core.build_manager()
    with core.handle_errors():
        configs = manager.list_servers()
        rows = [(config, manager.cached_build(config)) for config in configs]

    if not rows:
        core.console.print("No servers configured. Create one with `jarkeeper create`.")
        return

    table = Table(title="Servers")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Version", style="green")
    table.add_column("Cached build", justify="right")

    for config, build in rows:
        table.add_row(config.name, config.kind.name, str(config.version), str(build) if build is not None else "-")
    core.console.print(table)
