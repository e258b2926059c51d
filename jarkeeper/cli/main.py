import typer

from jarkeeper.cli import core
from jarkeeper.cli.commands import (
    cache,
    create,
    download,
    list as list_cmd,
    remove,
    serve,
    start,
    version,
)
from jarkeeper.internal.logging import setup_logging

app = typer.Typer(
    name="jarkeeper",
    help="Create, cache and start Paper Minecraft servers.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also log to stderr."),
):
    setup_logging(
        log_level_name="DEBUG" if verbose else "INFO",
        log_file_path=core.build_paths().log_file,
        console_output=verbose,
    )


app.command("create")(create.create)
app.command("start")(start.start)
app.command("list")(list_cmd.list_servers)
app.command("remove")(remove.remove)
app.command("download")(download.download)
app.command("serve")(serve.serve)
app.command("version")(version.version)
app.add_typer(cache.cache_app, name="cache")

if __name__ == "__main__":
    app()
