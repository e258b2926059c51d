import subprocess
from typing import Any, Optional

import typer
import uvicorn
from fastapi import BackgroundTasks, FastAPI, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from jarkeeper.internal.logging import get_logger, setup_logging
from jarkeeper.internal.paths import AppPaths
from jarkeeper.internal.settings import Settings
from jarkeeper.kernel.errors import JarKeeperError, NotFoundError
from jarkeeper.kernel.service import ServerManager

logger = get_logger(__name__)
cli_app = typer.Typer()


# ---------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------

class Envelope(BaseModel):
    success: bool
    payload: Any = None


class ServerSummary(BaseModel):
    name: str
    version: str
    kind: str


class ServerDetail(ServerSummary):
    cached_build: Optional[int] = None


def _reply(status_code: int, payload: Any = None) -> JSONResponse:
    body = Envelope(success=status_code < 400, payload=payload)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _error(e: JarKeeperError) -> JSONResponse:
    if isinstance(e, NotFoundError):
        return _reply(status.HTTP_404_NOT_FOUND, str(e))
    return _reply(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))


# ---------------------------------------------------------------------
# App
# ---------------------------------------------------------------------

def create_app(manager: ServerManager) -> FastAPI:
    """
    REST facade over `manager`. Servers started here run detached, with
    their standard streams discarded.
    """
    app = FastAPI(title="jarkeeper")

    def _launch(name: str) -> subprocess.Popen:
        config = manager.get(name)
        return manager.launcher.launch(
            config,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    async def _refresh_and_launch(name: str) -> None:
        try:
            config = manager.get(name)
            await manager.prepare(config)
            process = _launch(name)
        except JarKeeperError as e:
            logger.error("Background start failed", name=name, error=str(e))
            return
        logger.info("Background start finished", name=name, pid=process.pid)

    @app.get("/server")
    async def list_servers():
        try:
            configs = manager.list_servers()
        except JarKeeperError as e:
            logger.error("Listing servers failed", error=str(e))
            return _reply(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
        payload = [
            ServerSummary(name=c.name, version=str(c.version), kind=c.kind.name).model_dump()
            for c in configs
        ]
        return _reply(status.HTTP_200_OK, payload)

    @app.get("/server/{name}")
    async def get_server(name: str):
        try:
            config = manager.get(name)
            detail = ServerDetail(
                name=config.name,
                version=str(config.version),
                kind=config.kind.name,
                cached_build=manager.cached_build(config),
            )
        except JarKeeperError as e:
            return _error(e)
        return _reply(status.HTTP_200_OK, detail.model_dump())

    @app.get("/server/{name}/start")
    async def start_server(name: str, background_tasks: BackgroundTasks):
        try:
            config = manager.get(name)
            if await manager.needs_refresh(config):
                logger.info("Scheduling refresh before start", name=name)
                background_tasks.add_task(_refresh_and_launch, name)
                return _reply(status.HTTP_202_ACCEPTED, {"name": name, "refreshing": True})
            process = _launch(name)
        except JarKeeperError as e:
            logger.error("Start request failed", name=name, error=str(e))
            return _error(e)
        return _reply(status.HTTP_200_OK, {"name": name, "pid": process.pid})

    return app


# ---------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------

@cli_app.command()
def main(
    host: Optional[str] = typer.Option(None, help="Host to bind the server to."),
    port: Optional[int] = typer.Option(None, help="Port to bind the server to."),
):
    """
    Run the REST API standalone.
    """
    paths = AppPaths.from_env().ensure()
    setup_logging(log_file_path=paths.log_file)
    settings = Settings.from_env()
    manager = ServerManager.from_settings(paths, settings)

    host = host or settings.api_host
    port = port or settings.api_port
    logger.info("Starting API server", host=host, port=port)
    uvicorn.run(create_app(manager), host=host, port=port, workers=1, reload=False)


if __name__ == "__main__":
    cli_app()
