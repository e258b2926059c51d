from typing import Optional

import typer
import uvicorn

from jarkeeper.adapters.http.fastapi_server import create_app
from jarkeeper.cli import core
from jarkeeper.internal.logging import get_logger

logger = get_logger(__name__)


def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind the API to."),
    port: Optional[int] = typer.Option(None, help="Port to bind the API to."),
):
    """
    Serve the REST API for listing and starting servers.
    """
    manager = core.build_manager()
    settings = core.build_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    logger.info("Starting API server", host=host, port=port)
    core.console.print(f"Serving jarkeeper API on http://{host}:{port}")
    uvicorn.run(create_app(manager), host=host, port=port, workers=1, reload=False)
