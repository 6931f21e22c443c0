"""FastAPI application main entry point."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
import sys
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

load_dotenv()

from ..services.config import AppConfig, get_config
from ..services.graph_panel import SurfaceFactory
from ..services.watcher import WorkspaceWatcher, loop_dispatch
from .dependencies import build_services
from .middleware import register_error_handlers
from .routes import commands, editor, graph, settings, system
from .surface import BrowserSurfaceFactory

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    system.install_log_buffer()


def create_app(
    config: Optional[AppConfig] = None,
    surface_factory: Optional[SurfaceFactory] = None,
) -> FastAPI:
    """Build the application. Tests pass their own config and surface factory."""
    config = config or get_config()
    configure_logging(config.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Index the workspace, start watching it, and tear everything down on exit."""
        logger.info("Starting graph server for workspace %s", config.workspace_root)
        services = build_services(config, surface_factory or BrowserSurfaceFactory(config))
        services.workspace.scan()
        if config.watch_workspace:
            watcher = WorkspaceWatcher(
                services.workspace, loop_dispatch(asyncio.get_running_loop())
            )
            try:
                watcher.start()
            except OSError as exc:
                logger.error("Could not watch workspace, live updates disabled: %s", exc)
            else:
                services.watcher = watcher
        app.state.services = services
        logger.info("Server ready")

        yield

        app.state.services = None
        services.close()
        logger.info("Server stopped")

    app = FastAPI(
        title="Note Graph API",
        description="Live graph of a folder of interlinked notes",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(graph.router, tags=["graph"])
    app.include_router(commands.router, tags=["commands"])
    app.include_router(editor.router, tags=["editor"])
    app.include_router(settings.router, tags=["settings"])
    app.include_router(system.router, tags=["system"])

    static_dir = config.graph_static_dir
    if static_dir is not None and static_dir.is_dir():
        app.mount("/graph", StaticFiles(directory=str(static_dir), html=True), name="graph")
        logger.info(f"Serving graph view from: {static_dir}")
    elif static_dir is not None:
        logger.warning(f"Graph view folder not found at: {static_dir}")

    return app


app = create_app()


__all__ = ["app", "create_app", "configure_logging"]
