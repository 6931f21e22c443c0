"""Shared FastAPI dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from fastapi import HTTPException, Request, WebSocket, status

from ..services.config import AppConfig
from ..services.editor import EditorHost
from ..services.graph_panel import GraphPanelCoordinator, SurfaceFactory
from ..services.settings import SettingsService
from ..services.vault import VaultService
from ..services.watcher import WorkspaceWatcher
from ..services.workspace import NoteWorkspace

logger = logging.getLogger(__name__)


@dataclass
class GraphServices:
    """Everything one running server shares between requests."""

    config: AppConfig
    workspace: NoteWorkspace
    settings: SettingsService
    editor: EditorHost
    coordinator: GraphPanelCoordinator
    watcher: Optional[WorkspaceWatcher] = None

    def close(self) -> None:
        self.coordinator.dispose()
        if self.watcher is not None:
            self.watcher.stop()


def build_services(config: AppConfig, surface_factory: SurfaceFactory) -> GraphServices:
    workspace = NoteWorkspace(VaultService(config))
    settings = SettingsService(config)
    editor = EditorHost(config)
    coordinator = GraphPanelCoordinator(
        workspace,
        settings,
        editor,
        surface_factory,
        marker_file=config.marker_file,
        save_delay=config.selection_save_delay_ms / 1000,
    )
    return GraphServices(
        config=config,
        workspace=workspace,
        settings=settings,
        editor=editor,
        coordinator=coordinator,
    )


def _services_from_state(state) -> GraphServices:
    services = getattr(state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "not_ready", "message": "Server is still starting"},
        )
    return services


def get_services(request: Request) -> GraphServices:
    return _services_from_state(request.app.state)


def get_socket_services(websocket: WebSocket) -> Optional[GraphServices]:
    return getattr(websocket.app.state, "services", None)


__all__ = ["GraphServices", "build_services", "get_services", "get_socket_services"]
