"""Graph snapshot route and the graph view WebSocket."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, WebSocket

from ...models.graph import GraphData
from ...services.graph_panel import PanelState
from ..dependencies import GraphServices, get_services, get_socket_services
from ..surface import ALREADY_OPEN_CLOSE_CODE, WebSocketSurface

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/graph", response_model=GraphData)
async def get_graph_data(
    services: Annotated[GraphServices, Depends(get_services)],
) -> GraphData:
    """Build and return the current graph."""
    try:
        return services.coordinator.build_snapshot().to_graph_data()
    except Exception as e:
        logger.exception("Graph build failed")
        raise HTTPException(status_code=500, detail=f"Failed to fetch graph data: {str(e)}")


@router.websocket("/ws/graph")
async def graph_view_socket(websocket: WebSocket):
    """
    Connect a browser as the graph view.

    Opens the view when it is closed. Only one browser may be attached at a time.
    """
    services = get_socket_services(websocket)
    if services is None:
        await websocket.close(code=1011, reason="Server not initialized")
        return

    await websocket.accept()
    coordinator = services.coordinator
    if coordinator.state is PanelState.CLOSED:
        coordinator.show()

    surface = coordinator.surface
    if not isinstance(surface, WebSocketSurface) or surface.is_attached:
        logger.warning("Refusing second graph view connection")
        await websocket.close(code=ALREADY_OPEN_CLOSE_CODE, reason="Graph view already open")
        return

    logger.info("Graph view connected")
    await surface.run(websocket)
