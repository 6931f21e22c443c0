"""Lifecycle of the single graph view and everything pushed to it."""

from __future__ import annotations

from enum import Enum
import logging
from pathlib import Path
import time
from typing import Any, Callable, Optional, Protocol
from urllib.parse import unquote, urlparse

from ..models.graph import GraphSnapshot
from ..models.messages import (
    DidUpdateGraphData,
    ErrorReport,
    MessageProtocolError,
    OutboundMessage,
    WebviewDidLoad,
    WebviewDidSelectNode,
    parse_inbound,
    to_wire,
)
from .config import DEFAULT_MARKER_FILE
from .editor import EditorHost, ViewColumn
from .events import Disposable, DisposableStore, Listener
from .graph_builder import GraphBuilder, PathExists
from .selection_sync import DEFAULT_SAVE_DELAY_SECONDS, Scheduler, SelectionSync, call_later
from .settings import TITLE_MAX_LENGTH_KEY, ConfigurationChangeEvent, SettingsService
from .style_bridge import StyleConfigBridge
from .workspace import NoteWorkspace, WorkspaceChange

logger = logging.getLogger(__name__)


class PanelState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


class GraphSurface(Protocol):
    """The rendering side of the graph view, e.g. a browser over a WebSocket."""

    @property
    def is_disposed(self) -> bool: ...

    def post_message(self, message: dict) -> None: ...

    def reveal(self, column: Optional[ViewColumn] = None) -> None: ...

    def on_did_receive_message(self, listener: Listener[Any]) -> Disposable: ...

    def on_did_dispose(self, listener: Listener[None]) -> Disposable: ...

    def dispose(self) -> None: ...


SurfaceFactory = Callable[[], GraphSurface]


def node_id_to_path(node_id: str) -> str:
    """Accept a bare path or a ``file://`` URI as sent by the view."""
    if node_id.startswith("file:"):
        return unquote(urlparse(node_id).path)
    return node_id


class GraphPanelCoordinator:
    """
    Owns at most one graph view.

    ``show()`` opens the view (CLOSED -> OPEN) or reveals the open one. While
    open, every workspace update rebuilds the whole graph and pushes it, and
    the view's ``webviewDidLoad`` handshake pushes the style and then the graph.
    When the view goes away (OPEN -> CLOSED) every subscription made for it is
    released together and nothing more is posted.
    """

    def __init__(
        self,
        workspace: NoteWorkspace,
        settings: SettingsService,
        editor: EditorHost,
        surface_factory: SurfaceFactory,
        *,
        marker_file: str = DEFAULT_MARKER_FILE,
        save_delay: float = DEFAULT_SAVE_DELAY_SECONDS,
        exists: PathExists = Path.exists,
        scheduler: Scheduler = call_later,
    ) -> None:
        self.workspace = workspace
        self.settings = settings
        self.editor = editor
        self.surface_factory = surface_factory
        self.marker_file = marker_file
        self.save_delay = save_delay
        self.exists = exists
        self.scheduler = scheduler
        self.style = StyleConfigBridge(settings)
        self._surface: Optional[GraphSurface] = None
        self._subscriptions: Optional[DisposableStore] = None

    @property
    def state(self) -> PanelState:
        return PanelState.OPEN if self._surface is not None else PanelState.CLOSED

    @property
    def surface(self) -> Optional[GraphSurface]:
        return self._surface

    def is_open(self) -> bool:
        return self._surface is not None and not self._surface.is_disposed

    # Lifecycle ---------------------------------------------------------------

    def show(self, column: Optional[ViewColumn] = None) -> bool:
        """Open the graph view, or reveal it if already open. Returns True when created."""
        if self._surface is not None:
            self._surface.reveal(column if column is not None else self.editor.active_column)
            return False

        surface = self.surface_factory()
        self._surface = surface
        store = DisposableStore()
        self._subscriptions = store

        def surface_alive() -> bool:
            return self._surface is surface and not surface.is_disposed

        selection = SelectionSync(
            self.workspace,
            self.post,
            surface_alive,
            save_delay=self.save_delay,
            scheduler=self.scheduler,
        )
        store.add(self.workspace.on_did_update(self._on_workspace_updated))
        store.add(self.style.watch(self.post))
        store.add(self.settings.on_did_change_configuration(self._on_settings_changed))
        store.add(selection.watch(self.editor))
        store.add(surface.on_did_receive_message(self.handle_message))
        store.add(surface.on_did_dispose(lambda _: self._teardown(surface)))
        logger.info("Graph view opened")
        return True

    def _teardown(self, surface: GraphSurface) -> None:
        if self._surface is not surface:
            return
        self._surface = None
        subscriptions, self._subscriptions = self._subscriptions, None
        if subscriptions is not None:
            subscriptions.dispose()
        logger.info("Graph view closed")

    def dispose(self) -> None:
        surface = self._surface
        if surface is None:
            return
        surface.dispose()
        self._teardown(surface)

    # Outbound ----------------------------------------------------------------

    def post(self, message: OutboundMessage) -> None:
        surface = self._surface
        if surface is None or surface.is_disposed:
            return
        surface.post_message(to_wire(message))

    def build_snapshot(self) -> GraphSnapshot:
        builder = GraphBuilder(
            title_max_length=self.settings.title_max_length,
            marker_file=self.marker_file,
            exists=self.exists,
        )
        return builder.build(self.workspace.list(), self.workspace.get_all_connections())

    def update_graph(self) -> None:
        if not self.is_open():
            return
        start_time = time.time()
        snapshot = self.build_snapshot()
        self.post(DidUpdateGraphData(payload=snapshot.to_graph_data()))
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Graph pushed to view",
            extra={
                "nodes": len(snapshot.node_info),
                "edges": len(snapshot.edges),
                "duration_ms": f"{duration_ms:.2f}",
            },
        )

    def _on_workspace_updated(self, change: WorkspaceChange) -> None:
        logger.debug("Workspace changed (%s), rebuilding graph", change.reason)
        self.update_graph()

    def _on_settings_changed(self, event: ConfigurationChangeEvent) -> None:
        if event.affects_configuration(TITLE_MAX_LENGTH_KEY):
            self.update_graph()

    # Inbound -----------------------------------------------------------------

    def handle_message(self, raw: Any) -> None:
        try:
            message = parse_inbound(raw)
        except MessageProtocolError as exc:
            logger.warning("Dropping malformed message from graph view: %s", exc)
            return

        if isinstance(message, WebviewDidLoad):
            self.post(self.style.style_message())
            self.update_graph()
        elif isinstance(message, WebviewDidSelectNode):
            resource = self.workspace.get(node_id_to_path(message.payload))
            if resource is not None:
                self.editor.open_document(resource.file_path, ViewColumn.ONE)
        elif isinstance(message, ErrorReport):
            logger.error("An error occurred in the graph view: %s", message.payload)
        else:
            logger.debug("Ignoring unknown message from graph view: %r", raw)


__all__ = ["GraphPanelCoordinator", "GraphSurface", "PanelState", "SurfaceFactory", "node_id_to_path"]
