"""Service layer: workspace index, graph building and graph view coordination."""

from .config import AppConfig, get_config, reload_config
from .editor import EditorDocumentEvent, EditorHost, ViewColumn
from .events import Disposable, DisposableStore, EventEmitter
from .graph_builder import GraphBuilder, build_graph, cut_title, nearest_marked_ancestor
from .graph_panel import GraphPanelCoordinator, GraphSurface, PanelState
from .selection_sync import SelectionSync
from .settings import ConfigurationChangeEvent, SettingsService
from .style_bridge import StyleConfigBridge
from .vault import VaultService, WorkspaceError, normalize_uri_path, sanitize_path
from .watcher import WorkspaceWatcher
from .workspace import NoteWorkspace, WorkspaceChange, extract_links, normalize_slug

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "EditorHost",
    "EditorDocumentEvent",
    "ViewColumn",
    "Disposable",
    "DisposableStore",
    "EventEmitter",
    "GraphBuilder",
    "build_graph",
    "cut_title",
    "nearest_marked_ancestor",
    "GraphPanelCoordinator",
    "GraphSurface",
    "PanelState",
    "SelectionSync",
    "SettingsService",
    "ConfigurationChangeEvent",
    "StyleConfigBridge",
    "VaultService",
    "WorkspaceError",
    "normalize_uri_path",
    "sanitize_path",
    "WorkspaceWatcher",
    "NoteWorkspace",
    "WorkspaceChange",
    "extract_links",
    "normalize_slug",
]
