"""Unit tests for the graph view coordinator."""

import logging
from pathlib import Path
from typing import Any, List, Optional
from unittest.mock import MagicMock

import pytest

from backend.src.services.config import AppConfig
from backend.src.services.editor import (
    EditorDocumentEvent,
    EditorHost,
    OpenDocumentRequest,
    ViewColumn,
)
from backend.src.services.events import Disposable, EventEmitter
from backend.src.services.graph_panel import GraphPanelCoordinator, PanelState, node_id_to_path
from backend.src.services.settings import STYLE_KEY, TITLE_MAX_LENGTH_KEY, SettingsService
from backend.src.services.vault import VaultService
from backend.src.services.workspace import NoteWorkspace


class FakeSurface:
    """In-memory graph view recording everything posted to it."""

    def __init__(self) -> None:
        self.posted: List[dict] = []
        self.revealed: List[Optional[ViewColumn]] = []
        self._disposed = False
        self._received: EventEmitter[Any] = EventEmitter()
        self._disposed_event: EventEmitter[None] = EventEmitter()

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def post_message(self, message: dict) -> None:
        self.posted.append(message)

    def reveal(self, column: Optional[ViewColumn] = None) -> None:
        self.revealed.append(column)

    def on_did_receive_message(self, listener) -> Disposable:
        return self._received.event(listener)

    def on_did_dispose(self, listener) -> Disposable:
        return self._disposed_event.event(listener)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._disposed_event.fire(None)

    def receive(self, raw: Any) -> None:
        self._received.fire(raw)

    def types(self) -> List[str]:
        return [message["type"] for message in self.posted]


class FakeScheduler:
    def __init__(self) -> None:
        self.callbacks = []

    def __call__(self, delay, callback):
        timer = MagicMock()
        self.callbacks.append((timer, callback))
        return timer

    def run_all(self) -> None:
        callbacks, self.callbacks = self.callbacks, []
        for timer, callback in callbacks:
            if not timer.cancel.called:
                callback()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    root = tmp_path / "notes"
    (root / "courses" / "algebra").mkdir(parents=True)
    (root / "courses" / "algebra" / "meta.json").write_text("{}", encoding="utf-8")
    (root / "courses" / "algebra" / "groups.md").write_text(
        "# Groups and their many wonderful properties\n\nSee [[rings]] and [[missing]].",
        encoding="utf-8",
    )
    (root / "rings.md").write_text("# Rings\n\nBack to [[groups]].", encoding="utf-8")
    return AppConfig(
        workspace_root=root,
        graph_style={"node": {"algebra": "#ff0000"}},
        watch_workspace=False,
    )


@pytest.fixture
def workspace(config: AppConfig) -> NoteWorkspace:
    workspace = NoteWorkspace(VaultService(config))
    workspace.scan()
    return workspace


@pytest.fixture
def settings(config: AppConfig) -> SettingsService:
    return SettingsService(config)


@pytest.fixture
def editor(config: AppConfig) -> EditorHost:
    host = EditorHost(config)
    host.open_document = MagicMock()
    return host


@pytest.fixture
def surfaces() -> List[FakeSurface]:
    return []


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def coordinator(workspace, settings, editor, surfaces, scheduler) -> GraphPanelCoordinator:
    def factory() -> FakeSurface:
        surface = FakeSurface()
        surfaces.append(surface)
        return surface

    return GraphPanelCoordinator(workspace, settings, editor, factory, scheduler=scheduler)


def _path(workspace: NoteWorkspace, relative: str) -> str:
    return (workspace.root / relative).resolve().as_posix()


class TestLifecycle:
    def test_starts_closed_and_pushes_nothing(self, coordinator, workspace, surfaces) -> None:
        workspace.scan()

        assert coordinator.state is PanelState.CLOSED
        assert surfaces == []

    def test_show_creates_one_view(self, coordinator, surfaces) -> None:
        assert coordinator.show() is True
        assert coordinator.state is PanelState.OPEN
        assert len(surfaces) == 1

    def test_show_when_open_reveals_existing_view(self, coordinator, surfaces, editor) -> None:
        coordinator.show()
        editor.set_active_document(EditorDocumentEvent("/not/indexed.md"))

        assert coordinator.show() is False
        assert coordinator.show(ViewColumn.TWO) is False

        assert len(surfaces) == 1
        assert surfaces[0].revealed == [ViewColumn.ACTIVE, ViewColumn.TWO]

    def test_repeated_show_keeps_single_subscription(
        self, coordinator, surfaces, workspace
    ) -> None:
        coordinator.show()
        coordinator.show()
        coordinator.show()

        workspace.index_file(workspace.root / "rings.md")

        assert surfaces[0].types() == ["didUpdateGraphData"]

    def test_closing_view_releases_subscriptions(
        self, coordinator, surfaces, workspace, settings, editor
    ) -> None:
        coordinator.show()
        surfaces[0].dispose()

        workspace.scan()
        settings.update({STYLE_KEY: {"background": "#000"}})
        editor.set_active_document(EditorDocumentEvent(_path(workspace, "rings.md")))

        assert coordinator.state is PanelState.CLOSED
        assert surfaces[0].posted == []

    def test_show_after_close_creates_new_view(self, coordinator, surfaces) -> None:
        coordinator.show()
        surfaces[0].dispose()

        assert coordinator.show() is True
        assert len(surfaces) == 2

    def test_dispose_closes_view(self, coordinator, surfaces) -> None:
        coordinator.show()

        coordinator.dispose()
        coordinator.dispose()

        assert surfaces[0].is_disposed
        assert coordinator.state is PanelState.CLOSED


class TestOutbound:
    def test_handshake_pushes_style_then_graph(self, coordinator, surfaces, workspace) -> None:
        coordinator.show()

        surfaces[0].receive({"type": "webviewDidLoad"})

        style, graph = surfaces[0].posted
        assert style == {"type": "didUpdateStyle", "payload": {"node": {"algebra": "#ff0000"}}}
        assert graph["type"] == "didUpdateGraphData"
        node_info = graph["payload"]["nodeInfo"]
        groups = node_info[_path(workspace, "courses/algebra/groups.md")]
        assert groups["type"] == "algebra"
        assert groups["title"] == "Groups and their many wo..."
        assert node_info["missing"]["isPlaceholder"] is True
        assert len(graph["payload"]["links"]) == 3

    def test_workspace_update_pushes_full_graph(self, coordinator, surfaces, workspace) -> None:
        coordinator.show()
        (workspace.root / "fields.md").write_text("# Fields", encoding="utf-8")

        workspace.index_file(workspace.root / "fields.md")

        (message,) = surfaces[0].posted
        assert message["type"] == "didUpdateGraphData"
        assert _path(workspace, "fields.md") in message["payload"]["nodeInfo"]
        assert len(message["payload"]["nodeInfo"]) == 4

    def test_new_note_resolves_earlier_placeholder(self, coordinator, surfaces, workspace) -> None:
        coordinator.show()
        (workspace.root / "missing.md").write_text("# Missing", encoding="utf-8")

        workspace.index_file(workspace.root / "missing.md")

        node_info = surfaces[0].posted[-1]["payload"]["nodeInfo"]
        assert "missing" not in node_info
        assert node_info[_path(workspace, "missing.md")]["isPlaceholder"] is False

    def test_style_change_pushes_style(self, coordinator, surfaces, settings) -> None:
        coordinator.show()

        settings.update({STYLE_KEY: {"background": "#000"}})

        assert surfaces[0].posted == [{"type": "didUpdateStyle", "payload": {"background": "#000"}}]

    def test_title_length_change_pushes_graph(
        self, coordinator, surfaces, settings, workspace
    ) -> None:
        coordinator.show()

        settings.update({TITLE_MAX_LENGTH_KEY: 0})

        (message,) = surfaces[0].posted
        groups = message["payload"]["nodeInfo"][_path(workspace, "courses/algebra/groups.md")]
        assert groups["title"] == "Groups and their many wonderful properties"

    def test_active_editor_selects_note(self, coordinator, surfaces, editor, workspace) -> None:
        coordinator.show()
        path = _path(workspace, "rings.md")

        editor.set_active_document(EditorDocumentEvent(path))

        assert surfaces[0].posted == [{"type": "didSelectNote", "payload": path}]

    def test_save_selects_after_delay(
        self, coordinator, surfaces, editor, workspace, scheduler
    ) -> None:
        coordinator.show()
        path = _path(workspace, "rings.md")
        editor.set_active_document(EditorDocumentEvent(path))
        surfaces[0].posted.clear()

        editor.document_saved(EditorDocumentEvent(path))
        assert surfaces[0].posted == []

        scheduler.run_all()
        assert surfaces[0].posted == [{"type": "didSelectNote", "payload": path}]

    def test_pending_save_selection_dropped_when_view_closes(
        self, coordinator, surfaces, editor, workspace, scheduler
    ) -> None:
        coordinator.show()
        path = _path(workspace, "rings.md")
        editor.set_active_document(EditorDocumentEvent(path))
        editor.document_saved(EditorDocumentEvent(path))
        surfaces[0].posted.clear()

        surfaces[0].dispose()
        scheduler.run_all()

        assert surfaces[0].posted == []

    def test_post_after_dispose_is_dropped(self, coordinator, surfaces) -> None:
        coordinator.show()
        surface = surfaces[0]
        surface._disposed = True

        coordinator.update_graph()

        assert surface.posted == []


class TestInbound:
    def test_select_node_opens_editor(self, coordinator, surfaces, editor, workspace) -> None:
        coordinator.show()
        path = _path(workspace, "rings.md")

        surfaces[0].receive({"type": "webviewDidSelectNode", "payload": path})

        editor.open_document.assert_called_once_with(
            workspace.get(path).file_path, ViewColumn.ONE
        )

    def test_select_node_accepts_file_uri(self, coordinator, surfaces, editor, workspace) -> None:
        coordinator.show()
        uri = (workspace.root / "rings.md").resolve().as_uri()

        surfaces[0].receive({"type": "webviewDidSelectNode", "payload": uri})

        editor.open_document.assert_called_once()

    def test_select_placeholder_does_nothing(self, coordinator, surfaces, editor) -> None:
        coordinator.show()

        surfaces[0].receive({"type": "webviewDidSelectNode", "payload": "missing"})

        editor.open_document.assert_not_called()

    def test_unknown_message_is_ignored(self, coordinator, surfaces, editor) -> None:
        coordinator.show()

        surfaces[0].receive({"type": "somethingNew", "payload": {"x": 1}})
        surfaces[0].receive("not even a dict")

        assert surfaces[0].posted == []
        editor.open_document.assert_not_called()

    def test_error_report_is_logged(self, coordinator, surfaces, caplog) -> None:
        coordinator.show()

        with caplog.at_level(logging.ERROR):
            surfaces[0].receive({"type": "error", "payload": "render exploded"})

        assert "render exploded" in caplog.text
        assert surfaces[0].posted == []

    def test_malformed_message_is_logged_and_dropped(
        self, coordinator, surfaces, editor, caplog
    ) -> None:
        coordinator.show()

        with caplog.at_level(logging.WARNING):
            surfaces[0].receive({"type": "webviewDidSelectNode", "payload": {"id": 1}})

        assert "webviewDidSelectNode" in caplog.text
        editor.open_document.assert_not_called()


@pytest.mark.parametrize(
    "node_id, expected",
    [
        ("/notes/a.md", "/notes/a.md"),
        ("file:///notes/with%20space.md", "/notes/with space.md"),
        ("missing", "missing"),
    ],
)
def test_node_id_to_path(node_id: str, expected: str) -> None:
    assert node_id_to_path(node_id) == expected


def test_selected_node_announces_open_request(config, workspace, settings) -> None:
    editor = EditorHost(config)
    requests: List[OpenDocumentRequest] = []
    editor.on_did_request_open(requests.append)
    surfaces: List[FakeSurface] = []

    def factory() -> FakeSurface:
        surfaces.append(FakeSurface())
        return surfaces[-1]

    coordinator = GraphPanelCoordinator(workspace, settings, editor, factory)
    coordinator.show()
    rings = _path(workspace, "rings.md")

    surfaces[0].receive({"type": "webviewDidSelectNode", "payload": rings})

    file_path = workspace.get(rings).file_path
    assert requests == [OpenDocumentRequest(path=file_path, column=ViewColumn.ONE)]
