"""Editor integration: activity events in, "open this note" requests out."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
import logging
from pathlib import Path
import shlex
import subprocess
from typing import Optional

from .config import AppConfig, get_config
from .events import Disposable, EventEmitter, Listener

logger = logging.getLogger(__name__)

FILE_SCHEME = "file"


class ViewColumn(IntEnum):
    """Editor columns, numbered like the editor's split groups."""

    ACTIVE = -1
    ONE = 1
    TWO = 2
    THREE = 3


@dataclass(frozen=True)
class EditorDocumentEvent:
    """A document the editor reports as activated or saved."""

    path: str
    scheme: str = FILE_SCHEME

    @property
    def is_file(self) -> bool:
        return self.scheme == FILE_SCHEME


@dataclass(frozen=True)
class OpenDocumentRequest:
    path: Path
    column: ViewColumn


class EditorHost:
    """
    Bridges an external editor to the graph.

    The editor reports activity through :meth:`set_active_document` and
    :meth:`document_saved`; the graph asks it to open notes through
    :meth:`open_document`.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or get_config()
        self.active_document: Optional[EditorDocumentEvent] = None
        self._active_changed: EventEmitter[Optional[EditorDocumentEvent]] = EventEmitter(
            "onDidChangeActiveTextEditor"
        )
        self._saved: EventEmitter[EditorDocumentEvent] = EventEmitter("onDidSaveTextDocument")
        self._open_requested: EventEmitter[OpenDocumentRequest] = EventEmitter(
            "onDidRequestOpen"
        )

    def on_did_change_active_editor(
        self, listener: Listener[Optional[EditorDocumentEvent]]
    ) -> Disposable:
        return self._active_changed.event(listener)

    def on_did_save_document(self, listener: Listener[EditorDocumentEvent]) -> Disposable:
        return self._saved.event(listener)

    def on_did_request_open(self, listener: Listener[OpenDocumentRequest]) -> Disposable:
        return self._open_requested.event(listener)

    @property
    def active_column(self) -> Optional[ViewColumn]:
        return ViewColumn.ACTIVE if self.active_document is not None else None

    def set_active_document(self, event: Optional[EditorDocumentEvent]) -> None:
        self.active_document = event
        self._active_changed.fire(event)

    def document_saved(self, event: EditorDocumentEvent) -> None:
        self._saved.fire(event)

    def is_active(self, event: EditorDocumentEvent) -> bool:
        active = self.active_document
        return active is not None and active.scheme == event.scheme and active.path == event.path

    def open_document(self, path: Path, column: ViewColumn = ViewColumn.ONE) -> None:
        """Ask the editor to show ``path``. Fire-and-forget."""
        request = OpenDocumentRequest(path=path, column=column)
        command = self.config.editor_open_command
        if command:
            args = shlex.split(command) + [str(path)]
            try:
                subprocess.Popen(args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            except OSError as exc:
                logger.error("Failed to run editor command %s: %s", args[0], exc)
            else:
                logger.info("Opening note in editor", extra={"path": str(path), "column": int(column)})
        else:
            logger.info("Open requested for %s (no EDITOR_OPEN_COMMAND configured)", path)
        self._open_requested.fire(request)


__all__ = [
    "EditorHost",
    "EditorDocumentEvent",
    "OpenDocumentRequest",
    "ViewColumn",
    "FILE_SCHEME",
]
