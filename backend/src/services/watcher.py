"""
Workspace watcher.

Keeps the note index in sync with changes made on disk. watchdog delivers
events on its own thread; every event is handed to the asyncio loop so the
index, and everything listening to it, is only touched from one thread.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .vault import is_hidden
from .workspace import NoteWorkspace

logger = logging.getLogger(__name__)

Dispatch = Callable[[Callable[[], None]], None]


def loop_dispatch(loop: asyncio.AbstractEventLoop) -> Dispatch:
    """Run callbacks on ``loop`` from any thread."""

    def _dispatch(callback: Callable[[], None]) -> None:
        if loop.is_closed():
            return
        loop.call_soon_threadsafe(callback)

    return _dispatch


class WorkspaceEventHandler(FileSystemEventHandler):
    """Filters file system events and forwards them to the index."""

    def __init__(self, workspace: NoteWorkspace, dispatch: Dispatch) -> None:
        self.workspace = workspace
        self.dispatch = dispatch
        self.root = workspace.root

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._schedule_index(Path(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._schedule_index(Path(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._schedule_delete(Path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        self._schedule_delete(Path(event.src_path))
        if event.is_directory:
            self.dispatch(self._rescan)
        else:
            self._schedule_index(Path(event.dest_path))

    def _relevant(self, file_path: Path) -> bool:
        try:
            relative = file_path.relative_to(self.root)
        except ValueError:
            return False
        return not is_hidden(relative)

    def _is_marker(self, file_path: Path) -> bool:
        return file_path.name == self.workspace.vault.config.marker_file

    def _schedule_index(self, file_path: Path) -> None:
        if self._relevant(file_path) and self._is_marker(file_path):
            # Marker files change node types across a whole folder.
            self.dispatch(self._rescan)
        elif self._relevant(file_path):
            logger.debug("Change detected: %s", file_path)
            self.dispatch(lambda: self.workspace.index_file(file_path))

    def _schedule_delete(self, file_path: Path) -> None:
        if self._relevant(file_path) and self._is_marker(file_path):
            self.dispatch(self._rescan)
        elif self._relevant(file_path):
            logger.debug("Removal detected: %s", file_path)
            self.dispatch(lambda: self.workspace.delete(file_path))

    def _rescan(self) -> None:
        self.workspace.scan()


class WorkspaceWatcher:
    """Starts and stops a watchdog observer on the workspace root."""

    def __init__(self, workspace: NoteWorkspace, dispatch: Dispatch) -> None:
        self.workspace = workspace
        self.handler = WorkspaceEventHandler(workspace, dispatch)
        self._observer: Optional[Observer] = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self.handler, str(self.workspace.root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching workspace %s", self.workspace.root)

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)
        logger.info("Stopped watching workspace")


__all__ = ["WorkspaceWatcher", "WorkspaceEventHandler", "loop_dispatch", "Dispatch"]
