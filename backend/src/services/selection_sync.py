"""Keep the graph selection on the note the editor is showing."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

from ..models.messages import DidSelectNote
from .editor import EditorDocumentEvent, EditorHost
from .events import Disposable, DisposableStore
from .workspace import NoteWorkspace

logger = logging.getLogger(__name__)

DEFAULT_SAVE_DELAY_SECONDS = 0.5


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def call_later(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Schedule ``callback`` on the running event loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


class SelectionSync:
    """
    Turns editor activity into ``didSelectNote`` messages.

    Activating a document selects its node right away. Saving the active
    document selects it after ``save_delay`` seconds so the view can lay out
    the rebuilt graph first; only the latest pending save selection survives.
    Documents that are not in the index produce nothing.
    """

    def __init__(
        self,
        workspace: NoteWorkspace,
        post: Callable[[DidSelectNote], None],
        is_alive: Callable[[], bool],
        *,
        save_delay: float = DEFAULT_SAVE_DELAY_SECONDS,
        scheduler: Scheduler = call_later,
    ) -> None:
        self.workspace = workspace
        self.post = post
        self.is_alive = is_alive
        self.save_delay = save_delay
        self.scheduler = scheduler
        self._pending: Optional[TimerHandle] = None

    def select_message_for(self, path: str) -> Optional[DidSelectNote]:
        resource = self.workspace.get(path)
        if resource is None:
            return None
        return DidSelectNote(payload=resource.path)

    def _select(self, path: str) -> None:
        if not self.is_alive():
            return
        message = self.select_message_for(path)
        if message is not None:
            self.post(message)

    def on_active_document_changed(self, event: Optional[EditorDocumentEvent]) -> None:
        if event is None or not event.is_file:
            return
        self._select(event.path)

    def on_document_saved(self, event: EditorDocumentEvent) -> None:
        if not event.is_file:
            return
        self.cancel_pending()

        def _fire() -> None:
            self._pending = None
            self._select(event.path)

        self._pending = self.scheduler(self.save_delay, _fire)

    def cancel_pending(self) -> None:
        pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def watch(self, editor: EditorHost) -> Disposable:
        """Subscribe to ``editor``; saves count only for the active document."""
        store = DisposableStore()

        def _on_saved(event: EditorDocumentEvent) -> None:
            if editor.is_active(event):
                logger.debug("Active document saved: %s", event.path)
                self.on_document_saved(event)

        store.add(editor.on_did_change_active_editor(self.on_active_document_changed))
        store.add(editor.on_did_save_document(_on_saved))
        store.add(Disposable(self.cancel_pending))
        return store


__all__ = ["SelectionSync", "Scheduler", "TimerHandle", "call_later", "DEFAULT_SAVE_DELAY_SECONDS"]
