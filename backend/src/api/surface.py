"""WebSocket-backed graph view."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Set
import webbrowser

from fastapi import WebSocket, WebSocketDisconnect

from ..services.config import AppConfig
from ..services.editor import ViewColumn
from ..services.events import Disposable, EventEmitter, Listener

logger = logging.getLogger(__name__)

ALREADY_OPEN_CLOSE_CODE = 4409

# Re-sent by the webviewDidLoad handshake once a browser attaches.
HANDSHAKE_MESSAGE_TYPES = frozenset({"didUpdateStyle", "didUpdateGraphData"})

_closing: Set[asyncio.Task] = set()


class WebSocketSurface:
    """
    A graph view rendered by a browser connected over a WebSocket.

    Until a browser attaches, style and graph pushes are dropped and only the
    latest message of any other type is held, to be flushed on attach. Sending
    is fire-and-forget: a failed send is logged and ends the view.
    """

    def __init__(self, url: Optional[str] = None, open_browser: bool = False) -> None:
        self.url = url
        self.open_browser = open_browser
        self._websocket: Optional[WebSocket] = None
        self._pending: Dict[str, dict] = {}
        self._queue: asyncio.Queue = asyncio.Queue()
        self._sender: Optional[asyncio.Task] = None
        self._received: EventEmitter[Any] = EventEmitter("onDidReceiveMessage")
        self._disposed_event: EventEmitter[None] = EventEmitter("onDidDispose")
        self._disposed = False

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def is_attached(self) -> bool:
        return self._websocket is not None

    def on_did_receive_message(self, listener: Listener[Any]) -> Disposable:
        return self._received.event(listener)

    def on_did_dispose(self, listener: Listener[None]) -> Disposable:
        return self._disposed_event.event(listener)

    def post_message(self, message: dict) -> None:
        if self._disposed:
            return
        if self._websocket is None:
            message_type = message.get("type")
            if message_type in HANDSHAKE_MESSAGE_TYPES:
                logger.debug("No graph view attached, dropping %s", message_type)
                return
            self._pending.pop(message_type, None)
            self._pending[message_type] = message
            return
        self._queue.put_nowait(message)

    @property
    def pending_messages(self) -> List[dict]:
        return list(self._pending.values())

    def reveal(self, column: Optional[ViewColumn] = None) -> None:
        if self._disposed:
            return
        if self.is_attached:
            logger.debug("Graph view already attached; nothing to reveal")
            return
        self.launch()

    def launch(self) -> None:
        """Point the user at the graph page."""
        if not self.url:
            return
        if self.open_browser:
            webbrowser.open(self.url)
        else:
            logger.info("Graph view ready at %s", self.url)

    async def run(self, websocket: WebSocket) -> None:
        """Serve ``websocket`` until it disconnects, then dispose the view."""
        self._websocket = websocket
        pending, self._pending = self._pending, {}
        for message in pending.values():
            self._queue.put_nowait(message)
        self._sender = asyncio.create_task(self._send_loop(websocket))
        try:
            while not self._disposed:
                text = await websocket.receive_text()
                try:
                    raw = json.loads(text)
                except json.JSONDecodeError:
                    logger.warning("Ignoring non-JSON message from graph view")
                    continue
                self._received.fire(raw)
        except WebSocketDisconnect:
            self._websocket = None
            logger.info("Graph view disconnected")
        except Exception as e:
            logger.error(f"Graph view connection error: {e}")
        finally:
            self.dispose()

    async def _send_loop(self, websocket: WebSocket) -> None:
        while True:
            message = await self._queue.get()
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.error(f"Error sending to graph view: {e}")
                self.dispose()
                return

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        sender, self._sender = self._sender, None
        if sender is not None and sender is not _current_task():
            sender.cancel()
        websocket, self._websocket = self._websocket, None
        if websocket is not None:
            _close_soon(websocket)
        self._disposed_event.fire(None)
        self._disposed_event.dispose()
        self._received.dispose()


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def _close_soon(websocket: WebSocket) -> None:
    async def _close() -> None:
        try:
            await websocket.close()
        except Exception:
            # Already closed by the peer.
            logger.debug("Graph view socket already closed")

    try:
        task = asyncio.get_running_loop().create_task(_close())
    except RuntimeError:
        return
    _closing.add(task)
    task.add_done_callback(_closing.discard)


class BrowserSurfaceFactory:
    """Creates the WebSocket view and points the user at the graph page."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def __call__(self) -> WebSocketSurface:
        surface = WebSocketSurface(url=self.config.graph_url, open_browser=self.config.open_browser)
        # Deferred one tick: a view created for an incoming socket is attached by then.
        try:
            asyncio.get_running_loop().call_soon(surface.reveal)
        except RuntimeError:
            surface.launch()
        return surface


__all__ = ["WebSocketSurface", "BrowserSurfaceFactory", "ALREADY_OPEN_CLOSE_CODE"]
