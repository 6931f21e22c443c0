"""Subscription primitives shared by the index, settings, editor and graph panel."""

from __future__ import annotations

import logging
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class Disposable:
    """Handle returned by every registration; ``dispose()`` may be called any number of times."""

    def __init__(self, on_dispose: Optional[Callable[[], None]] = None) -> None:
        self._on_dispose = on_dispose
        self._disposed = False

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()


class DisposableStore(Disposable):
    """Collects disposables and releases them together, newest first."""

    def __init__(self) -> None:
        super().__init__()
        self._items: List[Disposable] = []

    def add(self, item: Disposable) -> Disposable:
        if self.is_disposed:
            # Late registrations are released immediately.
            item.dispose()
            return item
        self._items.append(item)
        return item

    def __len__(self) -> int:
        return len(self._items)

    def dispose(self) -> None:
        if self.is_disposed:
            return
        super().dispose()
        items, self._items = self._items, []
        for item in reversed(items):
            try:
                item.dispose()
            except Exception:
                logger.exception("Error while disposing %r", item)


class EventEmitter(Generic[T]):
    """
    Synchronous event source.

    ``event(listener)`` registers a listener and returns its subscription.
    ``fire(value)`` invokes every current listener in registration order.
    A failing listener is logged and does not prevent the others from running.
    """

    def __init__(self, name: str = "event") -> None:
        self.name = name
        self._listeners: List[Listener] = []
        self._disposed = False

    def event(self, listener: Listener) -> Disposable:
        if self._disposed:
            return Disposable()
        self._listeners.append(listener)

        def _remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return Disposable(_remove)

    __call__ = event

    def fire(self, value: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Listener for '%s' failed", self.name)

    def listener_count(self) -> int:
        return len(self._listeners)

    def dispose(self) -> None:
        self._disposed = True
        self._listeners.clear()


__all__ = ["Disposable", "DisposableStore", "EventEmitter", "Listener"]
