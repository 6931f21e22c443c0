"""Forward the graph style setting to the graph view."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..models.messages import DidUpdateStyle
from .events import Disposable
from .settings import STYLE_KEY, ConfigurationChangeEvent, SettingsService

logger = logging.getLogger(__name__)


class StyleConfigBridge:
    """Reads the style setting as-is; the view alone interprets its shape."""

    def __init__(self, settings: SettingsService) -> None:
        self.settings = settings

    def current_style(self) -> Any:
        return self.settings.style

    def style_message(self) -> DidUpdateStyle:
        return DidUpdateStyle(payload=self.current_style())

    def watch(self, post: Callable[[DidUpdateStyle], None]) -> Disposable:
        """Push the style through ``post`` every time the style key changes."""

        def _on_change(event: ConfigurationChangeEvent) -> None:
            if event.affects_configuration(STYLE_KEY):
                logger.debug("Graph style changed, pushing to view")
                post(self.style_message())

        return self.settings.on_did_change_configuration(_on_change)


__all__ = ["StyleConfigBridge"]
