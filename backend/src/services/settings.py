"""Live graph settings with scoped change notifications."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
import logging
from typing import Any, Dict, FrozenSet, Mapping

from .config import AppConfig, get_config
from .events import Disposable, EventEmitter, Listener

logger = logging.getLogger(__name__)

STYLE_KEY = "graph.style"
TITLE_MAX_LENGTH_KEY = "graph.titleMaxLength"

KNOWN_KEYS = (STYLE_KEY, TITLE_MAX_LENGTH_KEY)


@dataclass(frozen=True)
class ConfigurationChangeEvent:
    """Names the settings keys touched by one update."""

    keys: FrozenSet[str]

    def affects_configuration(self, section: str) -> bool:
        """True when ``section`` is a changed key or one of its parent sections."""
        prefix = section + "."
        return any(key == section or key.startswith(prefix) for key in self.keys)


class SettingsService:
    """Holds the mutable ``graph.*`` settings, seeded from :class:`AppConfig`."""

    def __init__(self, config: AppConfig | None = None) -> None:
        config = config or get_config()
        self._values: Dict[str, Any] = {
            STYLE_KEY: config.graph_style,
            TITLE_MAX_LENGTH_KEY: config.graph_title_max_length,
        }
        self._changed: EventEmitter[ConfigurationChangeEvent] = EventEmitter(
            "onDidChangeConfiguration"
        )

    def on_did_change_configuration(
        self, listener: Listener[ConfigurationChangeEvent]
    ) -> Disposable:
        return self._changed.event(listener)

    def get(self, key: str, default: Any = None) -> Any:
        value = self._values.get(key, default)
        return deepcopy(value)

    @property
    def style(self) -> Any:
        return self.get(STYLE_KEY, {})

    @property
    def title_max_length(self) -> int:
        return int(self.get(TITLE_MAX_LENGTH_KEY, 0))

    def update(self, values: Mapping[str, Any]) -> ConfigurationChangeEvent:
        """
        Replace one or more settings and notify listeners.

        Unknown keys raise ``KeyError``. Listeners are notified even when a value
        is unchanged; consumers re-read rather than diff.
        """
        unknown = [key for key in values if key not in KNOWN_KEYS]
        if unknown:
            raise KeyError(f"Unknown settings: {', '.join(sorted(unknown))}")
        if TITLE_MAX_LENGTH_KEY in values:
            values = dict(values)
            values[TITLE_MAX_LENGTH_KEY] = int(values[TITLE_MAX_LENGTH_KEY])

        for key, value in values.items():
            self._values[key] = deepcopy(value)

        event = ConfigurationChangeEvent(keys=frozenset(values))
        if event.keys:
            logger.info("Graph settings updated", extra={"keys": sorted(event.keys)})
            self._changed.fire(event)
        return event

    def as_dict(self) -> Dict[str, Any]:
        return {"style": self.style, "titleMaxLength": self.title_max_length}


__all__ = [
    "ConfigurationChangeEvent",
    "SettingsService",
    "STYLE_KEY",
    "TITLE_MAX_LENGTH_KEY",
]
