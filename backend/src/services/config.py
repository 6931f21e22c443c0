"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import json
import os
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_WORKSPACE_ROOT = PROJECT_ROOT / "notes"
DEFAULT_TITLE_MAX_LENGTH = 24
DEFAULT_MARKER_FILE = "meta.json"
DEFAULT_SAVE_DELAY_MS = 500


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    workspace_root: Path = Field(..., description="Folder holding the notes to graph")
    graph_style: Any = Field(
        default_factory=dict,
        description="Style object forwarded untouched to the graph view",
    )
    graph_title_max_length: int = Field(
        default=DEFAULT_TITLE_MAX_LENGTH,
        description="Node titles longer than this are cut; 0 or less disables cutting",
    )
    marker_file: str = Field(
        default=DEFAULT_MARKER_FILE,
        description="File whose presence names a folder as a note type",
    )
    selection_save_delay_ms: int = Field(
        default=DEFAULT_SAVE_DELAY_MS,
        ge=0,
        description="Delay before re-selecting the active note after a save",
    )
    editor_open_command: Optional[str] = Field(
        default=None,
        description="Command used to open a note selected in the graph (path is appended)",
    )
    open_browser: bool = Field(
        default=False,
        description="Open the graph page in a browser when the view is created",
    )
    watch_workspace: bool = Field(
        default=True,
        description="Watch the workspace folder and re-index on change",
    )
    graph_static_dir: Optional[Path] = Field(
        default=None,
        description="Optional folder with the graph view frontend",
    )
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = Field(default="INFO")
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )

    @field_validator("workspace_root", mode="before")
    @classmethod
    def _normalize_workspace_root(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("WORKSPACE_ROOT is required")
        if isinstance(value, Path):
            path = value
        else:
            path = Path(value)
        return path.expanduser().resolve()

    @field_validator("marker_file")
    @classmethod
    def _ensure_marker_is_filename(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned or "/" in cleaned or "\\" in cleaned:
            raise ValueError("GRAPH_MARKER_FILE must be a plain file name")
        return cleaned

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def graph_url(self) -> str:
        return f"http://{self.host}:{self.port}/graph/"


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


FALSE_FLAG_VALUES = frozenset({"0", "false", "no", "off"})


def _read_flag(key: str, default: str) -> bool:
    return (_read_env(key, default) or default).strip().lower() not in FALSE_FLAG_VALUES


def _load_style() -> Any:
    raw = _read_env("GRAPH_STYLE")
    style_file = _read_env("GRAPH_STYLE_FILE")
    if not raw and style_file:
        raw = Path(style_file).expanduser().read_text(encoding="utf-8")
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Graph style is not valid JSON: {exc}") from exc


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    workspace_root = _read_env("WORKSPACE_ROOT", str(DEFAULT_WORKSPACE_ROOT))
    cors_raw = _read_env("CORS_ORIGINS")
    static_dir = _read_env("GRAPH_STATIC_DIR")

    config = AppConfig(
        workspace_root=workspace_root,
        graph_style=_load_style(),
        graph_title_max_length=int(
            _read_env("GRAPH_TITLE_MAX_LENGTH", str(DEFAULT_TITLE_MAX_LENGTH))
        ),
        marker_file=_read_env("GRAPH_MARKER_FILE", DEFAULT_MARKER_FILE),
        selection_save_delay_ms=int(
            _read_env("SELECTION_SAVE_DELAY_MS", str(DEFAULT_SAVE_DELAY_MS))
        ),
        editor_open_command=_read_env("EDITOR_OPEN_COMMAND") or None,
        open_browser=_read_flag("OPEN_BROWSER", "false"),
        watch_workspace=_read_flag("WATCH_WORKSPACE", "true"),
        graph_static_dir=Path(static_dir).expanduser() if static_dir else None,
        host=_read_env("HOST", "127.0.0.1"),
        port=int(_read_env("PORT", "8000")),
        log_level=_read_env("LOG_LEVEL", "INFO"),
        **(
            {"cors_origins": [o.strip() for o in cors_raw.split(",") if o.strip()]}
            if cors_raw
            else {}
        ),
    )
    # Ensure the workspace exists so the index and watcher can start on an empty folder.
    config.workspace_root.mkdir(parents=True, exist_ok=True)
    return config


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "PROJECT_ROOT",
    "DEFAULT_WORKSPACE_ROOT",
    "DEFAULT_TITLE_MAX_LENGTH",
    "DEFAULT_MARKER_FILE",
]
