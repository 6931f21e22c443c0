"""Filesystem vault reading."""

from __future__ import annotations

import logging
from pathlib import Path
import re
from typing import Any, Dict, Iterator, Set, Tuple

import frontmatter

from ..models.resource import ATTACHMENT_KIND, NOTE_KIND, Resource
from .config import AppConfig, get_config

logger = logging.getLogger(__name__)

NOTE_SUFFIXES = {".md", ".markdown"}
MAX_NOTE_BYTES = 1_048_576
H1_PATTERN = re.compile(r"^\s*#\s+(.+)$", re.MULTILINE)
INLINE_TAG_PATTERN = re.compile(r"(?:^|\s)#([A-Za-z][\w/-]*)")


class WorkspaceError(ValueError):
    """Raised for paths that are invalid or fall outside the workspace."""


def normalize_uri_path(path: str | Path) -> str:
    """Return the URI path used as a resource key: absolute, resolved, POSIX separators."""
    return Path(path).expanduser().resolve().as_posix()


def sanitize_path(workspace_root: Path, note_path: str) -> Path:
    """
    Resolve a workspace-relative or absolute path.

    Raises WorkspaceError if the resolved path escapes the workspace root.
    """
    if not note_path or "\x00" in note_path:
        raise WorkspaceError("Path must be a non-empty string")
    root = workspace_root.resolve()
    candidate = Path(note_path).expanduser()
    full_path = (candidate if candidate.is_absolute() else root / candidate).resolve()
    if full_path != root and root not in full_path.parents:
        raise WorkspaceError(f"Path escapes workspace root: {note_path}")
    return full_path


def is_hidden(relative_path: Path) -> bool:
    return any(part.startswith(".") for part in relative_path.parts)


def _derive_title(note_path: str, metadata: Dict[str, Any], body: str) -> str:
    title = metadata.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    match = H1_PATTERN.search(body or "")
    if match:
        return match.group(1).strip()
    stem = Path(note_path).stem
    title_from_filename = stem.replace("-", " ").replace("_", " ").strip()
    return title_from_filename or stem


def _collect_tags(metadata: Dict[str, Any], body: str) -> Set[str]:
    tags: Set[str] = set()
    raw = metadata.get("tags")
    if isinstance(raw, str):
        raw = [part for part in re.split(r"[,\s]+", raw) if part]
    if isinstance(raw, list):
        for tag in raw:
            if isinstance(tag, str) and tag.strip():
                tags.add(tag.strip().lstrip("#"))
    for match in INLINE_TAG_PATTERN.finditer(body or ""):
        tags.add(match.group(1))
    return tags


def is_note_file(path: Path) -> bool:
    return path.suffix.lower() in NOTE_SUFFIXES


class VaultService:
    """Reads notes and other resources from the workspace folder."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or get_config()
        self.root = self.config.workspace_root
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve_path(self, note_path: str) -> Path:
        """Validate and resolve a path inside the workspace. Raises WorkspaceError."""
        return sanitize_path(self.root, note_path)

    def should_index(self, file_path: Path) -> bool:
        """True for visible regular files inside the workspace, except marker files."""
        try:
            relative = file_path.resolve().relative_to(self.root.resolve())
        except ValueError:
            return False
        if is_hidden(relative):
            return False
        return file_path.name != self.config.marker_file

    def iter_files(self) -> Iterator[Path]:
        """Yield every indexable file under the workspace root."""
        for file_path in sorted(self.root.rglob("*")):
            if file_path.is_file() and self.should_index(file_path):
                yield file_path

    def read_resource(self, file_path: Path) -> Tuple[Resource, str]:
        """
        Read a file into a Resource.

        Returns (resource, body). Body is empty for non-note files.
        Unparseable notes fall back to a filename title and empty metadata.
        """
        uri_path = normalize_uri_path(file_path)
        if not is_note_file(file_path):
            resource = Resource(
                path=uri_path,
                kind=ATTACHMENT_KIND,
                title=file_path.stem,
                file_path=file_path,
            )
            return resource, ""

        metadata: Dict[str, Any] = {}
        body = ""
        try:
            if file_path.stat().st_size > MAX_NOTE_BYTES:
                logger.warning(
                    "Note exceeds 1 MiB limit, indexing by file name only: %s", file_path
                )
            else:
                post = frontmatter.load(file_path)
                metadata = dict(post.metadata or {})
                body = post.content or ""
        except Exception as exc:
            logger.warning("Failed to parse note %s: %s", file_path, exc)

        resource = Resource(
            path=uri_path,
            kind=NOTE_KIND,
            title=_derive_title(file_path.name, metadata, body),
            properties=metadata,
            tags=_collect_tags(metadata, body),
            file_path=file_path,
        )
        return resource, body


__all__ = [
    "VaultService",
    "WorkspaceError",
    "normalize_uri_path",
    "sanitize_path",
    "is_note_file",
]
