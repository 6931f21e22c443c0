"""Workspace resource models."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

NOTE_KIND = "note"
ATTACHMENT_KIND = "attachment"


class Resource(BaseModel):
    """An indexed workspace item (a note or any other file)."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "path": "/home/alice/notes/courses/algebra/groups.md",
                "kind": "note",
                "title": "Groups",
                "properties": {"type": "lecture", "tags": ["math"]},
                "tags": ["math"],
                "file_path": "/home/alice/notes/courses/algebra/groups.md",
            }
        }
    )

    path: str = Field(..., min_length=1, description="Normalized URI path (unique key)")
    kind: str = Field(default=NOTE_KIND, description="'note' or another resource kind")
    title: str = Field(default="", description="Extracted title (notes only)")
    properties: Dict[str, Any] = Field(default_factory=dict, description="Front-matter")
    tags: Set[str] = Field(default_factory=set)
    file_path: Path = Field(..., description="Backing file on disk")

    @property
    def is_note(self) -> bool:
        return self.kind == NOTE_KIND

    @property
    def basename(self) -> str:
        """File name without its extension."""
        return PurePosixPath(self.path).stem

    @property
    def explicit_type(self) -> Optional[str]:
        value = self.properties.get("type")
        if value is None or not str(value).strip():
            return None
        return str(value)


class Connection(BaseModel):
    """A directed reference found by the index."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    target_is_placeholder: bool = False
    link_text: Optional[str] = None


__all__ = ["Resource", "Connection", "NOTE_KIND", "ATTACHMENT_KIND"]
