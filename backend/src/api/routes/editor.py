"""HTTP routes through which an editor reports activity."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ...services.editor import FILE_SCHEME, EditorDocumentEvent
from ..dependencies import GraphServices, get_services

router = APIRouter()


class EditorDocument(BaseModel):
    """Document reported by the editor."""

    path: Optional[str] = Field(
        None, description="Absolute or workspace-relative path; null when no editor is active"
    )
    scheme: str = Field(default=FILE_SCHEME, description="URI scheme of the document")


class EditorAck(BaseModel):
    status: str = "accepted"


def _to_event(services: GraphServices, document: EditorDocument) -> Optional[EditorDocumentEvent]:
    if not document.path:
        return None
    path = Path(document.path).expanduser()
    if not path.is_absolute():
        # Relative paths must stay inside the workspace; raises WorkspaceError.
        path = services.workspace.vault.resolve_path(document.path)
    return EditorDocumentEvent(path=str(path), scheme=document.scheme)


@router.post("/api/editor/active", response_model=EditorAck, status_code=status.HTTP_202_ACCEPTED)
async def active_document_changed(
    document: EditorDocument,
    services: Annotated[GraphServices, Depends(get_services)],
) -> EditorAck:
    """The editor switched to another document (or to none)."""
    services.editor.set_active_document(_to_event(services, document))
    return EditorAck()


@router.post("/api/editor/saved", response_model=EditorAck, status_code=status.HTTP_202_ACCEPTED)
async def document_saved(
    document: EditorDocument,
    services: Annotated[GraphServices, Depends(get_services)],
) -> EditorAck:
    """The editor saved a document."""
    event = _to_event(services, document)
    if event is not None:
        services.editor.document_saved(event)
    return EditorAck()
