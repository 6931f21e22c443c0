"""Commands exposed to editors and scripts."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...services.editor import ViewColumn
from ..dependencies import GraphServices, get_services

router = APIRouter()


class ShowGraphRequest(BaseModel):
    column: Optional[ViewColumn] = Field(None, description="Editor column to reveal the graph in")


class ShowGraphResponse(BaseModel):
    state: str
    created: bool


@router.post("/api/commands/show-graph", response_model=ShowGraphResponse)
async def show_graph(
    services: Annotated[GraphServices, Depends(get_services)],
    body: Optional[ShowGraphRequest] = None,
) -> ShowGraphResponse:
    """Open the graph view, or bring the open one forward."""
    column = body.column if body is not None else None
    created = services.coordinator.show(column)
    return ShowGraphResponse(state=services.coordinator.state.value, created=created)
