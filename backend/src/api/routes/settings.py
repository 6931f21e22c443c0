"""Graph settings routes."""

from __future__ import annotations

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ...services.settings import STYLE_KEY, TITLE_MAX_LENGTH_KEY
from ..dependencies import GraphServices, get_services

router = APIRouter()


class GraphSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    style: Any = None
    title_max_length: int = Field(..., alias="titleMaxLength")


class GraphSettingsUpdate(BaseModel):
    """Only the fields present in the request are changed."""

    model_config = ConfigDict(populate_by_name=True)

    style: Any = None
    title_max_length: Optional[int] = Field(None, alias="titleMaxLength")


def _current(services: GraphServices) -> GraphSettings:
    return GraphSettings(
        style=services.settings.style,
        title_max_length=services.settings.title_max_length,
    )


@router.get("/api/config/graph", response_model=GraphSettings)
async def get_graph_settings(
    services: Annotated[GraphServices, Depends(get_services)],
) -> GraphSettings:
    """Return the live graph settings."""
    return _current(services)


@router.patch("/api/config/graph", response_model=GraphSettings)
async def update_graph_settings(
    update: GraphSettingsUpdate,
    services: Annotated[GraphServices, Depends(get_services)],
) -> GraphSettings:
    """Change graph settings; an open graph view is updated right away."""
    values: Dict[str, Any] = {}
    if "style" in update.model_fields_set:
        values[STYLE_KEY] = update.style
    if "title_max_length" in update.model_fields_set and update.title_max_length is not None:
        values[TITLE_MAX_LENGTH_KEY] = update.title_max_length
    if values:
        services.settings.update(values)
    return _current(services)
