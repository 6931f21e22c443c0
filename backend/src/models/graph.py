"""Graph data models."""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, List

from pydantic import BaseModel, ConfigDict, Field


class GraphNode(BaseModel):
    """Represents a single resource (or unresolved link target) in the graph."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Unique identifier (normalized URI path)")
    type: str = Field(..., min_length=1, description="Display classification")
    uri: str = Field(..., description="URI of the backing resource or placeholder")
    title: str = Field(..., description="Display title, possibly cut")
    properties: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    is_placeholder: bool = Field(default=False, alias="isPlaceholder")


class GraphLink(BaseModel):
    """Represents a directed connection between two nodes. Equal pairs are the same edge."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="ID of the source node")
    target: str = Field(..., description="ID of the target node")


class GraphData(BaseModel):
    """Wire payload of ``didUpdateGraphData``."""

    model_config = ConfigDict(populate_by_name=True)

    node_info: Dict[str, GraphNode] = Field(default_factory=dict, alias="nodeInfo")
    links: List[GraphLink] = Field(default_factory=list)


class GraphSnapshot(BaseModel):
    """Full node/edge graph at one point in time. Replaced, never patched."""

    model_config = ConfigDict(frozen=True)

    node_info: Dict[str, GraphNode] = Field(default_factory=dict)
    edges: FrozenSet[GraphLink] = Field(default_factory=frozenset)

    def to_graph_data(self) -> GraphData:
        links = sorted(self.edges, key=lambda link: (link.source, link.target))
        return GraphData(node_info=dict(self.node_info), links=links)


__all__ = ["GraphNode", "GraphLink", "GraphData", "GraphSnapshot"]
