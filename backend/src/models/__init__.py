"""Pydantic models for data validation and serialization."""

from .graph import GraphData, GraphLink, GraphNode, GraphSnapshot
from .messages import (
    DidSelectNote,
    DidUpdateGraphData,
    DidUpdateStyle,
    ErrorReport,
    MessageProtocolError,
    WebviewDidLoad,
    WebviewDidSelectNode,
    parse_inbound,
)
from .resource import Connection, Resource

__all__ = [
    "Resource",
    "Connection",
    "GraphNode",
    "GraphLink",
    "GraphData",
    "GraphSnapshot",
    "DidUpdateStyle",
    "DidUpdateGraphData",
    "DidSelectNote",
    "WebviewDidLoad",
    "WebviewDidSelectNode",
    "ErrorReport",
    "MessageProtocolError",
    "parse_inbound",
]
