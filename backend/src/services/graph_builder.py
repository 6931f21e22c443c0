"""Build the graph view snapshot from the workspace index."""

from __future__ import annotations

import logging
from pathlib import Path
import time
from typing import Callable, Dict, Iterable, Optional, Set

from ..models.graph import GraphLink, GraphNode, GraphSnapshot
from ..models.resource import Connection, Resource
from .config import DEFAULT_MARKER_FILE, DEFAULT_TITLE_MAX_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_NODE_TYPE = "note"
PLACEHOLDER_NODE_TYPE = "placeholder"
ELLIPSIS = "..."

PathExists = Callable[[Path], bool]


def nearest_marked_ancestor(
    path: str | Path,
    exists: PathExists = Path.exists,
    marker_file: str = DEFAULT_MARKER_FILE,
) -> Optional[str]:
    """
    Walk up from the folder containing ``path`` looking for ``marker_file``.

    Returns the name of the first folder holding the marker, or None once the
    filesystem root is reached. The root folder itself is never a match.
    ``exists`` is the only filesystem access, so an in-memory set works too.
    """
    current = Path(path).parent
    while current != current.parent:
        if exists(current / marker_file):
            return current.name
        current = current.parent
    return None


def cut_title(title: str, max_length: int) -> str:
    """Cut ``title`` to ``max_length`` characters plus an ellipsis; 0 or less keeps it whole."""
    if max_length > 0 and len(title) > max_length:
        return title[:max_length] + ELLIPSIS
    return title


class GraphBuilder:
    """
    Pure transform from (resources, connections) to a :class:`GraphSnapshot`.

    Node type precedence for notes: explicit ``type`` property, then the name
    of the nearest folder holding the marker file, then ``"note"``. Every
    non-note resource is typed ``"note"``.
    """

    def __init__(
        self,
        title_max_length: int = DEFAULT_TITLE_MAX_LENGTH,
        marker_file: str = DEFAULT_MARKER_FILE,
        exists: PathExists = Path.exists,
    ) -> None:
        self.title_max_length = title_max_length
        self.marker_file = marker_file
        self.exists = exists

    def node_type(self, resource: Resource) -> str:
        # TODO: non-note resources lose their own kind here; keep until the view
        # has styles for attachment kinds.
        if not resource.is_note:
            return DEFAULT_NODE_TYPE
        explicit = resource.explicit_type
        if explicit is not None:
            return explicit
        folder = nearest_marked_ancestor(resource.file_path, self.exists, self.marker_file)
        return folder or DEFAULT_NODE_TYPE

    def node_for(self, resource: Resource) -> GraphNode:
        title = resource.title if resource.is_note else resource.basename
        return GraphNode(
            id=resource.path,
            type=self.node_type(resource),
            uri=resource.file_path.as_uri() if resource.file_path.is_absolute() else resource.path,
            title=cut_title(title, self.title_max_length),
            properties=dict(resource.properties),
            tags=sorted(resource.tags),
        )

    @staticmethod
    def placeholder_for(target: str) -> GraphNode:
        return GraphNode(
            id=target,
            type=PLACEHOLDER_NODE_TYPE,
            uri=f"placeholder:{target}",
            title=target,
            properties={},
            is_placeholder=True,
        )

    def build(
        self, resources: Iterable[Resource], connections: Iterable[Connection]
    ) -> GraphSnapshot:
        start_time = time.time()
        node_info: Dict[str, GraphNode] = {}
        for resource in resources:
            node_info[resource.path] = self.node_for(resource)

        edges: Set[GraphLink] = set()
        placeholders: Set[str] = set()
        for connection in connections:
            edges.add(GraphLink(source=connection.source, target=connection.target))
            target = connection.target
            if connection.target_is_placeholder and target not in node_info:
                placeholders.add(target)
                node_info[target] = self.placeholder_for(target)
            # Both ends must be nodes, even when a resource left the index
            # after its connections were collected.
            for end in (connection.source, target):
                if end not in node_info:
                    logger.debug("Connection end not indexed: %s", end)
                    placeholders.add(end)
                    node_info[end] = self.placeholder_for(end)

        snapshot = GraphSnapshot(node_info=node_info, edges=frozenset(edges))
        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            "Graph built",
            extra={
                "nodes": len(node_info),
                "edges": len(edges),
                "placeholders": len(placeholders),
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        return snapshot


def build_graph(
    resources: Iterable[Resource],
    connections: Iterable[Connection],
    *,
    title_max_length: int = DEFAULT_TITLE_MAX_LENGTH,
    marker_file: str = DEFAULT_MARKER_FILE,
    exists: PathExists = Path.exists,
) -> GraphSnapshot:
    """Functional shortcut for :meth:`GraphBuilder.build`."""
    builder = GraphBuilder(title_max_length, marker_file, exists)
    return builder.build(resources, connections)


__all__ = [
    "GraphBuilder",
    "build_graph",
    "cut_title",
    "nearest_marked_ancestor",
    "DEFAULT_NODE_TYPE",
    "PLACEHOLDER_NODE_TYPE",
    "ELLIPSIS",
]
