"""In-memory knowledge-base index: resources, links and change notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path, PurePosixPath
import re
import time
from typing import Dict, FrozenSet, List, Optional, Set, Tuple
from urllib.parse import unquote

from ..models.resource import Connection, Resource
from .events import Disposable, EventEmitter, Listener
from .vault import VaultService, WorkspaceError, normalize_uri_path

logger = logging.getLogger(__name__)

WIKILINK_PATTERN = re.compile(r"\[\[([^\]]+)\]\]")
MARKDOWN_LINK_PATTERN = re.compile(r"!?\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
URL_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


def normalize_slug(text: str | None) -> str:
    """Normalize text into a slug suitable for wikilink matching."""
    if not text:
        return ""
    slug = text.lower()
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def wikilink_identifier(link_text: str) -> str:
    """Strip the ``|alias`` and ``#section`` parts of a wikilink."""
    identifier = link_text.split("|", 1)[0]
    identifier = identifier.split("#", 1)[0]
    return identifier.strip()


@dataclass(frozen=True)
class LinkReference:
    """A link as written in a note, before resolution."""

    kind: str  # "wikilink" or "markdown"
    text: str


@dataclass(frozen=True)
class WorkspaceChange:
    """Payload of ``on_did_update``."""

    reason: str
    paths: FrozenSet[str] = field(default_factory=frozenset)


def extract_links(body: str) -> List[LinkReference]:
    """Extract wikilinks and local Markdown links, keeping duplicates in order."""
    found: List[Tuple[int, LinkReference]] = []
    for match in WIKILINK_PATTERN.finditer(body or ""):
        identifier = wikilink_identifier(match.group(1))
        if identifier:
            found.append((match.start(), LinkReference("wikilink", identifier)))
    for match in MARKDOWN_LINK_PATTERN.finditer(body or ""):
        target = match.group(1).strip()
        if not target or target.startswith("#") or URL_SCHEME_PATTERN.match(target):
            continue
        target = unquote(target.split("#", 1)[0])
        if target:
            found.append((match.start(), LinkReference("markdown", target)))
    return [link for _, link in sorted(found, key=lambda item: item[0])]


class NoteWorkspace:
    """
    Live index of every resource under the workspace root.

    Resources are keyed by normalized URI path. Links are stored as written and
    resolved on demand by :meth:`get_all_connections`, so adding a note turns
    earlier placeholder links into real connections without re-reading the
    linking notes.
    """

    def __init__(self, vault: VaultService | None = None) -> None:
        self.vault = vault or VaultService()
        self.root = self.vault.root.resolve()
        self._resources: Dict[str, Resource] = {}
        self._links: Dict[str, List[LinkReference]] = {}
        self._updated: EventEmitter[WorkspaceChange] = EventEmitter("onDidUpdate")

    def on_did_update(self, listener: Listener[WorkspaceChange]) -> Disposable:
        return self._updated.event(listener)

    def __len__(self) -> int:
        return len(self._resources)

    # Queries ---------------------------------------------------------------

    def get(self, path: str | Path) -> Optional[Resource]:
        """Look up a resource by URI path or file path."""
        if not path:
            return None
        key = str(path)
        if key in self._resources:
            return self._resources[key]
        try:
            return self._resources.get(normalize_uri_path(path))
        except (OSError, RuntimeError, ValueError):
            return None

    def find(self, reference: str) -> Optional[Resource]:
        """Look up a resource by workspace-relative or absolute path."""
        try:
            return self.get(self.vault.resolve_path(reference))
        except WorkspaceError:
            return None

    def list(self) -> List[Resource]:
        return list(self._resources.values())

    def get_all_connections(self) -> List[Connection]:
        slug_index = self._build_slug_index()
        connections: List[Connection] = []
        for source, links in self._links.items():
            source_dir = PurePosixPath(source).parent
            for link in links:
                connections.append(self._resolve(source, source_dir, link, slug_index))
        return connections

    # Mutations (watcher and API only) ---------------------------------------

    def scan(self) -> int:
        """Re-read the whole workspace. Returns the number of indexed resources."""
        start_time = time.time()
        self._resources.clear()
        self._links.clear()
        for file_path in self.vault.iter_files():
            self._store(file_path.resolve())
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Workspace scanned",
            extra={
                "root": str(self.root),
                "resources": len(self._resources),
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        self._updated.fire(WorkspaceChange("scan", frozenset(self._resources)))
        return len(self._resources)

    def index_file(self, file_path: str | Path) -> Optional[Resource]:
        """Index or re-index one file and notify listeners."""
        path = Path(file_path).resolve()
        if not path.is_file() or not self.vault.should_index(path):
            return None
        resource = self._store(path)
        logger.debug("Resource indexed", extra={"path": resource.path, "kind": resource.kind})
        self._updated.fire(WorkspaceChange("update", frozenset({resource.path})))
        return resource

    def delete(self, file_path: str | Path) -> bool:
        """Drop a resource (or every resource below a deleted folder)."""
        key = normalize_uri_path(file_path)
        prefix = key.rstrip("/") + "/"
        removed = [path for path in self._resources if path == key or path.startswith(prefix)]
        for path in removed:
            self._resources.pop(path, None)
            self._links.pop(path, None)
        if removed:
            self._updated.fire(WorkspaceChange("delete", frozenset(removed)))
        return bool(removed)

    # Internals -------------------------------------------------------------

    def _store(self, path: Path) -> Resource:
        resource, body = self.vault.read_resource(path)
        self._resources[resource.path] = resource
        if resource.is_note:
            self._links[resource.path] = extract_links(body)
        else:
            self._links.pop(resource.path, None)
        return resource

    def _build_slug_index(self) -> Dict[str, Set[str]]:
        index: Dict[str, Set[str]] = {}
        for resource in self._resources.values():
            keys = {normalize_slug(resource.basename)}
            if resource.is_note:
                keys.add(normalize_slug(resource.title))
            else:
                keys.add(normalize_slug(PurePosixPath(resource.path).name))
            for key in keys:
                if key:
                    index.setdefault(key, set()).add(resource.path)
        return index

    def _resolve(
        self,
        source: str,
        source_dir: PurePosixPath,
        link: LinkReference,
        slug_index: Dict[str, Set[str]],
    ) -> Connection:
        if link.kind == "markdown":
            base = self.root if link.text.startswith("/") else Path(source_dir)
            target = normalize_uri_path(base / link.text.lstrip("/"))
            if target not in self._resources and not PurePosixPath(target).suffix:
                with_suffix = target + ".md"
                if with_suffix in self._resources:
                    target = with_suffix
            return Connection(
                source=source,
                target=target,
                target_is_placeholder=target not in self._resources,
                link_text=link.text,
            )

        identifier = link.text
        name = PurePosixPath(identifier).name
        candidates = slug_index.get(normalize_slug(name), set())
        if not candidates and PurePosixPath(name).suffix:
            candidates = slug_index.get(normalize_slug(PurePosixPath(name).stem), set())
        if not candidates:
            return Connection(
                source=source,
                target=identifier,
                target_is_placeholder=True,
                link_text=link.text,
            )

        wanted_suffix = "/" + identifier.strip("/").lower()

        def rank(candidate: str) -> Tuple[bool, bool, str]:
            without_ext = str(PurePosixPath(candidate).with_suffix("")).lower()
            path_match = without_ext.endswith(wanted_suffix) or candidate.lower().endswith(
                wanted_suffix
            )
            return (not path_match, PurePosixPath(candidate).parent != source_dir, candidate)

        target = sorted(candidates, key=rank)[0]
        return Connection(source=source, target=target, link_text=link.text)


__all__ = [
    "NoteWorkspace",
    "WorkspaceChange",
    "LinkReference",
    "extract_links",
    "normalize_slug",
    "wikilink_identifier",
]
