import logging
from pathlib import Path

import pytest

from backend.src.models.resource import ATTACHMENT_KIND, Connection, Resource
from backend.src.services.graph_builder import (
    ELLIPSIS,
    GraphBuilder,
    build_graph,
    cut_title,
    nearest_marked_ancestor,
)

VAULT = Path("/vault")


def _note(relative: str, title: str = "", **properties) -> Resource:
    path = VAULT / relative
    return Resource(
        path=path.as_posix(),
        title=title or path.stem,
        properties=properties,
        tags=set(properties.get("tags", [])),
        file_path=path,
    )


def _attachment(relative: str) -> Resource:
    path = VAULT / relative
    return Resource(path=path.as_posix(), kind=ATTACHMENT_KIND, file_path=path)


def _fake_fs(*files: str):
    existing = {VAULT / f for f in files}
    return lambda path: path in existing


class TestNearestMarkedAncestor:
    def test_returns_nearest_marked_folder(self) -> None:
        exists = _fake_fs("courses/meta.json", "courses/algebra/meta.json")

        name = nearest_marked_ancestor(VAULT / "courses/algebra/week1/groups.md", exists)

        assert name == "algebra"

    def test_returns_none_when_no_marker(self) -> None:
        assert nearest_marked_ancestor(VAULT / "inbox/idea.md", _fake_fs()) is None

    def test_filesystem_root_is_never_checked(self) -> None:
        checked = []

        def exists(path: Path) -> bool:
            checked.append(path)
            return path == Path("/meta.json")

        assert nearest_marked_ancestor(Path("/vault/note.md"), exists) is None
        assert Path("/meta.json") not in checked

    def test_custom_marker_file(self) -> None:
        exists = _fake_fs("projects/.course")

        name = nearest_marked_ancestor(
            VAULT / "projects/plan.md", exists, marker_file=".course"
        )

        assert name == "projects"


class TestCutTitle:
    def test_long_title_is_cut_with_ellipsis(self) -> None:
        title = "a" * 30

        result = cut_title(title, 24)

        assert result == "a" * 24 + ELLIPSIS
        assert len(result) == 27

    def test_short_title_is_unchanged(self) -> None:
        assert cut_title("b" * 20, 24) == "b" * 20

    def test_title_at_limit_is_unchanged(self) -> None:
        assert cut_title("c" * 24, 24) == "c" * 24

    @pytest.mark.parametrize("max_length", [0, -5])
    def test_non_positive_limit_disables_cutting(self, max_length: int) -> None:
        title = "d" * 80
        assert cut_title(title, max_length) == title


class TestNodeTypes:
    def test_explicit_type_wins_over_marker_folder(self) -> None:
        builder = GraphBuilder(exists=_fake_fs("courses/algebra/meta.json"))
        note = _note("courses/algebra/plan.md", type="project")

        assert builder.node_type(note) == "project"

    def test_marker_folder_names_the_type(self) -> None:
        builder = GraphBuilder(exists=_fake_fs("courses/algebra/meta.json"))

        assert builder.node_type(_note("courses/algebra/week1/groups.md")) == "algebra"

    def test_defaults_to_note(self) -> None:
        builder = GraphBuilder(exists=_fake_fs())

        assert builder.node_type(_note("inbox/idea.md")) == "note"

    def test_blank_explicit_type_falls_back(self) -> None:
        builder = GraphBuilder(exists=_fake_fs())

        assert builder.node_type(_note("inbox/idea.md", type="  ")) == "note"

    def test_non_note_resources_are_typed_note(self) -> None:
        builder = GraphBuilder(exists=_fake_fs("courses/algebra/meta.json"))

        assert builder.node_type(_attachment("courses/algebra/diagram.png")) == "note"


class TestBuild:
    def test_one_node_per_resource(self) -> None:
        resources = [_note("a.md"), _note("b.md"), _note("c.md"), _attachment("img/d.png")]

        snapshot = build_graph(resources, [], exists=_fake_fs())

        assert len(snapshot.node_info) == 4
        assert set(snapshot.node_info) == {r.path for r in resources}

    def test_node_fields(self) -> None:
        note = _note("inbox/idea.md", title="Big Idea", tags=["x", "a"], status="draft")
        image = _attachment("img/chart.png")

        snapshot = build_graph([note, image], [], exists=_fake_fs())
        node = snapshot.node_info[note.path]
        image_node = snapshot.node_info[image.path]

        assert node.id == note.path
        assert node.title == "Big Idea"
        assert node.tags == ["a", "x"]
        assert node.properties["status"] == "draft"
        assert node.uri == "file:///vault/inbox/idea.md"
        assert node.is_placeholder is False
        assert image_node.title == "chart"

    def test_titles_are_cut(self) -> None:
        note = _note("long.md", title="x" * 30)

        snapshot = build_graph([note], [], title_max_length=24, exists=_fake_fs())

        assert snapshot.node_info[note.path].title == "x" * 24 + "..."

    def test_duplicate_connections_collapse_to_one_edge(self) -> None:
        a, b = _note("a.md"), _note("b.md")
        connections = [Connection(source=a.path, target=b.path) for _ in range(5)]

        snapshot = build_graph([a, b], connections, exists=_fake_fs())

        assert len(snapshot.edges) == 1
        edge = next(iter(snapshot.edges))
        assert (edge.source, edge.target) == (a.path, b.path)

    def test_opposite_directions_are_distinct_edges(self) -> None:
        a, b = _note("a.md"), _note("b.md")
        connections = [
            Connection(source=a.path, target=b.path),
            Connection(source=b.path, target=a.path),
        ]

        snapshot = build_graph([a, b], connections, exists=_fake_fs())

        assert len(snapshot.edges) == 2

    def test_missing_target_becomes_single_placeholder(self) -> None:
        notes = [_note("a.md"), _note("b.md"), _note("c.md")]
        connections = [
            Connection(source=n.path, target="missing-note", target_is_placeholder=True)
            for n in notes
        ]

        snapshot = build_graph(notes, connections, exists=_fake_fs())

        placeholders = [n for n in snapshot.node_info.values() if n.is_placeholder]
        assert len(placeholders) == 1
        placeholder = placeholders[0]
        assert placeholder.id == "missing-note"
        assert placeholder.type == "placeholder"
        assert placeholder.title == "missing-note"
        assert placeholder.properties == {}
        assert len(snapshot.node_info) == 4
        assert len(snapshot.edges) == 3

    def test_every_edge_end_is_a_node(self) -> None:
        a = _note("a.md")
        connections = [
            Connection(source=a.path, target="ghost", target_is_placeholder=True),
            Connection(source=a.path, target="/vault/gone.md"),
        ]

        snapshot = build_graph([a], connections, exists=_fake_fs())

        for edge in snapshot.edges:
            assert edge.source in snapshot.node_info
            assert edge.target in snapshot.node_info

    def test_placeholder_flag_never_replaces_indexed_note(self) -> None:
        a, b = _note("a.md"), _note("b.md")
        connections = [Connection(source=a.path, target=b.path, target_is_placeholder=True)]

        snapshot = build_graph([a, b], connections, exists=_fake_fs())

        assert snapshot.node_info[b.path].is_placeholder is False
        assert len(snapshot.node_info) == 2

    def test_unindexed_end_is_logged(self, caplog) -> None:
        a = _note("a.md")
        connections = [
            Connection(source=a.path, target="ghost", target_is_placeholder=True),
            Connection(source=a.path, target="/vault/gone.md"),
        ]

        with caplog.at_level(logging.DEBUG, logger="backend.src.services.graph_builder"):
            snapshot = build_graph([a], connections, exists=_fake_fs())

        assert snapshot.node_info["/vault/gone.md"].is_placeholder is True
        assert "/vault/gone.md" in caplog.text
        assert "not indexed: ghost" not in caplog.text

    def test_snapshot_wire_payload(self) -> None:
        a, b = _note("a.md"), _note("b.md")
        snapshot = build_graph(
            [a, b], [Connection(source=a.path, target=b.path)], exists=_fake_fs()
        )

        data = snapshot.to_graph_data().model_dump(mode="json", by_alias=True)

        assert set(data) == {"nodeInfo", "links"}
        assert data["links"] == [{"source": a.path, "target": b.path}]
        assert data["nodeInfo"][a.path]["isPlaceholder"] is False

    def test_snapshot_is_frozen(self) -> None:
        snapshot = build_graph([_note("a.md")], [], exists=_fake_fs())

        with pytest.raises(Exception):
            snapshot.edges = frozenset()
