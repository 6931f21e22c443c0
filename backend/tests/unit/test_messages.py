import pytest

from backend.src.models.graph import GraphData, GraphLink, GraphNode
from backend.src.models.messages import (
    DidSelectNote,
    DidUpdateGraphData,
    DidUpdateStyle,
    ErrorReport,
    MessageProtocolError,
    WebviewDidLoad,
    WebviewDidSelectNode,
    parse_inbound,
    to_wire,
)


class TestParseInbound:
    def test_webview_did_load(self) -> None:
        assert isinstance(parse_inbound({"type": "webviewDidLoad"}), WebviewDidLoad)

    def test_select_node_carries_node_id(self) -> None:
        message = parse_inbound({"type": "webviewDidSelectNode", "payload": "/notes/a.md"})

        assert isinstance(message, WebviewDidSelectNode)
        assert message.payload == "/notes/a.md"

    def test_error_report_accepts_any_payload(self) -> None:
        message = parse_inbound({"type": "error", "payload": {"message": "render failed"}})

        assert isinstance(message, ErrorReport)
        assert message.payload == {"message": "render failed"}

    @pytest.mark.parametrize(
        "raw",
        [
            {"type": "somethingElse", "payload": 1},
            {"payload": "no type"},
            "webviewDidLoad",
            None,
            ["webviewDidLoad"],
        ],
    )
    def test_unknown_messages_return_none(self, raw) -> None:
        assert parse_inbound(raw) is None

    def test_select_node_without_payload_is_a_protocol_error(self) -> None:
        with pytest.raises(MessageProtocolError) as exc_info:
            parse_inbound({"type": "webviewDidSelectNode"})

        assert exc_info.value.message_type == "webviewDidSelectNode"


class TestToWire:
    def test_style_payload_is_forwarded_untouched(self) -> None:
        style = {"node": {"project": "#00ff00"}, "fontSize": 12}

        assert to_wire(DidUpdateStyle(payload=style)) == {
            "type": "didUpdateStyle",
            "payload": style,
        }

    def test_select_note(self) -> None:
        assert to_wire(DidSelectNote(payload="/notes/a.md")) == {
            "type": "didSelectNote",
            "payload": "/notes/a.md",
        }

    def test_graph_data_uses_view_field_names(self) -> None:
        node = GraphNode(
            id="/notes/a.md",
            type="note",
            uri="file:///notes/a.md",
            title="A",
        )
        data = GraphData(
            node_info={node.id: node},
            links=[GraphLink(source="/notes/a.md", target="missing")],
        )

        wire = to_wire(DidUpdateGraphData(payload=data))

        assert wire["type"] == "didUpdateGraphData"
        assert wire["payload"]["links"] == [{"source": "/notes/a.md", "target": "missing"}]
        assert wire["payload"]["nodeInfo"]["/notes/a.md"] == {
            "id": "/notes/a.md",
            "type": "note",
            "uri": "file:///notes/a.md",
            "title": "A",
            "properties": {},
            "tags": [],
            "isPlaceholder": False,
        }
