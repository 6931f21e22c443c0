"""
Messages exchanged with the graph view.

Outbound (server -> view) and inbound (view -> server) messages are closed sets,
each a discriminated union on ``type``. Every message is ``{"type", "payload"}``
on the wire and is fire-and-forget: nothing is acknowledged.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .graph import GraphData


class MessageProtocolError(ValueError):
    """Raised when an inbound message of a known kind carries an invalid payload."""

    def __init__(self, message_type: str, detail: str):
        self.message_type = message_type
        self.detail = detail
        super().__init__(f"Invalid '{message_type}' message: {detail}")


# Outbound ------------------------------------------------------------------


class DidUpdateStyle(BaseModel):
    type: Literal["didUpdateStyle"] = "didUpdateStyle"
    payload: Any = None


class DidUpdateGraphData(BaseModel):
    type: Literal["didUpdateGraphData"] = "didUpdateGraphData"
    payload: GraphData


class DidSelectNote(BaseModel):
    type: Literal["didSelectNote"] = "didSelectNote"
    payload: str = Field(..., description="ID of the node to highlight")


OutboundMessage = Annotated[
    Union[DidUpdateStyle, DidUpdateGraphData, DidSelectNote],
    Field(discriminator="type"),
]


# Inbound -------------------------------------------------------------------


class WebviewDidLoad(BaseModel):
    type: Literal["webviewDidLoad"] = "webviewDidLoad"
    payload: Any = None


class WebviewDidSelectNode(BaseModel):
    type: Literal["webviewDidSelectNode"] = "webviewDidSelectNode"
    payload: str = Field(..., description="ID of the node clicked in the view")


class ErrorReport(BaseModel):
    type: Literal["error"] = "error"
    payload: Any = None


InboundMessage = Annotated[
    Union[WebviewDidLoad, WebviewDidSelectNode, ErrorReport],
    Field(discriminator="type"),
]

INBOUND_TYPES = frozenset({"webviewDidLoad", "webviewDidSelectNode", "error"})

_inbound_adapter: TypeAdapter = TypeAdapter(InboundMessage)


def parse_inbound(raw: Any) -> Optional[InboundMessage]:
    """
    Parse a message received from the view.

    Returns ``None`` for anything that is not one of the known inbound kinds.
    Raises :class:`MessageProtocolError` when a known kind has a bad payload.
    """
    if not isinstance(raw, Mapping):
        return None
    message_type = raw.get("type")
    if message_type not in INBOUND_TYPES:
        return None
    try:
        return _inbound_adapter.validate_python(dict(raw))
    except ValidationError as exc:
        raise MessageProtocolError(str(message_type), str(exc)) from exc


def to_wire(message: BaseModel) -> dict:
    """Serialize an outbound message to a JSON-ready dict."""
    return message.model_dump(mode="json", by_alias=True)


__all__ = [
    "DidUpdateStyle",
    "DidUpdateGraphData",
    "DidSelectNote",
    "OutboundMessage",
    "WebviewDidLoad",
    "WebviewDidSelectNode",
    "ErrorReport",
    "InboundMessage",
    "INBOUND_TYPES",
    "MessageProtocolError",
    "parse_inbound",
    "to_wire",
]
