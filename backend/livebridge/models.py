"""Pydantic models: the wire contract between the bridge and its clients.

Outbound events are what goes in the `data` field of each SSE frame. The
`type` tag discriminates them; clients switch on it.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, model_serializer


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class StreamRequest(BaseModel):
    """POST /stream request body."""
    input: str | list[str] | None = None
    model: str | None = None

    @classmethod
    def from_body(cls, raw: bytes) -> StreamRequest:
        """Parse a request body, treating anything malformed as empty."""
        try:
            return cls.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            return cls()


class ErrorResponse(BaseModel):
    """Non-streaming failure body (initialization or health check)."""
    error: str
    body: str | None = None


# ---------------------------------------------------------------------------
# SSE event shapes
# ---------------------------------------------------------------------------

class OpenEvent(BaseModel):
    """Session established; always the first frame."""
    type: Literal["open"] = "open"


class MessageEvent(BaseModel):
    """A server message forwarded verbatim (text, audio or turn marker)."""
    type: Literal["message"] = "message"
    payload: Any = None


class CloseEvent(BaseModel):
    """The remote side closed the session."""
    type: Literal["close"] = "close"
    reason: str = ""


class EndEvent(BaseModel):
    """Bridge-initiated end of stream; nothing follows it."""
    type: Literal["end"] = "end"
    message: Any = None

    @model_serializer(mode="wrap")
    def _omit_empty_message(self, handler):
        data = handler(self)
        if self.message is None:
            data.pop("message", None)
        return data


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str


OutboundEvent = Annotated[
    Union[OpenEvent, MessageEvent, CloseEvent, EndEvent, ErrorEvent],
    Field(discriminator="type"),
]

outbound_event_adapter: TypeAdapter[OutboundEvent] = TypeAdapter(OutboundEvent)
