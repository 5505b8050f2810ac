"""SSE bridge: turns outbound events into `data: <json>\\n\\n` frames.

This module sits between the session bridge and the HTTP response. Frames
carry no `event:` or `id:` lines; the event kind lives in the JSON `type`
field so that a client only has to split on blank lines.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from contextlib import aclosing
from typing import Any

from pydantic import BaseModel
from sse_starlette.sse import ServerSentEvent

FRAME_SEP = "\n"
FRAME_END = FRAME_SEP * 2


def to_sse(event: BaseModel) -> ServerSentEvent:
    """Wrap one outbound event as a data-only SSE frame.

    JSON escapes control characters inside strings, so the payload is a
    single `data:` line and the only blank line is the terminator.
    """
    return ServerSentEvent(data=event.model_dump_json(), sep=FRAME_SEP)


def encode_event(event: BaseModel) -> str:
    """The exact text of the frame written for `event`."""
    return to_sse(event).encode().decode("utf-8")


def split_frames(buffer: str) -> tuple[list[Any], str]:
    """Decode the complete frames in `buffer` back into JSON values.

    Chunks that are not `data:` lines (e.g. keep-alive comments) are
    skipped. Returns the decoded values and the trailing partial frame,
    which a streaming reader prepends to the next chunk it receives.
    """
    events: list[Any] = []
    *chunks, rest = buffer.replace("\r\n", "\n").split(FRAME_END)
    for chunk in chunks:
        chunk = chunk.strip()
        if not chunk.startswith("data:"):
            continue
        events.append(json.loads(chunk[len("data:"):].strip()))
    return events, rest


def parse_frames(raw: str) -> list[Any]:
    """Decode a whole response body; a trailing partial frame is ignored."""
    return split_frames(raw)[0]


async def stream_sse_events(
    event_source: AsyncGenerator[BaseModel, None],
) -> AsyncGenerator[ServerSentEvent, None]:
    """Convert bridge events to SSE events.

    Closing this generator (client went away) closes `event_source` too,
    so the bridge releases its session right away.

    Args:
        event_source: Async generator from SessionBridge.events().

    Yields:
        ServerSentEvent objects ready for EventSourceResponse.
    """
    async with aclosing(event_source) as events:
        async for event in events:
            yield to_sse(event)
