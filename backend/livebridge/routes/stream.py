"""Stream endpoints: POST/GET /stream relay a Live API session as SSE."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse
from starlette.background import BackgroundTask

from livebridge.bridge import SessionBridge
from livebridge.config import Settings, get_settings
from livebridge.cors import cors_headers
from livebridge.errors import BridgeError, ProbeError
from livebridge.genai_client import GenAILiveConnector
from livebridge.models import ErrorResponse, StreamRequest
from livebridge.remote import LiveConnector
from livebridge.sse_bridge import stream_sse_events
from livebridge.turns import normalize_turns

logger = logging.getLogger(__name__)

router = APIRouter()


def get_connector(settings: Settings = Depends(get_settings)) -> LiveConnector:
    return GenAILiveConnector(settings)


def _error_response(
    request: Request,
    settings: Settings,
    message: str,
    body: str | None = None,
) -> JSONResponse:
    return JSONResponse(
        ErrorResponse(error=message, body=body).model_dump(exclude_none=True),
        status_code=500,
        headers=cors_headers(settings, request.headers.get("origin")),
    )


async def _open_stream(
    request: Request,
    settings: Settings,
    connector: LiveConnector,
    raw_input: object,
    model: str | None,
) -> Response:
    """Shared POST/GET path: open the session, then commit to SSE."""
    bridge = SessionBridge(
        settings,
        connector,
        turns=normalize_turns(raw_input, settings.default_greeting),
        model=model or settings.default_model,
    )
    try:
        await bridge.open()
    except BridgeError as e:
        logger.error("Stream initialization failed: %s", e)
        return _error_response(request, settings, str(e))

    headers = cors_headers(settings, request.headers.get("origin"))
    headers["Cache-Control"] = "no-cache, no-transform"
    return EventSourceResponse(
        stream_sse_events(bridge.events()),
        media_type="text/event-stream; charset=utf-8",
        headers=headers,
        ping=settings.sse_ping_interval,
        sep="\n",
        background=BackgroundTask(bridge.cancel),
    )


@router.options("/stream")
async def stream_preflight(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Response:
    return Response(
        status_code=204,
        headers=cors_headers(settings, request.headers.get("origin")),
    )


@router.post("/stream")
async def stream_post(
    request: Request,
    settings: Settings = Depends(get_settings),
    connector: LiveConnector = Depends(get_connector),
) -> Response:
    """Open a Live session for the JSON body `{input, model}` and stream it.

    Events emitted: open, message, error, close, end.
    """
    body = StreamRequest.from_body(await request.body())
    return await _open_stream(request, settings, connector, body.input, body.model)


@router.get("/stream")
async def stream_get(
    request: Request,
    turns: list[str] | None = Query(None, alias="input"),
    model: str | None = None,
    health: str | None = None,
    settings: Settings = Depends(get_settings),
    connector: LiveConnector = Depends(get_connector),
) -> Response:
    """EventSource-friendly variant; `?health=1` probes the Live API instead."""
    if health == "1":
        return await _health(request, settings, connector)
    return await _open_stream(request, settings, connector, turns, model)


async def _health(
    request: Request,
    settings: Settings,
    connector: LiveConnector,
) -> Response:
    try:
        await connector.probe(settings.credentials())
    except ProbeError as e:
        logger.warning("Health probe failed: %s", e)
        return _error_response(request, settings, str(e), body=e.body)
    except BridgeError as e:
        return _error_response(request, settings, str(e))
    return Response(
        status_code=204,
        headers=cors_headers(settings, request.headers.get("origin")),
    )
