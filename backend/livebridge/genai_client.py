"""Gemini Live API connector built on the google-genai SDK.

The SDK's live session is an async context manager read with
`session.receive()`. Each session runs in a dedicated asyncio.Task
("pump") that enters the context, acknowledges the connection, and pushes
every server message into the bridge's channel. Closing the session cancels
the pump, which exits the context, closes the websocket and releases the
client.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any

from google import genai
from google.genai import errors, types
from websockets.exceptions import ConnectionClosed

from livebridge.config import Credentials, Settings
from livebridge.errors import LiveConnectError, ProbeError
from livebridge.remote import (
    RemoteChannel,
    RemoteClosed,
    RemoteFault,
    RemoteMessage,
    RemoteOpened,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# SDK client factory
# ---------------------------------------------------------------------------


def create_client(credentials: Credentials) -> genai.Client:
    """Build a genai.Client for either the Developer API or Vertex AI."""
    http_options = None
    if credentials.api_version:
        http_options = types.HttpOptions(api_version=credentials.api_version)

    if credentials.vertexai:
        return genai.Client(
            vertexai=True,
            project=credentials.project,
            location=credentials.location,
            http_options=http_options,
        )
    return genai.Client(api_key=credentials.api_key, http_options=http_options)


async def close_client(client: genai.Client) -> None:
    """Release the client's HTTP connections; failures are only logged."""
    try:
        await client.aio.aclose()
    except Exception as e:
        logger.warning("Error closing genai client: %s", e)


def build_live_config(settings: Settings) -> types.LiveConnectConfig:
    """Audio + text responses with a sliding context window."""
    return types.LiveConnectConfig(
        response_modalities=[types.Modality.AUDIO, types.Modality.TEXT],
        media_resolution=types.MediaResolution.MEDIA_RESOLUTION_MEDIUM,
        speech_config=types.SpeechConfig(
            voice_config=types.VoiceConfig(
                prebuilt_voice_config=types.PrebuiltVoiceConfig(
                    voice_name=settings.voice_name,
                ),
            ),
        ),
        context_window_compression=types.ContextWindowCompressionConfig(
            trigger_tokens=25600,
            sliding_window=types.SlidingWindow(target_tokens=12800),
        ),
    )


def dump_server_message(message: types.LiveServerMessage) -> dict[str, Any]:
    """Wire form of a server message: camelCase keys, unset fields dropped."""
    return message.model_dump(mode="json", by_alias=True, exclude_none=True)


def is_close_code(code: Any) -> bool:
    """Websocket close codes (RFC 6455 and private range), not HTTP statuses."""
    return isinstance(code, int) and 1000 <= code <= 4999


def close_reason(error: errors.APIError) -> str:
    """Close reason carried by an APIError raised for a websocket close.

    The SDK passes the bare reason string as the error's response body, so
    it lands in `details` rather than `message`.
    """
    if isinstance(error.details, str):
        return error.details
    return error.message or ""


# ---------------------------------------------------------------------------
# Live session
# ---------------------------------------------------------------------------


class GenAILiveSession:
    """One Live API session driven by a background pump task."""

    def __init__(
        self,
        client: genai.Client,
        model: str,
        config: types.LiveConnectConfig,
        channel: RemoteChannel,
    ):
        self.session_id = str(uuid.uuid4())
        self._client = client
        self._model = model
        self._config = config
        self._channel = channel
        self._session: Any = None
        self._task: asyncio.Task[None] | None = None
        self._started = asyncio.Event()
        self._connect_error: Exception | None = None

    async def start(self) -> None:
        """Launch the pump and wait until the websocket is set up (or failed)."""
        self._task = asyncio.create_task(
            self._run(), name=f"live-session-{self.session_id}"
        )
        try:
            await self._started.wait()
        except asyncio.CancelledError:
            await self.close()
            raise
        if self._connect_error is not None:
            raise LiveConnectError(
                f"Failed to connect to Google GenAI Live API: {self._connect_error}"
            ) from self._connect_error

    async def _run(self) -> None:
        """Pump loop: connect, acknowledge, then forward server messages."""
        try:
            async with self._client.aio.live.connect(
                model=self._model, config=self._config
            ) as session:
                self._session = session
                self._started.set()
                await self._channel.put(RemoteOpened(session_id=self.session_id))

                # receive() stops after each turn_complete; keep reading
                # until the server or the bridge closes the session.
                while True:
                    async for message in session.receive():
                        await self._channel.put(RemoteMessage(dump_server_message(message)))

        except ConnectionClosed as e:
            if self._fail_start(e):
                return
            await self._report_closed(e.rcvd.reason if e.rcvd is not None else "")

        except errors.APIError as e:
            if self._fail_start(e):
                return
            # The SDK re-raises websocket closes as APIError(close code, reason)
            if is_close_code(e.code):
                await self._report_closed(close_reason(e))
            else:
                await self._report_fault(e)

        except Exception as e:
            if self._fail_start(e):
                return
            await self._report_fault(e)

        finally:
            await close_client(self._client)

    async def _report_closed(self, reason: str) -> None:
        logger.info("Live session %s closed by server: %s", self.session_id, reason)
        await self._channel.put(RemoteClosed(reason=reason))

    async def _report_fault(self, exc: Exception) -> None:
        logger.warning("Live session %s failed: %s", self.session_id, exc)
        await self._channel.put(RemoteFault(message=str(exc) or type(exc).__name__))

    def _fail_start(self, exc: Exception) -> bool:
        """Record a failure that happened before the connection was up."""
        if self._started.is_set():
            return False
        logger.error("Live session %s could not connect: %s", self.session_id, exc)
        self._connect_error = exc
        self._started.set()
        return True

    async def send_turns(self, turns: list[str]) -> None:
        """Submit the user turns and mark the client turn complete."""
        await self._session.send_client_content(
            turns=[
                types.Content(role="user", parts=[types.Part(text=turn)])
                for turn in turns
            ],
            turn_complete=True,
        )

    async def close(self) -> None:
        """Stop the pump; leaving the SDK context closes the websocket."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        logger.info("Live session %s closed", self.session_id)


# ---------------------------------------------------------------------------
# Connector
# ---------------------------------------------------------------------------


class GenAILiveConnector:
    """LiveConnector backed by google-genai."""

    def __init__(self, settings: Settings):
        self._settings = settings

    async def connect(
        self,
        credentials: Credentials,
        model: str,
        channel: RemoteChannel,
    ) -> GenAILiveSession:
        session = GenAILiveSession(
            create_client(credentials),
            model,
            build_live_config(self._settings),
            channel,
        )
        await session.start()
        return session

    async def probe(self, credentials: Credentials) -> None:
        """List a single model to check the key and network path."""
        client = create_client(credentials)
        try:
            await client.aio.models.list(config=types.ListModelsConfig(page_size=1))
        except errors.APIError as e:
            body = json.dumps(e.details, default=str) if e.details else None
            raise ProbeError(f"Live API probe failed: {e.code} {e.message}", body=body) from e
        except Exception as e:
            raise ProbeError(f"Live API unreachable: {e}") from e
        finally:
            await close_client(client)
