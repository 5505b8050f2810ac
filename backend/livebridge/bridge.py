"""Session bridge: each inbound request gets its own Live session and SSE stream.

The bridge validates credentials, opens the remote session, submits the
turns, and then relays remote events as outbound events until something
terminal happens:

    INITIALIZING -> CONNECTING -> OPEN -> TERMINATING -> CLOSED

Everything before OPEN raises (the route answers with a JSON error and no
stream). Everything after OPEN is reported in-band. The bridge is the only
reader of its remote channel, so events are relayed strictly in arrival
order and state transitions never interleave.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import AsyncGenerator
from typing import Any

from livebridge.config import Settings
from livebridge.errors import BridgeError, LiveConnectError
from livebridge.models import (
    CloseEvent,
    EndEvent,
    ErrorEvent,
    MessageEvent,
    OpenEvent,
    OutboundEvent,
)
from livebridge.remote import (
    LiveConnector,
    RemoteChannel,
    RemoteClosed,
    RemoteEvent,
    RemoteFault,
    RemoteMessage,
    RemoteOpened,
    SessionHandle,
)

logger = logging.getLogger(__name__)


class BridgeState(enum.Enum):
    INITIALIZING = "initializing"
    CONNECTING = "connecting"
    OPEN = "open"
    TERMINATING = "terminating"
    CLOSED = "closed"


def is_turn_complete(payload: Any) -> bool:
    """True if a server message marks the end of the model's turn."""
    if not isinstance(payload, dict):
        return False
    server_content = payload.get("serverContent")
    return isinstance(server_content, dict) and bool(server_content.get("turnComplete"))


class SessionBridge:
    """Bridges a Live API session to an outbound SSE event stream."""

    def __init__(
        self,
        settings: Settings,
        connector: LiveConnector,
        turns: list[str],
        model: str,
    ):
        self.turns = turns
        self.model = model
        self.state = BridgeState.INITIALIZING
        self.handle: SessionHandle | None = None
        self._settings = settings
        self._connector = connector
        # Bounded so a slow client eventually stalls the remote reader
        self._channel: RemoteChannel = asyncio.Queue(maxsize=settings.event_buffer_size)

    # -----------------------------------------------------------------------
    # Setup
    # -----------------------------------------------------------------------

    async def open(self) -> None:
        """Connect, wait for the server's acknowledgement, submit the turns.

        Raises:
            ConfigurationError: credentials missing or inconsistent.
            LiveConnectError: the session could not be established.
        """
        try:
            credentials = self._settings.credentials()
        except BridgeError:
            self.state = BridgeState.CLOSED
            raise

        self.state = BridgeState.CONNECTING
        try:
            session = await self._connector.connect(credentials, self.model, self._channel)
        except BridgeError:
            self.state = BridgeState.CLOSED
            raise
        except Exception as e:
            self.state = BridgeState.CLOSED
            raise LiveConnectError(f"Failed to connect to Google GenAI Live API: {e}") from e

        self.handle = SessionHandle(session)
        try:
            await self._await_acknowledgement()
            await self._submit_turns()
        except (BridgeError, asyncio.CancelledError):
            # Failed or cancelled setup must not leave the session open
            await self._abort()
            raise

        self.state = BridgeState.OPEN
        logger.info(
            "Live session %s open (model=%s, turns=%d)",
            self.handle.session_id,
            self.model,
            len(self.turns),
        )

    async def _await_acknowledgement(self) -> None:
        ack = await self._channel.get()
        if isinstance(ack, RemoteOpened):
            return
        if isinstance(ack, RemoteFault):
            raise LiveConnectError(ack.message)
        if isinstance(ack, RemoteClosed):
            raise LiveConnectError(f"Session closed before it opened: {ack.reason}")
        raise LiveConnectError()

    async def _submit_turns(self) -> None:
        try:
            await self.handle.send_turns(self.turns)
        except Exception as e:
            raise LiveConnectError(f"Failed to send turns: {e}") from e

    async def _abort(self) -> None:
        self.state = BridgeState.CLOSED
        if self.handle is not None:
            await self.handle.close()

    # -----------------------------------------------------------------------
    # Relay
    # -----------------------------------------------------------------------

    async def events(self) -> AsyncGenerator[OutboundEvent, None]:
        """Yield outbound events until the stream is finalized.

        `open` is always first. Each yield waits for the consumer, so a slow
        client applies backpressure all the way to the remote reader. If the
        consumer stops iterating (client disconnect) the session is closed
        and nothing more is emitted.
        """
        if self.state is not BridgeState.OPEN:
            return

        try:
            yield OpenEvent()
            while self.state is BridgeState.OPEN:
                remote = await self._channel.get()
                try:
                    outbound = await self._react(remote)
                except Exception as e:
                    logger.exception("Unexpected error relaying live session")
                    await self._close_handle()
                    outbound = [ErrorEvent(error=f"Unexpected error: {e}"), *self.finalize("error")]
                for event in outbound:
                    yield event
        finally:
            await self.cancel()

    async def _react(self, remote: RemoteEvent) -> list[OutboundEvent]:
        """Map one remote event to the outbound events it produces."""
        if isinstance(remote, RemoteMessage):
            outbound: list[OutboundEvent] = [MessageEvent(payload=remote.payload)]
            if is_turn_complete(remote.payload):
                await self._close_handle()
                outbound += self.finalize("turn_complete")
            return outbound

        if isinstance(remote, RemoteFault):
            logger.error("Live session fault: %s", remote.message)
            outbound = [ErrorEvent(error=remote.message)]
            await self._close_handle()
            # A close the server already delivered is still reported, but
            # the fault decides how the stream ends.
            pending = self._take_pending_close()
            if pending is not None:
                outbound.append(CloseEvent(reason=pending.reason))
            return outbound + self.finalize("error")

        if isinstance(remote, RemoteClosed):
            await self._close_handle()
            return [CloseEvent(reason=remote.reason), *self.finalize("closed")]

        # Repeated acknowledgement
        return []

    async def _close_handle(self) -> None:
        self.state = BridgeState.TERMINATING
        if self.handle is not None:
            await self.handle.close()

    def _take_pending_close(self) -> RemoteClosed | None:
        closed = None
        while True:
            try:
                pending = self._channel.get_nowait()
            except asyncio.QueueEmpty:
                return closed
            if closed is None and isinstance(pending, RemoteClosed):
                closed = pending

    # -----------------------------------------------------------------------
    # Termination
    # -----------------------------------------------------------------------

    def finalize(self, message: Any = None) -> list[OutboundEvent]:
        """Finish the stream: the `end` event (if a message is given) and
        nothing after it.

        Every terminal path ends here. Only the first call has an effect;
        later calls return no events.
        """
        if self.state is BridgeState.CLOSED:
            return []
        self.state = BridgeState.CLOSED
        logger.info("Live stream finalized (%s)", message)
        return [EndEvent(message=message)] if message else []

    async def cancel(self) -> None:
        """Release the remote session without emitting anything.

        Used when the client goes away. A no-op after normal completion.
        """
        if self.state is not BridgeState.CLOSED:
            logger.info("Client disconnected, closing live session")
        self.state = BridgeState.CLOSED
        if self.handle is not None:
            await self.handle.close()
