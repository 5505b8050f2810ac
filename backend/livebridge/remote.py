"""Remote session boundary: what the bridge expects from a Live API backend.

A connector opens a session and reports everything that happens on it as
`RemoteEvent` values pushed into a queue the bridge owns. The bridge never
registers callbacks; it reads the queue one event at a time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol, Union

from livebridge.config import Credentials

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Remote events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RemoteOpened:
    """Connection acknowledged by the server."""
    session_id: str = ""


@dataclass(frozen=True)
class RemoteMessage:
    payload: Any


@dataclass(frozen=True)
class RemoteFault:
    message: str


@dataclass(frozen=True)
class RemoteClosed:
    reason: str = ""


RemoteEvent = Union[RemoteOpened, RemoteMessage, RemoteFault, RemoteClosed]
RemoteChannel = asyncio.Queue[RemoteEvent]


# ---------------------------------------------------------------------------
# Collaborator interface
# ---------------------------------------------------------------------------

class LiveSession(Protocol):
    session_id: str

    async def send_turns(self, turns: list[str]) -> None: ...

    async def close(self) -> None: ...


class LiveConnector(Protocol):
    async def connect(
        self,
        credentials: Credentials,
        model: str,
        channel: RemoteChannel,
    ) -> LiveSession:
        """Open a session; events for it are pushed into `channel`."""
        ...

    async def probe(self, credentials: Credentials) -> None:
        """Cheap reachability check. Raises ProbeError on failure."""
        ...


# ---------------------------------------------------------------------------
# Session handle
# ---------------------------------------------------------------------------

class SessionHandle:
    """Owns one LiveSession and makes closing it idempotent."""

    def __init__(self, session: LiveSession):
        self._session = session
        self.closed = False

    @property
    def session_id(self) -> str:
        return getattr(self._session, "session_id", "")

    async def send_turns(self, turns: list[str]) -> None:
        await self._session.send_turns(turns)

    async def close(self) -> None:
        """Close the remote session. Safe to call any number of times."""
        if self.closed:
            return
        self.closed = True
        try:
            await self._session.close()
        except Exception as e:
            logger.warning("Error closing live session %s: %s", self.session_id, e)
