"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from livebridge.config import Credentials, Settings, get_settings
from livebridge.main import app
from livebridge.remote import RemoteEvent, RemoteOpened
from livebridge.routes.stream import get_connector


def _make_settings(**overrides) -> Settings:
    """Settings isolated from the real environment and .env file."""
    values = {
        "google_api_key": "test-key",
        "gemini_api_key": "",
        "google_genai_use_vertexai": False,
        "google_cloud_project": "",
        "google_cloud_location": "",
        "google_genai_api_version": "",
        "cors_allow_origins": "*",
        "cors_allow_credentials": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ---------------------------------------------------------------------------
# Fake Live API collaborator
# ---------------------------------------------------------------------------


class FakeLiveSession:
    """Replays a scripted list of remote events once turns are sent."""

    def __init__(self, channel: asyncio.Queue, script: list[RemoteEvent]):
        self.session_id = "fake-session"
        self.channel = channel
        self.script = script
        self.sent_turns: list[list[str]] = []
        self.close_calls = 0

    async def send_turns(self, turns: list[str]) -> None:
        self.sent_turns.append(list(turns))
        for event in self.script:
            self.channel.put_nowait(event)

    async def close(self) -> None:
        self.close_calls += 1


class FakeConnector:
    """LiveConnector double.

    Set `script` for what the server sends after the turns, `ack` for the
    connection acknowledgement (None to send nothing), and `connect_error` /
    `probe_error` to make those calls fail.
    """

    def __init__(self):
        self.script: list[RemoteEvent] = []
        self.ack: RemoteEvent | None = RemoteOpened(session_id="fake-session")
        self.connect_error: Exception | None = None
        self.probe_error: Exception | None = None
        self.sessions: list[FakeLiveSession] = []
        self.models: list[str] = []
        self.credentials: list[Credentials] = []
        self.probes = 0

    async def connect(self, credentials, model, channel) -> FakeLiveSession:
        self.credentials.append(credentials)
        if self.connect_error is not None:
            raise self.connect_error
        self.models.append(model)
        session = FakeLiveSession(channel, self.script)
        self.sessions.append(session)
        if self.ack is not None:
            channel.put_nowait(self.ack)
        return session

    async def probe(self, credentials) -> None:
        self.probes += 1
        self.credentials.append(credentials)
        if self.probe_error is not None:
            raise self.probe_error


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_settings():
    """Factory for isolated Settings objects."""
    return _make_settings


@pytest.fixture
def settings() -> Settings:
    return _make_settings()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse_starlette keeps a process-wide exit event bound to the first loop."""
    from sse_starlette.sse import AppStatus

    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None
    yield


@pytest.fixture
async def client(settings, connector) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the fake connector and test settings.

    Tests may mutate `settings` before sending a request; it is read per
    request.
    """
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_connector] = lambda: connector
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
