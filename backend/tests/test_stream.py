"""Tests for the /stream endpoints: SSE relay with a fake Live API."""

from __future__ import annotations

from livebridge.errors import LiveConnectError, ProbeError
from livebridge.remote import RemoteClosed, RemoteFault, RemoteMessage
from livebridge.sse_bridge import parse_frames

TEXT_CHUNK = {"serverContent": {"modelTurn": {"parts": [{"text": "hi"}]}}}
TURN_COMPLETE = {"serverContent": {"turnComplete": True}}
ORIGIN = "https://app.example.com"


def happy_script():
    return [
        RemoteMessage(TEXT_CHUNK),
        RemoteMessage(TURN_COMPLETE),
        RemoteClosed(reason="done"),
    ]


class TestPostStream:
    async def test_returns_sse_stream(self, client, connector):
        connector.script = happy_script()
        resp = await client.post("/stream", json={"input": "hello"})

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "text/event-stream; charset=utf-8"
        assert resp.headers["cache-control"] == "no-cache, no-transform"
        assert resp.headers["x-accel-buffering"] == "no"

    async def test_emits_events_in_order(self, client, connector):
        connector.script = happy_script()
        resp = await client.post("/stream", json={"input": "hello"})
        events = parse_frames(resp.text)

        assert [e["type"] for e in events] == ["open", "message", "message", "end"]
        assert events[1]["payload"] == TEXT_CHUNK
        assert events[-1] == {"type": "end", "message": "turn_complete"}

    async def test_wire_format_is_data_lines_only(self, client, connector):
        connector.script = happy_script()
        resp = await client.post("/stream", json={"input": "hello"})

        assert resp.text.startswith('data: {"type":"open"}\n\n')
        assert "event:" not in resp.text
        assert "\r\n" not in resp.text

    async def test_single_string_input(self, client, connector):
        connector.script = happy_script()
        await client.post("/stream", json={"input": "hello"})

        assert connector.sessions[0].sent_turns == [["hello"]]

    async def test_list_input_and_model_override(self, client, connector):
        connector.script = happy_script()
        await client.post(
            "/stream",
            json={"input": ["first", "second"], "model": "models/custom"},
        )

        assert connector.sessions[0].sent_turns == [["first", "second"]]
        assert connector.models == ["models/custom"]

    async def test_default_model(self, client, connector, settings):
        connector.script = happy_script()
        await client.post("/stream", json={})

        assert connector.models == [settings.default_model]
        assert connector.sessions[0].sent_turns == [["Hello!"]]

    async def test_malformed_body_falls_back_to_default_turn(self, client, connector):
        connector.script = happy_script()
        resp = await client.post(
            "/stream",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 200
        assert connector.sessions[0].sent_turns == [["Hello!"]]

    async def test_session_closed_once_after_stream(self, client, connector):
        connector.script = happy_script()
        await client.post("/stream", json={"input": "hello"})

        assert connector.sessions[0].close_calls == 1

    async def test_remote_fault_is_in_band(self, client, connector):
        connector.script = [RemoteFault(message="boom"), RemoteClosed(reason="error")]
        resp = await client.post("/stream", json={"input": "hello"})
        events = parse_frames(resp.text)

        assert resp.status_code == 200
        assert [e["type"] for e in events] == ["open", "error", "close", "end"]
        assert events[1]["error"] == "boom"
        assert events[-1]["message"] == "error"

    async def test_missing_api_key_returns_500(self, client, connector, settings):
        settings.google_api_key = ""
        resp = await client.post("/stream", json={"input": "hello"})

        assert resp.status_code == 500
        assert resp.headers["content-type"].startswith("application/json")
        assert "GOOGLE_API_KEY" in resp.json()["error"]
        assert "data:" not in resp.text
        assert connector.sessions == []

    async def test_connect_failure_returns_500(self, client, connector):
        connector.connect_error = LiveConnectError("Failed to connect to Google GenAI Live API.")
        resp = await client.post("/stream", json={"input": "hello"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to connect to Google GenAI Live API."}

    async def test_error_response_carries_cors_headers(self, client, settings):
        settings.google_api_key = ""
        settings.cors_allow_origins = ORIGIN
        resp = await client.post(
            "/stream", json={"input": "hi"}, headers={"Origin": ORIGIN}
        )

        assert resp.status_code == 500
        assert resp.headers["access-control-allow-origin"] == ORIGIN
        assert resp.headers["vary"] == "Origin"

    async def test_stream_carries_cors_headers(self, client, connector, settings):
        settings.cors_allow_origins = ORIGIN
        connector.script = happy_script()
        resp = await client.post(
            "/stream", json={"input": "hi"}, headers={"Origin": ORIGIN}
        )

        assert resp.headers["access-control-allow-origin"] == ORIGIN


class TestGetStream:
    async def test_query_inputs_are_turns(self, client, connector):
        connector.script = happy_script()
        resp = await client.get(
            "/stream", params=[("input", "a"), ("input", "b"), ("model", "models/q")]
        )
        events = parse_frames(resp.text)

        assert resp.status_code == 200
        assert [e["type"] for e in events] == ["open", "message", "message", "end"]
        assert connector.sessions[0].sent_turns == [["a", "b"]]
        assert connector.models == ["models/q"]

    async def test_no_input_uses_default_turn(self, client, connector):
        connector.script = happy_script()
        await client.get("/stream")

        assert connector.sessions[0].sent_turns == [["Hello!"]]

    async def test_missing_api_key_returns_500(self, client, connector, settings):
        settings.google_api_key = ""
        resp = await client.get("/stream", params={"input": "hi"})

        assert resp.status_code == 500
        assert "GEMINI_API_KEY" in resp.json()["error"]
        assert connector.sessions == []

    async def test_vertex_misconfiguration_returns_500(self, client, settings):
        settings.google_genai_use_vertexai = True
        settings.google_cloud_project = "proj"
        resp = await client.get("/stream")

        assert resp.status_code == 500
        assert "GOOGLE_CLOUD_LOCATION" in resp.json()["error"]


class TestHealth:
    async def test_healthy_returns_204(self, client, connector):
        resp = await client.get("/stream", params={"health": "1"})

        assert resp.status_code == 204
        assert resp.content == b""
        assert connector.probes == 1
        assert connector.sessions == []

    async def test_probe_failure_returns_500_with_body(self, client, connector):
        connector.probe_error = ProbeError(
            "Live API probe failed: 403 API key not valid",
            body='{"error": "PERMISSION_DENIED"}',
        )
        resp = await client.get("/stream", params={"health": "1"})

        assert resp.status_code == 500
        data = resp.json()
        assert "403" in data["error"]
        assert data["body"] == '{"error": "PERMISSION_DENIED"}'

    async def test_probe_failure_without_body(self, client, connector):
        connector.probe_error = ProbeError("Live API unreachable: timed out")
        resp = await client.get("/stream", params={"health": "1"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Live API unreachable: timed out"}

    async def test_missing_api_key_fails_without_probe(self, client, connector, settings):
        settings.google_api_key = ""
        resp = await client.get("/stream", params={"health": "1"})

        assert resp.status_code == 500
        assert "GOOGLE_API_KEY" in resp.json()["error"]
        assert connector.probes == 0

    async def test_other_health_values_stream(self, client, connector):
        connector.script = happy_script()
        resp = await client.get("/stream", params={"health": "0"})

        assert resp.status_code == 200
        assert connector.probes == 0
