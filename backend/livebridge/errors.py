"""Exception types for the stream bridge.

Everything here is raised before the SSE stream is committed and is turned
into a JSON error response by the routes. Faults after commitment travel
in-band as `error` events instead.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base exception for the stream bridge."""


class ConfigurationError(BridgeError):
    """Credentials or client configuration are missing or inconsistent."""


class MissingApiKeyError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__(
            "Missing GOOGLE_API_KEY or GEMINI_API_KEY environment variable."
        )


class VertexConfigError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__(
            "Vertex AI mode enabled (GOOGLE_GENAI_USE_VERTEXAI=true) but "
            "GOOGLE_CLOUD_PROJECT or GOOGLE_CLOUD_LOCATION is missing."
        )


class LiveConnectError(BridgeError):
    """The Live API refused or failed to establish a session."""

    def __init__(self, message: str = "Failed to connect to Google GenAI Live API.") -> None:
        super().__init__(message)


class ProbeError(BridgeError):
    """Health probe against the remote API failed."""

    def __init__(self, message: str, body: str | None = None) -> None:
        super().__init__(message)
        self.body = body
