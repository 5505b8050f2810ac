"""Application configuration via pydantic-settings.

Reads from environment variables and .env file. Settings are resolved per
request through `get_settings()` so a changed environment is picked up
without a restart.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict

from livebridge.errors import MissingApiKeyError, VertexConfigError


@dataclass(frozen=True)
class Credentials:
    """Validated credentials for the Gemini client."""

    api_key: str | None = None
    vertexai: bool = False
    project: str | None = None
    location: str | None = None
    api_version: str | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Gemini Developer API
    google_api_key: str = ""
    gemini_api_key: str = ""

    # Vertex AI
    google_genai_use_vertexai: bool = False
    google_cloud_project: str = ""
    google_cloud_location: str = ""

    # "v1" or "v1alpha"; empty means SDK default
    google_genai_api_version: str = ""

    # Live session
    default_model: str = "models/gemini-2.5-flash-preview-native-audio-dialog"
    default_greeting: str = "Hello!"
    voice_name: str = "Zephyr"
    event_buffer_size: int = 64

    # SSE keep-alive comment interval (seconds)
    sse_ping_interval: int = 15

    # CORS
    cors_allow_origins: str = "*"
    cors_allow_credentials: bool = False

    @property
    def api_key(self) -> str:
        return self.google_api_key or self.gemini_api_key

    @property
    def credentials_configured(self) -> bool:
        if self.google_genai_use_vertexai:
            return bool(self.google_cloud_project and self.google_cloud_location)
        return bool(self.api_key)

    @property
    def allowed_origins(self) -> list[str] | str:
        """Parsed CORS allow-list, or "*" for any origin."""
        raw = self.cors_allow_origins.strip()
        if not raw or raw == "*":
            return "*"
        parts = [p.strip() for p in raw.split(",") if p.strip()]
        return parts or "*"

    def credentials(self) -> Credentials:
        """Validate and return client credentials.

        Raises:
            VertexConfigError: Vertex AI mode without project or location.
            MissingApiKeyError: API-key mode without a key.
        """
        api_version = self.google_genai_api_version or None
        if self.google_genai_use_vertexai:
            if not self.google_cloud_project or not self.google_cloud_location:
                raise VertexConfigError()
            return Credentials(
                vertexai=True,
                project=self.google_cloud_project,
                location=self.google_cloud_location,
                api_version=api_version,
            )

        if not self.api_key:
            raise MissingApiKeyError()
        return Credentials(api_key=self.api_key, api_version=api_version)


def get_settings() -> Settings:
    """FastAPI dependency: fresh settings for every request."""
    return Settings()
