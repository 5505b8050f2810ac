"""CORS headers for the stream endpoints.

Computed per response instead of via CORSMiddleware: preflight answers 204,
error and health responses carry the same headers as the stream, and a
wildcard origin is never combined with credentials.
"""

from __future__ import annotations

from livebridge.config import Settings


def cors_headers(settings: Settings, origin: str | None = None) -> dict[str, str]:
    headers = {
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Max-Age": "86400",
    }

    allow_list = settings.allowed_origins
    if allow_list == "*":
        headers["Access-Control-Allow-Origin"] = "*"
        return headers

    if origin and origin in allow_list:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"
        if settings.cors_allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"

    return headers
