#!/usr/bin/env python3
"""Stream a Live API session through a running bridge and print the events.

Usage (with the package installed, `pip install -e .`):
    uvicorn livebridge.main:app --app-dir backend
    python scripts/stream_client.py "Say a short greeting, then end the turn."

Pass --get to use the EventSource-style GET endpoint, or --health to run
the health check only.
"""

import argparse
import asyncio
import sys

import httpx

from livebridge.sse_bridge import split_frames

BASE_URL = "http://localhost:8000"


async def health(base_url: str) -> int:
    async with httpx.AsyncClient(timeout=30.0) as client:
        resp = await client.get(f"{base_url}/stream", params={"health": "1"})
    if resp.status_code == 204:
        print("✅ Live API reachable and configured")
        return 0
    print(f"❌ Health check failed ({resp.status_code}): {resp.text}")
    return 1


async def stream(base_url: str, turns: list[str], model: str | None, use_get: bool) -> int:
    async with httpx.AsyncClient(timeout=None) as client:
        if use_get:
            params = [("input", t) for t in turns]
            if model:
                params.append(("model", model))
            request = client.build_request("GET", f"{base_url}/stream", params=params)
        else:
            body: dict = {"input": turns}
            if model:
                body["model"] = model
            request = client.build_request("POST", f"{base_url}/stream", json=body)

        resp = await client.send(request, stream=True)
        try:
            if resp.status_code != 200:
                await resp.aread()
                print(f"❌ Stream failed ({resp.status_code}): {resp.text}")
                return 1

            buffer = ""
            async for chunk in resp.aiter_text():
                events, buffer = split_frames(buffer + chunk)
                for event in events:
                    print_event(event)
        finally:
            await resp.aclose()
    return 0


def print_event(event: dict) -> None:
    kind = event.get("type")
    if kind == "message":
        parts = (
            event.get("payload", {})
            .get("serverContent", {})
            .get("modelTurn", {})
            .get("parts", [])
        )
        for part in parts:
            if "text" in part:
                print(f"   💬 {part['text']}")
            elif "inlineData" in part:
                mime = part["inlineData"].get("mimeType", "?")
                print(f"   🔊 {mime} ({len(part['inlineData'].get('data', ''))} b64 chars)")
    elif kind == "error":
        print(f"   ❌ error: {event.get('error')}")
    elif kind == "close":
        print(f"   🔌 closed: {event.get('reason')}")
    else:
        print(f"   [{kind}] {event.get('message', '')}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("input", nargs="*", help="turns to send")
    parser.add_argument("--model")
    parser.add_argument("--base-url", default=BASE_URL)
    parser.add_argument("--get", action="store_true", help="use GET /stream")
    parser.add_argument("--health", action="store_true", help="health check only")
    args = parser.parse_args()

    if args.health:
        sys.exit(asyncio.run(health(args.base_url)))
    sys.exit(asyncio.run(stream(args.base_url, args.input, args.model, args.get)))


if __name__ == "__main__":
    main()
