"""FastAPI application entry point."""

from fastapi import FastAPI

from livebridge.routes import stream

app = FastAPI(
    title="Live Stream Bridge",
    description="Relays Gemini Live API sessions as Server-Sent Events",
    version="0.1.0",
)

app.include_router(stream.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
