# health.py
# Plaintext liveness endpoint for the hosting platform. It answers any GET
# path and knows nothing about the poll loop.

from __future__ import annotations

import threading
from typing import Final

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

BODY: Final[str] = "NHL Goal Bot is running!"

SECURITY_HEADERS: Final[dict[str, str]] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Content-Security-Policy": "default-src 'none'",
}

app = FastAPI(
    title="NHL Goal Bot",
    description="Liveness check for the NHL goal bot worker",
    version="1.0.0",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)


@app.api_route("/", methods=["GET", "HEAD"])
@app.api_route("/{path:path}", methods=["GET", "HEAD"])
def alive(path: str = "") -> PlainTextResponse:
    return PlainTextResponse(BODY, headers=SECURITY_HEADERS)


def start_health_server(port: int, host: str = "0.0.0.0") -> threading.Thread:
    """Serve `app` from a daemon thread so the poll loop keeps the main thread."""
    config = uvicorn.Config(app, host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="health-server", daemon=True)
    thread.start()
    print(f"[HTTP] NHL Goal Bot listening on port {port}", flush=True)
    return thread
