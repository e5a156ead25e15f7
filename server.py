"""
FastAPI service exposing the extraction engine.

- GET  /api/ping      → liveness probe
- POST /api/extract   → extract a product from posted HTML
- POST /api/fetch     → fetch a URL and extract its product
- WS   /ws/pages      → live page session: the host streams load/navigate/
                        mutation events and getProduct/__ping__ actions, the
                        engine streams replies and productUpdated pushes
"""

import asyncio
import logging
from typing import Any

import httpx
import orjson
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from config import ACTION_PING, ALLOWED_ORIGINS
from fetcher import fetch_html
from messaging import ContentEngine, QueueChannel, deliver, extract_response
from models import ExtractRequest, ExtractResponse, FetchRequest
from session import PageSession, is_extractable_url

logger = logging.getLogger("server")


# ---------------------------------------------------------------------------
# WebSocket session protocol
# ---------------------------------------------------------------------------


class PageSocket:
    """One WebSocket connection = one page = one ContentEngine."""

    def __init__(self) -> None:
        self.channel = QueueChannel()
        self.engine: ContentEngine | None = None

    def handle(self, message: Any) -> dict[str, Any] | None:
        """Apply one inbound message; returns the reply to send, if any."""
        if not isinstance(message, dict):
            return {"ok": False, "error": "message must be an object"}

        event = message.get("event")
        if event == "load":
            session = PageSession(_text_field(message, "url"), _text_field(message, "html", required=False))
            if self.engine is not None:
                self.engine.detector.cancel_pending()
            self.engine = ContentEngine(session, self.channel)
            self.engine.start()
            return None
        if event in ("navigate", "mutation"):
            if self.engine is None:
                return {"ok": False, "error": "no page loaded"}
            if event == "navigate":
                self.engine.session.navigate(
                    _text_field(message, "kind"),
                    _text_field(message, "url", required=False),
                    _text_field(message, "html", required=False),
                )
            else:
                self.engine.session.mutate(_text_field(message, "html"))
            return None

        if self.engine is None:
            if message.get("action") == ACTION_PING:
                return {"ok": True}
            return {"ok": False, "error": "no page loaded"}
        return self.engine.handle_message(message)


def _text_field(message: dict[str, Any], key: str, required: bool = True) -> str | None:
    """A string field of an inbound message; ValueError when missing or mistyped."""
    value = message.get(key)
    if value is None and not required:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


async def _drain(websocket: WebSocket, channel: QueueChannel) -> None:
    while True:
        message = await channel.queue.get()
        await websocket.send_text(orjson.dumps(message).decode())


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Product Extraction Engine",
    default_response_class=ORJSONResponse,
)

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    max_age=86400,
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/api/ping")
async def ping():
    return {"ok": True}


@app.post("/api/extract", response_model=ExtractResponse)
async def extract(request: ExtractRequest):
    """Extract a product from an HTML snapshot."""
    if not is_extractable_url(request.url):
        raise HTTPException(status_code=400, detail=f"Unsupported page URL: {request.url}")
    return extract_response(PageSession(request.url, request.html))


@app.post("/api/fetch", response_model=ExtractResponse)
async def fetch(request: FetchRequest):
    """Fetch a product page and extract it."""
    if not request.url.lower().startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail=f"Unsupported page URL: {request.url}")
    try:
        final_url, html = await fetch_html(request.url)
    except httpx.HTTPError as e:
        logger.warning(f"Fetch failed for {request.url}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Fetch failed: {e}") from e
    return extract_response(PageSession(final_url, html))


@app.websocket("/ws/pages")
async def page_socket(websocket: WebSocket):
    await websocket.accept()
    page = PageSocket()
    sender = asyncio.create_task(_drain(websocket, page.channel))
    try:
        while True:
            reply = _reply_to(page, await websocket.receive_text())
            if reply is not None:
                deliver(page.channel, reply)
    except WebSocketDisconnect:
        logger.info("Page socket disconnected")
    finally:
        # Page unload: drop the pending re-extraction and stop delivering
        page.channel.close()
        if page.engine is not None:
            page.engine.detector.cancel_pending()
        sender.cancel()
        await asyncio.wait([sender])
        if not sender.cancelled() and sender.exception() is not None:
            logger.warning("Page socket sender failed", exc_info=sender.exception())


def _reply_to(page: PageSocket, text: str) -> dict[str, Any] | None:
    try:
        message = orjson.loads(text)
    except orjson.JSONDecodeError as e:
        return {"ok": False, "error": f"bad message: {e}"}
    try:
        reply = page.handle(message)
    except (KeyError, ValueError) as e:
        reply = {"ok": False, "error": f"bad message: {e}"}
    if reply is not None and isinstance(message, dict) and isinstance(message.get("request_id"), str):
        reply["request_id"] = message["request_id"]
    return reply
