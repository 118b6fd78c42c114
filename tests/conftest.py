"""Shared test fixtures.

``RecordingTransport`` stands in for the ASGI connection in emitter unit
tests; ``ASGIHarness`` plays the server side of an ASGI call for response
and transport tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from ssekit.sse.config import StreamConfig
from ssekit.sse.emitter import SSEEmitter


class RecordingTransport:
    """In-memory ``StreamTransport`` that records every chunk."""

    def __init__(self) -> None:
        self.status_code: int | None = None
        self.headers: dict[str, str] = {}
        self.chunks: list[str] = []
        self.waits: list[float] = []
        self.finished = False
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    def disconnect(self) -> None:
        self._connected = False

    @property
    def body(self) -> str:
        return "".join(self.chunks)

    async def start(self, status_code: int, headers: Mapping[str, str]) -> bool:
        self.status_code = status_code
        self.headers = dict(headers)
        return True

    async def send(self, chunk: str) -> bool:
        if not self._connected:
            return False
        self.chunks.append(chunk)
        return True

    async def finish(self) -> None:
        self.finished = True

    async def wait_for_disconnect(self, timeout: float) -> bool:
        self.waits.append(timeout)
        return not self._connected


class ASGIHarness:
    """Server side of one ASGI HTTP call: feeds ``receive``, records ``send``."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []
        self.disconnected = asyncio.Event()
        self._request_sent = False

    async def receive(self) -> dict[str, Any]:
        if not self._request_sent:
            self._request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await self.disconnected.wait()
        return {"type": "http.disconnect"}

    async def send(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    @property
    def start_message(self) -> dict[str, Any]:
        return self.messages[0]

    @property
    def body_messages(self) -> list[dict[str, Any]]:
        return [m for m in self.messages if m["type"] == "http.response.body"]

    @property
    def body(self) -> str:
        return b"".join(m["body"] for m in self.body_messages).decode()

    @property
    def completed(self) -> bool:
        return any(not m.get("more_body", False) for m in self.body_messages)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def emitter() -> SSEEmitter:
    """An emitter with library defaults, independent of the environment."""
    return SSEEmitter(StreamConfig())


@pytest.fixture
async def streaming(emitter: SSEEmitter, transport: RecordingTransport) -> SSEEmitter:
    """An emitter that has already written its preamble to ``transport``."""
    await emitter.start(transport)
    return emitter


@pytest.fixture
def harness() -> ASGIHarness:
    return ASGIHarness()


@pytest.fixture
def http_scope() -> dict[str, Any]:
    return {"type": "http", "method": "GET", "path": "/stream", "headers": []}


@pytest.fixture
async def async_client() -> AsyncClient:
    """An httpx AsyncClient against a fresh FastAPI app."""
    from ssekit.api.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
