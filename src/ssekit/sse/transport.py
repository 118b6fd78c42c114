"""Transports that carry SSE frames to the client.

The emitter only talks to the ``StreamTransport`` protocol. The ASGI
implementation sends each chunk as its own ``http.response.body`` message,
which is what flushes it to the client, and watches ``receive`` for
``http.disconnect`` in a background task.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from starlette.types import Message, Receive, Send

logger = structlog.get_logger()


class StreamTransport(Protocol):
    """What the emitter needs from the host transport."""

    @property
    def connected(self) -> bool: ...

    async def start(self, status_code: int, headers: Mapping[str, str]) -> bool: ...

    async def send(self, chunk: str) -> bool: ...

    async def finish(self) -> None: ...

    async def wait_for_disconnect(self, timeout: float) -> bool: ...


class ASGIStreamTransport:
    """Chunked ``text/event-stream`` body over an ASGI connection.

    Use as an async context manager so the disconnect listener is started and
    torn down with the response.
    """

    def __init__(self, send: Send, receive: Receive, charset: str = "utf-8") -> None:
        self._send = send
        self._receive = receive
        self._charset = charset
        self._disconnected = asyncio.Event()
        self._listener: asyncio.Task[None] | None = None
        self._finished = False

    async def __aenter__(self) -> ASGIStreamTransport:
        self._listener = asyncio.create_task(self._listen_for_disconnect())
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._listener is not None:
            self._listener.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener
            self._listener = None

    @property
    def connected(self) -> bool:
        return not self._disconnected.is_set()

    async def start(self, status_code: int, headers: Mapping[str, str]) -> bool:
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in headers.items()
        ]
        return await self._send_message(
            {"type": "http.response.start", "status": status_code, "headers": raw_headers}
        )

    async def send(self, chunk: str) -> bool:
        """Send one chunk. Returns False if the peer is gone."""
        if not self.connected:
            return False
        return await self._send_message(
            {"type": "http.response.body", "body": chunk.encode(self._charset), "more_body": True}
        )

    async def finish(self) -> None:
        """Terminate the chunked body. No-op if the peer already left."""
        if self._finished or not self.connected:
            return
        self._finished = True
        await self._send_message({"type": "http.response.body", "body": b"", "more_body": False})

    async def wait_for_disconnect(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds, waking early if the peer disconnects.

        Returns True if the peer disconnected.
        """
        if self._disconnected.is_set():
            return True
        try:
            await asyncio.wait_for(self._disconnected.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    async def _send_message(self, message: Message) -> bool:
        try:
            await self._send(message)
        except OSError as exc:
            # Servers raise OSError subclasses when writing to a closed socket.
            logger.info("sse_write_failed", error=str(exc))
            self._disconnected.set()
            return False
        return True

    async def _listen_for_disconnect(self) -> None:
        try:
            while True:
                message = await self._receive()
                if message["type"] == "http.disconnect":
                    logger.info("sse_client_disconnected")
                    break
        except Exception as exc:
            # A broken receive channel means the client can no longer be reached.
            logger.warning("sse_client_disconnected", error=str(exc))
        self._disconnected.set()
