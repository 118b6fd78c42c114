"""ASGI response that runs an SSE handler against a live connection."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from starlette.responses import Response

from ssekit.core.exceptions import StreamClosed
from ssekit.sse.transport import ASGIStreamTransport

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.types import Receive, Scope, Send

    from ssekit.sse.emitter import SSEEmitter

    StreamHandler = Callable[[SSEEmitter], Awaitable[object]]

logger = structlog.get_logger()


class EventStreamResponse(Response):
    """Streams whatever ``handler`` emits through ``emitter``.

    The response owns the stream lifecycle: it starts the emitter with its
    own headers (so cookies set on the response are sent), applies the
    execution time ceiling, and ends the chunked body once the handler
    returns, calls ``close()`` or times out. Any other exception is logged
    and re-raised so the server aborts the connection without writing a
    trailing frame.
    """

    media_type = "text/event-stream"

    def __init__(self, emitter: SSEEmitter, handler: StreamHandler) -> None:
        self.emitter = emitter
        self.handler = handler
        self.status_code = 200
        self.background = None
        self.init_headers(emitter.headers)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        async with ASGIStreamTransport(send, receive) as transport:
            await self.emitter.start(transport, self.headers)
            try:
                await self._run_handler()
            except Exception:
                logger.exception("sse_stream_failed", stream_id=self.emitter.stream_id)
                raise
            finally:
                self.emitter.mark_closed()
            await transport.finish()

    async def _run_handler(self) -> None:
        limit = self.emitter.config.time_limit
        try:
            async with asyncio.timeout(limit) as deadline:
                await self.handler(self.emitter)
        except StreamClosed:
            pass
        except TimeoutError:
            if not deadline.expired():
                raise
            logger.warning(
                "sse_execution_time_exceeded",
                stream_id=self.emitter.stream_id,
                limit_seconds=limit,
            )
