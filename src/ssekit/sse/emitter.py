"""SSE emitter: builds one event stream for one connection.

Usage::

    emitter = SSEEmitter().set_retry(5000).set_header("X-Stream", "prices")

    async def handler(sse: SSEEmitter) -> None:
        while sse.is_connected():
            await sse.emit_json(await fetch_prices(), "prices")
            await asyncio.sleep(1)

    return emitter.stream(handler)

Or let the emitter drive a producer on a fixed cadence::

    return SSEEmitter().poll(lambda: {"time": time.time()}, interval_seconds=1)

An emitter is never shared: construct one per request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NoReturn
from uuid import uuid4

import structlog

from ssekit.core.config import settings
from ssekit.core.exceptions import StreamClosed, StreamStateError
from ssekit.sse.config import StreamConfig
from ssekit.sse.enums import StreamState
from ssekit.sse.events import SSEComment, SSEEvent
from ssekit.sse.formatting import encode_json, format_retry
from ssekit.sse.producer import Stop, call_producer, is_structured
from ssekit.sse.response import EventStreamResponse

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ssekit.sse.producer import Producer
    from ssekit.sse.response import StreamHandler
    from ssekit.sse.transport import StreamTransport

logger = structlog.get_logger()


class SSEEmitter:
    """Formats and writes SSE frames for a single stream."""

    def __init__(self, config: StreamConfig | None = None) -> None:
        self._config = config or StreamConfig.from_settings()
        self._state = StreamState.CONFIGURED
        self._transport: StreamTransport | None = None
        self._disconnect_seen = False
        self._response: EventStreamResponse | None = None
        self.stream_id = str(uuid4())
        self._log = logger.bind(stream_id=self.stream_id)

    @property
    def config(self) -> StreamConfig:
        return self._config

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def headers(self) -> dict[str, str]:
        return self._config.headers

    # ------------------------------------------------------------------
    # Configuration (only while CONFIGURED)
    # ------------------------------------------------------------------

    def set_retry(self, milliseconds: int) -> SSEEmitter:
        return self._configure(retry_millis=milliseconds)

    def set_default_event_id(self, event_id: str | None) -> SSEEmitter:
        return self._configure(default_event_id=event_id)

    def set_header(self, name: str, value: str) -> SSEEmitter:
        self._require_mutable()
        self._config = self._config.with_header(name, value)
        return self

    def set_execution_time_limit(self, seconds: int) -> SSEEmitter:
        """Cap how long the handler may run. 0 means unlimited."""
        return self._configure(execution_time_seconds=seconds)

    def _configure(self, **changes: Any) -> SSEEmitter:
        self._require_mutable()
        self._config = self._config.replace(**changes)
        return self

    def _require_mutable(self) -> None:
        if self._response is not None and self._state is StreamState.CONFIGURED:
            raise StreamStateError(
                "Stream configuration is fixed once a response has been created.",
                detail={"state": str(self._state)},
            )
        self._require_configured()

    def _require_configured(self) -> None:
        if self._state is not StreamState.CONFIGURED:
            raise StreamStateError(
                "Stream configuration is fixed once streaming has started.",
                detail={"state": str(self._state)},
            )

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def stream(self, handler: StreamHandler) -> EventStreamResponse:
        """Manual mode: ``handler`` pushes events itself.

        Finish configuring the emitter before calling this. The setters raise
        ``StreamStateError`` afterwards; change headers on the returned
        response instead, which is what goes on the wire.
        """
        self._response = EventStreamResponse(self, handler)
        return self._response

    def poll(
        self,
        producer: Producer,
        interval_seconds: float | None = None,
    ) -> EventStreamResponse:
        """Automatic mode: emit whatever ``producer`` returns every ``interval_seconds``."""
        interval = settings.poll_interval if interval_seconds is None else interval_seconds

        async def _handler(emitter: SSEEmitter) -> None:
            await emitter.run_polling(producer, interval)

        return self.stream(_handler)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(
        self,
        transport: StreamTransport,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Send status, headers and the retry preamble, then enter STREAMING.

        ``headers`` defaults to the configured header set; the response passes
        its own so cookies and other edits made on it are sent too.
        """
        self._require_configured()
        self._transport = transport
        self._state = StreamState.STREAMING
        await transport.start(200, self._config.headers if headers is None else headers)
        self._log.info(
            "sse_stream_started",
            retry_millis=self._config.retry_millis,
            execution_time_seconds=self._config.execution_time_seconds,
        )
        await self._write(format_retry(self._config.retry_millis))

    def is_connected(self) -> bool:
        return (
            self._state is StreamState.STREAMING
            and self._transport is not None
            and self._transport.connected
        )

    def close(self) -> NoReturn:
        """End the stream now. Nothing is written after this call."""
        self.mark_closed()
        raise StreamClosed()

    def mark_closed(self) -> None:
        """Move to CLOSED. Called by the response once the handler is done."""
        if self._state is StreamState.CLOSED:
            return
        self._state = StreamState.CLOSED
        self._log.info("sse_stream_closed", client_connected=self._peer_connected())

    # ------------------------------------------------------------------
    # Emitting (only while STREAMING)
    # ------------------------------------------------------------------

    async def emit_event(
        self,
        payload: str,
        event_type: str | None = None,
        id: str | None = None,  # noqa: A002
    ) -> SSEEmitter:
        event_id = id if id is not None else self._config.default_event_id
        event = SSEEvent.build(payload, event_type, event_id)
        await self._write(event.render())
        return self

    async def emit_message(self, payload: str, id: str | None = None) -> SSEEmitter:  # noqa: A002
        return await self.emit_event(payload, None, id)

    async def emit_json(
        self,
        value: Any,
        event_type: str | None = None,
        id: str | None = None,  # noqa: A002
    ) -> SSEEmitter:
        """Send ``value`` as compact JSON. Raises ``SerializationError`` before writing."""
        return await self.emit_event(encode_json(value), event_type, id)

    async def emit_comment(self, text: str) -> SSEEmitter:
        await self._write(SSEComment(text=text).render())
        return self

    async def _write(self, chunk: str) -> None:
        if self._state is not StreamState.STREAMING or self._transport is None:
            raise StreamStateError(
                "Events can only be emitted while the stream is open.",
                detail={"state": str(self._state)},
            )
        if not await self._transport.send(chunk) and not self._disconnect_seen:
            self._disconnect_seen = True
            self._log.info("sse_write_skipped", reason="client_disconnected")

    def _peer_connected(self) -> bool:
        return self._transport is not None and self._transport.connected

    # ------------------------------------------------------------------
    # Automatic polling
    # ------------------------------------------------------------------

    async def run_polling(self, producer: Producer, interval_seconds: float = 1.0) -> None:
        """Call ``producer`` until it returns ``STOP`` or the client goes away.

        A bare ``False`` or ``None`` also stops. Mappings, sequences, booleans
        and pydantic models are sent as JSON, anything else as ``str(value)``.
        The wait between calls wakes early on disconnect. Producer exceptions
        propagate.
        """
        while self.is_connected():
            result = await call_producer(producer)
            if isinstance(result, Stop):
                self._log.info("sse_polling_stopped", reason="producer_stop")
                self.mark_closed()
                return

            if is_structured(result.payload):
                await self.emit_json(result.payload)
            else:
                await self.emit_message(str(result.payload))

            assert self._transport is not None
            if await self._transport.wait_for_disconnect(interval_seconds):
                break

        self._log.info("sse_polling_stopped", reason="client_disconnected")
