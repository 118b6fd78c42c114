"""Server-Sent Events emitter for ASGI applications."""

from ssekit.sse.config import DEFAULT_HEADERS, StreamConfig
from ssekit.sse.emitter import SSEEmitter
from ssekit.sse.enums import StreamState
from ssekit.sse.events import SSEComment, SSEEvent
from ssekit.sse.producer import STOP, Continue, Stop
from ssekit.sse.response import EventStreamResponse

__all__ = [
    "DEFAULT_HEADERS",
    "STOP",
    "Continue",
    "EventStreamResponse",
    "SSEComment",
    "SSEEmitter",
    "SSEEvent",
    "Stop",
    "StreamConfig",
    "StreamState",
]
