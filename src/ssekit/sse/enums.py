"""Enum types used by the SSE emitter."""

from enum import StrEnum


class StreamState(StrEnum):
    CONFIGURED = "configured"
    STREAMING = "streaming"
    CLOSED = "closed"
