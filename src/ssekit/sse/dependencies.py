"""FastAPI dependencies for SSE endpoints."""

from __future__ import annotations

from ssekit.core.config import settings
from ssekit.sse.config import StreamConfig
from ssekit.sse.emitter import SSEEmitter


def get_emitter() -> SSEEmitter:
    """Build a fresh emitter for the current request, seeded from settings."""
    return SSEEmitter(StreamConfig.from_settings(settings))
