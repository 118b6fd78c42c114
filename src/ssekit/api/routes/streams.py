"""Demo SSE endpoints.

Endpoints:
    GET /sse/counter        polling mode, one ``{"count", "time"}`` message per tick
    GET /sse/time           manual mode, ``{"time"}`` clock with keep-alive comments
    GET /sse/custom-stream  manual mode, ``update`` / ``milestone`` events with ids
    GET /sse/progress       manual mode, ``progress`` events followed by ``done``
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query

from ssekit.sse.dependencies import get_emitter
from ssekit.sse.emitter import SSEEmitter
from ssekit.sse.producer import STOP, Continue, ProducerResult
from ssekit.sse.response import EventStreamResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/sse", tags=["sse"])

EmitterDep = Annotated[SSEEmitter, Depends(get_emitter)]
Interval = Annotated[float, Query(ge=0, le=60)]

PROGRESS_STEPS = ("Initializing", "Processing", "Validating", "Finalizing", "Complete")


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds")


@router.get("/counter")
async def counter(
    emitter: EmitterDep,
    limit: Annotated[int, Query(ge=1, le=1000)] = 10,
    interval: Interval = 1.0,
) -> EventStreamResponse:
    """Count up to ``limit``, one message per ``interval`` seconds."""
    count = 0

    def next_count() -> ProducerResult:
        nonlocal count
        if count >= limit:
            return STOP
        count += 1
        return Continue({"count": count, "time": _now()})

    logger.info("sse_counter_requested", stream_id=emitter.stream_id, limit=limit)
    return emitter.poll(next_count, interval)


@router.get("/time")
async def clock(
    emitter: EmitterDep,
    ticks: Annotated[int, Query(ge=1, le=3600)] = 60,
    interval: Interval = 1.0,
) -> EventStreamResponse:
    """Send the current time every ``interval`` seconds, ``ticks`` times."""

    async def handler(sse: SSEEmitter) -> None:
        for tick in range(1, ticks + 1):
            if not sse.is_connected():
                return
            await sse.emit_json({"time": _now()})
            if tick % 5 == 0:
                await sse.emit_comment("keep-alive")
            await asyncio.sleep(interval)

    return emitter.stream(handler)


@router.get("/custom-stream")
async def custom_stream(
    emitter: EmitterDep,
    count: Annotated[int, Query(ge=1, le=1000)] = 20,
    interval: Interval = 1.0,
) -> EventStreamResponse:
    """Every fifth event is a ``milestone``; a keep-alive comment follows every tenth."""

    async def handler(sse: SSEEmitter) -> None:
        sent = 0
        while sse.is_connected() and sent < count:
            sent += 1
            event_type = "milestone" if sent % 5 == 0 else "update"
            await sse.emit_json({"count": sent}, event_type, f"msg-{sent}")
            if sent % 10 == 0:
                await sse.emit_comment("Keep-alive ping")
            await asyncio.sleep(interval)

    return emitter.stream(handler)


@router.get("/progress")
async def progress(
    emitter: EmitterDep,
    delay: Interval = 2.0,
) -> EventStreamResponse:
    """Report progress through a fixed list of steps."""

    async def handler(sse: SSEEmitter) -> None:
        for index, step in enumerate(PROGRESS_STEPS):
            if not sse.is_connected():
                return
            await sse.emit_json(
                {
                    "step": step,
                    "progress": (index + 1) / len(PROGRESS_STEPS) * 100,
                    "message": f"Step {index}: {step}",
                },
                "progress",
            )
            await asyncio.sleep(delay)
        await sse.emit_json({"complete": True}, "done")

    return emitter.set_retry(5000).stream(handler)
