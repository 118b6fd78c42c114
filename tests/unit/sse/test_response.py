"""Tests for EventStreamResponse driving a handler over ASGI.

The response is called directly with an ``ASGIHarness`` so the test controls
when the client disconnects.
"""

from __future__ import annotations

import asyncio
import time

import pytest

from ssekit.core.exceptions import SerializationError
from ssekit.sse.config import StreamConfig
from ssekit.sse.emitter import SSEEmitter
from ssekit.sse.enums import StreamState
from ssekit.sse.producer import STOP


async def test_manual_stream_full_body(harness, http_scope) -> None:
    emitter = SSEEmitter(StreamConfig()).set_retry(2500).set_header("X-Test", "v")

    async def handler(sse: SSEEmitter) -> None:
        await sse.emit_event("hello", "greeting", "1")
        await sse.emit_comment("ping")

    await emitter.stream(handler)(http_scope, harness.receive, harness.send)

    start = harness.start_message
    assert start["status"] == 200
    assert (b"content-type", b"text/event-stream") in start["headers"]
    assert (b"x-accel-buffering", b"no") in start["headers"]
    assert (b"x-test", b"v") in start["headers"]
    assert harness.body == "retry: 2500\n\nid: 1\nevent: greeting\ndata: hello\n\n: ping\n\n"
    assert harness.body_messages[0]["body"] == b"retry: 2500\n\n"
    assert harness.completed
    assert emitter.state is StreamState.CLOSED


async def test_headers_set_on_response_reach_the_wire(harness, http_scope) -> None:
    emitter = SSEEmitter(StreamConfig())

    async def handler(sse: SSEEmitter) -> None:
        await sse.emit_message("hi")

    response = emitter.stream(handler)
    response.set_cookie("session", "abc")
    response.headers["X-Region"] = "eu"
    await response(http_scope, harness.receive, harness.send)

    headers = harness.start_message["headers"]
    assert any(
        name == b"set-cookie" and value.startswith(b"session=abc") for name, value in headers
    )
    assert (b"x-region", b"eu") in headers
    assert [name for name, _ in headers].count(b"content-type") == 1


async def test_each_frame_is_its_own_body_message(harness, http_scope) -> None:
    emitter = SSEEmitter(StreamConfig())

    async def handler(sse: SSEEmitter) -> None:
        await sse.emit_message("one")
        await sse.emit_message("two")

    await emitter.stream(handler)(http_scope, harness.receive, harness.send)

    bodies = [m["body"] for m in harness.body_messages]
    assert bodies == [b"retry: 3000\n\n", b"data: one\n\n", b"data: two\n\n", b""]


async def test_close_ends_stream_without_further_frames(harness, http_scope) -> None:
    emitter = SSEEmitter(StreamConfig())

    async def handler(sse: SSEEmitter) -> None:
        await sse.emit_message("before")
        sse.close()
        await sse.emit_message("after")  # pragma: no cover

    await emitter.stream(handler)(http_scope, harness.receive, harness.send)

    assert harness.body == "retry: 3000\n\ndata: before\n\n"
    assert harness.completed
    assert emitter.state is StreamState.CLOSED


async def test_execution_time_limit_aborts_handler(harness, http_scope) -> None:
    emitter = SSEEmitter(StreamConfig()).set_execution_time_limit(1)

    async def handler(sse: SSEEmitter) -> None:
        await sse.emit_message("started")
        await asyncio.sleep(30)

    began = time.monotonic()
    await emitter.stream(handler)(http_scope, harness.receive, harness.send)

    assert time.monotonic() - began < 10
    assert harness.body == "retry: 3000\n\ndata: started\n\n"
    assert harness.completed
    assert emitter.state is StreamState.CLOSED


async def test_handler_timeout_error_is_not_mistaken_for_limit(harness, http_scope) -> None:
    emitter = SSEEmitter(StreamConfig())

    async def handler(sse: SSEEmitter) -> None:
        raise TimeoutError("upstream timed out")

    with pytest.raises(TimeoutError, match="upstream timed out"):
        await emitter.stream(handler)(http_scope, harness.receive, harness.send)
    assert not harness.completed


async def test_handler_exception_aborts_without_trailing_frame(harness, http_scope) -> None:
    emitter = SSEEmitter(StreamConfig())

    async def handler(sse: SSEEmitter) -> None:
        await sse.emit_message("ok")
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await emitter.stream(handler)(http_scope, harness.receive, harness.send)

    assert harness.body == "retry: 3000\n\ndata: ok\n\n"
    assert not harness.completed
    assert emitter.state is StreamState.CLOSED


async def test_serialization_error_aborts_stream(harness, http_scope) -> None:
    emitter = SSEEmitter(StreamConfig())

    async def handler(sse: SSEEmitter) -> None:
        await sse.emit_json({"bad": object()}, "broken")

    with pytest.raises(SerializationError):
        await emitter.stream(handler)(http_scope, harness.receive, harness.send)

    assert harness.body == "retry: 3000\n\n"
    assert not harness.completed


async def test_poll_runs_until_stop(harness, http_scope) -> None:
    values = iter([{"count": 1}, {"count": 2}, STOP])
    emitter = SSEEmitter(StreamConfig())

    await emitter.poll(lambda: next(values), 0)(http_scope, harness.receive, harness.send)

    assert harness.body == 'retry: 3000\n\ndata: {"count":1}\n\ndata: {"count":2}\n\n'
    assert harness.completed


async def test_poll_exits_when_client_disconnects(harness, http_scope) -> None:
    calls = 0

    async def producer() -> int:
        nonlocal calls
        calls += 1
        if calls == 3:
            harness.disconnected.set()
        return calls

    emitter = SSEEmitter(StreamConfig())
    await asyncio.wait_for(
        emitter.poll(producer, 0.01)(http_scope, harness.receive, harness.send),
        timeout=5,
    )

    assert calls == 3
    assert "data: 1\n\n" in harness.body
    assert "data: 4" not in harness.body
    assert not harness.completed
    assert emitter.state is StreamState.CLOSED


async def test_poll_wait_wakes_early_on_disconnect(harness, http_scope) -> None:
    emitter = SSEEmitter(StreamConfig())

    async def disconnect_soon() -> None:
        await asyncio.sleep(0.05)
        harness.disconnected.set()

    task = asyncio.create_task(disconnect_soon())
    began = time.monotonic()
    await emitter.poll(lambda: "tick", 30)(http_scope, harness.receive, harness.send)
    await task

    assert time.monotonic() - began < 10
    assert harness.body == "retry: 3000\n\ndata: tick\n\n"
