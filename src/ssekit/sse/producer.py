"""Producer results for automatic polling mode.

A producer returns either ``Continue(payload)`` or ``STOP``. Bare ``False`` and
``None`` also stop the stream. Any other bare value is shorthand for
``Continue(value)``; the check is by identity, so falsy payloads such as ``0``
or ``""`` are still emitted.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool


@dataclass(frozen=True, slots=True)
class Continue:
    """Emit ``payload`` and keep polling."""

    payload: Any


@dataclass(frozen=True, slots=True)
class Stop:
    """End the stream without emitting anything further."""


STOP = Stop()

ProducerResult = Continue | Stop
Producer = Callable[[], ProducerResult | Any | Awaitable[ProducerResult | Any]]


def as_result(value: object) -> ProducerResult:
    """Normalise a producer return value to a tagged result."""
    if isinstance(value, Continue | Stop):
        return value
    if value is None or value is False:
        return STOP
    return Continue(value)


async def call_producer(producer: Callable[[], Any]) -> ProducerResult:
    """Invoke a producer once.

    Coroutine functions are awaited on the event loop. Plain callables run in
    the threadpool so blocking data-source calls do not stall other streams.
    """
    if inspect.iscoroutinefunction(producer):
        value = await producer()
    else:
        value = await run_in_threadpool(producer)
        if inspect.isawaitable(value):
            value = await value
    return as_result(value)


def is_structured(value: object) -> bool:
    """Whether a payload should be sent as JSON rather than as plain text.

    Booleans go through JSON so the client sees ``true`` rather than ``True``.
    """
    return isinstance(value, Mapping | list | tuple | bool | BaseModel)
