"""SSE wire-format helpers.

Frames follow the ``text/event-stream`` grammar with ``\\n`` as the line
terminator. Every frame ends with a blank line::

    retry: 3000

    id: 42
    event: update
    data: first line
    data: second line

    : keep-alive

"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel

from ssekit.core.exceptions import SerializationError

# CRLF first so it is consumed as one break rather than two.
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> list[str]:
    """Split on any SSE line terminator, keeping empty lines.

    A string with ``k`` line breaks always yields ``k + 1`` items.
    """
    return _LINE_BREAK.split(text)


def format_retry(milliseconds: int) -> str:
    return f"retry: {milliseconds}\n\n"


def format_event(
    payload: str,
    event_type: str | None = None,
    event_id: str | None = None,
) -> str:
    """Render one event frame. Field values are assumed to be single-line."""
    parts: list[str] = []
    if event_id is not None:
        parts.append(f"id: {event_id}\n")
    if event_type is not None:
        parts.append(f"event: {event_type}\n")
    parts.extend(f"data: {line}\n" for line in split_lines(payload))
    parts.append("\n")
    return "".join(parts)


def format_comment(text: str) -> str:
    """Render a comment frame; multi-line text gets one ``:`` line per line."""
    lines = "".join(f": {line}\n" for line in split_lines(text))
    return f"{lines}\n"


def _dump_model(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_json(value: Any) -> str:
    """Serialise ``value`` to compact JSON, preserving the caller's key order.

    Pydantic models are dumped wherever they appear, including inside lists
    and dicts. Raises ``SerializationError`` for cyclic or otherwise
    unserialisable input, and for NaN or infinity, which JSON cannot express.
    """
    try:
        return json.dumps(
            value,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            default=_dump_model,
        )
    except (TypeError, ValueError, RecursionError) as exc:
        raise SerializationError(
            str(exc),
            detail={"type": type(value).__name__},
        ) from exc
