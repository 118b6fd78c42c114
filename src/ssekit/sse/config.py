"""Per-stream configuration.

A ``StreamConfig`` is owned by exactly one emitter. The emitter swaps in an
updated copy on every builder call while it is still ``configured``; once the
response starts the config is never replaced again, so the header set and
retry hint seen by the client are fixed.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from ssekit.core.config import settings as default_settings
from ssekit.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ssekit.core.config import Settings

DEFAULT_HEADERS: Mapping[str, str] = MappingProxyType(
    {
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
)


def _has_line_break(value: str) -> bool:
    return "\n" in value or "\r" in value


@dataclass(frozen=True, slots=True)
class StreamConfig:
    """Immutable settings for a single SSE stream."""

    retry_millis: int = 3000
    default_event_id: str | None = None
    extra_headers: Mapping[str, str] = field(default_factory=dict)
    execution_time_seconds: int = 0

    def __post_init__(self) -> None:
        if self.retry_millis < 0:
            raise ConfigurationError(
                "Retry interval must be non-negative.",
                detail={"retry_millis": self.retry_millis},
            )
        if self.execution_time_seconds < 0:
            raise ConfigurationError(
                "Execution time limit must be non-negative.",
                detail={"execution_time_seconds": self.execution_time_seconds},
            )
        if self.default_event_id is not None and _has_line_break(self.default_event_id):
            raise ConfigurationError("Default event id must not contain line breaks.")
        for name, value in self.extra_headers.items():
            if _has_line_break(name) or _has_line_break(value):
                raise ConfigurationError(
                    "Header names and values must not contain line breaks.",
                    detail={"header": name},
                )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> StreamConfig:
        """Build a config seeded with the environment-driven defaults."""
        settings = settings or default_settings
        return cls(
            retry_millis=settings.retry,
            execution_time_seconds=settings.execution_time,
        )

    @property
    def headers(self) -> dict[str, str]:
        """Default headers with the extra headers merged over them.

        Header names compare case-insensitively, so ``cache-control`` set by the
        caller replaces the default ``Cache-Control`` rather than duplicating it.
        """
        merged = dict(DEFAULT_HEADERS)
        for name, value in self.extra_headers.items():
            for existing in [key for key in merged if key.lower() == name.lower()]:
                del merged[existing]
            merged[name] = value
        return merged

    @property
    def time_limit(self) -> float | None:
        """Execution time ceiling in seconds, or None when unlimited."""
        return self.execution_time_seconds or None

    def replace(self, **changes: object) -> StreamConfig:
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]

    def with_header(self, name: str, value: str) -> StreamConfig:
        headers = {
            key: val for key, val in self.extra_headers.items() if key.lower() != name.lower()
        }
        headers[name] = value
        return self.replace(extra_headers=headers)
