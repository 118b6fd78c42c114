"""Transient SSE frame models.

A frame is built, validated, rendered to text and discarded; nothing keeps a
reference to it after the write.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ssekit.core.exceptions import InvalidEventError
from ssekit.sse.formatting import format_comment, format_event


class SSEEvent(BaseModel):
    """A single ``id`` / ``event`` / ``data`` frame."""

    model_config = ConfigDict(frozen=True)

    payload: str = ""
    event_type: str | None = None
    id: str | None = None

    @field_validator("event_type", "id")
    @classmethod
    def _single_line(cls, value: str | None) -> str | None:
        if value is not None and ("\n" in value or "\r" in value):
            raise ValueError("must not contain line breaks")
        return value

    @classmethod
    def build(
        cls,
        payload: str,
        event_type: str | None = None,
        id: str | None = None,  # noqa: A002
    ) -> SSEEvent:
        """Construct an event, converting validation failures to ``InvalidEventError``."""
        try:
            return cls(payload=payload, event_type=event_type, id=id)
        except ValidationError as exc:
            raise InvalidEventError(
                detail={"errors": [err["loc"][0] for err in exc.errors()]},
            ) from exc

    def render(self) -> str:
        return format_event(self.payload, self.event_type, self.id)


class SSEComment(BaseModel):
    """A comment frame. Clients ignore it; it keeps idle connections open."""

    model_config = ConfigDict(frozen=True)

    text: str = ""

    def render(self) -> str:
        return format_comment(self.text)
