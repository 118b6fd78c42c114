"""Exceptions raised by ssekit.

Each exception maps to an HTTP status code and error code. The handler in
api/main.py renders them as JSON when they surface before a stream has
started; once the response headers are sent they abort the stream instead.
"""


class SSEKitError(Exception):
    """Base exception for all ssekit errors."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, detail: dict[str, object] | None = None):
        self.message = message or self.__class__.message
        self.detail = detail
        super().__init__(self.message)


class ConfigurationError(SSEKitError):
    status_code = 422
    code = "invalid_configuration"
    message = "Invalid stream configuration."


class InvalidEventError(SSEKitError):
    status_code = 422
    code = "invalid_event"
    message = "Invalid event fields."


class StreamStateError(SSEKitError):
    status_code = 409
    code = "invalid_stream_state"
    message = "Operation not allowed in the current stream state."


class SerializationError(SSEKitError):
    code = "serialization_error"
    message = "Value could not be serialised to JSON."


class StreamClosed(SSEKitError):
    """Raised by ``SSEEmitter.close()`` to unwind the running handler."""

    code = "stream_closed"
    message = "The stream was closed by the server."
