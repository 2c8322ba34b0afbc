"""Domain-specific error types for the fluent REST adapter.

These errors never escape the public fetch operations: the clients catch them
at the boundary and report them as ``RestResult`` envelopes.
"""

from enum import Enum

from fluent_rest.constants import NO_STATUS


class ErrorKind(str, Enum):
    """Classification of failures reported in result envelopes.

    - CONNECTION: Request could not be sent or the stream could not be opened
    - DECODE: Payload could not be materialized into the target type
    - STREAM_TERMINATION: Stream ended without a clean terminal signal
    """

    CONNECTION = "CONNECTION"
    DECODE = "DECODE"
    STREAM_TERMINATION = "STREAM_TERMINATION"


class DecodeScope(str, Enum):
    """Which unit of the payload failed to decode."""

    WHOLE_BODY = "WHOLE_BODY"
    ELEMENT = "ELEMENT"


class FluentRestError(Exception):
    """Base exception for all adapter errors.

    Attributes:
        message: Human-readable message reported in envelopes.
        status_code: HTTP status if one is known, else NO_STATUS.
        kind: Error classification.
    """

    kind: ErrorKind

    def __init__(self, message: str, status_code: int = NO_STATUS) -> None:
        """Initialize the error.

        Args:
            message: Human-readable message.
            status_code: HTTP status code, if known.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportError(FluentRestError):
    """Request could not be sent, or the stream could not be opened."""

    kind = ErrorKind.CONNECTION


class DecodeError(FluentRestError):
    """Well-formed transport response whose payload could not be decoded."""

    kind = ErrorKind.DECODE

    def __init__(self, message: str, scope: DecodeScope) -> None:
        """Initialize the error.

        Args:
            message: Message of the underlying decoder failure.
            scope: Whether the whole body or a single element failed.
        """
        super().__init__(message)
        self.scope = scope


class StreamTerminationError(FluentRestError):
    """Stream ended without the tokenizer reporting end-of-input."""

    kind = ErrorKind.STREAM_TERMINATION
