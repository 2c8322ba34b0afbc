"""Envelope sequencing for streaming fetches.

A StreamSession turns the events of one streaming call (connection result,
decoded elements, termination) into RestResult envelopes. It is shared by
the sync and async clients, which only differ in how they iterate bytes.
"""

import time
from datetime import timedelta
from typing import Generic, TypeVar

import structlog

from fluent_rest.constants import STREAM_RECEIVE_ERROR_MESSAGE
from fluent_rest.errors import FluentRestError, StreamTerminationError, TransportError
from fluent_rest.metrics import RestMetrics
from fluent_rest.models import RestResult
from fluent_rest.state_machine import StreamState, StreamStateMachine


T = TypeVar("T")


def elapsed_since(started: float) -> timedelta:
    """Time elapsed since a perf_counter reading.

    Args:
        started: Value of time.perf_counter() at the start.

    Returns:
        Elapsed duration.
    """
    return timedelta(seconds=time.perf_counter() - started)


class StreamSession(Generic[T]):
    """Produces the envelopes of one streaming call.

    The first envelope yielded by a call has sequence 0; each later one is
    derived from its predecessor with ``advance``. The connection-phase
    envelope carries the request timing and is the template for the first
    element.
    """

    def __init__(self, url: str, log: structlog.stdlib.BoundLogger) -> None:
        """Initialize the session; the clock starts now.

        Args:
            url: Redacted stream URL, for logging.
            log: Logger bound to the client.
        """
        self._machine = StreamStateMachine(url)
        self._log = log.bind(url=url, mode="stream")
        self._metrics = RestMetrics.get_instance()
        self._started = time.perf_counter()
        self._decoder_started = self._started
        self._template: RestResult[T] | None = None
        self._last: RestResult[T] | None = None

    @property
    def state(self) -> StreamState:
        """Current state of the stream."""
        return self._machine.state

    def connection_failed(self, error: TransportError) -> RestResult[T]:
        """Report a stream that could not be opened.

        Args:
            error: Transport failure.

        Returns:
            The only envelope of the call.
        """
        self._machine.transition(StreamState.FAILED)
        self._metrics.record_failure(error.kind)
        self._metrics.record_stream_outcome(StreamState.FAILED.value)
        self._log.warning(
            "stream_failed",
            status_code=error.status_code,
            error=error.message,
        )
        result: RestResult[T] = RestResult(request_time=elapsed_since(self._started))
        return result.with_error(error)

    def opened(self, status_code: int) -> None:
        """Record that response headers arrived; starts the decoder clock.

        Args:
            status_code: HTTP status of the stream response.
        """
        request_time = elapsed_since(self._started)
        self._template = RestResult(status_code=status_code, request_time=request_time)
        self._machine.transition(StreamState.OPEN)
        self._metrics.record_request(status_code, request_time.total_seconds() * 1000)
        self._decoder_started = time.perf_counter()
        self._log.info(
            "stream_opened",
            status_code=status_code,
            request_ms=round(request_time.total_seconds() * 1000, 2),
        )

    def emit(self, value: T) -> RestResult[T]:
        """Wrap a decoded element in the next envelope.

        Args:
            value: Decoded element.

        Returns:
            Envelope carrying the element.
        """
        self._machine.transition(StreamState.EMITTING)
        envelope = self._next_base().with_value(
            value, elapsed_since(self._decoder_started)
        )
        self._last = envelope
        self._metrics.record_stream_element()
        self._log.debug(
            "stream_element_received",
            sequence=envelope.sequence,
            deserialization_ms=round(
                envelope.deserialization_time.total_seconds() * 1000, 2
            ),
        )
        return envelope

    def resume(self) -> None:
        """Record that the consumer asked for the next element."""
        self._machine.transition(StreamState.OPEN)

    def finish(self) -> None:
        """Record a clean end-of-input."""
        self._machine.transition(StreamState.CLOSED_CLEAN)
        self._metrics.record_stream_outcome(StreamState.CLOSED_CLEAN.value)
        self._log.info("stream_closed", elements=self._element_count())

    def fail(self, error: FluentRestError) -> RestResult[T]:
        """Report a stream that ended without a clean end-of-input.

        Read failures of the transport are reported with the generic
        receive-error message; decode failures keep their own message.

        Args:
            error: Failure that stopped decoding.

        Returns:
            Trailing error envelope.
        """
        if isinstance(error, TransportError):
            error = StreamTerminationError(STREAM_RECEIVE_ERROR_MESSAGE)

        self._machine.transition(StreamState.CLOSED_ERROR)
        self._metrics.record_failure(error.kind)
        self._metrics.record_stream_outcome(StreamState.CLOSED_ERROR.value)
        self._log.warning(
            "stream_failed",
            error_kind=error.kind.value,
            error=error.message,
            elements=self._element_count(),
        )
        return self._next_base().with_error(
            error, deserialization_time=elapsed_since(self._decoder_started)
        )

    def release(self) -> None:
        """Record release of the stream; marks early consumer stops."""
        if self._machine.is_terminal():
            return
        self._machine.transition(StreamState.ABANDONED)
        self._metrics.record_stream_outcome(StreamState.ABANDONED.value)
        self._log.info("stream_abandoned", elements=self._element_count())

    def _next_base(self) -> RestResult[T]:
        if self._last is not None:
            return self._last.advance()
        if self._template is None:
            msg = "Stream session has not been opened"
            raise RuntimeError(msg)
        return self._template

    def _element_count(self) -> int:
        return 0 if self._last is None else self._last.sequence + 1
