"""State machine for the lifecycle of a streaming fetch."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class StreamState(str, Enum):
    """State of a streaming fetch.

    States:
    - CONNECTING: Request sent, waiting for response headers
    - FAILED: Stream could not be opened (terminal)
    - OPEN: Stream open, decoder waiting for the next element
    - EMITTING: An element was decoded and handed to the consumer
    - CLOSED_CLEAN: Decoder reported end-of-input (terminal)
    - CLOSED_ERROR: Stream ended without a clean end-of-input (terminal)
    - ABANDONED: Consumer stopped iterating early (terminal)
    """

    CONNECTING = "CONNECTING"
    FAILED = "FAILED"
    OPEN = "OPEN"
    EMITTING = "EMITTING"
    CLOSED_CLEAN = "CLOSED_CLEAN"
    CLOSED_ERROR = "CLOSED_ERROR"
    ABANDONED = "ABANDONED"


_VALID_TRANSITIONS: dict[StreamState, set[StreamState]] = {
    StreamState.CONNECTING: {StreamState.FAILED, StreamState.OPEN},
    StreamState.OPEN: {
        StreamState.EMITTING,
        StreamState.CLOSED_CLEAN,
        StreamState.CLOSED_ERROR,
        StreamState.ABANDONED,
    },
    StreamState.EMITTING: {StreamState.OPEN, StreamState.ABANDONED},
    StreamState.FAILED: set(),
    StreamState.CLOSED_CLEAN: set(),
    StreamState.CLOSED_ERROR: set(),
    StreamState.ABANDONED: set(),
}

_TERMINAL_STATES = frozenset(
    state for state, targets in _VALID_TRANSITIONS.items() if not targets
)


class StreamStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(self, from_state: StreamState, to_state: StreamState) -> None:
        """Initialize the transition error.

        Args:
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid stream state transition: {from_state.value} -> {to_state.value}"
        )


class StreamStateMachine:
    """Tracks and validates the state of one streaming fetch."""

    def __init__(self, url: str) -> None:
        """Initialize the state machine in CONNECTING.

        Args:
            url: Redacted stream URL, for logging.
        """
        self._state = StreamState.CONNECTING
        self._log = logger.bind(component="fluent_rest", url=url)

    @property
    def state(self) -> StreamState:
        """Get the current state."""
        return self._state

    def is_terminal(self) -> bool:
        """Check if the stream reached a terminal state."""
        return self._state in _TERMINAL_STATES

    def can_transition(self, to_state: StreamState) -> bool:
        """Check if a transition to the given state is valid.

        Args:
            to_state: Target state.

        Returns:
            True if transition is valid.
        """
        return to_state in _VALID_TRANSITIONS[self._state]

    def transition(self, to_state: StreamState) -> None:
        """Transition to a new state.

        Args:
            to_state: Target state.

        Raises:
            StreamStateTransitionError: If transition is invalid.
        """
        if not self.can_transition(to_state):
            raise StreamStateTransitionError(self._state, to_state)

        from_state = self._state
        self._state = to_state
        self._log.debug(
            "stream_state_transition",
            from_state=from_state.value,
            to_state=to_state.value,
        )
