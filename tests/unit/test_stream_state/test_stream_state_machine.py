"""Unit tests for the streaming fetch state machine."""

import pytest

from fluent_rest.state_machine import (
    StreamState,
    StreamStateMachine,
    StreamStateTransitionError,
)


class TestStreamState:
    """Tests for StreamState enum."""

    def test_all_states_defined(self) -> None:
        """All expected states are defined."""
        expected_states = [
            "CONNECTING",
            "FAILED",
            "OPEN",
            "EMITTING",
            "CLOSED_CLEAN",
            "CLOSED_ERROR",
            "ABANDONED",
        ]
        assert sorted(s.name for s in StreamState) == sorted(expected_states)


class TestStreamStateMachine:
    """Tests for StreamStateMachine."""

    def test_initial_state_is_connecting(self) -> None:
        """State machine starts in CONNECTING."""
        sm = StreamStateMachine("https://example.com/items")

        assert sm.state == StreamState.CONNECTING
        assert not sm.is_terminal()

    def test_connection_failure(self) -> None:
        """CONNECTING can fail directly."""
        sm = StreamStateMachine("https://example.com/items")

        sm.transition(StreamState.FAILED)

        assert sm.is_terminal()

    def test_clean_stream(self) -> None:
        """Elements alternate between OPEN and EMITTING until closed."""
        sm = StreamStateMachine("https://example.com/items")

        sm.transition(StreamState.OPEN)
        for _ in range(3):
            sm.transition(StreamState.EMITTING)
            sm.transition(StreamState.OPEN)
        sm.transition(StreamState.CLOSED_CLEAN)

        assert sm.state == StreamState.CLOSED_CLEAN
        assert sm.is_terminal()

    def test_error_close(self) -> None:
        """An open stream can close with an error."""
        sm = StreamStateMachine("https://example.com/items")
        sm.transition(StreamState.OPEN)

        sm.transition(StreamState.CLOSED_ERROR)

        assert sm.is_terminal()

    @pytest.mark.parametrize("emitting", [False, True])
    def test_abandon_from_open_or_emitting(self, emitting: bool) -> None:
        """The consumer may stop while open or while holding an element."""
        sm = StreamStateMachine("https://example.com/items")
        sm.transition(StreamState.OPEN)
        if emitting:
            sm.transition(StreamState.EMITTING)

        sm.transition(StreamState.ABANDONED)

        assert sm.is_terminal()

    @pytest.mark.parametrize(
        "to_state",
        [
            StreamState.EMITTING,
            StreamState.CLOSED_CLEAN,
            StreamState.CLOSED_ERROR,
            StreamState.ABANDONED,
        ],
    )
    def test_invalid_transition_from_connecting(self, to_state: StreamState) -> None:
        """Only OPEN and FAILED follow CONNECTING."""
        sm = StreamStateMachine("https://example.com/items")

        with pytest.raises(StreamStateTransitionError) as exc_info:
            sm.transition(to_state)

        assert exc_info.value.from_state == StreamState.CONNECTING
        assert exc_info.value.to_state == to_state

    def test_emitting_cannot_close(self) -> None:
        """A stream holding an element must resume before closing."""
        sm = StreamStateMachine("https://example.com/items")
        sm.transition(StreamState.OPEN)
        sm.transition(StreamState.EMITTING)

        assert not sm.can_transition(StreamState.CLOSED_CLEAN)
        with pytest.raises(StreamStateTransitionError):
            sm.transition(StreamState.CLOSED_ERROR)

    @pytest.mark.parametrize(
        "terminal",
        [
            StreamState.FAILED,
            StreamState.CLOSED_CLEAN,
            StreamState.CLOSED_ERROR,
            StreamState.ABANDONED,
        ],
    )
    def test_terminal_states_are_final(self, terminal: StreamState) -> None:
        """No transition leaves a terminal state."""
        sm = StreamStateMachine("https://example.com/items")
        if terminal != StreamState.FAILED:
            sm.transition(StreamState.OPEN)
        sm.transition(terminal)

        for state in StreamState:
            assert not sm.can_transition(state)
