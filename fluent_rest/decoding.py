"""JSON decoding of response bodies, whole or element by element.

Typed materialization goes through pydantic TypeAdapters, so the target type
can be a pydantic model, a dataclass, a TypedDict or any other type pydantic
validates. Incremental tokenization uses ijson's push interface: chunks are
sent to the parser as they arrive and parse events are drained after each
chunk, which keeps memory bounded by the largest single element.
"""

from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from functools import lru_cache
from typing import Any, Generic, TypeVar

import ijson
from pydantic import TypeAdapter, ValidationError

from fluent_rest.constants import STREAM_RECEIVE_ERROR_MESSAGE
from fluent_rest.errors import DecodeError, DecodeScope, StreamTerminationError


T = TypeVar("T")

_OPENING_EVENTS = frozenset({"start_map", "start_array"})
_CLOSING_EVENTS = frozenset({"end_map", "end_array"})


@lru_cache(maxsize=256)
def get_type_adapter(model: Any) -> TypeAdapter[Any]:
    """Get a cached TypeAdapter for a target type.

    Args:
        model: Target type.

    Returns:
        TypeAdapter validating values of that type.
    """
    return TypeAdapter(model)


def decode_body(text: str, model: type[T]) -> T:
    """Decode a complete JSON body into the target type.

    Args:
        text: Response body text.
        model: Target type.

    Returns:
        Decoded value.

    Raises:
        DecodeError: If the text is not valid JSON for the target type.
    """
    try:
        value: T = get_type_adapter(model).validate_json(text)
    except ValidationError as exc:
        raise DecodeError(str(exc), scope=DecodeScope.WHOLE_BODY) from exc
    return value


class JsonArrayDecoder(Generic[T]):
    """Incremental decoder for a JSON array of objects.

    Every JSON object that starts outside an object already being built is
    materialized as one value of the target type as soon as its closing
    brace arrives. Scalars and arrays between objects are skipped.
    """

    def __init__(self, model: type[T]) -> None:
        """Initialize the decoder.

        Args:
            model: Target type of each element.
        """
        self._adapter = get_type_adapter(model)
        self._events = ijson.sendable_list()
        self._parser = ijson.basic_parse_coro(self._events, use_float=True)
        self._builder: ijson.ObjectBuilder | None = None
        self._depth = 0

    def feed(self, chunk: bytes) -> Iterator[T]:
        """Send a chunk of bytes to the tokenizer.

        Args:
            chunk: Next bytes of the response body.

        Yields:
            Elements completed by this chunk, in order.

        Raises:
            DecodeError: On malformed JSON or an element that does not
                validate. Elements completed before the failure are yielded
                first.
        """
        # ijson treats an empty chunk as end of input
        if not chunk:
            return

        syntax_error: ijson.JSONError | None = None
        try:
            self._parser.send(chunk)
        except ijson.JSONError as exc:
            syntax_error = exc

        yield from self._drain()

        if syntax_error is not None:
            raise DecodeError(str(syntax_error), scope=DecodeScope.ELEMENT) from (
                syntax_error
            )

    def close(self) -> Iterator[T]:
        """Signal end of input to the tokenizer.

        Yields:
            Elements completed by the end of input.

        Raises:
            StreamTerminationError: If the input ended before the top-level
                value was complete, or was empty.
        """
        try:
            self._parser.close()
        except ijson.JSONError as exc:
            raise StreamTerminationError(STREAM_RECEIVE_ERROR_MESSAGE) from exc

        yield from self._drain()

    def decode(self, chunks: Iterable[bytes]) -> Iterator[T]:
        """Decode a whole byte stream.

        Args:
            chunks: Response body chunks.

        Yields:
            Each element as soon as it is complete.
        """
        for chunk in chunks:
            yield from self.feed(chunk)
        yield from self.close()

    async def adecode(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[T]:
        """Decode a whole byte stream received asynchronously.

        Args:
            chunks: Response body chunks.

        Yields:
            Each element as soon as it is complete.
        """
        async for chunk in chunks:
            for value in self.feed(chunk):
                yield value
        for value in self.close():
            yield value

    def _drain(self) -> Iterator[T]:
        events = list(self._events)
        del self._events[:]

        for event, value in events:
            if self._builder is None:
                if event != "start_map":
                    continue
                self._builder = ijson.ObjectBuilder()

            self._builder.event(event, value)
            if event in _OPENING_EVENTS:
                self._depth += 1
            elif event in _CLOSING_EVENTS:
                self._depth -= 1

            if self._depth == 0:
                raw = self._builder.value
                self._builder = None
                yield self._materialize(raw)

    def _materialize(self, raw: Any) -> T:
        try:
            value: T = self._adapter.validate_python(raw)
        except ValidationError as exc:
            raise DecodeError(str(exc), scope=DecodeScope.ELEMENT) from exc
        return value
