"""Asynchronous variant of the fluent REST client."""

import time
from collections.abc import AsyncIterator
from contextlib import aclosing
from types import TracebackType
from typing import TypeVar

import httpx
import structlog

from fluent_rest.client import BaseRestClient
from fluent_rest.config import ClientConfig
from fluent_rest.constants import DEFAULT_METHOD
from fluent_rest.decoding import JsonArrayDecoder
from fluent_rest.errors import FluentRestError, TransportError
from fluent_rest.models import RestResult
from fluent_rest.observability import redact_headers, redact_url_credentials
from fluent_rest.request import RequestBuilder, RequestDescriptor
from fluent_rest.streaming import StreamSession
from fluent_rest.transport import AsyncHttpxTransport


T = TypeVar("T")


class AsyncFluentRestClient(BaseRestClient):
    """Asynchronous REST client over an httpx.AsyncClient.

    Same contract as FluentRestClient; streaming returns an async iterator
    that can be consumed with ``async for``.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            http_client: httpx async client to use for requests.
            config: Client configuration.
        """
        super().__init__(config)
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            follow_redirects=self._config.follow_redirects,
            headers=self._config.client_headers(),
        )
        self._transport = AsyncHttpxTransport(self._http_client)

    async def __aenter__(self) -> "AsyncFluentRestClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the httpx client if this client created it."""
        if self._owns_client:
            await self._http_client.aclose()

    async def fetch(
        self,
        request: RequestBuilder,
        final_path: str = "",
        method: str = DEFAULT_METHOD,
    ) -> RestResult[str]:
        """Retrieve a response body as text.

        Args:
            request: Request configuration.
            final_path: Last segment of the resource URI.
            method: HTTP method.

        Returns:
            Envelope whose value is the body text for a 2xx response.
        """
        descriptor = request.build(method, final_path)
        return await self._send(descriptor, self._bind_request(descriptor))

    async def fetch_typed(
        self,
        request: RequestBuilder,
        model: type[T],
        final_path: str = "",
        method: str = DEFAULT_METHOD,
    ) -> RestResult[T]:
        """Retrieve a response body decoded into a type.

        Args:
            request: Request configuration.
            model: Target type of the JSON body.
            final_path: Last segment of the resource URI.
            method: HTTP method.

        Returns:
            Envelope whose value is the decoded body, see
            FluentRestClient.fetch_typed.
        """
        descriptor = request.build(method, final_path)
        log = self._bind_request(descriptor)
        raw = await self._send(descriptor, log)
        return self._decode_result(raw, model, log)

    async def _send(
        self,
        descriptor: RequestDescriptor,
        log: structlog.stdlib.BoundLogger,
    ) -> RestResult[str]:
        log.debug("fetch_started", headers=redact_headers(descriptor.headers))

        started = time.perf_counter()
        try:
            response = await self._transport.send(descriptor)
        except TransportError as exc:
            return self._connection_failure(exc, started, log)
        return self._buffered_result(response, started, log)

    async def stream_typed(
        self,
        request: RequestBuilder,
        model: type[T],
        final_path: str = "",
        *,
        include_request_state: bool = False,
    ) -> AsyncIterator[RestResult[T]]:
        """Retrieve the objects of a JSON array while it is being received.

        See FluentRestClient.stream_typed for the envelope sequence.

        Args:
            request: Request configuration.
            model: Target type of each array element.
            final_path: Last segment of the resource URI.
            include_request_state: Send builder headers and body too.

        Yields:
            Envelopes with sequence numbers starting at 0.
        """
        descriptor = self._stream_descriptor(
            request, final_path, include_request_state
        )
        session: StreamSession[T] = StreamSession(
            redact_url_credentials(descriptor.url), self._log
        )
        try:
            response = await self._transport.open_stream(descriptor)
        except TransportError as exc:
            yield session.connection_failed(exc)
            return

        session.opened(response.status_code)
        decoder: JsonArrayDecoder[T] = JsonArrayDecoder(model)
        try:
            try:
                async with (
                    aclosing(self._transport.iter_chunks(response)) as chunks,
                    aclosing(decoder.adecode(chunks)) as values,
                ):
                    async for value in values:
                        yield session.emit(value)
                        session.resume()
            except FluentRestError as exc:
                yield session.fail(exc)
            else:
                session.finish()
        finally:
            await response.aclose()
            session.release()
