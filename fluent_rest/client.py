"""Fluent REST client with buffered and streaming retrieval."""

import time
from collections.abc import Iterator
from types import TracebackType
from typing import Any, TypeVar

import httpx
import structlog

from fluent_rest.config import ClientConfig
from fluent_rest.constants import DEFAULT_METHOD, is_success_status
from fluent_rest.decoding import JsonArrayDecoder, decode_body
from fluent_rest.errors import DecodeError, FluentRestError, TransportError
from fluent_rest.metrics import RestMetrics
from fluent_rest.models import RestResult
from fluent_rest.observability import (
    get_logger,
    redact_headers,
    redact_url_credentials,
)
from fluent_rest.request import RequestBuilder, RequestDescriptor
from fluent_rest.streaming import StreamSession, elapsed_since
from fluent_rest.transport import HttpxTransport, TransportResponse


T = TypeVar("T")


class BaseRestClient:
    """Behaviour shared by the sync and async clients.

    Everything here is free of I/O: building requests, turning transport
    responses and failures into envelopes, and decoding buffered bodies.
    """

    def __init__(self, config: ClientConfig | None) -> None:
        """Initialize shared state.

        Args:
            config: Client configuration; defaults apply when omitted.
        """
        self._config = config or ClientConfig()
        self._metrics = RestMetrics.get_instance()
        self._log = get_logger(__name__).bind(component="fluent_rest")

    @property
    def config(self) -> ClientConfig:
        """Client configuration."""
        return self._config

    def host(self, host: str) -> RequestBuilder:
        """Start a request configuration for a backend.

        Args:
            host: Scheme and authority of the backend, e.g. https://contoso.com.

        Returns:
            New RequestBuilder for that host.
        """
        return RequestBuilder(host, encode_query=self._config.encode_query)

    def _bind_request(
        self, descriptor: RequestDescriptor
    ) -> structlog.stdlib.BoundLogger:
        return self._log.bind(
            method=descriptor.method,
            url=redact_url_credentials(descriptor.url),
        )

    @staticmethod
    def _stream_descriptor(
        request: RequestBuilder,
        final_path: str,
        include_request_state: bool,
    ) -> RequestDescriptor:
        if include_request_state:
            return request.build(DEFAULT_METHOD, final_path)
        return RequestDescriptor(method=DEFAULT_METHOD, url=request.resolve(final_path))

    def _buffered_result(
        self,
        response: TransportResponse,
        started: float,
        log: structlog.stdlib.BoundLogger,
    ) -> RestResult[str]:
        request_time = elapsed_since(started)
        duration_ms = request_time.total_seconds() * 1000
        self._metrics.record_request(response.status_code, duration_ms)
        log.info(
            "fetch_complete",
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
            bytes=len(response.text),
            duration_ms=round(duration_ms, 2),
        )

        if is_success_status(response.status_code):
            return RestResult(
                status_code=response.status_code,
                request_time=request_time,
                value=response.text,
            )
        return RestResult(
            status_code=response.status_code,
            request_time=request_time,
            error_description=f"HTTP {response.status_code} {response.reason}".strip(),
        )

    def _connection_failure(
        self,
        error: TransportError,
        started: float,
        log: structlog.stdlib.BoundLogger,
    ) -> RestResult[str]:
        self._metrics.record_failure(error.kind)
        log.warning(
            "fetch_failed",
            status_code=error.status_code,
            error=error.message,
        )
        result: RestResult[str] = RestResult(request_time=elapsed_since(started))
        return result.with_error(error)

    def _decode_result(
        self,
        raw: RestResult[str],
        model: type[T],
        log: structlog.stdlib.BoundLogger,
    ) -> RestResult[T]:
        result: RestResult[Any] = raw.retype()
        if not raw.is_success or raw.value is None:
            return result

        started = time.perf_counter()
        try:
            value = decode_body(raw.value, model)
        except DecodeError as exc:
            self._metrics.record_failure(exc.kind)
            log.warning("decode_failed", scope=exc.scope.value, error=exc.message)
            return result.with_error(exc, deserialization_time=elapsed_since(started))
        return result.with_value(value, elapsed_since(started))


class FluentRestClient(BaseRestClient):
    """Synchronous REST client.

    A single instance can be shared by the whole application; it reuses one
    httpx.Client for every request. Pass a client to control transport
    settings (or to inject an httpx.MockTransport in tests); otherwise one is
    created from the configuration and closed with this client.

    Example:
        with FluentRestClient() as client:
            people = client.host("https://contoso.com").set_endpoint_path("/people")
            result = client.fetch_typed(people, Person, "1")
    """

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            http_client: httpx client to use for requests.
            config: Client configuration.
        """
        super().__init__(config)
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.Client(
            timeout=self._config.timeout_seconds,
            follow_redirects=self._config.follow_redirects,
            headers=self._config.client_headers(),
        )
        self._transport = HttpxTransport(self._http_client)

    def __enter__(self) -> "FluentRestClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the httpx client if this client created it."""
        if self._owns_client:
            self._http_client.close()

    def fetch(
        self,
        request: RequestBuilder,
        final_path: str = "",
        method: str = DEFAULT_METHOD,
    ) -> RestResult[str]:
        """Retrieve a response body as text.

        Headers and body of the builder are sent with the request. Never
        raises for transport failures; they are reported in the envelope.

        Args:
            request: Request configuration.
            final_path: Last segment of the resource URI.
            method: HTTP method.

        Returns:
            Envelope whose value is the body text for a 2xx response.
        """
        descriptor = request.build(method, final_path)
        return self._send(descriptor, self._bind_request(descriptor))

    def fetch_typed(
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
            Envelope whose value is the decoded body for a 2xx response that
            decoded cleanly; status 0 and the decoder's message otherwise.
        """
        descriptor = request.build(method, final_path)
        log = self._bind_request(descriptor)
        raw = self._send(descriptor, log)
        return self._decode_result(raw, model, log)

    def _send(
        self,
        descriptor: RequestDescriptor,
        log: structlog.stdlib.BoundLogger,
    ) -> RestResult[str]:
        log.debug("fetch_started", headers=redact_headers(descriptor.headers))

        started = time.perf_counter()
        try:
            response = self._transport.send(descriptor)
        except TransportError as exc:
            return self._connection_failure(exc, started, log)
        return self._buffered_result(response, started, log)

    def stream_typed(
        self,
        request: RequestBuilder,
        model: type[T],
        final_path: str = "",
        *,
        include_request_state: bool = False,
    ) -> Iterator[RestResult[T]]:
        """Retrieve the objects of a JSON array while it is being received.

        Each object is yielded in its own envelope as soon as it is complete.
        A stream that cannot be opened yields a single failure envelope. A
        stream that ends without a clean end of the array yields one trailing
        failure envelope. Stopping iteration early releases the response.

        The request is a plain GET: builder headers and body are only sent
        when ``include_request_state`` is set.

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
            response = self._transport.open_stream(descriptor)
        except TransportError as exc:
            yield session.connection_failed(exc)
            return

        session.opened(response.status_code)
        decoder: JsonArrayDecoder[T] = JsonArrayDecoder(model)
        try:
            try:
                for value in decoder.decode(self._transport.iter_chunks(response)):
                    yield session.emit(value)
                    session.resume()
            except FluentRestError as exc:
                yield session.fail(exc)
            else:
                session.finish()
        finally:
            response.close()
            session.release()
