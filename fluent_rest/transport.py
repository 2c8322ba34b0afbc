"""httpx-backed transport used by the REST clients.

The transports are the only place that touches httpx exceptions: every
failure leaves this module as a TransportError carrying the HTTP status when
one was received.
"""

from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass, field

import httpx

from fluent_rest.constants import NO_STATUS, is_success_status
from fluent_rest.errors import TransportError
from fluent_rest.request import RequestDescriptor


@dataclass(frozen=True)
class TransportResponse:
    """Fully received response of a buffered request.

    Attributes:
        status_code: HTTP status code.
        reason: HTTP reason phrase.
        text: Decoded body text.
        headers: Response headers keyed by lowercased name.
    """

    status_code: int
    reason: str
    text: str
    headers: dict[str, str] = field(default_factory=dict)


def _build_request(
    client: httpx.Client | httpx.AsyncClient,
    descriptor: RequestDescriptor,
) -> httpx.Request:
    try:
        return client.build_request(
            descriptor.method,
            descriptor.url,
            headers=list(descriptor.headers),
            content=descriptor.body or None,
        )
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
        msg = f"Invalid request URL {descriptor.url!r}: {exc}"
        raise TransportError(msg) from exc
    except UnicodeEncodeError as exc:
        # header values must be ASCII unless given as bytes
        msg = f"Request header cannot be encoded: {exc}"
        raise TransportError(msg) from exc


def _status_error(response: httpx.Response) -> TransportError:
    msg = (
        "Response status code does not indicate success: "
        f"{response.status_code} ({response.reason_phrase})"
    )
    return TransportError(msg, status_code=response.status_code)


class HttpxTransport:
    """Synchronous transport over an httpx.Client."""

    def __init__(self, client: httpx.Client) -> None:
        """Initialize the transport.

        Args:
            client: httpx client used for every request.
        """
        self._client = client

    def send(self, descriptor: RequestDescriptor) -> TransportResponse:
        """Send a request and read the whole body.

        Args:
            descriptor: Request to send.

        Returns:
            Received response, whatever its status.

        Raises:
            TransportError: If no response could be received.
        """
        request = _build_request(self._client, descriptor)
        try:
            response = self._client.send(request)
        except httpx.HTTPError as exc:
            msg = f"Request to {descriptor.url} failed: {exc}"
            raise TransportError(msg) from exc

        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            text=response.text,
            headers=dict(response.headers),
        )

    def open_stream(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send a request without reading the body.

        The caller owns the returned response and must close it.

        Args:
            descriptor: Request to send.

        Returns:
            Response with a 2xx status and an unread body.

        Raises:
            TransportError: If no response was received, or its status is
                not 2xx.
        """
        request = _build_request(self._client, descriptor)
        try:
            response = self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            msg = f"Request to {descriptor.url} failed: {exc}"
            raise TransportError(msg) from exc

        if not is_success_status(response.status_code):
            response.close()
            raise _status_error(response)
        return response

    def iter_chunks(self, response: httpx.Response) -> Iterator[bytes]:
        """Iterate over body chunks as they arrive.

        Args:
            response: Response returned by open_stream.

        Yields:
            Non-empty body chunks.

        Raises:
            TransportError: If reading the body fails.
        """
        try:
            for chunk in response.iter_bytes():
                if chunk:
                    yield chunk
        except httpx.HTTPError as exc:
            msg = f"Reading response body failed: {exc}"
            raise TransportError(msg, status_code=NO_STATUS) from exc


class AsyncHttpxTransport:
    """Asynchronous transport over an httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        """Initialize the transport.

        Args:
            client: httpx async client used for every request.
        """
        self._client = client

    async def send(self, descriptor: RequestDescriptor) -> TransportResponse:
        """Send a request and read the whole body.

        Args:
            descriptor: Request to send.

        Returns:
            Received response, whatever its status.

        Raises:
            TransportError: If no response could be received.
        """
        request = _build_request(self._client, descriptor)
        try:
            response = await self._client.send(request)
        except httpx.HTTPError as exc:
            msg = f"Request to {descriptor.url} failed: {exc}"
            raise TransportError(msg) from exc

        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            text=response.text,
            headers=dict(response.headers),
        )

    async def open_stream(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send a request without reading the body.

        The caller owns the returned response and must close it.

        Args:
            descriptor: Request to send.

        Returns:
            Response with a 2xx status and an unread body.

        Raises:
            TransportError: If no response was received, or its status is
                not 2xx.
        """
        request = _build_request(self._client, descriptor)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            msg = f"Request to {descriptor.url} failed: {exc}"
            raise TransportError(msg) from exc

        if not is_success_status(response.status_code):
            await response.aclose()
            raise _status_error(response)
        return response

    async def iter_chunks(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Iterate over body chunks as they arrive.

        Args:
            response: Response returned by open_stream.

        Yields:
            Non-empty body chunks.

        Raises:
            TransportError: If reading the body fails.
        """
        try:
            async for chunk in response.aiter_bytes():
                if chunk:
                    yield chunk
        except httpx.HTTPError as exc:
            msg = f"Reading response body failed: {exc}"
            raise TransportError(msg, status_code=NO_STATUS) from exc
