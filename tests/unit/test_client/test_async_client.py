"""Unit tests for AsyncFluentRestClient."""

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from fluent_rest.aclient import AsyncFluentRestClient
from fluent_rest.constants import STREAM_RECEIVE_ERROR_MESSAGE
from fluent_rest.errors import ErrorKind
from fluent_rest.metrics import RestMetrics
from fluent_rest.models import RestResult
from fluent_rest.request import RequestBuilder
from tests.helpers.backend import BASE_URL, NumberDto, NumbersBackend


@pytest.fixture
def async_backend() -> NumbersBackend:
    """Backend producing asynchronous stream bodies."""
    return NumbersBackend(async_mode=True)


@pytest_asyncio.fixture
async def async_client(
    async_backend: NumbersBackend,
) -> AsyncIterator[AsyncFluentRestClient]:
    """Async client wired to the simulated backend."""
    async with httpx.AsyncClient(transport=async_backend.transport()) as http_client:
        yield AsyncFluentRestClient(http_client)


def _numbers(client: AsyncFluentRestClient) -> RequestBuilder:
    return (
        client.host(BASE_URL)
        .set_endpoint_path("Test/NumbersStream")
        .add_or_set_query_parameter("delay", "5")
    )


async def _drain(
    client: AsyncFluentRestClient, request: RequestBuilder, final_path: str
) -> list[RestResult[NumberDto]]:
    return [r async for r in client.stream_typed(request, NumberDto, final_path)]


class TestAsyncFetch:
    """Tests for buffered async fetches."""

    @pytest.mark.asyncio
    async def test_fetch_typed(self, async_client: AsyncFluentRestClient) -> None:
        """A 2xx JSON body decodes into the target type."""
        request = async_client.host(BASE_URL).set_endpoint_path("/Test/FinaUrlToDto")

        result = await async_client.fetch_typed(request, NumberDto, "7")

        assert result.is_success
        assert result.value == NumberDto(value=7, value_string="7")
        assert result.sequence == 0

    @pytest.mark.asyncio
    async def test_fetch_not_found(self, async_client: AsyncFluentRestClient) -> None:
        """A non-2xx status yields no value."""
        request = async_client.host(BASE_URL).set_endpoint_path("/Test/FinaUrlToDto")

        result = await async_client.fetch_typed(request, NumberDto, "-1")

        assert result.status_code == 404
        assert result.value is None
        assert not result.is_success

    @pytest.mark.asyncio
    async def test_fetch_sends_headers(
        self, async_client: AsyncFluentRestClient
    ) -> None:
        """Builder headers are sent with buffered fetches."""
        request = (
            async_client.host(BASE_URL)
            .set_endpoint_path("/Test/HeadersToDto")
            .add_or_set_header("value", "3")
            .add_or_set_header("valueString", "three")
        )

        result = await async_client.fetch_typed(request, NumberDto)

        assert result.value == NumberDto(value=3, value_string="three")

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        """Transport failures are reported with status 0."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        async with AsyncFluentRestClient(
            httpx.AsyncClient(transport=httpx.MockTransport(handler))
        ) as client:
            result = await client.fetch(RequestBuilder("https://api.example.com"))

        assert result.status_code == 0
        assert result.error_kind == ErrorKind.CONNECTION
        assert "Connection refused" in result.error_description


class TestAsyncStream:
    """Tests for async streaming fetches."""

    @pytest.mark.asyncio
    async def test_streams_elements_incrementally(
        self,
        async_client: AsyncFluentRestClient,
        async_backend: NumbersBackend,
    ) -> None:
        """Elements are delivered in order before the body is complete."""
        received = []
        async for result in async_client.stream_typed(
            _numbers(async_client), NumberDto, "6"
        ):
            assert result.value is not None
            assert async_backend.produced == list(range(result.value.value + 1))
            received.append(result)

        assert [r.sequence for r in received] == list(range(6))
        assert all(r.is_success for r in received)
        assert RestMetrics.get_instance().stream_outcomes_total == {"CLOSED_CLEAN": 1}

    @pytest.mark.asyncio
    async def test_nonexistent_endpoint(
        self, async_client: AsyncFluentRestClient
    ) -> None:
        """A wrong endpoint yields exactly one failure envelope."""
        request = async_client.host(BASE_URL).set_endpoint_path("/WrongEndpointPath")

        results = await _drain(async_client, request, "3")

        assert len(results) == 1
        assert results[0].status_code == 404
        assert results[0].value is None

    @pytest.mark.asyncio
    async def test_read_error(self) -> None:
        """A connection drop mid-body yields the generic error envelope."""

        async def body() -> AsyncIterator[bytes]:
            yield b'[{"value": 0, "valueString": "0"}'
            raise httpx.ReadError("Connection reset by peer")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body())

        async with AsyncFluentRestClient(
            httpx.AsyncClient(transport=httpx.MockTransport(handler))
        ) as client:
            results = await _drain(
                client, RequestBuilder("https://api.example.com"), ""
            )

        assert [r.sequence for r in results] == [0, 1]
        assert results[1].status_code == 0
        assert results[1].error_kind == ErrorKind.STREAM_TERMINATION
        assert results[1].error_description == STREAM_RECEIVE_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_malformed_body(self, async_client: AsyncFluentRestClient) -> None:
        """A body that is not JSON yields one decode error envelope."""
        request = async_client.host(BASE_URL).set_endpoint_path("/Test/MalformedJson")

        results = await _drain(async_client, request, "")

        assert len(results) == 1
        assert results[0].sequence == 0
        assert results[0].error_kind == ErrorKind.DECODE

    @pytest.mark.asyncio
    async def test_early_stop(self, async_client: AsyncFluentRestClient) -> None:
        """Closing the iterator early releases the stream without an error."""
        stream = async_client.stream_typed(_numbers(async_client), NumberDto, "10")

        first = await anext(stream)
        await stream.aclose()

        assert first.sequence == 0
        metrics = RestMetrics.get_instance()
        assert metrics.stream_outcomes_total == {"ABANDONED": 1}
        assert metrics.failures_total == {}
