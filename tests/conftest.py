"""Shared fixtures for the test suite."""

from collections.abc import Iterator

import httpx
import pytest

from fluent_rest.client import FluentRestClient
from fluent_rest.metrics import RestMetrics
from tests.helpers.backend import NumbersBackend


@pytest.fixture(autouse=True)
def reset_metrics() -> Iterator[None]:
    """Give every test a fresh metrics singleton."""
    RestMetrics.reset()
    yield
    RestMetrics.reset()


@pytest.fixture
def backend() -> NumbersBackend:
    """Backend producing synchronous stream bodies."""
    return NumbersBackend()


@pytest.fixture
def client(backend: NumbersBackend) -> Iterator[FluentRestClient]:
    """Client wired to the simulated backend."""
    http_client = httpx.Client(transport=backend.transport())
    with http_client:
        yield FluentRestClient(http_client)
