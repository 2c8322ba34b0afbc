"""Fluent HTTP client adapter with buffered and streaming JSON retrieval.

This package provides:
- A fluent request builder for host, path, query parameters, headers and body
- Buffered fetches returning text or decoded values
- Streaming fetches decoding JSON arrays element by element as bytes arrive
- Result envelopes carrying status, timing and sequence instead of exceptions
"""

from fluent_rest.aclient import AsyncFluentRestClient
from fluent_rest.client import FluentRestClient
from fluent_rest.config import ClientConfig
from fluent_rest.constants import NO_STATUS, STREAM_RECEIVE_ERROR_MESSAGE
from fluent_rest.decoding import JsonArrayDecoder, decode_body
from fluent_rest.errors import (
    DecodeError,
    DecodeScope,
    ErrorKind,
    FluentRestError,
    StreamTerminationError,
    TransportError,
)
from fluent_rest.metrics import RestMetrics
from fluent_rest.models import RestResult
from fluent_rest.observability import configure_logging, get_logger
from fluent_rest.request import RequestBuilder, RequestDescriptor
from fluent_rest.settings import ClientSettings, get_settings
from fluent_rest.state_machine import StreamState


__version__ = "0.1.0"

__all__ = [
    # Clients
    "AsyncFluentRestClient",
    "FluentRestClient",
    # Requests
    "RequestBuilder",
    "RequestDescriptor",
    # Results
    "RestResult",
    "StreamState",
    # Decoding
    "JsonArrayDecoder",
    "decode_body",
    # Errors
    "DecodeError",
    "DecodeScope",
    "ErrorKind",
    "FluentRestError",
    "StreamTerminationError",
    "TransportError",
    # Config
    "ClientConfig",
    "ClientSettings",
    "get_settings",
    # Observability
    "RestMetrics",
    "configure_logging",
    "get_logger",
    # Constants
    "NO_STATUS",
    "STREAM_RECEIVE_ERROR_MESSAGE",
]
