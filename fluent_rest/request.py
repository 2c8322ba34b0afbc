"""Fluent request-state builder."""

from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from fluent_rest.constants import DEFAULT_METHOD


class RequestDescriptor(BaseModel):
    """Finalized request produced by a RequestBuilder."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: str = Field(min_length=1, description="HTTP method")
    url: str = Field(description="Complete request URI")
    headers: tuple[tuple[str, str], ...] = Field(
        default=(), description="Header name/value pairs in insertion order"
    )
    body: str = Field(default="", description="Request body")


def _strip_trailing_slashes(value: str) -> str:
    return value.rstrip("/")


class RequestBuilder:
    """Accumulates the state of requests to a backend.

    Fluent setters modify this builder in place and return it for chaining;
    the same builder can be used for many calls, and each call derives its
    request from the state current at that moment. Use ``copy`` to fork a
    configuration instead of sharing it.

    Example:
        people = (
            RequestBuilder("https://contoso.com/")
            .set_endpoint_path("api/v1/people")
            .add_or_set_header("Accept-Language", "en")
        )
        people.resolve("1")  # https://contoso.com/api/v1/people/1
    """

    def __init__(self, host: str = "", *, encode_query: bool = True) -> None:
        """Initialize the builder.

        Args:
            host: Scheme and authority of the backend, e.g. https://contoso.com.
            encode_query: Percent-encode query parameter names and values.
        """
        self._host = ""
        self._endpoint_path = ""
        # casefolded name -> (name as first set, value)
        self._parameters: dict[str, tuple[str, str]] = {}
        self._headers: dict[str, tuple[str, str]] = {}
        self._body = ""
        self._encode_query = encode_query
        self.set_host(host)

    @property
    def host(self) -> str:
        """Host without trailing slashes."""
        return self._host

    @property
    def endpoint_path(self) -> str:
        """Endpoint path with a single leading slash, or empty."""
        return self._endpoint_path

    @property
    def query_parameters(self) -> list[tuple[str, str]]:
        """Query parameters in insertion order."""
        return list(self._parameters.values())

    @property
    def headers(self) -> list[tuple[str, str]]:
        """Headers in insertion order."""
        return list(self._headers.values())

    @property
    def body(self) -> str:
        """Request body."""
        return self._body

    def set_host(self, host: str) -> "RequestBuilder":
        """Set the host; trailing slashes are removed.

        Args:
            host: Scheme and authority of the backend.

        Returns:
            This builder, for chaining.
        """
        self._host = _strip_trailing_slashes(host)
        return self

    def set_endpoint_path(self, endpoint_path: str) -> "RequestBuilder":
        """Set the endpoint path for requests.

        Trailing slashes are removed; a leading slash is inserted when the
        path is not empty.

        Args:
            endpoint_path: Path below the host, e.g. /api/v1/people.

        Returns:
            This builder, for chaining.
        """
        endpoint_path = _strip_trailing_slashes(endpoint_path)
        if endpoint_path and not endpoint_path.startswith("/"):
            endpoint_path = f"/{endpoint_path}"
        self._endpoint_path = endpoint_path
        return self

    def add_or_set_query_parameter(self, name: str, value: str) -> "RequestBuilder":
        """Add a query parameter, or change it if the name already exists.

        Names are compared case-insensitively.

        Args:
            name: Parameter name.
            value: Parameter value.

        Returns:
            This builder, for chaining.
        """
        _add_or_set(self._parameters, name, value)
        return self

    def add_or_set_header(self, name: str, value: str) -> "RequestBuilder":
        """Add a header, or change it if the name already exists.

        Names are compared case-insensitively.

        Args:
            name: Header name.
            value: Header value.

        Returns:
            This builder, for chaining.
        """
        _add_or_set(self._headers, name, value)
        return self

    def set_body(self, body: str) -> "RequestBuilder":
        """Replace the body sent with subsequent requests.

        Args:
            body: Body content.

        Returns:
            This builder, for chaining.
        """
        self._body = body
        return self

    def resolve(self, final_path: str = "") -> str:
        """Build the complete URI for a request.

        Args:
            final_path: Last segment of the resource URI, appended only if
                not empty.

        Returns:
            URI of the form {host}{endpoint_path}[/{final_path}][?{query}].
        """
        result = f"{self._host}{self._endpoint_path}"
        if final_path:
            result = f"{result}/{final_path}"

        if self._parameters:
            query_string = "&".join(
                f"{self._encode(name)}={self._encode(value)}"
                for name, value in self._parameters.values()
            )
            result = f"{result}?{query_string}"

        return result

    def build(
        self, method: str = DEFAULT_METHOD, final_path: str = ""
    ) -> RequestDescriptor:
        """Produce the request descriptor for the current state.

        Args:
            method: HTTP method.
            final_path: Last segment of the resource URI.

        Returns:
            Frozen request descriptor.
        """
        return RequestDescriptor(
            method=method.upper(),
            url=self.resolve(final_path),
            headers=tuple(self._headers.values()),
            body=self._body,
        )

    def copy(self) -> "RequestBuilder":
        """Return an independent builder with the same state."""
        clone = RequestBuilder(self._host, encode_query=self._encode_query)
        clone._endpoint_path = self._endpoint_path  # noqa: SLF001
        clone._parameters = dict(self._parameters)  # noqa: SLF001
        clone._headers = dict(self._headers)  # noqa: SLF001
        clone._body = self._body  # noqa: SLF001
        return clone

    def _encode(self, value: str) -> str:
        if not self._encode_query:
            return value
        return quote(value, safe="")


def _add_or_set(entries: dict[str, tuple[str, str]], name: str, value: str) -> None:
    key = name.casefold()
    existing = entries.get(key)
    entries[key] = (existing[0] if existing else name, value)
