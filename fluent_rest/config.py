"""Configuration models for the REST clients."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fluent_rest.constants import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT


class ClientConfig(BaseModel):
    """Configuration for FluentRestClient and AsyncFluentRestClient.

    Only applies to the httpx client the adapter creates itself; a caller
    supplying its own httpx client keeps that client's settings.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = (
        DEFAULT_TIMEOUT_SECONDS
    )
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        DEFAULT_USER_AGENT
    )
    follow_redirects: bool = True
    default_headers: dict[str, str] = Field(
        default_factory=dict, description="Headers added to every request"
    )
    encode_query: bool = Field(
        default=True,
        description="Percent-encode query parameters of builders created by host()",
    )

    @field_validator("default_headers")
    @classmethod
    def validate_no_credentials(cls, v: dict[str, str]) -> dict[str, str]:
        """Ensure credentials are set per request rather than in config."""
        forbidden = {"authorization", "cookie", "x-api-key"}
        for key in v:
            if key.lower() in forbidden:
                msg = (
                    f"Header '{key}' must not be stored in config; "
                    "set it on the request builder"
                )
                raise ValueError(msg)
        return v

    def client_headers(self) -> dict[str, str]:
        """Headers for the httpx client created by the adapter.

        Returns:
            User-Agent plus the configured default headers.
        """
        headers = {"User-Agent": self.user_agent}
        headers.update(self.default_headers)
        return headers
