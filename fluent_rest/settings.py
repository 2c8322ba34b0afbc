"""Environment settings powered by Pydantic BaseSettings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fluent_rest.config import ClientConfig
from fluent_rest.constants import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT


class ClientSettings(BaseSettings):
    """Environment configuration, read from FLUENT_REST_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLUENT_REST_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, ge=1.0, le=300.0)
    user_agent: str = DEFAULT_USER_AGENT
    follow_redirects: bool = True
    encode_query: bool = True
    log_level: str = "INFO"
    log_json: bool = True

    def to_config(self) -> ClientConfig:
        """Build a client configuration from these settings."""
        return ClientConfig(
            timeout_seconds=self.timeout_seconds,
            user_agent=self.user_agent,
            follow_redirects=self.follow_redirects,
            encode_query=self.encode_query,
        )


def get_settings() -> ClientSettings:
    """Get a settings instance."""
    return ClientSettings()
