"""Structured logging setup and log-safe rendering of requests."""

import logging
import re
import sys
from collections.abc import Iterable
from typing import TextIO

import structlog

from fluent_rest.settings import ClientSettings


# Headers whose values must never appear in logs
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "proxy-authorization",
        "set-cookie",
        "x-api-key",
        "x-auth-token",
    }
)

REDACTED_VALUE = "[REDACTED]"

_URL_CREDENTIALS = re.compile(r"(https?://)([^:/@]+):([^@/]+)@")


def configure_logging(
    settings: ClientSettings | None = None,
    output: TextIO = sys.stderr,
) -> None:
    """Configure structlog for applications using the adapter.

    Args:
        settings: Source of log level and format; read from the environment
            when omitted.
        output: Output stream (default: stderr).
    """
    settings = settings or ClientSettings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.log_json:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def redact_headers(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Render request headers for logging with sensitive values hidden.

    Args:
        headers: Header name/value pairs.

    Returns:
        Dictionary safe to log.
    """
    return {
        name: REDACTED_VALUE if name.lower() in SENSITIVE_HEADERS else value
        for name, value in headers
    }


def redact_url_credentials(url: str) -> str:
    """Hide user:password credentials embedded in a URL.

    Args:
        url: URL that may contain credentials.

    Returns:
        URL with credentials redacted.
    """
    return _URL_CREDENTIALS.sub(r"\1[REDACTED]:[REDACTED]@", url)
