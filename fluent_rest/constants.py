"""Constants for the fluent REST adapter.

Centralizes status ranges and shared messages to avoid duplication across modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300

# Sentinel status for local failures with no HTTP status to report
NO_STATUS = 0

DEFAULT_METHOD = "GET"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "fluent-rest/0.1"

# Message for streams that end without a clean terminal signal
STREAM_RECEIVE_ERROR_MESSAGE = "Error receiving data"


def is_success_status(status_code: int) -> bool:
    """Check whether a status code is in the 2xx range.

    Args:
        status_code: HTTP status code, or NO_STATUS.

    Returns:
        True for 2xx status codes.
    """
    return HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX
