"""Exception hierarchy for fetchkit.

ApiError carries everything a caller needs to act on a failed response:
status code, a human readable message and the raw body for diagnostics.
"""

import json
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Fields searched (in order) for a message in a JSON error body.
MESSAGE_FIELDS = ("message", "error", "title", "detail")


class FetchkitError(Exception):
    """Base class for all fetchkit errors."""


class ApiError(FetchkitError):
    """Raised when the API answers with a status outside the success range."""

    def __init__(
        self,
        status_code: int,
        message: Optional[str] = None,
        body: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.status_code = status_code
        self.message = message
        self.body = body
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {message or reason or 'request failed'}")

    @classmethod
    def from_response(cls, response: Any) -> "ApiError":
        """Builds a structured error from an httpx response.

        Reads the body as text (falling back to the reason phrase with no body
        if that fails), then looks for a message in the JSON payload.

        Args:
            response: The non-success httpx.Response.

        Returns:
            An ApiError with status, message, raw body and reason phrase.
        """
        reason = response.reason_phrase or None
        try:
            text = response.text
        except Exception as e:
            logger.debug(f"Could not read error body for HTTP {response.status_code}: {e}")
            return cls(response.status_code, message=reason, body=None, reason=reason)

        message = extract_error_message(text) or reason
        return cls(response.status_code, message=message, body=text, reason=reason)


class NoDataFoundError(ApiError):
    """Raised when paged discovery finds no array anywhere in the response."""

    def __init__(self, status_code: int = 200, body: Optional[str] = None):
        super().__init__(status_code, message="No data found", body=body, reason=None)


def extract_error_message(text: Optional[str]) -> Optional[str]:
    """Returns the first string-valued message field from a JSON error body.

    Non-JSON bodies, non-object roots and missing fields all yield None.
    """
    if not text:
        return None
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    for field_name in MESSAGE_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, str):
            return value
    return None
