"""Domain-specific exceptions for the relay service.

These exceptions are safe to import from API layers without pulling in the
websocket or Twilio clients.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base error; `status_code` and `detail` become the JSON error response."""

    status_code: int = 500
    default_detail: str = "Relay error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ConfigurationError(RelayError):
    status_code = 500
    default_detail = "Required configuration is missing."


class InvalidCallRequestError(RelayError):
    status_code = 400
    default_detail = "Request body must be JSON."


class CallOriginationError(RelayError):
    status_code = 500
    default_detail = "Twilio error"


class ChannelClosedError(RelayError):
    default_detail = "Channel is closed."
