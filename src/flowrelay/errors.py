"""Relay error taxonomy."""

from __future__ import annotations


class FlowRelayError(Exception):
    """Base class for relay failures that map onto an HTTP status."""

    status_code: int = 500


class UpstreamError(FlowRelayError):
    """The flow API answered with a non-success status."""

    def __init__(self, status_code: int, reason: str = "", body: str = "") -> None:
        self.upstream_status = status_code
        self.reason = reason
        self.body = body
        status = f"{status_code} {reason}" if reason else str(status_code)
        super().__init__(f"{status} - {body}" if body else status)


class ShapeError(FlowRelayError):
    """A run response is missing a path the relay depends on."""


class FlowTimeoutError(FlowRelayError):
    """The flow API did not answer within the configured bound."""

    status_code = 504


class StreamError(FlowRelayError):
    """The event stream failed after the HTTP response was sent."""


class ExtractionError(FlowRelayError):
    """The embedded JSON block is absent or malformed."""
