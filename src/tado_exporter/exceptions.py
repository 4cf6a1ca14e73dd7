"""Custom exceptions for tado_exporter."""

from __future__ import annotations


class TadoError(Exception):
    """Base exception for all tado exporter errors."""


class AuthenticationError(TadoError):
    """Exception raised for OAuth device flow or token refresh failures."""


class TadoConnectionError(TadoError):
    """Exception raised for connection failures."""


class TadoTimeoutError(TadoError):
    """Exception raised when upstream requests timeout."""


class DecodeError(TadoError):
    """Exception raised when an upstream response cannot be decoded."""


class UpstreamStatusError(TadoError):
    """Exception raised when a data endpoint answers outside [200, 400).

    Attributes:
        status: HTTP status code returned by the upstream API.
        body: Raw response body, kept for logging.
    """

    def __init__(self, message: str = "", status: int = 0, body: str = "") -> None:
        """Initialize UpstreamStatusError.

        Args:
            message: Error message.
            status: HTTP status code returned by the upstream API.
            body: Raw response body.
        """
        super().__init__(message)
        self.status = status
        self.body = body
