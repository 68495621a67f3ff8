"""
Exception Classes - Tagged exception hierarchy.

Every failure carries an ErrorKind so callers can branch on the cause
without inspecting message text. The original message is always kept.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Cause of a StripeIntegrationError."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    SIGNATURE = "signature"
    UPSTREAM = "upstream"


class StripeIntegrationError(Exception):
    """Base exception for all integration errors."""

    kind: ErrorKind | None = None

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(StripeIntegrationError):
    """Raised when a required secret or setting is missing or invalid."""

    kind = ErrorKind.CONFIGURATION


class ValidationError(StripeIntegrationError):
    """Raised when caller input is malformed. Detected before any remote call."""

    kind = ErrorKind.VALIDATION


class SignatureError(StripeIntegrationError):
    """Raised when a webhook payload fails signature verification or parsing."""

    kind = ErrorKind.SIGNATURE


class UpstreamError(StripeIntegrationError):
    """Raised when a Stripe API call fails for any reason."""

    kind = ErrorKind.UPSTREAM
