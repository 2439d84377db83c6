"""
Error taxonomy shared by every component of the STK push client.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "MpesaError",
    "SubmissionError",
    "ValidationError",
]


class MpesaError(Exception):
    """Base class for failures surfaced to callers of the client."""

    kind = "mpesa_error"

    def __init__(self, message: str, *, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.kind,
            "message": self.message,
            "detail": self.detail,
        }


class ConfigurationError(MpesaError):
    """Raised when static configuration is missing or invalid."""

    kind = "configuration_error"


class ValidationError(MpesaError):
    """Raised when caller input is rejected before any network call."""

    kind = "validation_error"


class AuthenticationError(MpesaError):
    """Raised when an access token cannot be obtained."""

    kind = "authentication_error"


class SubmissionError(MpesaError):
    """
    Raised when the push request itself fails at the transport level.

    ``body`` holds whatever the provider sent back (decoded JSON when possible,
    raw text otherwise) so callers can tell a bad shortcode from a timeout.
    """

    kind = "submission_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message, detail=body)
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["statusCode"] = self.status_code
        return data
