"""Custom exception hierarchy for the GoodData HTTP client."""
from __future__ import annotations

from typing import Any


class GoodDataError(RuntimeError):
    """Base error for GoodData failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthenticationError(GoodDataError):
    """Raised when SST or TT cannot be obtained."""


class TokenExtractionError(AuthenticationError):
    """Raised when a token response body does not have the expected shape."""


class RequestError(GoodDataError):
    """Raised when an HTTP request cannot be fulfilled."""
