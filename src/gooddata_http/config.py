"""Configuration helpers for the GoodData HTTP client."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_MAX_AUTH_RETRIES = 3


@dataclass(slots=True)
class ClientConfig:
    """Typed configuration for `GoodDataHttpClient`."""

    verify_ssl: bool | str = True
    timeout: float = 30.0
    default_headers: Mapping[str, str] | None = None
    max_auth_retries: int = DEFAULT_MAX_AUTH_RETRIES

    def __post_init__(self) -> None:
        if self.max_auth_retries < 0:
            raise ValueError("max_auth_retries must not be negative")

    def resolved_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self.default_headers:
            headers.update(self.default_headers)
        return headers
