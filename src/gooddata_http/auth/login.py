"""Obtain the super-secure token by logging in with user credentials."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import requests

from ..exceptions import AuthenticationError
from ..http import HttpHost, consume
from ..tokens import extract_sst
from .base import SSTRetrievalStrategy

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from ..http import Transport

LOGIN_URL = "/gdc/account/login"

# SST and TT must be present in the HTTP header.
VERIFICATION_LEVEL = 2

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LoginSSTStrategy(SSTRetrievalStrategy):
    """POST credentials to the login resource and read the SST from the reply."""

    login: str
    password: str = field(repr=False)
    auth_host: HttpHost | None = None

    def __post_init__(self) -> None:
        if not self.login:
            raise ValueError("Login cannot be empty")
        if not self.password:
            raise ValueError("Password cannot be empty")

    def obtain_sst(self, transport: Transport, auth_host: HttpHost) -> str:
        logger.debug("Obtaining SST for %s", self.login)
        request = requests.Request(
            "POST",
            LOGIN_URL,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            data=self.login_payload(),
        )
        response = transport.execute(auth_host, request)
        try:
            if response.status_code != 200:
                raise AuthenticationError(
                    f"Unable to login: {response.status_code}",
                    status_code=response.status_code,
                    details=response.text[:200],
                )
            return extract_sst(response)
        finally:
            consume(response)

    def login_payload(self) -> str:
        return json.dumps(
            {
                "postUserLogin": {
                    "login": self.login,
                    "password": self.password,
                    "remember": 0,
                    "verify_level": VERIFICATION_LEVEL,
                }
            }
        )
