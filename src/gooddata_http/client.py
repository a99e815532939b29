"""HTTP client that keeps a GoodData SST/TT session alive on behalf of callers.

Usage with credentials::

    strategy = LoginSSTStrategy("user@domain.com", "my secret")
    with GoodDataHttpClient(strategy, auth_host="https://secure.gooddata.com") as client:
        response = client.request("GET", "/gdc/projects")

Usage with an SST obtained elsewhere::

    client = GoodDataHttpClient(SimpleSSTStrategy(sst), auth_host=host)

Every outgoing request carries the current TT. When the server answers with a
GoodData challenge the client refreshes the TT (logging in again when the SST
is stale as well) and re-sends the original request.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar
from urllib.parse import urlparse

import requests

from .auth.base import SSTRetrievalStrategy
from .auth.login import LoginSSTStrategy
from .config import ClientConfig
from .exceptions import AuthenticationError, TokenExtractionError
from .http import (
    UNAUTHORIZED,
    HttpHost,
    SessionTransport,
    Transport,
    as_host,
    consume,
    unauthorized_response,
)
from .state import TokenPair, TokenState, TokenUpdate
from .tokens import extract_tt

TOKEN_URL = "/gdc/account/token"
COOKIE_GDC_AUTH_TT = "cookie=GDCAuthTT"
COOKIE_GDC_AUTH_SST = "cookie=GDCAuthSST"
WWW_AUTHENTICATE = "WWW-Authenticate"

SST_HEADER = "X-GDC-AuthSST"
TT_HEADER = "X-GDC-AuthTT"

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ChallengeType(Enum):
    SST = "sst"
    TT = "tt"
    NONE = "none"


class RefreshStatus(Enum):
    REFRESHED = "refreshed"
    SST_STALE = "sst_stale"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class RefreshOutcome:
    status: RefreshStatus
    reason: str | None = None


_REFRESHED = RefreshOutcome(RefreshStatus.REFRESHED)
_SST_STALE = RefreshOutcome(RefreshStatus.SST_STALE)


def identify_challenge(response: requests.Response) -> ChallengeType:
    """Classify ``response`` as an SST challenge, a TT challenge or neither."""

    if response.status_code != UNAUTHORIZED:
        return ChallengeType.NONE
    challenge = response.headers.get(WWW_AUTHENTICATE)
    if not challenge:
        return ChallengeType.NONE
    if COOKIE_GDC_AUTH_SST in challenge:
        return ChallengeType.SST
    if COOKIE_GDC_AUTH_TT in challenge:
        return ChallengeType.TT
    return ChallengeType.NONE


class GoodDataHttpClient:
    """Decorate a transport with transparent GoodData authentication."""

    def __init__(
        self,
        sst_strategy: SSTRetrievalStrategy,
        *,
        auth_host: HttpHost | str | None = None,
        transport: Transport | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        if sst_strategy is None:
            raise ValueError("SST retrieval strategy is required")
        if auth_host is None and isinstance(sst_strategy, LoginSSTStrategy):
            auth_host = sst_strategy.auth_host
        if auth_host is None:
            raise ValueError("Authentication host is required")
        self.config = config or ClientConfig()
        self._owns_transport = transport is None
        self._transport: Transport = transport or SessionTransport(
            timeout=self.config.timeout, verify_ssl=self.config.verify_ssl
        )
        self._auth_host = as_host(auth_host)
        self._sst_strategy = sst_strategy
        self._state = TokenState()
        # Serializes refresh attempts; the first holder that still sees the
        # generation its request was sent with performs the refresh.
        self._refresh_gate = threading.Lock()

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> GoodDataHttpClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Public API --------------------------------------------------------------
    @property
    def auth_host(self) -> HttpHost:
        return self._auth_host

    @property
    def sst(self) -> str | None:
        return self._state.snapshot().sst

    @property
    def tt(self) -> str | None:
        return self._state.snapshot().tt

    def tokens(self) -> TokenPair:
        """Return the current (SST, TT) pair as one consistent snapshot."""
        return self._state.snapshot()

    def execute(
        self,
        target: HttpHost | str,
        request: requests.Request,
        context: Mapping[str, Any] | None = None,
    ) -> requests.Response:
        """Send ``request`` to ``target``, authenticating as needed.

        Transport failures propagate. Authentication failures come back as a
        401 response whose reason carries the error message.
        ``request`` itself is not modified; headers are added to a copy.
        """
        host = as_host(target)
        request = self._outgoing(request)
        attempts = 0
        while True:
            response, generation = self._send(host, request, context)
            challenge = identify_challenge(response)
            if challenge is ChallengeType.NONE:
                return response
            consume(response)
            if attempts >= self.config.max_auth_retries:
                logger.warning(
                    "Giving up on %s %s after %d authentication retries",
                    request.method,
                    request.url,
                    attempts,
                )
                return unauthorized_response("Authentication retry limit exceeded", request)
            attempts += 1
            outcome = self._refresh(challenge, generation)
            if outcome.status is RefreshStatus.FATAL:
                return unauthorized_response(outcome.reason or "Authentication failed", request)

    def execute_request(
        self,
        request: requests.Request,
        context: Mapping[str, Any] | None = None,
    ) -> requests.Response:
        """Send a request whose URL is absolute; the target is taken from it."""
        return self.execute(HttpHost.from_url(request.url), request, context)

    def execute_with_handler(
        self,
        target: HttpHost | str,
        request: requests.Request,
        handler: Callable[[requests.Response], T],
        context: Mapping[str, Any] | None = None,
    ) -> T:
        return handler(self.execute(target, request, context))

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Build and send a request; relative URLs go to the authentication host."""
        parsed = urlparse(url)
        target = HttpHost.from_url(url) if parsed.scheme and parsed.netloc else self._auth_host
        return self.execute(target, requests.Request(method.upper(), url, **kwargs))

    def close(self) -> None:
        if self._owns_transport and isinstance(self._transport, SessionTransport):
            self._transport.close()

    # Internal helpers -------------------------------------------------------
    def _outgoing(self, request: requests.Request) -> requests.Request:
        outgoing = copy.copy(request)
        outgoing.headers = dict(request.headers or {})
        for name, value in self.config.resolved_headers().items():
            outgoing.headers.setdefault(name, value)
        return outgoing

    def _send(
        self,
        target: HttpHost,
        request: requests.Request,
        context: Mapping[str, Any] | None,
    ) -> tuple[requests.Response, int]:
        with self._state.reading() as tokens:
            if tokens.tt is not None:
                # every request to every host carries the TT
                request.headers[TT_HEADER] = tokens.tt
            logger.info("GoodData request %s %s", request.method, target.url_for(request.url))
            response = self._transport.execute(target, request, context)
        return response, tokens.generation

    def _refresh(self, challenge: ChallengeType, generation: int) -> RefreshOutcome:
        with self._refresh_gate:
            if self._state.snapshot().generation != generation:
                logger.debug("Tokens changed since the request was sent, retrying")
                return _REFRESHED
            with self._state.exclusive() as tokens:
                outcome = self._authenticate(challenge, tokens)
        if outcome.status is RefreshStatus.FATAL:
            logger.warning("GoodData authentication failed: %s", outcome.reason)
        else:
            logger.info("GoodData tokens refreshed against %s", self._auth_host.to_url())
        return outcome

    def _authenticate(self, challenge: ChallengeType, tokens: TokenUpdate) -> RefreshOutcome:
        if challenge is ChallengeType.TT and tokens.sst is not None:
            outcome = self._refresh_tt(tokens)
            if outcome.status is not RefreshStatus.SST_STALE:
                return outcome
            logger.debug("SST rejected by token resource, logging in again")

        logger.debug("Obtaining SST")
        try:
            tokens.sst = self._sst_strategy.obtain_sst(self._transport, self._auth_host)
        except AuthenticationError as exc:
            return RefreshOutcome(RefreshStatus.FATAL, str(exc))

        outcome = self._refresh_tt(tokens)
        if outcome.status is RefreshStatus.SST_STALE:
            return RefreshOutcome(
                RefreshStatus.FATAL, "Unable to obtain TT after successfully obtained SST"
            )
        return outcome

    def _refresh_tt(self, tokens: TokenUpdate) -> RefreshOutcome:
        logger.debug("Obtaining TT")
        request = requests.Request(
            "GET",
            TOKEN_URL,
            headers={SST_HEADER: tokens.sst, "Accept": "application/json"},
        )
        response = self._transport.execute(self._auth_host, request)
        try:
            status = response.status_code
            if status == 200:
                try:
                    tokens.tt = extract_tt(response)
                except TokenExtractionError as exc:
                    return RefreshOutcome(RefreshStatus.FATAL, str(exc))
                return _REFRESHED
            if status == UNAUTHORIZED:
                return _SST_STALE
            return RefreshOutcome(
                RefreshStatus.FATAL, f"Unable to obtain TT, HTTP status: {status}"
            )
        finally:
            consume(response)
