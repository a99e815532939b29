"""HTTP utilities shared by the authenticating client and its strategies."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urljoin, urlparse

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from .exceptions import RequestError

UNAUTHORIZED = 401


@dataclass(frozen=True, slots=True)
class HttpHost:
    """Network target (scheme, hostname and optional port)."""

    hostname: str
    port: int | None = None
    scheme: str = "https"

    @classmethod
    def from_url(cls, url: str) -> HttpHost:
        parsed = urlparse(url)
        if not parsed.hostname:
            raise ValueError(f"URL does not name a host: {url!r}")
        return cls(hostname=parsed.hostname, port=parsed.port, scheme=parsed.scheme or "https")

    def to_url(self) -> str:
        # IPv6 literals need brackets in the authority
        host = f"[{self.hostname}]" if ":" in self.hostname else self.hostname
        if self.port is None:
            return f"{self.scheme}://{host}"
        return f"{self.scheme}://{host}:{self.port}"

    def url_for(self, path: str) -> str:
        """Resolve ``path`` against this host; absolute URLs pass through."""

        parsed = urlparse(path)
        if parsed.scheme and parsed.netloc:
            return path
        return urljoin(f"{self.to_url()}/", path.lstrip("/"))


def as_host(value: HttpHost | str) -> HttpHost:
    if isinstance(value, HttpHost):
        return value
    return HttpHost.from_url(value)


class Transport(Protocol):
    """Anything able to send a request to a target and hand back the response."""

    def execute(
        self,
        target: HttpHost,
        request: requests.Request,
        context: Mapping[str, Any] | None = None,
    ) -> requests.Response:
        ...


class SessionTransport:
    """Default transport backed by a `requests.Session`."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: float | tuple[float, float] | None = 30.0,
        verify_ssl: bool | str = True,
    ) -> None:
        self._session = session or requests.Session()
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        if isinstance(verify_ssl, bool) and not verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)

    def execute(
        self,
        target: HttpHost,
        request: requests.Request,
        context: Mapping[str, Any] | None = None,
    ) -> requests.Response:
        outgoing = copy.copy(request)
        outgoing.url = target.url_for(request.url)
        prepared = self._session.prepare_request(outgoing)
        settings = self._session.merge_environment_settings(
            prepared.url, {}, None, self.verify_ssl, None
        )
        send_kwargs: dict[str, Any] = {"timeout": self.timeout, **settings}
        if context:
            send_kwargs.update(context)
        return self._session.send(prepared, **send_kwargs)

    def close(self) -> None:
        self._session.close()


def ensure_success(response: requests.Response) -> None:
    """Raise `RequestError` if the response signals a failure."""

    if 200 <= response.status_code < 300:
        return
    detail = response.text[:200] if response.content else response.reason
    message = f"GoodData API error {response.status_code}: {detail}"
    raise RequestError(message, status_code=response.status_code, details=response.text)


def consume(response: requests.Response) -> None:
    """Drain and close ``response`` so its connection returns to the pool."""

    try:
        _ = response.content
    finally:
        response.close()


def unauthorized_response(
    reason: str, request: requests.Request | None = None
) -> requests.Response:
    """Build a 401 response that never went over the wire."""

    response = requests.Response()
    response.status_code = UNAUTHORIZED
    response.reason = reason
    response._content = b""
    response.encoding = "utf-8"
    if request is not None:
        response.url = request.url or ""
    return response
