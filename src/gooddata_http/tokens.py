"""Extract SST and TT values from GoodData account resource bodies."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import requests

from .exceptions import TokenExtractionError

SST_ENTITY = "userLogin"
TT_ENTITY = "userToken"
TOKEN_FIELD = "token"

Body = str | bytes | requests.Response


def extract_sst(body: Body) -> str:
    """Return the SST from a ``{"userLogin": {"token": ...}}`` body."""

    return _extract_token(body, SST_ENTITY)


def extract_tt(body: Body) -> str:
    """Return the TT from a ``{"userToken": {"token": ...}}`` body."""

    return _extract_token(body, TT_ENTITY)


def _body_text(body: Body) -> str:
    if isinstance(body, requests.Response):
        return body.text or ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def _extract_token(body: Body, entity: str) -> str:
    text = _body_text(body)
    try:
        payload: Any = json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise _malformed(text) from exc

    wrapper = payload.get(entity) if isinstance(payload, Mapping) else None
    token = wrapper.get(TOKEN_FIELD) if isinstance(wrapper, Mapping) else None
    if not isinstance(token, str) or not token:
        raise _malformed(text)
    return token


def _malformed(text: str) -> TokenExtractionError:
    return TokenExtractionError(f"Unable to login. Malformed response body: {text}", details=text)
