"""Command-line interface for issuing authenticated GoodData requests."""
from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import typer

try:  # pragma: no cover - exercised in runtime environments
    from rich import box
    from rich.console import Console
    from rich.table import Table
except ImportError as exc:  # pragma: no cover - optional dependency guard
    raise RuntimeError(
        "The CLI requires Rich for table rendering. Install the CLI extras via "
        "'pip install gooddata-http-client[cli]' to enable this command."
    ) from exc

from .auth.base import SSTRetrievalStrategy
from .auth.login import LoginSSTStrategy
from .auth.simple import SimpleSSTStrategy
from .client import GoodDataHttpClient
from .config import ClientConfig
from .exceptions import RequestError
from .http import ensure_success

PROFILE_URL = "/gdc/account/profile/current"

app = typer.Typer(help="GoodData authenticated HTTP CLI.", no_args_is_help=True)


def _build_client(
    host: str,
    username: str | None,
    password: str | None,
    sst: str | None,
    verify_ssl: bool,
    timeout: float,
) -> GoodDataHttpClient:
    strategy: SSTRetrievalStrategy
    if sst:
        strategy = SimpleSSTStrategy(sst=sst)
    else:
        if not username or not password:
            raise typer.BadParameter(
                "--username and --password are required unless --sst is given."
            )
        strategy = LoginSSTStrategy(login=username, password=password)

    return GoodDataHttpClient(
        strategy,
        auth_host=host,
        config=ClientConfig(verify_ssl=verify_ssl, timeout=timeout),
    )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


console = Console(force_terminal=False, color_system=None)


def _render_rich_table(title: str, rows: Mapping[str, str]) -> None:
    table = Table(
        title=title,
        box=box.SIMPLE,
        show_lines=False,
        header_style="bold cyan",
    )
    table.add_column("Name")
    table.add_column("Value")
    for name, value in rows.items():
        table.add_row(name, value)
    console.print(table)


def _mask(token: str | None) -> str:
    if not token:
        return ""
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}...{token[-4:]}"


def _handle_request_error(exc: RequestError) -> None:
    message = f"Request failed (status {exc.status_code}): {exc}"
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _shared_options() -> dict[str, Any]:  # pragma: no cover - helper indirection
    return {
        "host": typer.Option(
            ..., "--host", envvar="GOODDATA_HOST", help="Authentication host URL."
        ),
        "username": typer.Option(
            None,
            "--username",
            "-u",
            envvar="GOODDATA_USERNAME",
            help="Login used to obtain the SST.",
        ),
        "password": typer.Option(
            None,
            "--password",
            "-p",
            envvar="GOODDATA_PASSWORD",
            help="Password used to obtain the SST.",
            hide_input=True,
        ),
        "sst": typer.Option(
            None,
            "--sst",
            envvar="GOODDATA_SST",
            help="Use an already issued super-secure token instead of logging in.",
        ),
        "verify_ssl": typer.Option(
            True,
            "--verify/--no-verify",
            envvar="GOODDATA_VERIFY_SSL",
            help="Enable or disable TLS certificate verification.",
            show_default=True,
        ),
        "timeout": typer.Option(30.0, help="Request timeout (seconds).", show_default=True),
        "output_json": typer.Option(
            False,
            "--json",
            "-j",
            help="Return raw JSON instead of rendering a table.",
        ),
    }


_SHARED_OPTIONS = _shared_options()


@app.command("get")
def get(
    path: str = typer.Argument(..., help="Resource path or absolute URL."),
    host: str = _SHARED_OPTIONS["host"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    sst: str | None = _SHARED_OPTIONS["sst"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    show_headers: bool = typer.Option(
        False, "--headers", help="Render the response headers as a table."
    ),
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """Issue an authenticated GET and print the response body."""

    with _build_client(host, username, password, sst, verify_ssl, timeout) as client:
        response = client.request("GET", path)
        try:
            ensure_success(response)
        except RequestError as exc:
            _handle_request_error(exc)
            return
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    if output_json:
        envelope: dict[str, Any] = {"status": response.status_code, "body": body}
        if body is None:
            envelope["body"] = response.text
        if show_headers:
            envelope["headers"] = dict(response.headers)
        _echo_json(envelope)
        return
    if show_headers:
        _render_rich_table("Response headers", dict(response.headers))
    if body is None:
        typer.echo(response.text)
        return
    _echo_json(body)


@app.command("token")
def token(
    host: str = _SHARED_OPTIONS["host"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    sst: str | None = _SHARED_OPTIONS["sst"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """Authenticate against the host and report the tokens held afterwards."""

    with _build_client(host, username, password, sst, verify_ssl, timeout) as client:
        response = client.request("GET", PROFILE_URL)
        try:
            ensure_success(response)
        except RequestError as exc:
            _handle_request_error(exc)
            return
        tokens = client.tokens()
    summary = {"sst": _mask(tokens.sst), "tt": _mask(tokens.tt)}
    if output_json:
        _echo_json(summary)
        return
    _render_rich_table("GoodData tokens", summary)
