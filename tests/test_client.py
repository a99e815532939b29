import pytest
import requests

from gooddata_http import ClientConfig, GoodDataHttpClient, HttpHost
from gooddata_http.auth.login import LoginSSTStrategy
from gooddata_http.auth.simple import SimpleSSTStrategy
from gooddata_http.client import (
    SST_HEADER,
    TT_HEADER,
    ChallengeType,
    identify_challenge,
)

AUTH_URL = "https://secure.gooddata.com"
LOGIN_ENDPOINT = f"{AUTH_URL}/gdc/account/login"
TOKEN_ENDPOINT = f"{AUTH_URL}/gdc/account/token"
PROJECTS_ENDPOINT = f"{AUTH_URL}/gdc/projects"

SST_CHALLENGE = {"WWW-Authenticate": "GoodData realm=\"GoodData API\" cookie=GDCAuthSST"}
TT_CHALLENGE = {"WWW-Authenticate": "GoodData realm=\"GoodData API\" cookie=GDCAuthTT"}


def login_body(sst: str) -> dict:
    return {"userLogin": {"profile": "/gdc/account/profile/1", "token": sst}}


def token_body(tt: str) -> dict:
    return {"userToken": {"token": tt}}


def build_client(strategy=None, **config) -> GoodDataHttpClient:
    return GoodDataHttpClient(
        strategy or LoginSSTStrategy("user@domain.com", "my secret"),
        auth_host=AUTH_URL,
        config=ClientConfig(**config) if config else None,
    )


def _response(status: int, headers: dict | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.headers.update(headers or {})
    return response


def test_identify_challenge_classifies_by_status_and_header():
    assert identify_challenge(_response(401, SST_CHALLENGE)) is ChallengeType.SST
    assert identify_challenge(_response(401, TT_CHALLENGE)) is ChallengeType.TT
    assert identify_challenge(_response(401)) is ChallengeType.NONE
    assert identify_challenge(_response(401, {"WWW-Authenticate": "Basic"})) is ChallengeType.NONE
    assert identify_challenge(_response(403, TT_CHALLENGE)) is ChallengeType.NONE
    assert identify_challenge(_response(200)) is ChallengeType.NONE


def test_first_request_logs_in_and_retries_with_tt(requests_mock):
    login = requests_mock.post(LOGIN_ENDPOINT, json=login_body("sst-1"))
    token = requests_mock.get(TOKEN_ENDPOINT, json=token_body("tt-1"))
    projects = requests_mock.get(
        PROJECTS_ENDPOINT,
        [
            {"status_code": 401, "headers": SST_CHALLENGE},
            {"status_code": 200, "json": {"projects": []}},
        ],
    )
    client = build_client()

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 200
    assert response.json() == {"projects": []}
    assert login.call_count == 1
    assert token.call_count == 1
    assert token.last_request.headers[SST_HEADER] == "sst-1"
    assert projects.call_count == 2
    assert TT_HEADER not in projects.request_history[0].headers
    assert projects.request_history[1].headers[TT_HEADER] == "tt-1"
    assert client.sst == "sst-1"
    assert client.tt == "tt-1"


def test_tt_challenge_with_valid_sst_only_refreshes_tt(requests_mock):
    login = requests_mock.post(LOGIN_ENDPOINT, json=login_body("sst-1"))
    token = requests_mock.get(
        TOKEN_ENDPOINT,
        [{"json": token_body("tt-1")}, {"json": token_body("tt-2")}],
    )
    projects = requests_mock.get(
        PROJECTS_ENDPOINT,
        [
            {"status_code": 401, "headers": SST_CHALLENGE},
            {"status_code": 200, "json": {}},
            {"status_code": 401, "headers": TT_CHALLENGE},
            {"status_code": 200, "json": {}},
        ],
    )
    client = build_client()
    client.request("GET", "/gdc/projects")

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 200
    assert login.call_count == 1
    assert token.call_count == 2
    assert token.last_request.headers[SST_HEADER] == "sst-1"
    assert projects.request_history[2].headers[TT_HEADER] == "tt-1"
    assert projects.request_history[3].headers[TT_HEADER] == "tt-2"


def test_tt_challenge_with_stale_sst_logs_in_once(requests_mock):
    login = requests_mock.post(
        LOGIN_ENDPOINT,
        [{"json": login_body("sst-1")}, {"json": login_body("sst-2")}],
    )
    token = requests_mock.get(
        TOKEN_ENDPOINT,
        [
            {"json": token_body("tt-1")},
            {"status_code": 401, "headers": SST_CHALLENGE},
            {"json": token_body("tt-2")},
        ],
    )
    requests_mock.get(
        PROJECTS_ENDPOINT,
        [
            {"status_code": 401, "headers": SST_CHALLENGE},
            {"status_code": 200, "json": {}},
            {"status_code": 401, "headers": TT_CHALLENGE},
            {"status_code": 200, "json": {}},
        ],
    )
    client = build_client()
    client.request("GET", "/gdc/projects")

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 200
    assert login.call_count == 2
    assert token.call_count == 3
    assert token.request_history[1].headers[SST_HEADER] == "sst-1"
    assert token.request_history[2].headers[SST_HEADER] == "sst-2"
    assert client.tokens().sst == "sst-2"
    assert client.tokens().tt == "tt-2"


def test_login_failure_returns_synthetic_unauthorized_without_retry(requests_mock):
    requests_mock.post(LOGIN_ENDPOINT, status_code=403, text="forbidden")
    token = requests_mock.get(TOKEN_ENDPOINT, json=token_body("tt-1"))
    projects = requests_mock.get(PROJECTS_ENDPOINT, status_code=401, headers=SST_CHALLENGE)
    client = build_client()

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 401
    assert response.reason == "Unable to login: 403"
    assert projects.call_count == 1
    assert token.call_count == 0


def test_fresh_sst_without_tt_is_fatal(requests_mock):
    login = requests_mock.post(LOGIN_ENDPOINT, json=login_body("sst-1"))
    requests_mock.get(TOKEN_ENDPOINT, status_code=401, headers=SST_CHALLENGE)
    projects = requests_mock.get(PROJECTS_ENDPOINT, status_code=401, headers=SST_CHALLENGE)
    client = build_client()

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 401
    assert response.reason == "Unable to obtain TT after successfully obtained SST"
    assert login.call_count == 1
    assert projects.call_count == 1


def test_unexpected_token_status_is_fatal(requests_mock):
    requests_mock.get(TOKEN_ENDPOINT, status_code=500)
    projects = requests_mock.get(PROJECTS_ENDPOINT, status_code=401, headers=TT_CHALLENGE)
    client = build_client(SimpleSSTStrategy("preissued"))

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 401
    assert response.reason == "Unable to obtain TT, HTTP status: 500"
    assert projects.call_count == 1


def test_malformed_token_body_is_fatal(requests_mock):
    requests_mock.get(TOKEN_ENDPOINT, text="{}")
    requests_mock.get(PROJECTS_ENDPOINT, status_code=401, headers=SST_CHALLENGE)
    client = build_client(SimpleSSTStrategy("preissued"))

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 401
    assert "Malformed response body" in response.reason
    assert client.sst == "preissued"
    assert client.tt is None


def test_unauthorized_without_challenge_passes_through(requests_mock):
    login = requests_mock.post(LOGIN_ENDPOINT, json=login_body("sst-1"))
    requests_mock.get(PROJECTS_ENDPOINT, status_code=401, text="nope")
    client = build_client()

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 401
    assert response.text == "nope"
    assert login.call_count == 0


def test_requests_without_challenge_do_not_refresh(requests_mock):
    login = requests_mock.post(LOGIN_ENDPOINT, json=login_body("sst-1"))
    token = requests_mock.get(TOKEN_ENDPOINT, json=token_body("tt-1"))
    projects = requests_mock.get(
        PROJECTS_ENDPOINT,
        [
            {"status_code": 401, "headers": SST_CHALLENGE},
            {"status_code": 200, "json": {}},
            {"status_code": 200, "json": {}},
            {"status_code": 200, "json": {}},
        ],
    )
    client = build_client()
    client.request("GET", "/gdc/projects")

    first = client.request("GET", "/gdc/projects")
    second = client.request("GET", "/gdc/projects")

    assert first.status_code == second.status_code == 200
    assert projects.call_count == 4
    assert projects.request_history[2].headers[TT_HEADER] == "tt-1"
    assert projects.request_history[3].headers[TT_HEADER] == "tt-1"
    assert login.call_count == 1
    assert token.call_count == 1


def test_tt_is_attached_to_requests_for_other_hosts(requests_mock):
    requests_mock.get(TOKEN_ENDPOINT, json=token_body("tt-1"))
    other = requests_mock.get(
        "https://analytics.example.com/gdc/md",
        [{"status_code": 401, "headers": TT_CHALLENGE}, {"status_code": 200, "json": {}}],
    )
    client = build_client(SimpleSSTStrategy("preissued"))

    response = client.request("GET", "https://analytics.example.com/gdc/md")

    assert response.status_code == 200
    assert other.last_request.headers[TT_HEADER] == "tt-1"


def test_persistent_challenge_stops_at_retry_limit(requests_mock):
    token = requests_mock.get(TOKEN_ENDPOINT, json=token_body("tt-1"))
    projects = requests_mock.get(PROJECTS_ENDPOINT, status_code=401, headers=TT_CHALLENGE)
    client = build_client(SimpleSSTStrategy("preissued"), max_auth_retries=2)

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 401
    assert response.reason == "Authentication retry limit exceeded"
    assert projects.call_count == 3
    assert token.call_count == 2


def test_transport_errors_propagate(requests_mock):
    requests_mock.get(PROJECTS_ENDPOINT, exc=requests.exceptions.ConnectTimeout)
    client = build_client()

    with pytest.raises(requests.exceptions.ConnectTimeout):
        client.request("GET", "/gdc/projects")


def test_execute_with_explicit_target_and_handler(requests_mock):
    requests_mock.get("https://other.example.com:8443/gdc", json={"about": {}})
    client = build_client()
    request = requests.Request("GET", "/gdc")

    payload = client.execute_with_handler(
        HttpHost("other.example.com", 8443), request, lambda response: response.json()
    )

    assert payload == {"about": {}}


def test_execute_request_derives_target_from_url(requests_mock):
    matcher = requests_mock.get("http://other.example.com/gdc", json={})
    client = build_client()

    response = client.execute_request(requests.Request("GET", "http://other.example.com/gdc"))

    assert response.status_code == 200
    assert matcher.last_request.headers["Accept"] == "application/json"


def test_default_headers_do_not_override_request_headers(requests_mock):
    matcher = requests_mock.get(PROJECTS_ENDPOINT, text="ok")
    client = build_client(default_headers={"X-Trace": "1"})

    client.request("GET", "/gdc/projects", headers={"Accept": "text/plain"})

    assert matcher.last_request.headers["Accept"] == "text/plain"
    assert matcher.last_request.headers["X-Trace"] == "1"


def test_auth_host_is_taken_from_login_strategy():
    strategy = LoginSSTStrategy("user", "secret", auth_host=HttpHost("secure.gooddata.com"))

    client = GoodDataHttpClient(strategy)

    assert client.auth_host == HttpHost("secure.gooddata.com")


def test_auth_host_is_required_for_other_strategies():
    with pytest.raises(ValueError):
        GoodDataHttpClient(SimpleSSTStrategy("preissued"))


def test_refresh_is_logged(caplog, requests_mock):
    requests_mock.get(TOKEN_ENDPOINT, json=token_body("tt-1"))
    requests_mock.get(
        PROJECTS_ENDPOINT,
        [{"status_code": 401, "headers": TT_CHALLENGE}, {"status_code": 200, "json": {}}],
    )
    client = build_client(SimpleSSTStrategy("preissued"))

    with caplog.at_level("DEBUG", logger="gooddata_http.client"):
        client.request("GET", "/gdc/projects")

    assert "Obtaining TT" in caplog.text
    assert "GoodData tokens refreshed" in caplog.text


def test_deeply_nested_token_body_becomes_unauthorized_response(requests_mock):
    requests_mock.get(TOKEN_ENDPOINT, text='{"userToken":' + "[" * 200000)
    projects = requests_mock.get(PROJECTS_ENDPOINT, status_code=401, headers=TT_CHALLENGE)
    client = build_client(SimpleSSTStrategy("preissued"))

    response = client.request("GET", "/gdc/projects")

    assert response.status_code == 401
    assert "Malformed response body" in response.reason
    assert projects.call_count == 1


def test_caller_request_is_left_untouched(requests_mock):
    requests_mock.get(TOKEN_ENDPOINT, json=token_body("tt-1"))
    projects = requests_mock.get(
        PROJECTS_ENDPOINT,
        [{"status_code": 401, "headers": TT_CHALLENGE}, {"status_code": 200, "json": {}}],
    )
    client = build_client(SimpleSSTStrategy("preissued"))
    headers = {"X-Trace": "1"}
    request = requests.Request("GET", "/gdc/projects", headers=headers)

    response = client.execute(HttpHost("secure.gooddata.com"), request)

    assert response.status_code == 200
    assert projects.last_request.headers[TT_HEADER] == "tt-1"
    assert projects.last_request.headers["X-Trace"] == "1"
    assert request.headers is headers
    assert headers == {"X-Trace": "1"}
