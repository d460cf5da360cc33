import json as jsonlib
from dataclasses import dataclass
from typing import Any

import pytest

from app.ecowaste import create_app
from app.ecowaste import auth as auth_module

API_BASE = "http://backend.test/api"
CSRF = "test-csrf-token"

USERS = {
    "admin": {
        "_id": "u-admin",
        "name": "Ada Admin",
        "email": "admin@example.com",
        "userType": "admin",
        "phone": "0770000001",
        "address": {"street": "1 Main St", "city": "Colombo", "district": "colombo"},
    },
    "resident": {
        "_id": "u-res",
        "name": "Rita Resident",
        "email": "rita@example.com",
        "userType": "resident",
        "phone": "0770000002",
        "address": {"street": "2 Lake Rd", "city": "Kandy", "district": "kandy"},
    },
    "business": {
        "_id": "u-biz",
        "name": "Bay Foods",
        "email": "bay@example.com",
        "userType": "business",
        "phone": "0770000003",
        "address": {"street": "3 Harbour Rd", "city": "Galle", "district": "galle"},
    },
    "collector": {
        "_id": "u-col",
        "name": "Cole Collector",
        "email": "cole@example.com",
        "userType": "collector",
        "phone": "0770000004",
        "deviceId": "DEV-SNS-007",
        "address": {"city": "Colombo", "district": "colombo"},
        "collectorInfo": {"assignedTruck": "t-1", "assignedRoutes": ["r-1"]},
    },
}


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None):
        self.status_code = status_code
        self.content = b"" if payload is None else jsonlib.dumps(payload).encode("utf-8")

    def json(self):
        return jsonlib.loads(self.content)


@dataclass
class Call:
    method: str
    path: str
    params: dict | None
    json: Any
    headers: dict


class FakeBackendSession:
    """
    Stands in for requests.Session. Answers are registered per (method, path);
    anything unregistered gets a 404 so a missing stub shows up as a flashed
    backend error rather than a network call.
    """

    def __init__(self, base_url: str = API_BASE):
        self.base_url = base_url
        self.answers: dict[tuple[str, str], Any] = {}
        self.calls: list[Call] = []

    def on(self, method: str, path: str, payload: Any = None, status: int = 200, raises: Exception | None = None):
        self.answers[(method.upper(), path)] = raises if raises is not None else FakeResponse(status, payload)
        return self

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = url[len(self.base_url):] if url.startswith(self.base_url) else url
        self.calls.append(Call(method, path, params, json, dict(headers or {})))
        answer = self.answers.get((method, path))
        if answer is None:
            return FakeResponse(404, {"error": f"No stub for {method} {path}"})
        if isinstance(answer, Exception):
            raise answer
        return answer

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [c for c in self.calls if c.method == method.upper() and c.path == path]


@pytest.fixture(autouse=True)
def _reset_login_attempts():
    auth_module._login_attempts.clear()
    yield
    auth_module._login_attempts.clear()


@pytest.fixture()
def app(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("API_BASE_URL", API_BASE)
    monkeypatch.setenv("PAYHERE_SANDBOX", "true")
    monkeypatch.setenv("PAYHERE_MERCHANT_ID", "1221149")
    monkeypatch.delenv("PAYHERE_NOTIFY_URL", raising=False)
    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def fake_session():
    return FakeBackendSession()


@pytest.fixture()
def fake_backend(app, fake_session):
    fake = fake_session
    app.extensions["backend_http"] = fake
    return fake


@pytest.fixture()
def client(app, fake_backend):
    return app.test_client()


def login_as(client, role: str, **overrides) -> dict:
    """Seed the session the way a successful /auth/login would."""
    user = {**USERS[role], **overrides}
    with client.session_transaction() as sess:
        sess["token"] = f"token-{role}"
        sess["user"] = user
        sess["csrf_token"] = CSRF
    return user


def flashes(client) -> list[tuple[str, str]]:
    with client.session_transaction() as sess:
        return list(sess.get("_flashes", []))


@pytest.fixture()
def login(client):
    def _login(role: str, **overrides) -> dict:
        return login_as(client, role, **overrides)

    return _login


@pytest.fixture()
def csrf() -> str:
    return CSRF


@pytest.fixture()
def flashed(client):
    def _flashed() -> list[tuple[str, str]]:
        return flashes(client)

    return _flashed
