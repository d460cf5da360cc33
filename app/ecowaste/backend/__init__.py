"""
REST backend access.

Views never talk HTTP directly: they call `backend()` and use the endpoint
groups on the returned object. The client is bound to the bearer token held in
the signed session cookie.
"""
from __future__ import annotations

import requests
from flask import Flask, current_app, g, session

from app.ecowaste.backend.client import BackendClient, BackendError, BackendFailure, BackendUnauthorized, BackendUnavailable
from app.ecowaste.backend.endpoints import Backend

__all__ = [
    "Backend",
    "BackendClient",
    "BackendError",
    "BackendFailure",
    "BackendUnauthorized",
    "BackendUnavailable",
    "backend",
    "init_backend",
]


def init_backend(app: Flask) -> None:
    # One pooled HTTP session per process; tests swap it for a fake.
    app.extensions.setdefault("backend_http", requests.Session())


def backend(token: str | None = None) -> Backend:
    """
    Request-scoped backend accessor. Pass `token` explicitly right after login,
    before the session has been written.
    """
    if token is None and getattr(g, "backend", None) is not None:
        return g.backend
    app = current_app
    client = BackendClient(
        base_url=app.config["API_BASE_URL"],
        token=token if token is not None else session.get("token"),
        timeout_seconds=float(app.config.get("API_TIMEOUT_SECONDS") or 15),
        session=app.extensions["backend_http"],
    )
    api = Backend(client)
    if token is None:
        g.backend = api
    return api
