from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import requests

logger = logging.getLogger(__name__)


class BackendFailure(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None, payload: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload or {}


class BackendError(BackendFailure):
    """Any non-2xx answer other than 401. Views catch this and flash it."""


class BackendUnauthorized(BackendFailure):
    """
    401 from the backend: the bearer token is missing, invalid or expired.
    Deliberately not a BackendError so it reaches the app-level handler.
    """


class BackendUnavailable(BackendError):
    """Connection refused, DNS failure or timeout talking to the backend."""


def error_message(payload: Any, status: int | None) -> str:
    """
    Validation failures answer `{"error": "Validation failed", "details":
    [{"field", "message"}]}`; the field messages replace the generic error.
    """
    if isinstance(payload, dict):
        details = payload.get("details")
        if isinstance(details, list):
            messages = []
            for item in details:
                msg = item.get("message") if isinstance(item, dict) else None
                if isinstance(msg, str) and msg.strip() and msg.strip() not in messages:
                    messages.append(msg.strip())
            if messages:
                return "; ".join(messages)
        for key in ("error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return f"HTTP {status}" if status else "Backend request failed"


@dataclass
class BackendClient:
    base_url: str
    token: str | None = None
    timeout_seconds: float = 15.0
    session: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        url = self.base_url.rstrip("/") + "/" + path.lstrip("/")
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ""}

        started = time.monotonic()
        try:
            resp = self.session.request(
                method.upper(),
                url,
                params=params or None,
                json=json,
                headers=self._headers(),
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("Backend %s %s unreachable: %s", method.upper(), path, e)
            raise BackendUnavailable("Backend unavailable. Please try again later.") from e

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.debug("Backend %s %s -> %s (%sms)", method.upper(), path, resp.status_code, elapsed_ms)

        payload: Any = None
        if resp.content:
            try:
                payload = resp.json()
            except ValueError:
                payload = None

        if resp.status_code == 401:
            raise BackendUnauthorized(error_message(payload, 401), status=401, payload=payload if isinstance(payload, dict) else None)

        if resp.status_code >= 400:
            message = error_message(payload, resp.status_code)
            logger.warning("Backend %s %s failed: HTTP %s %s", method.upper(), path, resp.status_code, message)
            raise BackendError(message, status=resp.status_code, payload=payload if isinstance(payload, dict) else None)

        if not resp.content:
            return {}
        if payload is None:
            raise BackendError(f"Invalid JSON from backend ({path})", status=resp.status_code)
        if isinstance(payload, list):
            return {"items": payload}
        return payload

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request_json("GET", path, params=params)

    def post(self, path: str, json: Any = None, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request_json("POST", path, json=json if json is not None else {}, params=params)

    def put(self, path: str, json: Any = None) -> dict[str, Any]:
        return self.request_json("PUT", path, json=json if json is not None else {})

    def patch(self, path: str, json: Any = None) -> dict[str, Any]:
        return self.request_json("PATCH", path, json=json if json is not None else {})

    def delete(self, path: str) -> dict[str, Any]:
        return self.request_json("DELETE", path)
