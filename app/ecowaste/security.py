import hmac
import secrets

from flask import Request, session

# Login/registration may be posted before a session cookie exists.
CSRF_EXEMPT_ENDPOINTS = frozenset({"auth.login_post", "auth.register_post"})


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def _submitted_token(req: Request) -> str | None:
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    if not token and req.is_json:
        data = req.get_json(silent=True) or {}
        if isinstance(data, dict):
            token = data.get("csrf_token")
    return token


def validate_csrf(req: Request) -> bool:
    """Validate CSRF token from form, header, or JSON body."""
    expected = session.get("csrf_token")
    token = _submitted_token(req)
    if not token or not expected:
        return False
    return hmac.compare_digest(str(token), str(expected))


def csrf_exempt(endpoint: str | None) -> bool:
    return (endpoint or "") in CSRF_EXEMPT_ENDPOINTS
