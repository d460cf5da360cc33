from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for

from app.ecowaste.backend import BackendError, BackendFailure, backend
from app.ecowaste.models import CUSTOMER_ROLES, CurrentUser
from app.ecowaste.rbac import require_login
from app.ecowaste.utils import DEFAULT_COORDINATES, coordinates_from_form, nest_form, normalize_text

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds
_MIN_PASSWORD_LENGTH = 6


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def _safe_next(nxt: str) -> str | None:
    # Only local paths, to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


def load_current_user() -> None:
    """
    Loads g.current_user from the token + cached user held in the session.
    Also assigns a simple per-request request_id (for log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    if not session.get("token"):
        g.current_user = None
        return
    user = CurrentUser.from_payload(session.get("user"))
    if user is None:
        clear_auth_session()
        g.current_user = None
        return
    g.current_user = user


def store_auth_session(token: str, user: dict[str, Any]) -> None:
    session["token"] = token
    session["user"] = user
    session.permanent = True


def clear_auth_session() -> None:
    for key in ("token", "user", "device_settings"):
        session.pop(key, None)
    g.pop("backend", None)


def update_session_user(changes: dict[str, Any]) -> None:
    """Merge changes into the cached user, as a profile edit would."""
    user = dict(session.get("user") or {})
    user.update(changes)
    session["user"] = user


def refresh_current_user() -> CurrentUser | None:
    """Re-read /auth/me into the session."""
    data = backend().auth.me()
    payload = data.get("user") or {}
    if payload:
        session["user"] = payload
    g.current_user = CurrentUser.from_payload(session.get("user"))
    return g.current_user


def _redirect_if_signed_in():
    if getattr(g, "current_user", None):
        return redirect(url_for("dashboard.index"))
    return None


# ---------- Login ----------
@bp.get("/login")
def login_get():
    signed_in = _redirect_if_signed_in()
    if signed_in:
        return signed_in
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))

    _record_attempt(ip)

    if not email or not password:
        flash("Email and password are required.", "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))

    try:
        data = backend(token="").auth.login(email, password)
    except BackendFailure as e:
        current_app.logger.info("Login failed (email=%s request_id=%s): %s", email, getattr(g, "request_id", None), e.message)
        flash(e.message if e.status else "Login failed", "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))

    token, user = data.get("token"), data.get("user")
    if not token or not CurrentUser.from_payload(user):
        flash("Login failed", "danger")
        return redirect(url_for("auth.login_get"))

    store_auth_session(token, user)
    _login_attempts[ip].clear()
    flash("Login successful!", "success")
    return redirect(_safe_next(nxt) or url_for("dashboard.index"))


# ---------- Registration ----------
def _location_choices(district: str) -> tuple[list, list]:
    api = backend(token="")
    try:
        districts = api.locations.districts().get("districts") or []
    except BackendError:
        districts = []
    try:
        cities = api.locations.cities(district).get("cities") or []
    except BackendError:
        cities = []
    return districts, cities


def build_registration_payload(form) -> dict[str, Any]:
    """Nested payload for /auth/register from the flat registration form."""
    data = nest_form(form)
    address = data.get("address") or {}
    return {
        "name": normalize_text(data.get("name")),
        "email": normalize_text(data.get("email")).lower(),
        "password": form.get("password") or "",
        "phone": normalize_text(data.get("phone")),
        "userType": normalize_text(data.get("userType")) or "resident",
        "address": {
            "street": normalize_text(address.get("street")),
            "city": normalize_text(address.get("city")),
            "district": normalize_text(address.get("district")) or "colombo",
            "postalCode": normalize_text(address.get("postalCode")),
            "coordinates": coordinates_from_form(form),
        },
    }


def validate_registration_payload(payload: dict[str, Any]) -> list[str]:
    errors = []
    for key, label in (("name", "Name"), ("email", "Email"), ("password", "Password"), ("phone", "Phone")):
        if not payload.get(key):
            errors.append(f"{label} is required.")
    if payload.get("password") and len(payload["password"]) < _MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
    if payload.get("userType") not in CUSTOMER_ROLES:
        errors.append("Account type must be resident or business.")
    return errors


@bp.get("/register")
def register_get():
    signed_in = _redirect_if_signed_in()
    if signed_in:
        return signed_in
    district = (request.args.get("district") or "colombo").strip()
    districts, cities = _location_choices(district)
    return render_template(
        "auth/register.html",
        districts=districts,
        cities=cities,
        district=district,
        default_coordinates=DEFAULT_COORDINATES,
    )


@bp.post("/register")
def register_post():
    payload = build_registration_payload(request.form)
    errors = validate_registration_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("auth.register_get"))

    try:
        data = backend(token="").auth.register(payload)
    except BackendFailure as e:
        flash(e.message if e.status else "Registration failed", "danger")
        return redirect(url_for("auth.register_get"))

    token, user = data.get("token"), data.get("user")
    if not token or not CurrentUser.from_payload(user):
        flash("Registration failed", "danger")
        return redirect(url_for("auth.register_get"))

    store_auth_session(token, user)
    flash("Registration successful!", "success")
    return redirect(url_for("dashboard.index"))


# ---------- Logout ----------
@bp.get("/logout")
def logout():
    if session.get("token"):
        try:
            backend().auth.logout()
        except BackendFailure as e:
            # The session is dropped regardless.
            current_app.logger.info("Backend logout failed (request_id=%s): %s", getattr(g, "request_id", None), e.message)
    clear_auth_session()
    flash("Logged out successfully", "success")
    return redirect(url_for("routes.index"))


# ---------- Password ----------
@bp.post("/change-password")
@require_login
def change_password():
    current = request.form.get("current_password") or ""
    new = request.form.get("new_password") or ""
    confirm = request.form.get("confirm_password") or ""

    errors = []
    if not current or not new:
        errors.append("Current and new password are required.")
    if new != confirm:
        errors.append("New passwords do not match.")
    if new and len(new) < _MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("profile.index"))

    try:
        backend().auth.change_password({"currentPassword": current, "newPassword": new})
    except BackendError as e:
        flash(e.message or "Password change failed", "danger")
        return redirect(url_for("profile.index"))

    flash("Password changed successfully", "success")
    return redirect(url_for("profile.index"))
