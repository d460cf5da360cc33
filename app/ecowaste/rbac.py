from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, current_app, g, redirect, request, url_for

from app.ecowaste.models import CurrentUser

ALL_ROLES = ("resident", "business", "collector", "admin")


def user_has_role(user: CurrentUser | None, *roles: str) -> bool:
    if not user or not user.is_active:
        return False
    return not roles or user.role in roles


def _login_redirect():
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return redirect(url_for("auth.login_get", next=nxt))


def require_role(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: CurrentUser | None = getattr(g, "current_user", None)
            # Unauthenticated → redirect to login
            if not user or not user.is_active:
                return _login_redirect()
            # Authenticated but wrong role → 403
            if not user_has_role(user, *roles):
                g.missing_role = ",".join(roles)
                current_app.logger.info("Role gate: user=%s role=%s needs=%s", user.id, user.role, g.missing_role)
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


require_login = require_role()


# ---------- Navigation ----------
NAVIGATION: list[dict[str, Any]] = [
    {"name": "Dashboard", "endpoint": "dashboard.index", "roles": ALL_ROLES},
    {"name": "Waste Bins", "endpoint": "waste_bins.bins_list", "roles": ALL_ROLES},
    {"name": "Bin Requests", "endpoint": "bin_requests.requests_list", "roles": ("resident", "business", "admin")},
    {
        "name": "Collections",
        "endpoint": "collections.collections_list",
        "roles": ("collector", "admin"),
        "sub_items": [
            {"name": "Collection Management", "endpoint": "collections.collections_list", "roles": ("collector", "admin")},
            {"name": "Routes", "endpoint": "collection_routes.routes_list", "roles": ("collector", "admin")},
            {"name": "Route Optimization", "endpoint": "collection_routes.optimization", "roles": ("collector", "admin")},
            {"name": "Collector Feedback", "endpoint": "collections.feedback", "roles": ("collector", "admin")},
        ],
    },
    {
        "name": "Payments",
        "endpoint": "payments.payments_list",
        "roles": ("resident", "business", "admin"),
        "sub_items": [
            {"name": "Payments", "endpoint": "payments.payments_list", "roles": ("resident", "business", "admin")},
            {"name": "PAYT Billing", "endpoint": "payments.payt_billing", "roles": ("resident", "business", "admin")},
            {"name": "Recycling Credits", "endpoint": "recycling_credits.overview", "roles": ("resident", "business", "admin")},
        ],
    },
    {
        "name": "Analytics",
        "endpoint": "analytics.index",
        "roles": ("admin",),
        "sub_items": [
            {"name": "System Analytics", "endpoint": "analytics.index", "roles": ("admin",)},
            {"name": "Environmental Impact", "endpoint": "analytics.environmental", "roles": ("admin",)},
        ],
    },
    {
        "name": "Users",
        "endpoint": "users.users_list",
        "roles": ("admin",),
        "sub_items": [
            {"name": "Users", "endpoint": "users.users_list", "roles": ("admin",)},
            {"name": "Trucks", "endpoint": "users.trucks_list", "roles": ("admin",)},
        ],
    },
    {"name": "Settings", "endpoint": "settings.index", "roles": ("admin",)},
]


def navigation_for(user: CurrentUser | None, navigation: list[dict[str, Any]] | None = None) -> list[dict[str, Any]]:
    """Menu entries visible to `user`; a parent with no visible children is dropped."""
    if not user:
        return []
    out: list[dict[str, Any]] = []
    for item in navigation if navigation is not None else NAVIGATION:
        if user.role not in item["roles"]:
            continue
        entry = {k: v for k, v in item.items() if k != "sub_items"}
        if "sub_items" in item:
            subs = [dict(s) for s in item["sub_items"] if user.role in s["roles"]]
            if not subs:
                continue
            entry["sub_items"] = subs
        out.append(entry)
    return out
