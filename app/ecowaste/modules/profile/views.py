from __future__ import annotations

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for

from app.ecowaste.auth import refresh_current_user, update_session_user
from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.profile.service import (
    assigned_route_ids,
    assigned_truck_id,
    build_profile_payload,
    validate_profile_payload,
)
from app.ecowaste.rbac import require_login
from app.ecowaste.utils import DEFAULT_COORDINATES

bp = Blueprint("profile", __name__)


def _collector_assets(user) -> tuple[dict | None, list[dict]]:
    api = backend()
    truck = None
    routes: list[dict] = []
    truck_id = assigned_truck_id(user)
    try:
        if truck_id:
            truck = api.trucks.get(truck_id).get("truck")
        for route_id in assigned_route_ids(user):
            route = api.routes.get(route_id).get("route")
            if route:
                routes.append(route)
    except BackendError as e:
        current_app.logger.info("Collector assets unavailable (user=%s): %s", user.id, e.message)
    return truck, routes


@bp.get("/profile")
@require_login
def index():
    try:
        user = refresh_current_user() or g.current_user
    except BackendError as e:
        flash(f"Failed to refresh profile: {e.message}", "warning")
        user = g.current_user

    truck, routes = _collector_assets(user) if user.is_collector else (None, [])
    try:
        districts = backend().locations.districts().get("districts") or []
    except BackendError:
        districts = []
    return render_template(
        "admin/profile/index.html",
        user=user,
        truck=truck,
        routes=routes,
        districts=districts,
        default_coordinates=DEFAULT_COORDINATES,
    )


@bp.post("/profile")
@require_login
def update():
    user = g.current_user
    payload = build_profile_payload(request.form, user)
    errors = validate_profile_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("profile.index"))

    try:
        data = backend().users.update(user.id, payload)
    except BackendError as e:
        flash(e.message or "Failed to update profile. Please try again.", "danger")
        return redirect(url_for("profile.index"))

    update_session_user(data.get("user") or payload)
    flash("Profile updated successfully!", "success")
    return redirect(url_for("profile.index"))
