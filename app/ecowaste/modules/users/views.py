from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.models import ACCOUNT_STATUSES, ROLES
from app.ecowaste.modules.users.service import (
    ENGINE_TYPES,
    ROLE_FILTERS,
    SPECIALIZATIONS,
    TRUCK_CAPACITY_UNITS,
    TRUCK_VEHICLE_TYPES,
    USERS_PER_PAGE,
    build_truck_payload,
    build_user_payload,
    validate_status,
    validate_truck_payload,
    validate_user_payload,
)
from app.ecowaste.rbac import require_role
from app.ecowaste.utils import DAYS_OF_WEEK, DEFAULT_COORDINATES, dig, normalize_text, parse_int

bp = Blueprint("users", __name__)


# ---------- List ----------
@bp.get("/users")
@require_role("admin")
def users_list():
    search = normalize_text(request.args.get("q"))
    role = normalize_text(request.args.get("role")) or "all"
    if role not in ROLE_FILTERS:
        role = "all"
    page = max(parse_int(request.args.get("page"), 1) or 1, 1)
    try:
        data = backend().users.list(
            page=page,
            limit=USERS_PER_PAGE,
            search=search,
            userType=None if role == "all" else role,
        )
    except BackendError as e:
        flash(f"Failed to load users: {e.message}", "danger")
        data = {}
    users = data.get("users") or []
    return render_template(
        "admin/users/list.html",
        users=users,
        pagination=data.get("pagination") or {"currentPage": page, "totalPages": 1, "totalUsers": len(users)},
        search=search,
        role=role,
        roles=ROLE_FILTERS,
        statuses=ACCOUNT_STATUSES,
    )


# ---------- New ----------
@bp.get("/users/new")
@require_role("admin")
def users_new_get():
    api = backend()
    district = normalize_text(request.args.get("district")) or "colombo"
    try:
        districts = api.locations.districts().get("districts") or []
        cities = api.locations.cities(district).get("cities") or []
        trucks = api.trucks.available().get("trucks") or []
    except BackendError as e:
        flash(f"Failed to load form data: {e.message}", "danger")
        districts, cities, trucks = [], [], []
    return render_template(
        "admin/users/new.html",
        district=district,
        districts=districts,
        cities=cities,
        trucks=trucks,
        roles=ROLES,
        days=DAYS_OF_WEEK,
        specializations=SPECIALIZATIONS,
        default_coordinates=DEFAULT_COORDINATES,
    )


@bp.post("/users/new")
@require_role("admin")
def users_new_post():
    payload = build_user_payload(request.form)
    errors = validate_user_payload(payload, request.form.get("confirmPassword"))
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("users.users_new_get"))

    api = backend()
    try:
        data = api.users.create(payload)
    except BackendError as e:
        flash(e.message or "Failed to create user", "danger")
        return redirect(url_for("users.users_new_get"))

    user_id = dig(data, "user._id")
    truck_id = dig(payload, "collectorInfo.assignedTruck")
    if payload["userType"] == "collector" and truck_id and user_id:
        try:
            api.trucks.assign(truck_id, user_id)
        except BackendError as e:
            current_app.logger.warning("Truck assignment failed truck=%s collector=%s: %s", truck_id, user_id, e.message)
            flash("User created but truck assignment failed", "warning")

    current_app.logger.info("User created type=%s id=%s by admin=%s", payload["userType"], user_id, g.current_user.id)
    flash(f"{payload['userType']} added successfully!", "success")
    if user_id:
        return redirect(url_for("users.user_detail", user_id=user_id))
    return redirect(url_for("users.users_list"))


# ---------- Detail ----------
@bp.get("/users/<user_id>")
@require_role("admin")
def user_detail(user_id: str):
    try:
        user = backend().users.get(user_id).get("user")
    except BackendError as e:
        if e.status == 404:
            abort(404)
        flash(f"Failed to load user: {e.message}", "danger")
        return redirect(url_for("users.users_list"))
    if not user:
        abort(404)
    return render_template("admin/users/detail.html", user=user, statuses=ACCOUNT_STATUSES)


@bp.post("/users/<user_id>/status")
@require_role("admin")
def user_status(user_id: str):
    status = normalize_text(request.form.get("accountStatus"))
    errors = validate_status(status)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("users.user_detail", user_id=user_id))
    try:
        backend().users.update_status(user_id, status)
    except BackendError as e:
        flash(e.message or "Failed to update user status", "danger")
        return redirect(url_for("users.user_detail", user_id=user_id))
    flash(f"User status updated to {status}", "success")
    return redirect(url_for("users.users_list"))


@bp.post("/users/<user_id>/delete")
@require_role("admin")
def user_delete(user_id: str):
    if user_id == g.current_user.id:
        flash("You cannot delete your own account.", "danger")
        return redirect(url_for("users.user_detail", user_id=user_id))
    try:
        backend().users.delete(user_id)
    except BackendError as e:
        flash(e.message or "Failed to delete user", "danger")
        return redirect(url_for("users.user_detail", user_id=user_id))
    current_app.logger.info("User deleted id=%s by admin=%s", user_id, g.current_user.id)
    flash("User deleted successfully", "success")
    return redirect(url_for("users.users_list"))


# ---------- Trucks ----------
@bp.get("/trucks")
@require_role("admin")
def trucks_list():
    try:
        trucks = backend().trucks.list().get("trucks") or []
    except BackendError as e:
        flash(f"Failed to load trucks: {e.message}", "danger")
        trucks = []
    return render_template(
        "admin/users/trucks.html",
        trucks=trucks,
        vehicle_types=TRUCK_VEHICLE_TYPES,
        capacity_units=TRUCK_CAPACITY_UNITS,
        engine_types=ENGINE_TYPES,
    )


@bp.post("/trucks/new")
@require_role("admin")
def trucks_new_post():
    payload = build_truck_payload(request.form)
    errors = validate_truck_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("users.trucks_list"))
    try:
        backend().trucks.create(payload)
    except BackendError as e:
        flash(e.message or "Failed to add truck", "danger")
        return redirect(url_for("users.trucks_list"))
    flash("Truck added successfully!", "success")
    return redirect(url_for("users.trucks_list"))
