from __future__ import annotations

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.dashboard.service import (
    SPECIAL_COLLECTION_TYPES,
    admin_overview,
    build_special_collection,
    empty_overview,
    member_overview,
    validate_special_collection_payload,
)
from app.ecowaste.rbac import require_login, require_role
from app.ecowaste.utils import normalize_text

bp = Blueprint("dashboard", __name__)


@bp.get("/dashboard")
@require_login
def index():
    user = g.current_user
    api = backend()
    try:
        if user.is_admin:
            overview = admin_overview(api.waste_bins.stats(), api.collections.stats(), api.users.stats())
        else:
            overview = member_overview(
                api.waste_bins.list(owner=user.id),
                api.collections.list(limit=5),
            )
    except BackendError as e:
        current_app.logger.warning("Dashboard load failed (user=%s): %s", user.id, e.message)
        flash(f"Failed to load dashboard data: {e.message}", "danger")
        overview = empty_overview(user.is_admin)

    return render_template(
        "admin/dashboard/index.html",
        overview=overview,
        special_types=SPECIAL_COLLECTION_TYPES,
    )


@bp.post("/dashboard/special-collection")
@require_role("resident", "business")
def special_collection():
    user = g.current_user
    payload = {
        "wasteBin": request.form.get("wasteBin"),
        "collectionType": request.form.get("collectionType"),
        "description": request.form.get("description"),
        "preferredDate": request.form.get("preferredDate"),
        "contactPhone": request.form.get("contactPhone") or user.phone,
    }
    errors = validate_special_collection_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("dashboard.index"))

    api = backend()
    try:
        waste_bin = api.waste_bins.get(normalize_text(payload["wasteBin"])).get("wasteBin") or {}
        if not waste_bin:
            flash("Waste bin not found.", "danger")
            return redirect(url_for("dashboard.index"))
        api.collections.create(build_special_collection(payload, user.id, waste_bin))
    except BackendError as e:
        flash(e.message or "Failed to schedule special collection", "danger")
        return redirect(url_for("dashboard.index"))

    flash(f"Special collection for {payload['collectionType']} scheduled for {payload['preferredDate']}", "success")
    return redirect(url_for("dashboard.index"))
