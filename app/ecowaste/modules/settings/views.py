from __future__ import annotations

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.settings.service import (
    RATE_FIELDS,
    merge_settings,
    parse_settings_form,
    preview_bin_id,
    preview_device_id,
)
from app.ecowaste.rbac import require_role

bp = Blueprint("settings", __name__)


@bp.get("/settings")
@require_role("admin")
def index():
    try:
        stored = backend().settings.get().get("settings")
    except BackendError as e:
        # Defaults stay editable when the backend is down.
        current_app.logger.warning("Settings load failed, using defaults: %s", e.message)
        flash("Could not load saved settings; showing defaults.", "warning")
        stored = None
    settings = merge_settings(stored)
    counters = settings["idCounters"]
    return render_template(
        "admin/settings/index.html",
        settings=settings,
        rate_fields=RATE_FIELDS,
        next_bin_id=preview_bin_id(counters),
        next_device_id=preview_device_id(counters),
    )


@bp.post("/settings")
@require_role("admin")
def update():
    settings = parse_settings_form(request.form)
    try:
        backend().settings.update(settings)
    except BackendError as e:
        flash(e.message or "Failed to save settings", "danger")
        return redirect(url_for("settings.index"))
    current_app.logger.info("Settings updated by admin=%s", g.current_user.id)
    flash("Settings updated successfully!", "success")
    return redirect(url_for("settings.index"))
