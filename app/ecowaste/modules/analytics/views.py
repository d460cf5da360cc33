from __future__ import annotations

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, send_file, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.analytics.service import (
    IMPACT_PERIODS,
    IMPACT_SCOPES,
    REPORT_TYPES,
    build_report_request,
    impact_filename,
    json_attachment,
    normalize_impact_period,
    normalize_scope,
    report_filename,
    scope_id_for,
)
from app.ecowaste.rbac import require_role

bp = Blueprint("analytics", __name__)


# ---------- System analytics ----------
@bp.get("/analytics")
@require_role("admin")
def index():
    api = backend()
    try:
        analytics = {
            "collections": api.collections.stats(),
            "bins": api.waste_bins.stats(),
            "users": api.users.stats(),
        }
    except BackendError as e:
        flash(f"Failed to load analytics data: {e.message}", "danger")
        analytics = {"collections": {}, "bins": {}, "users": {}}
    return render_template("admin/analytics/index.html", analytics=analytics, report_types=REPORT_TYPES)


@bp.post("/analytics/report")
@require_role("admin")
def report():
    body, errors = build_report_request(request.form)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("analytics.index"))
    try:
        data = backend().analytics.generate(body)
    except BackendError as e:
        flash(e.message or "Failed to generate report", "danger")
        return redirect(url_for("analytics.index"))

    current_app.logger.info("Analytics report generated type=%s by admin=%s", body["type"], g.current_user.id)
    return send_file(
        json_attachment(data),
        mimetype="application/json",
        as_attachment=True,
        download_name=report_filename(body["type"]),
        max_age=0,
    )


# ---------- Environmental impact ----------
@bp.get("/environmental")
@require_role("admin")
def environmental():
    user = g.current_user
    scope = normalize_scope(request.args.get("scope"))
    period = normalize_impact_period(request.args.get("period"))
    scope_id = scope_id_for(scope, user)
    api = backend().environmental
    try:
        if scope == "user":
            impact = api.user_impact(user.id, period)
        elif scope == "district":
            impact = api.district_impact(scope_id, period)
        else:
            impact = api.system_impact(period)
        metrics = api.sustainability(scope, scope_id)
    except BackendError as e:
        flash(f"Failed to load environmental data: {e.message}", "danger")
        impact, metrics = {}, {}
    return render_template(
        "admin/analytics/environmental.html",
        impact=impact,
        metrics=metrics,
        scope=scope,
        period=period,
        scopes=IMPACT_SCOPES,
        periods=IMPACT_PERIODS,
    )


@bp.post("/environmental/report")
@require_role("admin")
def environmental_report():
    scope = normalize_scope(request.form.get("scope"))
    period = normalize_impact_period(request.form.get("period"))
    try:
        data = backend().environmental.report(scope, scope_id_for(scope, g.current_user), period)
    except BackendError as e:
        flash(e.message or "Failed to generate environmental report", "danger")
        return redirect(url_for("analytics.environmental", scope=scope, period=period))
    return send_file(
        json_attachment(data),
        mimetype="application/json",
        as_attachment=True,
        download_name=impact_filename(scope, period),
        max_age=0,
    )
