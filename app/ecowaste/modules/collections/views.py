from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, session, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.collections.service import (
    COLLECTION_PRIORITIES,
    COLLECTION_STATUSES,
    FEEDBACK_LANGUAGES,
    QUALITY_GRADES,
    VERIFICATION_METHODS,
    build_approval_payload,
    build_completion_payload,
    build_scan_result,
    build_schedule_payload,
    collection_summary,
    feedback_options,
    load_device_settings,
    parse_device_settings,
    todays_collections,
    validate_schedule_payload,
)
from app.ecowaste.rbac import require_role
from app.ecowaste.utils import WASTE_TYPES, filter_by_status, normalize_text, status_counts

bp = Blueprint("collections", __name__)


def _back():
    return redirect(url_for("collections.collections_list", status=request.args.get("status") or None))


def _collectors() -> list[dict]:
    try:
        return backend().users.list(userType="collector", limit=100).get("users") or []
    except BackendError:
        return []


# ---------- List ----------
@bp.get("/collections")
@require_role("collector", "admin")
def collections_list():
    user = g.current_user
    status = normalize_text(request.args.get("status")) or "all"
    if status not in COLLECTION_STATUSES:
        status = "all"

    params = {"limit": 100}
    if user.is_collector:
        params["collector"] = user.id
    try:
        collections = backend().collections.list(**params).get("collections") or []
    except BackendError as e:
        flash(f"Failed to load collections: {e.message}", "danger")
        collections = []

    bins: list[dict] = []
    collectors: list[dict] = []
    if user.is_admin:
        collectors = _collectors()
        try:
            bins = backend().waste_bins.list(limit=100).get("wasteBins") or []
        except BackendError:
            bins = []

    return render_template(
        "admin/collections/list.html",
        collections=filter_by_status(collections, status),
        today_collections=todays_collections(collections),
        counts=status_counts(collections, COLLECTION_STATUSES),
        summary=collection_summary(collections),
        status=status,
        statuses=COLLECTION_STATUSES,
        bins=bins,
        collectors=collectors,
        waste_types=WASTE_TYPES,
        priorities=COLLECTION_PRIORITIES,
        verification_methods=VERIFICATION_METHODS,
        quality_grades=QUALITY_GRADES,
    )


@bp.get("/collections/<collection_id>")
@require_role("collector", "admin")
def collection_detail(collection_id: str):
    try:
        collection = backend().collections.get(collection_id).get("collection")
    except BackendError as e:
        if e.status == 404:
            abort(404)
        flash(f"Failed to load collection: {e.message}", "danger")
        return _back()
    if not collection:
        abort(404)
    return render_template(
        "admin/collections/detail.html",
        collection=collection,
        collectors=_collectors() if g.current_user.is_admin else [],
        verification_methods=VERIFICATION_METHODS,
        quality_grades=QUALITY_GRADES,
    )


# ---------- Admin ----------
@bp.post("/collections/schedule")
@require_role("admin")
def schedule():
    payload = build_schedule_payload(request.form)
    errors = validate_schedule_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return _back()
    try:
        backend().collections.create(payload)
    except BackendError as e:
        flash(e.message or "Failed to schedule collection", "danger")
        return _back()
    flash("Collection scheduled successfully", "success")
    return redirect(url_for("collections.collections_list", status="scheduled"))


@bp.post("/collections/<collection_id>/approve")
@require_role("admin")
def approve(collection_id: str):
    payload, errors = build_approval_payload(request.form)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("collections.collection_detail", collection_id=collection_id))
    try:
        backend().collections.approve(collection_id, payload)
    except BackendError as e:
        flash(e.message or "Failed to approve collection", "danger")
        return redirect(url_for("collections.collection_detail", collection_id=collection_id))
    flash("Collection request approved and scheduled", "success")
    return _back()


@bp.post("/collections/<collection_id>/reject")
@require_role("admin")
def reject(collection_id: str):
    reason = normalize_text(request.form.get("reason"))
    if not reason:
        flash("Rejection reason is required.", "danger")
        return redirect(url_for("collections.collection_detail", collection_id=collection_id))
    try:
        backend().collections.reject(collection_id, reason)
    except BackendError as e:
        flash(e.message or "Failed to reject collection", "danger")
        return _back()
    flash("Collection request rejected", "success")
    return _back()


# ---------- Collector ----------
@bp.post("/collections/<collection_id>/start")
@require_role("collector")
def start(collection_id: str):
    try:
        backend().collections.start(collection_id)
    except BackendError as e:
        flash(e.message or "Failed to start collection", "danger")
        return _back()
    flash("Collection started", "success")
    return _back()


@bp.post("/collections/<collection_id>/complete")
@require_role("collector")
def complete(collection_id: str):
    payload, errors = build_completion_payload(request.form)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("collections.collection_detail", collection_id=collection_id))
    try:
        backend().collections.complete(collection_id, payload)
    except BackendError as e:
        flash(e.message or "Failed to complete collection", "danger")
        return _back()
    current_app.logger.info("Collection completed id=%s by collector=%s", collection_id, g.current_user.id)
    flash("Collection completed successfully", "success")
    return _back()


@bp.post("/collections/<collection_id>/miss")
@require_role("collector")
def miss(collection_id: str):
    reason = normalize_text(request.form.get("reason"))
    if not reason:
        flash("A reason is required to mark a collection as missed.", "danger")
        return _back()
    try:
        backend().collections.miss(collection_id, reason)
    except BackendError as e:
        flash(e.message or "Failed to mark collection as missed", "danger")
        return _back()
    flash("Collection marked as missed", "success")
    return _back()


# ---------- Collector feedback ----------
def _feedback_page(feedback: dict | None = None, status_code: int = 200):
    user = g.current_user
    params = {"status": ["scheduled", "in_progress"], "limit": 50}
    if user.is_collector:
        params["collector"] = user.id
    try:
        collections = backend().collections.list(**params).get("collections") or []
    except BackendError as e:
        flash(f"Failed to load collections: {e.message}", "danger")
        collections = []
    return (
        render_template(
            "admin/collections/feedback.html",
            collections=collections,
            settings=load_device_settings(session.get("device_settings")),
            languages=FEEDBACK_LANGUAGES,
            feedback=feedback,
        ),
        status_code,
    )


@bp.get("/collector-feedback")
@require_role("collector", "admin")
def feedback():
    return _feedback_page()


@bp.post("/collector-feedback/scan")
@require_role("collector", "admin")
def feedback_scan():
    collection_id = normalize_text(request.form.get("collection_id"))
    if not collection_id:
        flash("Select a collection to scan.", "danger")
        return redirect(url_for("collections.feedback"))

    success = (request.form.get("outcome") or "success") == "success"
    settings = load_device_settings(session.get("device_settings"))
    scan_result = build_scan_result(success, device_id=g.current_user.device_id)
    try:
        result = backend().feedback.generate(collection_id, scan_result, feedback_options(settings))
    except BackendError as e:
        flash(e.message or "Scan failed", "danger")
        return redirect(url_for("collections.feedback"))
    return _feedback_page(feedback=result)


@bp.post("/collector-feedback/settings")
@require_role("collector", "admin")
def feedback_settings():
    user = g.current_user
    settings = parse_device_settings(request.form, session.get("device_settings"))
    session["device_settings"] = settings

    if user.device_id:
        try:
            backend().feedback.update_device_settings(user.device_id, settings)
        except BackendError as e:
            flash(f"Settings saved locally but failed to sync: {e.message}", "warning")
            return redirect(url_for("collections.feedback"))

    flash("Settings saved successfully", "success")
    return redirect(url_for("collections.feedback"))
