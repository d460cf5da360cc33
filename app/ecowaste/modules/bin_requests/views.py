from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.bin_requests.service import (
    PRIORITIES,
    REQUEST_STATUSES,
    approval_defaults,
    build_approval_payload,
    build_request_payload,
    validate_approval,
    validate_rejection_reason,
    validate_request_payload,
)
from app.ecowaste.modules.waste_bins.service import CAPACITY_UNITS, DEVICE_TYPES, resolve_ids
from app.ecowaste.rbac import require_login, require_role
from app.ecowaste.utils import WASTE_TYPES, filter_by_status, normalize_text, status_counts

bp = Blueprint("bin_requests", __name__)


def _fetch_request(request_id: str) -> dict:
    try:
        bin_request = backend().bin_requests.get(request_id).get("request")
    except BackendError as e:
        if e.status == 404:
            abort(404)
        raise
    if not bin_request:
        abort(404)
    return bin_request


# ---------- List ----------
@bp.get("/bin-requests")
@require_role("resident", "business", "admin")
def requests_list():
    user = g.current_user
    status = normalize_text(request.args.get("status")) or "all"
    if status not in REQUEST_STATUSES:
        status = "all"

    params = {"limit": 100}
    if not user.is_admin:
        params["requester"] = user.id
    try:
        requests_ = backend().bin_requests.list(**params).get("requests") or []
    except BackendError as e:
        flash(f"Failed to load bin requests: {e.message}", "danger")
        requests_ = []

    return render_template(
        "admin/bin_requests/list.html",
        requests=filter_by_status(requests_, status),
        counts=status_counts(requests_, REQUEST_STATUSES),
        status=status,
        statuses=REQUEST_STATUSES,
        waste_types=WASTE_TYPES,
        priorities=PRIORITIES,
        capacity_units=CAPACITY_UNITS,
    )


@bp.post("/bin-requests")
@require_role("resident", "business")
def requests_create():
    payload = build_request_payload(request.form, contact_phone=g.current_user.phone)
    errors = validate_request_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("bin_requests.requests_list"))

    try:
        backend().bin_requests.create(payload)
    except BackendError as e:
        flash(e.message or "Failed to submit bin request", "danger")
        return redirect(url_for("bin_requests.requests_list"))

    flash("Bin request submitted successfully", "success")
    return redirect(url_for("bin_requests.requests_list", status="pending"))


# ---------- Detail ----------
@bp.get("/bin-requests/<request_id>")
@require_login
def request_detail(request_id: str):
    try:
        bin_request = _fetch_request(request_id)
    except BackendError as e:
        flash(f"Failed to load bin request: {e.message}", "danger")
        return redirect(url_for("bin_requests.requests_list"))
    return render_template("admin/bin_requests/detail.html", req=bin_request)


# ---------- Review ----------
@bp.get("/bin-requests/<request_id>/approve")
@require_role("admin")
def approve_get(request_id: str):
    api = backend()
    try:
        bin_request = _fetch_request(request_id)
    except BackendError as e:
        flash(f"Failed to load bin request: {e.message}", "danger")
        return redirect(url_for("bin_requests.requests_list"))
    try:
        next_ids = api.settings.preview_ids().get("nextIds") or {}
    except BackendError:
        next_ids = {}
    return render_template(
        "admin/bin_requests/approve.html",
        req=bin_request,
        form=approval_defaults(bin_request),
        next_ids=next_ids,
        waste_types=WASTE_TYPES,
        device_types=DEVICE_TYPES,
        capacity_units=CAPACITY_UNITS,
        priorities=PRIORITIES,
    )


@bp.post("/bin-requests/<request_id>/approve")
@require_role("admin")
def approve_post(request_id: str):
    api = backend()
    back = url_for("bin_requests.approve_get", request_id=request_id)

    # Always re-read: another admin may have reviewed it since the form loaded.
    try:
        bin_request = _fetch_request(request_id)
    except BackendError as e:
        flash(f"Failed to load bin request: {e.message}", "danger")
        return redirect(url_for("bin_requests.requests_list"))
    if bin_request.get("status") != "pending":
        flash("Request has already been reviewed.", "warning")
        return redirect(url_for("bin_requests.request_detail", request_id=request_id))

    payload = build_approval_payload(request.form, bin_request, "", "")
    errors = validate_approval(bin_request, payload, ids_required=False)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(back)

    try:
        bin_id, device_id = resolve_ids(api, request.form.get("binId"), request.form.get("deviceId"))
    except BackendError as e:
        flash(f"Failed to generate IDs: {e.message}", "danger")
        return redirect(back)

    payload.update(binId=bin_id, deviceId=device_id)
    errors = validate_approval(bin_request, payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(back)

    try:
        api.bin_requests.approve(request_id, payload)
    except BackendError as e:
        flash(e.message or "Failed to approve request", "danger")
        return redirect(back)

    current_app.logger.info("Bin request approved id=%s bin_id=%s by user=%s", request_id, bin_id, g.current_user.id)
    flash("Bin request approved successfully", "success")
    return redirect(url_for("bin_requests.requests_list"))


@bp.post("/bin-requests/<request_id>/reject")
@require_role("admin")
def reject(request_id: str):
    reason = normalize_text(request.form.get("reason"))
    errors = validate_rejection_reason(reason)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("bin_requests.request_detail", request_id=request_id))
    try:
        backend().bin_requests.reject(request_id, {"reviewNotes": reason})
    except BackendError as e:
        flash(e.message or "Failed to reject request", "danger")
        return redirect(url_for("bin_requests.request_detail", request_id=request_id))
    flash("Bin request rejected", "success")
    return redirect(url_for("bin_requests.requests_list"))


@bp.post("/bin-requests/<request_id>/complete")
@require_role("admin", "collector")
def complete(request_id: str):
    notes = normalize_text(request.form.get("notes"))
    try:
        backend().bin_requests.complete(request_id, {"notes": notes} if notes else None)
    except BackendError as e:
        flash(e.message or "Failed to complete request", "danger")
        return redirect(url_for("bin_requests.request_detail", request_id=request_id))
    flash("Bin request marked as completed", "success")
    return redirect(url_for("bin_requests.requests_list"))
