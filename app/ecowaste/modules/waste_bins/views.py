from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.dashboard.service import (
    SPECIAL_COLLECTION_TYPES,
    build_special_collection,
    validate_special_collection_payload,
)
from app.ecowaste.modules.waste_bins.service import (
    CAPACITY_UNITS,
    DEVICE_TYPES,
    bin_summary,
    build_bin_payload,
    resolve_ids,
    validate_bin_payload,
)
from app.ecowaste.rbac import require_login, require_role
from app.ecowaste.utils import WASTE_TYPES, normalize_text

bp = Blueprint("waste_bins", __name__)


# ---------- List ----------
@bp.get("/waste-bins")
@require_login
def bins_list():
    user = g.current_user
    bin_type = normalize_text(request.args.get("binType"))
    status = normalize_text(request.args.get("status"))

    params = {"binType": bin_type, "status": status}
    # Collectors and admins work across all bins.
    if user.is_customer:
        params["owner"] = user.id

    try:
        bins = backend().waste_bins.list(**params).get("wasteBins") or []
    except BackendError as e:
        flash(f"Failed to load waste bins: {e.message}", "danger")
        bins = []

    return render_template(
        "admin/waste_bins/list.html",
        bins=bins,
        summary=bin_summary(bins),
        bin_type=bin_type,
        status=status,
        waste_types=WASTE_TYPES,
        special_types=SPECIAL_COLLECTION_TYPES,
    )


# ---------- New ----------
def _owner_choices() -> list[dict]:
    try:
        return backend().users.list(limit=100).get("users") or []
    except BackendError:
        return []


@bp.get("/waste-bins/new")
@require_role("admin")
def bins_new_get():
    try:
        next_ids = backend().settings.preview_ids().get("nextIds") or {}
    except BackendError:
        next_ids = {}
    return render_template(
        "admin/waste_bins/new.html",
        owners=_owner_choices(),
        next_ids=next_ids,
        device_types=DEVICE_TYPES,
        waste_types=WASTE_TYPES,
        capacity_units=CAPACITY_UNITS,
    )


@bp.post("/waste-bins/new")
@require_role("admin")
def bins_new_post():
    api = backend()
    owner = normalize_text(request.form.get("owner"))
    payload = build_bin_payload(request.form, "", "", owner)
    errors = validate_bin_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("waste_bins.bins_new_get"))

    # Generating IDs advances the backend counters, so only a valid form gets here.
    try:
        bin_id, device_id = resolve_ids(api, request.form.get("binId"), request.form.get("deviceId"))
    except BackendError as e:
        flash(f"Failed to generate IDs: {e.message}", "danger")
        return redirect(url_for("waste_bins.bins_new_get"))
    if not bin_id or not device_id:
        flash("Bin ID and device ID are required.", "danger")
        return redirect(url_for("waste_bins.bins_new_get"))
    payload.update(binId=bin_id, deviceId=device_id)

    try:
        data = api.waste_bins.create(payload)
    except BackendError as e:
        flash(e.message or "Failed to create waste bin", "danger")
        return redirect(url_for("waste_bins.bins_new_get"))

    current_app.logger.info("Waste bin created bin_id=%s by user=%s", bin_id, g.current_user.id)
    flash(f"Waste bin {bin_id} created.", "success")
    created = data.get("wasteBin") or {}
    if created.get("_id"):
        return redirect(url_for("waste_bins.bin_detail", bin_id=created["_id"]))
    return redirect(url_for("waste_bins.bins_list"))


# ---------- Detail ----------
@bp.get("/waste-bins/<bin_id>")
@require_login
def bin_detail(bin_id: str):
    try:
        waste_bin = backend().waste_bins.get(bin_id).get("wasteBin")
    except BackendError as e:
        if e.status == 404:
            abort(404)
        flash(f"Failed to load waste bin: {e.message}", "danger")
        return redirect(url_for("waste_bins.bins_list"))
    if not waste_bin:
        abort(404)
    return render_template("admin/waste_bins/detail.html", bin=waste_bin, special_types=SPECIAL_COLLECTION_TYPES)


@bp.post("/waste-bins/<bin_id>/request-collection")
@require_role("resident", "business")
def request_collection(bin_id: str):
    user = g.current_user
    payload = {
        "wasteBin": bin_id,
        "collectionType": request.form.get("collectionType") or "bulk",
        "description": request.form.get("description"),
        "preferredDate": request.form.get("preferredDate"),
        "contactPhone": request.form.get("contactPhone") or user.phone,
    }
    errors = validate_special_collection_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("waste_bins.bin_detail", bin_id=bin_id))

    api = backend()
    try:
        waste_bin = api.waste_bins.get(bin_id).get("wasteBin")
        if not waste_bin:
            abort(404)
        api.collections.create(build_special_collection(payload, user.id, waste_bin))
    except BackendError as e:
        if e.status == 404:
            abort(404)
        flash(e.message or "Failed to request collection", "danger")
        return redirect(url_for("waste_bins.bin_detail", bin_id=bin_id))

    flash("Collection requested successfully!", "success")
    return redirect(url_for("waste_bins.bins_list"))
