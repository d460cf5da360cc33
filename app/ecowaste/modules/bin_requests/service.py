from __future__ import annotations

from typing import Any

from app.ecowaste.modules.waste_bins.service import DEVICE_TYPES, location_coordinates
from app.ecowaste.utils import WASTE_TYPES, entity_id, normalize_text, parse_float

REQUEST_STATUSES = ("all", "pending", "approved", "completed", "rejected")
PRIORITIES = ("low", "medium", "high", "urgent")
DEFAULT_DEVICE_TYPE = "smart_sensor"
DEFAULT_CAPACITY = {"total": 60, "unit": "liters"}
REVIEW_NOTES_MAX = 500
REJECTION_REASON_MIN = 10


def validate_request_payload(payload: dict) -> list[str]:
    errors = []
    if payload.get("binType") not in WASTE_TYPES:
        errors.append(f"Invalid bin type. Must be one of: {', '.join(WASTE_TYPES)}")
    if not normalize_text(payload.get("preferredLocation")):
        errors.append("Preferred location is required.")
    if not normalize_text(payload.get("justification")):
        errors.append("Justification is required.")
    if payload.get("priority") and payload["priority"] not in PRIORITIES:
        errors.append(f"Invalid priority. Must be one of: {', '.join(PRIORITIES)}")
    return errors


def build_request_payload(form, contact_phone: str = "") -> dict[str, Any]:
    return {
        "binType": normalize_text(form.get("binType")) or "general",
        "capacity": {
            "total": parse_float(form.get("capacity_total"), float(DEFAULT_CAPACITY["total"])),
            "unit": normalize_text(form.get("capacity_unit")) or DEFAULT_CAPACITY["unit"],
        },
        "preferredLocation": normalize_text(form.get("preferredLocation")),
        "justification": normalize_text(form.get("justification")),
        "priority": normalize_text(form.get("priority")) or "medium",
        "contactPhone": normalize_text(form.get("contactPhone")) or contact_phone,
        "additionalNotes": normalize_text(form.get("additionalNotes")),
    }


def approval_defaults(bin_request: dict) -> dict[str, Any]:
    """Prefill for the approval form."""
    capacity = bin_request.get("capacity") or {}
    location = bin_request.get("location") or {}
    return {
        "binType": bin_request.get("binType") or "general",
        "deviceType": bin_request.get("deviceType") or DEFAULT_DEVICE_TYPE,
        "capacity_total": capacity.get("total") or DEFAULT_CAPACITY["total"],
        "capacity_unit": capacity.get("unit") or DEFAULT_CAPACITY["unit"],
        "address": location.get("address") or bin_request.get("preferredLocation") or "",
        "priority": bin_request.get("priority") or "medium",
    }


def validate_approval(bin_request: dict, payload: dict, *, ids_required: bool = True) -> list[str]:
    """
    With `ids_required=False` blank IDs pass, so the form can be checked
    before the backend ID counters are spent on it.
    """
    errors = []
    if bin_request.get("status") != "pending":
        errors.append("Request has already been reviewed.")
    if ids_required and (not payload.get("binId") or not payload.get("deviceId")):
        errors.append("Bin ID and device ID are required.")
    if not normalize_text((payload.get("location") or {}).get("address")):
        errors.append("Installation address is required.")
    if payload.get("deviceType") not in DEVICE_TYPES:
        errors.append(f"Invalid device type. Must be one of: {', '.join(DEVICE_TYPES)}")
    if payload.get("priority") and payload["priority"] not in PRIORITIES:
        errors.append(f"Invalid priority. Must be one of: {', '.join(PRIORITIES)}")
    if len(payload.get("reviewNotes") or "") > REVIEW_NOTES_MAX:
        errors.append(f"Review notes must be at most {REVIEW_NOTES_MAX} characters.")
    return errors


def validate_rejection_reason(reason: str) -> list[str]:
    if not reason:
        return ["Rejection reason is required."]
    if not REJECTION_REASON_MIN <= len(reason) <= REVIEW_NOTES_MAX:
        return [f"Rejection reason must be between {REJECTION_REASON_MIN} and {REVIEW_NOTES_MAX} characters."]
    return []


def build_approval_payload(form, bin_request: dict, bin_id: str, device_id: str) -> dict[str, Any]:
    """
    Body for PATCH /bin-requests/<id>/approve. The bin owner is always the
    requester, whether the backend populated it or not.
    """
    defaults = approval_defaults(bin_request)
    return {
        "reviewNotes": normalize_text(form.get("reviewNotes")),
        "priority": normalize_text(form.get("priority")) or defaults["priority"],
        "binId": bin_id,
        "deviceId": device_id,
        "deviceType": normalize_text(form.get("deviceType")) or defaults["deviceType"],
        "binType": normalize_text(form.get("binType")) or defaults["binType"],
        "owner": entity_id(bin_request.get("requester")),
        "capacity": {
            "total": parse_float(form.get("capacity_total"), float(defaults["capacity_total"])),
            "unit": normalize_text(form.get("capacity_unit")) or defaults["capacity_unit"],
        },
        "location": {
            "address": normalize_text(form.get("address")),
            "coordinates": location_coordinates(form.get("latitude"), form.get("longitude")),
        },
        "adminNotes": normalize_text(form.get("adminNotes")),
    }
