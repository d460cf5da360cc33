from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from app.ecowaste.utils import WASTE_TYPES, clamp, normalize_text, parse_float, parse_int, to_datetime

COLLECTION_STATUSES = ("all", "requested", "scheduled", "in_progress", "completed", "missed")
VERIFICATION_METHODS = ("rfid_scan", "barcode_scan", "qr_scan", "manual_entry", "sensor_reading")
QUALITY_GRADES = ("excellent", "good", "fair", "poor", "contaminated")
COLLECTION_PRIORITIES = ("low", "normal", "high", "urgent")

# Collector feedback devices
FEEDBACK_LANGUAGES = ("en", "si", "ta")
DEFAULT_DEVICE_SETTINGS = {
    "audioVolume": 80,
    "displayBrightness": 90,
    "vibrationIntensity": 70,
    "language": "en",
    "timeoutDuration": 30000,
}
SCAN_DEVICE_ID = "DEVICE-001"


def _scheduled_on(collection: dict) -> date | None:
    dt = to_datetime(collection.get("scheduledDate"))
    return dt.date() if dt else None


def todays_collections(collections: list[dict], today: date | None = None) -> list[dict]:
    today = today or date.today()
    return [c for c in collections if _scheduled_on(c) == today]


def collection_summary(collections: list[dict], today: date | None = None) -> dict[str, int]:
    def count(status: str) -> int:
        return sum(1 for c in collections if c.get("status") == status)

    return {
        "today": len(todays_collections(collections, today)),
        "completed": count("completed"),
        "in_progress": count("in_progress"),
        "requested": count("requested"),
        "missed": count("missed"),
    }


def _iso_datetime(day: str | None, time_of_day: str | None) -> str | None:
    day = normalize_text(day)
    if not day:
        return None
    time_of_day = normalize_text(time_of_day) or "09:00"
    try:
        return datetime.fromisoformat(f"{day}T{time_of_day}").isoformat()
    except ValueError:
        return None


# ---------- Schedule ----------
def build_schedule_payload(form) -> dict[str, Any]:
    return {
        "wasteBin": normalize_text(form.get("wasteBin")),
        "collector": normalize_text(form.get("collector")),
        "scheduledDate": _iso_datetime(form.get("scheduledDate"), form.get("scheduledTime")),
        "wasteData": {
            "wasteType": normalize_text(form.get("wasteType")) or "general",
            "priority": normalize_text(form.get("priority")) or "normal",
        },
        "location": {"coordinates": [0, 0]},
        "verification": {"method": "manual_entry"},
        "notes": {"adminNotes": normalize_text(form.get("notes"))},
    }


def validate_schedule_payload(payload: dict) -> list[str]:
    errors = []
    if not payload.get("wasteBin"):
        errors.append("Waste bin is required.")
    if not payload.get("collector"):
        errors.append("Collector is required.")
    if not payload.get("scheduledDate"):
        errors.append("Scheduled date and time are required.")
    if payload["wasteData"]["wasteType"] not in WASTE_TYPES:
        errors.append(f"Invalid waste type. Must be one of: {', '.join(WASTE_TYPES)}")
    if payload["wasteData"]["priority"] not in COLLECTION_PRIORITIES:
        errors.append(f"Invalid priority. Must be one of: {', '.join(COLLECTION_PRIORITIES)}")
    return errors


# ---------- Complete ----------
def build_completion_payload(form) -> tuple[dict[str, Any], list[str]]:
    errors = []
    weight = parse_float(form.get("weight"))
    volume = parse_float(form.get("volume"))
    if weight is None or weight < 0:
        errors.append("Weight must be a non-negative number.")
    if volume is None or volume < 0:
        errors.append("Volume must be a non-negative number.")
    method = normalize_text(form.get("verificationMethod")) or "manual_entry"
    if method not in VERIFICATION_METHODS:
        errors.append(f"Invalid verification method. Must be one of: {', '.join(VERIFICATION_METHODS)}")
    payload: dict[str, Any] = {
        "weight": weight,
        "volume": volume,
        "verification": {"method": method},
    }
    notes = normalize_text(form.get("notes"))
    if notes:
        payload["notes"] = notes
    return payload, errors


# ---------- Approve ----------
def build_approval_payload(form) -> tuple[dict[str, Any], list[str]]:
    errors = []
    collector = normalize_text(form.get("collector"))
    scheduled = _iso_datetime(form.get("scheduledDate"), form.get("scheduledTime"))
    if not collector:
        errors.append("Collector is required.")
    if not scheduled:
        errors.append("Scheduled date and time are required.")
    payload: dict[str, Any] = {
        "collector": collector,
        "scheduledDate": scheduled,
        "notes": normalize_text(form.get("notes")),
    }
    if normalize_text(form.get("verifiedWeight")):
        weight = parse_float(form.get("verifiedWeight"))
        if weight is None or weight < 0:
            errors.append("Verified weight must be a non-negative number.")
        payload["verifiedWeight"] = weight
    quality = normalize_text(form.get("quality"))
    if quality:
        if quality not in QUALITY_GRADES:
            errors.append(f"Invalid quality. Must be one of: {', '.join(QUALITY_GRADES)}")
        payload["quality"] = quality
    return payload, errors


# ---------- Collector feedback ----------
def build_scan_result(success: bool, device_id: str | None = None, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "success": success,
        "method": "rfid_scan",
        "confidence": 95 if success else 0,
        "deviceId": device_id or SCAN_DEVICE_ID,
        "timestamp": now.isoformat().replace("+00:00", "Z"),
    }


def feedback_options(settings: dict) -> dict[str, Any]:
    return {k: settings[k] for k in ("language", "audioVolume", "displayBrightness", "vibrationIntensity")}


def load_device_settings(stored: dict | None) -> dict[str, Any]:
    settings = dict(DEFAULT_DEVICE_SETTINGS)
    settings.update({k: v for k, v in (stored or {}).items() if k in DEFAULT_DEVICE_SETTINGS})
    return settings


def parse_device_settings(form, current: dict | None = None) -> dict[str, Any]:
    """Percentages are clamped to 0..100; an unknown language keeps the current one."""
    base = load_device_settings(current)
    out = dict(base)
    for key in ("audioVolume", "displayBrightness", "vibrationIntensity"):
        out[key] = clamp(parse_int(form.get(key), base[key]), 0, 100)
    language = normalize_text(form.get("language"))
    out["language"] = language if language in FEEDBACK_LANGUAGES else base["language"]
    timeout = parse_int(form.get("timeoutDuration"), base["timeoutDuration"])
    out["timeoutDuration"] = max(timeout, 1000)
    return out
