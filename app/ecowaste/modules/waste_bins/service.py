from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.ecowaste.utils import WASTE_TYPES, dig, normalize_text, parse_float

if TYPE_CHECKING:
    from app.ecowaste.backend import Backend

DEVICE_TYPES = ("rfid_tag", "barcode", "smart_sensor", "qr_code")
CAPACITY_UNITS = ("liters", "cubic_meters")
NEEDS_COLLECTION_LEVEL = 80


def needs_collection(waste_bin: dict) -> bool:
    level = parse_float(dig(waste_bin, "sensorData.fillLevel", 0), 0.0) or 0.0
    return level >= NEEDS_COLLECTION_LEVEL or waste_bin.get("status") == "full"


def bin_summary(bins: list[dict]) -> dict[str, int]:
    levels = [parse_float(dig(b, "sensorData.fillLevel", 0), 0.0) or 0.0 for b in bins]
    return {
        "total": len(bins),
        "needs_collection": sum(1 for b in bins if needs_collection(b)),
        "recyclable": sum(1 for b in bins if b.get("binType") == "recyclable"),
        "average_fill": round(sum(levels) / len(levels)) if levels else 0,
    }


def resolve_ids(api: "Backend", bin_id: str | None, device_id: str | None) -> tuple[str, str]:
    """
    Upper-cased bin and device IDs; blanks are filled by the backend's
    ID generators.
    """
    bin_id = normalize_text(bin_id).upper()
    device_id = normalize_text(device_id).upper()
    if not bin_id:
        bin_id = normalize_text(api.settings.generate_bin_id().get("binId")).upper()
    if not device_id:
        device_id = normalize_text(api.settings.generate_device_id().get("deviceId")).upper()
    return bin_id, device_id


def location_coordinates(latitude: Any, longitude: Any) -> list[float]:
    """GeoJSON order, [lng, lat]; [0, 0] unless both ends parse."""
    lat = parse_float(latitude)
    lng = parse_float(longitude)
    if lat is None or lng is None:
        return [0, 0]
    return [lng, lat]


def validate_bin_payload(payload: dict) -> list[str]:
    errors = []
    if not normalize_text(payload.get("owner")):
        errors.append("Owner is required.")
    if payload.get("binType") not in WASTE_TYPES:
        errors.append(f"Invalid bin type. Must be one of: {', '.join(WASTE_TYPES)}")
    if payload.get("deviceType") not in DEVICE_TYPES:
        errors.append(f"Invalid device type. Must be one of: {', '.join(DEVICE_TYPES)}")
    total = dig(payload, "capacity.total")
    if total is None or total <= 0:
        errors.append("Capacity must be a positive number.")
    if not normalize_text(dig(payload, "location.address")):
        errors.append("Address is required.")
    return errors


def build_bin_payload(form, bin_id: str, device_id: str, owner: str) -> dict[str, Any]:
    return {
        "binId": bin_id,
        "deviceId": device_id,
        "owner": owner,
        "deviceType": normalize_text(form.get("deviceType")) or "rfid_tag",
        "binType": normalize_text(form.get("binType")) or "general",
        "capacity": {
            "total": parse_float(form.get("capacity_total"), 120.0),
            "unit": normalize_text(form.get("capacity_unit")) or "liters",
            "current": 0,
        },
        "location": {
            "type": "Point",
            "coordinates": location_coordinates(form.get("latitude"), form.get("longitude")),
            "address": normalize_text(form.get("address")),
        },
    }
