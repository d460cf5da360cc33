from __future__ import annotations

from datetime import date
from typing import Any

from app.ecowaste.utils import dig, entity_id, normalize_text, parse_date

SPECIAL_COLLECTION_TYPES = ("bulk", "hazardous", "electronic", "garden")
RECENT_ACTIVITY_LIMIT = 5
SPECIAL_VERIFICATION_METHOD = "manual_entry"


def admin_overview(bin_stats: dict, collection_stats: dict, user_stats: dict) -> dict[str, Any]:
    """Headline numbers for the admin dashboard."""
    needs_collection = dig(bin_stats, "overview.needsCollection", 0) or 0
    missed = dig(collection_stats, "overview.missed", 0) or 0
    return {
        "bins": bin_stats,
        "collections": collection_stats,
        "users": user_stats,
        "needs_attention": needs_collection + missed,
    }


def member_overview(bins_payload: dict, collections_payload: dict) -> dict[str, Any]:
    bins = bins_payload.get("wasteBins") or []
    recent = (collections_payload.get("collections") or [])[:RECENT_ACTIVITY_LIMIT]
    return {"bin_count": len(bins), "bins": bins, "recent_activity": recent}


def empty_overview(is_admin: bool) -> dict[str, Any]:
    if is_admin:
        return admin_overview({}, {}, {})
    return member_overview({}, {})


def validate_special_collection_payload(payload: dict, today: date | None = None) -> list[str]:
    errors = []
    today = today or date.today()
    if not normalize_text(payload.get("wasteBin")):
        errors.append("Please select a waste bin.")
    ctype = normalize_text(payload.get("collectionType"))
    if ctype not in SPECIAL_COLLECTION_TYPES:
        errors.append(f"Collection type must be one of: {', '.join(SPECIAL_COLLECTION_TYPES)}")
    if not normalize_text(payload.get("description")):
        errors.append("Description is required.")
    preferred = parse_date(payload.get("preferredDate"))
    if not preferred:
        errors.append("Preferred date is required.")
    elif preferred < today:
        errors.append("Preferred date cannot be in the past.")
    if not normalize_text(payload.get("contactPhone")):
        errors.append("Contact phone is required.")
    return errors


def build_special_collection(payload: dict, user_id: str, waste_bin: dict) -> dict[str, Any]:
    """
    Collection request body for a resident-initiated special pickup.

    The backend validates `wasteBin`, `location.coordinates` and
    `verification.method` on every collection create, so the pickup takes
    the bin's own location ([0, 0] when the bin has none).
    """
    ctype = normalize_text(payload.get("collectionType"))
    return {
        "wasteBin": entity_id(waste_bin) or normalize_text(payload.get("wasteBin")),
        "collectionType": "special",
        "status": "requested",
        "requestedBy": user_id,
        "scheduledDate": normalize_text(payload.get("preferredDate")),
        "wasteData": {"wasteType": "general" if ctype in ("bulk", "garden") else ctype},
        "location": {
            "coordinates": dig(waste_bin, "location.coordinates") or [0, 0],
            "address": dig(waste_bin, "location.address") or "",
        },
        "verification": {"method": SPECIAL_VERIFICATION_METHOD},
        "specialRequest": {
            "category": ctype,
            "description": normalize_text(payload.get("description")),
            "contactPhone": normalize_text(payload.get("contactPhone")),
        },
    }
