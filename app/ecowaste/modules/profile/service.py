from __future__ import annotations

from typing import Any

from app.ecowaste.models import CurrentUser
from app.ecowaste.utils import coordinates_from_form, entity_id, normalize_text


def build_profile_payload(form, user: CurrentUser) -> dict[str, Any]:
    current = user.address or {}
    coords = current.get("coordinates") if isinstance(current.get("coordinates"), dict) else None
    return {
        "name": normalize_text(form.get("name")),
        "phone": normalize_text(form.get("phone")),
        "address": {
            "street": normalize_text(form.get("address.street")),
            "city": normalize_text(form.get("address.city")),
            "district": normalize_text(form.get("address.district")) or current.get("district") or "colombo",
            "postalCode": normalize_text(form.get("address.postalCode")),
            "coordinates": coordinates_from_form(form, default=coords),
        },
    }


def validate_profile_payload(payload: dict) -> list[str]:
    errors = []
    if not payload.get("name"):
        errors.append("Name is required.")
    if not payload.get("phone"):
        errors.append("Phone is required.")
    return errors


def assigned_truck_id(user: CurrentUser) -> str | None:
    return entity_id(user.collector_info.get("assignedTruck"))


def assigned_route_ids(user: CurrentUser) -> list[str]:
    return [rid for rid in (entity_id(r) for r in user.collector_info.get("assignedRoutes") or []) if rid]
