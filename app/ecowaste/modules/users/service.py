from __future__ import annotations

from datetime import date
from typing import Any

from app.ecowaste.models import ACCOUNT_STATUSES, ROLES
from app.ecowaste.utils import DAYS_OF_WEEK, coordinates_from_form, normalize_text, parse_float, parse_int

USERS_PER_PAGE = 10
ROLE_FILTERS = ("all",) + ROLES
SPECIALIZATIONS = ("general", "recyclable", "organic", "hazardous", "electronic", "bulk")
TRUCK_VEHICLE_TYPES = ("truck", "van", "electric_vehicle", "compactor")
TRUCK_CAPACITY_UNITS = ("cubic_meters", "liters")
ENGINE_TYPES = ("diesel", "petrol", "electric", "hybrid")


def build_user_payload(form) -> dict[str, Any]:
    user_type = normalize_text(form.get("userType")) or "resident"
    payload: dict[str, Any] = {
        "name": normalize_text(form.get("name")),
        "email": normalize_text(form.get("email")).lower(),
        "password": form.get("password") or "",
        "phone": normalize_text(form.get("phone")),
        "userType": user_type,
        "address": {
            "street": normalize_text(form.get("address.street")),
            "city": normalize_text(form.get("address.city")),
            "district": normalize_text(form.get("address.district")) or "colombo",
            "postalCode": normalize_text(form.get("address.postalCode")),
            "coordinates": coordinates_from_form(form),
        },
    }
    # Collector-only block; other roles never carry it.
    if user_type == "collector":
        payload["collectorInfo"] = {
            "assignedTruck": normalize_text(form.get("collectorInfo.assignedTruck")),
            "assignedCities": [c for c in form.getlist("collectorInfo.assignedCities") if normalize_text(c)],
            "workSchedule": {
                "daysOfWeek": [d for d in form.getlist("collectorInfo.workSchedule.daysOfWeek") if d in DAYS_OF_WEEK],
                "startTime": normalize_text(form.get("collectorInfo.workSchedule.startTime")) or "08:00",
                "endTime": normalize_text(form.get("collectorInfo.workSchedule.endTime")) or "17:00",
            },
            "specializations": [s for s in form.getlist("collectorInfo.specializations") if s in SPECIALIZATIONS],
        }
    return payload


def validate_user_payload(payload: dict, confirm_password: str | None) -> list[str]:
    errors = []
    if payload.get("password") != (confirm_password or ""):
        errors.append("Passwords do not match.")
    if not all(payload.get(k) for k in ("name", "email", "password", "phone")):
        errors.append("Please fill in all required fields.")
    if payload.get("userType") not in ROLES:
        errors.append(f"Invalid user type. Must be one of: {', '.join(ROLES)}")
    return errors


def validate_status(status: str) -> list[str]:
    if status not in ACCOUNT_STATUSES:
        return [f"Invalid status. Must be one of: {', '.join(ACCOUNT_STATUSES)}"]
    return []


# ---------- Trucks ----------
def build_truck_payload(form, today: date | None = None) -> dict[str, Any]:
    today = today or date.today()
    fuel_capacity = parse_float(form.get("specifications.fuelCapacity"))
    specifications: dict[str, Any] = {
        "make": normalize_text(form.get("specifications.make")),
        "model": normalize_text(form.get("specifications.model")),
        "year": parse_int(form.get("specifications.year"), today.year),
        "engineType": normalize_text(form.get("specifications.engineType")) or "diesel",
    }
    if fuel_capacity is not None:
        specifications["fuelCapacity"] = fuel_capacity
    return {
        "truckNumber": normalize_text(form.get("truckNumber")).upper(),
        "vehicleType": normalize_text(form.get("vehicleType")) or "truck",
        "capacity": {
            "volume": parse_float(form.get("capacity.volume")),
            "weight": parse_float(form.get("capacity.weight")),
            "unit": normalize_text(form.get("capacity.unit")) or "cubic_meters",
        },
        "specifications": specifications,
        "baseLocation": {
            "address": normalize_text(form.get("baseLocation.address")),
            "coordinates": [0, 0],
        },
    }


def validate_truck_payload(payload: dict) -> list[str]:
    errors = []
    if not payload.get("truckNumber"):
        errors.append("Truck number is required.")
    if payload.get("vehicleType") not in TRUCK_VEHICLE_TYPES:
        errors.append(f"Invalid vehicle type. Must be one of: {', '.join(TRUCK_VEHICLE_TYPES)}")
    if payload["specifications"].get("engineType") not in ENGINE_TYPES:
        errors.append(f"Invalid engine type. Must be one of: {', '.join(ENGINE_TYPES)}")
    if payload["capacity"].get("unit") not in TRUCK_CAPACITY_UNITS:
        errors.append(f"Invalid capacity unit. Must be one of: {', '.join(TRUCK_CAPACITY_UNITS)}")
    volume = payload["capacity"].get("volume")
    weight = payload["capacity"].get("weight")
    if volume is None or weight is None:
        errors.append("Capacity volume and weight are required numbers.")
    elif volume <= 0 or weight <= 0:
        errors.append("Capacity volume and weight must be positive.")
    return errors
