from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from app.ecowaste.utils import DAYS_OF_WEEK, dig, normalize_text, parse_float, parse_int, to_datetime

if TYPE_CHECKING:
    from app.ecowaste.backend import Backend

ROUTE_STATUSES = ("all", "active", "inactive", "maintenance", "completed")
ROUTES_PER_PAGE = 10
BIN_PRIORITIES = ("low", "medium", "high", "urgent")
FREQUENCIES = ("daily", "weekly", "bi_weekly", "monthly")
VEHICLE_TYPES = ("truck", "van", "electric_vehicle", "compactor")
FUEL_TYPES = ("diesel", "petrol", "electric", "hybrid")
DEFAULT_STOP_MINUTES = 5

ALGORITHMS = (
    {"value": "dijkstra", "name": "Dijkstra (Fast)", "description": "Quick optimization for daily routes"},
    {"value": "genetic", "name": "Genetic Algorithm", "description": "Best for complex routes with many stops"},
    {"value": "ant_colony", "name": "Ant Colony", "description": "Good balance of speed and optimization"},
    {"value": "nearest_neighbor", "name": "Nearest Neighbor", "description": "Simple and reliable approach"},
    {"value": "simulated_annealing", "name": "Simulated Annealing", "description": "Excellent for avoiding local optima"},
)
ALGORITHM_NAMES = tuple(a["value"] for a in ALGORITHMS)
DEFAULT_ALGORITHM = "dijkstra"
OPTIMIZATION_OPTIONS = {"timePerStop": 5, "distanceType": "haversine"}
REOPTIMIZE_AFTER = timedelta(days=7)


def route_summary(routes: list[dict]) -> dict[str, int]:
    bins_per_route = [len(r.get("wasteBins") or []) for r in routes]
    return {
        "active": sum(1 for r in routes if r.get("status") == "active"),
        "optimized": sum(1 for r in routes if dig(r, "optimization.isOptimized")),
        "average_bins": round(sum(bins_per_route) / len(bins_per_route)) if bins_per_route else 0,
    }


def needs_optimization(route: dict, now: datetime | None = None) -> bool:
    """Never optimized, or optimized more than a week ago."""
    if not dig(route, "optimization.isOptimized"):
        return True
    optimized_at = to_datetime(dig(route, "optimization.optimizedAt"))
    if optimized_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    if optimized_at.tzinfo is None:
        optimized_at = optimized_at.replace(tzinfo=timezone.utc)
    return now - optimized_at > REOPTIMIZE_AFTER


# ---------- Create ----------
def selected_bins(form) -> list[dict[str, Any]]:
    """
    Checked bins in selection order. An explicit `order_<bin>` field
    overrides the position; the result is sorted by sequence.
    """
    out = []
    for position, bin_id in enumerate(b for b in form.getlist("bins") if normalize_text(b)):
        priority = normalize_text(form.get(f"priority_{bin_id}")) or "medium"
        out.append(
            {
                "bin": bin_id,
                "sequenceOrder": parse_int(form.get(f"order_{bin_id}"), position + 1),
                "estimatedTime": DEFAULT_STOP_MINUTES,
                "priority": priority if priority in BIN_PRIORITIES else "medium",
            }
        )
    return sorted(out, key=lambda b: b["sequenceOrder"])


def build_route_payload(form) -> dict[str, Any]:
    days = [d for d in form.getlist("schedule.daysOfWeek") if d in DAYS_OF_WEEK]
    intermediate = [normalize_text(c) for c in form.getlist("cities.intermediateCities") if normalize_text(c)]
    return {
        "name": normalize_text(form.get("name")),
        "district": normalize_text(form.get("district")) or "colombo",
        "cities": {
            "startCity": normalize_text(form.get("cities.startCity")),
            "endCity": normalize_text(form.get("cities.endCity")),
            "intermediateCities": intermediate,
        },
        "assignedCollector": normalize_text(form.get("assignedCollector")),
        "backupCollector": normalize_text(form.get("backupCollector")) or None,
        "vehicle": {
            "vehicleId": normalize_text(form.get("vehicle.vehicleId")),
            "type": normalize_text(form.get("vehicle.type")) or "truck",
            "capacity": parse_float(form.get("vehicle.capacity"), 0.0) or 0.0,
            "fuelType": normalize_text(form.get("vehicle.fuelType")) or "diesel",
        },
        "wasteBins": selected_bins(form),
        "schedule": {
            "frequency": normalize_text(form.get("schedule.frequency")) or "weekly",
            "daysOfWeek": days,
            "startTime": normalize_text(form.get("schedule.startTime")) or "08:00",
            "endTime": normalize_text(form.get("schedule.endTime")) or "17:00",
            "estimatedDuration": parse_int(form.get("schedule.estimatedDuration"), 480),
        },
    }


def validate_route_payload(payload: dict) -> list[str]:
    errors = []
    if not payload.get("name"):
        errors.append("Route name is required.")
    if not payload.get("assignedCollector"):
        errors.append("Assigned collector is required.")
    if not payload["cities"]["startCity"] or not payload["cities"]["endCity"]:
        errors.append("Start and end city are required.")
    if not payload.get("wasteBins"):
        errors.append("Please select at least one waste bin for the route.")
    if payload["schedule"]["frequency"] not in FREQUENCIES:
        errors.append(f"Invalid frequency. Must be one of: {', '.join(FREQUENCIES)}")
    if payload["vehicle"]["type"] not in VEHICLE_TYPES:
        errors.append(f"Invalid vehicle type. Must be one of: {', '.join(VEHICLE_TYPES)}")
    if payload["vehicle"]["fuelType"] not in FUEL_TYPES:
        errors.append(f"Invalid fuel type. Must be one of: {', '.join(FUEL_TYPES)}")
    return errors


def vehicle_from_truck(truck: dict) -> dict[str, Any]:
    capacity = dig(truck, "capacity.weight") or dig(truck, "capacity.volume") or 0
    return {
        "vehicleId": truck.get("truckNumber") or "",
        "type": truck.get("vehicleType") or "truck",
        "capacity": parse_float(capacity, 0.0) or 0.0,
        "fuelType": dig(truck, "specifications.engineType") or "diesel",
    }


def fill_vehicle_from_collector(api: "Backend", payload: dict) -> dict:
    """Blank vehicle fields take the assigned collector's truck, when there is one."""
    if payload["vehicle"].get("vehicleId"):
        return payload
    collector = api.users.get(payload["assignedCollector"]).get("user") or {}
    truck_id = dig(collector, "collectorInfo.assignedTruck")
    if isinstance(truck_id, dict):
        truck_id = truck_id.get("_id")
    if not truck_id:
        return payload
    truck = api.trucks.get(str(truck_id)).get("truck") or {}
    if truck:
        payload["vehicle"] = vehicle_from_truck(truck)
    return payload


def normalize_algorithm(value: str | None) -> str:
    return value if value in ALGORITHM_NAMES else DEFAULT_ALGORITHM
