from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping

from werkzeug.datastructures import MultiDict

DEFAULT_COORDINATES = {"latitude": 6.9271, "longitude": 79.8612}  # Colombo
DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
WASTE_TYPES = ("general", "recyclable", "organic", "hazardous", "electronic")


def normalize_text(s: str | None) -> str:
    return (s or "").strip()


def parse_float(value: Any, default: float | None = None) -> float | None:
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return float(value)
    s = normalize_text(str(value))
    if not s:
        return default
    try:
        return float(s)
    except ValueError:
        return default


def parse_int(value: Any, default: int | None = None) -> int | None:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    s = normalize_text(str(value))
    if not s:
        return default
    try:
        return int(float(s))
    except ValueError:
        return default


def parse_date(s: str | None) -> date | None:
    s = normalize_text(s)
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


# ---------- Addresses ----------
def construct_address(address: Mapping[str, Any] | None) -> str:
    """Join street, city, district and postal code, skipping blanks."""
    if not address:
        return ""
    parts = [address.get(k) for k in ("street", "city", "district", "postalCode")]
    return ", ".join(str(p) for p in parts if p)


def parse_address(text: str | None) -> dict[str, Any] | None:
    if not text:
        return None
    parts = [p.strip() for p in text.split(", ")]
    parts += [""] * (4 - len(parts))
    return {
        "street": parts[0],
        "city": parts[1],
        "district": parts[2],
        "postalCode": parts[3],
        "coordinates": {"latitude": 0, "longitude": 0},
    }


def is_valid_address(address: Mapping[str, Any] | None) -> bool:
    if not address:
        return False
    return bool(address.get("street") and address.get("city") and address.get("district"))


def short_address(address: Mapping[str, Any] | None) -> str:
    if not address:
        return ""
    return ", ".join(str(address[k]) for k in ("street", "city") if address.get(k))


# ---------- Forms ----------
def nest_form(form: MultiDict | Mapping[str, Any], *, list_fields: tuple[str, ...] = ()) -> dict[str, Any]:
    """
    Turn dotted form names into nested dicts:
    ``{"address.city": "Kandy"} -> {"address": {"city": "Kandy"}}``.

    Names in `list_fields` (dotted) are read with getlist() so checkbox groups
    become lists. csrf_token is dropped.
    """
    out: dict[str, Any] = {}
    keys = list(form.keys())
    for name in keys:
        if name == "csrf_token":
            continue
        if name in list_fields and hasattr(form, "getlist"):
            value: Any = [normalize_text(v) for v in form.getlist(name) if normalize_text(v)]
        else:
            raw = form.get(name)
            value = raw.strip() if isinstance(raw, str) else raw
        current = out
        parts = name.split(".")
        for part in parts[:-1]:
            nxt = current.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                current[part] = nxt
            current = nxt
        current[parts[-1]] = value
    for name in list_fields:
        if name not in keys:
            current = out
            parts = name.split(".")
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current.setdefault(parts[-1], [])
    return out


def coordinates_from_form(form: Mapping[str, Any], *, default: Mapping[str, float] | None = None) -> dict[str, float]:
    """Blank fields keep the default; anything unparsable becomes 0."""
    base = dict(default or DEFAULT_COORDINATES)
    out: dict[str, float] = {}
    for key in ("latitude", "longitude"):
        raw = normalize_text(form.get(key))
        out[key] = base[key] if not raw else (parse_float(raw, 0.0) or 0.0)
    return out


# ---------- Lists ----------
def status_counts(items: list[Mapping[str, Any]], statuses: tuple[str, ...], *, key: str = "status") -> dict[str, int]:
    """Per-tab counts over an already-fetched list ("all" is the list length)."""
    counts = {s: 0 for s in statuses}
    for item in items:
        st = item.get(key)
        if st in counts:
            counts[st] += 1
    if "all" in counts:
        counts["all"] = len(items)
    return counts


def filter_by_status(items: list[Mapping[str, Any]], status: str, *, key: str = "status") -> list[Mapping[str, Any]]:
    if not status or status == "all":
        return list(items)
    return [i for i in items if i.get(key) == status]


def dig(obj: Any, path: str, default: Any = None) -> Any:
    """Safe nested lookup: dig(bin, "sensorData.fillLevel", 0)."""
    current = obj
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        else:
            return default
        if current is None:
            return default
    return current


def entity_id(obj: Any) -> str | None:
    """Backend references arrive either populated (dict with _id) or as a bare id."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        value = obj.get("_id") or obj.get("id")
        return str(value) if value else None
    return str(obj)


# ---------- Formatting ----------
def format_currency(amount: Any, currency: str = "LKR") -> str:
    value = parse_float(amount, 0.0) or 0.0
    return f"{currency} {value:,.2f}"


def format_number(num: Any) -> str:
    value = parse_float(num, 0.0) or 0.0
    if not value:
        return "0"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1000:
        return f"{value / 1000:.1f}K"
    return f"{value:.1f}"


def to_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def format_date(value: Any, fmt: str = "%Y-%m-%d", empty: str = "—") -> str:
    dt = to_datetime(value)
    if dt is None:
        return empty
    return dt.strftime(fmt)


def humanize(value: str | None) -> str:
    return normalize_text(value).replace("_", " ")


_BADGES = {
    "success": ("completed", "active", "verified", "excellent", "clean", "outstanding"),
    "info": ("approved", "in_progress", "processing", "credited", "good"),
    "warning": ("pending", "scheduled", "pending_verification", "maintenance", "fair", "medium"),
    "orange": ("requested", "high", "poor"),
    "danger": ("rejected", "missed", "failed", "disputed", "suspended", "urgent", "contaminated", "full"),
}


def status_badge(status: str | None) -> str:
    st = normalize_text(status).lower()
    for badge, statuses in _BADGES.items():
        if st in statuses:
            return badge
    return "secondary"


def fill_level_band(fill_level: Any) -> str:
    level = parse_float(fill_level, 0.0) or 0.0
    if level >= 80:
        return "danger"
    if level >= 60:
        return "orange"
    return "success"
