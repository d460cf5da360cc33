from __future__ import annotations

from datetime import date
from typing import Any

from app.ecowaste.utils import normalize_text, parse_float, parse_int

RATE_FIELDS = ("general", "recyclable", "organic", "hazardous", "contamination", "taxRate")


def default_settings(today: date | None = None) -> dict[str, Any]:
    today = today or date.today()
    return {
        "paymentRates": {
            "general": 30,
            "recyclable": 15,
            "organic": 25,
            "hazardous": 100,
            "contamination": 200,
            "taxRate": 15,
        },
        "idCounters": {
            "binIdPrefix": "BIN",
            "binIdYear": today.year,
            "binIdCounter": 1000,
            "deviceIdPrefix": "DEV-SNS",
            "deviceIdCounter": 1,
        },
    }


def merge_settings(stored: dict | None) -> dict[str, Any]:
    """Backend values over defaults, section by section."""
    out = default_settings()
    for section in ("paymentRates", "idCounters"):
        out[section].update((stored or {}).get(section) or {})
    return out


def parse_settings_form(form, today: date | None = None) -> dict[str, Any]:
    today = today or date.today()
    return {
        "paymentRates": {f: parse_float(form.get(f"paymentRates.{f}"), 0.0) or 0.0 for f in RATE_FIELDS},
        "idCounters": {
            "binIdPrefix": normalize_text(form.get("idCounters.binIdPrefix")).upper() or "BIN",
            "binIdYear": parse_int(form.get("idCounters.binIdYear"), today.year) or today.year,
            "binIdCounter": parse_int(form.get("idCounters.binIdCounter"), 1) or 1,
            "deviceIdPrefix": normalize_text(form.get("idCounters.deviceIdPrefix")).upper() or "DEV-SNS",
            "deviceIdCounter": parse_int(form.get("idCounters.deviceIdCounter"), 1) or 1,
        },
    }


def preview_bin_id(counters: dict) -> str:
    return f"{counters['binIdPrefix']}-{counters['binIdYear']}-{int(counters['binIdCounter']):03d}"


def preview_device_id(counters: dict) -> str:
    return f"{counters['deviceIdPrefix']}-{int(counters['deviceIdCounter']):03d}"
