from __future__ import annotations

import io
import json
from datetime import date
from typing import Any

from app.ecowaste.models import CurrentUser
from app.ecowaste.utils import normalize_text, parse_date

REPORT_TYPES = ("daily", "weekly", "monthly")
DEFAULT_REPORT_TYPE = "weekly"
IMPACT_SCOPES = ("user", "district", "system")
IMPACT_PERIODS = ("weekly", "monthly", "quarterly", "yearly")
UNKNOWN_DISTRICT = "Unknown"


def build_report_request(form) -> tuple[dict[str, Any], list[str]]:
    errors = []
    report_type = normalize_text(form.get("type")) or DEFAULT_REPORT_TYPE
    if report_type not in REPORT_TYPES:
        errors.append(f"Invalid report type. Must be one of: {', '.join(REPORT_TYPES)}")
    start = parse_date(form.get("startDate"))
    end = parse_date(form.get("endDate"))
    date_range = None
    # A range is only sent when both ends are given.
    if start and end:
        if start > end:
            errors.append("Start date must be before end date.")
        date_range = {"startDate": start.isoformat(), "endDate": end.isoformat()}
    return {"type": report_type, "dateRange": date_range, "includeCharts": True}, errors


def report_filename(report_type: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"waste-management-report-{report_type}-{today.isoformat()}.json"


def impact_filename(scope: str, period: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"environmental-impact-report-{scope}-{period}-{today.isoformat()}.json"


def json_attachment(data: Any) -> io.BytesIO:
    return io.BytesIO(json.dumps(data, indent=2).encode("utf-8"))


def normalize_scope(scope: str | None) -> str:
    return scope if scope in IMPACT_SCOPES else "user"


def normalize_impact_period(period: str | None) -> str:
    return period if period in IMPACT_PERIODS else "monthly"


def scope_id_for(scope: str, user: CurrentUser) -> str:
    """District scope is keyed on the user's city, as the backend expects."""
    if scope == "user":
        return user.id
    if scope == "district":
        return user.city or UNKNOWN_DISTRICT
    return "all"
