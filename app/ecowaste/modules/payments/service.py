from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.ecowaste.utils import dig, parse_float

PAYMENT_STATUSES = ("all", "pending", "completed", "failed")
BILLING_PERIODS = ("weekly", "monthly", "quarterly", "yearly")
DEFAULT_BILLING_PERIOD = "monthly"

PAYHERE_SANDBOX_URL = "https://sandbox.payhere.lk/pay/checkout"
PAYHERE_LIVE_URL = "https://www.payhere.lk/pay/checkout"
PAYHERE_PROVIDER = "PayHere"


def payment_amount(payment: dict) -> float:
    return parse_float(dig(payment, "totals.totalAmount", 0), 0.0) or 0.0


def payment_totals(payments: list[dict]) -> dict[str, float]:
    """Amount already paid and amount still outstanding."""
    return {
        "paid": sum(payment_amount(p) for p in payments if p.get("status") == "completed"),
        "pending": sum(payment_amount(p) for p in payments if p.get("status") == "pending"),
    }


# ---------- PayHere ----------
def checkout_url(sandbox: bool) -> str:
    return PAYHERE_SANDBOX_URL if sandbox else PAYHERE_LIVE_URL


def build_checkout_fields(
    payment_data: dict,
    *,
    return_url: str,
    cancel_url: str,
    notify_url: str,
    merchant_id: str = "",
) -> dict[str, Any]:
    """
    Form fields posted to PayHere. The hash and amounts come signed from the
    backend and are passed through untouched; only the browser-facing URLs
    are added here.
    """
    fields = {k: v for k, v in payment_data.items() if v is not None}
    if not fields.get("merchant_id") and merchant_id:
        fields["merchant_id"] = merchant_id
    fields.setdefault("country", "Sri Lanka")
    fields["return_url"] = return_url
    fields["cancel_url"] = cancel_url
    if notify_url:
        fields["notify_url"] = notify_url
    return fields


def process_payload(order_id: str) -> dict[str, str]:
    return {"transactionId": order_id, "provider": PAYHERE_PROVIDER}


# ---------- PAYT ----------
def normalize_period(period: str | None) -> str:
    return period if period in BILLING_PERIODS else DEFAULT_BILLING_PERIOD


def current_billing_period(now: datetime | None = None) -> dict[str, str]:
    """The 1st of the current month up to now."""
    now = now or datetime.now(timezone.utc)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return {"startDate": start.isoformat(), "endDate": now.isoformat()}


def bill_collection_weight(bill: dict) -> float:
    return sum(parse_float(c.get("weight"), 0.0) or 0.0 for c in (bill.get("collections") or []))
