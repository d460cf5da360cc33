from __future__ import annotations

from app.ecowaste.utils import normalize_text

PAYOUT_METHODS = ("bank_transfer", "mobile_wallet", "bill_credit")
PAYABLE_STATUS = "verified"
DEFAULT_LOYALTY_TIER = "Bronze"
RECENT_CREDITS_LIMIT = 20


def loyalty_tier(summary: dict) -> str:
    tier = normalize_text(summary.get("loyaltyTier"))
    return tier.capitalize() if tier else DEFAULT_LOYALTY_TIER


def validate_payout(credit: dict, method: str) -> list[str]:
    errors = []
    if method not in PAYOUT_METHODS:
        errors.append(f"Invalid payment method. Must be one of: {', '.join(PAYOUT_METHODS)}")
    if credit.get("status") != PAYABLE_STATUS:
        errors.append("Only verified credits can be paid out.")
    return errors


def achievement_list(payload: dict) -> list[dict]:
    """The achievements endpoint answers with a bare list or an object wrapping one."""
    for key in ("items", "achievements"):
        value = payload.get(key)
        if isinstance(value, list):
            return value
    return []
