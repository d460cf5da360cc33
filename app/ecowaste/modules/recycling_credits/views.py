from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.payments.service import BILLING_PERIODS, normalize_period
from app.ecowaste.modules.recycling_credits.service import (
    PAYOUT_METHODS,
    RECENT_CREDITS_LIMIT,
    achievement_list,
    loyalty_tier,
    validate_payout,
)
from app.ecowaste.rbac import require_role
from app.ecowaste.utils import normalize_text

bp = Blueprint("recycling_credits", __name__)

_MEMBERS = ("resident", "business", "admin")


@bp.get("/recycling-credits")
@require_role(*_MEMBERS)
def overview():
    user = g.current_user
    period = normalize_period(request.args.get("period"))
    api = backend()
    try:
        summary = api.recycling_credits.summary(user.id, period)
        credits = api.recycling_credits.user_credits(user.id, limit=RECENT_CREDITS_LIMIT, sort="-createdAt").get("credits") or []
        achievements = achievement_list(api.recycling_credits.achievements(user.id))
    except BackendError as e:
        flash(f"Failed to load recycling credits data: {e.message}", "danger")
        summary, credits, achievements = {}, [], []
    return render_template(
        "admin/recycling_credits/overview.html",
        summary=summary,
        tier=loyalty_tier(summary),
        credits=credits,
        achievements=achievements,
        period=period,
        periods=BILLING_PERIODS,
        payout_methods=PAYOUT_METHODS,
    )


def _fetch_credit(credit_id: str) -> dict:
    try:
        data = backend().recycling_credits.details(credit_id)
    except BackendError as e:
        if e.status == 404:
            abort(404)
        raise
    credit = data.get("credit") or data
    if not credit:
        abort(404)
    return credit


@bp.post("/recycling-credits/<credit_id>/payout")
@require_role(*_MEMBERS)
def payout(credit_id: str):
    method = normalize_text(request.form.get("paymentMethod"))
    try:
        credit = _fetch_credit(credit_id)
    except BackendError as e:
        flash(f"Failed to load credit: {e.message}", "danger")
        return redirect(url_for("recycling_credits.overview"))

    errors = validate_payout(credit, method)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("recycling_credits.overview"))

    try:
        backend().recycling_credits.payout(credit_id, method, g.current_user.id)
    except BackendError as e:
        flash(e.message or "Failed to process payout", "danger")
        return redirect(url_for("recycling_credits.overview"))
    flash("Payout processed successfully!", "success")
    return redirect(url_for("recycling_credits.overview"))


@bp.post("/recycling-credits/<credit_id>/dispute")
@require_role(*_MEMBERS)
def dispute(credit_id: str):
    reason = normalize_text(request.form.get("reason"))
    if not reason:
        flash("A reason is required to dispute a credit.", "danger")
        return redirect(url_for("recycling_credits.overview"))
    try:
        backend().recycling_credits.dispute(credit_id, reason, g.current_user.id)
    except BackendError as e:
        flash(e.message or "Failed to dispute credit", "danger")
        return redirect(url_for("recycling_credits.overview"))
    flash("Credit disputed. An administrator will review it.", "success")
    return redirect(url_for("recycling_credits.overview"))
