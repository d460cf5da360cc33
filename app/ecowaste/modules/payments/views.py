from __future__ import annotations

import json

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.payments.service import (
    BILLING_PERIODS,
    PAYMENT_STATUSES,
    bill_collection_weight,
    build_checkout_fields,
    checkout_url,
    current_billing_period,
    normalize_period,
    payment_totals,
    process_payload,
)
from app.ecowaste.rbac import require_role
from app.ecowaste.utils import filter_by_status, normalize_text, status_counts

bp = Blueprint("payments", __name__)

_PAYERS = ("resident", "business", "admin")


# ---------- List ----------
@bp.get("/payments")
@require_role(*_PAYERS)
def payments_list():
    status = normalize_text(request.args.get("status")) or "all"
    if status not in PAYMENT_STATUSES:
        status = "all"
    try:
        payments = backend().payments.list(limit=100).get("payments") or []
    except BackendError as e:
        flash(f"Failed to load payments: {e.message}", "danger")
        payments = []
    return render_template(
        "admin/payments/list.html",
        payments=filter_by_status(payments, status),
        counts=status_counts(payments, PAYMENT_STATUSES),
        totals=payment_totals(payments),
        status=status,
        statuses=PAYMENT_STATUSES,
    )


# ---------- PayHere return ----------
@bp.get("/payments/return")
@require_role(*_PAYERS)
def payhere_return():
    status = normalize_text(request.args.get("status"))
    order_id = normalize_text(request.args.get("order_id"))
    payment_id = normalize_text(request.args.get("payment_id"))

    if status == "cancelled":
        flash("Payment was cancelled.", "info")
        return redirect(url_for("payments.payments_list"))
    if status != "success" or not order_id or not payment_id:
        flash("Payment was not completed.", "warning")
        return redirect(url_for("payments.payments_list"))

    try:
        backend().payments.process(payment_id, process_payload(order_id))
    except BackendError as e:
        current_app.logger.warning("PayHere processing failed payment=%s order=%s: %s", payment_id, order_id, e.message)
        flash(e.message or "Payment processing failed", "danger")
        return redirect(url_for("payments.payments_list"))

    current_app.logger.info("PayHere payment processed payment=%s order=%s", payment_id, order_id)
    flash("Payment processed successfully!", "success")
    return redirect(url_for("payments.payments_list", status="completed"))


# ---------- Detail ----------
@bp.get("/payments/<payment_id>")
@require_role(*_PAYERS)
def payment_detail(payment_id: str):
    try:
        payment = backend().payments.get(payment_id).get("payment")
    except BackendError as e:
        if e.status == 404:
            abort(404)
        flash(f"Failed to load payment: {e.message}", "danger")
        return redirect(url_for("payments.payments_list"))
    if not payment:
        abort(404)
    return render_template("admin/payments/detail.html", payment=payment)


# ---------- Checkout ----------
@bp.post("/payments/<payment_id>/checkout")
@require_role("resident", "business")
def checkout(payment_id: str):
    try:
        data = backend().payments.payhere_checkout(payment_id)
    except BackendError as e:
        flash(e.message or "Failed to initialize payment", "danger")
        return redirect(url_for("payments.payments_list"))

    payment_data = data.get("paymentData") or {}
    if not data.get("success") or not payment_data:
        flash(data.get("message") or "Failed to initialize payment", "danger")
        return redirect(url_for("payments.payments_list"))

    cfg = current_app.config
    fields = build_checkout_fields(
        payment_data,
        return_url=url_for("payments.payhere_return", status="success", payment_id=payment_id, _external=True),
        cancel_url=url_for("payments.payhere_return", status="cancelled", payment_id=payment_id, _external=True),
        notify_url=cfg.get("PAYHERE_NOTIFY_URL") or "",
        merchant_id=cfg.get("PAYHERE_MERCHANT_ID") or "",
    )
    current_app.logger.info("PayHere checkout started payment=%s order=%s", payment_id, fields.get("order_id"))
    return render_template(
        "admin/payments/checkout.html",
        action=checkout_url(bool(cfg.get("PAYHERE_SANDBOX"))),
        fields=fields,
    )


# ---------- PAYT billing ----------
@bp.get("/payt-billing")
@require_role(*_PAYERS)
def payt_billing():
    user = g.current_user
    period = normalize_period(request.args.get("period"))
    api = backend()
    try:
        stats = api.payt.waste_statistics(user.id, period)
        recommendations = api.payt.recommendations(user.id).get("recommendations") or []
    except BackendError as e:
        flash(f"Failed to load billing data: {e.message}", "danger")
        stats, recommendations = {}, []
    return render_template(
        "admin/payments/payt.html",
        stats=stats,
        recommendations=recommendations,
        period=period,
        periods=BILLING_PERIODS,
        bill=None,
    )


@bp.post("/payt-billing/calculate")
@require_role(*_PAYERS)
def payt_calculate():
    user = g.current_user
    period = normalize_period(request.form.get("period"))
    try:
        bill = backend().payt.calculate_bill(user.id, current_billing_period(), {})
    except BackendError as e:
        flash(e.message or "Failed to calculate bill", "danger")
        return redirect(url_for("payments.payt_billing", period=period))
    return render_template(
        "admin/payments/payt.html",
        stats={},
        recommendations=[],
        period=period,
        periods=BILLING_PERIODS,
        bill=bill,
        bill_json=json.dumps(bill),
        bill_weight=bill_collection_weight(bill),
    )


@bp.post("/payt-billing/invoice")
@require_role(*_PAYERS)
def payt_invoice():
    try:
        bill = json.loads(request.form.get("bill_data") or "")
    except ValueError:
        bill = None
    if not isinstance(bill, dict):
        flash("Calculate the bill before generating an invoice.", "danger")
        return redirect(url_for("payments.payt_billing"))
    try:
        backend().payt.generate_invoice(bill, {})
    except BackendError as e:
        flash(e.message or "Failed to generate invoice", "danger")
        return redirect(url_for("payments.payt_billing"))
    flash("Invoice generated successfully!", "success")
    return redirect(url_for("payments.payments_list"))


@bp.post("/payt-billing/generate-all")
@require_role("admin")
def generate_all_bills():
    try:
        data = backend().billing.generate_all_bills()
    except BackendError as e:
        flash(e.message or "Failed to generate bills", "danger")
        return redirect(url_for("payments.payt_billing"))
    flash(data.get("message") or "Bills generated for all users", "success")
    return redirect(url_for("payments.payments_list"))
