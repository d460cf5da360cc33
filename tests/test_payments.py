from datetime import datetime, timezone

from app.ecowaste.modules.payments.service import (
    PAYHERE_LIVE_URL,
    PAYHERE_SANDBOX_URL,
    bill_collection_weight,
    build_checkout_fields,
    checkout_url,
    current_billing_period,
    normalize_period,
    payment_totals,
)

PAYMENT_DATA = {
    "merchant_id": "",
    "order_id": "ORD-77",
    "items": "Waste collection bill",
    "currency": "LKR",
    "amount": "1500.00",
    "hash": "A1B2C3",
    "first_name": "Rita",
    "notify_url": None,
}


def test_checkout_fields_pass_backend_values_through():
    fields = build_checkout_fields(
        PAYMENT_DATA,
        return_url="https://portal/return",
        cancel_url="https://portal/cancel",
        notify_url="",
        merchant_id="1221149",
    )
    assert fields["hash"] == "A1B2C3"
    assert fields["amount"] == "1500.00"
    assert fields["merchant_id"] == "1221149"
    assert fields["country"] == "Sri Lanka"
    assert fields["return_url"] == "https://portal/return"
    assert "notify_url" not in fields


def test_checkout_url_by_mode():
    assert checkout_url(True) == PAYHERE_SANDBOX_URL
    assert checkout_url(False) == PAYHERE_LIVE_URL


def test_totals_and_periods():
    payments = [
        {"status": "completed", "totals": {"totalAmount": 1000}},
        {"status": "pending", "totals": {"totalAmount": "250.5"}},
        {"status": "failed", "totals": {"totalAmount": 99}},
    ]
    assert payment_totals(payments) == {"paid": 1000.0, "pending": 250.5}
    assert normalize_period("yearly") == "yearly"
    assert normalize_period("decade") == "monthly"
    period = current_billing_period(datetime(2025, 6, 18, 12, 0, tzinfo=timezone.utc))
    assert period == {"startDate": "2025-06-01T00:00:00+00:00", "endDate": "2025-06-18T12:00:00+00:00"}
    assert bill_collection_weight({"collections": [{"weight": 2.5}, {"weight": "1.5"}, {}]}) == 4.0


def test_checkout_renders_autosubmit_form(client, fake_backend, login, csrf):
    login("resident")
    fake_backend.on("POST", "/payments/payment-payhere", {"success": True, "paymentData": PAYMENT_DATA})
    r = client.post("/payments/p1/checkout", data={"csrf_token": csrf})
    assert r.status_code == 200
    assert PAYHERE_SANDBOX_URL.encode() in r.data
    assert b'name="hash" value="A1B2C3"' in r.data
    assert b'name="merchant_id" value="1221149"' in r.data
    assert b"payment_id=p1" in r.data
    assert fake_backend.calls_to("POST", "/payments/payment-payhere")[0].json == {"paymentId": "p1"}


def test_checkout_failure_redirects(client, fake_backend, login, csrf, flashed):
    login("resident")
    fake_backend.on("POST", "/payments/payment-payhere", {"success": False, "message": "Payment already completed"})
    r = client.post("/payments/p1/checkout", data={"csrf_token": csrf}, follow_redirects=False)
    assert r.status_code == 302
    assert ("danger", "Payment already completed") in flashed()


def test_admin_cannot_checkout(client, login, csrf):
    login("admin")
    r = client.post("/payments/p1/checkout", data={"csrf_token": csrf})
    assert r.status_code == 403


def test_payhere_return_success_processes_payment(client, fake_backend, login, flashed):
    login("resident")
    fake_backend.on("POST", "/payments/p1/process", {"payment": {"_id": "p1", "status": "completed"}})
    r = client.get("/payments/return?status=success&payment_id=p1&order_id=ORD-77", follow_redirects=False)
    assert r.status_code == 302
    assert "status=completed" in r.headers["Location"]
    assert fake_backend.calls_to("POST", "/payments/p1/process")[0].json == {"transactionId": "ORD-77", "provider": "PayHere"}
    assert ("success", "Payment processed successfully!") in flashed()


def test_payhere_return_cancelled_does_nothing(client, fake_backend, login, flashed):
    login("resident")
    r = client.get("/payments/return?status=cancelled&payment_id=p1", follow_redirects=False)
    assert r.status_code == 302
    assert fake_backend.calls == []
    assert ("info", "Payment was cancelled.") in flashed()


def test_payhere_return_without_order_is_not_processed(client, fake_backend, login, flashed):
    login("resident")
    client.get("/payments/return?status=success&payment_id=p1")
    assert fake_backend.calls_to("POST", "/payments/p1/process") == []
    assert ("warning", "Payment was not completed.") in flashed()


def test_payment_list_tabs(client, fake_backend, login):
    login("business")
    fake_backend.on(
        "GET",
        "/payments",
        {
            "payments": [
                {"_id": "p1", "invoiceNumber": "INV-001", "status": "pending", "totals": {"totalAmount": 500}},
                {"_id": "p2", "invoiceNumber": "INV-002", "status": "completed", "totals": {"totalAmount": 700}},
            ]
        },
    )
    r = client.get("/payments?status=completed")
    assert r.status_code == 200
    assert b"INV-002" in r.data
    assert b"INV-001" not in r.data
    assert b"LKR 700.00" in r.data
    assert b"LKR 500.00" in r.data


def test_payt_invoice_requires_calculated_bill(client, fake_backend, login, csrf, flashed):
    login("resident")
    client.post("/payt-billing/invoice", data={"csrf_token": csrf, "bill_data": "not json"})
    assert ("danger", "Calculate the bill before generating an invoice.") in flashed()

    fake_backend.on("POST", "/payt/generate-invoice", {"success": True})
    r = client.post(
        "/payt-billing/invoice",
        data={"csrf_token": csrf, "bill_data": '{"totals": {"totalAmount": 900}}'},
        follow_redirects=False,
    )
    assert r.status_code == 302
    body = fake_backend.calls_to("POST", "/payt/generate-invoice")[0].json
    assert body["billData"] == {"totals": {"totalAmount": 900}}


def test_payt_calculate_uses_current_month(client, fake_backend, login, csrf):
    login("resident")
    fake_backend.on("POST", "/payt/calculate-bill", {"totals": {"totalAmount": 900}, "collections": [{"weight": 3}]})
    r = client.post("/payt-billing/calculate", data={"csrf_token": csrf, "period": "monthly"})
    assert r.status_code == 200
    assert b"LKR 900.00" in r.data
    body = fake_backend.calls_to("POST", "/payt/calculate-bill")[0].json
    assert body["userId"] == "u-res"
    assert body["billingPeriod"]["startDate"][8:10] == "01"
