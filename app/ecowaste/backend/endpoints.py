"""
Endpoint groups for the waste-management REST backend.

Each group is a thin wrapper: it names the path and shapes the body, nothing
more. Billing, PAYT, route optimization, credits and ID generation are all
computed by the backend.
"""
from __future__ import annotations

import urllib.parse
from typing import Any

from app.ecowaste.backend.client import BackendClient

JSON = dict[str, Any]


def _q(value: Any) -> str:
    return urllib.parse.quote(str(value), safe="")


class _Group:
    def __init__(self, client: BackendClient):
        self.c = client


class AuthAPI(_Group):
    def register(self, data: JSON) -> JSON:
        return self.c.post("/auth/register", data)

    def login(self, email: str, password: str) -> JSON:
        return self.c.post("/auth/login", {"email": email, "password": password})

    def logout(self) -> JSON:
        return self.c.post("/auth/logout")

    def me(self) -> JSON:
        return self.c.get("/auth/me")

    def verify_token(self, token: str) -> JSON:
        return self.c.post("/auth/verify-token", {"token": token})

    def refresh_token(self) -> JSON:
        return self.c.post("/auth/refresh-token")

    def change_password(self, data: JSON) -> JSON:
        return self.c.post("/auth/change-password", data)


class UserAPI(_Group):
    def list(self, **params: Any) -> JSON:
        return self.c.get("/users", params)

    def get(self, user_id: str) -> JSON:
        return self.c.get(f"/users/{_q(user_id)}")

    def create(self, data: JSON) -> JSON:
        return self.c.post("/users", data)

    def update(self, user_id: str, data: JSON) -> JSON:
        return self.c.put(f"/users/{_q(user_id)}", data)

    def update_status(self, user_id: str, status: str) -> JSON:
        return self.c.patch(f"/users/{_q(user_id)}/status", {"accountStatus": status})

    def delete(self, user_id: str) -> JSON:
        return self.c.delete(f"/users/{_q(user_id)}")

    def waste_bins(self, user_id: str) -> JSON:
        return self.c.get(f"/users/{_q(user_id)}/waste-bins")

    def collections(self, user_id: str, **params: Any) -> JSON:
        return self.c.get(f"/users/{_q(user_id)}/collections", params)

    def payments(self, user_id: str, **params: Any) -> JSON:
        return self.c.get(f"/users/{_q(user_id)}/payments", params)

    def stats(self) -> JSON:
        return self.c.get("/users/stats/overview")


class WasteBinAPI(_Group):
    def create(self, data: JSON) -> JSON:
        return self.c.post("/waste-bins", data)

    def list(self, **params: Any) -> JSON:
        return self.c.get("/waste-bins", params)

    def get(self, bin_id: str) -> JSON:
        return self.c.get(f"/waste-bins/{_q(bin_id)}")

    def update(self, bin_id: str, data: JSON) -> JSON:
        return self.c.put(f"/waste-bins/{_q(bin_id)}", data)

    def delete(self, bin_id: str) -> JSON:
        return self.c.delete(f"/waste-bins/{_q(bin_id)}")

    def update_sensor(self, bin_id: str, data: JSON) -> JSON:
        return self.c.patch(f"/waste-bins/{_q(bin_id)}/sensor", data)

    def add_maintenance(self, bin_id: str, data: JSON) -> JSON:
        return self.c.post(f"/waste-bins/{_q(bin_id)}/maintenance", data)

    def nearby(self, lat: float, lng: float, radius: float | None = None) -> JSON:
        return self.c.get(f"/waste-bins/nearby/{_q(lat)}/{_q(lng)}", {"radius": radius})

    def stats(self) -> JSON:
        return self.c.get("/waste-bins/stats/overview")

    def scan_device(self, device_id: str, data: JSON) -> JSON:
        return self.c.post(f"/waste-bins/scan/{_q(device_id)}", data)


class CollectionAPI(_Group):
    def create(self, data: JSON) -> JSON:
        return self.c.post("/collections", data)

    def list(self, **params: Any) -> JSON:
        return self.c.get("/collections", params)

    def get(self, collection_id: str) -> JSON:
        return self.c.get(f"/collections/{_q(collection_id)}")

    def complete(self, collection_id: str, data: JSON) -> JSON:
        return self.c.patch(f"/collections/{_q(collection_id)}/complete", data)

    def start(self, collection_id: str) -> JSON:
        return self.c.patch(f"/collections/{_q(collection_id)}/start")

    def miss(self, collection_id: str, reason: str) -> JSON:
        return self.c.patch(f"/collections/{_q(collection_id)}/miss", {"reason": reason})

    def approve(self, collection_id: str, data: JSON) -> JSON:
        return self.c.patch(f"/collections/{_q(collection_id)}/approve", data)

    def reject(self, collection_id: str, reason: str) -> JSON:
        return self.c.patch(f"/collections/{_q(collection_id)}/reject", {"reason": reason})

    def stats(self) -> JSON:
        return self.c.get("/collections/stats/overview")


class PaymentAPI(_Group):
    def create(self, data: JSON) -> JSON:
        return self.c.post("/payments", data)

    def list(self, **params: Any) -> JSON:
        return self.c.get("/payments", params)

    def get(self, payment_id: str) -> JSON:
        return self.c.get(f"/payments/{_q(payment_id)}")

    def process(self, payment_id: str, data: JSON) -> JSON:
        return self.c.post(f"/payments/{_q(payment_id)}/process", data)

    def payhere_checkout(self, payment_id: str) -> JSON:
        return self.c.post("/payments/payment-payhere", {"paymentId": payment_id})


class AnalyticsAPI(_Group):
    def generate(self, data: JSON) -> JSON:
        return self.c.post("/analytics/generate", data)

    def list(self) -> JSON:
        return self.c.get("/analytics")

    def get(self, report_id: str) -> JSON:
        return self.c.get(f"/analytics/{_q(report_id)}")


class BinRequestAPI(_Group):
    def create(self, data: JSON) -> JSON:
        return self.c.post("/bin-requests", data)

    def list(self, **params: Any) -> JSON:
        return self.c.get("/bin-requests", params)

    def get(self, request_id: str) -> JSON:
        return self.c.get(f"/bin-requests/{_q(request_id)}")

    def update(self, request_id: str, data: JSON) -> JSON:
        return self.c.put(f"/bin-requests/{_q(request_id)}", data)

    def delete(self, request_id: str) -> JSON:
        return self.c.delete(f"/bin-requests/{_q(request_id)}")

    def approve(self, request_id: str, data: JSON) -> JSON:
        return self.c.patch(f"/bin-requests/{_q(request_id)}/approve", data)

    def reject(self, request_id: str, data: JSON) -> JSON:
        return self.c.patch(f"/bin-requests/{_q(request_id)}/reject", data)

    def complete(self, request_id: str, data: JSON | None = None) -> JSON:
        return self.c.patch(f"/bin-requests/{_q(request_id)}/complete", data or {})

    def stats(self) -> JSON:
        return self.c.get("/bin-requests/stats/overview")


class BillingAPI(_Group):
    def generate_my_bill(self, **params: Any) -> JSON:
        return self.c.post("/billing/generate-my-bill", {}, params=params)

    def generate_user_bill(self, user_id: str, **params: Any) -> JSON:
        return self.c.post(f"/billing/generate-user-bill/{_q(user_id)}", {}, params=params)

    def generate_all_bills(self, **params: Any) -> JSON:
        return self.c.post("/billing/generate-all-bills", {}, params=params)

    def manual_bill(self, user_id: str, data: JSON) -> JSON:
        return self.c.post(f"/billing/manual-bill/{_q(user_id)}", data)

    def rates(self, **params: Any) -> JSON:
        return self.c.get("/billing/rates", params)

    def my_summary(self) -> JSON:
        return self.c.get("/billing/my-summary")

    def user_summary(self, user_id: str) -> JSON:
        return self.c.get(f"/billing/summary/{_q(user_id)}")


class PaytAPI(_Group):
    def calculate_bill(self, user_id: str, billing_period: JSON, options: JSON | None = None) -> JSON:
        return self.c.post(
            "/payt/calculate-bill",
            {"userId": user_id, "billingPeriod": billing_period, "options": options or {}},
        )

    def generate_invoice(self, bill_data: JSON, options: JSON | None = None) -> JSON:
        return self.c.post("/payt/generate-invoice", {"billData": bill_data, "options": options or {}})

    def waste_statistics(self, user_id: str, period: str) -> JSON:
        return self.c.get(f"/payt/waste-statistics/{_q(user_id)}", {"period": period})

    def recommendations(self, user_id: str) -> JSON:
        return self.c.get(f"/payt/optimization-recommendations/{_q(user_id)}")

    def rates(self, district: str | None = None) -> JSON:
        return self.c.get("/payt/billing-rates", {"district": district})

    def create_rate(self, data: JSON) -> JSON:
        return self.c.post("/payt/billing-rates", data)

    def update_rate(self, rate_id: str, data: JSON) -> JSON:
        return self.c.put(f"/payt/billing-rates/{_q(rate_id)}", data)


class RouteOptimizationAPI(_Group):
    def optimize(self, route_id: str, algorithm: str, options: JSON | None = None) -> JSON:
        return self.c.post(
            "/route-optimization/optimize",
            {"routeId": route_id, "algorithm": algorithm, "options": options or {}},
        )

    def optimize_multiple(self, route_ids: list[str], algorithm: str, options: JSON | None = None) -> JSON:
        return self.c.post(
            "/route-optimization/optimize-multiple",
            {"routeIds": route_ids, "algorithm": algorithm, "options": options or {}},
        )

    def recommendations(self, route_id: str) -> JSON:
        return self.c.get(f"/route-optimization/recommendations/{_q(route_id)}")

    def history(self, route_id: str) -> JSON:
        return self.c.get(f"/route-optimization/history/{_q(route_id)}")


class RecyclingCreditsAPI(_Group):
    def process_collection(self, collection_id: str, verifier_id: str) -> JSON:
        return self.c.post("/recycling-credits/process", {"collectionId": collection_id, "verifierId": verifier_id})

    def summary(self, user_id: str, period: str) -> JSON:
        return self.c.get(f"/recycling-credits/summary/{_q(user_id)}", {"period": period})

    def payout(self, credit_id: str, payment_method: str, processed_by: str) -> JSON:
        return self.c.post(
            "/recycling-credits/payout",
            {"creditId": credit_id, "paymentMethod": payment_method, "processedBy": processed_by},
        )

    def user_credits(self, user_id: str, **params: Any) -> JSON:
        return self.c.get(f"/recycling-credits/user/{_q(user_id)}", params)

    def details(self, credit_id: str) -> JSON:
        return self.c.get(f"/recycling-credits/{_q(credit_id)}")

    def dispute(self, credit_id: str, reason: str, disputed_by: str) -> JSON:
        return self.c.post(f"/recycling-credits/{_q(credit_id)}/dispute", {"reason": reason, "disputedBy": disputed_by})

    def report(self, scope: str, scope_id: str, period: str) -> JSON:
        return self.c.post("/recycling-credits/report", {"scope": scope, "scopeId": scope_id, "period": period})

    def achievements(self, user_id: str) -> JSON:
        return self.c.get(f"/recycling-credits/achievements/{_q(user_id)}")


class FeedbackAPI(_Group):
    def generate(self, collection_id: str, scan_result: JSON, options: JSON | None = None) -> JSON:
        return self.c.post(
            "/feedback/generate",
            {"collectionId": collection_id, "scanResult": scan_result, "options": options or {}},
        )

    def generate_bulk(self, collection_ids: list[str], scan_results: list[JSON], options: JSON | None = None) -> JSON:
        return self.c.post(
            "/feedback/generate-bulk",
            {"collectionIds": collection_ids, "scanResults": scan_results, "options": options or {}},
        )

    def update_device_settings(self, device_id: str, settings: JSON) -> JSON:
        return self.c.put(f"/feedback/device-settings/{_q(device_id)}", settings)

    def history(self, collection_id: str) -> JSON:
        return self.c.get(f"/feedback/history/{_q(collection_id)}")


class EnvironmentalAPI(_Group):
    def calculate_impact(self, collection_id: str) -> JSON:
        return self.c.post("/environmental/calculate-impact", {"collectionId": collection_id})

    def aggregate(self, query: JSON, period: str) -> JSON:
        return self.c.post("/environmental/aggregate", {"query": query, "period": period})

    def report(self, scope: str, scope_id: str, period: str) -> JSON:
        return self.c.post("/environmental/report", {"scope": scope, "scopeId": scope_id, "period": period})

    def carbon_credits(self, impact_ids: list[str]) -> JSON:
        return self.c.post("/environmental/carbon-credits", {"impactIds": impact_ids})

    def user_impact(self, user_id: str, period: str) -> JSON:
        return self.c.get(f"/environmental/user-impact/{_q(user_id)}", {"period": period})

    def district_impact(self, district: str, period: str) -> JSON:
        return self.c.get(f"/environmental/district-impact/{_q(district)}", {"period": period})

    def system_impact(self, period: str) -> JSON:
        return self.c.get("/environmental/system-impact", {"period": period})

    def impact_details(self, impact_id: str) -> JSON:
        return self.c.get(f"/environmental/impact/{_q(impact_id)}")

    def sustainability(self, scope: str, scope_id: str | None) -> JSON:
        return self.c.get("/environmental/sustainability", {"scope": scope, "scopeId": scope_id})


class SettingsAPI(_Group):
    def get(self) -> JSON:
        return self.c.get("/settings")

    def update(self, settings: JSON) -> JSON:
        return self.c.put("/settings", settings)

    def generate_bin_id(self) -> JSON:
        return self.c.post("/settings/generate-bin-id")

    def generate_device_id(self) -> JSON:
        return self.c.post("/settings/generate-device-id")

    def preview_ids(self) -> JSON:
        return self.c.get("/settings/preview-ids")


class TruckAPI(_Group):
    def list(self, **params: Any) -> JSON:
        return self.c.get("/trucks", params)

    def get(self, truck_id: str) -> JSON:
        return self.c.get(f"/trucks/{_q(truck_id)}")

    def create(self, data: JSON) -> JSON:
        return self.c.post("/trucks", data)

    def update(self, truck_id: str, data: JSON) -> JSON:
        return self.c.put(f"/trucks/{_q(truck_id)}", data)

    def delete(self, truck_id: str) -> JSON:
        return self.c.delete(f"/trucks/{_q(truck_id)}")

    def available(self) -> JSON:
        return self.c.get("/trucks/available")

    def assign(self, truck_id: str, collector_id: str) -> JSON:
        return self.c.post("/trucks/assign", {"truckId": truck_id, "collectorId": collector_id})


class LocationAPI(_Group):
    def districts(self) -> JSON:
        return self.c.get("/locations/districts")

    def cities(self, district: str) -> JSON:
        return self.c.get(f"/locations/districts/{_q(district)}/cities")

    def validate(self, district: str, city: str) -> JSON:
        return self.c.post("/locations/validate", {"district": district, "city": city})


class RouteAPI(_Group):
    def list(self, **params: Any) -> JSON:
        return self.c.get("/routes", params)

    def get(self, route_id: str) -> JSON:
        return self.c.get(f"/routes/{_q(route_id)}")

    def create(self, data: JSON) -> JSON:
        return self.c.post("/routes", data)

    def update(self, route_id: str, data: JSON) -> JSON:
        return self.c.put(f"/routes/{_q(route_id)}", data)

    def delete(self, route_id: str) -> JSON:
        return self.c.delete(f"/routes/{_q(route_id)}")

    def optimize(self, route_id: str, algorithm: str = "dijkstra") -> JSON:
        return self.c.post(f"/routes/{_q(route_id)}/optimize", {"algorithm": algorithm})

    def for_collector(self, collector_id: str) -> JSON:
        return self.c.get(f"/routes/collector/{_q(collector_id)}")

    def stats(self) -> JSON:
        return self.c.get("/routes/stats/overview")

    def mark_bin_collected(self, route_id: str, bin_id: str) -> JSON:
        return self.c.patch(f"/routes/{_q(route_id)}/bins/{_q(bin_id)}/complete")

    def revert_bin(self, route_id: str, bin_id: str) -> JSON:
        return self.c.patch(f"/routes/{_q(route_id)}/bins/{_q(bin_id)}/revert")


class Backend:
    """All endpoint groups bound to one client (one token)."""

    def __init__(self, client: BackendClient):
        self.client = client
        self.auth = AuthAPI(client)
        self.users = UserAPI(client)
        self.waste_bins = WasteBinAPI(client)
        self.collections = CollectionAPI(client)
        self.payments = PaymentAPI(client)
        self.analytics = AnalyticsAPI(client)
        self.bin_requests = BinRequestAPI(client)
        self.billing = BillingAPI(client)
        self.payt = PaytAPI(client)
        self.route_optimization = RouteOptimizationAPI(client)
        self.recycling_credits = RecyclingCreditsAPI(client)
        self.feedback = FeedbackAPI(client)
        self.environmental = EnvironmentalAPI(client)
        self.settings = SettingsAPI(client)
        self.trucks = TruckAPI(client)
        self.locations = LocationAPI(client)
        self.routes = RouteAPI(client)
