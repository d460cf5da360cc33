from datetime import date, timedelta

from app.ecowaste.modules.dashboard.service import (
    admin_overview,
    build_special_collection,
    member_overview,
    validate_special_collection_payload,
)
from app.ecowaste.modules.recycling_credits.service import achievement_list, loyalty_tier, validate_payout

TODAY = date(2025, 6, 1)
BIN = {"_id": "b-1", "binId": "BIN-2025-1001", "location": {"coordinates": [79.86, 6.92], "address": "2 Lake Rd"}}


def _special(**overrides):
    payload = {
        "wasteBin": "b-1",
        "collectionType": "bulk",
        "description": "Old sofa",
        "preferredDate": "2025-06-03",
        "contactPhone": "0770000002",
    }
    payload.update(overrides)
    return payload


def test_special_collection_validation():
    assert validate_special_collection_payload(_special(), today=TODAY) == []
    assert validate_special_collection_payload(_special(preferredDate="2025-05-31"), today=TODAY) == [
        "Preferred date cannot be in the past."
    ]
    errors = validate_special_collection_payload(_special(collectionType="furniture", description=" ", contactPhone=""), today=TODAY)
    assert len(errors) == 3
    assert "Preferred date is required." in validate_special_collection_payload(_special(preferredDate=""), today=TODAY)


def test_special_collection_waste_type_mapping():
    assert build_special_collection(_special(), "u-res", BIN)["wasteData"] == {"wasteType": "general"}
    assert build_special_collection(_special(collectionType="garden"), "u-res", BIN)["wasteData"] == {"wasteType": "general"}
    body = build_special_collection(_special(collectionType="hazardous"), "u-res", BIN)
    assert body["wasteData"] == {"wasteType": "hazardous"}
    assert body["collectionType"] == "special"
    assert body["status"] == "requested"
    assert body["requestedBy"] == "u-res"
    assert body["specialRequest"]["category"] == "hazardous"


def test_special_collection_carries_bin_location_and_verification():
    body = build_special_collection(_special(), "u-res", BIN)
    assert body["wasteBin"] == "b-1"
    assert body["location"] == {"coordinates": [79.86, 6.92], "address": "2 Lake Rd"}
    assert body["verification"] == {"method": "manual_entry"}
    unplaced = build_special_collection(_special(), "u-res", {"_id": "b-2"})
    assert unplaced["wasteBin"] == "b-2"
    assert unplaced["location"] == {"coordinates": [0, 0], "address": ""}


def test_special_collection_requires_bin():
    assert validate_special_collection_payload(_special(wasteBin=""), today=TODAY) == ["Please select a waste bin."]


def test_overviews():
    overview = admin_overview({"overview": {"needsCollection": 4}}, {"overview": {"missed": 2}}, {})
    assert overview["needs_attention"] == 6
    assert admin_overview({}, {}, {})["needs_attention"] == 0
    member = member_overview({"wasteBins": [{"_id": "b1"}]}, {"collections": [{"_id": str(i)} for i in range(8)]})
    assert member["bin_count"] == 1
    assert len(member["recent_activity"]) == 5


def test_admin_dashboard(client, fake_backend, login):
    login("admin")
    fake_backend.on("GET", "/waste-bins/stats/overview", {"overview": {"totalBins": 42, "needsCollection": 3}})
    fake_backend.on("GET", "/collections/stats/overview", {"overview": {"missed": 1}})
    fake_backend.on("GET", "/users/stats/overview", {"overview": {"totalUsers": 9}})
    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b"42" in r.data
    assert b'<div class="fs-3 text-danger">4</div>' in r.data
    assert b"Schedule a special collection" not in r.data


def test_member_dashboard_falls_back_on_backend_error(client, fake_backend, login):
    login("resident")
    fake_backend.on("GET", "/waste-bins", {"message": "down"}, status=503)
    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b"Failed to load dashboard data" in r.data
    assert b"Schedule a special collection" in r.data
    assert fake_backend.calls_to("GET", "/waste-bins")[0].params == {"owner": "u-res"}


def test_special_collection_defaults_phone_to_profile(client, fake_backend, login, csrf, flashed):
    login("resident")
    fake_backend.on("GET", "/waste-bins/b-1", {"wasteBin": BIN})
    fake_backend.on("POST", "/collections", {"collection": {"_id": "c-1"}})
    preferred = (date.today() + timedelta(days=2)).isoformat()
    r = client.post(
        "/dashboard/special-collection",
        data={
            "csrf_token": csrf,
            "wasteBin": "b-1",
            "collectionType": "electronic",
            "description": "Old TV",
            "preferredDate": preferred,
        },
    )
    assert r.status_code == 302
    body = fake_backend.calls_to("POST", "/collections")[0].json
    assert body["wasteBin"] == "b-1"
    assert body["location"]["coordinates"] == [79.86, 6.92]
    assert body["verification"]["method"] == "manual_entry"
    assert body["specialRequest"]["contactPhone"] == "0770000002"
    assert ("success", f"Special collection for electronic scheduled for {preferred}") in flashed()


def test_special_collection_without_bin_is_refused(client, fake_backend, login, csrf, flashed):
    login("resident")
    preferred = (date.today() + timedelta(days=2)).isoformat()
    r = client.post(
        "/dashboard/special-collection",
        data={"csrf_token": csrf, "collectionType": "bulk", "description": "Sofa", "preferredDate": preferred},
    )
    assert r.status_code == 302
    assert ("danger", "Please select a waste bin.") in flashed()
    assert fake_backend.calls == []


def test_dashboard_form_lists_own_bins(client, fake_backend, login):
    login("resident")
    fake_backend.on("GET", "/waste-bins", {"wasteBins": [BIN]})
    fake_backend.on("GET", "/collections", {"collections": []})
    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b'<option value="b-1">BIN-2025-1001' in r.data


def test_bin_collection_request_uses_bin_location(client, fake_backend, login, csrf, flashed):
    login("business")
    fake_backend.on("GET", "/waste-bins/b-1", {"wasteBin": BIN})
    fake_backend.on("POST", "/collections", {"collection": {"_id": "c-2"}})
    preferred = (date.today() + timedelta(days=1)).isoformat()
    r = client.post(
        "/waste-bins/b-1/request-collection",
        data={"csrf_token": csrf, "collectionType": "garden", "description": "Branches", "preferredDate": preferred},
    )
    assert r.status_code == 302
    body = fake_backend.calls_to("POST", "/collections")[0].json
    assert body["wasteBin"] == "b-1"
    assert body["location"] == {"coordinates": [79.86, 6.92], "address": "2 Lake Rd"}
    assert body["verification"] == {"method": "manual_entry"}
    assert body["wasteData"] == {"wasteType": "general"}
    assert body["specialRequest"]["contactPhone"] == "0770000003"
    assert ("success", "Collection requested successfully!") in flashed()


def test_bin_collection_request_for_unknown_bin(client, fake_backend, login, csrf):
    login("resident")
    fake_backend.on("GET", "/waste-bins/nope", {"error": "Waste bin not found"}, status=404)
    preferred = (date.today() + timedelta(days=1)).isoformat()
    r = client.post(
        "/waste-bins/nope/request-collection",
        data={"csrf_token": csrf, "description": "Sofa", "preferredDate": preferred},
    )
    assert r.status_code == 404
    assert fake_backend.calls_to("POST", "/collections") == []


def test_special_collection_is_for_customers(client, login, csrf):
    login("collector")
    r = client.post("/dashboard/special-collection", data={"csrf_token": csrf})
    assert r.status_code == 403


def test_credit_helpers():
    assert loyalty_tier({}) == "Bronze"
    assert loyalty_tier({"loyaltyTier": "gold"}) == "Gold"
    assert achievement_list({"items": [{"name": "First drop"}]}) == [{"name": "First drop"}]
    assert achievement_list({"achievements": []}) == []
    assert achievement_list({}) == []
    assert validate_payout({"status": "verified"}, "bank_transfer") == []
    assert validate_payout({"status": "pending"}, "bank_transfer") == ["Only verified credits can be paid out."]
    assert len(validate_payout({"status": "verified"}, "cash")) == 1


def test_payout_of_unverified_credit_is_refused(client, fake_backend, login, csrf, flashed):
    login("resident")
    fake_backend.on("GET", "/recycling-credits/cr-1", {"credit": {"_id": "cr-1", "status": "pending"}})
    r = client.post("/recycling-credits/cr-1/payout", data={"csrf_token": csrf, "paymentMethod": "bank_transfer"})
    assert r.status_code == 302
    assert ("danger", "Only verified credits can be paid out.") in flashed()
    assert fake_backend.calls_to("POST", "/recycling-credits/payout") == []


def test_payout_of_verified_credit(client, fake_backend, login, csrf, flashed):
    login("business")
    fake_backend.on("GET", "/recycling-credits/cr-1", {"credit": {"_id": "cr-1", "status": "verified"}})
    fake_backend.on("POST", "/recycling-credits/payout", {"success": True})
    r = client.post("/recycling-credits/cr-1/payout", data={"csrf_token": csrf, "paymentMethod": "mobile_wallet"})
    assert r.status_code == 302
    assert fake_backend.calls_to("POST", "/recycling-credits/payout")[0].json == {
        "creditId": "cr-1",
        "paymentMethod": "mobile_wallet",
        "processedBy": "u-biz",
    }
    assert ("success", "Payout processed successfully!") in flashed()
