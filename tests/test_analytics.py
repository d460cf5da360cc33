import json
from datetime import date

from werkzeug.datastructures import MultiDict

from app.ecowaste.models import CurrentUser
from app.ecowaste.modules.analytics.service import build_report_request, report_filename, scope_id_for


def test_report_request():
    body, errors = build_report_request(MultiDict({"type": "monthly", "startDate": "2025-01-01", "endDate": "2025-01-31"}))
    assert errors == []
    assert body == {
        "type": "monthly",
        "dateRange": {"startDate": "2025-01-01", "endDate": "2025-01-31"},
        "includeCharts": True,
    }
    body, errors = build_report_request(MultiDict({"startDate": "2025-01-01"}))
    assert body["type"] == "weekly"
    assert body["dateRange"] is None
    _, errors = build_report_request(MultiDict({"type": "hourly"}))
    assert errors and errors[0].startswith("Invalid report type")


def test_report_filename():
    assert report_filename("daily", date(2025, 2, 3)) == "waste-management-report-daily-2025-02-03.json"


def test_scope_ids():
    user = CurrentUser.from_payload({"_id": "u-1", "userType": "admin", "address": {"city": "Galle"}})
    assert scope_id_for("user", user) == "u-1"
    assert scope_id_for("district", user) == "Galle"
    assert scope_id_for("system", user) == "all"
    cityless = CurrentUser.from_payload({"_id": "u-2", "userType": "admin"})
    assert scope_id_for("district", cityless) == "Unknown"


def test_report_download(client, fake_backend, login, csrf):
    login("admin")
    fake_backend.on("POST", "/analytics/generate", {"report": {"totalCollections": 12}})
    r = client.post("/analytics/report", data={"csrf_token": csrf, "type": "daily"})
    assert r.status_code == 200
    assert r.mimetype == "application/json"
    expected = f"waste-management-report-daily-{date.today().isoformat()}.json"
    assert expected in r.headers["Content-Disposition"]
    assert r.headers["Content-Disposition"].startswith("attachment")
    assert json.loads(r.data) == {"report": {"totalCollections": 12}}
    assert fake_backend.calls_to("POST", "/analytics/generate")[0].json == {
        "type": "daily",
        "dateRange": None,
        "includeCharts": True,
    }


def test_report_rejects_inverted_range(client, fake_backend, login, csrf, flashed):
    login("admin")
    r = client.post(
        "/analytics/report",
        data={"csrf_token": csrf, "type": "weekly", "startDate": "2025-03-10", "endDate": "2025-03-01"},
    )
    assert r.status_code == 302
    assert ("danger", "Start date must be before end date.") in flashed()
    assert fake_backend.calls == []


def test_environmental_district_scope_uses_city(client, fake_backend, login):
    login("admin")
    fake_backend.on("GET", "/environmental/district-impact/Colombo", {"totalImpact": {}})
    r = client.get("/environmental?scope=district&period=yearly")
    assert r.status_code == 200
    call = fake_backend.calls_to("GET", "/environmental/district-impact/Colombo")[0]
    assert call.params == {"period": "yearly"}


def test_analytics_admin_only(client, login):
    login("resident")
    assert client.get("/analytics").status_code == 403
