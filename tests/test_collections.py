from datetime import date, datetime, timezone

from werkzeug.datastructures import MultiDict

from app.ecowaste.modules.collections.service import (
    DEFAULT_DEVICE_SETTINGS,
    build_approval_payload,
    build_completion_payload,
    build_scan_result,
    build_schedule_payload,
    collection_summary,
    parse_device_settings,
    todays_collections,
    validate_schedule_payload,
)


def test_schedule_payload_combines_date_and_time():
    payload = build_schedule_payload(
        MultiDict({"wasteBin": "b1", "collector": "u-col", "scheduledDate": "2025-06-01", "scheduledTime": "14:30"})
    )
    assert payload["scheduledDate"] == "2025-06-01T14:30:00"
    assert payload["wasteData"] == {"wasteType": "general", "priority": "normal"}
    assert validate_schedule_payload(payload) == []

    missing = build_schedule_payload(MultiDict({"priority": "whenever"}))
    errors = validate_schedule_payload(missing)
    assert "Waste bin is required." in errors
    assert "Collector is required." in errors
    assert "Scheduled date and time are required." in errors
    assert any(e.startswith("Invalid priority") for e in errors)


def test_completion_payload_validation():
    payload, errors = build_completion_payload(MultiDict({"weight": "12.5", "volume": "0.2", "verificationMethod": "qr_scan"}))
    assert errors == []
    assert payload == {"weight": 12.5, "volume": 0.2, "verification": {"method": "qr_scan"}}

    _, errors = build_completion_payload(MultiDict({"weight": "-1", "verificationMethod": "telepathy"}))
    assert len(errors) == 3


def test_approval_payload_optional_fields():
    payload, errors = build_approval_payload(
        MultiDict({"collector": "u-col", "scheduledDate": "2025-06-02", "verifiedWeight": "30", "quality": "good"})
    )
    assert errors == []
    assert payload["scheduledDate"] == "2025-06-02T09:00:00"
    assert payload["verifiedWeight"] == 30.0
    assert payload["quality"] == "good"

    payload, errors = build_approval_payload(MultiDict({"collector": "u-col", "scheduledDate": "2025-06-02"}))
    assert "verifiedWeight" not in payload
    assert "quality" not in payload

    _, errors = build_approval_payload(MultiDict({"quality": "shiny"}))
    assert len(errors) == 3


def test_today_and_summary():
    today = date(2025, 6, 1)
    cols = [
        {"status": "scheduled", "scheduledDate": "2025-06-01T08:00:00Z"},
        {"status": "completed", "scheduledDate": "2025-06-01T10:00:00Z"},
        {"status": "missed", "scheduledDate": "2025-05-30T10:00:00Z"},
        {"status": "requested"},
    ]
    assert len(todays_collections(cols, today)) == 2
    assert collection_summary(cols, today) == {"today": 2, "completed": 1, "in_progress": 0, "requested": 1, "missed": 1}


def test_scan_result_shape():
    now = datetime(2025, 6, 1, 8, 30, tzinfo=timezone.utc)
    ok = build_scan_result(True, device_id=None, now=now)
    assert ok == {
        "success": True,
        "method": "rfid_scan",
        "confidence": 95,
        "deviceId": "DEVICE-001",
        "timestamp": "2025-06-01T08:30:00Z",
    }
    failed = build_scan_result(False, device_id="DEV-9", now=now)
    assert failed["confidence"] == 0
    assert failed["deviceId"] == "DEV-9"


def test_device_settings_are_clamped():
    out = parse_device_settings(
        MultiDict({"audioVolume": "150", "displayBrightness": "-5", "vibrationIntensity": "abc", "language": "fr", "timeoutDuration": "10"})
    )
    assert out["audioVolume"] == 100
    assert out["displayBrightness"] == 0
    assert out["vibrationIntensity"] == DEFAULT_DEVICE_SETTINGS["vibrationIntensity"]
    assert out["language"] == "en"
    assert out["timeoutDuration"] == 1000

    kept = parse_device_settings(MultiDict({"language": "xx"}), current={"language": "ta"})
    assert kept["language"] == "ta"


def test_settings_saved_and_synced(client, fake_backend, login, csrf, flashed):
    login("collector")
    fake_backend.on("PUT", "/feedback/device-settings/DEV-SNS-007", {"success": True})
    r = client.post(
        "/collector-feedback/settings",
        data={"csrf_token": csrf, "audioVolume": "40", "language": "si"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    with client.session_transaction() as sess:
        assert sess["device_settings"]["audioVolume"] == 40
        assert sess["device_settings"]["language"] == "si"
    assert fake_backend.calls_to("PUT", "/feedback/device-settings/DEV-SNS-007")[0].json["audioVolume"] == 40
    assert ("success", "Settings saved successfully") in flashed()


def test_settings_kept_locally_when_sync_fails(client, fake_backend, login, csrf, flashed):
    login("collector")
    fake_backend.on("PUT", "/feedback/device-settings/DEV-SNS-007", {"error": "Device offline"}, status=503)
    client.post("/collector-feedback/settings", data={"csrf_token": csrf, "audioVolume": "55"})
    with client.session_transaction() as sess:
        assert sess["device_settings"]["audioVolume"] == 55
    assert ("warning", "Settings saved locally but failed to sync: Device offline") in flashed()


def test_feedback_scan_renders_result(client, fake_backend, login, csrf):
    login("collector")
    fake_backend.on("POST", "/feedback/generate", {"success": True, "feedback": {"visual": {"message": "Bin BIN-1 collected"}}})
    fake_backend.on("GET", "/collections", {"collections": []})
    r = client.post("/collector-feedback/scan", data={"csrf_token": csrf, "collection_id": "c1", "outcome": "success"})
    assert r.status_code == 200
    assert b"Bin BIN-1 collected" in r.data
    body = fake_backend.calls_to("POST", "/feedback/generate")[0].json
    assert body["collectionId"] == "c1"
    assert body["scanResult"]["deviceId"] == "DEV-SNS-007"


def test_collector_sees_only_own_collections(client, fake_backend, login):
    login("collector")
    fake_backend.on("GET", "/collections", {"collections": [{"_id": "c1", "status": "scheduled", "scheduledDate": "2025-06-01T08:00:00Z"}]})
    r = client.get("/collections")
    assert r.status_code == 200
    assert fake_backend.calls_to("GET", "/collections")[0].params == {"limit": 100, "collector": "u-col"}
    # Collectors are not offered the scheduling form
    assert b"Schedule a collection" not in r.data


def test_complete_sends_weight_and_method(client, fake_backend, login, csrf):
    login("collector")
    fake_backend.on("PATCH", "/collections/c1/complete", {"collection": {"_id": "c1", "status": "completed"}})
    r = client.post(
        "/collections/c1/complete",
        data={"csrf_token": csrf, "weight": "8", "volume": "0.1", "verificationMethod": "rfid_scan"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert fake_backend.calls_to("PATCH", "/collections/c1/complete")[0].json == {
        "weight": 8.0,
        "volume": 0.1,
        "verification": {"method": "rfid_scan"},
    }
