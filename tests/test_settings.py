from datetime import date

from werkzeug.datastructures import MultiDict

from app.ecowaste.modules.settings.service import (
    default_settings,
    merge_settings,
    parse_settings_form,
    preview_bin_id,
    preview_device_id,
)


def test_defaults_and_previews():
    settings = default_settings(date(2025, 1, 1))
    counters = settings["idCounters"]
    assert settings["paymentRates"]["hazardous"] == 100
    assert preview_bin_id(counters) == "BIN-2025-1000"
    assert preview_device_id(counters) == "DEV-SNS-001"


def test_preview_pads_small_counters():
    assert preview_bin_id({"binIdPrefix": "BN", "binIdYear": 2026, "binIdCounter": 7}) == "BN-2026-007"
    assert preview_device_id({"deviceIdPrefix": "SNS", "deviceIdCounter": 42}) == "SNS-042"


def test_merge_keeps_defaults_for_missing_keys():
    merged = merge_settings({"paymentRates": {"general": 40}, "idCounters": None})
    assert merged["paymentRates"]["general"] == 40
    assert merged["paymentRates"]["recyclable"] == 15
    assert merged["idCounters"]["binIdCounter"] == 1000
    assert merge_settings(None)["idCounters"]["deviceIdPrefix"] == "DEV-SNS"


def test_parse_form():
    form = MultiDict(
        {
            "paymentRates.general": "35.5",
            "paymentRates.recyclable": "abc",
            "idCounters.binIdPrefix": " bn ",
            "idCounters.binIdCounter": "0",
            "idCounters.deviceIdPrefix": "",
        }
    )
    settings = parse_settings_form(form, today=date(2025, 1, 1))
    assert settings["paymentRates"]["general"] == 35.5
    assert settings["paymentRates"]["recyclable"] == 0.0
    assert settings["idCounters"] == {
        "binIdPrefix": "BN",
        "binIdYear": 2025,
        "binIdCounter": 1,
        "deviceIdPrefix": "DEV-SNS",
        "deviceIdCounter": 1,
    }


def test_settings_page_falls_back_to_defaults(client, fake_backend, login):
    login("admin")
    fake_backend.on("GET", "/settings", {"message": "down"}, status=500)
    r = client.get("/settings")
    assert r.status_code == 200
    assert b"Could not load saved settings; showing defaults." in r.data
    assert f"BIN-{date.today().year}-1000".encode() in r.data


def test_settings_save(client, fake_backend, login, csrf, flashed):
    login("admin")
    fake_backend.on("PUT", "/settings", {"settings": {}})
    r = client.post("/settings", data={"csrf_token": csrf, "paymentRates.general": "31"})
    assert r.status_code == 302
    body = fake_backend.calls_to("PUT", "/settings")[0].json
    assert body["paymentRates"]["general"] == 31.0
    assert ("success", "Settings updated successfully!") in flashed()


def test_settings_admin_only(client, login):
    login("collector")
    assert client.get("/settings").status_code == 403
