from datetime import date, datetime

import pytest
from werkzeug.datastructures import MultiDict

from app.ecowaste import utils


def test_nest_form_builds_nested_dicts_and_drops_csrf():
    form = MultiDict(
        [
            ("csrf_token", "x"),
            ("name", " Rita "),
            ("address.city", "Kandy"),
            ("address.coordinates.latitude", "7.29"),
            ("days", "monday"),
            ("days", "friday"),
        ]
    )
    out = utils.nest_form(form, list_fields=("days", "tags"))
    assert out == {
        "name": "Rita",
        "address": {"city": "Kandy", "coordinates": {"latitude": "7.29"}},
        "days": ["monday", "friday"],
        "tags": [],
    }


def test_coordinates_from_form_defaults():
    assert utils.coordinates_from_form({}) == utils.DEFAULT_COORDINATES
    assert utils.coordinates_from_form({"latitude": "7.1", "longitude": "junk"}) == {"latitude": 7.1, "longitude": 0.0}
    assert utils.coordinates_from_form({"latitude": ""}, default={"latitude": 1.0, "longitude": 2.0}) == {
        "latitude": 1.0,
        "longitude": 2.0,
    }


def test_status_counts_and_filter():
    items = [{"status": "pending"}, {"status": "pending"}, {"status": "approved"}, {"status": "weird"}]
    counts = utils.status_counts(items, ("all", "pending", "approved", "rejected"))
    assert counts == {"all": 4, "pending": 2, "approved": 1, "rejected": 0}
    assert len(utils.filter_by_status(items, "pending")) == 2
    assert len(utils.filter_by_status(items, "all")) == 4
    assert len(utils.filter_by_status(items, "")) == 4


def test_dig_and_entity_id():
    obj = {"sensorData": {"fillLevel": 40}, "owner": {"_id": "u1", "name": "Rita"}}
    assert utils.dig(obj, "sensorData.fillLevel") == 40
    assert utils.dig(obj, "sensorData.battery", 100) == 100
    assert utils.dig(obj, "owner.name.first", "?") == "?"
    assert utils.entity_id(obj["owner"]) == "u1"
    assert utils.entity_id("u2") == "u2"
    assert utils.entity_id(None) is None
    assert utils.entity_id({}) is None


def test_address_helpers():
    addr = {"street": "2 Lake Rd", "city": "Kandy", "district": "", "postalCode": "20000"}
    assert utils.construct_address(addr) == "2 Lake Rd, Kandy, 20000"
    parsed = utils.parse_address("2 Lake Rd, Kandy")
    assert parsed["street"] == "2 Lake Rd"
    assert parsed["city"] == "Kandy"
    assert parsed["district"] == ""
    assert utils.parse_address("") is None
    assert not utils.is_valid_address(addr)
    assert utils.short_address(addr) == "2 Lake Rd, Kandy"


@pytest.mark.parametrize(
    "value,expected",
    [(0, "0"), (None, "0"), (12, "12.0"), (1500, "1.5K"), (2_300_000, "2.3M")],
)
def test_format_number(value, expected):
    assert utils.format_number(value) == expected


def test_format_currency_and_dates():
    assert utils.format_currency(1234.5) == "LKR 1,234.50"
    assert utils.format_currency("bad") == "LKR 0.00"
    assert utils.format_date("2025-03-04T10:15:00Z") == "2025-03-04"
    assert utils.format_date(date(2025, 1, 2), "%d/%m/%Y") == "02/01/2025"
    assert utils.format_date(None, empty="-") == "-"
    assert utils.to_datetime("2025-03-04T10:15:00Z") == datetime.fromisoformat("2025-03-04T10:15:00+00:00")


def test_badges_and_fill_bands():
    assert utils.status_badge("completed") == "success"
    assert utils.status_badge("in_progress") == "info"
    assert utils.status_badge("MISSED") == "danger"
    assert utils.status_badge(None) == "secondary"
    assert utils.fill_level_band(85) == "danger"
    assert utils.fill_level_band(60) == "orange"
    assert utils.fill_level_band("12") == "success"
    assert utils.humanize("in_progress") == "in progress"


def test_parse_numbers():
    assert utils.parse_int("3.7") == 3
    assert utils.parse_int("x", 5) == 5
    assert utils.parse_float(" 2.5 ") == 2.5
    assert utils.parse_float("", None) is None
    assert utils.clamp(150, 0, 100) == 100
