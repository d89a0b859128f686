from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from custom_components.ev_charge_window.planner.normalise import (
    PriceDataError,
    current_price,
    estimated_day,
    fill_day,
    mwh_to_kwh,
    parse_esios_values,
    to_market_time,
    unwrap_mirror_contents,
)

DAY = date(2025, 1, 15)


def esios_payload(values: list[dict]) -> dict:
    return {"indicator": {"id": 1001, "name": "PVPC", "values": values}}


def esios_value(hour: int, value: float, geo_id: int = 8741, minute: int = 0, day: str = "2025-01-15") -> dict:
    return {
        "value": value,
        "datetime": f"{day}T{hour:02d}:{minute:02d}:00.000+01:00",
        "datetime_utc": f"{day}T{hour:02d}:{minute:02d}:00Z",
        "geo_id": geo_id,
        "geo_name": "Península",
    }


def test_mwh_to_kwh():
    assert mwh_to_kwh(150.2) == pytest.approx(0.1502)


def test_parse_esios_hourly_values_convert_to_kwh():
    payload = esios_payload([esios_value(h, 100.0 + h) for h in range(24)])
    hourly = parse_esios_values(payload, DAY)
    assert len(hourly) == 24
    assert hourly[0] == pytest.approx(0.100)
    assert hourly[23] == pytest.approx(0.123)


def test_parse_esios_uses_local_hour_of_timestamp():
    payload = esios_payload([{"value": 80.0, "datetime": "2025-01-15T00:00:00.000+01:00"}])
    hourly = parse_esios_values(payload, DAY)
    assert list(hourly) == [0]


def test_parse_esios_drops_other_geo_ids():
    payload = esios_payload([
        esios_value(0, 100.0),
        esios_value(0, 999.0, geo_id=8742),
    ])
    assert parse_esios_values(payload, DAY) == {0: pytest.approx(0.1)}


def test_parse_esios_averages_quarter_hours():
    payload = esios_payload([
        esios_value(5, 80.0, minute=0),
        esios_value(5, 100.0, minute=15),
        esios_value(5, 120.0, minute=30),
        esios_value(5, 100.0, minute=45),
    ])
    assert parse_esios_values(payload, DAY)[5] == pytest.approx(0.1)


def test_parse_esios_ignores_other_days_and_bad_values():
    payload = esios_payload([
        esios_value(1, 100.0),
        esios_value(2, 100.0, day="2025-01-16"),
        {"value": "n/a", "datetime": "2025-01-15T03:00:00.000+01:00"},
        {"value": 100.0, "datetime": "not a date"},
        "junk",
    ])
    assert list(parse_esios_values(payload, DAY)) == [1]


def test_parse_esios_error_payload_raises():
    with pytest.raises(PriceDataError):
        parse_esios_values({"errors": [{"code": 502, "detail": "not available"}]}, DAY)


@pytest.mark.parametrize("payload", [{}, {"indicator": {}}, esios_payload([]), esios_payload([esios_value(0, 1.0, day="2024-12-31")])])
def test_parse_esios_without_usable_values_raises(payload):
    with pytest.raises(PriceDataError):
        parse_esios_values(payload, DAY)


def test_unwrap_mirror_contents():
    inner = esios_payload([esios_value(0, 100.0)])
    assert unwrap_mirror_contents({"contents": json.dumps(inner), "status": {"http_code": 200}}) == inner


@pytest.mark.parametrize("payload", [{}, {"contents": ""}, {"contents": "<html>"}, {"contents": "[1, 2]"}])
def test_unwrap_mirror_contents_rejects_bad_bodies(payload):
    with pytest.raises(PriceDataError):
        unwrap_mirror_contents(payload)


def test_fill_day_repeats_previous_hour():
    points = fill_day(DAY, {0: 0.1, 1: 0.2, 3: 0.4})
    assert len(points) == 24
    assert [p.hour for p in points] == list(range(24))
    assert points[2].price == 0.2
    assert points[3].price == 0.4
    assert points[23].price == 0.4
    assert points[5].display_hour == "05:00"
    assert all(p.date == DAY for p in points)


def test_fill_day_missing_first_hour_uses_default():
    points = fill_day(DAY, {1: 0.3})
    assert points[0].price == 0.15
    assert points[1].price == 0.3


def test_estimated_day():
    day = estimated_day(DAY, error="mirror: timeout")
    assert day.provenance == "estimated"
    assert day.source == "estimate"
    assert not day.is_live
    assert day.error == "mirror: timeout"
    assert len(day.points) == 24
    assert day.points[3].price == 0.05
    assert day.points[20].price == 0.25


@pytest.mark.parametrize(
    "payload",
    [{"indicator": "oops"}, {"indicator": [1, 2]}, {"indicator": {"values": 5}}, {"indicator": {"values": {"a": 1}}}],
)
def test_parse_esios_malformed_shapes_raise_price_error(payload):
    with pytest.raises(PriceDataError):
        parse_esios_values(payload, DAY)


@pytest.mark.parametrize("contents", [5, ["{}"], {"indicator": {}}])
def test_unwrap_mirror_contents_rejects_non_string(contents):
    with pytest.raises(PriceDataError):
        unwrap_mirror_contents({"contents": contents})


# ----------------------------
# Market time
# ----------------------------
def test_to_market_time_uses_madrid_offsets():
    winter = to_market_time(datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc))
    summer = to_market_time(datetime(2025, 7, 1, 10, 0, tzinfo=timezone.utc))
    assert winter.hour == 11
    assert summer.hour == 12


def test_current_price_reads_market_hour():
    day = estimated_day(DAY)
    # 22:30 UTC is 23:30 in Madrid
    assert current_price(day, datetime(2025, 1, 15, 22, 30, tzinfo=timezone.utc)) == day.points[23].price
    # an install in New York at 17:30 local is still 23:30 in Madrid
    ny = timezone(timedelta(hours=-5))
    assert current_price(day, datetime(2025, 1, 15, 17, 30, tzinfo=ny)) == day.points[23].price


def test_current_price_outside_day_is_none():
    day = estimated_day(DAY)
    # 23:30 UTC is already the next day in Madrid
    assert current_price(day, datetime(2025, 1, 15, 23, 30, tzinfo=timezone.utc)) is None
    assert current_price(day, datetime(2025, 1, 14, 12, 0, tzinfo=timezone.utc)) is None
