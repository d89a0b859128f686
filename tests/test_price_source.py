from __future__ import annotations

import asyncio
import json
from datetime import date

import aiohttp
import pytest

from custom_components.ev_charge_window.const import MIRROR_URL
from custom_components.ev_charge_window.price_source import EsiosPriceSource, esios_url

DAY = date(2025, 1, 15)


# ----------------------------
# Fakes
# ----------------------------
class FakeResponse:
    def __init__(self, body=None, status: int = 200, exc: Exception | None = None) -> None:
        self.body = body
        self.status = status
        self.exc = exc

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise aiohttp.ClientError(f"HTTP {self.status}")

    async def json(self, content_type=None):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body

    async def __aenter__(self):
        if self.exc is not None:
            raise self.exc
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, direct: FakeResponse | None = None, mirror: FakeResponse | None = None) -> None:
        self.direct = direct
        self.mirror = mirror
        self.calls: list[tuple[str, dict]] = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        resp = self.mirror if url.startswith(MIRROR_URL) else self.direct
        if resp is None:
            raise AssertionError(f"unexpected request to {url}")
        return resp


def esios_body(price_mwh: float = 100.0, hours=range(24)) -> dict:
    return {
        "indicator": {
            "values": [
                {"value": price_mwh + h, "datetime": f"2025-01-15T{h:02d}:00:00.000+01:00", "geo_id": 8741}
                for h in hours
            ]
        }
    }


def mirror_body(inner: dict) -> dict:
    return {"contents": json.dumps(inner), "status": {"http_code": 200}}


def run(coro):
    return asyncio.run(coro)


# ----------------------------
# Tests
# ----------------------------
def test_esios_url():
    assert esios_url(DAY) == (
        "https://api.esios.ree.es/indicators/1001"
        "?start_date=2025-01-15T00:00&end_date=2025-01-15T23:59&geo_ids=8741"
    )


def test_direct_api_used_when_token_configured():
    session = FakeSession(direct=FakeResponse(esios_body()))
    day = run(EsiosPriceSource(session, token="secret").async_get_day(DAY))

    assert day.provenance == "live"
    assert day.source == "esios"
    assert day.error is None
    assert len(day.points) == 24
    assert day.points[0].price == pytest.approx(0.1)

    assert len(session.calls) == 1
    url, kwargs = session.calls[0]
    assert url == esios_url(DAY)
    assert kwargs["headers"]["x-api-key"] == "secret"


def test_mirror_used_without_token():
    session = FakeSession(mirror=FakeResponse(mirror_body(esios_body())))
    day = run(EsiosPriceSource(session).async_get_day(DAY))

    assert day.source == "mirror"
    assert day.is_live
    assert len(session.calls) == 1
    url, kwargs = session.calls[0]
    assert url == MIRROR_URL
    assert kwargs["params"] == {"url": esios_url(DAY)}


def test_mirror_used_when_direct_api_fails():
    session = FakeSession(
        direct=FakeResponse(exc=aiohttp.ClientConnectionError("refused")),
        mirror=FakeResponse(mirror_body(esios_body())),
    )
    day = run(EsiosPriceSource(session, token="secret").async_get_day(DAY))

    assert day.source == "mirror"
    assert [c[0] for c in session.calls] == [esios_url(DAY), MIRROR_URL]


def test_partial_day_is_gap_filled():
    session = FakeSession(mirror=FakeResponse(mirror_body(esios_body(hours=range(0, 23)))))
    day = run(EsiosPriceSource(session).async_get_day(DAY))

    assert len(day.points) == 24
    assert day.points[23].price == day.points[22].price


def test_all_tiers_failing_falls_back_to_estimate():
    session = FakeSession(
        direct=FakeResponse(status=401),
        mirror=FakeResponse(exc=asyncio.TimeoutError()),
    )
    day = run(EsiosPriceSource(session, token="secret").async_get_day(DAY))

    assert day.provenance == "estimated"
    assert day.source == "estimate"
    assert day.error == "mirror: TimeoutError"
    assert len(day.points) == 24


def test_unpublished_day_falls_back_to_estimate():
    body = {"errors": [{"code": 502, "detail": "No values"}]}
    session = FakeSession(mirror=FakeResponse(mirror_body(body)))
    day = run(EsiosPriceSource(session).async_get_day(DAY))

    assert day.provenance == "estimated"
    assert day.error.startswith("mirror:")


def test_non_json_body_falls_back_to_estimate():
    session = FakeSession(mirror=FakeResponse(ValueError("Expecting value")))
    day = run(EsiosPriceSource(session).async_get_day(DAY))

    assert day.provenance == "estimated"
    assert day.error == "mirror: Expecting value"


def test_non_object_body_falls_back_to_estimate():
    session = FakeSession(direct=FakeResponse([1, 2, 3]), mirror=FakeResponse(None))
    day = run(EsiosPriceSource(session, token="t").async_get_day(DAY))

    assert day.provenance == "estimated"
    assert len(session.calls) == 2


@pytest.mark.parametrize(
    "body",
    [
        mirror_body({"indicator": "oops"}),
        mirror_body({"indicator": {"values": 5}}),
        {"contents": 5},
        {"contents": {"indicator": {}}},
    ],
    ids=["indicator-not-object", "values-not-list", "contents-int", "contents-dict"],
)
def test_malformed_mirror_bodies_fall_back_to_estimate(body):
    session = FakeSession(mirror=FakeResponse(body))
    day = run(EsiosPriceSource(session).async_get_day(DAY))

    assert day.provenance == "estimated"
    assert day.error.startswith("mirror:")
    assert len(day.points) == 24


def test_malformed_direct_body_tries_mirror():
    session = FakeSession(
        direct=FakeResponse({"indicator": {"values": "none"}}),
        mirror=FakeResponse(mirror_body(esios_body())),
    )
    day = run(EsiosPriceSource(session, token="secret").async_get_day(DAY))

    assert day.source == "mirror"
    assert day.is_live
