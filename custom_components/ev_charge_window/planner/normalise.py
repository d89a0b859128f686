from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from ..const import (
    DEFAULT_GAP_PRICE,
    FALLBACK_PRICES,
    GEO_ID_PENINSULA,
    HOURS_PER_DAY,
    MARKET_TIMEZONE,
    PROVENANCE_ESTIMATED,
    SOURCE_ESTIMATE,
)
from .core import PricePoint


class PriceDataError(ValueError):
    """A price payload could not be turned into hourly prices."""


@dataclass(frozen=True)
class PriceDay:
    """
    One calendar day of hourly prices, as handed to the planner.

    - points always holds HOURS_PER_DAY entries in hour order
    - provenance is "live" or "estimated"
    - source names the tier that produced the data (esios | mirror | estimate)
    """
    date: date
    points: Tuple[PricePoint, ...]
    provenance: str
    source: str
    error: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.provenance != PROVENANCE_ESTIMATED


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _safe_float(val: Any) -> Optional[float]:
    try:
        if val is None:
            return None
        return float(val)
    except (ValueError, TypeError):
        return None


def _parse_dt(val: Any) -> Optional[datetime]:
    """
    Accept datetime objects or ISO strings, e.g. ESIOS
    "2025-01-15T00:00:00.000+01:00". Returns None when unparseable.
    """
    if isinstance(val, datetime):
        return val

    if isinstance(val, str):
        try:
            return datetime.fromisoformat(val.replace("Z", "+00:00"))
        except ValueError:
            return None

    return None


def mwh_to_kwh(price: float) -> float:
    return price / 1000.0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def unwrap_mirror_contents(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    The CORS mirror wraps the upstream body as a JSON string in "contents".
    """
    contents = payload.get("contents")
    if not contents:
        raise PriceDataError("Mirror returned empty contents")
    if not isinstance(contents, str):
        raise PriceDataError("Mirror contents are not a JSON string")
    try:
        inner = json.loads(contents)
    except ValueError as err:
        raise PriceDataError(f"Mirror contents are not JSON: {err}") from err
    if not isinstance(inner, dict):
        raise PriceDataError("Mirror contents are not a JSON object")
    return inner


def parse_esios_values(
    payload: Mapping[str, Any],
    day: date,
    geo_id: Optional[int] = GEO_ID_PENINSULA,
) -> Dict[int, float]:
    """
    Convert an ESIOS indicator response into {hour: €/kWh} for one day.

    - values are €/MWh and converted to €/kWh
    - the hour is read in the timestamp's own offset (local market time)
    - items tagged with another geo_id are dropped
    - several values inside one hour (quarter-hourly publication) are averaged
    """
    if payload.get("errors"):
        raise PriceDataError("ESIOS returned an error (prices likely not published yet)")

    indicator = payload.get("indicator") or {}
    if not isinstance(indicator, dict):
        raise PriceDataError("ESIOS indicator is not a JSON object")

    values = indicator.get("values")
    if not values:
        raise PriceDataError(f"No ESIOS values available for {day.isoformat()}")
    if not isinstance(values, list):
        raise PriceDataError("ESIOS values are not a list")

    buckets: Dict[int, List[float]] = {}
    for item in values:
        if not isinstance(item, dict):
            continue

        item_geo = item.get("geo_id")
        if geo_id is not None and item_geo is not None and _safe_float(item_geo) != geo_id:
            continue

        dt = _parse_dt(item.get("datetime"))
        if dt is None or dt.date() != day:
            continue

        price = _safe_float(item.get("value"))
        if price is None:
            continue

        buckets.setdefault(dt.hour, []).append(mwh_to_kwh(price))

    if not buckets:
        raise PriceDataError(f"No usable ESIOS values for {day.isoformat()}")

    return {hour: sum(prices) / len(prices) for hour, prices in buckets.items()}


def fill_day(day: date, hourly: Mapping[int, float]) -> Tuple[PricePoint, ...]:
    """
    Build exactly one point per hour. A missing hour (DST change, partial
    publication) repeats the previous hour's price.
    """
    out: List[PricePoint] = []
    for hour in range(HOURS_PER_DAY):
        price = hourly.get(hour)
        if price is None:
            price = out[-1].price if out else DEFAULT_GAP_PRICE
        out.append(PricePoint(hour=hour, price=float(price), date=day))
    return tuple(out)


def estimated_day(day: date, error: Optional[str] = None) -> PriceDay:
    points = tuple(
        PricePoint(hour=hour, price=price, date=day)
        for hour, price in enumerate(FALLBACK_PRICES)
    )
    return PriceDay(
        date=day,
        points=points,
        provenance=PROVENANCE_ESTIMATED,
        source=SOURCE_ESTIMATE,
        error=error,
    )


def to_market_time(dt: datetime) -> datetime:
    """Express a tz-aware datetime in the market's local time (hour indices of a PriceDay)."""
    return dt.astimezone(ZoneInfo(MARKET_TIMEZONE))


def current_price(price_day: PriceDay, now: datetime) -> Optional[float]:
    """Price of the running market hour, or None when now falls outside the day."""
    local = to_market_time(now)
    if local.date() != price_day.date:
        return None
    return price_day.points[local.hour].price
