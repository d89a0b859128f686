from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Dict, Optional

import aiohttp

from .const import (
    ESIOS_BASE_URL,
    ESIOS_INDICATOR_PVPC,
    GEO_ID_PENINSULA,
    HOURS_PER_DAY,
    MIRROR_URL,
    PROVENANCE_LIVE,
    REQUEST_TIMEOUT_S,
    SOURCE_ESIOS,
    SOURCE_MIRROR,
)
from .planner.normalise import (
    PriceDataError,
    PriceDay,
    estimated_day,
    fill_day,
    parse_esios_values,
    unwrap_mirror_contents,
)

_LOGGER = logging.getLogger(__name__)

_FETCH_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, PriceDataError, ValueError)


def esios_url(day: date, geo_id: int = GEO_ID_PENINSULA) -> str:
    d = day.isoformat()
    return (
        f"{ESIOS_BASE_URL}/{ESIOS_INDICATOR_PVPC}"
        f"?start_date={d}T00:00&end_date={d}T23:59&geo_ids={geo_id}"
    )


class EsiosPriceSource:
    """
    Hourly PVPC prices for one day, degrading through three tiers:

      1. ESIOS API directly (only when a token is configured)
      2. ESIOS through a public CORS mirror
      3. a static estimated price curve

    async_get_day never raises for fetch failures; the returned PriceDay
    says which tier answered and why earlier tiers failed.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        token: Optional[str] = None,
        geo_id: int = GEO_ID_PENINSULA,
        timeout_s: float = REQUEST_TIMEOUT_S,
    ) -> None:
        self._session = session
        self._token = token or None
        self._geo_id = geo_id
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)

    async def _get_json(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        async with self._session.get(url, timeout=self._timeout, **kwargs) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)
        if not isinstance(data, dict):
            raise PriceDataError("Unexpected response body (not a JSON object)")
        return data

    async def _fetch_direct(self, day: date) -> Dict[int, float]:
        headers = {
            "Accept": "application/json; application/vnd.esios-api-v1+json",
            "Content-Type": "application/json",
            "x-api-key": self._token or "",
        }
        payload = await self._get_json(esios_url(day, self._geo_id), headers=headers)
        return parse_esios_values(payload, day, self._geo_id)

    async def _fetch_mirror(self, day: date) -> Dict[int, float]:
        payload = await self._get_json(MIRROR_URL, params={"url": esios_url(day, self._geo_id)})
        return parse_esios_values(unwrap_mirror_contents(payload), day, self._geo_id)

    async def async_get_day(self, day: date) -> PriceDay:
        tiers = []
        if self._token:
            tiers.append((SOURCE_ESIOS, self._fetch_direct))
        tiers.append((SOURCE_MIRROR, self._fetch_mirror))

        last_error: Optional[str] = None
        for source, fetch in tiers:
            try:
                hourly = await fetch(day)
            except _FETCH_ERRORS as err:
                reason = str(err) or type(err).__name__
                last_error = f"{source}: {reason}"
                _LOGGER.warning("Price fetch for %s via %s failed: %s", day, source, reason)
                continue

            if len(hourly) < HOURS_PER_DAY:
                _LOGGER.debug("Filling %d missing hours for %s", HOURS_PER_DAY - len(hourly), day)
            return PriceDay(
                date=day,
                points=fill_day(day, hourly),
                provenance=PROVENANCE_LIVE,
                source=source,
            )

        _LOGGER.info("Using estimated prices for %s (%s)", day, last_error)
        return estimated_day(day, error=last_error)
