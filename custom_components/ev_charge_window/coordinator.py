from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, Optional

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

from .const import (
    CONF_ESIOS_TOKEN,
    DEFAULTS,
    DOMAIN,
    OPT_BATTERY_KWH,
    OPT_CHARGER_POWER_KW,
    OPT_MANUAL_PRICE,
    OPT_PLAN_TOMORROW,
    OPT_START_SOC,
    OPT_TARGET_SOC,
    UPDATE_INTERVAL_MIN,
)
from .planner.core import ChargingOption, PlannerInputs, estimate_session, plan_charging
from .planner.normalise import PriceDay, current_price, to_market_time
from .price_source import EsiosPriceSource

_LOGGER = logging.getLogger(__name__)


def _safe_float(val: Any, default: float) -> float:
    try:
        if val is None:
            return default
        return float(val)
    except (ValueError, TypeError):
        return default


def _option_dict(opt: ChargingOption, rank: int) -> Dict[str, Any]:
    return {
        "rank": rank,
        "label": opt.label,
        "start_hour": opt.start_hour,
        "end_hour": opt.end_hour,
        "window": opt.display_window(),
        "avg_price": round(opt.avg_price, 5),
        "total_cost": round(opt.total_cost, 2),
        "is_nightly": bool(opt.is_nightly),
    }


class EVChargeWindowCoordinator(DataUpdateCoordinator[Dict[str, Any]]):
    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        super().__init__(
            hass,
            _LOGGER,
            name=f"{DOMAIN}:{entry.title}",
            update_interval=timedelta(minutes=UPDATE_INTERVAL_MIN),
        )
        self.hass = hass
        self.entry = entry

        # live price days never change once published; estimated ones are retried
        self._live_days: Dict[date, PriceDay] = {}

    def _option(self, key: str) -> Any:
        return self.entry.options.get(key, DEFAULTS[key])

    def _planner_inputs(self) -> PlannerInputs:
        return PlannerInputs(
            battery_capacity_kwh=_safe_float(self._option(OPT_BATTERY_KWH), DEFAULTS[OPT_BATTERY_KWH]),
            start_soc_pct=_safe_float(self._option(OPT_START_SOC), DEFAULTS[OPT_START_SOC]),
            target_soc_pct=_safe_float(self._option(OPT_TARGET_SOC), DEFAULTS[OPT_TARGET_SOC]),
            charger_power_kw=_safe_float(self._option(OPT_CHARGER_POWER_KW), DEFAULTS[OPT_CHARGER_POWER_KW]),
        )

    def _target_day(self) -> date:
        today = to_market_time(dt_util.now()).date()
        if bool(self._option(OPT_PLAN_TOMORROW)):
            return today + timedelta(days=1)
        return today

    def clear_price_cache(self) -> None:
        self._live_days.clear()

    async def _async_price_day(self, day: date) -> PriceDay:
        cached = self._live_days.get(day)
        if cached is not None:
            _LOGGER.debug("Using cached %s prices for %s", cached.source, day)
            return cached

        token: Optional[str] = self.entry.options.get(CONF_ESIOS_TOKEN, self.entry.data.get(CONF_ESIOS_TOKEN))
        source = EsiosPriceSource(async_get_clientsession(self.hass), token=token)
        price_day = await source.async_get_day(day)

        if price_day.is_live:
            # keep only the day being planned and its neighbour
            self._live_days = {d: p for d, p in self._live_days.items() if abs((d - day).days) <= 1}
            self._live_days[day] = price_day
        return price_day

    async def _async_update_data(self) -> Dict[str, Any]:
        day = self._target_day()
        price_day = await self._async_price_day(day)
        inputs = self._planner_inputs()

        out = plan_charging(price_day.points, inputs)

        manual_price = _safe_float(self._option(OPT_MANUAL_PRICE), DEFAULTS[OPT_MANUAL_PRICE])
        estimate = estimate_session(inputs, manual_price)
        hour_price = current_price(price_day, dt_util.now())

        _LOGGER.debug(
            "Planned %s (%s): %.2f kWh, %d slots, %d options",
            day, price_day.provenance, out.demand.kwh_needed, out.demand.slots_needed, len(out.options),
        )

        return {
            "date": day.isoformat(),
            "provenance": price_day.provenance,
            "source": price_day.source,
            "error": price_day.error,
            "prices": [
                {"hour": p.hour, "display_hour": p.display_hour, "price": p.price}
                for p in price_day.points
            ],
            "demand": {
                "kwh_needed": out.demand.kwh_needed,
                "hours_needed": out.demand.hours_needed,
                "slots_needed": out.demand.slots_needed,
            },
            "options": [_option_dict(o, i + 1) for i, o in enumerate(out.options)],
            "estimate": {
                "price": manual_price,
                "current_hour_price": hour_price,
                "energy_kwh": estimate.energy_kwh,
                "cost": estimate.cost,
                "duration_hours": estimate.duration_hours,
                "duration_text": estimate.duration_text,
            },
        }
