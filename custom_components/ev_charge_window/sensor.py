from __future__ import annotations

from homeassistant.components.sensor import SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import (
    DOMAIN,
    LABEL_ALTERNATIVE,
    LABEL_CHEAPEST,
    LABEL_NIGHT,
    OPTION_NAMES,
)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities) -> None:
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    async_add_entities(
        [
            BestOptionSensor(coordinator, entry),
            OptionWindowSensor(coordinator, entry, LABEL_CHEAPEST),
            OptionWindowSensor(coordinator, entry, LABEL_NIGHT),
            OptionWindowSensor(coordinator, entry, LABEL_ALTERNATIVE),
            HoursNeededSensor(coordinator, entry),
            EnergyNeededSensor(coordinator, entry),
            PriceSourceSensor(coordinator, entry),
            FlatRateEstimateSensor(coordinator, entry),
        ]
    )


class _BaseWindowSensor(CoordinatorEntity, SensorEntity):
    def __init__(self, coordinator, entry: ConfigEntry, key: str, suffix: str) -> None:
        super().__init__(coordinator)
        self._entry = entry
        self._attr_unique_id = f"{entry.entry_id}_{key}"
        self._attr_name = f"{entry.title} {suffix}"

    @property
    def device_info(self) -> DeviceInfo:
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry.entry_id)},
            name=self._entry.title,
            manufacturer="EV Charge Window",
            model="PVPC hourly",
        )

    @property
    def _payload(self) -> dict:
        return self.coordinator.data or {}

    def _options(self) -> list:
        return self._payload.get("options") or []


class BestOptionSensor(_BaseWindowSensor):
    def __init__(self, coordinator, entry):
        super().__init__(coordinator, entry, "best_option", "Best charging window")

    @property
    def native_value(self):
        opts = self._options()
        return opts[0]["window"] if opts else None

    @property
    def extra_state_attributes(self):
        opts = self._options()
        best = opts[0] if opts else {}
        return {
            "label": best.get("label"),
            "avg_price": best.get("avg_price"),
            "total_cost": best.get("total_cost"),
            "date": self._payload.get("date"),
            "options": opts,
        }


class OptionWindowSensor(_BaseWindowSensor):
    """One sensor per option kind; unknown when that option was not offered."""

    def __init__(self, coordinator, entry, label: str):
        super().__init__(coordinator, entry, f"{label}_window", f"{OPTION_NAMES[label]} window")
        self._label = label

    def _match(self) -> dict:
        for opt in self._options():
            if opt.get("label") == self._label:
                return opt
        return {}

    @property
    def native_value(self):
        return self._match().get("window")

    @property
    def extra_state_attributes(self):
        o = self._match()
        return {
            "rank": o.get("rank"),
            "start_hour": o.get("start_hour"),
            "end_hour": o.get("end_hour"),
            "avg_price": o.get("avg_price"),
            "total_cost": o.get("total_cost"),
            "is_nightly": o.get("is_nightly"),
        }


class HoursNeededSensor(_BaseWindowSensor):
    _attr_native_unit_of_measurement = "h"

    def __init__(self, coordinator, entry):
        super().__init__(coordinator, entry, "hours_needed", "Charging hours needed")

    @property
    def native_value(self):
        d = self._payload.get("demand") or {}
        h = d.get("hours_needed")
        return None if h is None else round(h, 2)

    @property
    def extra_state_attributes(self):
        d = self._payload.get("demand") or {}
        return {"slots_needed": d.get("slots_needed")}


class EnergyNeededSensor(_BaseWindowSensor):
    _attr_native_unit_of_measurement = "kWh"

    def __init__(self, coordinator, entry):
        super().__init__(coordinator, entry, "energy_needed", "Energy needed")

    @property
    def native_value(self):
        d = self._payload.get("demand") or {}
        kwh = d.get("kwh_needed")
        return None if kwh is None else round(kwh, 2)


class PriceSourceSensor(_BaseWindowSensor):
    def __init__(self, coordinator, entry):
        super().__init__(coordinator, entry, "price_source", "Price data")

    @property
    def native_value(self):
        return self._payload.get("provenance")

    @property
    def extra_state_attributes(self):
        return {
            "source": self._payload.get("source"),
            "error": self._payload.get("error"),
            "date": self._payload.get("date"),
            "prices": self._payload.get("prices"),
        }


class FlatRateEstimateSensor(_BaseWindowSensor):
    """Cost of one charge at the user-entered flat price, ignoring the schedule."""

    _attr_native_unit_of_measurement = "€"

    def __init__(self, coordinator, entry):
        super().__init__(coordinator, entry, "flat_rate_cost", "Flat-rate charge cost")

    @property
    def native_value(self):
        e = self._payload.get("estimate")
        if not e:
            return None
        return round(e["cost"], 2)

    @property
    def extra_state_attributes(self):
        e = self._payload.get("estimate") or {}
        return {
            "price": e.get("price"),
            "current_hour_price": e.get("current_hour_price"),
            "energy_kwh": e.get("energy_kwh"),
            "duration": e.get("duration_text"),
        }
