from __future__ import annotations

from homeassistant.components.number import NumberEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo

from .const import (
    DOMAIN,
    DEFAULTS,
    OPT_BATTERY_KWH,
    OPT_CHARGER_POWER_KW,
    OPT_MANUAL_PRICE,
    OPT_START_SOC,
    OPT_TARGET_SOC,
)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities):
    async_add_entities(
        [
            _OptionNumber(entry, OPT_BATTERY_KWH, "Battery capacity", 1.0, 150.0, 1.0, "kWh"),
            _OptionNumber(entry, OPT_CHARGER_POWER_KW, "Charging power", 1.0, 22.0, 0.1, "kW"),
            _OptionNumber(entry, OPT_START_SOC, "Start charge", 0.0, 100.0, 1.0, "%"),
            _OptionNumber(entry, OPT_TARGET_SOC, "Target charge", 0.0, 100.0, 1.0, "%"),
            _OptionNumber(entry, OPT_MANUAL_PRICE, "Flat-rate price", 0.01, 0.50, 0.001, "€/kWh"),
        ]
    )


class _OptionNumber(NumberEntity):
    def __init__(
        self,
        entry: ConfigEntry,
        opt_key: str,
        name_suffix: str,
        min_value: float,
        max_value: float,
        step: float,
        unit: str,
    ) -> None:
        self._entry = entry
        self._opt_key = opt_key
        self._attr_unique_id = f"{entry.entry_id}_{opt_key}"
        self._attr_name = f"{entry.title} {name_suffix}"
        self._attr_native_min_value = min_value
        self._attr_native_max_value = max_value
        self._attr_native_step = step
        self._attr_native_unit_of_measurement = unit

    @property
    def device_info(self) -> DeviceInfo:
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry.entry_id)},
            name=self._entry.title,
            manufacturer="EV Charge Window",
            model="PVPC hourly",
        )

    @property
    def native_value(self):
        return float(self._entry.options.get(self._opt_key, DEFAULTS[self._opt_key]))

    async def async_set_native_value(self, value: float) -> None:
        # Start above target is allowed here; the planner clamps it to zero demand.
        opts = dict(self._entry.options)
        opts[self._opt_key] = float(value)
        self.hass.config_entries.async_update_entry(self._entry, options=opts)
        self.async_write_ha_state()
