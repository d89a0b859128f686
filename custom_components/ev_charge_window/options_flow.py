from __future__ import annotations

import voluptuous as vol
from homeassistant import config_entries

from .const import (
    CONF_ESIOS_TOKEN,
    DEFAULTS,
    OPT_BATTERY_KWH,
    OPT_CHARGER_POWER_KW,
    OPT_MANUAL_PRICE,
    OPT_START_SOC,
    OPT_TARGET_SOC,
)

_PCT = vol.All(vol.Coerce(float), vol.Range(min=0.0, max=100.0))


class EVChargeWindowOptionsFlowHandler(config_entries.OptionsFlow):
    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self.entry = entry

    async def async_step_init(self, user_input=None):
        opts = dict(self.entry.options)

        if user_input is not None:
            user_input[CONF_ESIOS_TOKEN] = user_input.get(CONF_ESIOS_TOKEN, "").strip()
            opts.update(user_input)
            return self.async_create_entry(title="", data=opts)

        token = opts.get(CONF_ESIOS_TOKEN, self.entry.data.get(CONF_ESIOS_TOKEN, ""))
        schema = vol.Schema(
            {
                vol.Required(
                    OPT_BATTERY_KWH,
                    default=opts.get(OPT_BATTERY_KWH, DEFAULTS[OPT_BATTERY_KWH]),
                ): vol.All(vol.Coerce(float), vol.Range(min=1.0, max=150.0)),
                vol.Required(
                    OPT_CHARGER_POWER_KW,
                    default=opts.get(OPT_CHARGER_POWER_KW, DEFAULTS[OPT_CHARGER_POWER_KW]),
                ): vol.All(vol.Coerce(float), vol.Range(min=1.0, max=22.0)),
                vol.Required(
                    OPT_START_SOC,
                    default=opts.get(OPT_START_SOC, DEFAULTS[OPT_START_SOC]),
                ): _PCT,
                vol.Required(
                    OPT_TARGET_SOC,
                    default=opts.get(OPT_TARGET_SOC, DEFAULTS[OPT_TARGET_SOC]),
                ): _PCT,
                vol.Required(
                    OPT_MANUAL_PRICE,
                    default=opts.get(OPT_MANUAL_PRICE, DEFAULTS[OPT_MANUAL_PRICE]),
                ): vol.All(vol.Coerce(float), vol.Range(min=0.0, max=1.0)),
                vol.Optional(CONF_ESIOS_TOKEN, default=token or ""): str,
            }
        )
        return self.async_show_form(step_id="init", data_schema=schema)
