from __future__ import annotations

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from .const import (
    CONF_ESIOS_TOKEN,
    CONF_NAME,
    DEFAULTS,
    DOMAIN,
    OPT_BATTERY_KWH,
    OPT_CHARGER_POWER_KW,
)


STEP_USER_SCHEMA = vol.Schema(
    {
        # Friendly name for this EV instance
        vol.Required(CONF_NAME, default="My EV"): str,

        # --- Price source ---
        # Without a personal ESIOS token prices are fetched through the public mirror.
        vol.Optional(CONF_ESIOS_TOKEN, default=""): str,

        # --- Vehicle & charger ---
        vol.Required(OPT_BATTERY_KWH, default=DEFAULTS[OPT_BATTERY_KWH]): vol.All(
            vol.Coerce(float), vol.Range(min=1.0, max=150.0)
        ),
        vol.Required(OPT_CHARGER_POWER_KW, default=DEFAULTS[OPT_CHARGER_POWER_KW]): vol.All(
            vol.Coerce(float), vol.Range(min=1.0, max=22.0)
        ),
    }
)


class EVChargeWindowConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    async def async_step_user(self, user_input=None):
        if user_input is None:
            return self.async_show_form(step_id="user", data_schema=STEP_USER_SCHEMA)

        # One config entry per EV; vehicle numbers live in options so entities can edit them.
        title = user_input[CONF_NAME]
        return self.async_create_entry(
            title=title,
            data={
                CONF_NAME: title,
                CONF_ESIOS_TOKEN: user_input.get(CONF_ESIOS_TOKEN, "").strip(),
            },
            options={
                OPT_BATTERY_KWH: user_input[OPT_BATTERY_KWH],
                OPT_CHARGER_POWER_KW: user_input[OPT_CHARGER_POWER_KW],
            },
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry):
        from .options_flow import EVChargeWindowOptionsFlowHandler

        return EVChargeWindowOptionsFlowHandler(config_entry)
