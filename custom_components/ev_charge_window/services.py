from __future__ import annotations

import voluptuous as vol

from homeassistant.core import HomeAssistant, ServiceCall

from .const import ATTR_ENTRY_ID, ATTR_FORCE, DOMAIN, SERVICE_REFRESH

SERVICE_SCHEMA = vol.Schema(
    {
        # target a single config entry
        vol.Optional(ATTR_ENTRY_ID): vol.Coerce(str),
        # drop cached live prices and fetch again
        vol.Optional(ATTR_FORCE, default=False): vol.Coerce(bool),
    }
)


def async_register_services(hass: HomeAssistant) -> None:
    async def _handle_refresh(call: ServiceCall) -> None:
        entry_id = call.data.get(ATTR_ENTRY_ID)
        force = call.data.get(ATTR_FORCE, False)

        async def _refresh_one(coordinator) -> None:
            if force:
                coordinator.clear_price_cache()
            await coordinator.async_request_refresh()

        if entry_id:
            entry_obj = hass.data.get(DOMAIN, {}).get(entry_id)
            if isinstance(entry_obj, dict) and "coordinator" in entry_obj:
                await _refresh_one(entry_obj["coordinator"])
            return

        # Refresh all loaded entries
        for obj in list(hass.data.get(DOMAIN, {}).values()):
            if not isinstance(obj, dict) or "coordinator" not in obj:
                continue
            await _refresh_one(obj["coordinator"])

    # Register once
    if hass.services.has_service(DOMAIN, SERVICE_REFRESH):
        return
    hass.services.async_register(DOMAIN, SERVICE_REFRESH, _handle_refresh, schema=SERVICE_SCHEMA)
