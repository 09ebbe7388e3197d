from __future__ import annotations

from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_HOST, CONF_OUTPUT_DIR, CONF_SERIAL_PORT, DOMAIN

TO_REDACT = {CONF_HOST, CONF_SERIAL_PORT, CONF_OUTPUT_DIR}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    data = hass.data.get(DOMAIN, {}).get(entry.entry_id)

    runtime: dict[str, Any] = {}
    if data is not None:
        driver = data.driver
        status = await driver.async_get_status()
        last_result = data.dispatcher.last_result
        progress = data.dispatcher.progress
        runtime = {
            "printer_type": driver.printer_type.value,
            "settings": driver.get_settings().as_dict(),
            "status": status.as_dict(),
            "diagnostics": driver.get_diagnostics(),
            "queue": {
                "total_items": data.queue.total_items,
                "total_labels": data.queue.total_labels,
                "open": data.queue.is_open,
            },
            "printing": data.dispatcher.is_printing,
            "progress": progress.as_dict() if progress is not None else None,
            "last_result": last_result.as_dict() if last_result is not None else None,
        }

    payload = {
        "entry": {
            "title": entry.title,
            "data": dict(entry.data),
            "options": dict(entry.options),
        },
        "runtime": runtime,
    }

    return async_redact_data(payload, TO_REDACT)
