from __future__ import annotations

from dataclasses import dataclass
from functools import partial
import logging
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.event import async_call_later

from .badge import QueueBadge
from .const import CONF_AUTO_OPEN, DOMAIN
from .dispatch import PrintDispatcher
from .drivers import PrinterDriver, create_driver, settings_from_config
from .errors import PrintQueueError
from .print_queue import PrintQueue
from .services import async_setup_services, async_unload_services

_LOGGER = logging.getLogger(__name__)


PLATFORMS: list[str] = ["sensor", "binary_sensor"]


@dataclass
class LabelPrintQueueData:
    """Runtime objects owned by one config entry."""

    driver: PrinterDriver
    queue: PrintQueue
    badge: QueueBadge
    dispatcher: PrintDispatcher


def _entry_config(entry: ConfigEntry) -> dict[str, Any]:
    return {**entry.data, **entry.options}


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.debug("Setting up label_print_queue entry: %s", entry.entry_id)
    config = _entry_config(entry)
    settings = settings_from_config(config)
    driver = create_driver(hass, settings)

    queue = PrintQueue(auto_open=bool(config.get(CONF_AUTO_OPEN, True)))
    badge = QueueBadge(queue, partial(async_call_later, hass))
    dispatcher = PrintDispatcher(queue, lambda: driver)

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = LabelPrintQueueData(
        driver=driver,
        queue=queue,
        badge=badge,
        dispatcher=dispatcher,
    )

    # A missing printer is not a setup failure; printing reconnects on demand
    if not await driver.async_connect():
        _LOGGER.warning("Printer %s is not reachable yet", settings.name)

    await async_setup_services(hass)

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    data: LabelPrintQueueData | None = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    if data is None:
        return
    config = _entry_config(entry)
    data.queue.auto_open = bool(config.get(CONF_AUTO_OPEN, True))

    while data.dispatcher.is_printing:
        _LOGGER.debug("Deferring option changes for %s until printing ends", entry.entry_id)
        await data.dispatcher.async_wait_idle()

    current = data.driver.get_settings().as_dict()
    wanted = settings_from_config(config).as_dict()
    changed = {key: value for key, value in wanted.items() if current.get(key) != value}
    if not changed:
        return
    _LOGGER.debug("Applying option changes to %s: %s", entry.entry_id, sorted(changed))
    try:
        await data.driver.async_update_settings(changed)
    except PrintQueueError as err:
        _LOGGER.warning("Could not apply new printer settings: %s", err)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.debug("Unloading label_print_queue entry: %s", entry.entry_id)
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        data: LabelPrintQueueData | None = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
        if data is not None:
            data.badge.shutdown()
            await data.driver.async_disconnect()
        if not hass.data.get(DOMAIN):
            await async_unload_services(hass)
        _LOGGER.debug("Unloaded entry %s", entry.entry_id)
    return unload_ok
