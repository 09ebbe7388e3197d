from __future__ import annotations

from collections.abc import Callable
import contextlib
import logging
from typing import Any

from homeassistant.components.binary_sensor import BinarySensorDeviceClass, BinarySensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from . import LabelPrintQueueData
from .const import DOMAIN
from .entity import LabelPrintQueueEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    data: LabelPrintQueueData = hass.data[DOMAIN][entry.entry_id]
    async_add_entities([PrinterOnlineSensor(entry, data), QueueBadgeSensor(entry, data)])


class PrinterOnlineSensor(LabelPrintQueueEntity, BinarySensorEntity):
    _attr_name = "Online"
    _attr_device_class = BinarySensorDeviceClass.CONNECTIVITY

    def __init__(self, entry: ConfigEntry, data: LabelPrintQueueData) -> None:
        super().__init__(entry, data, "online")
        self._unsubscribe: Callable[[], None] | None = None
        self._attr_is_on = data.driver.is_connected()

    async def async_added_to_hass(self) -> None:
        @callback
        def _on_status(ok: bool) -> None:
            self._attr_is_on = bool(ok)
            self.async_write_ha_state()

        self._unsubscribe = self._data.driver.add_status_listener(_on_status)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        diag = self._data.driver.get_diagnostics()
        return {
            "printer_type": self._data.driver.printer_type.value,
            "last_check": diag.get("last_check"),
            "last_ok": diag.get("last_ok"),
            "last_error": diag.get("last_error"),
            "last_error_reason": diag.get("last_error_reason"),
        }

    async def async_will_remove_from_hass(self) -> None:
        if self._unsubscribe:
            with contextlib.suppress(ValueError):
                self._unsubscribe()
            self._unsubscribe = None


class QueueBadgeSensor(LabelPrintQueueEntity, BinarySensorEntity):
    """The queue badge: on while pulsing, unavailable while the queue is empty."""

    _attr_name = "Queue badge"
    _attr_icon = "mdi:printer-pos"

    def __init__(self, entry: ConfigEntry, data: LabelPrintQueueData) -> None:
        super().__init__(entry, data, "queue_badge")
        self._unsubscribe: list[Callable[[], None]] = []

    async def async_added_to_hass(self) -> None:
        self._unsubscribe = [
            self._data.badge.add_listener(self._on_badge_changed),
            self._data.dispatcher.add_listener(self._on_badge_changed),
        ]

    @callback
    def _on_badge_changed(self) -> None:
        self.async_write_ha_state()

    @property
    def available(self) -> bool:
        return self._data.badge.visible

    @property
    def is_on(self) -> bool:
        return self._data.badge.pulsing

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        progress = self._data.dispatcher.progress
        return {
            "labels": self._data.badge.count,
            "items": self._data.queue.total_items,
            "open": self._data.queue.is_open,
            "printing": self._data.dispatcher.is_printing,
            "progress": progress.as_dict() if progress is not None else None,
        }

    async def async_will_remove_from_hass(self) -> None:
        while self._unsubscribe:
            self._unsubscribe.pop()()
