from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity import Entity

from . import LabelPrintQueueData
from .const import DOMAIN


class LabelPrintQueueEntity(Entity):
    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(self, entry: ConfigEntry, data: LabelPrintQueueData, key: str) -> None:
        self._entry = entry
        self._data = data
        self._attr_unique_id = f"{entry.entry_id}_{key}"

    @property
    def device_info(self) -> DeviceInfo:
        driver = self._data.driver
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry.entry_id)},
            name=f"Label Printer {self._entry.title}",
            manufacturer="Label Print Queue",
            model=f"{driver.printer_type.value.title()} printer",
        )
