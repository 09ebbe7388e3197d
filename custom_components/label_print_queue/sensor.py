from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from homeassistant.components.sensor import SensorEntity, SensorStateClass
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
    async_add_entities([QueueItemsSensor(entry, data), QueueLabelsSensor(entry, data)])


class _QueueSensor(LabelPrintQueueEntity, SensorEntity):
    _attr_state_class = SensorStateClass.MEASUREMENT

    def __init__(self, entry: ConfigEntry, data: LabelPrintQueueData, key: str) -> None:
        super().__init__(entry, data, key)
        self._unsubscribe: Callable[[], None] | None = None

    async def async_added_to_hass(self) -> None:
        self._unsubscribe = self._data.queue.add_listener(self._on_queue_changed)

    async def async_will_remove_from_hass(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @callback
    def _on_queue_changed(self) -> None:
        self.async_write_ha_state()


class QueueItemsSensor(_QueueSensor):
    """Number of distinct labels waiting in the queue."""

    _attr_name = "Queued items"
    _attr_icon = "mdi:format-list-numbered"

    def __init__(self, entry: ConfigEntry, data: LabelPrintQueueData) -> None:
        super().__init__(entry, data, "total_items")

    @property
    def native_value(self) -> int:
        return self._data.queue.total_items

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {"entries": [entry.as_dict() for entry in self._data.queue.entries]}


class QueueLabelsSensor(_QueueSensor):
    """Number of physical labels the queue would print."""

    _attr_name = "Queued labels"
    _attr_icon = "mdi:label-multiple"
    _attr_native_unit_of_measurement = "labels"

    def __init__(self, entry: ConfigEntry, data: LabelPrintQueueData) -> None:
        super().__init__(entry, data, "total_labels")

    @property
    def native_value(self) -> int:
        return self._data.queue.total_labels
