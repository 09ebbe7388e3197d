"""Service handlers for the label print queue integration."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import TYPE_CHECKING, Any

from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers import config_validation as cv
import voluptuous as vol

from .const import (
    ATTR_ENTRY_ID,
    ATTR_IDENTITY,
    ATTR_LABEL,
    ATTR_QUANTITY,
    ATTR_SETTINGS,
    ATTR_TITLE,
    DOMAIN,
    MAX_QUANTITY_PER_ITEM,
    SERVICE_ADD_TO_QUEUE,
    SERVICE_CANCEL_PRINT,
    SERVICE_CLEAR_QUEUE,
    SERVICE_CLOSE_QUEUE,
    SERVICE_OPEN_QUEUE,
    SERVICE_PRINT_QUEUE,
    SERVICE_REMOVE_FROM_QUEUE,
    SERVICE_RETRY_FAILED,
    SERVICE_SET_QUANTITY,
    SERVICE_UPDATE_PRINTER_SETTINGS,
)
from .errors import PrintQueueError, ValidationError
from .render import label_identity

if TYPE_CHECKING:
    from . import LabelPrintQueueData

_LOGGER = logging.getLogger(__name__)

_ENTRY_SCHEMA = {vol.Optional(ATTR_ENTRY_ID): cv.string}

ADD_TO_QUEUE_SCHEMA = vol.Schema(
    {
        **_ENTRY_SCHEMA,
        vol.Required(ATTR_LABEL): dict,
        vol.Optional(ATTR_IDENTITY): cv.string,
        vol.Optional(ATTR_QUANTITY): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=MAX_QUANTITY_PER_ITEM)
        ),
        vol.Optional(ATTR_TITLE): cv.string,
    }
)
REMOVE_FROM_QUEUE_SCHEMA = vol.Schema({**_ENTRY_SCHEMA, vol.Required(ATTR_IDENTITY): cv.string})
SET_QUANTITY_SCHEMA = vol.Schema(
    {
        **_ENTRY_SCHEMA,
        vol.Required(ATTR_IDENTITY): cv.string,
        vol.Required(ATTR_QUANTITY): vol.All(
            vol.Coerce(int), vol.Range(min=0, max=MAX_QUANTITY_PER_ITEM)
        ),
    }
)
UPDATE_SETTINGS_SCHEMA = vol.Schema({**_ENTRY_SCHEMA, vol.Required(ATTR_SETTINGS): dict})
ENTRY_ONLY_SCHEMA = vol.Schema(_ENTRY_SCHEMA)


def _get_entry_data(hass: HomeAssistant, call: ServiceCall) -> LabelPrintQueueData:
    """Resolve the config entry a service call targets.

    Without an entry_id the call goes to the only configured printer.
    """
    domain_data: dict[str, LabelPrintQueueData] = hass.data.get(DOMAIN, {})
    entry_id = call.data.get(ATTR_ENTRY_ID)
    if entry_id is not None:
        data = domain_data.get(entry_id)
        if data is None:
            raise ServiceValidationError(
                f"Label printer {entry_id} is not loaded",
                translation_domain=DOMAIN,
                translation_key="entry_not_found",
            )
        return data

    if len(domain_data) == 1:
        return next(iter(domain_data.values()))
    if not domain_data:
        raise ServiceValidationError(
            "No label printer is configured",
            translation_domain=DOMAIN,
            translation_key="no_target_found",
        )
    raise ServiceValidationError(
        "Several label printers are configured; pass entry_id",
        translation_domain=DOMAIN,
        translation_key="ambiguous_target",
    )


def _wrap(
    name: str, handler: Callable[[ServiceCall], Awaitable[ServiceResponse]]
) -> Callable[[ServiceCall], Awaitable[ServiceResponse]]:
    """Log a service call and map errors onto Home Assistant's exceptions."""

    async def _handle(call: ServiceCall) -> ServiceResponse:
        _LOGGER.debug("Service call: %s data=%s", name, dict(call.data))
        try:
            return await handler(call)
        except ValidationError as err:
            raise ServiceValidationError(str(err)) from err
        except (PrintQueueError, ServiceValidationError):
            raise
        except Exception as err:
            _LOGGER.exception("Service %s failed", name)
            raise HomeAssistantError(str(err)) from err

    return _handle


async def async_setup_services(hass: HomeAssistant) -> None:
    """Register the integration's services once for all config entries."""
    if hass.services.has_service(DOMAIN, SERVICE_PRINT_QUEUE):
        return

    async def _handle_add_to_queue(call: ServiceCall) -> ServiceResponse:
        data = _get_entry_data(hass, call)
        label = call.data[ATTR_LABEL]
        identity = call.data.get(ATTR_IDENTITY) or label_identity(label)
        quantity = call.data.get(ATTR_QUANTITY, data.driver.get_settings().default_quantity)
        title = call.data.get(ATTR_TITLE) or label.get("product_name")
        data.queue.add_item(identity, quantity, label, title=title)
        return None

    async def _handle_remove_from_queue(call: ServiceCall) -> ServiceResponse:
        _get_entry_data(hass, call).queue.remove_item(call.data[ATTR_IDENTITY])
        return None

    async def _handle_set_quantity(call: ServiceCall) -> ServiceResponse:
        _get_entry_data(hass, call).queue.set_quantity(
            call.data[ATTR_IDENTITY], call.data[ATTR_QUANTITY]
        )
        return None

    async def _handle_clear_queue(call: ServiceCall) -> ServiceResponse:
        _get_entry_data(hass, call).queue.clear()
        return None

    async def _handle_open_queue(call: ServiceCall) -> ServiceResponse:
        await _get_entry_data(hass, call).badge.async_press()
        return None

    async def _handle_close_queue(call: ServiceCall) -> ServiceResponse:
        _get_entry_data(hass, call).queue.close()
        return None

    async def _handle_print_queue(call: ServiceCall) -> ServiceResponse:
        result = await _get_entry_data(hass, call).dispatcher.async_print_queue()
        return result.as_dict()

    async def _handle_retry_failed(call: ServiceCall) -> ServiceResponse:
        result = await _get_entry_data(hass, call).dispatcher.async_retry_failed()
        return result.as_dict()

    async def _handle_cancel_print(call: ServiceCall) -> ServiceResponse:
        if not _get_entry_data(hass, call).dispatcher.request_cancel():
            _LOGGER.debug("cancel_print called with no print running")
        return None

    async def _handle_update_printer_settings(call: ServiceCall) -> ServiceResponse:
        await _get_entry_data(hass, call).driver.async_update_settings(call.data[ATTR_SETTINGS])
        return None

    services: list[tuple[str, Callable[[ServiceCall], Awaitable[ServiceResponse]], vol.Schema]] = [
        (SERVICE_ADD_TO_QUEUE, _handle_add_to_queue, ADD_TO_QUEUE_SCHEMA),
        (SERVICE_REMOVE_FROM_QUEUE, _handle_remove_from_queue, REMOVE_FROM_QUEUE_SCHEMA),
        (SERVICE_SET_QUANTITY, _handle_set_quantity, SET_QUANTITY_SCHEMA),
        (SERVICE_CLEAR_QUEUE, _handle_clear_queue, ENTRY_ONLY_SCHEMA),
        (SERVICE_OPEN_QUEUE, _handle_open_queue, ENTRY_ONLY_SCHEMA),
        (SERVICE_CLOSE_QUEUE, _handle_close_queue, ENTRY_ONLY_SCHEMA),
        (SERVICE_CANCEL_PRINT, _handle_cancel_print, ENTRY_ONLY_SCHEMA),
        (SERVICE_UPDATE_PRINTER_SETTINGS, _handle_update_printer_settings, UPDATE_SETTINGS_SCHEMA),
    ]
    for name, handler, schema in services:
        hass.services.async_register(DOMAIN, name, _wrap(name, handler), schema=schema)
        _LOGGER.debug("Registered service %s.%s", DOMAIN, name)

    # Printing returns the per-entry result so automations can react to failures
    for name, handler in (
        (SERVICE_PRINT_QUEUE, _handle_print_queue),
        (SERVICE_RETRY_FAILED, _handle_retry_failed),
    ):
        hass.services.async_register(
            DOMAIN,
            name,
            _wrap(name, handler),
            schema=ENTRY_ONLY_SCHEMA,
            supports_response=SupportsResponse.OPTIONAL,
        )
        _LOGGER.debug("Registered service %s.%s", DOMAIN, name)


async def async_unload_services(hass: HomeAssistant) -> None:
    """Remove the services when the last config entry is unloaded."""
    for name in (
        SERVICE_ADD_TO_QUEUE,
        SERVICE_REMOVE_FROM_QUEUE,
        SERVICE_SET_QUANTITY,
        SERVICE_CLEAR_QUEUE,
        SERVICE_OPEN_QUEUE,
        SERVICE_CLOSE_QUEUE,
        SERVICE_PRINT_QUEUE,
        SERVICE_RETRY_FAILED,
        SERVICE_CANCEL_PRINT,
        SERVICE_UPDATE_PRINTER_SETTINGS,
    ):
        hass.services.async_remove(DOMAIN, name)
    _LOGGER.debug("Unloaded all %s services", DOMAIN)
