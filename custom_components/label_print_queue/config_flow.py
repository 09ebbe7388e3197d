from __future__ import annotations

import logging
import socket
from typing import Any

from homeassistant import config_entries
from homeassistant.config_entries import ConfigFlowResult
from homeassistant.core import callback
import voluptuous as vol

from .const import (
    CONF_AUTO_OPEN,
    CONF_BAUDRATE,
    CONF_CUT,
    CONF_DARKNESS,
    CONF_DEFAULT_QUANTITY,
    CONF_HOST,
    CONF_NAME,
    CONF_OUTPUT_DIR,
    CONF_PAPER_HEIGHT,
    CONF_PAPER_WIDTH,
    CONF_PORT,
    CONF_PRINTER_NAME,
    CONF_PRINTER_TYPE,
    CONF_PROFILE,
    CONF_SERIAL_PORT,
    CONF_SPEED,
    CONF_TIMEOUT,
    CUT_CHOICES,
    DOMAIN,
    MAX_QUANTITY_PER_ITEM,
)
from .drivers import available_printers, default_settings, settings_from_config
from .errors import ValidationError
from .models import PrinterSettings, PrinterType
from .validation import validate_output_dir

_LOGGER = logging.getLogger(__name__)


def _can_connect(host: str, port: int, timeout: float) -> bool:
    """Test TCP connectivity to a host and port."""
    try:
        # Using a raw socket here to validate TCP reachability
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def _optional(key: str, default: Any) -> vol.Optional:
    return vol.Optional(key) if default is None else vol.Optional(key, default=default)


def _tuning_schema(defaults: PrinterSettings) -> dict[Any, Any]:
    """Fields shared by every printer type and editable later in options."""
    return {
        vol.Optional(CONF_PAPER_WIDTH, default=defaults.paper_width): vol.Coerce(float),
        vol.Optional(CONF_PAPER_HEIGHT, default=defaults.paper_height): vol.Coerce(float),
        vol.Optional(CONF_DEFAULT_QUANTITY, default=defaults.default_quantity): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=MAX_QUANTITY_PER_ITEM)
        ),
        vol.Optional(CONF_TIMEOUT, default=defaults.timeout): vol.Coerce(float),
    }


def _escpos_schema(defaults: PrinterSettings) -> dict[Any, Any]:
    schema: dict[Any, Any] = {
        vol.Optional(CONF_CUT, default=defaults.cut): vol.In(CUT_CHOICES),
        vol.Optional(CONF_PROFILE, default=defaults.profile or ""): str,
    }
    schema[_optional(CONF_DARKNESS, defaults.darkness)] = vol.All(vol.Coerce(int), vol.Range(min=0, max=8))
    schema[_optional(CONF_SPEED, defaults.speed)] = vol.All(vol.Coerce(int), vol.Range(min=1, max=13))
    return schema


def _settings_schema(printer_type: PrinterType) -> vol.Schema:
    defaults = default_settings(printer_type)
    schema: dict[Any, Any] = {vol.Required(CONF_NAME, default=defaults.name): str}

    if printer_type is PrinterType.THERMAL:
        schema[vol.Required(CONF_HOST)] = str
        schema[vol.Optional(CONF_PORT, default=defaults.port)] = vol.Coerce(int)
        schema.update(_escpos_schema(defaults))
    elif printer_type is PrinterType.BLUETOOTH:
        schema[vol.Required(CONF_SERIAL_PORT, default="/dev/rfcomm0")] = str
        schema[vol.Optional(CONF_BAUDRATE, default=defaults.baudrate)] = vol.Coerce(int)
        schema.update(_escpos_schema(defaults))
    elif printer_type is PrinterType.PDF:
        schema[vol.Optional(CONF_OUTPUT_DIR)] = str
    else:
        schema[vol.Optional(CONF_PRINTER_NAME)] = str

    schema.update(_tuning_schema(defaults))
    return vol.Schema(schema)


def _unique_id(settings: PrinterSettings) -> str:
    if settings.printer_type is PrinterType.THERMAL:
        return f"{settings.host}:{settings.port}"
    if settings.printer_type is PrinterType.BLUETOOTH:
        return f"bluetooth:{settings.serial_port}"
    if settings.printer_type is PrinterType.PDF:
        return f"pdf:{settings.output_dir or 'default'}"
    return f"generic:{settings.printer_name or 'default'}"


class LabelPrintQueueConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    def __init__(self) -> None:
        self._printer_type: PrinterType | None = None

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> ConfigFlowResult:
        """Choose the kind of printer."""
        if user_input is not None:
            self._printer_type = PrinterType(user_input[CONF_PRINTER_TYPE])
            _LOGGER.debug("Config flow printer type: %s", self._printer_type)
            return await self.async_step_settings()

        types = {printer["type"]: printer["name"] for printer in available_printers()}
        data_schema = vol.Schema({vol.Required(CONF_PRINTER_TYPE): vol.In(types)})
        return self.async_show_form(step_id="user", data_schema=data_schema)

    async def async_step_settings(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Collect the settings for the chosen printer type."""
        assert self._printer_type is not None
        errors: dict[str, str] = {}
        if user_input is not None:
            _LOGGER.debug("Config flow settings input: %s", user_input)
            data = {
                CONF_PRINTER_TYPE: self._printer_type.value,
                **{key: value for key, value in user_input.items() if value != ""},
            }
            try:
                settings = settings_from_config(data)
            except ValidationError as err:
                _LOGGER.debug("Invalid printer settings: %s", err)
                errors["base"] = "invalid_settings"
            else:
                await self.async_set_unique_id(_unique_id(settings))
                self._abort_if_unique_id_configured()
                error = await self._async_check_device(settings)
                if error is None:
                    return self.async_create_entry(title=settings.name, data=data)
                errors["base"] = error

        return self.async_show_form(
            step_id="settings",
            data_schema=_settings_schema(self._printer_type),
            errors=errors,
        )

    async def _async_check_device(self, settings: PrinterSettings) -> str | None:
        if settings.printer_type is PrinterType.THERMAL:
            assert settings.host is not None and settings.port is not None
            _LOGGER.debug(
                "Attempting connection test to %s:%s (timeout=%s)",
                settings.host,
                settings.port,
                settings.timeout,
            )
            ok = await self.hass.async_add_executor_job(
                _can_connect, settings.host, settings.port, settings.timeout
            )
            if not ok:
                _LOGGER.warning("Connection test failed for %s:%s", settings.host, settings.port)
                return "cannot_connect"
        elif settings.printer_type is PrinterType.PDF and settings.output_dir:
            try:
                await self.hass.async_add_executor_job(validate_output_dir, settings.output_dir)
            except ValidationError:
                return "invalid_output_dir"
        return None

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> LabelPrintQueueOptionsFlow:
        return LabelPrintQueueOptionsFlow()


class LabelPrintQueueOptionsFlow(config_entries.OptionsFlow):
    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> ConfigFlowResult:
        """Edit tuning options; the printer type and address stay fixed."""
        entry = self.config_entry
        current = settings_from_config({**entry.data, **entry.options})
        errors: dict[str, str] = {}

        if user_input is not None:
            _LOGGER.debug("Options flow update for entry %s: %s", entry.entry_id, user_input)
            options = {key: value for key, value in user_input.items() if value != ""}
            try:
                settings_from_config({**entry.data, **options})
            except ValidationError as err:
                _LOGGER.debug("Invalid options: %s", err)
                errors["base"] = "invalid_settings"
            else:
                return self.async_create_entry(title="Options", data=options)

        schema = _tuning_schema(current)
        if current.printer_type in (PrinterType.THERMAL, PrinterType.BLUETOOTH):
            schema.update(_escpos_schema(current))
        schema[
            vol.Optional(
                CONF_AUTO_OPEN,
                default={**entry.data, **entry.options}.get(CONF_AUTO_OPEN, True),
            )
        ] = bool
        _LOGGER.debug("Showing options form for entry %s", entry.entry_id)
        return self.async_show_form(step_id="init", data_schema=vol.Schema(schema), errors=errors)
