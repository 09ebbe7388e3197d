"""Printer drivers and the factory that picks one by printer type."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from homeassistant.core import HomeAssistant

from ..const import DEFAULT_BAUDRATE, DEFAULT_PORT
from ..errors import ValidationError
from ..models import PrinterSettings, PrinterType
from .base import BatchResult, PrinterDriver
from .bluetooth import BluetoothPrinterDriver
from .generic import GenericPrinterDriver
from .pdf import PdfPrinterDriver
from .thermal import ThermalPrinterDriver

__all__ = [
    "DRIVERS",
    "BatchResult",
    "PrinterDriver",
    "available_printers",
    "create_driver",
    "default_settings",
    "settings_from_config",
]

DRIVERS: dict[PrinterType, type[PrinterDriver]] = {
    PrinterType.THERMAL: ThermalPrinterDriver,
    PrinterType.BLUETOOTH: BluetoothPrinterDriver,
    PrinterType.PDF: PdfPrinterDriver,
    PrinterType.GENERIC: GenericPrinterDriver,
}

_DESCRIPTIONS: dict[PrinterType, tuple[str, str]] = {
    PrinterType.THERMAL: ("Thermal label printer", "ESC/POS printer on the network (TCP 9100)"),
    PrinterType.BLUETOOTH: ("Bluetooth label printer", "ESC/POS printer paired over Bluetooth serial"),
    PrinterType.PDF: ("PDF export", "Write labels to PDF files"),
    PrinterType.GENERIC: ("System printer", "Any printer installed in the system print spooler"),
}


def create_driver(hass: HomeAssistant, settings: PrinterSettings) -> PrinterDriver:
    try:
        driver_cls = DRIVERS[PrinterType(settings.printer_type)]
    except (KeyError, ValueError) as err:
        raise ValidationError(f"Unsupported printer type: {settings.printer_type}") from err
    return driver_cls(hass, settings)


def available_printers() -> list[dict[str, Any]]:
    """Describe every printer type that can be configured."""
    printers = []
    for printer_type, driver_cls in DRIVERS.items():
        name, description = _DESCRIPTIONS[printer_type]
        caps = driver_cls.capabilities
        printers.append(
            {
                "type": printer_type.value,
                "name": name,
                "description": description,
                "max_width": caps.max_width,
                "max_height": caps.max_height,
                "supports_color": caps.supports_color,
            }
        )
    return printers


def default_settings(printer_type: PrinterType | str) -> PrinterSettings:
    """Starting settings for a newly configured printer of this type.

    Network and Bluetooth defaults still lack the device address and do not
    validate until the user supplies it.
    """
    try:
        printer_type = PrinterType(printer_type)
    except ValueError as err:
        raise ValidationError(f"Unsupported printer type: {printer_type}") from err

    if printer_type is PrinterType.THERMAL:
        return PrinterSettings(
            printer_type=printer_type,
            name="Thermal Printer",
            port=DEFAULT_PORT,
            paper_width=102.0,
            paper_height=152.0,
            darkness=4,
        )
    if printer_type is PrinterType.BLUETOOTH:
        return PrinterSettings(
            printer_type=printer_type,
            name="Bluetooth Printer",
            baudrate=DEFAULT_BAUDRATE,
            paper_width=58.0,
            paper_height=100.0,
        )
    if printer_type is PrinterType.PDF:
        return PrinterSettings(printer_type=printer_type, name="PDF Export", cut="none")
    return PrinterSettings(printer_type=printer_type, name="System Print", cut="none")


def settings_from_config(data: Mapping[str, Any]) -> PrinterSettings:
    """Per-type defaults overlaid with config entry data and options."""
    printer_type = data.get("printer_type")
    merged = default_settings(printer_type or "").as_dict()
    merged.update({key: value for key, value in data.items() if value is not None})
    return PrinterSettings.from_mapping(merged)
