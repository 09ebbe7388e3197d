from __future__ import annotations

import logging
from typing import Any

from ..const import DEFAULT_BAUDRATE
from ..models import PrinterCapabilities, PrinterType
from .thermal import EscposPrinterDriver

_LOGGER = logging.getLogger(__name__)


def _get_serial_printer() -> type[Any]:
    from escpos.printer import Serial

    return Serial  # type: ignore[no-any-return]


class BluetoothPrinterDriver(EscposPrinterDriver):
    """ESC/POS printer paired over Bluetooth SPP.

    The pairing itself is done by the host; this driver talks to the bound
    RFCOMM serial device (for example /dev/rfcomm0).
    """

    printer_type = PrinterType.BLUETOOTH
    capabilities = PrinterCapabilities(
        supports_escpos=True,
        supports_pdf=False,
        supports_color=False,
        max_width=104.0,
        max_height=171.0,
    )
    connection_fields = frozenset({"serial_port", "baudrate", "timeout", "profile"})

    def _create_printer(self) -> Any:
        Serial = _get_serial_printer()
        return Serial(
            devfile=self._settings.serial_port,
            baudrate=self._settings.baudrate or DEFAULT_BAUDRATE,
            timeout=self._settings.timeout,
            profile=self._settings.profile or None,
        )
