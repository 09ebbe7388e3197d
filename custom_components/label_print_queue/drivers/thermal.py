from __future__ import annotations

from abc import abstractmethod
import logging
from typing import Any

from escpos.exceptions import DeviceNotFoundError
from escpos.exceptions import Error as EscposError
from homeassistant.core import HomeAssistant

from ..errors import DeviceError, PrintQueueError
from ..models import PrinterCapabilities, PrinterSettings, PrinterStatus, PrinterType, PrintJob
from ..validation import sanitize_log_message
from .base import PrinterDriver

_LOGGER = logging.getLogger(__name__)

# python-escpos paper_status() values
PAPER_OUT = 0
PAPER_NEAR_END = 1

# GS ( K <fn 50>: select print speed (Epson TM series)
_SPEED_COMMAND = b"\x1d\x28\x4b\x02\x00\x32"


# Late import of python-escpos printer classes so tests can patch them
def _get_network_printer() -> type[Any]:
    from escpos.printer import Network

    return Network  # type: ignore[no-any-return]


def _map_cut(mode: str | None) -> str | None:
    if not mode:
        return None
    mode_l = mode.lower()
    if mode_l == "partial":
        return "PART"
    if mode_l == "full":
        return "FULL"
    return None


class EscposPrinterDriver(PrinterDriver):
    """Shared ESC/POS behaviour for the network and Bluetooth drivers.

    Labels are rendered to a bitmap and sent with the raster image command,
    so every ESC/POS printer that can print images can print labels.
    """

    def __init__(self, hass: HomeAssistant, settings: PrinterSettings) -> None:
        super().__init__(hass, settings)
        self._printer: Any = None
        # Learned at connect: does the device answer real-time status queries?
        self._status_supported = False

    @abstractmethod
    def _create_printer(self) -> Any:
        """Build the python-escpos printer object for this transport."""

    @staticmethod
    def _query_paper(printer: Any) -> int | None:
        try:
            value = printer.paper_status()
        except (EscposError, OSError, NotImplementedError) as e:
            _LOGGER.debug("Paper status not available: %s", sanitize_log_message(str(e)))
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    async def _async_open(self) -> bool:
        def _open() -> tuple[Any, bool]:
            printer = self._create_printer()
            printer.open()
            return printer, self._query_paper(printer) is not None

        try:
            self._printer, self._status_supported = await self._async_device_job(_open)
        except (DeviceNotFoundError, EscposError, OSError) as e:
            _LOGGER.warning("Printer %s not reachable: %s", self.name, sanitize_log_message(str(e)))
            self._printer = None
            return False
        return True

    async def _async_close(self) -> None:
        printer, self._printer = self._printer, None
        if printer is None:
            return

        def _close() -> None:
            try:
                printer.close()
            except (EscposError, OSError) as e:
                _LOGGER.debug("Close failed: %s", sanitize_log_message(str(e)))

        # Not serialized with other device calls: closing is what interrupts a stalled one
        await self._hass.async_add_executor_job(_close)

    async def _async_print_job(self, job: PrintJob) -> None:
        settings = self._settings
        cut_mode = _map_cut(settings.cut)
        printer = self._printer
        check_paper = self._status_supported

        def _do_print() -> None:
            img = self._render(job)
            if check_paper and self._query_paper(printer) == PAPER_OUT:
                raise DeviceError(f"Printer {settings.name} is out of paper")
            if settings.speed is not None:
                printer._raw(_SPEED_COMMAND + bytes([settings.speed]))
            if settings.darkness is not None:
                printer.set(align="center", density=settings.darkness)
            else:
                printer.set(align="center")
            printer.image(img)
            if cut_mode:
                printer.cut(mode=cut_mode)

        try:
            await self._async_device_job(_do_print)
        except PrintQueueError:
            raise
        except (EscposError, OSError) as e:
            raise DeviceError(f"Printer {settings.name} failed: {e}") from e

    async def _async_query_status(self) -> PrinterStatus:
        printer = self._printer
        if printer is None:
            return PrinterStatus(is_ready=False, error="Printer is not connected")

        def _query() -> tuple[Any, int | None, str | None]:
            try:
                online = printer.is_online()
            except (EscposError, OSError, NotImplementedError) as e:
                return None, None, str(e)
            return online, self._query_paper(printer), None

        online, paper, err = await self._async_device_job(_query)
        if not isinstance(online, bool):
            # Device gave no usable answer; fall back to the session state
            return PrinterStatus.approximation(is_ready=self._connected, error=err)

        paper_out = paper == PAPER_OUT
        error = None
        if not online:
            error = "Printer reports offline"
        elif paper_out:
            error = "Paper out"
        elif paper == PAPER_NEAR_END:
            _LOGGER.info("Printer %s paper is nearly out", self._settings.name)
        return PrinterStatus(
            is_ready=online and not paper_out,
            paper_out=paper_out,
            error=error,
            approximate=paper is None,
        )


class ThermalPrinterDriver(EscposPrinterDriver):
    """ESC/POS label printer on the network (raw TCP, usually port 9100)."""

    printer_type = PrinterType.THERMAL
    capabilities = PrinterCapabilities(
        supports_escpos=True,
        supports_pdf=False,
        supports_color=False,
        max_width=104.0,
        max_height=171.0,
    )
    connection_fields = frozenset({"host", "port", "timeout", "profile"})

    def _create_printer(self) -> Any:
        Network = _get_network_printer()
        return Network(
            self._settings.host,
            port=self._settings.port,
            timeout=self._settings.timeout,
            profile=self._settings.profile or None,
        )
