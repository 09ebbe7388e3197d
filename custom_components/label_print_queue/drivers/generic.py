from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile

from homeassistant.core import HomeAssistant

from ..errors import DeviceError, PrintTimeoutError
from ..models import PrinterCapabilities, PrinterSettings, PrinterStatus, PrinterType, PrintJob
from .base import PrinterDriver

_LOGGER = logging.getLogger(__name__)


class GenericPrinterDriver(PrinterDriver):
    """Any printer the operating system spooler knows about, via `lp`.

    Design constraints:
    - Fire-and-forget submission; the spooler owns the job after `lp` returns.
    - No feedback channel, so status is always an approximation.
    """

    printer_type = PrinterType.GENERIC
    capabilities = PrinterCapabilities(
        supports_escpos=False,
        supports_pdf=False,
        supports_color=True,
        max_width=216.0,
        max_height=356.0,
    )
    dots_per_mm = 12

    def __init__(self, hass: HomeAssistant, settings: PrinterSettings, lp_path: str = "lp") -> None:
        super().__init__(hass, settings)
        self._lp_path = lp_path

    async def _async_open(self) -> bool:
        if shutil.which(self._lp_path) is None:
            _LOGGER.warning("Spooler not available: '%s' not found in PATH", self._lp_path)
            return False
        return True

    async def _async_close(self) -> None:
        return None

    def _submit(self, job: PrintJob, png_path: str) -> None:
        settings = self._settings
        cmd = [self._lp_path]
        if settings.printer_name:
            cmd += ["-d", settings.printer_name]
        cmd += [
            "-t", f"label {job.identity}",
            "-o", f"media=Custom.{settings.paper_width:g}x{settings.paper_height:g}mm",
            png_path,
        ]
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=settings.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as err:
            raise PrintTimeoutError(f"lp did not return within {settings.timeout:g}s") from err
        if proc.returncode != 0:
            out = (proc.stdout or "") + (proc.stderr or "")
            raise DeviceError(f"lp failed (rc={proc.returncode}): {out.strip()}")

    async def _async_print_job(self, job: PrintJob) -> None:
        def _do_print() -> None:
            img = self._render(job)
            fd, png_path = tempfile.mkstemp(prefix="label_", suffix=".png")
            try:
                with os.fdopen(fd, "wb") as fh:
                    img.save(fh, "PNG", dpi=(self.dots_per_mm * 25.4,) * 2)
                self._submit(job, png_path)
            finally:
                os.unlink(png_path)

        try:
            await self._async_device_job(_do_print)
        except OSError as err:
            raise DeviceError(f"Could not submit label to the spooler: {err}") from err

    async def _async_query_status(self) -> PrinterStatus:
        return PrinterStatus.approximation(is_ready=True)
