from __future__ import annotations

import asyncio
from collections.abc import Mapping
import logging
import os
from typing import Any

from homeassistant.util import dt as dt_util
from homeassistant.util import slugify
from PIL import Image

from ..const import DEFAULT_OUTPUT_DIR
from ..errors import DeviceError, PrintQueueError, PrintTimeoutError, ValidationError
from ..models import PrinterCapabilities, PrinterStatus, PrinterType, PrintJob
from ..validation import validate_output_dir
from .base import PrinterDriver

_LOGGER = logging.getLogger(__name__)


class PdfPrinterDriver(PrinterDriver):
    """Export labels as PDF files instead of printing them.

    A single job becomes one file; a batch becomes one multi-page file holding
    every label that rendered.
    """

    printer_type = PrinterType.PDF
    capabilities = PrinterCapabilities(
        supports_escpos=False,
        supports_pdf=True,
        supports_color=True,
        max_width=210.0,
        max_height=297.0,
    )
    # ~300 dpi
    dots_per_mm = 12
    connection_fields = frozenset({"output_dir"})

    @property
    def output_dir(self) -> str:
        return self._settings.output_dir or self._hass.config.path(DEFAULT_OUTPUT_DIR)

    async def _async_open(self) -> bool:
        path = self.output_dir
        make_default = not self._settings.output_dir

        def _prepare() -> str:
            if make_default:
                os.makedirs(path, exist_ok=True)
            return validate_output_dir(path)

        try:
            await self._hass.async_add_executor_job(_prepare)
        except (ValidationError, OSError) as err:
            _LOGGER.warning("PDF output directory %s unusable: %s", path, err)
            return False
        return True

    async def _async_close(self) -> None:
        return None

    def _write_pdf(self, filename: str, pages: list[Image.Image]) -> str:
        path = os.path.join(self.output_dir, filename)
        first, *rest = pages
        first.save(
            path,
            "PDF",
            resolution=self.dots_per_mm * 25.4,
            save_all=True,
            append_images=rest,
        )
        return path

    async def _async_save(self, filename: str, pages: list[Image.Image]) -> None:
        try:
            path = await self._async_device_job(self._write_pdf, filename, pages)
        except OSError as err:
            raise DeviceError(f"Could not write {filename}: {err}") from err
        _LOGGER.debug("Wrote %s page(s) to %s", len(pages), path)

    async def _async_print_job(self, job: PrintJob) -> None:
        img = await self._hass.async_add_executor_job(self._render, job)
        stamp = dt_util.utcnow().strftime("%Y%m%dT%H%M%S%f")
        name = slugify(_product_name(job.payload) or job.identity) or "label"
        await self._async_save(f"label_{name}_{stamp}.pdf", [img])

    async def _async_execute_batch(self, jobs: list[PrintJob]) -> None:
        rendered: list[tuple[PrintJob, Image.Image]] = []
        for index, job in enumerate(jobs):
            if self._cancel_requested:
                self._cancel_remaining(jobs[index:])
                break
            self._start_job(job)
            try:
                img = await self._hass.async_add_executor_job(self._render, job)
            except Exception as render_err:
                self._finish_job(job, self._job_error(job, render_err))
            else:
                rendered.append((job, img))

        if not rendered:
            return

        filename = f"labels_batch_{dt_util.utcnow().strftime('%Y-%m-%d_%H%M%S')}_{len(rendered)}items.pdf"
        timeout = self._settings.timeout
        err: PrintQueueError | None = None
        try:
            await asyncio.wait_for(
                self._async_save(filename, [img for _, img in rendered]), timeout=timeout
            )
        except TimeoutError:
            err = PrintTimeoutError(f"Writing {filename} took longer than {timeout:g}s")
            await self._async_abandon_transmission()
        except Exception as save_err:
            err = self._job_error(rendered[0][0], save_err)
        for job, _ in rendered:
            self._finish_job(job, err)

    async def _async_query_status(self) -> PrinterStatus:
        ok = await self._hass.async_add_executor_job(os.access, self.output_dir, os.W_OK)
        if not ok:
            return PrinterStatus(is_ready=False, error="Output directory is not writable")
        return PrinterStatus(is_ready=True)


def _product_name(payload: Any) -> str | None:
    if isinstance(payload, Mapping):
        name = payload.get("product_name")
        return str(name) if name else None
    return None
