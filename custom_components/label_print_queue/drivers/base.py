from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
import logging
from typing import Any, ClassVar

from homeassistant.core import HomeAssistant
from homeassistant.util import dt as dt_util
from PIL import Image

from ..const import DOTS_PER_MM
from ..errors import (
    BusyError,
    DeviceError,
    PrintQueueError,
    PrintTimeoutError,
    ValidationError,
)
from ..models import (
    JobStatus,
    PrinterCapabilities,
    PrinterSettings,
    PrinterStatus,
    PrinterType,
    PrintJob,
)
from ..render import label_size, render_label
from ..validation import sanitize_log_message

_LOGGER = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Jobs of one batch in submission order, each in a terminal state."""

    jobs: list[PrintJob]

    def _with_status(self, status: JobStatus) -> list[PrintJob]:
        return [job for job in self.jobs if job.status is status]

    @property
    def completed(self) -> list[PrintJob]:
        return self._with_status(JobStatus.COMPLETED)

    @property
    def failed(self) -> list[PrintJob]:
        return self._with_status(JobStatus.FAILED)

    @property
    def cancelled(self) -> list[PrintJob]:
        return self._with_status(JobStatus.CANCELLED)


class PrinterDriver(ABC):
    """Uniform contract over the supported printer backends.

    A driver runs one print operation at a time. A second `async_print` or
    `async_print_batch` while one is running fails with BusyError instead of
    waiting. Blocking device I/O runs in the Home Assistant executor.
    """

    printer_type: ClassVar[PrinterType]
    capabilities: ClassVar[PrinterCapabilities]
    dots_per_mm: ClassVar[int] = DOTS_PER_MM
    # Settings whose change requires reopening the device
    connection_fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, hass: HomeAssistant, settings: PrinterSettings) -> None:
        if settings.printer_type is not self.printer_type:
            raise ValidationError(
                f"{type(self).__name__} cannot use settings for printer type {settings.printer_type}"
            )
        self._hass = hass
        self._settings = settings.validated()
        self._connected = False
        self._lock = asyncio.Lock()
        self._cancel_requested = False
        # Executor call currently talking to the device, if any
        self._device_future: asyncio.Future[Any] | None = None
        self._job_callback: Callable[[PrintJob], None] | None = None
        self._status_listeners: list[Callable[[bool], None]] = []
        self._last_check: Any = None
        self._last_ok: Any = None
        self._last_error: Any = None
        self._last_error_reason: str | None = None

    @property
    def name(self) -> str:
        return self._settings.name

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # Backend hooks
    @abstractmethod
    async def _async_open(self) -> bool:
        """Open the device session. Return False when the device is absent."""

    @abstractmethod
    async def _async_close(self) -> None:
        """Release the device session."""

    @abstractmethod
    async def _async_print_job(self, job: PrintJob) -> None:
        """Render and transmit one label, raising a PrintQueueError on failure."""

    @abstractmethod
    async def _async_query_status(self) -> PrinterStatus:
        """Read live status, or return a flagged approximation."""

    # Session
    async def async_connect(self) -> bool:
        if self._connected:
            return True
        ok = await self._async_open()
        self._set_connected(ok)
        if ok:
            _LOGGER.debug("Connected to %s printer %s", self.printer_type, self.name)
        return ok

    async def async_disconnect(self) -> None:
        if not self._connected:
            return
        await self._async_close()
        self._set_connected(False)
        _LOGGER.debug("Disconnected from %s printer %s", self.printer_type, self.name)

    def is_connected(self) -> bool:
        return self._connected

    # Printing
    async def async_print(self, job: PrintJob) -> None:
        """Print a single job, raising the job's error if it fails."""
        self._ensure_idle()
        async with self._lock:
            self._ensure_connected()
            err = await self._async_run_job(job)
        if err is not None:
            raise err

    async def async_print_batch(
        self,
        jobs: Iterable[PrintJob],
        on_job_update: Callable[[PrintJob], None] | None = None,
    ) -> BatchResult:
        """Print jobs one after another in submission order.

        One job failing never stops the following jobs. Only systemic problems
        (busy, disconnected, jobs not pending) raise; everything else is
        recorded on the individual jobs. `on_job_update` is called each time a
        job changes status.
        """
        self._ensure_idle()
        batch = list(jobs)
        for job in batch:
            if job.status is not JobStatus.PENDING:
                raise ValidationError(f"Print job {job.job_id} is {job.status}, expected pending")

        async with self._lock:
            self._ensure_connected()
            self._cancel_requested = False
            self._job_callback = on_job_update
            try:
                await self._async_execute_batch(batch)
            finally:
                self._cancel_requested = False
                self._job_callback = None

        result = BatchResult(batch)
        _LOGGER.debug(
            "Batch on %s finished: %s completed, %s failed, %s cancelled",
            self.name,
            len(result.completed),
            len(result.failed),
            len(result.cancelled),
        )
        return result

    def request_cancel(self) -> bool:
        """Stop a running batch after the job currently being transmitted.

        Returns False when nothing is running.
        """
        if not self._lock.locked():
            return False
        _LOGGER.debug("Cancellation requested on %s", self.name)
        self._cancel_requested = True
        return True

    async def _async_execute_batch(self, jobs: list[PrintJob]) -> None:
        for index, job in enumerate(jobs):
            if self._cancel_requested:
                self._cancel_remaining(jobs[index:])
                return
            await self._async_run_job(job)

    def _cancel_remaining(self, jobs: list[PrintJob]) -> None:
        _LOGGER.info("Cancelled %s unprinted labels on %s", len(jobs), self.name)
        for job in jobs:
            job.mark_cancelled()
            self._notify_job(job)

    def _start_job(self, job: PrintJob) -> None:
        job.mark_printing()
        self._notify_job(job)

    async def _async_run_job(self, job: PrintJob) -> PrintQueueError | None:
        self._start_job(job)
        if not self._connected:
            # The session was lost earlier in this batch and could not be reopened
            err: PrintQueueError = DeviceError(f"Printer {self.name} is not connected")
            self._finish_job(job, err)
            return err
        timeout = self._settings.timeout
        try:
            await asyncio.wait_for(self._async_print_job(job), timeout=timeout)
        except TimeoutError:
            err = PrintTimeoutError(
                f"Printer {self.name} did not acknowledge the label within {timeout:g}s"
            )
            await self._async_abandon_transmission()
        except Exception as job_err:
            err = self._job_error(job, job_err)
        else:
            self._finish_job(job, None)
            return None
        self._finish_job(job, err)
        return err

    def _job_error(self, job: PrintJob, err: Exception) -> PrintQueueError:
        """Map anything a job raised onto the error taxonomy."""
        if isinstance(err, PrintQueueError):
            return err
        _LOGGER.exception("Unexpected error printing job %s", job.job_id, exc_info=err)
        return DeviceError(str(err) or type(err).__name__)

    def _finish_job(self, job: PrintJob, err: PrintQueueError | None) -> None:
        if err is None:
            job.mark_completed()
            self._record_ok()
        else:
            job.mark_failed(err)
            _LOGGER.warning(
                "Label %s failed on %s: %s", job.identity, self.name, sanitize_log_message(str(err))
            )
            if isinstance(err, (DeviceError, PrintTimeoutError)):
                self._record_error(str(err))
        self._notify_job(job)

    def _notify_job(self, job: PrintJob) -> None:
        if self._job_callback is None:
            return
        try:
            self._job_callback(job)
        except Exception:
            _LOGGER.exception("Print job listener failed")

    # Device I/O
    async def _async_device_job(self, target: Callable[..., Any], *args: Any) -> Any:
        """Run blocking device I/O in the executor, one call at a time.

        The executor call is shielded: when the caller gives up (timeout), the
        call keeps running and the next device call waits for it to end.
        """
        pending = self._device_future
        while pending is not None and not pending.done():
            await asyncio.wait([pending])
            pending = self._device_future
        future = self._hass.async_add_executor_job(target, *args)
        self._device_future = future
        return await asyncio.shield(future)

    async def _async_abandon_transmission(self) -> None:
        """Reset the session after a timeout left a device call running.

        Closing the session interrupts the stalled call; the device is only
        reopened once that call has really finished.
        """
        pending = self._device_future
        if pending is None or pending.done():
            return
        _LOGGER.warning("Resetting session to %s after a stalled transmission", self.name)
        await self._async_close()
        self._set_connected(False)
        await asyncio.wait([pending])
        if not pending.cancelled() and pending.exception() is not None:
            _LOGGER.debug(
                "Stalled transmission ended with: %s",
                sanitize_log_message(str(pending.exception())),
            )
        if not await self.async_connect():
            _LOGGER.warning("Could not reopen %s after a stalled transmission", self.name)

    def _render(self, job: PrintJob) -> Image.Image:
        """Render a job's payload, enforcing the printable-area limits."""
        width, height = label_size(job.payload, self._settings)
        self.capabilities.check_fits(width, height)
        return render_label(
            job.payload,
            width_mm=width,
            height_mm=height,
            dots_per_mm=self.dots_per_mm,
            color=self.capabilities.supports_color,
        )

    # Settings
    def get_settings(self) -> PrinterSettings:
        return replace(self._settings)

    async def async_update_settings(self, partial: Mapping[str, Any]) -> None:
        self._ensure_idle()
        new_settings = self._settings.merge(partial)
        reopen = self._connected and any(
            getattr(new_settings, key) != getattr(self._settings, key) for key in self.connection_fields
        )
        if reopen:
            await self.async_disconnect()
        self._settings = new_settings
        _LOGGER.debug("Updated settings for %s: %s", self.name, sorted(partial))
        if reopen:
            await self.async_connect()

    # Status
    async def async_get_status(self) -> PrinterStatus:
        if self.busy:
            # Never query the device while a label is being transmitted
            return PrinterStatus.approximation(is_ready=self._connected)
        status = await self._async_query_status()
        self._last_check = dt_util.utcnow()
        if status.error and not status.approximate:
            self._last_error = self._last_check
            self._last_error_reason = sanitize_log_message(status.error)
        return status

    def add_status_listener(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        self._status_listeners.append(callback)

        def _remove() -> None:
            try:
                self._status_listeners.remove(callback)
            except ValueError:
                pass

        return _remove

    def get_diagnostics(self) -> dict[str, Any]:
        def _iso(dt_obj: Any) -> str | None:
            return dt_obj.isoformat() if dt_obj is not None else None

        return {
            "connected": self._connected,
            "busy": self.busy,
            "last_check": _iso(self._last_check),
            "last_ok": _iso(self._last_ok),
            "last_error": _iso(self._last_error),
            "last_error_reason": self._last_error_reason,
        }

    # Internals
    def _ensure_idle(self) -> None:
        if self._lock.locked():
            raise BusyError(f"Printer {self.name} is busy with another print job")

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise DeviceError(f"Printer {self.name} is not connected")

    def _record_ok(self) -> None:
        now = dt_util.utcnow()
        self._last_ok = now
        self._last_check = now

    def _record_error(self, reason: str) -> None:
        self._last_error = dt_util.utcnow()
        self._last_error_reason = sanitize_log_message(reason)

    def _set_connected(self, connected: bool) -> None:
        if connected:
            self._record_ok()
        if self._connected == connected:
            return
        self._connected = connected
        for cb in list(self._status_listeners):
            try:
                cb(connected)
            except Exception:
                _LOGGER.exception("Printer status listener failed")
