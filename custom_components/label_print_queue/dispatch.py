"""Send the print queue to the active printer driver and report per entry."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
import contextlib
from dataclasses import dataclass, field
from enum import StrEnum
import logging
from typing import Any

from .drivers import PrinterDriver
from .errors import BusyError, DeviceError, PrintCancelledError, ValidationError
from .models import JobStatus, PrintJob
from .print_queue import PrintQueue

_LOGGER = logging.getLogger(__name__)


class EntryOutcome(StrEnum):
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class EntryResult:
    identity: str
    title: str | None
    requested: int
    printed: int = 0
    failed: int = 0
    cancelled: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def outcome(self) -> EntryOutcome:
        if self.printed == self.requested:
            return EntryOutcome.SUCCEEDED
        if self.printed:
            return EntryOutcome.PARTIAL
        if self.failed:
            return EntryOutcome.FAILED
        return EntryOutcome.CANCELLED

    def as_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "title": self.title,
            "requested": self.requested,
            "printed": self.printed,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "outcome": self.outcome.value,
            "errors": list(self.errors),
        }


@dataclass
class DispatchResult:
    """Outcome of one print action, grouped by queue entry in submission order."""

    entries: list[EntryResult]
    jobs: list[PrintJob]

    @classmethod
    def from_jobs(cls, jobs: Iterable[PrintJob], titles: dict[str, str | None]) -> DispatchResult:
        job_list = list(jobs)
        by_identity: dict[str, EntryResult] = {}
        for job in job_list:
            entry = by_identity.get(job.identity)
            if entry is None:
                entry = by_identity[job.identity] = EntryResult(
                    identity=job.identity,
                    title=titles.get(job.identity),
                    requested=0,
                )
            entry.requested += 1
            if job.status is JobStatus.COMPLETED:
                entry.printed += 1
            elif job.status is JobStatus.FAILED:
                entry.failed += 1
                if job.error and job.error not in entry.errors:
                    entry.errors.append(job.error)
            elif job.status is JobStatus.CANCELLED:
                entry.cancelled += 1
        return cls(entries=list(by_identity.values()), jobs=job_list)

    @property
    def total_printed(self) -> int:
        return sum(entry.printed for entry in self.entries)

    @property
    def total_failed(self) -> int:
        return sum(entry.failed for entry in self.entries)

    @property
    def total_cancelled(self) -> int:
        return sum(entry.cancelled for entry in self.entries)

    @property
    def success(self) -> bool:
        # Cancelled labels are not failures
        return self.total_failed == 0

    @property
    def needs_attention(self) -> list[EntryResult]:
        return [entry for entry in self.entries if entry.failed]

    @property
    def failed_jobs(self) -> list[PrintJob]:
        return [job for job in self.jobs if job.status is JobStatus.FAILED]

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "printed": self.total_printed,
            "failed": self.total_failed,
            "cancelled": self.total_cancelled,
            "entries": [entry.as_dict() for entry in self.entries],
            "needs_attention": [entry.identity for entry in self.needs_attention],
        }


@dataclass
class PrintProgress:
    """Live view of a running print, updated as each label changes status."""

    total: int
    total_labels: int
    current: int = 0
    current_item: str | None = None
    current_quantity: int = 0
    printed_labels: int = 0
    failed_labels: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "total": self.total,
            "total_labels": self.total_labels,
            "current_item": self.current_item,
            "current_quantity": self.current_quantity,
            "printed_labels": self.printed_labels,
            "failed_labels": self.failed_labels,
            "errors": [dict(error) for error in self.errors],
        }


class PrintDispatcher:
    """Turns queue entries into print jobs and runs them on the active driver.

    The driver is looked up on every run so a settings change that replaces
    the driver takes effect on the next print.
    """

    def __init__(self, queue: PrintQueue, driver_provider: Callable[[], PrinterDriver]) -> None:
        self._queue = queue
        self._driver_provider = driver_provider
        self._active: PrinterDriver | None = None
        self._cancel_requested = False
        self._last_result: DispatchResult | None = None
        self._progress: PrintProgress | None = None
        self._run_entries: dict[str, tuple[int, int]] = {}
        self._run_titles: dict[str, str | None] = {}
        self._idle = asyncio.Event()
        self._idle.set()
        self._listeners: list[Callable[[], None]] = []

    @property
    def is_printing(self) -> bool:
        return self._active is not None

    @property
    def last_result(self) -> DispatchResult | None:
        return self._last_result

    @property
    def progress(self) -> PrintProgress | None:
        """Progress of the running print, None while idle."""
        return self._progress

    async def async_wait_idle(self) -> None:
        await self._idle.wait()

    def add_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call `callback` when a print starts, progresses or ends."""
        self._listeners.append(callback)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return _remove

    async def async_print_queue(self) -> DispatchResult:
        """Print every queued label and remove what printed from the queue."""
        entries = self._queue.entries
        if not entries:
            raise ValidationError("The print queue is empty")

        jobs = [
            PrintJob(identity=entry.identity, payload=entry.payload)
            for entry in entries
            for _ in range(entry.quantity)
        ]
        titles = {entry.identity: entry.title for entry in entries}
        _LOGGER.debug("Dispatching %s labels for %s queue entries", len(jobs), len(entries))
        return await self._async_run(jobs, titles)

    async def async_retry_failed(self, result: DispatchResult | None = None) -> DispatchResult:
        """Resubmit exactly the failed jobs of a previous print as new jobs."""
        result = result if result is not None else self._last_result
        if result is None:
            raise ValidationError("Nothing has been printed yet")
        failed = result.failed_jobs
        if not failed:
            raise ValidationError("The last print had no failed labels")

        jobs = [job.resubmit() for job in failed]
        titles = {entry.identity: entry.title for entry in result.entries}
        _LOGGER.debug("Retrying %s failed labels", len(jobs))
        return await self._async_run(jobs, titles)

    def request_cancel(self) -> bool:
        """Ask the running print to stop after the label in flight."""
        if self._active is None:
            return False
        self._cancel_requested = True
        self._active.request_cancel()
        return True

    async def _async_run(
        self, jobs: list[PrintJob], titles: dict[str, str | None]
    ) -> DispatchResult:
        if self._active is not None:
            raise BusyError("A print is already running")

        driver = self._driver_provider()
        self._active = driver
        self._cancel_requested = False
        self._idle.clear()
        self._start_progress(jobs, titles)
        try:
            if not driver.is_connected() and not await driver.async_connect():
                raise DeviceError(f"Printer {driver.name} is not reachable")
            if self._cancel_requested:
                raise PrintCancelledError("Print cancelled before any label was sent")
            batch = await driver.async_print_batch(jobs, self._on_job_update)
        finally:
            self._active = None
            self._cancel_requested = False
            self._progress = None
            self._idle.set()
            self._notify()

        result = DispatchResult.from_jobs(batch.jobs, titles)
        self._last_result = result
        self._reconcile(result)

        if result.needs_attention:
            _LOGGER.warning(
                "%s of %s labels failed; entries needing attention: %s",
                result.total_failed,
                len(jobs),
                ", ".join(entry.identity for entry in result.needs_attention),
            )
        else:
            _LOGGER.info(
                "Printed %s labels (%s cancelled)", result.total_printed, result.total_cancelled
            )
        return result

    def _start_progress(self, jobs: list[PrintJob], titles: dict[str, str | None]) -> None:
        counts: dict[str, int] = {}
        for job in jobs:
            counts[job.identity] = counts.get(job.identity, 0) + 1
        # identity -> (1-based entry position, copies in this run)
        self._run_entries = {
            identity: (position, count)
            for position, (identity, count) in enumerate(counts.items(), start=1)
        }
        self._run_titles = titles
        self._progress = PrintProgress(total=len(counts), total_labels=len(jobs))
        self._notify()

    def _on_job_update(self, job: PrintJob) -> None:
        progress = self._progress
        if progress is None:
            return
        title = self._run_titles.get(job.identity)
        if job.status is JobStatus.PRINTING:
            progress.current, progress.current_quantity = self._run_entries.get(
                job.identity, (progress.current, 0)
            )
            progress.current_item = title or job.identity
        elif job.status is JobStatus.COMPLETED:
            progress.printed_labels += 1
        elif job.status is JobStatus.FAILED:
            progress.failed_labels += 1
            progress.errors.append({"identity": job.identity, "title": title, "error": job.error})
        self._notify()

    def _notify(self) -> None:
        for cb in list(self._listeners):
            try:
                cb()
            except Exception:
                _LOGGER.exception("Print progress listener failed")

    def _reconcile(self, result: DispatchResult) -> None:
        """Take printed copies off the queue; failed and cancelled copies stay."""
        for entry_result in result.entries:
            if not entry_result.printed:
                continue
            entry = self._queue.get(entry_result.identity)
            if entry is None:
                continue
            remaining = entry.quantity - entry_result.printed
            if remaining > 0:
                self._queue.set_quantity(entry.identity, remaining)
            else:
                self._queue.remove_item(entry.identity)
