from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from enum import StrEnum
import logging
from typing import Any
import uuid

from homeassistant.util import dt as dt_util

from .const import (
    CUT_CHOICES,
    DEFAULT_CUT,
    DEFAULT_PORT,
    DEFAULT_QUANTITY,
    DEFAULT_TIMEOUT,
    MAX_QUANTITY_PER_ITEM,
)
from .errors import InvalidTransitionError, PrintQueueError, ValidationError
from .validation import (
    validate_device_path,
    validate_dimension,
    validate_host,
    validate_numeric_input,
    validate_quantity,
    validate_timeout,
)

_LOGGER = logging.getLogger(__name__)


class PrinterType(StrEnum):
    THERMAL = "thermal"
    PDF = "pdf"
    GENERIC = "generic"
    BLUETOOTH = "bluetooth"


@dataclass(frozen=True)
class PrinterCapabilities:
    """Static description of what a driver can print.

    Dimensions are in millimetres.
    """

    supports_escpos: bool
    supports_pdf: bool
    supports_color: bool
    max_width: float
    max_height: float

    def check_fits(self, width: float, height: float) -> None:
        """Raise ValidationError when a label is larger than the printable area."""
        if width > self.max_width:
            raise ValidationError(
                f"Label width {width:g} mm exceeds printer maximum of {self.max_width:g} mm"
            )
        if height > self.max_height:
            raise ValidationError(
                f"Label height {height:g} mm exceeds printer maximum of {self.max_height:g} mm"
            )


@dataclass
class PrinterSettings:
    printer_type: PrinterType
    name: str
    host: str | None = None
    port: int | None = None
    serial_port: str | None = None
    baudrate: int | None = None
    paper_width: float = 102.0
    paper_height: float = 152.0
    darkness: int | None = None
    speed: int | None = None
    default_quantity: int = DEFAULT_QUANTITY
    timeout: float = DEFAULT_TIMEOUT
    cut: str = DEFAULT_CUT
    output_dir: str | None = None
    printer_name: str | None = None
    profile: str | None = None

    def validated(self) -> PrinterSettings:
        """Return a normalized copy, raising ValidationError on bad values."""
        changes: dict[str, Any] = {
            "paper_width": validate_dimension(self.paper_width, "paper_width"),
            "paper_height": validate_dimension(self.paper_height, "paper_height"),
            "default_quantity": validate_quantity(
                self.default_quantity, maximum=MAX_QUANTITY_PER_ITEM
            ),
            "timeout": validate_timeout(self.timeout),
        }
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Printer name cannot be empty")

        if self.printer_type is PrinterType.THERMAL:
            changes["host"] = validate_host(self.host)
            changes["port"] = validate_numeric_input(
                self.port if self.port is not None else DEFAULT_PORT, 1, 65535, "port"
            )
        elif self.printer_type is PrinterType.BLUETOOTH:
            changes["serial_port"] = validate_device_path(self.serial_port)

        if self.baudrate is not None:
            changes["baudrate"] = validate_numeric_input(self.baudrate, 1200, 921600, "baudrate")
        if self.darkness is not None:
            changes["darkness"] = validate_numeric_input(self.darkness, 0, 8, "darkness")
        if self.speed is not None:
            changes["speed"] = validate_numeric_input(self.speed, 1, 13, "speed")
        if self.cut not in CUT_CHOICES:
            raise ValidationError(f"cut must be one of {CUT_CHOICES}")

        return replace(self, **changes)

    def merge(self, partial: Mapping[str, Any]) -> PrinterSettings:
        """Return these settings updated with `partial`, validated.

        The printer type is fixed for a driver instance; switching type means
        creating a different driver.
        """
        known = {f.name for f in fields(self)}
        unknown = set(partial) - known
        if unknown:
            raise ValidationError(f"Unknown printer settings: {sorted(unknown)}")

        updates = dict(partial)
        if "printer_type" in updates:
            try:
                new_type = PrinterType(updates.pop("printer_type"))
            except ValueError as err:
                raise ValidationError(f"Unknown printer type: {err}") from err
            if new_type is not self.printer_type:
                raise ValidationError(
                    f"Cannot change printer type from {self.printer_type} to {new_type} on an existing driver"
                )
        return replace(self, **updates).validated()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PrinterSettings:
        """Build validated settings from config entry data.

        Keys that are not printer settings (such as `auto_open`) and None
        values are ignored.
        """
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known and value is not None}
        try:
            values["printer_type"] = PrinterType(values["printer_type"])
        except (KeyError, ValueError) as err:
            raise ValidationError(f"Unknown printer type: {data.get('printer_type')!r}") from err
        if "name" not in values:
            raise ValidationError("Printer name cannot be empty")
        return cls(**values).validated()

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["printer_type"] = self.printer_type.value
        return data


@dataclass(frozen=True)
class PrinterStatus:
    is_ready: bool
    paper_out: bool = False
    ribbon_out: bool | None = None
    error: str | None = None
    temperature: float | None = None
    # True when the driver could not ask the device and is guessing
    approximate: bool = False

    @staticmethod
    def approximation(*, is_ready: bool = True, error: str | None = None) -> PrinterStatus:
        return PrinterStatus(is_ready=is_ready, paper_out=False, error=error, approximate=True)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class JobStatus(StrEnum):
    PENDING = "pending"
    PRINTING = "printing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PRINTING, JobStatus.CANCELLED}),
    JobStatus.PRINTING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


@dataclass
class PrintJob:
    """One attempt at printing one label.

    The payload is opaque here; only driver renderers look inside it. Jobs in
    a terminal state are never reused: `resubmit` creates a fresh job.
    """

    identity: str
    payload: Any
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=dt_util.utcnow)
    status: JobStatus = JobStatus.PENDING
    error: str | None = None
    error_type: str | None = None

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.status]

    def _transition(self, target: JobStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Print job {self.job_id} cannot move from {self.status} to {target}"
            )
        _LOGGER.debug("Job %s: %s -> %s", self.job_id, self.status, target)
        self.status = target

    def mark_printing(self) -> None:
        self._transition(JobStatus.PRINTING)

    def mark_completed(self) -> None:
        self._transition(JobStatus.COMPLETED)

    def mark_failed(self, err: Exception | str) -> None:
        self._transition(JobStatus.FAILED)
        if isinstance(err, Exception):
            self.error = str(err) or type(err).__name__
            self.error_type = type(err).__name__
        else:
            self.error = err
            self.error_type = PrintQueueError.__name__

    def mark_cancelled(self) -> None:
        self._transition(JobStatus.CANCELLED)

    def resubmit(self) -> PrintJob:
        return PrintJob(identity=self.identity, payload=self.payload)

    def as_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "identity": self.identity,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "error": self.error,
            "error_type": self.error_type,
        }


@dataclass
class QueueEntry:
    identity: str
    payload: Any
    quantity: int
    title: str | None = None
    added_at: datetime = field(default_factory=dt_util.utcnow)

    def as_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "title": self.title,
            "quantity": self.quantity,
            "added_at": self.added_at.isoformat(),
        }
