"""Error taxonomy for the label print queue.

Every error is a HomeAssistantError so service handlers can surface it to the
caller unchanged. Per-job failures are recorded on the PrintJob; only systemic
problems escape a batch.
"""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class PrintQueueError(HomeAssistantError):
    """Base class for all label print queue errors."""


class ValidationError(PrintQueueError):
    """Input has the wrong shape or size. Not retryable."""


class DeviceError(PrintQueueError):
    """The printer reported a fault (paper out, offline, spooler failure)."""


class PrintTimeoutError(PrintQueueError):
    """The printer did not acknowledge a job within its deadline."""


class BusyError(PrintQueueError):
    """Another print operation is already running on the driver."""


class PrintCancelledError(PrintQueueError):
    """The operation was stopped by an explicit cancellation."""


class InvalidTransitionError(PrintQueueError):
    """A PrintJob was moved along an edge its lifecycle does not allow."""
