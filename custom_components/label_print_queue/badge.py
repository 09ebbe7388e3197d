"""Queue badge: the single control that opens the print queue.

The badge is hidden while the queue is empty and pulses briefly whenever the
number of queued items goes up.
"""

from __future__ import annotations

from collections.abc import Callable
import contextlib
import logging
from typing import Any

from homeassistant.core import callback

from .const import PULSE_DURATION
from .print_queue import PrintQueue

_LOGGER = logging.getLogger(__name__)

# (delay_seconds, action) -> cancel. Home Assistant's async_call_later fits.
CallLater = Callable[[float, Callable[[Any], None]], Callable[[], None]]


class QueueBadge:
    def __init__(
        self,
        queue: PrintQueue,
        call_later: CallLater,
        *,
        pulse_duration: float = PULSE_DURATION,
    ) -> None:
        self._queue = queue
        self._call_later = call_later
        self._pulse_duration = pulse_duration
        self._last_items = queue.total_items
        self._pulsing = False
        self._cancel_pulse: Callable[[], None] | None = None
        self._listeners: list[Callable[[], None]] = []
        self._unsubscribe: Callable[[], None] | None = queue.add_listener(self._on_queue_changed)

    @property
    def visible(self) -> bool:
        return self._queue.total_items > 0

    @property
    def pulsing(self) -> bool:
        return self._pulsing

    @property
    def count(self) -> int:
        return self._queue.total_labels

    async def async_press(self) -> None:
        self._queue.open()

    def _on_queue_changed(self) -> None:
        items = self._queue.total_items
        if items > self._last_items:
            self._start_pulse()
        elif items == 0 and self._pulsing:
            self._stop_pulse()
        self._last_items = items
        self._notify()

    def _start_pulse(self) -> None:
        if self._cancel_pulse is not None:
            self._cancel_pulse()
        self._pulsing = True
        self._cancel_pulse = self._call_later(self._pulse_duration, self._end_pulse)

    @callback
    def _end_pulse(self, _now: Any = None) -> None:
        self._cancel_pulse = None
        self._pulsing = False
        self._notify()

    def _stop_pulse(self) -> None:
        if self._cancel_pulse is not None:
            self._cancel_pulse()
            self._cancel_pulse = None
        self._pulsing = False

    def shutdown(self) -> None:
        """Cancel any pending pulse timer and stop observing the queue."""
        self._stop_pulse()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def add_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return _remove

    def _notify(self) -> None:
        for cb in list(self._listeners):
            try:
                cb()
            except Exception:
                _LOGGER.exception("Queue badge listener failed")
