import asyncio
import threading
from typing import Any, ClassVar

import pytest

from custom_components.label_print_queue.drivers.base import PrinterDriver
from custom_components.label_print_queue.models import (
    PrinterCapabilities,
    PrinterSettings,
    PrinterStatus,
    PrinterType,
    PrintJob,
)


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> None:
    return


@pytest.fixture(autouse=True)
def avoid_safe_shutdown_thread(monkeypatch: Any) -> None:
    """Prevent Home Assistant's safe-shutdown background thread in tests.

    Intercepts thread starts whose target function is named '_run_safe_shutdown_loop'
    and short-circuits them. This avoids lingering thread assertions from the
    test harness.
    """
    _orig_start = threading.Thread.start

    def _patched_start(self: Any, *args: Any, **kwargs: Any) -> Any:
        target_name = getattr(getattr(self, "_target", None), "__name__", None)
        if target_name == "_run_safe_shutdown_loop":
            return None
        return _orig_start(self, *args, **kwargs)

    monkeypatch.setattr(threading.Thread, "start", _patched_start, raising=True)


class FakeDriver(PrinterDriver):
    """In-memory driver with scripted per-label outcomes.

    `outcomes` maps a job identity to a list of results consumed in order:
    None prints, an exception fails the label, and a float sleeps that long
    before printing.
    """

    printer_type: ClassVar[PrinterType] = PrinterType.GENERIC
    capabilities: ClassVar[PrinterCapabilities] = PrinterCapabilities(
        supports_escpos=False,
        supports_pdf=False,
        supports_color=False,
        max_width=100.0,
        max_height=100.0,
    )

    def __init__(self, hass: Any, settings: PrinterSettings) -> None:
        super().__init__(hass, settings)
        self.reachable = True
        self.delay = 0.0
        self.outcomes: dict[str, list[Any]] = {}
        self.printed: list[str] = []
        self.started = asyncio.Event()

    async def _async_open(self) -> bool:
        return self.reachable

    async def _async_close(self) -> None:
        return None

    async def _async_print_job(self, job: PrintJob) -> None:
        self.started.set()
        script = self.outcomes.get(job.identity)
        outcome = script.pop(0) if script else None
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(outcome, float):
            await asyncio.sleep(outcome)
        elif isinstance(outcome, Exception):
            raise outcome
        self.printed.append(job.identity)

    async def _async_query_status(self) -> PrinterStatus:
        return PrinterStatus.approximation(is_ready=self._connected)


@pytest.fixture
def fake_settings() -> PrinterSettings:
    return PrinterSettings(
        printer_type=PrinterType.GENERIC,
        name="Fake",
        paper_width=50.0,
        paper_height=30.0,
        timeout=1.0,
    )


@pytest.fixture
def fake_driver(hass: Any, fake_settings: PrinterSettings) -> FakeDriver:
    return FakeDriver(hass, fake_settings)
