"""Tests for the system spooler driver."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from custom_components.label_print_queue.drivers import create_driver
from custom_components.label_print_queue.errors import DeviceError, PrintTimeoutError
from custom_components.label_print_queue.models import PrinterSettings, PrinterType, PrintJob

LABEL = {"product_name": "Chicken stock"}


def _generic(hass, **kwargs):  # type: ignore[no-untyped-def]
    settings = PrinterSettings(
        printer_type=PrinterType.GENERIC,
        name="Office",
        paper_width=62,
        paper_height=29,
        **kwargs,
    )
    return create_driver(hass, settings)


async def test_connect_needs_lp(hass):  # type: ignore[no-untyped-def]
    driver = _generic(hass)
    with patch("shutil.which", return_value=None):
        assert await driver.async_connect() is False
    with patch("shutil.which", return_value="/usr/bin/lp"):
        assert await driver.async_connect()


async def test_print_submits_png_to_lp(hass):  # type: ignore[no-untyped-def]
    driver = _generic(hass, printer_name="Zebra")
    with patch("shutil.which", return_value="/usr/bin/lp"):
        await driver.async_connect()

    with patch("subprocess.run", return_value=MagicMock(returncode=0, stdout="", stderr="")) as run:
        await driver.async_print(PrintJob(identity="a", payload=LABEL))

    cmd = run.call_args.args[0]
    assert cmd[:3] == ["lp", "-d", "Zebra"]
    assert "media=Custom.62x29mm" in cmd
    assert cmd[-1].endswith(".png")
    assert run.call_args.kwargs["timeout"] == 10.0


async def test_lp_error_is_device_error(hass):  # type: ignore[no-untyped-def]
    driver = _generic(hass)
    with patch("shutil.which", return_value="/usr/bin/lp"):
        await driver.async_connect()

    failed = MagicMock(returncode=1, stdout="", stderr="lp: The printer or class does not exist.")
    with patch("subprocess.run", return_value=failed), pytest.raises(DeviceError, match="rc=1"):
        await driver.async_print(PrintJob(identity="a", payload=LABEL))


async def test_lp_timeout(hass):  # type: ignore[no-untyped-def]
    driver = _generic(hass)
    with patch("shutil.which", return_value="/usr/bin/lp"):
        await driver.async_connect()

    with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("lp", 10)), pytest.raises(
        PrintTimeoutError
    ):
        await driver.async_print(PrintJob(identity="a", payload=LABEL))


async def test_status_is_approximate(hass):  # type: ignore[no-untyped-def]
    status = await _generic(hass).async_get_status()
    assert status.approximate
