"""Tests for config entry diagnostics."""

from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.label_print_queue.const import DOMAIN
from custom_components.label_print_queue.diagnostics import async_get_config_entry_diagnostics


async def test_diagnostics_redacts_and_summarizes(hass, tmp_path):  # type: ignore[no-untyped-def]
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="Export",
        data={"printer_type": "pdf", "name": "Export", "output_dir": str(tmp_path)},
        unique_id="pdf:diag",
    )
    entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()

    await hass.services.async_call(
        DOMAIN,
        "add_to_queue",
        {"label": {"product_name": "Soup"}, "quantity": 2},
        blocking=True,
    )

    diag = await async_get_config_entry_diagnostics(hass, entry)

    assert diag["entry"]["data"]["output_dir"] == "**REDACTED**"
    assert diag["runtime"]["settings"]["output_dir"] == "**REDACTED**"
    assert diag["runtime"]["printer_type"] == "pdf"
    assert diag["runtime"]["queue"] == {"total_items": 1, "total_labels": 2, "open": True}
    assert diag["runtime"]["status"]["is_ready"] is True
    assert diag["runtime"]["last_result"] is None
    assert diag["runtime"]["progress"] is None

    await hass.config_entries.async_unload(entry.entry_id)
    await hass.async_block_till_done()
