from unittest.mock import patch

from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.label_print_queue.const import DOMAIN


async def _start(hass, printer_type):  # type: ignore[no-untyped-def]
    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": "user"})
    assert result["type"] == "form"
    assert result["step_id"] == "user"
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"], {"printer_type": printer_type}
    )
    assert result["type"] == "form"
    assert result["step_id"] == "settings"
    return result


async def test_thermal_flow_success(hass):  # type: ignore[no-untyped-def]
    result = await _start(hass, "thermal")
    with patch(
        "custom_components.label_print_queue.config_flow._can_connect", return_value=True
    ), patch("custom_components.label_print_queue.async_setup_entry", return_value=True):
        result2 = await hass.config_entries.flow.async_configure(
            result["flow_id"],
            {"name": "Kitchen", "host": "1.2.3.4", "port": 9100, "darkness": 5},
        )
    assert result2["type"] == "create_entry"
    assert result2["title"] == "Kitchen"
    assert result2["data"]["printer_type"] == "thermal"
    assert result2["data"]["host"] == "1.2.3.4"
    assert result2["data"]["darkness"] == 5


async def test_thermal_flow_cannot_connect(hass):  # type: ignore[no-untyped-def]
    result = await _start(hass, "thermal")
    with patch("custom_components.label_print_queue.config_flow._can_connect", return_value=False):
        result2 = await hass.config_entries.flow.async_configure(
            result["flow_id"], {"name": "Kitchen", "host": "1.2.3.4"}
        )
    assert result2["type"] == "form"
    assert result2["errors"] == {"base": "cannot_connect"}


async def test_invalid_settings(hass):  # type: ignore[no-untyped-def]
    result = await _start(hass, "thermal")
    result2 = await hass.config_entries.flow.async_configure(
        result["flow_id"], {"name": "Kitchen", "host": "not a host"}
    )
    assert result2["errors"] == {"base": "invalid_settings"}


async def test_pdf_flow(hass, tmp_path):  # type: ignore[no-untyped-def]
    result = await _start(hass, "pdf")
    with patch("custom_components.label_print_queue.async_setup_entry", return_value=True):
        result2 = await hass.config_entries.flow.async_configure(
            result["flow_id"], {"name": "Export", "output_dir": str(tmp_path)}
        )
    assert result2["type"] == "create_entry"
    assert result2["data"]["output_dir"] == str(tmp_path)


async def test_pdf_flow_bad_directory(hass, tmp_path):  # type: ignore[no-untyped-def]
    result = await _start(hass, "pdf")
    result2 = await hass.config_entries.flow.async_configure(
        result["flow_id"], {"name": "Export", "output_dir": str(tmp_path / "missing")}
    )
    assert result2["errors"] == {"base": "invalid_output_dir"}


async def test_bluetooth_flow(hass):  # type: ignore[no-untyped-def]
    result = await _start(hass, "bluetooth")
    with patch("custom_components.label_print_queue.async_setup_entry", return_value=True):
        result2 = await hass.config_entries.flow.async_configure(
            result["flow_id"], {"name": "Handheld", "serial_port": "/dev/rfcomm1"}
        )
    assert result2["type"] == "create_entry"
    assert result2["data"]["serial_port"] == "/dev/rfcomm1"
    assert result2["data"]["paper_width"] == 58.0


async def test_duplicate_unique_id_aborts(hass):  # type: ignore[no-untyped-def]
    MockConfigEntry(
        domain=DOMAIN,
        title="Kitchen",
        data={"printer_type": "thermal", "name": "Kitchen", "host": "1.2.3.4", "port": 9100},
        unique_id="1.2.3.4:9100",
    ).add_to_hass(hass)

    result = await _start(hass, "thermal")
    with patch("custom_components.label_print_queue.config_flow._can_connect", return_value=True):
        result2 = await hass.config_entries.flow.async_configure(
            result["flow_id"], {"name": "Kitchen 2", "host": "1.2.3.4"}
        )
    assert result2["type"] == "abort"
    assert result2["reason"] == "already_configured"


async def test_options_flow_update(hass):  # type: ignore[no-untyped-def]
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="Kitchen",
        data={"printer_type": "thermal", "name": "Kitchen", "host": "1.2.3.4", "port": 9100},
        unique_id="1.2.3.4:9100",
    )
    entry.add_to_hass(hass)

    result = await hass.config_entries.options.async_init(entry.entry_id)
    assert result["type"] == "form"

    result2 = await hass.config_entries.options.async_configure(
        result["flow_id"],
        {"timeout": 5.5, "darkness": 7, "cut": "full", "auto_open": False},
    )
    assert result2["type"] == "create_entry"
    assert result2["data"]["timeout"] == 5.5
    assert result2["data"]["darkness"] == 7
    assert result2["data"]["auto_open"] is False


async def test_options_flow_rejects_bad_values(hass):  # type: ignore[no-untyped-def]
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="Kitchen",
        data={"printer_type": "thermal", "name": "Kitchen", "host": "1.2.3.4", "port": 9100},
        unique_id="1.2.3.4:9100",
    )
    entry.add_to_hass(hass)

    result = await hass.config_entries.options.async_init(entry.entry_id)
    result2 = await hass.config_entries.options.async_configure(
        result["flow_id"], {"timeout": 900.0}
    )
    assert result2["type"] == "form"
    assert result2["errors"] == {"base": "invalid_settings"}
