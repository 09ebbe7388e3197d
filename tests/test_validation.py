"""Tests for input validation helpers."""

import os

import pytest

from custom_components.label_print_queue.errors import ValidationError
from custom_components.label_print_queue.validation import (
    MAX_IDENTITY_LENGTH,
    sanitize_log_message,
    validate_device_path,
    validate_dimension,
    validate_host,
    validate_identity,
    validate_numeric_input,
    validate_output_dir,
    validate_quantity,
    validate_timeout,
)


class TestIdentity:
    def test_strips_whitespace(self):  # type: ignore[no-untyped-def]
        assert validate_identity("  42|2026-10-19  ") == "42|2026-10-19"

    def test_too_long(self):  # type: ignore[no-untyped-def]
        with pytest.raises(ValidationError):
            validate_identity("x" * (MAX_IDENTITY_LENGTH + 1))

    def test_control_characters(self):  # type: ignore[no-untyped-def]
        with pytest.raises(ValidationError):
            validate_identity("a\nb")


class TestQuantity:
    def test_bounds(self):  # type: ignore[no-untyped-def]
        assert validate_quantity(1) == 1
        assert validate_quantity(0, minimum=0) == 0
        with pytest.raises(ValidationError):
            validate_quantity(0)
        with pytest.raises(ValidationError):
            validate_quantity(11, maximum=10)

    def test_rejects_non_integers(self):  # type: ignore[no-untyped-def]
        for value in (1.0, "1", None, False):
            with pytest.raises(ValidationError):
                validate_quantity(value)


def test_numeric_input():  # type: ignore[no-untyped-def]
    assert validate_numeric_input("5", 0, 8, "darkness") == 5
    with pytest.raises(ValidationError, match="darkness"):
        validate_numeric_input(9, 0, 8, "darkness")
    with pytest.raises(ValidationError):
        validate_numeric_input("abc", 0, 8, "darkness")


def test_dimension():  # type: ignore[no-untyped-def]
    assert validate_dimension(58, "paper_width") == 58.0
    for bad in (0, -1, "wide", True, 5000):
        with pytest.raises(ValidationError):
            validate_dimension(bad, "paper_width")


def test_timeout():  # type: ignore[no-untyped-def]
    assert validate_timeout(10) == 10.0
    for bad in (0, -1, "10", 301):
        with pytest.raises(ValidationError):
            validate_timeout(bad)


def test_host():  # type: ignore[no-untyped-def]
    assert validate_host(" printer.local ") == "printer.local"
    for bad in ("", None, "a b", "http://x/"):
        with pytest.raises(ValidationError):
            validate_host(bad)


def test_device_path():  # type: ignore[no-untyped-def]
    assert validate_device_path("/dev/rfcomm0") == "/dev/rfcomm0"
    with pytest.raises(ValidationError):
        validate_device_path("/dev/../etc/passwd")
    with pytest.raises(ValidationError):
        validate_device_path("")


def test_output_dir(tmp_path):  # type: ignore[no-untyped-def]
    assert validate_output_dir(str(tmp_path)) == os.path.normpath(str(tmp_path))
    with pytest.raises(ValidationError, match="does not exist"):
        validate_output_dir(str(tmp_path / "missing"))
    with pytest.raises(ValidationError, match="forbidden"):
        validate_output_dir(str(tmp_path / ".." / "x"))


def test_sanitize_log_message():  # type: ignore[no-untyped-def]
    assert sanitize_log_message("connect host=10.0.0.5 failed") == "connect host=[REDACTED] failed"
    assert sanitize_log_message("plain text") == "plain text"
