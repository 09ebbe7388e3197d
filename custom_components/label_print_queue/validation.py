"""
Input validation for the label print queue.

These helpers guard every value that reaches the queue or a printer driver:
queue identities and quantities, paper dimensions, tuning ranges, network and
serial addressing, and output locations. They raise ValidationError so a
service caller sees the problem immediately.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any

from .errors import ValidationError

_LOGGER = logging.getLogger(__name__)

MAX_IDENTITY_LENGTH = 255
MAX_TIMEOUT_SECONDS = 300
MAX_PAPER_DIMENSION_MM = 2000

# Path traversal protection
FORBIDDEN_PATH_SEQUENCES = {"..", "~", "$", "`"}


def validate_identity(identity: Any) -> str:
    """Validate a queue entry identity.

    Args:
        identity: Stable key of the printable item

    Returns:
        Identity stripped of surrounding whitespace

    Raises:
        ValidationError: If the identity is not a non-empty string
    """
    if not isinstance(identity, str):
        raise ValidationError("Label identity must be a string")

    identity = identity.strip()
    if not identity:
        raise ValidationError("Label identity cannot be empty")

    if len(identity) > MAX_IDENTITY_LENGTH:
        raise ValidationError(f"Label identity exceeds maximum of {MAX_IDENTITY_LENGTH} characters")

    # Control characters would end up in file names and log lines
    if re.search(r"[\x00-\x1f\x7f]", identity):
        raise ValidationError("Label identity contains control characters")

    return identity


def validate_quantity(value: Any, *, minimum: int = 1, maximum: int | None = None) -> int:
    """Validate a label quantity.

    Booleans are rejected even though they are ints.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Quantity must be an integer")

    if value < minimum:
        raise ValidationError(f"Quantity must be at least {minimum}")

    if maximum is not None and value > maximum:
        raise ValidationError(f"Quantity cannot exceed {maximum}")

    return value


def validate_numeric_input(value: Any, min_val: int, max_val: int, field_name: str) -> int:
    """Validate numeric input within bounds.

    Args:
        value: Value to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value
        field_name: Name of the field for error messages

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    try:
        num_value = int(value)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{field_name} must be a valid integer") from e

    if not (min_val <= num_value <= max_val):
        raise ValidationError(f"{field_name} must be between {min_val} and {max_val}")

    return num_value


def validate_dimension(value: Any, field_name: str) -> float:
    """Validate a physical paper dimension in millimetres."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        dim = float(value)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{field_name} must be a number") from e

    if dim <= 0:
        raise ValidationError(f"{field_name} must be positive")

    if dim > MAX_PAPER_DIMENSION_MM:
        raise ValidationError(f"{field_name} cannot exceed {MAX_PAPER_DIMENSION_MM} mm")

    return dim


def validate_timeout(timeout: Any) -> float:
    """Validate timeout value.

    Args:
        timeout: Timeout value in seconds

    Returns:
        Validated timeout

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValidationError("Timeout must be a positive number")

    if timeout > MAX_TIMEOUT_SECONDS:
        raise ValidationError(f"Timeout cannot exceed {MAX_TIMEOUT_SECONDS} seconds")

    return float(timeout)


def validate_host(host: Any) -> str:
    """Validate a network printer host name or address."""
    if not isinstance(host, str) or not host.strip():
        raise ValidationError("Network printers require a host")

    host = host.strip()
    if any(ch.isspace() for ch in host) or "/" in host:
        raise ValidationError("Host must be a bare hostname or IP address")

    return host


def validate_device_path(path: Any, field_name: str = "serial_port") -> str:
    """Validate a serial device path such as /dev/rfcomm0."""
    if not isinstance(path, str) or not path.strip():
        raise ValidationError(f"{field_name} is required")

    if any(seq in path for seq in FORBIDDEN_PATH_SEQUENCES):
        raise ValidationError("Path contains forbidden characters")

    return os.path.normpath(path.strip())


def validate_output_dir(path: Any) -> str:
    """Validate the directory PDF exports are written to.

    The directory must exist and be writable; it is not created here.
    """
    if not isinstance(path, str) or not path.strip():
        raise ValidationError("Output directory is required")

    if any(seq in path for seq in FORBIDDEN_PATH_SEQUENCES):
        raise ValidationError("Path contains forbidden characters")

    normalized_path = os.path.normpath(path)
    if not os.path.isdir(normalized_path):
        raise ValidationError("Output directory does not exist")

    if not os.access(normalized_path, os.W_OK):
        raise ValidationError("Output directory is not writable")

    return normalized_path


def sanitize_log_message(message: str, sensitive_fields: list[str] | None = None) -> str:
    """Sanitize log messages to prevent information disclosure.

    Args:
        message: Log message to sanitize
        sensitive_fields: List of field names that should be redacted

    Returns:
        Sanitized log message
    """
    if sensitive_fields is None:
        sensitive_fields = ["password", "token", "key", "secret", "host"]

    sanitized = message

    for field in sensitive_fields:
        # Pattern to match field=value in logs
        pattern = rf"({field})=([^\s,)]+)"
        sanitized = re.sub(pattern, r"\1=[REDACTED]", sanitized, flags=re.IGNORECASE)

    return sanitized
