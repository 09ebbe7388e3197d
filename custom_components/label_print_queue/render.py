"""Label rendering shared by the printer drivers.

Queue and dispatch code never look inside a label payload; drivers call into
this module to turn a payload into something printable. A payload is a
mapping with keys such as `product_name`, `category_name`, `prep_date`,
`expiry_date`, `allergens`, `storage_instructions` and `batch_number`, plus
optional `width_mm`/`height_mm` overriding the printer's paper size.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
import textwrap
from typing import Any

from PIL import Image, ImageDraw, ImageFont

from .const import DOTS_PER_MM
from .errors import ValidationError
from .models import PrinterSettings
from .validation import validate_dimension

_LOGGER = logging.getLogger(__name__)

MARGIN_MM = 2.0
LINE_SPACING = 4


def label_identity(payload: Mapping[str, Any]) -> str:
    """Derive the queue key for a label.

    Two labels for the same product prepared and expiring on the same dates
    are the same queue entry.
    """
    product = payload.get("product_id") or payload.get("product_name")
    if not product:
        raise ValidationError("Label needs a product_id or product_name")
    return "|".join(
        str(part) for part in (product, payload.get("prep_date") or "", payload.get("expiry_date") or "")
    )


def label_size(payload: Any, settings: PrinterSettings) -> tuple[float, float]:
    """Physical label size in millimetres."""
    if not isinstance(payload, Mapping):
        return settings.paper_width, settings.paper_height
    width = payload.get("width_mm", settings.paper_width)
    height = payload.get("height_mm", settings.paper_height)
    return validate_dimension(width, "width_mm"), validate_dimension(height, "height_mm")


def label_lines(payload: Any) -> list[str]:
    if not isinstance(payload, Mapping):
        raise ValidationError("Label payload must be a mapping")

    name = payload.get("product_name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Label has no product name")

    lines = [name.strip()]
    category = " / ".join(
        str(part) for part in (payload.get("category_name"), payload.get("subcategory_name")) if part
    )
    if category:
        lines.append(category)
    if payload.get("prep_date"):
        lines.append(f"Prepared: {payload['prep_date']}")
    if payload.get("expiry_date"):
        lines.append(f"Use by: {payload['expiry_date']}")

    allergens = payload.get("allergens") or []
    if isinstance(allergens, str):
        allergens = [allergens]
    elif not isinstance(allergens, (list, tuple)):
        raise ValidationError("Label allergens must be a list or a string")
    if allergens:
        lines.append("Allergens: " + ", ".join(str(a) for a in allergens))

    storage = payload.get("storage_instructions") or payload.get("condition")
    if storage:
        lines.append(str(storage))
    if payload.get("prepared_by_name"):
        lines.append(f"By: {payload['prepared_by_name']}")

    batch = payload.get("batch_number") or payload.get("barcode")
    if batch:
        lines.append(f"Batch: {batch}")
    return lines


def render_label(
    payload: Any,
    *,
    width_mm: float,
    height_mm: float,
    dots_per_mm: int = DOTS_PER_MM,
    color: bool = False,
) -> Image.Image:
    """Render a label to an image of exactly `width_mm` x `height_mm`.

    Raises ValidationError rather than clipping when the text does not fit.
    """
    lines = label_lines(payload)

    width_px = max(1, round(width_mm * dots_per_mm))
    height_px = max(1, round(height_mm * dots_per_mm))
    margin = round(MARGIN_MM * dots_per_mm)

    font = ImageFont.load_default()
    char_width = max(1.0, float(font.getlength("M")))
    columns = max(1, int((width_px - 2 * margin) // char_width))

    wrapped: list[str] = []
    for line in lines:
        wrapped.extend(textwrap.wrap(line, width=columns) or [""])

    _, top, _, bottom = font.getbbox("Ag")
    line_height = (bottom - top) + LINE_SPACING
    needed = 2 * margin + line_height * len(wrapped)
    if needed > height_px:
        raise ValidationError(
            f"Label content needs {needed / dots_per_mm:.1f} mm but the label is {height_mm:g} mm high"
        )

    if color:
        img = Image.new("RGB", (width_px, height_px), "white")
        fill: Any = "black"
    else:
        img = Image.new("1", (width_px, height_px), 1)
        fill = 0

    draw = ImageDraw.Draw(img)
    y = margin
    try:
        for text in wrapped:
            draw.text((margin, y), text, font=font, fill=fill)
            y += line_height
    except UnicodeEncodeError as err:
        raise ValidationError("Label text contains characters the label font cannot render") from err

    _LOGGER.debug("Rendered label %sx%s px, %s lines", width_px, height_px, len(wrapped))
    return img
