from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from django.core.exceptions import ValidationError

from .schema import (
    CONFIG_UNITS,
    ELEMENT_TYPES,
    FONT_WEIGHTS,
    TEXT_ALIGNMENTS,
)


ALLOWED_CONFIG_KEYS = {
    "width",
    "height",
    "unit",
    "background_color",
    "background_image",
    "elements",
}
REQUIRED_CONFIG_KEYS = {"width", "height", "unit", "background_color", "elements"}
ALLOWED_ELEMENT_KEYS = {
    "id",
    "type",
    "x",
    "y",
    "width",
    "height",
    "content",
    "style",
    "z_index",
}
REQUIRED_ELEMENT_KEYS = {"id", "type", "x", "y", "width", "height", "z_index"}


def _to_decimal(
    value: Any,
    *,
    field_name: str,
    allow_zero: bool = False,
    allow_negative: bool = False,
) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError({field_name: "Must be a number."})
    try:
        decimal_value = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError({field_name: "Must be a number."}) from exc
    if not decimal_value.is_finite():
        raise ValidationError({field_name: "Must be a finite number."})
    if allow_negative:
        return decimal_value
    if allow_zero and decimal_value < Decimal("0"):
        raise ValidationError({field_name: "Must be >= 0."})
    if not allow_zero and decimal_value <= Decimal("0"):
        raise ValidationError({field_name: "Must be > 0."})
    return decimal_value


def _validate_style(style: Any, *, element_path: str) -> None:
    if style is None:
        return
    if not isinstance(style, dict):
        raise ValidationError({f"{element_path}.style": "Style must be an object."})

    font_size = style.get("fontSize")
    if font_size is not None:
        _to_decimal(font_size, field_name=f"{element_path}.style.fontSize")
    font_weight = style.get("fontWeight")
    if font_weight is not None and font_weight not in FONT_WEIGHTS:
        raise ValidationError(
            {f"{element_path}.style.fontWeight": f"Unsupported font weight '{font_weight}'."}
        )
    text_align = style.get("textAlign")
    if text_align is not None and text_align not in TEXT_ALIGNMENTS:
        raise ValidationError(
            {f"{element_path}.style.textAlign": f"Unsupported text alignment '{text_align}'."}
        )
    for key in ("fontFamily", "color"):
        value = style.get(key)
        if value is not None and not isinstance(value, str):
            raise ValidationError({f"{element_path}.style.{key}": "Must be a string."})


def validate_badge_config(
    payload: Any,
    *,
    field_name: str = "front_config",
    enforce_bounds: bool = False,
) -> None:
    if not isinstance(payload, dict):
        raise ValidationError({field_name: "Badge config must be a JSON object."})

    unknown_keys = set(payload.keys()) - ALLOWED_CONFIG_KEYS
    if unknown_keys:
        raise ValidationError(
            {field_name: "Unknown key(s): " + ", ".join(sorted(unknown_keys))}
        )
    missing_keys = REQUIRED_CONFIG_KEYS - set(payload.keys())
    if missing_keys:
        raise ValidationError(
            {field_name: "Missing key(s): " + ", ".join(sorted(missing_keys))}
        )

    card_width = _to_decimal(payload.get("width"), field_name=f"{field_name}.width")
    card_height = _to_decimal(payload.get("height"), field_name=f"{field_name}.height")
    unit = payload.get("unit")
    if unit not in CONFIG_UNITS:
        raise ValidationError({f"{field_name}.unit": f"Unsupported unit '{unit}'."})
    background_color = payload.get("background_color")
    if not isinstance(background_color, str) or not background_color.strip():
        raise ValidationError(
            {f"{field_name}.background_color": "Background color is required."}
        )
    background_image = payload.get("background_image")
    if background_image is not None and not isinstance(background_image, str):
        raise ValidationError({f"{field_name}.background_image": "Must be a string."})

    elements = payload.get("elements")
    if not isinstance(elements, list):
        raise ValidationError({f"{field_name}.elements": "Must be a list."})

    seen_ids: set[str] = set()
    for index, element in enumerate(elements):
        element_path = f"{field_name}.elements[{index}]"
        if not isinstance(element, dict):
            raise ValidationError({element_path: "Each element must be an object."})

        missing_element_keys = REQUIRED_ELEMENT_KEYS - set(element.keys())
        if missing_element_keys:
            raise ValidationError(
                {element_path: "Missing key(s): " + ", ".join(sorted(missing_element_keys))}
            )
        unknown_element_keys = set(element.keys()) - ALLOWED_ELEMENT_KEYS
        if unknown_element_keys:
            raise ValidationError(
                {element_path: "Unknown key(s): " + ", ".join(sorted(unknown_element_keys))}
            )

        element_id = str(element.get("id") or "").strip()
        if not element_id:
            raise ValidationError({f"{element_path}.id": "Element id is required."})
        if element_id in seen_ids:
            raise ValidationError({f"{element_path}.id": f"Duplicate element id '{element_id}'."})
        seen_ids.add(element_id)

        element_type = element.get("type")
        if element_type not in ELEMENT_TYPES:
            raise ValidationError(
                {f"{element_path}.type": f"Unsupported element type '{element_type}'."}
            )

        x = _to_decimal(element.get("x"), field_name=f"{element_path}.x", allow_negative=True)
        y = _to_decimal(element.get("y"), field_name=f"{element_path}.y", allow_negative=True)
        width = _to_decimal(element.get("width"), field_name=f"{element_path}.width")
        height = _to_decimal(element.get("height"), field_name=f"{element_path}.height")

        z_index = element.get("z_index")
        if isinstance(z_index, bool) or not isinstance(z_index, int) or z_index < 0:
            raise ValidationError(
                {f"{element_path}.z_index": "Must be a non-negative integer."}
            )

        content = element.get("content")
        if content is not None and not isinstance(content, str):
            raise ValidationError({f"{element_path}.content": "Must be a string."})

        _validate_style(element.get("style"), element_path=element_path)

        if enforce_bounds and unit != "%":
            if x < 0 or y < 0 or x + width > card_width or y + height > card_height:
                raise ValidationError({element_path: "Element exceeds card bounds."})
        if enforce_bounds and unit == "%":
            if x < 0 or y < 0 or x + width > 100 or y + height > 100:
                raise ValidationError({element_path: "Element exceeds card bounds."})
