from __future__ import annotations

import base64
from decimal import Decimal, InvalidOperation
from html import escape
from io import BytesIO
import logging
import math
import re
from typing import Any
import zipfile

from django.conf import settings
from django.core.exceptions import ValidationError

from events.models import Event, Participant

from .models import BadgeTemplate
from .registry import validate_badge_config
from .schema import SCREEN_PX_PER_MM
from .tokens import QR_CODE_TOKEN, substitute_tokens

try:
    from weasyprint import HTML
except Exception:  # pragma: no cover - handled at runtime
    HTML = None

try:
    import qrcode
except Exception:  # pragma: no cover - handled at runtime
    qrcode = None

logger = logging.getLogger(__name__)

SAMPLE_PARTICIPANT_VALUES = {
    "{nome}": "Mario",
    "{cognome}": "Rossi",
    "{titolo}": "Dr.",
    "{professione}": "Medico Chirurgo",
    "{disciplina}": "Cardiologia",
}
DEFAULT_FONT_SIZE_PX = Decimal("14")
PX_PER_MM = Decimal(SCREEN_PX_PER_MM)
HUNDRED = Decimal("100")
_URL_PATTERN = re.compile(r"^(https?://|data:image/)", re.IGNORECASE)
_FILENAME_UNSAFE_PATTERN = re.compile(r"[^A-Za-z0-9._-]+")


class BadgeRenderError(Exception):
    def __init__(self, detail: str, *, status_code: int = 400):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


def _error_from_validation(exc: ValidationError) -> BadgeRenderError:
    if hasattr(exc, "message_dict"):
        parts: list[str] = []
        for key, values in exc.message_dict.items():
            if isinstance(values, list):
                parts.append(f"{key}: {', '.join(str(value) for value in values)}")
            else:
                parts.append(f"{key}: {values}")
        return BadgeRenderError("; ".join(parts) or "Invalid badge config.")
    if hasattr(exc, "messages") and exc.messages:
        return BadgeRenderError("; ".join(str(message) for message in exc.messages))
    return BadgeRenderError("Invalid badge config.")


def _decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    try:
        decimal_value = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return default
    if not decimal_value.is_finite():
        return default
    return decimal_value


def _format_mm(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01'))}"


def build_token_context(event: Event, participant: Participant | None) -> dict[str, str]:
    """Token values for one badge; without a participant the card is filled with samples."""
    if participant is None:
        context = dict(SAMPLE_PARTICIPANT_VALUES)
    else:
        context = {
            "{nome}": participant.first_name,
            "{cognome}": participant.last_name,
            "{titolo}": participant.title,
            "{professione}": participant.profession,
            "{disciplina}": participant.discipline,
        }
    context.update(
        {
            "{evento_nome}": event.title,
            "{evento_date}": event.date_label,
            "{evento_luogo}": event.venue,
            "{qr_code}": build_qr_payload(event, participant),
        }
    )
    return context


def build_qr_payload(event: Event, participant: Participant | None) -> str:
    base = str(getattr(settings, "BADGE_QR_BASE_URL", "")).rstrip("/")
    participant_part = str(participant.pk) if participant is not None else "sample"
    return f"{base}/{event.pk}/{participant_part}"


def _build_qr_data_uri(value: str) -> str:
    payload = str(value or "").strip()
    if not payload or qrcode is None:
        return ""
    qr_code = qrcode.QRCode(box_size=6, border=1)
    qr_code.add_data(payload)
    qr_code.make(fit=True)
    image = qr_code.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return f"data:image/png;base64,{base64.b64encode(buffer.getvalue()).decode('ascii')}"


def card_size_mm(config: dict[str, Any]) -> tuple[Decimal, Decimal]:
    width = _decimal(config.get("width"))
    height = _decimal(config.get("height"))
    if config.get("unit") == "px":
        return width / PX_PER_MM, height / PX_PER_MM
    # Percent configs carry their physical size in mm.
    return width, height


def _to_mm(value: Any, *, unit: str, card_extent_mm: Decimal) -> Decimal:
    decimal_value = _decimal(value)
    if unit == "px":
        return decimal_value / PX_PER_MM
    if unit == "%":
        return decimal_value * card_extent_mm / HUNDRED
    return decimal_value


def _sorted_elements(config: dict[str, Any]) -> list[dict[str, Any]]:
    indexed_elements = list(enumerate(config.get("elements") or []))

    def _sort_key(item: tuple[int, dict[str, Any]]) -> tuple[int, int]:
        index, element = item
        try:
            z_index = int(element.get("z_index", 0))
        except (TypeError, ValueError):
            z_index = 0
        return z_index, index

    return [element for _, element in sorted(indexed_elements, key=_sort_key)]


def resolve_side(config: dict[str, Any], context: dict[str, str]) -> dict[str, Any]:
    """Convert one side's config into mm geometry with tokens substituted."""
    unit = str(config.get("unit") or "mm")
    width_mm, height_mm = card_size_mm(config)
    qr_data_uri = ""
    resolved_elements: list[dict[str, Any]] = []

    for render_order, element in enumerate(_sorted_elements(config)):
        element_type = str(element.get("type") or "")
        style = element.get("style") or {}
        resolved: dict[str, Any] = {
            "id": str(element.get("id") or ""),
            "type": element_type,
            "x_mm": _to_mm(element.get("x"), unit=unit, card_extent_mm=width_mm),
            "y_mm": _to_mm(element.get("y"), unit=unit, card_extent_mm=height_mm),
            "width_mm": _to_mm(element.get("width"), unit=unit, card_extent_mm=width_mm),
            "height_mm": _to_mm(element.get("height"), unit=unit, card_extent_mm=height_mm),
            "render_order": render_order,
            "style": style if isinstance(style, dict) else {},
        }
        content = str(element.get("content") or "")

        if element_type == "qrcode" or (
            element_type == "field" and content.strip() == QR_CODE_TOKEN
        ):
            if not qr_data_uri:
                qr_data_uri = _build_qr_data_uri(context.get(QR_CODE_TOKEN, ""))
            resolved["type"] = "qrcode"
            resolved["qr_data_uri"] = qr_data_uri
        elif element_type == "image":
            resolved["source"] = content.strip() if _URL_PATTERN.match(content.strip()) else ""
        elif element_type in ("text", "field"):
            resolved["resolved_text"] = substitute_tokens(content, context)
        else:
            raise BadgeRenderError(f"Unsupported element type '{element_type}'.")
        resolved_elements.append(resolved)

    background_image = str(config.get("background_image") or "").strip()
    return {
        "width_mm": width_mm,
        "height_mm": height_mm,
        "background_color": str(config.get("background_color") or "#FFFFFF"),
        "background_image": background_image if _URL_PATTERN.match(background_image) else "",
        "elements": resolved_elements,
    }


def _style_value(style: dict[str, Any], key: str, default: str) -> str:
    value = style.get(key, default)
    return str(value if value is not None else default)


def _font_size_mm(style: dict[str, Any]) -> Decimal:
    font_size_px = _decimal(style.get("fontSize"), DEFAULT_FONT_SIZE_PX)
    if font_size_px <= 0:
        font_size_px = DEFAULT_FONT_SIZE_PX
    return font_size_px / PX_PER_MM


def _render_element_html(element: dict[str, Any]) -> str:
    style = element["style"]
    base_style = (
        "position:absolute;"
        f"left:{_format_mm(element['x_mm'])}mm;"
        f"top:{_format_mm(element['y_mm'])}mm;"
        f"width:{_format_mm(element['width_mm'])}mm;"
        f"height:{_format_mm(element['height_mm'])}mm;"
        "box-sizing:border-box;"
        "overflow:hidden;"
        f"z-index:{element['render_order']};"
    )

    element_type = element["type"]
    if element_type in ("text", "field"):
        color = escape(_style_value(style, "color", "#000000"))
        font_family = escape(_style_value(style, "fontFamily", "Arial"))
        font_weight = escape(_style_value(style, "fontWeight", "normal"))
        text_align = escape(_style_value(style, "textAlign", "center"))
        text_value = escape(str(element.get("resolved_text", ""))).replace("\n", "<br/>")
        return (
            f'<div style="{base_style}'
            f"font-size:{_format_mm(_font_size_mm(style))}mm;"
            f"font-family:{font_family},sans-serif;"
            f"color:{color};font-weight:{font_weight};text-align:{text_align};"
            'line-height:1.2;white-space:normal;word-break:break-word;">'
            f"{text_value}</div>"
        )
    if element_type == "image":
        source = str(element.get("source", ""))
        if source:
            return (
                f'<div style="{base_style}">'
                f'<img src="{escape(source)}" alt="" '
                'style="width:100%;height:100%;object-fit:contain;display:block;"/>'
                "</div>"
            )
        return (
            f'<div style="{base_style}'
            "border:0.20mm dashed #9ca3af;background:#f9fafb;"
            'font-size:2.6mm;color:#6b7280;text-align:center;">Image</div>'
        )
    if element_type == "qrcode":
        qr_data_uri = str(element.get("qr_data_uri", ""))
        if qr_data_uri:
            return (
                f'<div style="{base_style}">'
                f'<img src="{escape(qr_data_uri)}" alt="QR" '
                'style="width:100%;height:100%;object-fit:contain;display:block;"/>'
                "</div>"
            )
        return (
            f'<div style="{base_style}'
            "border:0.20mm dashed #6b7280;background:#f3f4f6;"
            'font-size:2.4mm;color:#6b7280;text-align:center;">QR</div>'
        )
    return ""


def render_card_fragment(side: dict[str, Any]) -> str:
    background_style = f"background-color:{escape(side['background_color'])};"
    if side["background_image"]:
        background_style += (
            f"background-image:url('{escape(side['background_image'])}');"
            "background-size:cover;background-position:center;"
        )
    elements_html = "".join(_render_element_html(element) for element in side["elements"])
    return (
        f'<div class="badge-card" style="position:relative;width:{_format_mm(side["width_mm"])}mm;'
        f'height:{_format_mm(side["height_mm"])}mm;overflow:hidden;box-sizing:border-box;'
        f'{background_style}">{elements_html}</div>'
    )


def _document_html(page_width_mm: Decimal, page_height_mm: Decimal, pages: list[str]) -> str:
    return (
        "<!doctype html>"
        "<html><head><meta charset='utf-8'>"
        "<style>"
        f"@page {{ size: {_format_mm(page_width_mm)}mm {_format_mm(page_height_mm)}mm; margin: 0; }}"
        "html,body{margin:0;padding:0;}"
        "body{font-family:Arial,sans-serif;}"
        ".badge-page{position:relative;overflow:hidden;box-sizing:border-box;"
        "page-break-after:always;}"
        ".badge-page:last-child{page-break-after:auto;}"
        "</style>"
        "</head><body>"
        f"{''.join(pages)}"
        "</body></html>"
    )


def page_size_mm(orientation: str) -> tuple[Decimal, Decimal]:
    width, height = getattr(settings, "BADGE_PAGE_SIZE_MM", (210, 297))
    width_mm, height_mm = Decimal(str(width)), Decimal(str(height))
    short_side, long_side = min(width_mm, height_mm), max(width_mm, height_mm)
    if orientation == BadgeTemplate.PageOrientation.LANDSCAPE:
        return long_side, short_side
    return short_side, long_side


def build_sheet_layout(
    *,
    badges_per_page: int,
    card_width_mm: Decimal,
    card_height_mm: Decimal,
    page_width_mm: Decimal,
    page_height_mm: Decimal,
) -> dict[str, Any]:
    """Grid of badge slots on one sheet, centred, two columns unless two or fewer badges."""
    requested = max(1, int(badges_per_page))
    columns = 1 if requested <= 2 else 2
    rows = math.ceil(requested / columns)
    if card_height_mm > 0:
        rows_that_fit = max(1, int(page_height_mm // card_height_mm))
        rows = min(rows, rows_that_fit)
    slots_per_page = min(requested, rows * columns)
    if slots_per_page < requested:
        logger.warning(
            "Badge sheet holds %s of %s requested badges per page", slots_per_page, requested
        )

    margin_left = max(Decimal("0"), (page_width_mm - columns * card_width_mm) / 2)
    margin_top = max(Decimal("0"), (page_height_mm - rows * card_height_mm) / 2)
    slots: list[dict[str, Any]] = []
    for slot_index in range(slots_per_page):
        row = slot_index // columns
        column = slot_index % columns
        slots.append(
            {
                "slot_index": slot_index,
                "row": row,
                "column": column,
                "x_mm": margin_left + column * card_width_mm,
                "y_mm": margin_top + row * card_height_mm,
            }
        )
    return {
        "columns": columns,
        "rows": rows,
        "slots_per_page": slots_per_page,
        "margin_left_mm": margin_left,
        "slots": slots,
    }


def _mirror_slot(slot: dict[str, Any], layout: dict[str, Any], card_width_mm: Decimal) -> dict[str, Any]:
    mirrored_column = layout["columns"] - 1 - slot["column"]
    return {
        **slot,
        "column": mirrored_column,
        "x_mm": layout["margin_left_mm"] + mirrored_column * card_width_mm,
    }


def _validated_side_config(template: BadgeTemplate, side: str) -> dict[str, Any]:
    config = template.front_config if side == "front" else template.effective_back_config
    if config is None:
        raise BadgeRenderError("This template has no back side.")
    try:
        validate_badge_config(config, field_name=f"{side}_config")
    except ValidationError as exc:
        raise _error_from_validation(exc) from exc
    return config


def _render_sheet_page(
    cards: list[str],
    slots: list[dict[str, Any]],
    *,
    page_width_mm: Decimal,
    page_height_mm: Decimal,
) -> str:
    markup = []
    for card_html, slot in zip(cards, slots):
        markup.append(
            '<div style="position:absolute;'
            f"left:{_format_mm(slot['x_mm'])}mm;top:{_format_mm(slot['y_mm'])}mm;\">"
            f"{card_html}</div>"
        )
    return (
        f'<div class="badge-page" style="width:{_format_mm(page_width_mm)}mm;'
        f'height:{_format_mm(page_height_mm)}mm;">{"".join(markup)}</div>'
    )


def render_badge_sheets_html(
    template: BadgeTemplate,
    *,
    event: Event,
    participants: list[Participant],
    double_sided: bool,
) -> str:
    if not participants:
        raise BadgeRenderError("Select at least one participant.")
    front_config = _validated_side_config(template, "front")
    back_config = None
    if double_sided and template.is_double_sided:
        back_config = _validated_side_config(template, "back")

    card_width_mm, card_height_mm = card_size_mm(front_config)
    page_width_mm, page_height_mm = page_size_mm(template.page_orientation)
    layout = build_sheet_layout(
        badges_per_page=template.badges_per_page,
        card_width_mm=card_width_mm,
        card_height_mm=card_height_mm,
        page_width_mm=page_width_mm,
        page_height_mm=page_height_mm,
    )
    slots_per_page = layout["slots_per_page"]

    pages: list[str] = []
    for start in range(0, len(participants), slots_per_page):
        batch = participants[start : start + slots_per_page]
        contexts = [build_token_context(event, participant) for participant in batch]
        slots = layout["slots"][: len(batch)]
        fronts = [render_card_fragment(resolve_side(front_config, context)) for context in contexts]
        pages.append(
            _render_sheet_page(
                fronts, slots, page_width_mm=page_width_mm, page_height_mm=page_height_mm
            )
        )
        if back_config is not None:
            backs = [render_card_fragment(resolve_side(back_config, context)) for context in contexts]
            mirrored = [_mirror_slot(slot, layout, card_width_mm) for slot in slots]
            pages.append(
                _render_sheet_page(
                    backs, mirrored, page_width_mm=page_width_mm, page_height_mm=page_height_mm
                )
            )
    return _document_html(page_width_mm, page_height_mm, pages)


def render_single_badge_html(
    template: BadgeTemplate,
    *,
    event: Event,
    participant: Participant | None,
    sides: tuple[str, ...] = ("front",),
) -> str:
    context = build_token_context(event, participant)
    rendered_sides = [resolve_side(_validated_side_config(template, side), context) for side in sides]
    width_mm = rendered_sides[0]["width_mm"]
    height_mm = rendered_sides[0]["height_mm"]
    pages = [
        f'<div class="badge-page" style="width:{_format_mm(side["width_mm"])}mm;'
        f'height:{_format_mm(side["height_mm"])}mm;">{render_card_fragment(side)}</div>'
        for side in rendered_sides
    ]
    return _document_html(width_mm, height_mm, pages)


def _render_pdf(html: str, *, base_url: str | None = None) -> bytes:
    if HTML is None:
        raise BadgeRenderError("PDF rendering backend is unavailable.", status_code=501)
    return HTML(string=html, base_url=base_url).write_pdf()


def render_badges_pdf_bytes(
    template: BadgeTemplate,
    *,
    event: Event,
    participants: list[Participant],
    double_sided: bool,
    base_url: str | None = None,
) -> bytes:
    html = render_badge_sheets_html(
        template,
        event=event,
        participants=participants,
        double_sided=double_sided,
    )
    return _render_pdf(html, base_url=base_url)


def badge_pdf_filename(index: int, participant: Participant) -> str:
    label = f"{participant.last_name}_{participant.first_name}".strip("_")
    label = _FILENAME_UNSAFE_PATTERN.sub("_", label).strip("_") or f"participant_{participant.pk}"
    return f"{index:03d}_{label}.pdf"


def render_badges_zip_bytes(
    template: BadgeTemplate,
    *,
    event: Event,
    participants: list[Participant],
    double_sided: bool,
    base_url: str | None = None,
) -> bytes:
    if not participants:
        raise BadgeRenderError("Select at least one participant.")
    sides = ("front", "back") if double_sided and template.is_double_sided else ("front",)
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        for index, participant in enumerate(participants, start=1):
            html = render_single_badge_html(
                template, event=event, participant=participant, sides=sides
            )
            archive.writestr(badge_pdf_filename(index, participant), _render_pdf(html, base_url=base_url))
    return buffer.getvalue()


def render_preview_pdf_bytes(
    template: BadgeTemplate,
    *,
    event: Event,
    participant: Participant | None,
    side: str,
    base_url: str | None = None,
) -> bytes:
    html = render_single_badge_html(template, event=event, participant=participant, sides=(side,))
    return _render_pdf(html, base_url=base_url)
