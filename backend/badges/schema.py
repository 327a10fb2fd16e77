from __future__ import annotations

import re

# Shared by the template store and the console; keep this module free of Django imports.

ELEMENT_TYPES = ("text", "image", "qrcode", "field")
TEXT_ELEMENT_TYPES = ("text", "field")
CONFIG_UNITS = ("mm", "px", "%")
FONT_WEIGHTS = ("normal", "bold")
TEXT_ALIGNMENTS = ("left", "center", "right")
PARTICIPANT_TYPES = ("all", "participant", "speaker", "staff")
PAGE_ORIENTATIONS = ("portrait", "landscape")
BADGE_SIDES = ("front", "back")
GENERATION_FORMATS = ("pdf", "zip")

# Editor canvas renders one millimetre as four screen pixels.
SCREEN_PX_PER_MM = 4

STYLE_KEYS = ("fontSize", "fontFamily", "color", "fontWeight", "textAlign")

DEFAULT_CARD_WIDTH = 105
DEFAULT_CARD_HEIGHT = 74
DEFAULT_BACKGROUND_COLOR = "#FFFFFF"
DEFAULT_BADGES_PER_PAGE = 8
BADGES_PER_PAGE_CHOICES = (2, 4, 6, 8, 10)

BADGE_DELIVERY_MODES = ("RESIDENTIAL", "HYBRID")


def delivery_mode_offers_badges(delivery_mode: str | None) -> bool:
    mode = str(delivery_mode or "RESIDENTIAL").strip().upper()
    return mode in BADGE_DELIVERY_MODES


def blank_config_payload() -> dict:
    return {
        "width": DEFAULT_CARD_WIDTH,
        "height": DEFAULT_CARD_HEIGHT,
        "unit": "mm",
        "background_color": DEFAULT_BACKGROUND_COLOR,
        "elements": [],
    }


_FILENAME_UNSAFE_PATTERN = re.compile(r"[\s/\\]")


def sanitize_filename_part(value: str) -> str:
    return _FILENAME_UNSAFE_PATTERN.sub("_", str(value or "").strip()) or "template"
