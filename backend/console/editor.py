"""Interactive editing state for one badge template.

Every mutation is a synchronous change to local state. Only ``save`` talks to the
server, and a failed save leaves the edits in place so the operator can retry.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
import logging
from typing import Any, Callable

from badges.schema import DEFAULT_BADGES_PER_PAGE, SCREEN_PX_PER_MM, TEXT_ELEMENT_TYPES
from badges.tokens import DEFAULT_FIELD_TOKEN, get_field_tokens

from .errors import BadgeApiError, EditorSaveError
from .layout import BadgeConfig, BadgeElement, BadgeStyle, BadgeTemplate, new_element_id

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_NAME = "Nuovo Template"
DEFAULT_TEXT_CONTENT = "Testo esempio"
NEW_ELEMENT_ORIGIN = (10.0, 10.0)
DUPLICATE_OFFSET = 5.0

ELEMENT_DEFAULT_SIZES = {
    "qrcode": (30.0, 30.0),
    "image": (40.0, 40.0),
    "text": (80.0, 20.0),
    "field": (80.0, 20.0),
}

_GEOMETRY_FIELDS = ("x", "y", "width", "height")
_EDITABLE_FIELDS = {"type", "content", "style", "z_index", *_GEOMETRY_FIELDS}


@dataclass(frozen=True)
class CanvasBox:
    """Rendered position and size of the canvas, in screen pixels."""

    left: float
    top: float
    width: float
    height: float


def coordinate_extent(config: BadgeConfig) -> tuple[float, float]:
    """Width and height of the space element coordinates live in."""
    if config.unit == "%":
        return 100.0, 100.0
    return float(config.width), float(config.height)


def default_content(element_type: str) -> str:
    if element_type == "text":
        return DEFAULT_TEXT_CONTENT
    if element_type == "field":
        return DEFAULT_FIELD_TOKEN
    return ""


def default_style(element_type: str) -> BadgeStyle:
    return BadgeStyle(
        font_size=14 if element_type in TEXT_ELEMENT_TYPES else None,
        font_family="Arial",
        color="#000000",
        font_weight="normal",
        text_align="center",
    )


class LayoutEditor:
    def __init__(
        self,
        client,
        event_id: int,
        template: BadgeTemplate | None = None,
        on_close: Callable[[bool], None] | None = None,
    ):
        self.client = client
        self.event_id = event_id
        self.template = template
        self.on_close = on_close

        if template is not None:
            self.name = template.name
            self.description = template.description
            self.participant_type = template.participant_type
            self.is_double_sided = template.is_double_sided
            self.badges_per_page = template.badges_per_page
            self.front_config = copy.deepcopy(template.front_config)
            self.back_config = copy.deepcopy(template.back_config) or BadgeConfig.blank()
        else:
            self.name = DEFAULT_TEMPLATE_NAME
            self.description = ""
            self.participant_type = "all"
            self.is_double_sided = False
            self.badges_per_page = DEFAULT_BADGES_PER_PAGE
            self.front_config = BadgeConfig.blank()
            self.back_config = BadgeConfig.blank()

        self.current_side = "front"
        self.selected_element_id: str | None = None
        self.show_grid = True
        self.saving = False

    @property
    def is_new(self) -> bool:
        return self.template is None or self.template.id is None

    @property
    def current_config(self) -> BadgeConfig:
        return self.back_config if self.current_side == "back" else self.front_config

    @property
    def selected_element(self) -> BadgeElement | None:
        if self.selected_element_id is None:
            return None
        return self.current_config.find(self.selected_element_id)

    def field_tokens(self) -> list[dict[str, str]]:
        """Placeholders offered by the insert-field control."""
        return get_field_tokens()

    # Element mutations

    def add_element(self, element_type: str) -> BadgeElement:
        config = self.current_config
        width, height = ELEMENT_DEFAULT_SIZES.get(element_type, ELEMENT_DEFAULT_SIZES["text"])
        x, y = NEW_ELEMENT_ORIGIN
        element = BadgeElement(
            id=new_element_id(),
            type=element_type,
            x=x,
            y=y,
            width=width,
            height=height,
            content=default_content(element_type),
            style=default_style(element_type),
            z_index=len(config.elements),
        )
        config.add_element(element)
        self.selected_element_id = element.id
        return element

    def delete_element(self, element_id: str) -> None:
        self.current_config.remove_element(element_id)
        if self.selected_element_id == element_id:
            self.selected_element_id = None

    def update_element(self, element_id: str, changes: dict[str, Any]) -> BadgeElement | None:
        config = self.current_config
        element = config.find(element_id)
        if element is None:
            return None

        updates: dict[str, Any] = {}
        for key, value in changes.items():
            if key not in _EDITABLE_FIELDS:
                logger.debug("Ignoring unknown badge element attribute %r", key)
                continue
            if key == "style":
                current_style = element.style or BadgeStyle()
                if isinstance(value, BadgeStyle):
                    value = value.to_dict()
                updates["style"] = current_style.merged(value or {})
            elif key in _GEOMETRY_FIELDS:
                updates[key] = float(value)
            elif key == "z_index":
                updates[key] = int(value)
            else:
                updates[key] = value
        updated = element.copy(**updates)
        config.replace_element(updated)
        return updated

    def duplicate_element(self, element_id: str) -> BadgeElement | None:
        config = self.current_config
        element = config.find(element_id)
        if element is None:
            return None
        duplicate = element.copy(
            id=new_element_id(),
            x=element.x + DUPLICATE_OFFSET,
            y=element.y + DUPLICATE_OFFSET,
        )
        return config.add_element(duplicate)

    def select_element(self, element_id: str | None) -> None:
        if element_id is not None and self.current_config.find(element_id) is None:
            element_id = None
        self.selected_element_id = element_id

    def move_element_to_drop(
        self, element_id: str, drop_x: float, drop_y: float, canvas: CanvasBox
    ) -> BadgeElement | None:
        """Place an element's top-left corner at a drop point given in screen pixels."""
        if canvas.width <= 0 or canvas.height <= 0:
            return None
        extent_width, extent_height = coordinate_extent(self.current_config)
        x = ((drop_x - canvas.left) / canvas.width) * extent_width
        y = ((drop_y - canvas.top) / canvas.height) * extent_height
        return self.update_element(element_id, {"x": x, "y": y})

    # Sides and display

    def switch_side(self, side: str) -> str:
        if side == "back" and not self.is_double_sided:
            return self.current_side
        if side in ("front", "back") and side != self.current_side:
            self.current_side = side
            self.selected_element_id = None
        return self.current_side

    def set_double_sided(self, enabled: bool) -> None:
        self.is_double_sided = bool(enabled)
        if not self.is_double_sided and self.current_side == "back":
            self.current_side = "front"
            self.selected_element_id = None

    def toggle_grid(self) -> bool:
        self.show_grid = not self.show_grid
        return self.show_grid

    def canvas_size_px(self) -> tuple[float, float]:
        config = self.current_config
        if config.unit == "px":
            return config.width, config.height
        return config.width * SCREEN_PX_PER_MM, config.height * SCREEN_PX_PER_MM

    def element_screen_box(self, element: BadgeElement) -> dict[str, float]:
        """Element box as percentages of the canvas, the way the canvas draws it."""
        extent_width, extent_height = coordinate_extent(self.current_config)
        return {
            "left": (element.x / extent_width) * 100,
            "top": (element.y / extent_height) * 100,
            "width": (element.width / extent_width) * 100,
            "height": (element.height / extent_height) * 100,
        }

    def out_of_bounds_elements(self, side: str | None = None) -> list[BadgeElement]:
        config = self.back_config if (side or self.current_side) == "back" else self.front_config
        limit_width, limit_height = coordinate_extent(config)
        return [
            element
            for element in config.elements
            if element.x < 0
            or element.y < 0
            or element.x + element.width > limit_width
            or element.y + element.height > limit_height
        ]

    # Persistence

    def build_template(self) -> BadgeTemplate:
        template = self.template
        return BadgeTemplate(
            id=template.id if template else None,
            event_id=self.event_id,
            tenant_id=template.tenant_id if template else None,
            name=self.name,
            description=self.description,
            participant_type=self.participant_type,
            is_double_sided=self.is_double_sided,
            front_config=copy.deepcopy(self.front_config),
            back_config=copy.deepcopy(self.back_config) if self.is_double_sided else None,
            badges_per_page=self.badges_per_page,
            page_orientation=template.page_orientation if template else "portrait",
        )

    def build_payload(self) -> dict[str, Any]:
        return self.build_template().to_payload()

    def save(self) -> BadgeTemplate | None:
        """Create or update the template; returns ``None`` while another save is running."""
        if self.saving:
            return None
        payload = self.build_payload()
        self.saving = True
        try:
            if self.is_new:
                saved = self.client.create_template(self.event_id, payload)
            else:
                saved = self.client.update_template(self.event_id, self.template.id, payload)
        except BadgeApiError as exc:
            logger.warning("Saving badge template for event %s failed: %s", self.event_id, exc.detail)
            raise EditorSaveError() from exc
        finally:
            self.saving = False

        self.template = saved
        if self.on_close is not None:
            self.on_close(True)
        return saved

    def cancel(self) -> None:
        if self.on_close is not None:
            self.on_close(False)
