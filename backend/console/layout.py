"""Badge template model used by the console.

Wire format matches the badge API: snake_case template and element keys, camelCase
style keys. ``BadgeStyle`` keeps the five known presentation attributes as fields and
carries anything else in ``extra`` so unknown keys survive a load/save round trip.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from pathlib import Path
import uuid
from typing import Any

from badges.schema import (
    DEFAULT_BACKGROUND_COLOR,
    DEFAULT_BADGES_PER_PAGE,
    DEFAULT_CARD_HEIGHT,
    DEFAULT_CARD_WIDTH,
)

from .errors import DuplicateElementError

STYLE_WIRE_KEYS = {
    "font_size": "fontSize",
    "font_family": "fontFamily",
    "color": "color",
    "font_weight": "fontWeight",
    "text_align": "textAlign",
}
_WIRE_TO_FIELD = {wire: name for name, wire in STYLE_WIRE_KEYS.items()}


@dataclass
class BadgeStyle:
    font_size: float | None = None
    font_family: str | None = None
    color: str | None = None
    font_weight: str | None = None
    text_align: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload = copy.deepcopy(self.extra)
        for name, wire_key in STYLE_WIRE_KEYS.items():
            value = getattr(self, name)
            if value is not None:
                payload[wire_key] = value
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BadgeStyle:
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in (data or {}).items():
            if key in _WIRE_TO_FIELD:
                known[_WIRE_TO_FIELD[key]] = value
            else:
                extra[key] = copy.deepcopy(value)
        return cls(extra=extra, **known)

    def merged(self, changes: dict[str, Any]) -> BadgeStyle:
        """Return a copy with ``changes`` applied; keys may be wire or attribute names."""
        merged = self.to_dict()
        for key, value in changes.items():
            merged[STYLE_WIRE_KEYS.get(key, key)] = value
        return BadgeStyle.from_dict(merged)


@dataclass
class BadgeElement:
    id: str
    type: str
    x: float
    y: float
    width: float
    height: float
    content: str = ""
    style: BadgeStyle | None = None
    z_index: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "content": self.content,
            "z_index": self.z_index,
        }
        if self.style is not None:
            payload["style"] = self.style.to_dict()
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BadgeElement:
        style = data.get("style")
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            content=str(data.get("content") or ""),
            style=BadgeStyle.from_dict(style) if style is not None else None,
            z_index=int(data.get("z_index") or 0),
        )

    def copy(self, **changes: Any) -> BadgeElement:
        if "style" not in changes and self.style is not None:
            changes["style"] = replace(self.style, extra=copy.deepcopy(self.style.extra))
        return replace(self, **changes)


@dataclass
class BadgeConfig:
    width: float = DEFAULT_CARD_WIDTH
    height: float = DEFAULT_CARD_HEIGHT
    unit: str = "mm"
    background_color: str = DEFAULT_BACKGROUND_COLOR
    background_image: str | None = None
    elements: list[BadgeElement] = field(default_factory=list)

    @classmethod
    def blank(cls) -> BadgeConfig:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "width": self.width,
            "height": self.height,
            "unit": self.unit,
            "background_color": self.background_color,
            "elements": [element.to_dict() for element in self.elements],
        }
        if self.background_image is not None:
            payload["background_image"] = self.background_image
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BadgeConfig:
        return cls(
            width=float(data["width"]),
            height=float(data["height"]),
            unit=str(data.get("unit") or "mm"),
            background_color=str(data.get("background_color") or DEFAULT_BACKGROUND_COLOR),
            background_image=data.get("background_image"),
            elements=[BadgeElement.from_dict(element) for element in data.get("elements") or []],
        )

    def find(self, element_id: str) -> BadgeElement | None:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def element_ids(self) -> list[str]:
        return [element.id for element in self.elements]

    def add_element(self, element: BadgeElement) -> BadgeElement:
        if self.find(element.id) is not None:
            raise DuplicateElementError(f"Element id '{element.id}' already exists on this side.")
        self.elements.append(element)
        return element

    def remove_element(self, element_id: str) -> bool:
        remaining = [element for element in self.elements if element.id != element_id]
        removed = len(remaining) != len(self.elements)
        self.elements = remaining
        return removed

    def replace_element(self, element: BadgeElement) -> None:
        self.elements = [element if current.id == element.id else current for current in self.elements]


@dataclass
class BadgeTemplate:
    name: str
    front_config: BadgeConfig
    description: str = ""
    participant_type: str = "all"
    is_double_sided: bool = False
    back_config: BadgeConfig | None = None
    badges_per_page: int = DEFAULT_BADGES_PER_PAGE
    page_orientation: str = "portrait"
    id: int | None = None
    event_id: int | None = None
    tenant_id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def effective_back_config(self) -> BadgeConfig | None:
        return self.back_config if self.is_double_sided else None

    def to_payload(self) -> dict[str, Any]:
        """Create/update body: every content field, identity and timestamps left out."""
        back_config = self.effective_back_config
        payload: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "participant_type": self.participant_type,
            "is_double_sided": self.is_double_sided,
            "front_config": self.front_config.to_dict(),
            "badges_per_page": self.badges_per_page,
            "page_orientation": self.page_orientation,
        }
        if back_config is not None:
            payload["back_config"] = back_config.to_dict()
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BadgeTemplate:
        back_config = data.get("back_config")
        return cls(
            id=data.get("id"),
            event_id=data.get("event_id"),
            tenant_id=data.get("tenant_id"),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            participant_type=str(data.get("participant_type") or "all"),
            is_double_sided=bool(data.get("is_double_sided")),
            front_config=BadgeConfig.from_dict(data["front_config"]),
            back_config=BadgeConfig.from_dict(back_config) if back_config else None,
            badges_per_page=int(data.get("badges_per_page") or DEFAULT_BADGES_PER_PAGE),
            page_orientation=str(data.get("page_orientation") or "portrait"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass
class GenerationRequest:
    template_id: int
    participant_ids: list[int]
    include_speakers: bool = False
    format: str = "pdf"
    double_sided: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_id": self.template_id,
            "participant_ids": list(self.participant_ids),
            "include_speakers": self.include_speakers,
            "format": self.format,
            "double_sided": self.double_sided,
        }


def new_element_id() -> str:
    return f"element-{uuid.uuid4().hex}"


@dataclass
class BadgeArtifact:
    filename: str
    content: bytes
    content_type: str = "application/pdf"

    def write_to(self, directory: str | Path) -> Path:
        target = Path(directory) / self.filename
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.content)
        return target
