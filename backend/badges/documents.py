"""Badge template export documents and their import counterpart."""

from __future__ import annotations

import copy
from typing import Any

from django.utils import timezone
from rest_framework import serializers

from .models import BadgeTemplate
from .schema import sanitize_filename_part

EXPORT_FORMAT = "badge-template"
EXPORT_VERSION = 1
DEFAULT_IMPORT_NAME = "Imported Template"

TEMPLATE_CONTENT_FIELDS = (
    "name",
    "description",
    "participant_type",
    "is_double_sided",
    "front_config",
    "back_config",
    "badges_per_page",
    "page_orientation",
)


def export_filename(template: BadgeTemplate) -> str:
    return f"badge_template_{sanitize_filename_part(template.name)}.json"


def template_content(template: BadgeTemplate) -> dict[str, Any]:
    payload = {field: copy.deepcopy(getattr(template, field)) for field in TEMPLATE_CONTENT_FIELDS}
    payload["back_config"] = copy.deepcopy(template.effective_back_config)
    return payload


def build_export_document(template: BadgeTemplate) -> dict[str, Any]:
    return {
        "format": EXPORT_FORMAT,
        "version": EXPORT_VERSION,
        "exported_at": timezone.now().isoformat(),
        "template": template_content(template),
    }


def extract_template_payload(template_data: Any, *, name_override: str = "") -> dict[str, Any]:
    """Pull the template content out of an export document or a bare template object.

    Raises a DRF ``ValidationError`` when the document does not carry a template; the
    content itself is validated by ``BadgeTemplateSerializer`` on create.
    """
    if not isinstance(template_data, dict):
        raise serializers.ValidationError({"template_data": "Must be a JSON object."})

    source = template_data
    if "template" in template_data:
        document_format = template_data.get("format")
        if document_format not in (None, EXPORT_FORMAT):
            raise serializers.ValidationError(
                {"template_data": f"Unsupported document format '{document_format}'."}
            )
        version = template_data.get("version", EXPORT_VERSION)
        if version != EXPORT_VERSION:
            raise serializers.ValidationError(
                {"template_data": f"Unsupported document version '{version}'."}
            )
        source = template_data["template"]
        if not isinstance(source, dict):
            raise serializers.ValidationError({"template_data.template": "Must be a JSON object."})

    if "front_config" not in source:
        raise serializers.ValidationError(
            {"template_data": "Document does not contain a badge template."}
        )

    payload = {
        field: copy.deepcopy(source[field]) for field in TEMPLATE_CONTENT_FIELDS if field in source
    }
    name = str(name_override or payload.get("name") or "").strip()
    payload["name"] = name or DEFAULT_IMPORT_NAME
    if payload.get("description") is None:
        payload["description"] = ""
    return payload
