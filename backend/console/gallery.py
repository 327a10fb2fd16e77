from __future__ import annotations

import json
from json import JSONDecodeError
import logging
from pathlib import Path
from typing import Any, Callable

from badges.schema import delivery_mode_offers_badges, sanitize_filename_part

from .editor import LayoutEditor
from .errors import (
    DELETE_FAILED_MESSAGE,
    DUPLICATE_FAILED_MESSAGE,
    EXPORT_FAILED_MESSAGE,
    BadgeApiError,
    BadgesUnavailableError,
    GalleryActionError,
    TemplateImportError,
)
from .generator import BadgeGenerator
from .layout import BadgeTemplate

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "Are you sure you want to delete this template?"
IMPORT_NAME_PROMPT = "Name for the imported template:"
DEFAULT_IMPORT_NAME = "Imported Template"


def _ask_confirmation(message: str) -> bool:
    return input(f"{message} [y/N] ").strip().lower() in ("y", "yes")


def _ask_text(message: str, default: str) -> str:
    answer = input(f"{message} [{default}] ")
    return answer if answer else default


def export_filename(template: BadgeTemplate) -> str:
    return f"badge_template_{sanitize_filename_part(template.name)}.json"


def suggested_import_name(document: Any) -> str:
    if isinstance(document, dict):
        nested = document.get("template")
        source = nested if isinstance(nested, dict) else document
        name = source.get("name")
        if isinstance(name, str) and name.strip():
            return name
    return DEFAULT_IMPORT_NAME


class TemplateGallery:
    """Badge templates of one on-site or hybrid event, and the actions on them."""

    def __init__(
        self,
        client,
        event_id: int,
        *,
        delivery_mode: str | None = None,
        confirm: Callable[[str], bool] = _ask_confirmation,
        prompt: Callable[[str, str], str | None] = _ask_text,
    ):
        if not delivery_mode_offers_badges(delivery_mode):
            raise BadgesUnavailableError()
        self.client = client
        self.event_id = event_id
        self.delivery_mode = delivery_mode
        self.confirm = confirm
        self.prompt = prompt
        self.templates: list[BadgeTemplate] = []
        self.loading = False
        self.editor: LayoutEditor | None = None
        self.generator: BadgeGenerator | None = None

    @classmethod
    def for_event(cls, client, event: dict[str, Any], **kwargs) -> TemplateGallery | None:
        """Build the gallery for an event; remote delivery modes get no gallery at all."""
        delivery_mode = event.get("delivery_mode")
        if not delivery_mode_offers_badges(delivery_mode):
            return None
        return cls(client, event["id"], delivery_mode=delivery_mode, **kwargs)

    def refresh(self) -> list[BadgeTemplate]:
        """Reload the template list; on failure the previous list stays in place."""
        self.loading = True
        try:
            self.templates = self.client.list_templates(self.event_id)
        except BadgeApiError as exc:
            logger.warning("Loading badge templates for event %s failed: %s", self.event_id, exc.detail)
        finally:
            self.loading = False
        return self.templates

    # Routing

    def open_editor(self, template: BadgeTemplate | None = None) -> LayoutEditor:
        self.editor = LayoutEditor(
            self.client,
            self.event_id,
            template=template,
            on_close=self._editor_closed,
        )
        return self.editor

    def _editor_closed(self, saved: bool) -> None:
        self.editor = None
        if saved:
            self.refresh()

    def open_generator(self, template: BadgeTemplate) -> BadgeGenerator:
        self.generator = BadgeGenerator(self.client, self.event_id, template)
        self.generator.load_audience()
        return self.generator

    def close_generator(self) -> None:
        self.generator = None

    # Template actions

    def delete(self, template: BadgeTemplate) -> bool:
        if not self.confirm(DELETE_CONFIRMATION):
            return False
        try:
            self.client.delete_template(self.event_id, template.id)
        except BadgeApiError as exc:
            logger.warning("Deleting badge template %s failed: %s", template.id, exc.detail)
            raise GalleryActionError(DELETE_FAILED_MESSAGE) from exc
        self.refresh()
        return True

    def duplicate(self, template: BadgeTemplate) -> BadgeTemplate:
        try:
            created = self.client.duplicate_template(template)
        except BadgeApiError as exc:
            logger.warning("Duplicating badge template %s failed: %s", template.id, exc.detail)
            raise GalleryActionError(DUPLICATE_FAILED_MESSAGE) from exc
        self.refresh()
        return created

    def export(self, template: BadgeTemplate, output_dir: str | Path) -> Path:
        try:
            content, _ = self.client.export_template(self.event_id, template.id)
        except BadgeApiError as exc:
            logger.warning("Exporting badge template %s failed: %s", template.id, exc.detail)
            raise GalleryActionError(EXPORT_FAILED_MESSAGE) from exc
        target = Path(output_dir) / export_filename(template)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return target

    def import_document(self, source: str | Path | bytes) -> BadgeTemplate | None:
        """Import a template document from a path or raw JSON bytes.

        Returns ``None`` when the operator cancels the name prompt.
        """
        try:
            raw = source if isinstance(source, bytes) else Path(source).read_bytes()
            document = json.loads(raw.decode("utf-8"))
        except (OSError, UnicodeDecodeError, JSONDecodeError) as exc:
            logger.warning("Badge template document could not be read: %s", exc)
            raise TemplateImportError() from exc

        name = self.prompt(IMPORT_NAME_PROMPT, suggested_import_name(document))
        if not name:
            return None

        try:
            created = self.client.import_template(self.event_id, document, name)
        except BadgeApiError as exc:
            logger.warning("Importing badge template for event %s failed: %s", self.event_id, exc.detail)
            raise TemplateImportError() from exc
        self.refresh()
        return created
