import json
from pathlib import Path
import tempfile
from unittest.mock import MagicMock

from django.test import SimpleTestCase

from .errors import BadgeApiError, BadgesUnavailableError, GalleryActionError, TemplateImportError
from .gallery import TemplateGallery
from .layout import BadgeConfig, BadgeTemplate


def _template(**overrides) -> BadgeTemplate:
    values = {"id": 3, "event_id": 5, "name": "Congress badge", "front_config": BadgeConfig.blank()}
    values.update(overrides)
    return BadgeTemplate(**values)


class TemplateGalleryVisibilityTests(SimpleTestCase):
    def test_remote_events_have_no_gallery(self):
        client = MagicMock()
        for mode in ("FAD", "WEBINAR"):
            with self.subTest(mode=mode):
                self.assertIsNone(TemplateGallery.for_event(client, {"id": 5, "delivery_mode": mode}))
        client.list_templates.assert_not_called()

    def test_missing_mode_counts_as_residential(self):
        gallery = TemplateGallery.for_event(MagicMock(), {"id": 5})
        self.assertIsNotNone(gallery)
        self.assertEqual(gallery.event_id, 5)

    def test_direct_construction_for_remote_event_fails(self):
        with self.assertRaises(BadgesUnavailableError):
            TemplateGallery(MagicMock(), 5, delivery_mode="WEBINAR")


class TemplateGalleryActionTests(SimpleTestCase):
    def setUp(self):
        self.client = MagicMock()
        self.client.list_templates.return_value = [_template()]
        self.confirm_answer = True
        self.prompt_answer = None
        self.prompts = []
        self.gallery = TemplateGallery(
            self.client,
            5,
            delivery_mode="HYBRID",
            confirm=lambda message: self.confirm_answer,
            prompt=self._prompt,
        )

    def _prompt(self, message, default):
        self.prompts.append(default)
        return default if self.prompt_answer is None else self.prompt_answer

    def test_refresh_lists_templates(self):
        self.assertEqual(self.gallery.refresh()[0].name, "Congress badge")
        self.assertFalse(self.gallery.loading)

    def test_failed_refresh_keeps_the_previous_list(self):
        self.gallery.refresh()
        self.client.list_templates.side_effect = BadgeApiError("boom", status_code=500)
        self.assertEqual([template.name for template in self.gallery.refresh()], ["Congress badge"])
        self.assertFalse(self.gallery.loading)

    def test_completed_actions_survive_a_failed_refresh(self):
        self.client.list_templates.side_effect = BadgeApiError("boom", status_code=500)
        self.client.duplicate_template.return_value = _template(id=4, name="Congress badge (Copy)")
        self.client.import_template.return_value = _template(id=8, name="Imported")
        self.client.create_template.return_value = _template(id=9)

        self.assertEqual(self.gallery.duplicate(_template()).id, 4)
        self.assertTrue(self.gallery.delete(_template()))
        self.assertEqual(self.gallery.import_document(b'{"template": {"name": "Imported"}}').id, 8)
        editor = self.gallery.open_editor()
        self.assertEqual(editor.save().id, 9)

        self.client.duplicate_template.assert_called_once()
        self.client.import_template.assert_called_once()
        self.assertIsNone(self.gallery.editor)

    def test_delete_requires_confirmation(self):
        self.confirm_answer = False
        self.assertFalse(self.gallery.delete(_template()))
        self.client.delete_template.assert_not_called()

        self.confirm_answer = True
        self.assertTrue(self.gallery.delete(_template()))
        self.client.delete_template.assert_called_once_with(5, 3)

    def test_delete_failure_has_operator_message(self):
        self.client.delete_template.side_effect = BadgeApiError("boom", status_code=500)
        with self.assertRaises(GalleryActionError) as ctx:
            self.gallery.delete(_template())
        self.assertEqual(ctx.exception.message, "Error while deleting the badge template.")

    def test_duplicate_failure_has_operator_message(self):
        self.client.duplicate_template.side_effect = BadgeApiError("boom", status_code=400)
        with self.assertRaises(GalleryActionError) as ctx:
            self.gallery.duplicate(_template())
        self.assertEqual(ctx.exception.message, "Error while duplicating the badge template.")

    def test_export_writes_named_document(self):
        self.client.export_template.return_value = (b'{"format": "badge-template"}', None)
        with tempfile.TemporaryDirectory() as output_dir:
            target = self.gallery.export(_template(name="Congress badge 2026"), output_dir)
            self.assertEqual(target.name, "badge_template_Congress_badge_2026.json")
            self.assertEqual(json.loads(target.read_text())["format"], "badge-template")

    def test_import_prompts_with_document_name(self):
        self.client.import_template.return_value = _template(id=8, name="Congress badge")
        document = {"format": "badge-template", "version": 1, "template": {"name": "Congress badge"}}

        created = self.gallery.import_document(json.dumps(document).encode("utf-8"))

        self.assertEqual(self.prompts, ["Congress badge"])
        self.client.import_template.assert_called_once_with(5, document, "Congress badge")
        self.assertEqual(created.id, 8)

    def test_import_defaults_name_and_cancels_on_empty_answer(self):
        self.prompt_answer = ""
        with tempfile.TemporaryDirectory() as directory:
            path = Path(directory) / "template.json"
            path.write_text(json.dumps({"template": {"front_config": {}}}))
            self.assertIsNone(self.gallery.import_document(path))
        self.assertEqual(self.prompts, ["Imported Template"])
        self.client.import_template.assert_not_called()

    def test_import_of_invalid_json_fails_without_network(self):
        with self.assertRaises(TemplateImportError) as ctx:
            self.gallery.import_document(b"not json")
        self.assertEqual(
            ctx.exception.message,
            "Error while importing the badge template. Verify that the file is valid.",
        )
        self.client.import_template.assert_not_called()

    def test_rejected_import_has_operator_message(self):
        self.client.import_template.side_effect = BadgeApiError("front_config: required", status_code=400)
        with self.assertRaises(TemplateImportError):
            self.gallery.import_document(b'{"template": {"name": "Broken"}}')

    def test_saved_editor_refreshes_the_list(self):
        self.client.create_template.return_value = _template(id=9)
        editor = self.gallery.open_editor()
        editor.add_element("text")
        editor.save()
        self.assertIsNone(self.gallery.editor)
        self.client.list_templates.assert_called_once_with(5)

    def test_cancelled_editor_does_not_refresh(self):
        editor = self.gallery.open_editor(_template())
        editor.cancel()
        self.assertIsNone(self.gallery.editor)
        self.client.list_templates.assert_not_called()

    def test_open_generator_loads_audience(self):
        self.client.list_event_enrollments.return_value = []
        generator = self.gallery.open_generator(_template())
        self.assertIs(self.gallery.generator, generator)
        self.client.list_event_enrollments.assert_called_once_with(5)
