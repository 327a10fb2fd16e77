from pathlib import Path
import tempfile
from unittest.mock import MagicMock

from django.test import SimpleTestCase

from .client import ApiResponse
from .errors import (
    BadgeApiError,
    CapabilityUnavailableError,
    GenerationFailedError,
    GenerationUnavailableError,
    SelectionRequiredError,
)
from .generator import BadgeGenerator
from .layout import BadgeConfig, BadgeTemplate

ENROLLMENTS = [
    {"id": 1, "status": "confirmed", "participant": {"id": 101, "first_name": "Mario", "last_name": "Rossi"}},
    {"id": 2, "status": "pending", "participant": {"id": 102, "first_name": "Maria", "last_name": "Bianchi"}},
    {"id": 3, "status": "confirmed", "participant": {"id": 103, "first_name": "Luca", "last_name": "Mariani"}},
    {"id": 4, "status": "confirmed", "participant": None},
]


class BadgeGeneratorTests(SimpleTestCase):
    def setUp(self):
        self.client = MagicMock()
        self.client.list_event_enrollments.return_value = [dict(item) for item in ENROLLMENTS]
        self.template = BadgeTemplate(
            id=7,
            event_id=5,
            name="Congress  badge",
            is_double_sided=True,
            front_config=BadgeConfig.blank(),
            back_config=BadgeConfig.blank(),
        )
        self.generator = BadgeGenerator(self.client, 5, self.template)
        self.generator.load_audience()

    def test_filter_skips_enrollments_without_participant(self):
        self.assertEqual([item["id"] for item in self.generator.filtered_enrollments()], [1, 2, 3])

    def test_search_matches_full_name_case_insensitively(self):
        self.generator.set_search("MARI")
        self.assertEqual([item["id"] for item in self.generator.filtered_enrollments()], [1, 2, 3])
        self.generator.set_search("mario r")
        self.assertEqual([item["id"] for item in self.generator.filtered_enrollments()], [1])

    def test_bulk_selection_uses_the_filtered_view(self):
        self.generator.set_search("maria")
        self.generator.select_all()
        self.assertEqual(self.generator.selected_ids, [2, 3])
        self.generator.select_confirmed()
        self.assertEqual(self.generator.selected_ids, [3])
        self.generator.clear_selection()
        self.assertEqual(self.generator.selected_ids, [])

    def test_toggle_selection(self):
        self.generator.toggle_selection(1)
        self.generator.toggle_selection(3)
        self.generator.toggle_selection(1)
        self.assertEqual(self.generator.selected_ids, [3])

    def test_generate_without_selection_never_calls_the_server(self):
        with self.assertRaises(SelectionRequiredError) as ctx:
            self.generator.generate()
        self.assertEqual(ctx.exception.message, "Select at least one participant.")
        self.client.generate_badges.assert_not_called()

    def test_generate_sends_participants_and_template_sides(self):
        self.client.generate_badges.return_value = ApiResponse(
            status=200, body=b"%PDF-1.7", content_type="application/pdf"
        )
        self.generator.include_speakers = True
        self.generator.toggle_selection(3)
        self.generator.toggle_selection(1)

        with tempfile.TemporaryDirectory() as output_dir:
            artifact = self.generator.generate(output_dir)
            written = Path(output_dir) / "badges_Congress_badge.pdf"
            self.assertEqual(written.read_bytes(), b"%PDF-1.7")

        event_id, request = self.client.generate_badges.call_args.args
        self.assertEqual(event_id, 5)
        self.assertEqual(request.template_id, 7)
        self.assertEqual(request.participant_ids, [103, 101])
        self.assertTrue(request.double_sided)
        self.assertTrue(request.include_speakers)
        self.assertEqual(request.format, "pdf")
        self.assertEqual(artifact.filename, "badges_Congress_badge.pdf")
        self.assertFalse(self.generator.generating)

    def test_not_implemented_gets_the_friendly_message(self):
        self.client.generate_badges.side_effect = CapabilityUnavailableError("missing", status_code=501)
        self.generator.select_all()
        with self.assertRaises(GenerationUnavailableError) as ctx:
            self.generator.generate()
        self.assertEqual(ctx.exception.message, "Badge PDF generation will be available soon.")
        self.assertFalse(self.generator.generating)

    def test_other_failures_are_generic(self):
        self.client.generate_badges.side_effect = BadgeApiError("boom", status_code=500)
        self.generator.select_all()
        with self.assertRaises(GenerationFailedError) as ctx:
            self.generator.generate()
        self.assertEqual(ctx.exception.message, "Error while generating badges.")
