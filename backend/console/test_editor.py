from unittest.mock import MagicMock

from django.test import SimpleTestCase

from badges.rendering import resolve_side

from .editor import CanvasBox, LayoutEditor
from .errors import BadgeApiError, EditorSaveError
from .layout import BadgeConfig, BadgeElement, BadgeStyle, BadgeTemplate


def _saved_template(**overrides) -> BadgeTemplate:
    values = {
        "id": 11,
        "event_id": 5,
        "name": "Saved",
        "front_config": BadgeConfig.blank(),
    }
    values.update(overrides)
    return BadgeTemplate(**values)


class LayoutEditorElementTests(SimpleTestCase):
    def setUp(self):
        self.client = MagicMock()
        self.editor = LayoutEditor(self.client, event_id=5)

    def test_new_editor_defaults(self):
        self.assertEqual(self.editor.name, "Nuovo Template")
        self.assertEqual(self.editor.badges_per_page, 8)
        self.assertEqual((self.editor.front_config.width, self.editor.front_config.height), (105, 74))
        self.assertEqual(self.editor.current_side, "front")
        self.assertTrue(self.editor.show_grid)
        self.assertFalse(self.editor.saving)

    def test_add_element_applies_type_defaults(self):
        text = self.editor.add_element("text")
        field = self.editor.add_element("field")
        qrcode = self.editor.add_element("qrcode")
        image = self.editor.add_element("image")

        self.assertEqual((text.width, text.height, text.content), (80, 20, "Testo esempio"))
        self.assertEqual(field.content, "{nome}")
        self.assertEqual((qrcode.width, qrcode.height, qrcode.content), (30, 30, ""))
        self.assertEqual((image.width, image.height), (40, 40))
        self.assertEqual([text.z_index, field.z_index, qrcode.z_index, image.z_index], [0, 1, 2, 3])
        self.assertEqual((text.x, text.y), (10, 10))
        self.assertEqual(text.style.font_size, 14)
        self.assertIsNone(qrcode.style.font_size)
        self.assertEqual(text.style.text_align, "center")
        self.assertEqual(self.editor.selected_element_id, image.id)
        self.assertTrue(text.id.startswith("element-"))
        self.assertEqual(len(set(self.editor.front_config.element_ids())), 4)

    def test_field_tokens_come_from_the_shared_registry(self):
        tokens = [entry["token"] for entry in self.editor.field_tokens()]
        self.assertEqual(tokens[0], "{nome}")
        self.assertIn("{qr_code}", tokens)

    def test_delete_clears_selection_and_ignores_unknown_ids(self):
        element = self.editor.add_element("text")
        self.editor.delete_element("element-missing")
        self.assertEqual(self.editor.selected_element_id, element.id)
        self.editor.delete_element(element.id)
        self.assertIsNone(self.editor.selected_element_id)
        self.assertEqual(self.editor.front_config.elements, [])

    def test_update_merges_nested_style(self):
        element = self.editor.add_element("text")
        self.editor.update_element(element.id, {"content": "Hello", "style": {"fontWeight": "bold"}})
        updated = self.editor.front_config.find(element.id)
        self.assertEqual(updated.content, "Hello")
        self.assertEqual(updated.style.font_weight, "bold")
        self.assertEqual(updated.style.font_family, "Arial")
        self.assertEqual(updated.style.font_size, 14)
        self.assertIsNone(self.editor.update_element("element-missing", {"x": 1}))

    def test_duplicate_offsets_position_and_keeps_the_rest(self):
        element = self.editor.add_element("field")
        duplicate = self.editor.duplicate_element(element.id)
        self.assertNotEqual(duplicate.id, element.id)
        self.assertEqual((duplicate.x, duplicate.y), (15, 15))
        self.assertEqual(duplicate.content, element.content)
        self.assertEqual(duplicate.z_index, element.z_index)
        self.assertIsNot(duplicate.style, element.style)
        self.assertEqual(len(self.editor.front_config.elements), 2)
        self.assertIsNone(self.editor.duplicate_element("element-missing"))

    def test_drop_converts_screen_pixels_to_config_units(self):
        element = self.editor.add_element("text")
        canvas = CanvasBox(left=100, top=50, width=420, height=296)
        moved = self.editor.move_element_to_drop(element.id, 310, 124, canvas)
        self.assertAlmostEqual(moved.x, 52.5)
        self.assertAlmostEqual(moved.y, 18.5)

    def test_drop_on_a_scaled_canvas_keeps_config_units(self):
        element = self.editor.add_element("text")
        canvas = CanvasBox(left=0, top=0, width=210, height=148)
        moved = self.editor.move_element_to_drop(element.id, 105, 74, canvas)
        self.assertAlmostEqual(moved.x, 52.5)
        self.assertAlmostEqual(moved.y, 37)

    def test_canvas_geometry(self):
        element = self.editor.add_element("text")
        self.assertEqual(self.editor.canvas_size_px(), (420, 296))
        box = self.editor.element_screen_box(element)
        self.assertAlmostEqual(box["left"], 10 / 105 * 100)
        self.assertAlmostEqual(box["width"], 80 / 105 * 100)

    def test_percent_config_drop_matches_printed_position(self):
        self.editor.front_config.unit = "%"
        element = self.editor.add_element("text")
        canvas = CanvasBox(left=100, top=50, width=420, height=296)

        moved = self.editor.move_element_to_drop(element.id, 310, 198, canvas)

        self.assertAlmostEqual(moved.x, 50)
        self.assertAlmostEqual(moved.y, 50)
        box = self.editor.element_screen_box(moved)
        self.assertAlmostEqual(box["left"], 50)
        self.assertAlmostEqual(box["top"], 50)
        printed = resolve_side(self.editor.front_config.to_dict(), {})["elements"][0]
        self.assertAlmostEqual(float(printed["x_mm"]), 105 / 2)
        self.assertAlmostEqual(float(printed["y_mm"]), 74 / 2)
        self.assertEqual(self.editor.out_of_bounds_elements(), [self.editor.front_config.find(element.id)])

    def test_unknown_update_keys_are_ignored(self):
        element = self.editor.add_element("text")
        updated = self.editor.update_element(element.id, {"rotation": 45, "id": "element-other", "x": 12})
        self.assertEqual(updated.id, element.id)
        self.assertEqual(updated.x, 12)
        self.assertFalse(hasattr(updated, "rotation"))

    def test_out_of_bounds_elements_are_reported_not_clamped(self):
        element = self.editor.add_element("text")
        self.editor.update_element(element.id, {"x": 40})
        self.assertEqual([item.id for item in self.editor.out_of_bounds_elements()], [element.id])
        self.assertEqual(self.editor.front_config.find(element.id).x, 40)


class LayoutEditorSideTests(SimpleTestCase):
    def setUp(self):
        self.editor = LayoutEditor(MagicMock(), event_id=5)

    def test_back_side_requires_double_sided(self):
        self.assertEqual(self.editor.switch_side("back"), "front")
        self.editor.set_double_sided(True)
        self.assertEqual(self.editor.switch_side("back"), "back")
        element = self.editor.add_element("qrcode")
        self.assertEqual(self.editor.back_config.element_ids(), [element.id])
        self.assertEqual(self.editor.front_config.elements, [])

    def test_disabling_double_sided_returns_to_front(self):
        self.editor.set_double_sided(True)
        self.editor.switch_side("back")
        self.editor.set_double_sided(False)
        self.assertEqual(self.editor.current_side, "front")

    def test_toggle_grid(self):
        self.assertFalse(self.editor.toggle_grid())
        self.assertTrue(self.editor.toggle_grid())

    def test_select_unknown_element_clears_selection(self):
        element = self.editor.add_element("text")
        self.editor.select_element(element.id)
        self.assertEqual(self.editor.selected_element, element)
        self.editor.select_element("element-missing")
        self.assertIsNone(self.editor.selected_element_id)


class LayoutEditorSaveTests(SimpleTestCase):
    def setUp(self):
        self.client = MagicMock()
        self.closed = []

    def test_create_sends_front_only_for_single_sided(self):
        self.client.create_template.return_value = _saved_template()
        editor = LayoutEditor(self.client, event_id=5, on_close=self.closed.append)
        editor.back_config.add_element(
            BadgeElement(id="element-back", type="text", x=0, y=0, width=10, height=10)
        )
        editor.add_element("field")

        saved = editor.save()

        event_id, payload = self.client.create_template.call_args.args
        self.assertEqual(event_id, 5)
        self.assertNotIn("back_config", payload)
        self.assertEqual(payload["page_orientation"], "portrait")
        self.assertEqual(payload["front_config"]["elements"][0]["content"], "{nome}")
        self.assertEqual(saved.id, 11)
        self.assertEqual(self.closed, [True])
        self.assertFalse(editor.saving)

    def test_existing_template_is_replaced_with_both_sides(self):
        template = _saved_template(
            is_double_sided=True,
            back_config=BadgeConfig(background_color="#111111"),
        )
        self.client.update_template.return_value = template
        editor = LayoutEditor(self.client, event_id=5, template=template)
        editor.name = "Renamed"

        editor.save()

        event_id, template_id, payload = self.client.update_template.call_args.args
        self.assertEqual((event_id, template_id), (5, 11))
        self.assertEqual(payload["name"], "Renamed")
        self.assertEqual(payload["back_config"]["background_color"], "#111111")
        self.client.create_template.assert_not_called()

    def test_failed_save_keeps_local_edits(self):
        self.client.create_template.side_effect = BadgeApiError("boom", status_code=500)
        editor = LayoutEditor(self.client, event_id=5, on_close=self.closed.append)
        element = editor.add_element("text")
        editor.update_element(element.id, {"style": BadgeStyle(color="#FF0000").to_dict()})

        with self.assertRaises(EditorSaveError) as ctx:
            editor.save()

        self.assertEqual(ctx.exception.message, "Error while saving the badge template.")
        self.assertEqual(editor.front_config.find(element.id).style.color, "#FF0000")
        self.assertIsNone(editor.template)
        self.assertFalse(editor.saving)
        self.assertEqual(self.closed, [])

    def test_second_save_is_refused_while_one_is_running(self):
        editor = LayoutEditor(self.client, event_id=5)
        editor.saving = True
        self.assertIsNone(editor.save())
        self.client.create_template.assert_not_called()
