from django.test import SimpleTestCase

from .errors import DuplicateElementError
from .layout import BadgeConfig, BadgeElement, BadgeStyle, BadgeTemplate, GenerationRequest


def _element_data(**overrides) -> dict:
    data = {
        "id": "element-1",
        "type": "field",
        "x": 10,
        "y": 12.5,
        "width": 80,
        "height": 20,
        "content": "{nome}",
        "style": {"fontSize": 14, "fontFamily": "Arial", "textAlign": "left", "letterSpacing": "1px"},
        "z_index": 2,
    }
    data.update(overrides)
    return data


class BadgeStyleTests(SimpleTestCase):
    def test_unknown_style_keys_survive_a_round_trip(self):
        style = BadgeStyle.from_dict({"fontSize": 18, "letterSpacing": "1px"})
        self.assertEqual(style.font_size, 18)
        self.assertEqual(style.extra, {"letterSpacing": "1px"})
        self.assertEqual(style.to_dict(), {"letterSpacing": "1px", "fontSize": 18})

    def test_merge_accepts_wire_and_attribute_names(self):
        style = BadgeStyle(font_size=14, color="#000000")
        merged = style.merged({"fontWeight": "bold", "color": "#FF0000", "text_align": "right"})
        self.assertEqual(merged.font_size, 14)
        self.assertEqual(merged.font_weight, "bold")
        self.assertEqual(merged.color, "#FF0000")
        self.assertEqual(merged.text_align, "right")
        self.assertIsNone(style.font_weight)


class BadgeConfigTests(SimpleTestCase):
    def test_config_from_server_payload(self):
        config = BadgeConfig.from_dict(
            {
                "width": 105,
                "height": 74,
                "unit": "mm",
                "background_color": "#EEEEEE",
                "elements": [_element_data()],
            }
        )
        element = config.elements[0]
        self.assertEqual(element.y, 12.5)
        self.assertEqual(element.style.text_align, "left")
        self.assertEqual(config.to_dict()["elements"][0]["style"]["letterSpacing"], "1px")
        self.assertNotIn("background_image", config.to_dict())

    def test_add_element_rejects_reused_id(self):
        config = BadgeConfig.blank()
        config.add_element(BadgeElement.from_dict(_element_data()))
        with self.assertRaises(DuplicateElementError):
            config.add_element(BadgeElement.from_dict(_element_data(x=50)))
        self.assertEqual(len(config.elements), 1)

    def test_remove_missing_element_is_a_no_op(self):
        config = BadgeConfig.blank()
        config.add_element(BadgeElement.from_dict(_element_data()))
        self.assertFalse(config.remove_element("element-missing"))
        self.assertEqual(config.element_ids(), ["element-1"])

    def test_element_without_style_omits_the_key(self):
        element = BadgeElement.from_dict(_element_data(type="qrcode", content="", style=None))
        self.assertNotIn("style", element.to_dict())


class BadgeTemplateTests(SimpleTestCase):
    def _template(self, **overrides) -> BadgeTemplate:
        data = {
            "id": 3,
            "event_id": 9,
            "tenant_id": 1,
            "name": "Congress",
            "description": "",
            "participant_type": "all",
            "is_double_sided": False,
            "front_config": BadgeConfig().to_dict(),
            "back_config": BadgeConfig(background_color="#000000").to_dict(),
            "badges_per_page": 6,
            "page_orientation": "landscape",
            "created_at": "2026-01-01T10:00:00Z",
            "updated_at": "2026-01-01T10:00:00Z",
        }
        data.update(overrides)
        return BadgeTemplate.from_dict(data)

    def test_payload_skips_back_side_of_single_sided_template(self):
        payload = self._template().to_payload()
        self.assertNotIn("back_config", payload)
        self.assertNotIn("id", payload)
        self.assertNotIn("created_at", payload)
        self.assertEqual(payload["badges_per_page"], 6)
        self.assertEqual(payload["page_orientation"], "landscape")

    def test_payload_carries_back_side_when_double_sided(self):
        template = self._template(is_double_sided=True)
        self.assertEqual(template.to_payload()["back_config"]["background_color"], "#000000")

    def test_generation_request_body(self):
        request = GenerationRequest(template_id=3, participant_ids=[4, 5], double_sided=True)
        self.assertEqual(
            request.to_dict(),
            {
                "template_id": 3,
                "participant_ids": [4, 5],
                "include_speakers": False,
                "format": "pdf",
                "double_sided": True,
            },
        )
