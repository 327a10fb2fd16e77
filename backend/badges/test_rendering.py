from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, override_settings

from events.models import Event, Participant

from .models import BadgeTemplate
from .registry import validate_badge_config
from .rendering import (
    BadgeRenderError,
    build_sheet_layout,
    build_token_context,
    card_size_mm,
    page_size_mm,
    render_badge_sheets_html,
    resolve_side,
)
from .schema import delivery_mode_offers_badges, sanitize_filename_part
from .tokens import find_tokens, get_field_tokens, get_token_label, substitute_tokens


def _element(**overrides) -> dict:
    element = {
        "id": "element-1",
        "type": "text",
        "x": 10,
        "y": 10,
        "width": 80,
        "height": 20,
        "content": "Hello",
        "z_index": 0,
    }
    element.update(overrides)
    return element


def _config(*elements, **overrides) -> dict:
    config = {
        "width": 105,
        "height": 74,
        "unit": "mm",
        "background_color": "#FFFFFF",
        "elements": list(elements),
    }
    config.update(overrides)
    return config


class FieldTokenTests(SimpleTestCase):
    def test_registry_lists_the_fixed_catalogue(self):
        tokens = [entry["token"] for entry in get_field_tokens()]
        self.assertEqual(
            tokens,
            [
                "{nome}",
                "{cognome}",
                "{titolo}",
                "{professione}",
                "{disciplina}",
                "{evento_nome}",
                "{evento_date}",
                "{evento_luogo}",
                "{qr_code}",
            ],
        )
        self.assertEqual(get_token_label("{evento_luogo}"), "Luogo Evento")
        self.assertEqual(get_token_label("{unknown}"), "")

    def test_registry_copies_are_independent(self):
        first = get_field_tokens()
        first[0]["label"] = "changed"
        self.assertEqual(get_field_tokens()[0]["label"], "Nome")

    def test_substitution_leaves_unknown_tokens_verbatim(self):
        rendered = substitute_tokens(
            "{titolo} {nome} {cognome} {missing}",
            {"{titolo}": "Dr.", "{nome}": "Mario", "{cognome}": "Rossi"},
        )
        self.assertEqual(rendered, "Dr. Mario Rossi {missing}")
        self.assertEqual(find_tokens("{nome} and {missing} and {qr_code}"), ["{nome}", "{qr_code}"])


class BadgeConfigValidationTests(SimpleTestCase):
    def test_valid_config_passes(self):
        validate_badge_config(_config(_element(), _element(id="element-2", type="qrcode", content="")))

    def test_rejections_carry_field_paths(self):
        cases = [
            (_config(_element(type="circle")), "front_config.elements[0].type"),
            (_config(_element(width=0)), "front_config.elements[0].width"),
            (_config(_element(z_index=-1)), "front_config.elements[0].z_index"),
            (_config(_element(z_index=True)), "front_config.elements[0].z_index"),
            (_config(_element(x="left")), "front_config.elements[0].x"),
            (_config(_element(style={"fontWeight": "heavy"})), "front_config.elements[0].style.fontWeight"),
            (_config(_element(style={"textAlign": "justify"})), "front_config.elements[0].style.textAlign"),
            (_config(_element(), unit="cm"), "front_config.unit"),
            (_config(_element(), background_color=""), "front_config.background_color"),
            (_config(_element(), _element()), "front_config.elements[1].id"),
        ]
        for config, field_path in cases:
            with self.subTest(field_path=field_path):
                with self.assertRaises(ValidationError) as ctx:
                    validate_badge_config(config)
                self.assertIn(field_path, ctx.exception.message_dict)

    def test_negative_positions_are_allowed_without_bounds(self):
        validate_badge_config(_config(_element(x=-5, y=-5)))

    def test_bounds_check_rejects_only_when_enforced(self):
        config = _config(_element(x=30, width=80))
        validate_badge_config(config)
        with self.assertRaises(ValidationError) as ctx:
            validate_badge_config(config, field_name="back_config", enforce_bounds=True)
        self.assertEqual(
            ctx.exception.message_dict["back_config.elements[0]"],
            ["Element exceeds card bounds."],
        )

    def test_percent_bounds_use_hundred(self):
        config = _config(_element(x=10, width=80), unit="%")
        validate_badge_config(config, enforce_bounds=True)
        config["elements"][0]["x"] = 30
        with self.assertRaises(ValidationError):
            validate_badge_config(config, enforce_bounds=True)

    def test_unknown_keys_are_rejected(self):
        with self.assertRaises(ValidationError):
            validate_badge_config(_config(_element(), rotation=10))


class SchemaHelperTests(SimpleTestCase):
    def test_missing_mode_counts_as_residential(self):
        self.assertTrue(delivery_mode_offers_badges(None))
        self.assertTrue(delivery_mode_offers_badges("hybrid"))
        self.assertFalse(delivery_mode_offers_badges("FAD"))
        self.assertFalse(delivery_mode_offers_badges("WEBINAR"))

    def test_filename_part_replaces_each_unsafe_character(self):
        self.assertEqual(sanitize_filename_part("A  B"), "A__B")
        self.assertEqual(sanitize_filename_part(" Main/Badge\\v2 "), "Main_Badge_v2")
        self.assertEqual(sanitize_filename_part(""), "template")


@override_settings(BADGE_QR_BASE_URL="https://checkin.test/badges/", BADGE_PAGE_SIZE_MM=(210, 297))
class BadgeRenderingTests(SimpleTestCase):
    def setUp(self):
        self.event = Event(
            pk=7,
            title="Cardiology Update",
            venue="Milano",
            start_date=date(2026, 5, 4),
            end_date=date(2026, 5, 5),
        )
        self.participant = Participant(
            pk=42,
            first_name="Mario",
            last_name="Rossi",
            title="Dr.",
            profession="Medico",
            discipline="Cardiologia",
        )

    def test_token_context_resolves_event_and_participant(self):
        context = build_token_context(self.event, self.participant)
        self.assertEqual(context["{nome}"], "Mario")
        self.assertEqual(context["{evento_date}"], "2026-05-04 - 2026-05-05")
        self.assertEqual(context["{evento_luogo}"], "Milano")
        self.assertEqual(context["{qr_code}"], "https://checkin.test/badges/7/42")

    def test_sample_context_without_participant(self):
        context = build_token_context(self.event, None)
        self.assertEqual(context["{nome}"], "Mario")
        self.assertTrue(context["{qr_code}"].endswith("/7/sample"))

    def test_elements_paint_by_z_index_then_list_order(self):
        config = _config(
            _element(id="top", z_index=5),
            _element(id="first-low", z_index=1),
            _element(id="second-low", z_index=1),
        )
        side = resolve_side(config, build_token_context(self.event, self.participant))
        self.assertEqual([element["id"] for element in side["elements"]], ["first-low", "second-low", "top"])

    def test_px_and_percent_geometry_convert_to_mm(self):
        px_side = resolve_side(
            _config(_element(x=40, y=20, width=80, height=40), width=420, height=296, unit="px"),
            {},
        )
        self.assertEqual(px_side["width_mm"], Decimal("105"))
        self.assertEqual(px_side["elements"][0]["x_mm"], Decimal("10"))
        self.assertEqual(px_side["elements"][0]["height_mm"], Decimal("10"))

        percent_side = resolve_side(
            _config(_element(x=10, y=50, width=50, height=25), unit="%", width=100, height=80),
            {},
        )
        element = percent_side["elements"][0]
        self.assertEqual(element["x_mm"], Decimal("10"))
        self.assertEqual(element["y_mm"], Decimal("40"))
        self.assertEqual(element["height_mm"], Decimal("20"))
        self.assertEqual(card_size_mm({"width": 100, "height": 80, "unit": "%"}), (Decimal("100"), Decimal("80")))

    def test_tokens_resolve_inside_literal_text(self):
        config = _config(
            _element(type="text", content="Welcome {titolo} {cognome} to {evento_nome}"),
            _element(id="element-2", type="field", content="{qr_code}"),
            _element(id="element-3", type="image", content="not-a-url"),
        )
        side = resolve_side(config, build_token_context(self.event, self.participant))
        text, qr, image = side["elements"]
        self.assertEqual(text["resolved_text"], "Welcome Dr. Rossi to Cardiology Update")
        self.assertEqual(qr["type"], "qrcode")
        self.assertTrue(qr["qr_data_uri"].startswith("data:image/png;base64,"))
        self.assertEqual(image["source"], "")

    def test_sheet_layout_uses_two_columns_and_centres_the_grid(self):
        layout = build_sheet_layout(
            badges_per_page=8,
            card_width_mm=Decimal("105"),
            card_height_mm=Decimal("74"),
            page_width_mm=Decimal("210"),
            page_height_mm=Decimal("297"),
        )
        self.assertEqual((layout["columns"], layout["rows"], layout["slots_per_page"]), (2, 4, 8))
        self.assertEqual(layout["slots"][3]["x_mm"], Decimal("105"))
        self.assertEqual(layout["slots"][3]["y_mm"], Decimal("74.5"))

        single_column = build_sheet_layout(
            badges_per_page=2,
            card_width_mm=Decimal("105"),
            card_height_mm=Decimal("74"),
            page_width_mm=Decimal("210"),
            page_height_mm=Decimal("297"),
        )
        self.assertEqual(single_column["columns"], 1)
        self.assertEqual(single_column["slots"][0]["x_mm"], Decimal("52.5"))

    def test_sheet_layout_caps_rows_to_the_page(self):
        layout = build_sheet_layout(
            badges_per_page=10,
            card_width_mm=Decimal("105"),
            card_height_mm=Decimal("74"),
            page_width_mm=Decimal("210"),
            page_height_mm=Decimal("297"),
        )
        self.assertEqual(layout["slots_per_page"], 8)

    def test_landscape_swaps_page_size(self):
        self.assertEqual(page_size_mm("landscape"), (Decimal("297"), Decimal("210")))
        self.assertEqual(page_size_mm("portrait"), (Decimal("210"), Decimal("297")))

    def test_double_sided_sheets_interleave_mirrored_backs(self):
        template = BadgeTemplate(
            name="Duplex",
            is_double_sided=True,
            badges_per_page=4,
            front_config=_config(_element(content="{nome}")),
            back_config=_config(_element(content="BACK {cognome}")),
        )
        participants = [
            Participant(pk=index, first_name=f"P{index}", last_name=f"L{index}")
            for index in range(1, 6)
        ]
        html = render_badge_sheets_html(
            template, event=self.event, participants=participants, double_sided=True
        )
        self.assertEqual(html.count('class="badge-page"'), 4)
        front_first_page, back_first_page = html.split('class="badge-page"')[1:3]
        left_slot = "left:0.00mm;top:74.50mm;"
        right_slot = "left:105.00mm;top:74.50mm;"
        self.assertLess(front_first_page.index(left_slot), front_first_page.index(right_slot))
        self.assertLess(back_first_page.index(right_slot), back_first_page.index(left_slot))
        self.assertLess(front_first_page.index("P1"), front_first_page.index("P2"))
        self.assertIn("BACK L1", back_first_page)

    def test_single_sided_request_skips_back_sheets(self):
        template = BadgeTemplate(
            name="Simplex",
            is_double_sided=True,
            badges_per_page=8,
            front_config=_config(_element()),
            back_config=_config(_element()),
        )
        html = render_badge_sheets_html(
            template, event=self.event, participants=[self.participant], double_sided=False
        )
        self.assertEqual(html.count('class="badge-page"'), 1)

    def test_empty_audience_is_rejected(self):
        template = BadgeTemplate(name="Empty", front_config=_config(_element()))
        with self.assertRaises(BadgeRenderError):
            render_badge_sheets_html(template, event=self.event, participants=[], double_sided=False)

    def test_font_size_prints_at_quarter_of_screen_pixels(self):
        template = BadgeTemplate(
            name="Font",
            badges_per_page=8,
            front_config=_config(_element(style={"fontSize": 20, "fontWeight": "bold"})),
        )
        html = render_badge_sheets_html(
            template, event=self.event, participants=[self.participant], double_sided=False
        )
        self.assertIn("font-size:5.00mm;", html)
        self.assertIn("font-weight:bold;", html)
