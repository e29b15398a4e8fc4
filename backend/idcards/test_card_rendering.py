from decimal import Decimal

from django.test import SimpleTestCase

from .card_layout import parse_layout
from .card_rendering import (
    card_geometry,
    render_card_face,
    render_card_fragment_html,
    resolution_scale,
)
from .errors import CardRenderError
from .models import IDCardTemplate

PX_PER_MM_AT_96_DPI = 96 / 25.4

SAMPLE_LAYOUT = [
    {
        "id": "name",
        "type": "STUDENT_NAME",
        "side": "FRONT",
        "x": 10,
        "y": 20,
        "width": 50,
        "height": 10,
        "z_index": 2,
        "style": {"font_size": 10, "uppercase": True, "font_family": "Outfit"},
    },
    {
        "id": "background",
        "type": "RECTANGLE",
        "x": 0,
        "y": 0,
        "width": 100,
        "height": 100,
        "z_index": 0,
        "style": {"background_color": "#1d4ed8", "background_opacity": 0.5},
    },
    {
        "id": "admission",
        "type": "ADMISSION_NUMBER",
        "side": "FRONT",
        "x": 10,
        "y": 40,
        "width": 50,
        "height": 10,
        "z_index": 2,
    },
    {
        "id": "hidden-note",
        "type": "TEXT",
        "side": "FRONT",
        "x": 0,
        "y": 0,
        "width": 10,
        "height": 10,
        "visible": False,
        "content": "internal",
    },
    {
        "id": "qr",
        "type": "QR_CODE",
        "side": "BACK",
        "x": 30,
        "y": 30,
        "width": 40,
        "height": 40,
    },
    {
        "id": "notice",
        "type": "TEXT",
        "side": "BACK",
        "x": 5,
        "y": 5,
        "width": 90,
        "height": 10,
        "content": "Return to the school office",
    },
    {
        "id": "grade-label",
        "type": "TEXT",
        "side": "BACK",
        "binding": "grade",
        "x": 5,
        "y": 80,
        "width": 90,
        "height": 10,
        "content": "ignored",
    },
]

STUDENT_ATTRIBUTES = {
    "fullName": "Jane Doe",
    "admissionNumber": "ADM-001",
    "grade": "Grade 5",
}


def _template(**overrides) -> IDCardTemplate:
    values = {
        "name": "Render Test",
        "width": Decimal("86.00"),
        "height": Decimal("54.00"),
        "unit": "mm",
        "bleed": Decimal("3.00"),
        "safe_margin": Decimal("5.00"),
        "layout": SAMPLE_LAYOUT,
    }
    values.update(overrides)
    return IDCardTemplate(**values)


def _zone(rendered: dict, zone_id: str) -> dict:
    return next(zone for zone in rendered["zones"] if zone["id"] == zone_id)


class ResolutionScaleTests(SimpleTestCase):
    def test_scale_between_resolution_domains(self):
        self.assertEqual(resolution_scale(150, 96), 1.5625)
        self.assertEqual(resolution_scale(96, 96, 2), 2.0)
        self.assertAlmostEqual(resolution_scale(150, 96, 0.5), 0.78125)

    def test_non_positive_inputs_are_rejected(self):
        for arguments in ((0, 96, 1), (150, 0, 1), (150, 96, 0), (150, 96, -1)):
            with self.subTest(arguments=arguments):
                with self.assertRaises(CardRenderError):
                    resolution_scale(*arguments)


class CardGeometryTests(SimpleTestCase):
    def test_units_are_converted_to_millimetres(self):
        geometry = card_geometry(
            _template(width=Decimal("8.60"), height=Decimal("5.40"), unit="cm")
        )
        self.assertEqual(geometry.width_mm, Decimal("86.00"))
        self.assertEqual(geometry.height_mm, Decimal("54.00"))
        self.assertEqual(geometry.unit_width_mm, Decimal("92.00"))
        self.assertEqual(geometry.unit_height_mm, Decimal("60.00"))

        inches = card_geometry(_template(width=Decimal("3.50"), height=Decimal("2.00"), unit="in"))
        self.assertEqual(inches.width_mm, Decimal("88.90"))
        self.assertEqual(inches.height_mm, Decimal("50.80"))

    def test_invalid_dimensions_raise_render_error(self):
        for overrides in ({"width": 0}, {"height": "abc"}, {"bleed": -1}, {"unit": "pt"}):
            with self.subTest(overrides=overrides):
                with self.assertRaises(CardRenderError):
                    card_geometry(_template(**overrides))


class RenderCardFaceTests(SimpleTestCase):
    def test_front_excludes_back_and_hidden_zones_in_z_order(self):
        rendered = render_card_face(_template(), STUDENT_ATTRIBUTES, "FRONT", base_dpi=96)
        self.assertEqual(
            [zone["id"] for zone in rendered["zones"]],
            ["background", "name", "admission"],
        )
        self.assertTrue(all(zone["side"] == "FRONT" for zone in rendered["zones"]))

    def test_back_only_contains_back_zones(self):
        rendered = render_card_face(_template(), STUDENT_ATTRIBUTES, "back", base_dpi=96)
        self.assertEqual(rendered["side"], "BACK")
        self.assertEqual(
            [zone["id"] for zone in rendered["zones"]],
            ["qr", "notice", "grade-label"],
        )

    def test_canvas_includes_bleed_and_zones_are_relative_to_trim_box(self):
        rendered = render_card_face(_template(), STUDENT_ATTRIBUTES, "FRONT", scale=1, base_dpi=96)
        self.assertAlmostEqual(rendered["width_px"], 92 * PX_PER_MM_AT_96_DPI, places=1)
        self.assertAlmostEqual(rendered["height_px"], 60 * PX_PER_MM_AT_96_DPI, places=1)
        self.assertAlmostEqual(rendered["bleed_px"], 3 * PX_PER_MM_AT_96_DPI, places=1)

        name = _zone(rendered, "name")
        self.assertAlmostEqual(name["x_px"], (3 + 86 * 0.10) * PX_PER_MM_AT_96_DPI, places=1)
        self.assertAlmostEqual(name["y_px"], (3 + 54 * 0.20) * PX_PER_MM_AT_96_DPI, places=1)
        self.assertAlmostEqual(name["width_px"], 86 * 0.50 * PX_PER_MM_AT_96_DPI, places=1)
        self.assertAlmostEqual(
            name["style"]["font_size_px"],
            54 * 0.10 * PX_PER_MM_AT_96_DPI,
            places=1,
        )

    def test_print_scale_grows_pixels_proportionally(self):
        preview = render_card_face(_template(), STUDENT_ATTRIBUTES, "FRONT", scale=1, base_dpi=96)
        printed = render_card_face(
            _template(),
            STUDENT_ATTRIBUTES,
            "FRONT",
            scale=resolution_scale(150, 96),
            base_dpi=96,
        )
        self.assertAlmostEqual(printed["width_px"], 92 * 150 / 25.4, places=1)
        self.assertAlmostEqual(printed["width_px"] / preview["width_px"], 1.5625, places=3)

    def test_bindings_resolve_from_entity_attributes(self):
        front = render_card_face(_template(), STUDENT_ATTRIBUTES, "FRONT", base_dpi=96)
        back = render_card_face(_template(), STUDENT_ATTRIBUTES, "BACK", base_dpi=96)
        self.assertEqual(_zone(front, "name")["value"], "JANE DOE")
        self.assertEqual(_zone(front, "admission")["value"], "ADM-001")
        self.assertEqual(_zone(front, "background")["value"], "")
        self.assertEqual(_zone(back, "notice")["value"], "Return to the school office")
        self.assertEqual(_zone(back, "grade-label")["value"], "Grade 5")
        self.assertTrue(_zone(back, "qr")["image_src"].startswith("data:image/png;base64,"))

    def test_missing_attribute_renders_empty(self):
        attributes = {"fullName": "Jane Doe"}
        front = render_card_face(_template(), attributes, "FRONT", base_dpi=96)
        back = render_card_face(_template(), attributes, "BACK", base_dpi=96)
        self.assertEqual(_zone(front, "admission")["value"], "")
        self.assertEqual(_zone(back, "qr")["image_src"], "")

    def test_rendering_is_deterministic(self):
        first = render_card_face(_template(), STUDENT_ATTRIBUTES, "BACK", scale=1.5, base_dpi=96)
        second = render_card_face(_template(), STUDENT_ATTRIBUTES, "BACK", scale=1.5, base_dpi=96)
        self.assertEqual(first, second)
        self.assertEqual(render_card_fragment_html(first), render_card_fragment_html(second))

    def test_empty_layout_renders_blank_face(self):
        for layout in (None, "", []):
            with self.subTest(layout=layout):
                rendered = render_card_face(_template(layout=layout), {}, "FRONT", base_dpi=96)
                self.assertEqual(rendered["zones"], [])

    def test_malformed_layout_raises_render_error(self):
        zone = {"id": "z", "type": "TEXT", "x": 0, "y": 0, "width": 10, "height": 10}
        layouts = [
            "{not json",
            {"unexpected": True},
            ["not a zone"],
            [{**zone, "side": "TOP"}],
            [{**zone, "width": "wide"}],
            [{**zone, "height": 0}],
            [{**zone, "type": "HOLOGRAM"}],
            [{**zone, "style": "bold"}],
            [{**zone, "style": {"background_color": "#zzzzzz", "background_opacity": 0.5}}],
        ]
        for layout in layouts:
            with self.subTest(layout=layout):
                with self.assertRaises(CardRenderError):
                    render_card_face(_template(layout=layout), {}, "FRONT", base_dpi=96)

    def test_unknown_side_is_rejected(self):
        with self.assertRaises(CardRenderError):
            render_card_face(_template(), {}, "TOP", base_dpi=96)


class CardLayoutTests(SimpleTestCase):
    def test_layout_stored_as_json_text_is_parsed(self):
        zones = parse_layout(
            '[{"id": "a", "type": "student_name", "x": "1.5", "y": 2, "width": 10, "height": 5}]'
        )
        self.assertEqual(zones[0]["type"], "STUDENT_NAME")
        self.assertEqual(zones[0]["kind"], "text")
        self.assertEqual(zones[0]["side"], "FRONT")
        self.assertEqual(zones[0]["x"], 1.5)
        self.assertTrue(zones[0]["visible"])

    def test_zone_colours_are_validated(self):
        zone = {"id": "band", "type": "RECTANGLE", "x": 0, "y": 0, "width": 100, "height": 20}
        for color in ("#1d4ed8", "#fff", "#1d4ed880", "white", "rgba(0, 0, 0, 0.4)"):
            with self.subTest(color=color):
                zones = parse_layout([{**zone, "style": {"background_color": color}}])
                self.assertEqual(zones[0]["style"]["background_color"], color)

        for key, color in (
            ("background_color", "#zzzzzz"),
            ("color", "#12"),
            ("border_color", "url(javascript:1)"),
            ("color", 255),
        ):
            with self.subTest(key=key, color=color):
                with self.assertRaises(CardRenderError) as captured:
                    parse_layout([{**zone, "style": {key: color, "background_opacity": 0.5}}])
                self.assertIn(f"layout[0].style.{key}", captured.exception.detail)


class CardFragmentHtmlTests(SimpleTestCase):
    def test_fragment_positions_zones_and_optional_guides(self):
        rendered = render_card_face(_template(), STUDENT_ATTRIBUTES, "FRONT", base_dpi=96)
        html = render_card_fragment_html(rendered)
        self.assertIn('data-side="FRONT"', html)
        self.assertIn("JANE DOE", html)
        self.assertIn("position:absolute;", html)
        self.assertIn("&#x27;Outfit&#x27;,Inter,Arial,sans-serif", html)
        self.assertIn("rgba(29,78,216,0.5)", html)
        self.assertNotIn("safe-guide", html)

        guided = render_card_fragment_html(rendered, include_guides=True)
        self.assertIn("trim-guide", guided)
        self.assertIn("safe-guide", guided)

    def test_text_is_escaped(self):
        rendered = render_card_face(
            _template(),
            {"fullName": "<script>alert(1)</script>"},
            "FRONT",
            base_dpi=96,
        )
        html = render_card_fragment_html(rendered)
        self.assertNotIn("<script>", html)
        self.assertIn("&lt;SCRIPT&gt;", html)
