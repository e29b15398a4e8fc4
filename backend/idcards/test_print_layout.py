from decimal import Decimal
from unittest.mock import Mock, patch

from django.test import SimpleTestCase

from .card_entities import CardEntity
from .conf import get_print_settings
from .errors import CardRenderError, PackingPreconditionError
from .models import IDCardTemplate
from .print_jobs import build_print_job, render_print_document_html, render_print_pdf
from .print_layout import pack_print_sheet, registration_marks

LAYOUT = [
    {"id": "name", "type": "STUDENT_NAME", "x": 5, "y": 5, "width": 60, "height": 12},
    {"id": "qr", "type": "QR_CODE", "side": "BACK", "x": 30, "y": 30, "width": 40, "height": 40},
]


def _template(**overrides) -> IDCardTemplate:
    values = {
        "name": "Packing Test",
        "width": Decimal("86.00"),
        "height": Decimal("54.00"),
        "unit": "mm",
        "bleed": Decimal("3.00"),
        "layout": LAYOUT,
    }
    values.update(overrides)
    return IDCardTemplate(**values)


def _entities(count: int) -> list[CardEntity]:
    return [
        CardEntity(
            id=f"E{index}",
            attributes={"fullName": f"Student {index}", "admissionNumber": f"ADM-{index}"},
        )
        for index in range(1, count + 1)
    ]


def _render_stub(entity, side):
    return {"entity": entity.id, "side": side}


class PrintSettingsTests(SimpleTestCase):
    def test_defaults_and_overrides(self):
        print_settings = get_print_settings()
        self.assertEqual(print_settings.sheet_width_mm, Decimal("420.00"))
        self.assertEqual(print_settings.sheet_height_mm, Decimal("297.00"))
        self.assertEqual(print_settings.columns, 4)
        self.assertEqual(print_settings.mark_size_mm, Decimal("15.00"))
        self.assertEqual(print_settings.print_dpi, 150)

        narrow = get_print_settings(columns=2, sheet_width_mm=210, mark_size_mm=None)
        self.assertEqual(narrow.columns, 2)
        self.assertEqual(narrow.sheet_width_mm, Decimal("210.00"))
        self.assertEqual(narrow.mark_size_mm, Decimal("15.00"))


class PackPrintSheetTests(SimpleTestCase):
    def test_unit_footprint_adds_bleed_on_both_sides(self):
        sheet = pack_print_sheet(_template(), _entities(1), _render_stub)
        self.assertEqual(sheet["unit"]["width_mm"], "92.00")
        self.assertEqual(sheet["unit"]["height_mm"], "60.00")
        self.assertEqual(sheet["units"][0]["width_mm"], "92.00")
        self.assertEqual(sheet["units"][0]["height_mm"], "60.00")

    def test_front_and_back_are_adjacent_in_selection_order(self):
        entities = _entities(5)
        sheet = pack_print_sheet(_template(), entities, _render_stub)
        units = sheet["units"]
        self.assertEqual(len(units), 10)
        for index, entity in enumerate(entities):
            with self.subTest(entity=entity.id):
                front, back = units[2 * index], units[2 * index + 1]
                self.assertEqual((front["entity_id"], front["side"]), (entity.id, "FRONT"))
                self.assertEqual((back["entity_id"], back["side"]), (entity.id, "BACK"))
                self.assertEqual(front["position"], 2 * index)
                self.assertEqual(back["position"], 2 * index + 1)
                self.assertEqual(front["rendered"], {"entity": entity.id, "side": "FRONT"})
        self.assertEqual(sheet["columns"], 4)
        self.assertEqual(sheet["rows"], 3)
        self.assertEqual(sheet["page_count"], 1)
        self.assertEqual([unit["column"] for unit in units[:5]], [0, 1, 2, 3, 0])
        self.assertEqual(units[4]["row"], 1)

    def test_registration_marks_sit_on_the_trim_line_for_any_size(self):
        sizes = [
            (Decimal("86.00"), Decimal("54.00"), Decimal("3.00")),
            (Decimal("54.00"), Decimal("86.00"), Decimal("0.00")),
            (Decimal("100.00"), Decimal("70.00"), Decimal("5.50")),
        ]
        for width, height, bleed in sizes:
            with self.subTest(width=width, height=height, bleed=bleed):
                sheet = pack_print_sheet(
                    _template(width=width, height=height, bleed=bleed),
                    _entities(2),
                    _render_stub,
                    print_settings=get_print_settings(columns=2),
                )
                unit_width = width + bleed * 2
                unit_height = height + bleed * 2
                for unit in sheet["units"]:
                    marks = {mark["corner"]: mark for mark in unit["marks"]}
                    self.assertEqual(len(marks), 4)
                    for corner, mark in marks.items():
                        centre_x = Decimal(mark["center_x_mm"])
                        centre_y = Decimal(mark["center_y_mm"])
                        distance_x = centre_x if "left" in corner else unit_width - centre_x
                        distance_y = centre_y if "top" in corner else unit_height - centre_y
                        self.assertEqual(distance_x, bleed)
                        self.assertEqual(distance_y, bleed)
                        self.assertEqual(
                            Decimal(mark["x_mm"]) + Decimal(mark["size_mm"]) / 2,
                            centre_x,
                        )

    def test_mark_size_is_configurable(self):
        marks = registration_marks(Decimal("92"), Decimal("60"), Decimal("3"), Decimal("10"))
        self.assertEqual(marks[0]["size_mm"], "10.00")
        self.assertEqual(marks[0]["x_mm"], "-2.00")

    def test_rows_are_split_across_pages(self):
        sheet = pack_print_sheet(_template(), _entities(30), _render_stub)
        self.assertEqual(len(sheet["units"]), 60)
        # (277 + 25) / (60 + 25) rows fit inside the landscape margins.
        self.assertEqual(sheet["rows_per_page"], 3)
        self.assertEqual(sheet["page_count"], 5)
        self.assertEqual(sheet["units"][11]["page"], 0)
        first_on_second_page = sheet["units"][12]
        self.assertEqual(first_on_second_page["page"], 1)
        self.assertEqual(first_on_second_page["y_mm"], "10.00")
        self.assertEqual(sheet["units"][4]["y_mm"], "95.00")

    def test_grid_is_centred_horizontally(self):
        sheet = pack_print_sheet(
            _template(width=Decimal("54.00"), height=Decimal("86.00")),
            _entities(2),
            _render_stub,
        )
        # 4 x 60 mm + 3 x 8 mm = 264 mm inside 400 mm of usable width.
        self.assertEqual(sheet["units"][0]["x_mm"], "78.00")
        self.assertEqual(sheet["units"][1]["x_mm"], "146.00")

    def test_standard_card_fits_the_default_sheet(self):
        sheet = pack_print_sheet(_template(), _entities(6), _render_stub)
        sheet_width = Decimal(sheet["sheet"]["width_mm"])
        sheet_height = Decimal(sheet["sheet"]["height_mm"])
        # 4 x 92 mm + 3 x 8 mm = 392 mm inside 400 mm of usable width.
        self.assertEqual(sheet["units"][0]["x_mm"], "14.00")
        self.assertEqual(sheet["units"][3]["x_mm"], "314.00")
        for unit in sheet["units"]:
            with self.subTest(position=unit["position"]):
                self.assertGreaterEqual(Decimal(unit["x_mm"]), Decimal("10.00"))
                self.assertLessEqual(
                    Decimal(unit["x_mm"]) + Decimal(unit["width_mm"]), sheet_width
                )
                self.assertLessEqual(
                    Decimal(unit["y_mm"]) + Decimal(unit["height_mm"]), sheet_height
                )

    def test_grid_wider_than_the_sheet_is_rejected_before_rendering(self):
        render_face = Mock(side_effect=_render_stub)
        portrait = get_print_settings(sheet_width_mm=297, sheet_height_mm=420)
        with self.assertRaises(PackingPreconditionError) as captured:
            pack_print_sheet(_template(), _entities(2), render_face, print_settings=portrait)
        self.assertIn("392.00 mm", captured.exception.detail)
        self.assertIn("277.00 mm", captured.exception.detail)
        render_face.assert_not_called()

        sheet = pack_print_sheet(
            _template(),
            _entities(2),
            render_face,
            print_settings=get_print_settings(
                sheet_width_mm=297, sheet_height_mm=420, columns=2
            ),
        )
        self.assertEqual(sheet["columns"], 2)
        self.assertEqual(len(sheet["units"]), 4)

    def test_preconditions_are_checked_before_rendering(self):
        render_face = Mock(side_effect=_render_stub)
        with self.assertRaises(PackingPreconditionError) as captured:
            pack_print_sheet(_template(), [], render_face)
        self.assertIn("at least one student", captured.exception.detail)
        with self.assertRaises(PackingPreconditionError):
            pack_print_sheet(None, _entities(2), render_face)
        render_face.assert_not_called()

    def test_precondition_error_is_a_render_error(self):
        self.assertTrue(issubclass(PackingPreconditionError, CardRenderError))

    def test_render_failure_becomes_placeholder_unit(self):
        def render_face(entity, side):
            if entity.id == "E2":
                raise CardRenderError("layout[0].width must be > 0.")
            return _render_stub(entity, side)

        with self.assertLogs("idcards.print_layout", level="WARNING"):
            sheet = pack_print_sheet(_template(), _entities(3), render_face)
        units = sheet["units"]
        self.assertEqual(len(units), 6)
        failed = [unit for unit in units if unit["placeholder"]]
        self.assertEqual(
            [(unit["entity_id"], unit["side"]) for unit in failed],
            [("E2", "FRONT"), ("E2", "BACK")],
        )
        self.assertEqual(failed[0]["error"], "layout[0].width must be > 0.")
        self.assertIsNone(failed[0]["rendered"])
        self.assertEqual(units[4]["rendered"], {"entity": "E3", "side": "FRONT"})


class PrintJobTests(SimpleTestCase):
    def test_print_job_renders_each_face_at_print_resolution(self):
        print_job = build_print_job(_template(), _entities(2))
        self.assertEqual(len(print_job.units), 4)
        self.assertEqual(print_job.page_count, 1)
        self.assertEqual(print_job.failed_units, [])
        front = print_job.units[0]["rendered"]
        self.assertEqual(front["scale"], 1.5625)
        self.assertAlmostEqual(front["width_px"], 92 * 150 / 25.4, places=1)
        self.assertEqual(print_job.fonts.families, ())

    def test_document_contains_pages_units_and_marks(self):
        print_job = build_print_job(_template(), _entities(3))
        html = render_print_document_html(print_job)
        self.assertIn("@page { size: 420.00mm 297.00mm; margin: 0; }", html)
        self.assertEqual(html.count('class="print-page"'), 1)
        self.assertEqual(html.count('class="print-unit"'), 6)
        self.assertEqual(html.count('class="reg-mark"'), 24)
        self.assertIn("transform:scale(0.64);", html)
        self.assertIn("Student 2", html)

    def test_malformed_layout_prints_placeholders(self):
        template = _template(layout="{broken")
        with self.assertLogs("idcards.print_layout", level="WARNING"):
            print_job = build_print_job(template, _entities(1))
        self.assertEqual(len(print_job.failed_units), 2)
        html = render_print_document_html(print_job)
        self.assertIn("Card unavailable", html)

    def test_invalid_colour_prints_placeholders(self):
        layout = [
            {
                "id": "band",
                "type": "RECTANGLE",
                "x": 0,
                "y": 0,
                "width": 100,
                "height": 20,
                "style": {"background_color": "#zzzzzz", "background_opacity": 0.5},
            }
        ]
        with self.assertLogs("idcards.print_layout", level="WARNING"):
            print_job = build_print_job(_template(layout=layout), _entities(2))
        self.assertEqual(len(print_job.failed_units), 4)
        self.assertIn("not a valid colour", print_job.failed_units[0]["error"])
        html = render_print_document_html(print_job)
        self.assertEqual(html.count("Card unavailable"), 4)

    def test_pdf_is_written_with_loaded_fonts(self):
        print_job = build_print_job(_template(), _entities(1))
        with patch("idcards.print_jobs.HTML") as html_class:
            html_class.return_value.write_pdf.return_value = b"%PDF-1.7 cards"
            pdf_bytes = render_print_pdf(print_job, base_url="http://testserver/")
        self.assertEqual(pdf_bytes, b"%PDF-1.7 cards")
        html_class.assert_called_once()
        self.assertEqual(html_class.call_args.kwargs["base_url"], "http://testserver/")

    def test_missing_pdf_backend_is_reported(self):
        print_job = build_print_job(_template(), _entities(1))
        with patch("idcards.print_jobs.HTML", None):
            with self.assertRaises(CardRenderError) as captured:
                render_print_pdf(print_job)
        self.assertEqual(captured.exception.status_code, 503)
