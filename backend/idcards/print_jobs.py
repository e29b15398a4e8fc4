from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
import logging
import time
from html import escape
from typing import Any, Sequence

from django.conf import settings

from .card_entities import CardEntity
from .card_fonts import FontReadiness, ensure_fonts_ready, required_font_families
from .card_rendering import (
    render_card_face,
    render_card_fragment_html,
    resolution_scale,
)
from .conf import PrintSettings, get_print_settings
from .errors import CardRenderError
from .print_layout import ensure_pack_preconditions, pack_print_sheet

try:
    from weasyprint import HTML
except Exception:  # pragma: no cover - handled at runtime
    HTML = None

logger = logging.getLogger(__name__)

# CSS pixels are fixed at 96 per inch regardless of the render density.
CSS_PX_PER_INCH = 96


@dataclass
class PrintJob:
    """One print pass. Lives only for the request that builds it."""

    template: Any
    selection: list[CardEntity]
    sheet: dict[str, Any]
    print_settings: PrintSettings
    fonts: FontReadiness = field(default_factory=FontReadiness)

    @property
    def units(self) -> list[dict[str, Any]]:
        return self.sheet["units"]

    @property
    def page_count(self) -> int:
        return int(self.sheet["page_count"])

    @property
    def failed_units(self) -> list[dict[str, Any]]:
        return [unit for unit in self.units if unit["placeholder"]]


def build_print_job(
    template,
    selection: Sequence[CardEntity],
    *,
    zoom: float = 1.0,
    print_settings: PrintSettings | None = None,
) -> PrintJob:
    ensure_pack_preconditions(template, selection)
    print_settings = print_settings or get_print_settings()
    fonts = ensure_fonts_ready(
        required_font_families(template, builtin_fonts=print_settings.builtin_fonts)
    )

    scale = resolution_scale(print_settings.print_dpi, print_settings.preview_dpi, zoom)

    def _render_face(entity: CardEntity, side: str) -> dict[str, Any]:
        return render_card_face(
            template,
            entity.attributes,
            side,
            scale=scale,
            base_dpi=print_settings.preview_dpi,
        )

    sheet = pack_print_sheet(
        template,
        list(selection),
        _render_face,
        print_settings=print_settings,
    )
    return PrintJob(
        template=template,
        selection=list(selection),
        sheet=sheet,
        print_settings=print_settings,
        fonts=fonts,
    )


def _mark_html(mark: dict[str, str], *, stroke_mm: str) -> str:
    return (
        f'<div class="reg-mark" style="left:{mark["x_mm"]}mm;top:{mark["y_mm"]}mm;'
        f'width:{mark["size_mm"]}mm;height:{mark["size_mm"]}mm;">'
        '<div style="position:absolute;left:0;right:0;top:50%;'
        f'border-top:{stroke_mm}mm solid #000000;"></div>'
        '<div style="position:absolute;top:0;bottom:0;left:50%;'
        f'border-left:{stroke_mm}mm solid #000000;"></div>'
        "</div>"
    )


def _placeholder_html(unit: dict[str, Any]) -> str:
    return (
        '<div class="card-placeholder">'
        f"<strong>Card unavailable</strong><span>{escape(unit['error'])}</span>"
        "</div>"
    )


def _unit_html(unit: dict[str, Any], *, stroke_mm: str) -> str:
    rendered = unit["rendered"]
    if rendered is None:
        content = _placeholder_html(unit)
    else:
        # The face is drawn at print density, then shrunk back to its physical size.
        fit = CSS_PX_PER_INCH / (rendered["base_dpi"] * rendered["scale"])
        content = (
            f'<div class="card-scaled" style="transform:scale({round(fit, 6)});">'
            f"{render_card_fragment_html(rendered)}</div>"
        )
    marks_html = "".join(_mark_html(mark, stroke_mm=stroke_mm) for mark in unit["marks"])
    return (
        f'<div class="print-unit" data-entity="{escape(unit["entity_id"])}" '
        f'data-side="{unit["side"]}" '
        f'style="left:{unit["x_mm"]}mm;top:{unit["y_mm"]}mm;'
        f'width:{unit["width_mm"]}mm;height:{unit["height_mm"]}mm;">'
        f'<div class="unit-content">{content}</div>{marks_html}</div>'
    )


def render_print_document_html(print_job: PrintJob) -> str:
    sheet = print_job.sheet
    sheet_width = sheet["sheet"]["width_mm"]
    sheet_height = sheet["sheet"]["height_mm"]
    marks = sheet["marks"]

    units_by_page: dict[int, list[str]] = defaultdict(list)
    for unit in print_job.units:
        units_by_page[int(unit["page"])].append(_unit_html(unit, stroke_mm=marks["stroke_mm"]))

    pages_markup = [
        '<div class="print-page">' + "".join(units_by_page[page]) + "</div>"
        for page in range(print_job.page_count)
    ]
    return (
        "<!doctype html>"
        "<html><head><meta charset='utf-8'>"
        "<style>"
        f"@page {{ size: {sheet_width}mm {sheet_height}mm; margin: 0; }}"
        "html,body{margin:0;padding:0;}"
        "body{font-family:Inter,Arial,sans-serif;}"
        f".print-page{{position:relative;width:{sheet_width}mm;height:{sheet_height}mm;"
        "overflow:hidden;page-break-after:always;}"
        ".print-page:last-child{page-break-after:auto;}"
        ".print-unit{position:absolute;box-sizing:border-box;}"
        ".unit-content{position:absolute;inset:0;overflow:hidden;}"
        ".card-scaled{transform-origin:0 0;}"
        f".reg-mark{{position:absolute;pointer-events:none;opacity:{marks['opacity']};}}"
        ".card-placeholder{position:absolute;inset:0;box-sizing:border-box;"
        "border:0.3mm dashed #9ca3af;background:#f9fafb;color:#6b7280;"
        "display:flex;flex-direction:column;align-items:center;justify-content:center;"
        "font-size:2.6mm;text-align:center;padding:2mm;}"
        "</style>"
        "</head><body>"
        f"{''.join(pages_markup)}"
        "</body></html>"
    )


def render_print_pdf(print_job: PrintJob, *, base_url: str | None = None) -> bytes:
    if HTML is None:
        raise CardRenderError("PDF rendering backend is unavailable.", status_code=503)
    if base_url is None:
        base_url = str(settings.FRONTEND_BASE_URL).rstrip("/") + "/"
    html = render_print_document_html(print_job)
    return HTML(string=html, base_url=base_url).write_pdf(
        stylesheets=print_job.fonts.stylesheets or None,
        font_config=print_job.fonts.font_config,
    )


def generate_print_pdf(
    template,
    selection: Sequence[CardEntity],
    *,
    zoom: float = 1.0,
    print_settings: PrintSettings | None = None,
) -> tuple[bytes, PrintJob]:
    started = time.monotonic()
    print_job = build_print_job(template, selection, zoom=zoom, print_settings=print_settings)
    pdf_bytes = render_print_pdf(print_job)
    logger.info(
        "Printed %d card(s) for template %s on %d page(s) (%d placeholder(s), %.1f ms).",
        len(print_job.selection),
        getattr(template, "pk", None),
        print_job.page_count,
        len(print_job.failed_units),
        (time.monotonic() - started) * 1000,
    )
    return pdf_bytes, print_job
