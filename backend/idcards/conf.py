from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from django.conf import settings


def _mm(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class PrintSettings:
    preview_dpi: int
    print_dpi: int
    sheet_width_mm: Decimal
    sheet_height_mm: Decimal
    sheet_margin_mm: Decimal
    columns: int
    row_gap_mm: Decimal
    column_gap_mm: Decimal
    mark_size_mm: Decimal
    mark_stroke_mm: Decimal
    mark_opacity: Decimal
    builtin_fonts: tuple[str, ...]
    google_fonts_url: str


def get_print_settings(**overrides) -> PrintSettings:
    """Read the ``IDCARD_*`` settings, letting callers override single values."""
    print_settings = PrintSettings(
        preview_dpi=int(settings.IDCARD_PREVIEW_DPI),
        print_dpi=int(settings.IDCARD_PRINT_DPI),
        sheet_width_mm=_mm(settings.IDCARD_SHEET_WIDTH_MM),
        sheet_height_mm=_mm(settings.IDCARD_SHEET_HEIGHT_MM),
        sheet_margin_mm=_mm(settings.IDCARD_SHEET_MARGIN_MM),
        columns=int(settings.IDCARD_SHEET_COLUMNS),
        row_gap_mm=_mm(settings.IDCARD_ROW_GAP_MM),
        column_gap_mm=_mm(settings.IDCARD_COLUMN_GAP_MM),
        mark_size_mm=_mm(settings.IDCARD_MARK_SIZE_MM),
        mark_stroke_mm=_mm(settings.IDCARD_MARK_STROKE_MM),
        mark_opacity=Decimal(str(settings.IDCARD_MARK_OPACITY)),
        builtin_fonts=tuple(settings.IDCARD_BUILTIN_FONTS),
        google_fonts_url=str(settings.IDCARD_GOOGLE_FONTS_URL),
    )
    if not overrides:
        return print_settings
    normalized: dict = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key.endswith("_mm"):
            normalized[key] = _mm(value)
        else:
            normalized[key] = value
    return replace(print_settings, **normalized)
