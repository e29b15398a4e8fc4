from __future__ import annotations

import logging
from decimal import ROUND_FLOOR, Decimal
from typing import Any, Callable, Sequence

from .card_layout import CARD_SIDES
from .card_rendering import card_geometry, format_mm
from .conf import PrintSettings, get_print_settings
from .errors import CardRenderError, PackingPreconditionError

logger = logging.getLogger(__name__)

MARK_CORNERS = ("top_left", "top_right", "bottom_left", "bottom_right")

RenderFace = Callable[[Any, str], dict[str, Any]]


def ensure_pack_preconditions(template, selection: Sequence[Any]) -> None:
    if template is None:
        raise PackingPreconditionError("Select an ID card template before printing.")
    if not selection:
        raise PackingPreconditionError("Select at least one student to print ID cards for.")


def registration_marks(
    unit_width_mm: Decimal,
    unit_height_mm: Decimal,
    bleed_mm: Decimal,
    mark_size_mm: Decimal,
) -> list[dict[str, str]]:
    """Corner crosshairs centred on the trim line, ``bleed_mm`` in from each edge."""
    half = mark_size_mm / 2
    centres = {
        "top_left": (bleed_mm, bleed_mm),
        "top_right": (unit_width_mm - bleed_mm, bleed_mm),
        "bottom_left": (bleed_mm, unit_height_mm - bleed_mm),
        "bottom_right": (unit_width_mm - bleed_mm, unit_height_mm - bleed_mm),
    }
    marks = []
    for corner in MARK_CORNERS:
        centre_x, centre_y = centres[corner]
        marks.append(
            {
                "corner": corner,
                "center_x_mm": format_mm(centre_x),
                "center_y_mm": format_mm(centre_y),
                "x_mm": format_mm(centre_x - half),
                "y_mm": format_mm(centre_y - half),
                "size_mm": format_mm(mark_size_mm),
            }
        )
    return marks


def _rows_per_page(
    print_settings: PrintSettings,
    unit_height_mm: Decimal,
) -> int:
    usable_height = print_settings.sheet_height_mm - print_settings.sheet_margin_mm * 2
    fitting = (usable_height + print_settings.row_gap_mm) / (
        unit_height_mm + print_settings.row_gap_mm
    )
    rows = int(fitting.to_integral_value(rounding=ROUND_FLOOR))
    if rows < 1:
        logger.warning(
            "Card height %s mm does not fit the %s mm sheet; placing one row per page.",
            unit_height_mm,
            print_settings.sheet_height_mm,
        )
        return 1
    return rows


def pack_print_sheet(
    template,
    selection: Sequence[Any],
    render_face: RenderFace,
    *,
    print_settings: PrintSettings | None = None,
) -> dict[str, Any]:
    """Lay out the front and back of every selected entity on print pages.

    Entity ``k`` occupies grid positions ``2k`` (front) and ``2k + 1`` (back).
    Positions fill a fixed number of columns row by row and rows are split
    across pages. A grid wider than the sheet is rejected before rendering.
    A face that fails to render becomes a placeholder unit carrying the
    error, and the remaining cards are still packed.
    """
    ensure_pack_preconditions(template, selection)
    print_settings = print_settings or get_print_settings()
    columns = int(print_settings.columns)
    if columns < 1:
        raise PackingPreconditionError("The print sheet needs at least one column.")

    geometry = card_geometry(template)
    unit_width = geometry.unit_width_mm
    unit_height = geometry.unit_height_mm
    column_gap = print_settings.column_gap_mm
    row_gap = print_settings.row_gap_mm
    margin = print_settings.sheet_margin_mm

    grid_width = unit_width * columns + column_gap * (columns - 1)
    available_width = print_settings.sheet_width_mm - margin * 2
    if grid_width > available_width:
        raise PackingPreconditionError(
            f"{columns} columns of {format_mm(unit_width)} mm cards need "
            f"{format_mm(grid_width)} mm but the sheet only fits {format_mm(available_width)} mm. "
            "Use a wider sheet or fewer columns."
        )
    left_offset = margin + (available_width - grid_width) / 2
    rows_per_page = _rows_per_page(print_settings, unit_height)

    marks = registration_marks(
        unit_width,
        unit_height,
        geometry.bleed_mm,
        print_settings.mark_size_mm,
    )
    units: list[dict[str, Any]] = []
    for entity_index, entity in enumerate(selection):
        entity_id = str(getattr(entity, "id", entity))
        for side_offset, side in enumerate(CARD_SIDES):
            position = entity_index * 2 + side_offset
            row, column = divmod(position, columns)
            page, page_row = divmod(row, rows_per_page)
            try:
                rendered = render_face(entity, side)
                error = ""
            except CardRenderError as exc:
                logger.warning(
                    "Card %s (%s) of template %s could not be rendered: %s",
                    entity_id,
                    side,
                    getattr(template, "pk", None),
                    exc.detail,
                )
                rendered = None
                error = exc.detail
            units.append(
                {
                    "position": position,
                    "entity_id": entity_id,
                    "side": side,
                    "page": page,
                    "row": row,
                    "column": column,
                    "x_mm": format_mm(left_offset + (unit_width + column_gap) * column),
                    "y_mm": format_mm(margin + (unit_height + row_gap) * page_row),
                    "width_mm": format_mm(unit_width),
                    "height_mm": format_mm(unit_height),
                    "placeholder": rendered is None,
                    "error": error,
                    "rendered": rendered,
                    "marks": marks,
                }
            )

    total_rows = (len(units) + columns - 1) // columns
    return {
        "template_id": getattr(template, "pk", None),
        "sheet": {
            "width_mm": format_mm(print_settings.sheet_width_mm),
            "height_mm": format_mm(print_settings.sheet_height_mm),
            "margin_mm": format_mm(margin),
            "row_gap_mm": format_mm(row_gap),
            "column_gap_mm": format_mm(column_gap),
        },
        "unit": {
            "width_mm": format_mm(unit_width),
            "height_mm": format_mm(unit_height),
            "bleed_mm": format_mm(geometry.bleed_mm),
            "card_width_mm": format_mm(geometry.width_mm),
            "card_height_mm": format_mm(geometry.height_mm),
        },
        "marks": {
            "size_mm": format_mm(print_settings.mark_size_mm),
            "stroke_mm": format_mm(print_settings.mark_stroke_mm),
            "opacity": str(print_settings.mark_opacity),
        },
        "columns": columns,
        "rows": total_rows,
        "rows_per_page": rows_per_page,
        "page_count": (total_rows + rows_per_page - 1) // rows_per_page,
        "units": units,
    }
