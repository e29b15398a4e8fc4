from __future__ import annotations

import base64
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from html import escape
from io import BytesIO
import math
from typing import Any

from .card_layout import (
    HEX_COLOR_PATTERN,
    ZONE_KIND_IMAGE,
    ZONE_KIND_SHAPE,
    ZONE_KIND_TEXT,
    default_binding,
    parse_layout,
    zones_for_side,
)
from .conf import get_print_settings
from .errors import CardRenderError
from .models import MM_PER_UNIT

try:
    import qrcode
except Exception:  # pragma: no cover - handled at runtime
    qrcode = None

MM_PER_INCH = 25.4
DEFAULT_FONT_SIZE_PERCENT = 6.0
DEFAULT_FONT_STACK = "Inter,Arial,sans-serif"
VERTICAL_ALIGN_MAP = {"top": "flex-start", "middle": "center", "bottom": "flex-end"}


@dataclass(frozen=True)
class CardGeometry:
    width_mm: Decimal
    height_mm: Decimal
    bleed_mm: Decimal
    safe_margin_mm: Decimal

    @property
    def unit_width_mm(self) -> Decimal:
        return self.width_mm + self.bleed_mm * 2

    @property
    def unit_height_mm(self) -> Decimal:
        return self.height_mm + self.bleed_mm * 2


def _coerce_mm(value: Any, *, field_name: str, allow_zero: bool = False) -> Decimal:
    try:
        decimal_value = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise CardRenderError(f"{field_name} must be a decimal number.") from exc
    if not decimal_value.is_finite():
        raise CardRenderError(f"{field_name} must be a decimal number.")
    minimum = Decimal("0.00") if allow_zero else Decimal("0.01")
    if decimal_value < minimum:
        operator = ">=" if allow_zero else ">"
        raise CardRenderError(f"{field_name} must be {operator} {minimum}.")
    return decimal_value.quantize(Decimal("0.01"))


def format_mm(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01'))}"


def card_geometry(template) -> CardGeometry:
    """Physical card size in millimetres, whatever unit the template uses."""
    unit = str(getattr(template, "unit", "mm") or "mm")
    factor = MM_PER_UNIT.get(unit)
    if factor is None:
        raise CardRenderError(f"Unsupported template unit '{unit}'.")
    width = _coerce_mm(template.width, field_name="width")
    height = _coerce_mm(template.height, field_name="height")
    return CardGeometry(
        width_mm=(width * factor).quantize(Decimal("0.01")),
        height_mm=(height * factor).quantize(Decimal("0.01")),
        bleed_mm=_coerce_mm(template.bleed, field_name="bleed", allow_zero=True),
        safe_margin_mm=_coerce_mm(
            getattr(template, "safe_margin", 0) or 0,
            field_name="safe_margin",
            allow_zero=True,
        ),
    )


def resolution_scale(target_dpi: float, base_dpi: float, zoom: float = 1.0) -> float:
    """Scale factor that maps the base resolution onto ``target_dpi``."""
    for name, value in (("target_dpi", target_dpi), ("base_dpi", base_dpi), ("zoom", zoom)):
        if value is None or float(value) <= 0:
            raise CardRenderError(f"{name} must be > 0.")
    return float(target_dpi) / float(base_dpi) * float(zoom)


def _px(value: float) -> float:
    return round(value, 2)


def _style_number(
    style: dict[str, Any],
    key: str,
    default: float,
    *,
    minimum: float | None = 0.0,
) -> float:
    value = style.get(key, default)
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or (minimum is not None and number < minimum):
        return default
    return number


def _style_text(style: dict[str, Any], key: str, default: str) -> str:
    value = style.get(key, default)
    return str(value if value not in (None, "") else default)


def _resolve_style(
    style: dict[str, Any],
    *,
    trim_height_px: float,
    px_per_mm: float,
) -> dict[str, Any]:
    font_size_percent = _style_number(style, "font_size", DEFAULT_FONT_SIZE_PERCENT)
    return {
        "font_family": _style_text(style, "font_family", ""),
        "font_size_px": _px(trim_height_px * font_size_percent / 100),
        "font_weight": _style_text(style, "font_weight", "400"),
        "italic": bool(style.get("italic", False)),
        "uppercase": bool(style.get("uppercase", False)),
        "underline": bool(style.get("underline", False)),
        "letter_spacing_em": _style_number(style, "letter_spacing", 0.0, minimum=None),
        "line_height": _style_number(style, "line_height", 1.2),
        "color": _style_text(style, "color", "#111827"),
        "text_align": _style_text(style, "text_align", "left"),
        "vertical_align": _style_text(style, "vertical_align", "top"),
        "background_color": _style_text(style, "background_color", ""),
        "background_opacity": min(_style_number(style, "background_opacity", 1.0), 1.0),
        "border_color": _style_text(style, "border_color", "#111827"),
        "border_width_px": _px(_style_number(style, "border_width", 0.0) * px_per_mm),
        "border_radius_px": _px(_style_number(style, "border_radius", 0.0) * px_per_mm),
        "padding_px": _px(_style_number(style, "padding", 0.0) * px_per_mm),
        "opacity": min(_style_number(style, "opacity", 1.0), 1.0),
        "rotation_deg": _style_number(style, "rotation", 0.0, minimum=None),
        "object_fit": _style_text(style, "object_fit", "cover"),
        "path": _style_text(style, "path", ""),
    }


def _stringify_attribute(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _resolve_zone_value(zone: dict[str, Any], attributes: dict[str, Any]) -> str:
    if zone["kind"] == ZONE_KIND_SHAPE:
        return ""
    binding = zone["binding"] or default_binding(zone["type"])
    if binding:
        # A missing attribute renders empty instead of failing the card.
        return _stringify_attribute(attributes.get(binding))
    return zone["content"]


def _build_qr_data_uri(value: str) -> str:
    payload = str(value or "").strip()
    if not payload or qrcode is None:
        return ""
    qr_code = qrcode.QRCode(box_size=6, border=1)
    qr_code.add_data(payload)
    qr_code.make(fit=True)
    image = qr_code.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return f"data:image/png;base64,{base64.b64encode(buffer.getvalue()).decode('ascii')}"


def _render_zone(
    zone: dict[str, Any],
    *,
    attributes: dict[str, Any],
    trim: dict[str, float],
    px_per_mm: float,
    render_order: int,
) -> dict[str, Any]:
    style = _resolve_style(zone["style"], trim_height_px=trim["height"], px_per_mm=px_per_mm)
    value = _resolve_zone_value(zone, attributes)
    if zone["kind"] == ZONE_KIND_TEXT and style["uppercase"]:
        value = value.upper()
    rendered = {
        "id": zone["id"],
        "type": zone["type"],
        "kind": zone["kind"],
        "side": zone["side"],
        "z_index": zone["z_index"],
        "render_order": render_order,
        "x_px": _px(trim["x"] + zone["x"] / 100 * trim["width"]),
        "y_px": _px(trim["y"] + zone["y"] / 100 * trim["height"]),
        "width_px": _px(zone["width"] / 100 * trim["width"]),
        "height_px": _px(zone["height"] / 100 * trim["height"]),
        "binding": zone["binding"] or default_binding(zone["type"]),
        "value": value,
        "style": style,
    }
    if zone["type"] == "QR_CODE":
        rendered["image_src"] = _build_qr_data_uri(value)
    elif zone["kind"] == ZONE_KIND_IMAGE:
        rendered["image_src"] = value
    return rendered


def render_card_face(
    template,
    attributes: dict[str, Any] | None,
    side: str,
    *,
    scale: float = 1.0,
    base_dpi: float | None = None,
) -> dict[str, Any]:
    """Position every visible zone of one card side in pixels.

    Zone boxes are percentages of the trim box. Pixels are millimetres at
    ``base_dpi`` multiplied by ``scale``, so identical inputs always produce
    identical output.
    """
    if scale is None or float(scale) <= 0:
        raise CardRenderError("scale must be > 0.")
    if base_dpi is None:
        base_dpi = get_print_settings().preview_dpi
    geometry = card_geometry(template)
    zones = zones_for_side(parse_layout(getattr(template, "layout", None)), side)

    px_per_mm = float(base_dpi) / MM_PER_INCH * float(scale)
    bleed_px = float(geometry.bleed_mm) * px_per_mm
    trim = {
        "x": _px(bleed_px),
        "y": _px(bleed_px),
        "width": _px(float(geometry.width_mm) * px_per_mm),
        "height": _px(float(geometry.height_mm) * px_per_mm),
    }
    attributes = attributes or {}
    return {
        "template_id": getattr(template, "pk", None),
        "side": str(side).strip().upper(),
        "scale": float(scale),
        "base_dpi": float(base_dpi),
        "px_per_mm": round(px_per_mm, 6),
        "width_mm": format_mm(geometry.unit_width_mm),
        "height_mm": format_mm(geometry.unit_height_mm),
        "width_px": _px(float(geometry.unit_width_mm) * px_per_mm),
        "height_px": _px(float(geometry.unit_height_mm) * px_per_mm),
        "bleed_px": _px(bleed_px),
        "safe_margin_px": _px(float(geometry.safe_margin_mm) * px_per_mm),
        "trim": trim,
        "zones": [
            _render_zone(
                zone,
                attributes=attributes,
                trim=trim,
                px_per_mm=px_per_mm,
                render_order=index,
            )
            for index, zone in enumerate(zones)
        ],
    }


def _font_stack(family: str) -> str:
    family = family.replace("'", "").replace('"', "").strip()
    if not family:
        return DEFAULT_FONT_STACK
    return f"'{family}',{DEFAULT_FONT_STACK}"


def _hex_with_opacity(color: str, opacity: float) -> str:
    if opacity >= 1.0 or len(color) != 7 or not HEX_COLOR_PATTERN.fullmatch(color):
        return color
    red, green, blue = (int(color[index:index + 2], 16) for index in (1, 3, 5))
    return f"rgba({red},{green},{blue},{round(opacity, 3)})"


def _zone_box_style(zone: dict[str, Any]) -> str:
    style = zone["style"]
    css = (
        "position:absolute;"
        f"left:{zone['x_px']}px;"
        f"top:{zone['y_px']}px;"
        f"width:{zone['width_px']}px;"
        f"height:{zone['height_px']}px;"
        "box-sizing:border-box;"
        "overflow:hidden;"
        f"opacity:{style['opacity']};"
        f"transform:rotate({style['rotation_deg']}deg);"
        f"z-index:{zone['render_order']};"
        f"padding:{style['padding_px']}px;"
    )
    if style["background_color"] and zone["type"] != "PATH":
        background = _hex_with_opacity(style["background_color"], style["background_opacity"])
        css += f"background:{escape(background)};"
    if style["border_width_px"] and zone["type"] != "PATH":
        css += f"border:{style['border_width_px']}px solid {escape(style['border_color'])};"
    if zone["type"] == "CIRCLE":
        css += "border-radius:50%;"
    elif style["border_radius_px"]:
        css += f"border-radius:{style['border_radius_px']}px;"
    return css


def _render_zone_html(zone: dict[str, Any]) -> str:
    style = zone["style"]
    box_style = _zone_box_style(zone)

    if zone["kind"] == ZONE_KIND_TEXT:
        text_value = escape(str(zone.get("value", ""))).replace("\n", "<br/>")
        justify = VERTICAL_ALIGN_MAP.get(style["vertical_align"], "flex-start")
        decoration = "underline" if style["underline"] else "none"
        font_style = "italic" if style["italic"] else "normal"
        return (
            f'<div style="{box_style}'
            "display:flex;flex-direction:column;"
            f"justify-content:{justify};"
            f"font-family:{escape(_font_stack(style['font_family']))};"
            f"font-size:{style['font_size_px']}px;"
            f"font-weight:{escape(style['font_weight'])};"
            f"font-style:{font_style};"
            f"text-decoration:{decoration};"
            f"letter-spacing:{style['letter_spacing_em']}em;"
            f"line-height:{style['line_height']};"
            f"color:{escape(style['color'])};"
            f"text-align:{escape(style['text_align'])};"
            'white-space:normal;word-break:break-word;">'
            f"<span>{text_value}</span></div>"
        )
    if zone["kind"] == ZONE_KIND_IMAGE:
        source = str(zone.get("image_src", "")).strip()
        if source:
            return (
                f'<div style="{box_style}">'
                f'<img src="{escape(source)}" alt="" '
                "style=\"width:100%;height:100%;display:block;"
                f'object-fit:{escape(style["object_fit"])};"/>'
                "</div>"
            )
        return f'<div style="{box_style}background:#f3f4f6;"></div>'
    if zone["type"] == "PATH":
        fill = style["background_color"] or "none"
        return (
            f'<div style="{box_style}">'
            '<svg viewBox="0 0 100 100" preserveAspectRatio="none" width="100%" height="100%">'
            f'<path d="{escape(style["path"])}" fill="{escape(fill)}" '
            f'fill-opacity="{style["background_opacity"]}" '
            f'stroke="{escape(style["border_color"])}" '
            f'stroke-width="{style["border_width_px"]}"/>'
            "</svg></div>"
        )
    return f'<div style="{box_style}"></div>'


def render_card_fragment_html(rendered: dict[str, Any], *, include_guides: bool = False) -> str:
    zones_html = "".join(_render_zone_html(zone) for zone in rendered["zones"])
    guide_html = ""
    if include_guides:
        bleed_px = rendered["bleed_px"]
        safe_px = _px(bleed_px + rendered["safe_margin_px"])
        guide_html = (
            '<div class="trim-guide" style="position:absolute;box-sizing:border-box;'
            f'inset:{bleed_px}px;border:1px dashed #ef4444;z-index:9998;"></div>'
            '<div class="safe-guide" style="position:absolute;box-sizing:border-box;'
            f'inset:{safe_px}px;border:1px dashed #10b981;z-index:9999;"></div>'
        )
    return (
        f'<div class="card-face" data-side="{escape(str(rendered["side"]))}" '
        f'style="position:relative;width:{rendered["width_px"]}px;'
        f'height:{rendered["height_px"]}px;overflow:hidden;box-sizing:border-box;'
        f'background:#ffffff;">{zones_html}{guide_html}</div>'
    )
