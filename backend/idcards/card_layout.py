from __future__ import annotations

import json
import math
import re
from typing import Any

from .errors import CardRenderError

SIDE_FRONT = "FRONT"
SIDE_BACK = "BACK"
CARD_SIDES = (SIDE_FRONT, SIDE_BACK)

ZONE_KIND_TEXT = "text"
ZONE_KIND_IMAGE = "image"
ZONE_KIND_SHAPE = "shape"

ZONE_TYPE_REGISTRY = [
    {"type": "STUDENT_NAME", "kind": ZONE_KIND_TEXT, "binding": "fullName"},
    {"type": "ADMISSION_NUMBER", "kind": ZONE_KIND_TEXT, "binding": "admissionNumber"},
    {"type": "GRADE", "kind": ZONE_KIND_TEXT, "binding": "grade"},
    {"type": "BLOOD_GROUP", "kind": ZONE_KIND_TEXT, "binding": "bloodGroup"},
    {"type": "SCHOOL_NAME", "kind": ZONE_KIND_TEXT, "binding": "schoolName"},
    {"type": "TEXT", "kind": ZONE_KIND_TEXT, "binding": ""},
    {"type": "STUDENT_PHOTO", "kind": ZONE_KIND_IMAGE, "binding": "photoUrl"},
    {"type": "SCHOOL_LOGO", "kind": ZONE_KIND_IMAGE, "binding": "schoolLogoUrl"},
    {"type": "QR_CODE", "kind": ZONE_KIND_IMAGE, "binding": "admissionNumber"},
    {"type": "SIGNATURE", "kind": ZONE_KIND_IMAGE, "binding": ""},
    {"type": "IMAGE", "kind": ZONE_KIND_IMAGE, "binding": ""},
    {"type": "LOGO", "kind": ZONE_KIND_IMAGE, "binding": ""},
    {"type": "RECTANGLE", "kind": ZONE_KIND_SHAPE, "binding": ""},
    {"type": "SHAPE", "kind": ZONE_KIND_SHAPE, "binding": ""},
    {"type": "CIRCLE", "kind": ZONE_KIND_SHAPE, "binding": ""},
    {"type": "PATH", "kind": ZONE_KIND_SHAPE, "binding": ""},
]

ZONE_KINDS = {entry["type"]: entry["kind"] for entry in ZONE_TYPE_REGISTRY}
DEFAULT_BINDINGS = {
    entry["type"]: entry["binding"] for entry in ZONE_TYPE_REGISTRY if entry["binding"]
}

COLOR_STYLE_KEYS = ("color", "background_color", "border_color")
HEX_COLOR_PATTERN = re.compile(r"#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})")
NAMED_COLOR_PATTERN = re.compile(r"[a-zA-Z]+")
FUNCTION_COLOR_PATTERN = re.compile(r"(?:rgb|rgba|hsl|hsla)\([0-9.,%\s]+\)", re.IGNORECASE)


def _coerce_number(value: Any, *, field_name: str, positive: bool = False) -> float:
    if isinstance(value, bool):
        raise CardRenderError(f"{field_name} must be a number.")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise CardRenderError(f"{field_name} must be a number.") from exc
    if not math.isfinite(number):
        raise CardRenderError(f"{field_name} must be a finite number.")
    if positive and number <= 0:
        raise CardRenderError(f"{field_name} must be > 0.")
    return number


def _coerce_z_index(value: Any, *, field_name: str) -> int:
    if value is None:
        return 0
    return int(_coerce_number(value, field_name=field_name))


def _is_valid_color(value: str) -> bool:
    return any(
        pattern.fullmatch(value)
        for pattern in (HEX_COLOR_PATTERN, NAMED_COLOR_PATTERN, FUNCTION_COLOR_PATTERN)
    )


def _validate_style_colors(style: dict[str, Any], *, path: str) -> None:
    for key in COLOR_STYLE_KEYS:
        value = style.get(key)
        if value in (None, ""):
            continue
        if not isinstance(value, str) or not _is_valid_color(value.strip()):
            raise CardRenderError(f"{path}.style.{key} '{value}' is not a valid colour.")


def _load_raw_layout(raw_layout: Any) -> list[Any]:
    if raw_layout is None:
        return []
    if isinstance(raw_layout, (bytes, bytearray)):
        raw_layout = raw_layout.decode("utf-8")
    if isinstance(raw_layout, str):
        if not raw_layout.strip():
            return []
        try:
            raw_layout = json.loads(raw_layout)
        except ValueError as exc:
            raise CardRenderError("Template layout is not valid JSON.") from exc
    if isinstance(raw_layout, dict) and "zones" in raw_layout:
        raw_layout = raw_layout["zones"]
    if not isinstance(raw_layout, list):
        raise CardRenderError("Template layout must be a list of zones.")
    return raw_layout


def parse_zone(raw_zone: Any, *, index: int) -> dict[str, Any]:
    path = f"layout[{index}]"
    if not isinstance(raw_zone, dict):
        raise CardRenderError(f"{path} must be an object.")

    zone_id = str(raw_zone.get("id") or "").strip() or f"zone-{index}"
    zone_type = str(raw_zone.get("type") or "").strip().upper()
    if zone_type not in ZONE_KINDS:
        raise CardRenderError(f"{path}.type '{raw_zone.get('type')}' is not a supported zone type.")

    side = str(raw_zone.get("side") or SIDE_FRONT).strip().upper()
    if side not in CARD_SIDES:
        raise CardRenderError(f"{path}.side must be FRONT or BACK.")

    style = raw_zone.get("style") or {}
    if not isinstance(style, dict):
        raise CardRenderError(f"{path}.style must be an object.")
    _validate_style_colors(style, path=path)

    binding = str(raw_zone.get("binding") or "").strip()
    content = raw_zone.get("content")
    if content is None:
        content = ""

    return {
        "id": zone_id,
        "type": zone_type,
        "kind": ZONE_KINDS[zone_type],
        "side": side,
        "x": _coerce_number(raw_zone.get("x"), field_name=f"{path}.x"),
        "y": _coerce_number(raw_zone.get("y"), field_name=f"{path}.y"),
        "width": _coerce_number(raw_zone.get("width"), field_name=f"{path}.width", positive=True),
        "height": _coerce_number(
            raw_zone.get("height"), field_name=f"{path}.height", positive=True
        ),
        "z_index": _coerce_z_index(raw_zone.get("z_index"), field_name=f"{path}.z_index"),
        "visible": raw_zone.get("visible", True) is not False,
        "binding": binding,
        "content": str(content),
        "style": dict(style),
    }


def parse_layout(raw_layout: Any) -> list[dict[str, Any]]:
    """Normalize a stored layout into zone dicts, in stored order.

    Absent layout data yields no zones. Anything structurally wrong raises
    ``CardRenderError`` so the failure stays scoped to the one template.
    """
    return [
        parse_zone(raw_zone, index=index)
        for index, raw_zone in enumerate(_load_raw_layout(raw_layout))
    ]


def zones_for_side(zones: list[dict[str, Any]], side: str) -> list[dict[str, Any]]:
    normalized_side = str(side or "").strip().upper()
    if normalized_side not in CARD_SIDES:
        raise CardRenderError("side must be FRONT or BACK.")
    selected = [
        (index, zone)
        for index, zone in enumerate(zones)
        if zone["side"] == normalized_side and zone["visible"]
    ]
    selected.sort(key=lambda item: (item[1]["z_index"], item[0]))
    return [zone for _, zone in selected]


def default_binding(zone_type: str) -> str:
    return DEFAULT_BINDINGS.get(zone_type, "")
