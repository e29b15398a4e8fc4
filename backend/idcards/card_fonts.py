from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Iterable
from urllib.parse import quote_plus

from .card_layout import parse_layout
from .conf import get_print_settings
from .errors import CardRenderError

try:
    from weasyprint import CSS
    from weasyprint.text.fonts import FontConfiguration
except Exception:  # pragma: no cover - handled at runtime
    CSS = None
    FontConfiguration = None

logger = logging.getLogger(__name__)

FONT_WEIGHTS = "400;500;600;700"


@dataclass
class FontReadiness:
    families: tuple[str, ...] = ()
    stylesheet_url: str = ""
    stylesheets: list[Any] = field(default_factory=list)
    font_config: Any = None
    failed: tuple[str, ...] = ()

    @property
    def ready(self) -> bool:
        return not self.failed


def _normalize_family(value: Any) -> str:
    family = str(value or "").strip().strip("'\"")
    # Stacks such as "Lato, sans-serif" load only the primary family.
    return family.split(",")[0].strip().strip("'\"")


def required_font_families(template, *, builtin_fonts: Iterable[str] | None = None) -> set[str]:
    """Font families used by the template that are not bundled with the app."""
    if builtin_fonts is None:
        builtin_fonts = get_print_settings().builtin_fonts
    builtin = {family.lower() for family in builtin_fonts}
    try:
        zones = parse_layout(getattr(template, "layout", None))
    except CardRenderError as exc:
        logger.warning(
            "Skipping font resolution for template %s: %s",
            getattr(template, "pk", None),
            exc.detail,
        )
        return set()

    families: set[str] = set()
    for zone in zones:
        family = _normalize_family(zone["style"].get("font_family"))
        if family and family.lower() not in builtin:
            families.add(family)
    return families


def google_fonts_url(families: Iterable[str], *, base_url: str | None = None) -> str:
    ordered = sorted({family for family in families if family})
    if not ordered:
        return ""
    if base_url is None:
        base_url = get_print_settings().google_fonts_url
    query = "&".join(f"family={quote_plus(family)}:wght@{FONT_WEIGHTS}" for family in ordered)
    return f"{base_url}?{query}&display=swap"


def ensure_fonts_ready(families: Iterable[str]) -> FontReadiness:
    """Load the stylesheet for ``families`` once, ahead of a print pass.

    A failed load never blocks printing: it is logged and the pass falls back
    to the default fonts.
    """
    ordered = tuple(sorted({family for family in families if family}))
    if not ordered:
        return FontReadiness()
    stylesheet_url = google_fonts_url(ordered)
    if CSS is None or FontConfiguration is None:
        logger.warning("Font loading backend is unavailable; using default fonts.")
        return FontReadiness(families=ordered, stylesheet_url=stylesheet_url, failed=ordered)

    font_config = FontConfiguration()
    try:
        stylesheet = CSS(url=stylesheet_url, font_config=font_config)
    except Exception as exc:
        logger.warning(
            "Could not load font stylesheet for %s: %s. Falling back to default fonts.",
            ", ".join(ordered),
            exc,
        )
        return FontReadiness(
            families=ordered,
            stylesheet_url=stylesheet_url,
            font_config=font_config,
            failed=ordered,
        )
    logger.info("Loaded font stylesheet for %s.", ", ".join(ordered))
    return FontReadiness(
        families=ordered,
        stylesheet_url=stylesheet_url,
        stylesheets=[stylesheet],
        font_config=font_config,
    )
