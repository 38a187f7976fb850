"""Cyrillic-capable font lookup for the PDF documents.

Candidate pairs are an ordered table per platform; the first pair whose
regular AND bold files both exist wins. Missing fonts never fail a document:
rendering falls back to ReportLab's built-in Helvetica faces.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Mapping, Optional, Sequence
import logging
import os
import sys

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont

from statement_desk.config.settings import get_settings

LOGGER = logging.getLogger("pdf_fonts")

REGULAR_FONT_NAME = "StatementSans"
BOLD_FONT_NAME = "StatementSans-Bold"
FALLBACK_FONTS = ("Helvetica", "Helvetica-Bold")


@dataclass(frozen=True)
class FontPaths:
    regular: str = ""
    bold: str = ""

    @property
    def available(self) -> bool:
        return bool(self.regular and self.bold)


DEFAULT_FONT_CANDIDATES: Mapping[str, Sequence[FontPaths]] = {
    "win32": (
        FontPaths("C:/Windows/Fonts/arial.ttf", "C:/Windows/Fonts/arialbd.ttf"),
    ),
    "darwin": (
        FontPaths("/System/Library/Fonts/Supplemental/Arial.ttf",
                  "/System/Library/Fonts/Supplemental/Arial Bold.ttf"),
    ),
    "linux": (
        FontPaths("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
                  "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
        FontPaths("/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
                  "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf"),
        FontPaths("/usr/share/fonts/TTF/DejaVuSans.ttf",
                  "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf"),
    ),
}


def _platform_key(platform: str) -> str:
    if platform.startswith("win"):
        return "win32"
    if platform == "darwin":
        return "darwin"
    return "linux"


def resolve_font_paths(
    platform: Optional[str] = None,
    candidates: Optional[Mapping[str, Sequence[FontPaths]]] = None,
    exists: Callable[[str], bool] = os.path.isfile,
    override: Optional[FontPaths] = None,
) -> FontPaths:
    """Return the first candidate pair present on disk, or empty paths.

    Args:
        platform: host identifier as in ``sys.platform`` (defaults to the current one)
        candidates: per-platform ordered candidate table (defaults to DEFAULT_FONT_CANDIDATES)
        exists: filesystem existence check, injectable for tests
        override: explicit pair tried before the platform candidates
    """
    table = DEFAULT_FONT_CANDIDATES if candidates is None else candidates
    ordered = list(table.get(_platform_key(platform or sys.platform), ()))
    if override is not None and override.available:
        ordered.insert(0, override)
    for paths in ordered:
        try:
            if exists(paths.regular) and exists(paths.bold):
                return paths
        except OSError as exc:
            LOGGER.warning("Font lookup failed for %s: %s", paths, exc)
    return FontPaths()


@lru_cache(maxsize=1)
def get_font_paths() -> FontPaths:
    """Process-wide font resolution (the platform does not change at runtime)."""
    settings = get_settings()
    override = None
    if settings.PDF_FONT_REGULAR and settings.PDF_FONT_BOLD:
        override = FontPaths(settings.PDF_FONT_REGULAR, settings.PDF_FONT_BOLD)
    paths = resolve_font_paths(override=override)
    if not paths.available:
        LOGGER.warning(
            "No Cyrillic-capable font found for platform %s; using built-in Helvetica", sys.platform)
    return paths


@lru_cache(maxsize=1)
def register_fonts() -> tuple[str, str]:
    """Register the resolved TrueType pair with ReportLab and return (regular, bold) face names."""
    paths = get_font_paths()
    if not paths.available:
        return FALLBACK_FONTS
    try:
        registered = set(pdfmetrics.getRegisteredFontNames())
        if REGULAR_FONT_NAME not in registered:
            pdfmetrics.registerFont(TTFont(REGULAR_FONT_NAME, paths.regular))
        if BOLD_FONT_NAME not in registered:
            pdfmetrics.registerFont(TTFont(BOLD_FONT_NAME, paths.bold))
    except (TTFError, OSError) as exc:
        LOGGER.error("Font registration failed (%s); using built-in Helvetica", exc)
        return FALLBACK_FONTS
    LOGGER.info("Registered PDF fonts regular=%s bold=%s", paths.regular, paths.bold)
    return REGULAR_FONT_NAME, BOLD_FONT_NAME


__all__ = [
    "FontPaths",
    "DEFAULT_FONT_CANDIDATES",
    "resolve_font_paths",
    "get_font_paths",
    "register_fonts",
]
