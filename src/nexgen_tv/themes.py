"""Colour themes bundled with NexGen TV."""
from __future__ import annotations

from typing import Mapping

from textual.theme import Theme

__all__ = [
    "CUSTOM_THEMES",
    "DEFAULT_THEME_NAME",
]

# Slate greys with a blue accent.
_GRAY_900 = "#111827"
_GRAY_800 = "#1f2937"
_GRAY_700 = "#374151"
_GRAY_400 = "#9ca3af"
_GRAY_100 = "#f3f4f6"
_GRAY_50 = "#f9fafb"
_BLUE_400 = "#60a5fa"
_BLUE_600 = "#2563eb"
_RED_400 = "#f87171"
_AMBER_400 = "#fbbf24"
_GREEN_500 = "#22c55e"
_SKY_300 = "#7dd3fc"

_NEXGEN_DARK = Theme(
    "nexgen-dark",
    primary=_BLUE_400,
    secondary=_SKY_300,
    warning=_AMBER_400,
    error=_RED_400,
    success=_GREEN_500,
    accent=_BLUE_600,
    foreground=_GRAY_100,
    background=_GRAY_900,
    surface=_GRAY_800,
    panel=_GRAY_700,
    dark=True,
)

_NEXGEN_LIGHT = Theme(
    "nexgen-light",
    primary=_BLUE_600,
    secondary=_BLUE_400,
    warning=_AMBER_400,
    error=_RED_400,
    success=_GREEN_500,
    accent=_BLUE_400,
    foreground=_GRAY_800,
    background=_GRAY_50,
    surface=_GRAY_100,
    panel=_GRAY_400,
    dark=False,
)

CUSTOM_THEMES: Mapping[str, Theme] = {
    _NEXGEN_DARK.name: _NEXGEN_DARK,
    _NEXGEN_LIGHT.name: _NEXGEN_LIGHT,
}
"""Themes bundled with the application keyed by their names."""

DEFAULT_THEME_NAME = _NEXGEN_DARK.name
