"""Theme definitions bundled with the M3UPT TUI."""
from __future__ import annotations

from typing import Mapping

from textual.theme import Theme

__all__ = [
    "CUSTOM_THEMES",
    "DEFAULT_THEME_NAME",
]

# M3UPT brand green and a console-friendly dark surface.
_M3UPT_GREEN = "#79c000"
_M3UPT_DARK_GREEN = "#4f7d00"
_M3UPT_BACKGROUND = "#101010"
_M3UPT_SURFACE = "#202020"
_M3UPT_PANEL = "#151515"

# Solarized palette reference values.
_SOLARIZED_BASE03 = "#002b36"
_SOLARIZED_BASE02 = "#073642"
_SOLARIZED_BASE1 = "#93a1a1"
_SOLARIZED_BASE2 = "#eee8d5"
_SOLARIZED_YELLOW = "#b58900"
_SOLARIZED_RED = "#dc322f"
_SOLARIZED_MAGENTA = "#d33682"
_SOLARIZED_BLUE = "#268bd2"
_SOLARIZED_CYAN = "#2aa198"
_SOLARIZED_GREEN = "#859900"

_M3UPT = Theme(
    "m3upt",
    primary=_M3UPT_GREEN,
    secondary=_M3UPT_DARK_GREEN,
    warning="#e5c07b",
    error="#e06c75",
    success=_M3UPT_GREEN,
    accent=_M3UPT_GREEN,
    foreground="#e0e0e0",
    background=_M3UPT_BACKGROUND,
    surface=_M3UPT_SURFACE,
    panel=_M3UPT_PANEL,
    dark=True,
)

_SOLARIZED_DARK = Theme(
    "solarized-dark",
    primary=_SOLARIZED_BLUE,
    secondary=_SOLARIZED_CYAN,
    warning=_SOLARIZED_YELLOW,
    error=_SOLARIZED_RED,
    success=_SOLARIZED_GREEN,
    accent=_SOLARIZED_MAGENTA,
    foreground=_SOLARIZED_BASE1,
    background=_SOLARIZED_BASE03,
    surface=_SOLARIZED_BASE02,
    panel=_SOLARIZED_BASE02,
    boost=_SOLARIZED_BASE2,
    dark=True,
)

CUSTOM_THEMES: Mapping[str, Theme] = {
    _M3UPT.name: _M3UPT,
    _SOLARIZED_DARK.name: _SOLARIZED_DARK,
}
"""Themes bundled with the application keyed by their names."""

DEFAULT_THEME_NAME = _M3UPT.name
"""Theme applied when none is requested."""
