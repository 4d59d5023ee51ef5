"""Rendering strategies for the prompt and the selector viewport.

A theme is a bundle of styling callables. The plain theme is used in tests
and for ``NO_COLOR`` terminals; the ANSI theme reproduces the coloured
picker.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol


class SelectorTheme(Protocol):
    selected_prefix: Callable[[str], str]
    selected_text: Callable[[str], str]
    item_text: Callable[[str], str]
    description: Callable[[str], str]
    scroll_info: Callable[[str], str]
    no_match: Callable[[str], str]
    separator: Callable[[str], str]
    hint_label: Callable[[str], str]
    muted: Callable[[str], str]
    warning: Callable[[str], str]


def _identity(text: str) -> str:
    return text


def _sgr(code: str) -> Callable[[str], str]:
    def style(text: str) -> str:
        return f"\x1b[{code}m{text}\x1b[0m"

    return style


@dataclass(frozen=True)
class StyleTheme:
    """A ``SelectorTheme`` built from plain callables."""

    selected_prefix: Callable[[str], str] = _identity
    selected_text: Callable[[str], str] = _identity
    item_text: Callable[[str], str] = _identity
    description: Callable[[str], str] = _identity
    scroll_info: Callable[[str], str] = _identity
    no_match: Callable[[str], str] = _identity
    separator: Callable[[str], str] = _identity
    hint_label: Callable[[str], str] = _identity
    muted: Callable[[str], str] = _identity
    warning: Callable[[str], str] = _identity


PLAIN_THEME = StyleTheme()

_gray = _sgr("90")

ANSI_THEME = StyleTheme(
    selected_prefix=_sgr("35"),
    selected_text=_sgr("36"),
    description=_gray,
    scroll_info=_gray,
    no_match=_gray,
    separator=_gray,
    hint_label=_sgr("36"),
    muted=_gray,
    warning=_sgr("33"),
)

THEMES: dict[str, SelectorTheme] = {
    "plain": PLAIN_THEME,
    "ansi": ANSI_THEME,
}


def get_theme(name: str | None) -> SelectorTheme:
    """Look up a theme by name, falling back to the ANSI theme."""
    if name is None:
        return ANSI_THEME
    return THEMES.get(name.lower(), ANSI_THEME)
