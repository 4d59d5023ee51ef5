"""SelectorEngine: filterable, scrollable item list for the pickers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from skillmgr.prompt.theme import PLAIN_THEME, SelectorTheme
from skillmgr.prompt.utils import pad_to_width, truncate_to_width

NAME_COLUMN_WIDTH = 16
DEFAULT_MAX_VISIBLE = 8


def _normalize_to_single_line(text: str) -> str:
    return re.sub(r"[\r\n]+", " ", text).strip()


@dataclass(frozen=True)
class SelectorItem:
    name: str
    description: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def needs_skill_arg(self) -> bool:
        return bool(self.metadata.get("needs_skill_arg"))

    @property
    def needs_input(self) -> bool:
        return bool(self.metadata.get("needs_input"))


def skill_items(skills: Iterable[Mapping[str, Any]]) -> list[SelectorItem]:
    """Turn skill records into picker items.

    Each record needs a ``name`` (or ``short_name``); ``type`` and
    ``description`` are optional. The description column reads
    ``[type] description``.
    """
    items: list[SelectorItem] = []
    for skill in skills:
        name = skill.get("short_name") or skill.get("name")
        if not name:
            continue
        skill_type = skill.get("type") or "skill"
        description = f"[{skill_type}] {skill.get('description') or ''}".strip()
        items.append(
            SelectorItem(
                name=str(name),
                description=description,
                metadata={"type": skill_type, "description": skill.get("description") or ""},
            )
        )
    return items


class SelectorEngine:
    """Substring-filtered list with a scrolling viewport.

    Invariants held after every operation, with ``n`` filtered items and
    ``m = max_visible``::

        scroll_offset <= selected_index < scroll_offset + m
        0 <= scroll_offset <= max(0, n - m)
    """

    def __init__(
        self,
        items: Sequence[SelectorItem],
        max_visible: int = DEFAULT_MAX_VISIBLE,
        theme: SelectorTheme = PLAIN_THEME,
        empty_text: str = "No matching commands",
    ) -> None:
        if max_visible < 1:
            raise ValueError("max_visible must be at least 1")
        self._items = list(items)
        self._filtered: list[SelectorItem] = list(self._items)
        self._filter = ""
        self._selected_index = 0
        self._scroll_offset = 0
        self._max_visible = max_visible
        self._theme = theme
        self._empty_text = empty_text

    # -- state -------------------------------------------------------------

    @property
    def items(self) -> list[SelectorItem]:
        return list(self._items)

    @property
    def filtered_items(self) -> list[SelectorItem]:
        return list(self._filtered)

    @property
    def filter_text(self) -> str:
        return self._filter

    @property
    def selected_index(self) -> int:
        return self._selected_index

    @property
    def scroll_offset(self) -> int:
        return self._scroll_offset

    @property
    def max_visible(self) -> int:
        return self._max_visible

    # -- operations --------------------------------------------------------

    def update_filter(self, text: str) -> None:
        """Keep items whose name or description contains *text*, any case.

        Resets the selection to the first match.
        """
        self._filter = text
        needle = text.lower()
        self._filtered = [
            item
            for item in self._items
            if needle in item.name.lower() or needle in item.description.lower()
        ]
        self._selected_index = 0
        self._scroll_offset = 0

    def move_up(self) -> bool:
        if self._selected_index == 0:
            return False
        self._selected_index -= 1
        if self._selected_index < self._scroll_offset:
            self._scroll_offset = self._selected_index
        return True

    def move_down(self) -> bool:
        if self._selected_index >= len(self._filtered) - 1:
            return False
        self._selected_index += 1
        if self._selected_index >= self._scroll_offset + self._max_visible:
            self._scroll_offset = self._selected_index - self._max_visible + 1
        return True

    def get_selected(self) -> SelectorItem | None:
        if self._selected_index < len(self._filtered):
            return self._filtered[self._selected_index]
        return None

    # -- rendering ---------------------------------------------------------

    def _more_below(self) -> int:
        return len(self._filtered) - self._scroll_offset - self._max_visible

    def rendered_line_count(self) -> int:
        """Number of lines :meth:`render` returns for the current state."""
        if not self._filtered:
            return 1
        count = min(len(self._filtered) - self._scroll_offset, self._max_visible)
        if self._scroll_offset > 0:
            count += 1
        if self._more_below() > 0:
            count += 1
        return count

    def render(self, width: int | None = None) -> list[str]:
        theme = self._theme
        lines: list[str] = []

        if not self._filtered:
            lines.append(theme.no_match(f"  {self._empty_text}"))
            return self._fit(lines, width)

        if self._scroll_offset > 0:
            lines.append(theme.scroll_info(f"  ↑ {self._scroll_offset} more"))

        end = self._scroll_offset + self._max_visible
        for index in range(self._scroll_offset, min(end, len(self._filtered))):
            item = self._filtered[index]
            description = theme.description(_normalize_to_single_line(item.description))
            if index == self._selected_index:
                name = theme.selected_text(pad_to_width(item.name, NAME_COLUMN_WIDTH))
                lines.append(f" {theme.selected_prefix('❯')} {name}{description}")
            else:
                name = theme.item_text(pad_to_width(item.name, NAME_COLUMN_WIDTH))
                lines.append(f"   {name}{description}")

        remaining = self._more_below()
        if remaining > 0:
            lines.append(theme.scroll_info(f"  ↓ {remaining} more"))

        return self._fit(lines, width)

    @staticmethod
    def _fit(lines: list[str], width: int | None) -> list[str]:
        # A wrapped line would throw off the erase/redraw line count
        if width is None:
            return lines
        fitted: list[str] = []
        for line in lines:
            cut = truncate_to_width(line, width, "")
            if cut != line and "\x1b[" in line:
                cut += "\x1b[0m"
            fitted.append(cut)
        return fitted
