"""Painters for the edited line, the selector viewport and the hint block.

Everything here only writes to a :class:`~skillmgr.prompt.terminal.Terminal`;
no state transitions happen in this module.
"""

from __future__ import annotations

from skillmgr.prompt.line_buffer import LineBuffer
from skillmgr.prompt.selector import SelectorEngine
from skillmgr.prompt.terminal import Terminal
from skillmgr.prompt.theme import SelectorTheme
from skillmgr.prompt.utils import visible_width

HINT_RULE_WIDTH = 50

_INPUT_GUIDANCE = {
    "refine": "Describe what to improve or requirements to meet",
    "update": "Specify section name and new content",
}

_EXEC_GUIDANCE = {
    "code": "Type your request in natural language",
    "interactive": "Provide any initial context or press Enter to start",
}


def paint_line(terminal: Terminal, prompt: str, buffer: LineBuffer) -> None:
    """Redraw the current line and park the cursor at the buffer cursor."""
    terminal.clear_line()
    terminal.write(prompt + buffer.content)
    terminal.move_to_column(visible_width(prompt + buffer.content[: buffer.cursor]) + 1)


def write_warning(terminal: Terminal, theme: SelectorTheme, message: str) -> None:
    terminal.write(theme.warning(message) + "\r\n")


class SelectorView:
    """Draws a picker below its prompt line and erases it again.

    The view remembers the tallest frame it has drawn so that shrinking the
    list (by filtering) never leaves stale lines behind.
    """

    def __init__(
        self,
        terminal: Terminal,
        engine: SelectorEngine,
        theme: SelectorTheme,
        prompt: str,
        *,
        separator: bool = False,
    ) -> None:
        self._terminal = terminal
        self._engine = engine
        self._theme = theme
        self._prompt = prompt
        self._separator = separator
        self._max_rendered_lines = 0

    @property
    def max_rendered_lines(self) -> int:
        return self._max_rendered_lines

    def open(self) -> None:
        self._terminal.hide_cursor()
        self.render()

    def close(self) -> None:
        self.clear()
        self._terminal.show_cursor()

    def clear(self) -> None:
        term = self._terminal
        if self._max_rendered_lines == 0:
            term.clear_line()
            return
        for _ in range(self._max_rendered_lines):
            term.write("\n")
            term.clear_line()
        term.move_by(-self._max_rendered_lines)
        term.clear_line()

    def render(self) -> None:
        term = self._terminal
        width = term.columns
        self.clear()

        filter_text = self._engine.filter_text
        term.write(self._prompt + filter_text)

        total = 0
        if self._separator:
            term.write("\n" + self._theme.separator("─" * width))
            total += 1

        for line in self._engine.render(width=width):
            term.write("\n")
            term.clear_line()
            term.write(line)
            total += 1

        self._max_rendered_lines = max(self._max_rendered_lines, total)
        term.move_by(-total)
        term.move_to_column(visible_width(self._prompt + filter_text) + 1)


def hint_block(
    theme: SelectorTheme,
    command: str,
    skill_name: str,
    skill_type: str,
    description: str = "",
) -> list[str]:
    """Lines shown above the free-text line of a skill-argument prompt."""
    rule = theme.separator("─" * HINT_RULE_WIDTH)
    lines = [rule, f"{theme.hint_label('  Skill:')} {skill_name} {theme.muted(f'[{skill_type}]')}"]
    if description:
        lines.append(f"{theme.hint_label('  About:')} {description}")

    name = command.lstrip("/")
    if name == "exec":
        guidance = _EXEC_GUIDANCE.get(skill_type, "Type your input or press Enter to execute")
    else:
        guidance = _INPUT_GUIDANCE.get(name, "")
    if guidance:
        lines.append(f"{theme.hint_label('  Input:')} {guidance}")

    lines.append(theme.muted("  Ctrl+C to cancel"))
    lines.append(rule)
    return lines
