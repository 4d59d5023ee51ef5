"""In-memory ``Terminal`` double for controller and prompt tests.

Writes are captured for assertions, raw-mode switches are recorded instead
of performed, and reads are injected with ``simulate_input``.
"""

from __future__ import annotations

from typing import Callable


class VirtualTerminal:
    """Records output, mode changes and cursor visibility.

    Parameters
    ----------
    columns:
        Width reported by ``columns``.
    interactive:
        Value reported by ``is_interactive``.
    raw_mode_fails:
        When set, ``enable_raw_mode`` raises this exception.
    lines:
        Returned one by one from ``read_line``; ``""`` once exhausted.
    """

    def __init__(
        self,
        columns: int = 80,
        *,
        interactive: bool = True,
        raw_mode_fails: Exception | None = None,
        lines: list[str] | None = None,
    ) -> None:
        self._columns = columns
        self._interactive = interactive
        self._raw_mode_fails = raw_mode_fails
        self._buffer: list[str] = []
        self._input_handler: Callable[[str], None] | None = None
        self._lines = list(lines or [])
        self.raw = False
        self.mode_changes: list[str] = []
        self.cursor_visible = True
        self.on_reading_started: Callable[[], None] | None = None

    # -- Terminal protocol: properties --------------------------------------

    @property
    def is_interactive(self) -> bool:
        return self._interactive

    @property
    def columns(self) -> int:
        return self._columns

    @columns.setter
    def columns(self, value: int) -> None:
        self._columns = value

    # -- Terminal protocol: modes and input ---------------------------------

    def enable_raw_mode(self) -> None:
        if self._raw_mode_fails is not None:
            raise self._raw_mode_fails
        self.raw = True
        self.mode_changes.append("raw")

    def restore_mode(self) -> None:
        self.raw = False
        self.mode_changes.append("restore")

    def start_reading(self, on_input: Callable[[str], None]) -> None:
        self._input_handler = on_input
        if self.on_reading_started is not None:
            self.on_reading_started()

    def stop_reading(self) -> None:
        self._input_handler = None

    def read_line(self) -> str:
        if not self._lines:
            return ""
        return self._lines.pop(0)

    # -- Terminal protocol: output ------------------------------------------

    def write(self, data: str) -> None:
        self._buffer.append(data)

    def move_by(self, lines: int) -> None:
        if lines < 0:
            self.write(f"\x1b[{-lines}A")
        elif lines > 0:
            self.write(f"\x1b[{lines}B")

    def move_to_column(self, column: int) -> None:
        self.write(f"\x1b[{column}G")

    def hide_cursor(self) -> None:
        self.cursor_visible = False
        self.write("\x1b[?25l")

    def show_cursor(self) -> None:
        self.cursor_visible = True
        self.write("\x1b[?25h")

    def clear_line(self) -> None:
        self.write("\r\x1b[K")

    def clear_to_end(self) -> None:
        self.write("\x1b[0J")

    # -- Test helpers -------------------------------------------------------

    @property
    def output(self) -> str:
        """All writes so far, concatenated."""
        return "".join(self._buffer)

    @property
    def reading(self) -> bool:
        return self._input_handler is not None

    def clear_buffer(self) -> None:
        self._buffer.clear()

    def simulate_input(self, data: str) -> None:
        """Feed *data* into the registered input handler."""
        if self._input_handler is None:
            raise RuntimeError("No input handler registered -- call start_reading() first")
        self._input_handler(data)
