"""Terminal abstraction and process-wide raw-mode ownership.

Provides a ``Terminal`` protocol, a concrete ``ProcessTerminal`` backed by
the process's stdin/stdout, and ``TerminalModeGuard`` which makes raw mode
an exclusive resource: only one owner may hold it at a time.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import sys
import termios
import tty
from contextlib import contextmanager
from typing import Callable, Iterator, Protocol, TextIO

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
_BRACKETED_PASTE_DISABLE = "\x1b[?2004l"

_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_CLEAR_LINE = "\r\x1b[K"
_CLEAR_TO_END = "\x1b[0J"
_CURSOR_UP_FMT = "\x1b[{}A"
_CURSOR_DOWN_FMT = "\x1b[{}B"
_CURSOR_COLUMN_FMT = "\x1b[{}G"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class PromptError(Exception):
    """Base class for prompt engine errors."""


class RawModeUnavailableError(PromptError):
    """The terminal cannot be switched to raw mode (e.g. piped stdin)."""


class RawModeConflictError(PromptError):
    """Raw mode is already held by another owner."""

    def __init__(self, requested: str, holder: str) -> None:
        super().__init__(f"Raw mode requested by {requested!r} is held by {holder!r}")
        self.requested = requested
        self.holder = holder


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    @property
    def is_interactive(self) -> bool: ...

    @property
    def columns(self) -> int: ...

    def enable_raw_mode(self) -> None: ...

    def restore_mode(self) -> None: ...

    def start_reading(self, on_input: Callable[[str], None]) -> None: ...

    def stop_reading(self) -> None: ...

    def read_line(self) -> str: ...

    def write(self, data: str) -> None: ...

    def move_by(self, lines: int) -> None: ...

    def move_to_column(self, column: int) -> None: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...

    def clear_line(self) -> None: ...

    def clear_to_end(self) -> None: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal backed by ``sys.stdin``/``sys.stdout``.

    Raw mode goes through :mod:`tty` and :mod:`termios`; input is read with
    an asyncio reader on the stdin file descriptor, so :meth:`start_reading`
    must be called with a running event loop.
    """

    def __init__(
        self,
        *,
        bracketed_paste: bool = True,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._bracketed_paste = bracketed_paste
        self._original_termios: list | None = None
        self._input_handler: Callable[[str], None] | None = None
        self._reader_loop: asyncio.AbstractEventLoop | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    # -- properties ---------------------------------------------------------

    @property
    def is_interactive(self) -> bool:
        try:
            return self._stdin.isatty() and self._stdout.isatty()
        except (ValueError, AttributeError):
            return False

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(self._stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    # -- raw mode -----------------------------------------------------------

    def enable_raw_mode(self) -> None:
        """Save the tty attributes, then enter raw mode and bracketed paste."""
        try:
            fd = self._stdin.fileno()
            self._original_termios = termios.tcgetattr(fd)
            tty.setraw(fd)
        except (termios.error, OSError, ValueError) as exc:
            self._original_termios = None
            raise RawModeUnavailableError(str(exc)) from exc

        if self._bracketed_paste:
            self._raw_write(_BRACKETED_PASTE_ENABLE)

    def restore_mode(self) -> None:
        """Leave bracketed paste and restore the saved tty attributes."""
        if self._original_termios is None:
            return
        if self._bracketed_paste:
            self._raw_write(_BRACKETED_PASTE_DISABLE)
        try:
            termios.tcsetattr(self._stdin.fileno(), termios.TCSADRAIN, self._original_termios)
        except (termios.error, OSError, ValueError) as exc:
            logger.warning("Could not restore terminal attributes: %s", exc)
        self._original_termios = None

    # -- reading ------------------------------------------------------------

    def start_reading(self, on_input: Callable[[str], None]) -> None:
        if self._reader_loop is not None:
            raise RuntimeError("stdin reader already started")
        loop = asyncio.get_running_loop()
        self._input_handler = on_input
        loop.add_reader(self._stdin.fileno(), self._on_stdin_readable)
        self._reader_loop = loop

    def stop_reading(self) -> None:
        if self._reader_loop is None:
            return
        try:
            self._reader_loop.remove_reader(self._stdin.fileno())
        except (RuntimeError, ValueError):
            pass
        self._reader_loop = None
        self._input_handler = None
        self._decoder.reset()

    def _on_stdin_readable(self) -> None:
        try:
            raw = os.read(self._stdin.fileno(), 4096)
        except OSError:
            return

        if not raw:
            # EOF on a tty read (e.g. hangup)
            if self._input_handler is not None:
                self._input_handler("\x03")
            return

        data = self._decoder.decode(raw)
        if data and self._input_handler is not None:
            self._input_handler(data)

    def read_line(self) -> str:
        """Blocking cooked-mode line read; ``""`` at end of input."""
        return self._stdin.readline()

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        self._raw_write(data)

    def move_by(self, lines: int) -> None:
        """Move the cursor up (negative) or down (positive) by *lines*."""
        if lines < 0:
            self._raw_write(_CURSOR_UP_FMT.format(-lines))
        elif lines > 0:
            self._raw_write(_CURSOR_DOWN_FMT.format(lines))

    def move_to_column(self, column: int) -> None:
        """Move the cursor to 1-based *column* on the current line."""
        self._raw_write(_CURSOR_COLUMN_FMT.format(max(1, column)))

    def hide_cursor(self) -> None:
        self._raw_write(_HIDE_CURSOR)

    def show_cursor(self) -> None:
        self._raw_write(_SHOW_CURSOR)

    def clear_line(self) -> None:
        self._raw_write(_CLEAR_LINE)

    def clear_to_end(self) -> None:
        self._raw_write(_CLEAR_TO_END)

    def _raw_write(self, data: str) -> None:
        """Write directly to stdout, bypassing buffering."""
        try:
            self._stdout.write(data)
            self._stdout.flush()
        except OSError:
            pass


# ---------------------------------------------------------------------------
# Raw-mode ownership
# ---------------------------------------------------------------------------

# Process-wide: raw mode is a property of the controlling tty, not of any
# one Terminal object.
_raw_mode_owner: str | None = None


def raw_mode_owner() -> str | None:
    """Return the name of the current raw-mode owner, if any."""
    return _raw_mode_owner


class TerminalModeGuard:
    """Exclusive, scoped ownership of the terminal's raw mode.

    ``acquire`` enables raw mode and records the owner; a second acquire
    from anywhere in the process fails with :class:`RawModeConflictError`
    until ``release``. ``handoff`` passes ownership to a new owner without
    dropping the tty out of raw mode in between.
    """

    def __init__(self, terminal: Terminal) -> None:
        self._terminal = terminal
        self._owner: str | None = None

    @property
    def owner(self) -> str | None:
        return self._owner

    @property
    def held(self) -> bool:
        return self._owner is not None

    def acquire(self, owner: str) -> None:
        global _raw_mode_owner
        if _raw_mode_owner is not None:
            raise RawModeConflictError(owner, _raw_mode_owner)

        self._terminal.enable_raw_mode()
        _raw_mode_owner = owner
        self._owner = owner
        logger.debug("Raw mode acquired by %s", owner)

    def release(self) -> None:
        """Give up raw mode. Calling it when not held does nothing."""
        global _raw_mode_owner
        if self._owner is None:
            return
        previous = self._owner
        self._owner = None
        if _raw_mode_owner == previous:
            _raw_mode_owner = None
        self._terminal.restore_mode()
        logger.debug("Raw mode released by %s", previous)

    def handoff(self, owner: str) -> None:
        global _raw_mode_owner
        if self._owner is None:
            self.acquire(owner)
            return
        if _raw_mode_owner != self._owner:
            raise RawModeConflictError(owner, _raw_mode_owner or "<nobody>")
        logger.debug("Raw mode handed from %s to %s", self._owner, owner)
        _raw_mode_owner = owner
        self._owner = owner

    @contextmanager
    def hold(self, owner: str) -> Iterator[TerminalModeGuard]:
        """Hold raw mode for the duration of a ``with`` block."""
        self.acquire(owner)
        try:
            yield self
        finally:
            self.release()
