"""LineBuffer - single-line text buffer with cursor and word navigation."""

from __future__ import annotations

from typing import Literal

from skillmgr.prompt import clipboard
from skillmgr.prompt.keys import KeyEvent
from skillmgr.prompt.utils import is_whitespace_char

EditResult = Literal["modified", "cursor", "none"]


def normalize_single_line(text: str) -> str:
    """Replace every CR and LF with a space."""
    return text.replace("\r", " ").replace("\n", " ")


class LineBuffer:
    """Text content plus a cursor offset, ``0 <= cursor <= len(content)``.

    Word boundaries are whitespace-delimited, like a Unix shell: moving back
    skips whitespace and then the word before it, moving forward skips the
    current word and then the whitespace after it.
    """

    def __init__(self, content: str = "") -> None:
        self._content = content
        self._cursor = len(content)

    @property
    def content(self) -> str:
        return self._content

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._content)

    def __repr__(self) -> str:
        return f"LineBuffer(content={self._content!r}, cursor={self._cursor})"

    def set_content(self, content: str) -> None:
        """Replace the content and move the cursor to the end."""
        self._content = content
        self._cursor = len(content)

    # -- character operations ----------------------------------------------

    def insert(self, text: str) -> EditResult:
        if not text:
            return "none"
        self._content = self._content[: self._cursor] + text + self._content[self._cursor :]
        self._cursor += len(text)
        return "modified"

    def delete_back(self) -> EditResult:
        if self._cursor == 0:
            return "none"
        self._content = self._content[: self._cursor - 1] + self._content[self._cursor :]
        self._cursor -= 1
        return "modified"

    def delete_forward(self) -> EditResult:
        if self._cursor >= len(self._content):
            return "none"
        self._content = self._content[: self._cursor] + self._content[self._cursor + 1 :]
        return "modified"

    # -- cursor movement ---------------------------------------------------

    def move_left(self) -> EditResult:
        if self._cursor == 0:
            return "none"
        self._cursor -= 1
        return "cursor"

    def move_right(self) -> EditResult:
        if self._cursor >= len(self._content):
            return "none"
        self._cursor += 1
        return "cursor"

    def move_to_start(self) -> EditResult:
        self._cursor = 0
        return "cursor"

    def move_to_end(self) -> EditResult:
        self._cursor = len(self._content)
        return "cursor"

    # -- word navigation ---------------------------------------------------

    def find_prev_word_boundary(self) -> int:
        pos = self._cursor
        while pos > 0 and is_whitespace_char(self._content[pos - 1]):
            pos -= 1
        while pos > 0 and not is_whitespace_char(self._content[pos - 1]):
            pos -= 1
        return pos

    def find_next_word_boundary(self) -> int:
        pos = self._cursor
        length = len(self._content)
        while pos < length and not is_whitespace_char(self._content[pos]):
            pos += 1
        while pos < length and is_whitespace_char(self._content[pos]):
            pos += 1
        return pos

    def move_to_prev_word(self) -> EditResult:
        self._cursor = self.find_prev_word_boundary()
        return "cursor"

    def move_to_next_word(self) -> EditResult:
        self._cursor = self.find_next_word_boundary()
        return "cursor"

    # -- word / line deletion ----------------------------------------------

    def delete_word_back(self) -> EditResult:
        start = self.find_prev_word_boundary()
        if start >= self._cursor:
            return "none"
        self._content = self._content[:start] + self._content[self._cursor :]
        self._cursor = start
        return "modified"

    def delete_word_forward(self) -> EditResult:
        end = self.find_next_word_boundary()
        if end <= self._cursor:
            return "none"
        self._content = self._content[: self._cursor] + self._content[end:]
        return "modified"

    def clear_line(self) -> EditResult:
        self._content = ""
        self._cursor = 0
        return "modified"

    def kill_to_end(self) -> EditResult:
        if self._cursor >= len(self._content):
            return "none"
        self._content = self._content[: self._cursor]
        return "modified"

    # -- clipboard ---------------------------------------------------------

    def insert_paste(self, text: str) -> EditResult:
        """Insert pasted text with line breaks flattened to spaces."""
        return self.insert(normalize_single_line(text))

    def copy_to_clipboard(self) -> EditResult:
        if self._content:
            clipboard.write_clipboard(self._content)
        return "none"

    def paste_from_clipboard(self) -> EditResult:
        text = clipboard.read_clipboard()
        if not text:
            return "none"
        return self.insert_paste(text)

    # -- key dispatch ------------------------------------------------------

    def apply(self, event: KeyEvent) -> EditResult | None:
        """Perform the edit bound to *event*.

        Returns ``None`` when the key is not an editing key.
        """
        if event.is_printable:
            return self.insert(event.char or "")

        if event.kind != "named":
            return None

        handler = _EDIT_ACTIONS.get(event.name or "")
        if handler is None:
            return None
        return handler(self)


_EDIT_ACTIONS = {
    "left": LineBuffer.move_left,
    "right": LineBuffer.move_right,
    "wordLeft": LineBuffer.move_to_prev_word,
    "wordRight": LineBuffer.move_to_next_word,
    "home": LineBuffer.move_to_start,
    "ctrlA": LineBuffer.move_to_start,
    "end": LineBuffer.move_to_end,
    "ctrlE": LineBuffer.move_to_end,
    "ctrlU": LineBuffer.clear_line,
    "ctrlK": LineBuffer.kill_to_end,
    "wordBackspace": LineBuffer.delete_word_back,
    "wordDelete": LineBuffer.delete_word_forward,
    "backspace": LineBuffer.delete_back,
    "delete": LineBuffer.delete_forward,
    "space": lambda buf: buf.insert(" "),
    "copy": LineBuffer.copy_to_clipboard,
    "paste": LineBuffer.paste_from_clipboard,
}
