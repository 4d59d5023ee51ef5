"""Key decoding for raw terminal input.

Turns a chunk read from the terminal into a list of :class:`KeyEvent`
values. Named keys are looked up in a static table by exact sequence
equality; several sequences may map to one key name because terminal
emulators disagree on the encoding of modified keys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

KeyName = Literal[
    # Cursor movement
    "left",
    "right",
    "up",
    "down",
    "wordLeft",
    "wordRight",
    "home",
    "end",
    "ctrlA",
    "ctrlE",
    # Deletion
    "backspace",
    "wordBackspace",
    "delete",
    "wordDelete",
    "ctrlU",
    "ctrlK",
    # Control
    "tab",
    "space",
    "enter",
    "escape",
    "ctrlC",
    # Bracketed paste envelope
    "pasteStart",
    "pasteEnd",
    # Clipboard
    "copy",
    "paste",
]

KeyKind = Literal["printable", "named", "unknown"]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

# Named key -> every raw sequence known to produce it
KEY_SEQUENCES: dict[KeyName, list[str]] = {
    "left": ["\x1b[D", "\x1bOD"],
    "right": ["\x1b[C", "\x1bOC"],
    "up": ["\x1b[A", "\x1bOA"],
    "down": ["\x1b[B", "\x1bOB"],
    # Ctrl+Arrow and Alt+Arrow
    "wordLeft": ["\x1b[1;5D", "\x1b[5D", "\x1b[1;3D", "\x1bb"],
    "wordRight": ["\x1b[1;5C", "\x1b[5C", "\x1b[1;3C", "\x1bf"],
    "home": ["\x1b[H", "\x1b[1~", "\x1bOH"],
    "end": ["\x1b[F", "\x1b[4~", "\x1bOF"],
    "ctrlA": ["\x01"],
    "ctrlE": ["\x05"],
    "backspace": ["\x7f"],
    # Ctrl+Backspace, Alt+Backspace, Ctrl+W, Ctrl+_
    "wordBackspace": ["\x08", "\x1b\x7f", "\x17", "\x1f"],
    "delete": ["\x1b[3~"],
    # Ctrl+Delete, Alt+Delete, Alt+D
    "wordDelete": ["\x1b[3;5~", "\x1b[3;3~", "\x1bd"],
    "ctrlU": ["\x15"],
    "ctrlK": ["\x0b"],
    "tab": ["\t"],
    "space": [" "],
    "enter": ["\r", "\n"],
    "escape": ["\x1b"],
    "ctrlC": ["\x03"],
    "pasteStart": [BRACKETED_PASTE_START],
    "pasteEnd": [BRACKETED_PASTE_END],
    # Ctrl+Insert, Ctrl+Shift+C (kitty)
    "copy": ["\x1b[2;5~", "\x1b[2^", "\x1b[99;6u", "\x1b[67;6u"],
    # Shift+Insert, Ctrl+Shift+V (kitty)
    "paste": ["\x1b[2;2~", "\x1b[2$", "\x1b[118;6u", "\x1b[86;6u"],
}


def _build_lookup(table: dict[KeyName, list[str]]) -> dict[str, KeyName]:
    lookup: dict[str, KeyName] = {}
    for name, sequences in table.items():
        for sequence in sequences:
            if sequence in lookup:
                raise ValueError(
                    f"Sequence {sequence!r} bound to both {lookup[sequence]!r} and {name!r}"
                )
            lookup[sequence] = name
    return lookup


_SEQUENCE_TO_KEY: dict[str, KeyName] = _build_lookup(KEY_SEQUENCES)


# ---------------------------------------------------------------------------
# KeyEvent
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyEvent:
    """One decoded key.

    ``kind`` is ``"printable"`` (``char`` is set), ``"named"`` (``name`` is
    set) or ``"unknown"``. ``raw`` always holds the input it came from.
    """

    kind: KeyKind
    raw: str
    char: str | None = None
    name: KeyName | None = None

    @classmethod
    def printable(cls, char: str) -> KeyEvent:
        return cls(kind="printable", raw=char, char=char)

    @classmethod
    def named(cls, name: KeyName, raw: str) -> KeyEvent:
        return cls(kind="named", raw=raw, name=name)

    @classmethod
    def unknown(cls, raw: str) -> KeyEvent:
        return cls(kind="unknown", raw=raw)

    def is_key(self, name: KeyName) -> bool:
        return self.kind == "named" and self.name == name

    @property
    def is_printable(self) -> bool:
        return self.kind == "printable"

    @property
    def is_unknown(self) -> bool:
        return self.kind == "unknown"


def is_printable_ascii(data: str) -> bool:
    return len(data) == 1 and " " <= data <= "~"


# ---------------------------------------------------------------------------
# Sequence completeness (splitting multi-key chunks)
# ---------------------------------------------------------------------------


def _sequence_status(data: str) -> str:
    """Return 'complete', 'incomplete' or 'not-escape' for *data*."""
    if not data.startswith(ESC):
        return "not-escape"

    if len(data) == 1:
        return "incomplete"

    after_esc = data[1:]

    # CSI: ESC [ params final-byte
    if after_esc.startswith("["):
        if len(data) < 3:
            return "incomplete"
        if 0x40 <= ord(data[-1]) <= 0x7E:
            return "complete"
        # Some terminals end modified Insert with ^ or $ (rxvt)
        if data[-1] in ("^", "$") and len(data) > 3:
            return "complete"
        return "incomplete"

    # OSC, DCS, APC: terminated by ST or BEL
    if after_esc[0] in ("]", "P", "_"):
        if data.endswith(f"{ESC}\\") or data.endswith("\x07"):
            return "complete"
        return "incomplete"

    # SS3: ESC O <char>
    if after_esc.startswith("O"):
        return "complete" if len(after_esc) >= 2 else "incomplete"

    # Meta key: ESC <char>
    return "complete"


def _sequence_length(data: str) -> int | None:
    """Length of the escape sequence at the start of *data*.

    Returns ``None`` if the sequence does not complete within *data*.
    """
    string_sequence = len(data) > 1 and data[1] in ("]", "P", "_")
    end = 2
    while end <= len(data):
        candidate = data[:end]
        # A new ESC inside an unfinished key sequence starts the next key
        if candidate[-1] == ESC and not string_sequence:
            return end - 1
        if _sequence_status(candidate) == "complete":
            return end
        end += 1
    return None


def split_sequences(data: str) -> list[str]:
    """Split *data* into complete escape sequences and single characters.

    A trailing escape sequence that never completes is returned as-is as
    the last element.
    """
    pieces: list[str] = []
    pos = 0

    while pos < len(data):
        if data[pos] != ESC:
            pieces.append(data[pos])
            pos += 1
            continue

        length = _sequence_length(data[pos:])
        if length is None:
            pieces.append(data[pos:])
            break

        pieces.append(data[pos : pos + length])
        pos += length

    return pieces


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


def lookup_key(sequence: str) -> KeyName | None:
    """Return the key name bound to *sequence*, or ``None``."""
    return _SEQUENCE_TO_KEY.get(sequence)


class KeyDecoder:
    """Decodes raw terminal reads into key events.

    Matching order:

    1. A chunk containing the bracketed-paste start marker anywhere is a
       single ``pasteStart`` event carrying the whole chunk.
    2. The whole chunk is looked up in the key table.
    3. A single printable ASCII character is a printable event.
    4. Otherwise the chunk is split into complete sequences and each piece
       goes through steps 2-3, falling back to an unknown event.

    An escape sequence split across two reads is not reassembled; each half
    decodes to an unknown event.
    """

    def __init__(self, table: dict[KeyName, list[str]] | None = None) -> None:
        self._lookup = _build_lookup(table) if table is not None else _SEQUENCE_TO_KEY

    def decode(self, chunk: str | bytes) -> list[KeyEvent]:
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")

        if not chunk:
            return []

        if BRACKETED_PASTE_START in chunk:
            return [KeyEvent.named("pasteStart", chunk)]

        if chunk in self._lookup or is_printable_ascii(chunk):
            return [self._decode_piece(chunk)]

        events = [self._decode_piece(piece) for piece in split_sequences(chunk)]
        for event in events:
            if event.is_unknown:
                logger.debug("Dropping unrecognised input sequence %r", event.raw)
        return events

    def _decode_piece(self, piece: str) -> KeyEvent:
        name = self._lookup.get(piece)
        if name is not None:
            return KeyEvent.named(name, piece)
        if is_printable_ascii(piece):
            return KeyEvent.printable(piece)
        return KeyEvent.unknown(piece)


_default_decoder = KeyDecoder()


def decode(chunk: str | bytes) -> list[KeyEvent]:
    """Decode *chunk* with the default key table."""
    return _default_decoder.decode(chunk)
