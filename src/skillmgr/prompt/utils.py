"""Terminal text measurement: visible widths and column truncation.

Widths are measured per grapheme cluster so that emoji and East Asian wide
characters count as two columns and combining marks count as zero.
"""

from __future__ import annotations

import re
import unicodedata

import grapheme
import wcwidth as _wcwidth

# ---------------------------------------------------------------------------
# ANSI stripping
# ---------------------------------------------------------------------------

# CSI (SGR, cursor movement, erase) and OSC terminated by BEL or ST
_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from *text*."""
    return _ANSI_RE.sub("", text)


# ---------------------------------------------------------------------------
# Width cache
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _remember(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------


def grapheme_width(cluster: str) -> int:
    """Display width of a single grapheme cluster (0, 1 or 2)."""
    if not cluster:
        return 0

    if len(cluster) == 1:
        cp = ord(cluster)
        if cp < 0x20 or 0x7F <= cp <= 0x9F:
            return 0
        return max(_wcwidth.wcwidth(cluster), 0)

    for ch in cluster:
        cp = ord(ch)
        # VS16, ZWJ, skin tones, regional indicators
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = cluster[0]
    if ord(first) >= 0x1F000:
        return 2
    if unicodedata.category(first) in ("Mn", "Me", "Mc", "Cf"):
        return 0
    return max(_wcwidth.wcwidth(first), 0)


def visible_width(text: str) -> int:
    """Number of terminal columns *text* occupies, ignoring ANSI codes."""
    if not text:
        return 0

    stripped = strip_ansi(text)
    if stripped.isascii() and stripped.isprintable():
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = sum(grapheme_width(g) for g in grapheme.graphemes(stripped))
    return _remember(stripped, total)


# ---------------------------------------------------------------------------
# Truncation
# ---------------------------------------------------------------------------


def _take_columns(text: str, max_cols: int) -> str:
    """Longest prefix of *text* fitting in *max_cols*, keeping ANSI codes."""
    parts: list[str] = []
    cols = 0
    pos = 0
    for match in _ANSI_RE.finditer(text):
        plain = text[pos : match.start()]
        taken, cols, full = _take_plain(plain, max_cols, cols)
        parts.append(taken)
        if not full:
            return "".join(parts)
        parts.append(match.group())
        pos = match.end()
    taken, cols, _ = _take_plain(text[pos:], max_cols, cols)
    parts.append(taken)
    return "".join(parts)


def _take_plain(plain: str, max_cols: int, cols: int) -> tuple[str, int, bool]:
    out: list[str] = []
    for cluster in grapheme.graphemes(plain):
        w = grapheme_width(cluster)
        if cols + w > max_cols:
            return "".join(out), cols, False
        out.append(cluster)
        cols += w
    return "".join(out), cols, True


def truncate_to_width(text: str, max_width: int, ellipsis: str = "...") -> str:
    """Cut *text* to at most *max_width* columns, ending with *ellipsis*.

    Text that already fits is returned unchanged.
    """
    if max_width <= 0:
        return ""
    if visible_width(text) <= max_width:
        return text

    target = max_width - visible_width(ellipsis)
    if target <= 0:
        return _take_columns(ellipsis, max_width)
    return _take_columns(text, target) + ellipsis


def pad_to_width(text: str, width: int) -> str:
    """Right-pad *text* with spaces to *width* visible columns."""
    return text + " " * max(0, width - visible_width(text))


# ---------------------------------------------------------------------------
# Character classification
# ---------------------------------------------------------------------------


def is_whitespace_char(char: str) -> bool:
    return char in (" ", "\t", "\n", "\r", "\f", "\v")
