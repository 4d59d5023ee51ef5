"""PasteAggregator reassembles bracketed-paste payloads.

Terminals with bracketed paste enabled wrap pasted text in
``ESC[200~`` ... ``ESC[201~``. A large paste routinely arrives over several
reads, and either marker may itself be split between two reads, so the
aggregator keeps state between :meth:`PasteAggregator.feed` calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from skillmgr.prompt.keys import BRACKETED_PASTE_END, BRACKETED_PASTE_START
from skillmgr.prompt.line_buffer import normalize_single_line

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PasteComplete:
    """The end marker arrived.

    ``text`` is the whole payload with line breaks replaced by spaces,
    ``leftover`` is whatever followed the end marker and ``prefix`` whatever
    preceded the start marker in the same chunk.
    """

    text: str
    leftover: str = ""
    prefix: str = ""


@dataclass(frozen=True)
class PasteContinuing:
    """A paste is in progress and the end marker has not been seen yet."""

    prefix: str = ""


@dataclass(frozen=True)
class NotPasting:
    """No paste is involved; ``data`` should go through key decoding.

    ``released`` holds bytes kept back by an earlier feed (a possible start
    marker fragment) that turned out not to be one. They arrived before
    ``data`` and are a separate key read.
    """

    data: str
    released: str = ""


PasteResult = Union[PasteComplete, PasteContinuing, NotPasting]


def _partial_marker_length(data: str) -> int:
    """Length of the longest proper prefix of the start marker ending *data*."""
    for length in range(min(len(data), len(BRACKETED_PASTE_START) - 1), 0, -1):
        if data.endswith(BRACKETED_PASTE_START[:length]):
            return length
    return 0


class PasteAggregator:
    def __init__(self) -> None:
        self._active = False
        self._accumulated = ""
        self._held = ""

    @property
    def active(self) -> bool:
        return self._active

    @property
    def held(self) -> str:
        return self._held

    def reset(self) -> None:
        """Drop any partial paste and any held-back bytes."""
        if self._active:
            logger.debug("Discarding partial paste of %d chars", len(self._accumulated))
        self._active = False
        self._accumulated = ""
        self._held = ""

    def feed(self, chunk: str | bytes, *, hold_partial: bool = True) -> PasteResult:
        """Feed one raw read.

        With *hold_partial* a chunk ending in a fragment of the start marker
        (including a lone ESC) keeps that fragment back until the next feed,
        so a marker split anywhere is still recognised. Pass ``False`` where
        a lone ESC must be acted on immediately.
        """
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")

        if self._active:
            self._accumulated += chunk
            return self._check_end(prefix="")

        previously_held = self._held
        self._held = ""
        data = previously_held + chunk

        start = data.find(BRACKETED_PASTE_START)
        if start != -1:
            logger.debug("Bracketed paste started")
            self._active = True
            self._accumulated = data[start + len(BRACKETED_PASTE_START) :]
            return self._check_end(prefix=data[:start])

        if hold_partial:
            keep = _partial_marker_length(data)
            if keep:
                self._held = data[-keep:]
                data = data[:-keep]

        return NotPasting(
            data=data[len(previously_held) :],
            released=data[: len(previously_held)],
        )

    def _check_end(self, prefix: str) -> PasteResult:
        end = self._accumulated.find(BRACKETED_PASTE_END)
        if end == -1:
            return PasteContinuing(prefix=prefix)

        payload = self._accumulated[:end]
        leftover = self._accumulated[end + len(BRACKETED_PASTE_END) :]
        self._active = False
        self._accumulated = ""
        logger.debug("Bracketed paste complete (%d chars)", len(payload))
        return PasteComplete(
            text=normalize_single_line(payload),
            leftover=leftover,
            prefix=prefix,
        )
