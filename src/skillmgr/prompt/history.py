"""Input history: in-prompt navigation and the on-disk store behind it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_FILE = ".skill-manager-history"
DEFAULT_MAX_ENTRIES = 1000


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class HistoryNavigator:
    """Up/Down recall over a fixed snapshot of past entries (oldest first).

    The entries are copied at construction and never written back. The text
    being edited when navigation starts is kept as a draft and handed back
    when the user walks past the newest entry.
    """

    def __init__(self, entries: Sequence[str] = ()) -> None:
        self._entries: tuple[str, ...] = tuple(entries)
        self._index: int | None = None
        self._draft = ""

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def navigating(self) -> bool:
        return self._index is not None

    def previous(self, current_buffer: str = "") -> str | None:
        if not self._entries:
            return None
        if self._index is None:
            self._draft = current_buffer
            self._index = len(self._entries) - 1
        elif self._index > 0:
            self._index -= 1
        return self._entries[self._index]

    def next(self) -> str | None:
        if self._index is None:
            return None
        if self._index < len(self._entries) - 1:
            self._index += 1
            return self._entries[self._index]
        self._index = None
        return self._draft

    def reset(self) -> None:
        self._index = None
        self._draft = ""


# ---------------------------------------------------------------------------
# Persistent store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryMatch:
    index: int  # 1-based, for display
    command: str


class HistoryStore:
    """Newline-separated history file kept per working directory.

    Read and write failures are logged and otherwise ignored; history is a
    convenience and must never break the prompt.
    """

    def __init__(
        self,
        working_dir: str | Path | None = None,
        history_file: str = DEFAULT_HISTORY_FILE,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        base = Path(working_dir) if working_dir is not None else Path.cwd()
        self._path = base.resolve() / history_file
        self._max_entries = max_entries
        self._history: list[str] = []
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def __len__(self) -> int:
        return len(self._history)

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            content = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not read history file %s: %s", self._path, exc)
            self._history = []
            return

        self._history = [line for line in content.split("\n") if line.strip()]
        if len(self._history) > self._max_entries:
            self._history = self._history[-self._max_entries :]
            self._save()

    def _save(self) -> None:
        try:
            self._path.write_text("\n".join(self._history) + "\n", encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write history file %s: %s", self._path, exc)

    def add(self, command: str) -> None:
        trimmed = command.strip()
        if not trimmed:
            return
        if self._history and self._history[-1] == trimmed:
            return

        self._history.append(trimmed)
        if len(self._history) > self._max_entries:
            self._history = self._history[-self._max_entries :]
        self._save()

    def get(self, index: int) -> str | None:
        """Entry at *index*, 0 being the oldest."""
        if 0 <= index < len(self._history):
            return self._history[index]
        return None

    def recent(self, count: int = 10) -> list[HistoryMatch]:
        start = max(0, len(self._history) - count)
        return [
            HistoryMatch(index=start + offset + 1, command=command)
            for offset, command in enumerate(self._history[start:])
        ]

    def search(self, query: str, limit: int = 10) -> list[HistoryMatch]:
        """Entries containing *query* (case-insensitive), newest first."""
        needle = query.lower()
        results: list[HistoryMatch] = []
        for i in range(len(self._history) - 1, -1, -1):
            if len(results) >= limit:
                break
            if needle in self._history[i].lower():
                results.append(HistoryMatch(index=i + 1, command=self._history[i]))
        return results

    def entries(self) -> list[str]:
        return list(self._history)

    def clear(self) -> None:
        self._history = []
        self._save()

    def navigator(self) -> HistoryNavigator:
        """A navigator over a snapshot of the current entries."""
        return HistoryNavigator(self._history)
