"""System clipboard access through platform command-line tools.

macOS uses pbcopy/pbpaste, Wayland wl-copy/wl-paste, X11 xclip or xsel,
and Windows clip/PowerShell. When no tool is available every operation is
a no-op.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 2.0


@dataclass(frozen=True)
class ClipboardCommands:
    copy: list[str]
    paste: list[str]


_CANDIDATES: list[ClipboardCommands] = [
    ClipboardCommands(copy=["wl-copy"], paste=["wl-paste", "--no-newline"]),
    ClipboardCommands(copy=["xclip", "-selection", "clipboard"], paste=["xclip", "-selection", "clipboard", "-o"]),
    ClipboardCommands(copy=["xsel", "--clipboard", "--input"], paste=["xsel", "--clipboard", "--output"]),
]

# None until first lookup; False when no tool was found
_cached: ClipboardCommands | None | bool = None


def detect_clipboard_commands() -> ClipboardCommands | None:
    if sys.platform == "darwin":
        return ClipboardCommands(copy=["pbcopy"], paste=["pbpaste"])
    if sys.platform == "win32":
        return ClipboardCommands(copy=["clip"], paste=["powershell", "-command", "Get-Clipboard"])

    for candidate in _CANDIDATES:
        if shutil.which(candidate.copy[0]) and shutil.which(candidate.paste[0]):
            return candidate
    return None


def _commands() -> ClipboardCommands | None:
    global _cached
    if _cached is None:
        _cached = detect_clipboard_commands() or False
        if _cached is False:
            logger.debug("No clipboard tool found")
    return _cached or None


def reset_cache() -> None:
    global _cached
    _cached = None


def write_clipboard(text: str) -> bool:
    """Copy *text* to the clipboard. Returns ``True`` on success."""
    commands = _commands()
    if commands is None:
        return False
    try:
        result = subprocess.run(
            commands.copy,
            input=text,
            capture_output=True,
            text=True,
            timeout=_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Clipboard copy failed: %s", exc)
        return False
    return result.returncode == 0


def read_clipboard() -> str | None:
    """Clipboard contents without a trailing newline, or ``None``."""
    commands = _commands()
    if commands is None:
        return None
    try:
        result = subprocess.run(
            commands.paste,
            capture_output=True,
            text=True,
            timeout=_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Clipboard paste failed: %s", exc)
        return None

    if result.returncode != 0:
        return None
    stdout = result.stdout
    if stdout.endswith("\r\n"):
        return stdout[:-2]
    if stdout.endswith("\n"):
        return stdout[:-1]
    return stdout
