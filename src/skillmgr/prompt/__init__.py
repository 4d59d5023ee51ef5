"""skillmgr-prompt: terminal line editor with slash-command and skill pickers."""

# Slash-command catalogue
from skillmgr.prompt.commands import (
    COMMANDS,
    ParsedCommand,
    SlashCommand,
    build_command_list,
    parse_slash_command,
)

# Settings
from skillmgr.prompt.config import PromptSettings, deep_merge_settings

# Input state machine
from skillmgr.prompt.controller import (
    ListenerConflictError,
    ModalInputController,
    PromptResult,
)

# History
from skillmgr.prompt.history import HistoryNavigator, HistoryStore

# Keyboard input decoding
from skillmgr.prompt.keys import KEY_SEQUENCES, KeyDecoder, KeyEvent, KeyName, decode

# Line editing
from skillmgr.prompt.line_buffer import EditResult, LineBuffer

# Bracketed paste
from skillmgr.prompt.paste import NotPasting, PasteAggregator, PasteComplete, PasteContinuing

# Caller entry points
from skillmgr.prompt.prompt import KeyChannel, read_prompt, run_prompt

# Pickers
from skillmgr.prompt.selector import SelectorEngine, SelectorItem, skill_items

# Terminal interface and raw-mode ownership
from skillmgr.prompt.terminal import (
    ProcessTerminal,
    PromptError,
    RawModeConflictError,
    RawModeUnavailableError,
    Terminal,
    TerminalModeGuard,
)

# Themes
from skillmgr.prompt.theme import ANSI_THEME, PLAIN_THEME, SelectorTheme, StyleTheme, get_theme

# Utilities
from skillmgr.prompt.utils import truncate_to_width, visible_width

__all__ = [
    # Commands
    "COMMANDS",
    "ParsedCommand",
    "SlashCommand",
    "build_command_list",
    "parse_slash_command",
    # Settings
    "PromptSettings",
    "deep_merge_settings",
    # Controller
    "ListenerConflictError",
    "ModalInputController",
    "PromptResult",
    # History
    "HistoryNavigator",
    "HistoryStore",
    # Keys
    "KEY_SEQUENCES",
    "KeyDecoder",
    "KeyEvent",
    "KeyName",
    "decode",
    # Line buffer
    "EditResult",
    "LineBuffer",
    # Paste
    "NotPasting",
    "PasteAggregator",
    "PasteComplete",
    "PasteContinuing",
    # Prompt
    "KeyChannel",
    "read_prompt",
    "run_prompt",
    # Selector
    "SelectorEngine",
    "SelectorItem",
    "skill_items",
    # Terminal
    "ProcessTerminal",
    "PromptError",
    "RawModeConflictError",
    "RawModeUnavailableError",
    "Terminal",
    "TerminalModeGuard",
    # Themes
    "ANSI_THEME",
    "PLAIN_THEME",
    "SelectorTheme",
    "StyleTheme",
    "get_theme",
    # Utilities
    "truncate_to_width",
    "visible_width",
]
