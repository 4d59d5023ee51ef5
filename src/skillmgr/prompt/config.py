"""Prompt settings loaded from JSON files.

Three-level precedence: CLI overrides > project settings > global settings.
The global file lives in ``~/.skillmgr/settings.json`` (the directory can be
moved with ``SKILLMGR_CONFIG_DIR``), the project file in
``<cwd>/.skillmgr/settings.json``.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".skillmgr"
CONFIG_DIR_ENV = "SKILLMGR_CONFIG_DIR"

DEFAULT_PROMPT = "SkillManager> "


def _settings_defaults() -> dict[str, Any]:
    return {
        "prompt": DEFAULT_PROMPT,
        "theme": "ansi",
        "commandMaxVisible": 10,
        "skillMaxVisible": 8,
        "historyFile": ".skill-manager-history",
        "historyMaxEntries": 1000,
        "bracketedPaste": True,
    }


def deep_merge_settings(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overrides* into *base*; ``None`` values are skipped."""
    result = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge_settings(result[key], value)
        else:
            result[key] = value
    return result


class PromptSettings:
    """Merged prompt settings.

    Use :meth:`create` to read from disk and :meth:`in_memory` in tests.
    A settings file that fails to parse is ignored and its error kept in
    :attr:`load_error`.
    """

    def __init__(
        self,
        *,
        settings_path: str | None,
        project_settings_path: str | None,
        initial_settings: dict[str, Any],
        load_error: Exception | None = None,
    ) -> None:
        self._settings_path = settings_path
        self._project_settings_path = project_settings_path
        self._global_settings = dict(initial_settings)
        self._load_error = load_error

        project: dict[str, Any] = {}
        if project_settings_path:
            project, project_error = _load_from_file(project_settings_path)
            if project_error is not None and self._load_error is None:
                self._load_error = project_error

        merged = deep_merge_settings(_settings_defaults(), self._global_settings)
        self._settings = deep_merge_settings(merged, project)

    # --- Factory methods ---

    @classmethod
    def create(cls, cwd: str | None = None, config_dir: str | None = None) -> PromptSettings:
        cdir = config_dir or _default_config_dir()
        settings_path = os.path.join(cdir, "settings.json")
        project_settings_path = os.path.join(cwd or os.getcwd(), CONFIG_DIR_NAME, "settings.json")

        settings, error = _load_from_file(settings_path)
        return cls(
            settings_path=settings_path,
            project_settings_path=project_settings_path,
            initial_settings=settings,
            load_error=error,
        )

    @classmethod
    def in_memory(cls, settings: dict[str, Any] | None = None) -> PromptSettings:
        return cls(
            settings_path=None,
            project_settings_path=None,
            initial_settings=settings or {},
        )

    # --- Core operations ---

    def apply_overrides(self, overrides: dict[str, Any]) -> None:
        """Apply CLI-level overrides on top of the merged settings."""
        self._settings = deep_merge_settings(self._settings, overrides)

    @property
    def settings(self) -> dict[str, Any]:
        return self._settings

    @property
    def load_error(self) -> Exception | None:
        return self._load_error

    @property
    def settings_path(self) -> str | None:
        return self._settings_path

    # --- Getters ---

    def get_prompt(self) -> str:
        return str(self._settings["prompt"])

    def get_theme_name(self) -> str:
        return str(self._settings["theme"])

    def get_command_max_visible(self) -> int:
        return _positive_int(self._settings["commandMaxVisible"], 10)

    def get_skill_max_visible(self) -> int:
        return _positive_int(self._settings["skillMaxVisible"], 8)

    def get_history_file(self) -> str:
        return str(self._settings["historyFile"])

    def get_history_max_entries(self) -> int:
        return _positive_int(self._settings["historyMaxEntries"], 1000)

    def get_bracketed_paste(self) -> bool:
        return bool(self._settings["bracketedPaste"])


# --- Helpers ---


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        logger.warning("Ignoring invalid setting value %r, using %d", value, default)
        return default
    return value


def _load_from_file(path: str) -> tuple[dict[str, Any], Exception | None]:
    """Load settings from a JSON file. Returns (settings, error)."""
    if not os.path.exists(path):
        return {}, None
    try:
        content = Path(path).read_text(encoding="utf-8")
        settings = json.loads(content)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return {}, e
    if not isinstance(settings, dict):
        error = ValueError(f"{path}: expected a JSON object")
        logger.warning("Ignoring settings file %s: %s", path, error)
        return {}, error
    return settings, None


def _default_config_dir() -> str:
    """Config directory: ``$SKILLMGR_CONFIG_DIR`` or ``~/.skillmgr``."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return os.path.expanduser(override)
    return os.path.join(os.path.expanduser("~"), CONFIG_DIR_NAME)
