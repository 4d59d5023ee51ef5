"""CLI entry point: a small REPL that echoes what the prompt resolves to.

Useful to try the line editor, history and pickers against a directory of
skills without the rest of the skill manager.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any

from skillmgr.prompt.commands import build_command_list
from skillmgr.prompt.config import PromptSettings
from skillmgr.prompt.history import HistoryStore
from skillmgr.prompt.prompt import run_prompt
from skillmgr.prompt.selector import SelectorItem, skill_items

logger = logging.getLogger(__name__)

SKILL_FILE_TYPES = ("tskill", "cskill", "iskill", "oskill", "mskill")
EXIT_COMMANDS = ("/quit", "/exit")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="skillmgr-prompt",
        description="Interactive prompt with slash-command and skill pickers",
    )
    parser.add_argument("--prompt", help="Prompt text (default from settings)")
    parser.add_argument("--skills-dir", help="Directory whose subdirectories are skills")
    parser.add_argument(
        "--skill",
        action="append",
        dest="skills",
        default=[],
        help="Extra skill as NAME or NAME:TYPE (repeatable)",
    )
    parser.add_argument("--theme", choices=["ansi", "plain"], help="Picker colours")
    parser.add_argument("--cwd", default=os.getcwd(), help="Working directory (history and project settings)")
    parser.add_argument("--no-history", action="store_true", help="Do not read or write the history file")
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    return parser.parse_args(argv)


def _setup_logging(args: argparse.Namespace) -> None:
    kwargs: dict[str, Any] = {
        "level": getattr(logging, args.log_level.upper()),
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    }
    if args.log_file:
        kwargs["filename"] = args.log_file
    logging.basicConfig(**kwargs)


# ---------------------------------------------------------------------------
# Skill discovery
# ---------------------------------------------------------------------------


def _summary_line(path: Path) -> str:
    """First non-heading, non-blank line of a skill definition."""
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if stripped and not stripped.startswith("#"):
                return stripped
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
    return ""


def discover_skills(skills_dir: str | Path) -> list[dict[str, str]]:
    """One record per subdirectory of *skills_dir* holding a skill file."""
    root = Path(skills_dir)
    if not root.is_dir():
        logger.warning("Skills directory %s does not exist", root)
        return []

    skills: list[dict[str, str]] = []
    for entry in sorted(root.iterdir()):
        if not entry.is_dir() or entry.name.startswith("."):
            continue
        for skill_type in SKILL_FILE_TYPES:
            definition = entry / f"{skill_type}.md"
            if definition.is_file():
                skills.append(
                    {
                        "name": entry.name,
                        "type": skill_type,
                        "description": _summary_line(definition),
                    }
                )
                break
    return skills


def _parse_skill_flag(value: str) -> dict[str, str]:
    name, _, skill_type = value.partition(":")
    return {"name": name.strip(), "type": skill_type.strip() or "skill"}


def build_skill_provider(args: argparse.Namespace):
    """Callable returning the current skill items, rescanned on each call."""
    extra = [_parse_skill_flag(value) for value in args.skills]

    def provider() -> list[SelectorItem]:
        records = discover_skills(args.skills_dir) if args.skills_dir else []
        return skill_items(records + extra)

    return provider


# ---------------------------------------------------------------------------
# REPL
# ---------------------------------------------------------------------------


async def repl(args: argparse.Namespace) -> int:
    settings = PromptSettings.create(cwd=args.cwd)
    if settings.load_error is not None:
        print(f"Warning: ignoring settings: {settings.load_error}", file=sys.stderr)
    overrides: dict[str, Any] = {"prompt": args.prompt, "theme": args.theme}
    settings.apply_overrides(overrides)

    store = None
    if not args.no_history:
        store = HistoryStore(
            args.cwd,
            history_file=settings.get_history_file(),
            max_entries=settings.get_history_max_entries(),
        )

    commands = build_command_list()
    skills = build_skill_provider(args)

    while True:
        result = await run_prompt(
            settings.get_prompt(),
            commands,
            skills,
            history=store.entries() if store is not None else (),
            settings=settings,
        )
        if result.kind in ("cancelled", "eof"):
            return 0

        text = result.text.strip()
        if not text:
            continue
        if store is not None:
            store.add(text)
        if text in EXIT_COMMANDS:
            return 0
        print(f"[{result.kind}] {text}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    _setup_logging(args)
    sys.exit(asyncio.run(repl(args)))


if __name__ == "__main__":
    main()
