"""Slash-command catalogue used to populate the command picker."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

from skillmgr.prompt.selector import SelectorItem

# Commands whose skill selection is followed by a free-text argument
COMMANDS_NEEDING_INPUT = frozenset({"exec", "refine", "update"})


@dataclass(frozen=True)
class SlashCommand:
    usage: str
    description: str
    skill: str | None = None
    needs_skill_arg: bool = False


COMMANDS: dict[str, SlashCommand] = {
    "ls": SlashCommand("/ls [all]", 'List skills (add "all" to include built-in)', "list-skills"),
    "list": SlashCommand("/list [all]", 'List skills (add "all" to include built-in)', "list-skills"),
    "read": SlashCommand("/read <skill-name>", "Read a skill definition file", "read-skill", True),
    "write": SlashCommand("/write <skill-name> [type]", "Create or update a skill file", "write-skill", True),
    "delete": SlashCommand("/delete <skill-name>", "Delete a skill directory", "delete-skill", True),
    "validate": SlashCommand("/validate <skill-name>", "Validate skill against schema", "validate-skill", True),
    # Takes a template type, not a skill name
    "template": SlashCommand("/template <type>", "Get blank template (tskill, cskill, etc.)", "get-template"),
    "generate": SlashCommand("/generate <skill-name>", "Generate .mjs code from tskill", "generate-code", True),
    "test": SlashCommand("/test [skill-name]", "Test skill code (shows picker if no skill specified)"),
    "run-tests": SlashCommand("/run-tests [skill-name|all]", "Run .tests.mjs files (all = run all tests)", "run-tests"),
    "refine": SlashCommand("/refine <skill-name>", "Iteratively improve skill until tests pass", "skill-refiner", True),
    "update": SlashCommand("/update <skill-name> <section>", "Update a specific section of a skill", "update-section", True),
    "exec": SlashCommand("/exec <skill-name> [input]", "Execute any skill directly", None, True),
    "specs": SlashCommand("/specs <skill-name>", "Read a skill's .specs.md file", "read-specs", True),
    "specs-write": SlashCommand(
        "/specs-write <skill-name> [content]", "Create/update a skill's .specs.md file", "write-specs", True
    ),
    "write-tests": SlashCommand("/write-tests <skill-name>", "Generate test file for a skill", "write-tests", True),
}

HELP_COMMAND = SelectorItem(
    name="/help",
    description="Show all slash commands",
    metadata={"usage": "/help", "skill": None, "needs_skill_arg": False, "needs_input": False},
)

_SLASH_RE = re.compile(r"^/(\S+)(?:\s+(.*))?$", re.DOTALL)


@dataclass(frozen=True)
class ParsedCommand:
    command: str
    args: str


def parse_slash_command(text: str) -> ParsedCommand | None:
    """Split ``/name args`` into a lower-cased name and stripped args."""
    match = _SLASH_RE.match(text)
    if match is None:
        return None
    return ParsedCommand(command=match.group(1).lower(), args=(match.group(2) or "").strip())


def build_command_list(commands: Mapping[str, SlashCommand] = COMMANDS) -> list[SelectorItem]:
    """Picker items for *commands*, one per backing skill, plus ``/help``.

    Aliases that share a skill (``/ls`` and ``/list``) appear once, under the
    first name. The result is sorted by name.
    """
    items: list[SelectorItem] = []
    seen: set[str] = set()

    for name, definition in commands.items():
        if definition.skill is not None:
            if definition.skill in seen:
                continue
            seen.add(definition.skill)
        items.append(
            SelectorItem(
                name=f"/{name}",
                description=definition.description,
                metadata={
                    "usage": definition.usage,
                    "skill": definition.skill,
                    "needs_skill_arg": definition.needs_skill_arg,
                    "needs_input": name in COMMANDS_NEEDING_INPUT,
                },
            )
        )

    items.append(HELP_COMMAND)
    items.sort(key=lambda item: item.name)
    return items
