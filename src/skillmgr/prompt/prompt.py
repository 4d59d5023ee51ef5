"""run_prompt: read one line of input with editing, history and pickers."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from skillmgr.prompt.commands import build_command_list
from skillmgr.prompt.config import PromptSettings
from skillmgr.prompt.controller import ItemsProvider, ModalInputController, PromptResult
from skillmgr.prompt.terminal import (
    ProcessTerminal,
    RawModeUnavailableError,
    Terminal,
    TerminalModeGuard,
)
from skillmgr.prompt.theme import get_theme

logger = logging.getLogger(__name__)


class KeyChannel:
    """Ordered hand-off of raw terminal reads to the controller."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue()

    def put(self, chunk: str) -> None:
        self._queue.put_nowait(chunk)

    async def get(self) -> str:
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()


async def run_prompt(
    prompt_text: str,
    commands: ItemsProvider | None = None,
    skills: ItemsProvider | None = None,
    *,
    history: Sequence[str] = (),
    terminal: Terminal | None = None,
    settings: PromptSettings | None = None,
) -> PromptResult:
    """Read one line from the user.

    *commands* and *skills* feed the ``/`` pickers; each may be a sequence
    of :class:`~skillmgr.prompt.selector.SelectorItem` or a callable
    returning one, called each time its picker opens. ``None`` for
    *commands* means the built-in slash-command catalogue. *history* is
    read, never modified.

    When stdin is not a terminal, or raw mode cannot be enabled, a single
    plain line is read instead and no editing features are available.
    """
    settings = settings or PromptSettings.in_memory()
    terminal = terminal or ProcessTerminal(bracketed_paste=settings.get_bracketed_paste())
    if commands is None:
        commands = build_command_list()

    if not terminal.is_interactive:
        return await _read_line_fallback(terminal, prompt_text)

    guard = TerminalModeGuard(terminal)
    try:
        # Only acquiring raw mode raises RawModeUnavailableError
        with guard.hold("prompt"):
            controller = ModalInputController(
                terminal,
                prompt=prompt_text,
                commands=commands,
                skills=skills,
                history=history,
                theme=get_theme(settings.get_theme_name()),
                command_max_visible=settings.get_command_max_visible(),
                skill_max_visible=settings.get_skill_max_visible(),
                guard=guard,
            )
            await _run_controller(terminal, controller)
    except RawModeUnavailableError as exc:
        logger.info("Raw mode unavailable (%s); reading a plain line", exc)
        return await _read_line_fallback(terminal, prompt_text)

    assert controller.result is not None
    return controller.result


async def _run_controller(terminal: Terminal, controller: ModalInputController) -> None:
    channel = KeyChannel()
    try:
        terminal.start_reading(channel.put)
        controller.start()
        while not controller.done:
            controller.feed(await channel.get())
    finally:
        terminal.stop_reading()
        terminal.show_cursor()


async def _read_line_fallback(terminal: Terminal, prompt_text: str) -> PromptResult:
    terminal.write(prompt_text)
    line = await asyncio.to_thread(terminal.read_line)
    if not line:
        return PromptResult(text="", kind="eof")
    return PromptResult(text=line.rstrip("\r\n"), kind="submitted")


def read_prompt(
    prompt_text: str,
    commands: ItemsProvider | None = None,
    skills: ItemsProvider | None = None,
    *,
    history: Sequence[str] = (),
    terminal: Terminal | None = None,
    settings: PromptSettings | None = None,
) -> PromptResult:
    """Blocking wrapper around :func:`run_prompt`."""
    return asyncio.run(
        run_prompt(
            prompt_text,
            commands,
            skills,
            history=history,
            terminal=terminal,
            settings=settings,
        )
    )
