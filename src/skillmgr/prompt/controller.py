"""ModalInputController: the single consumer of raw terminal input.

Raw chunks go through the paste aggregator first; everything that is not
paste payload is decoded into key events and handed, one key at a time, to
whichever key listener is attached. Exactly one listener is attached at a
time. Opening a picker or the skill-argument line detaches the current
listener, hands raw-mode ownership to the new sub-prompt and attaches the
sub-prompt's listener; closing it does the same in reverse.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Literal, Sequence, Union

from skillmgr.prompt.commands import parse_slash_command
from skillmgr.prompt.history import HistoryNavigator
from skillmgr.prompt.keys import KeyDecoder, KeyEvent
from skillmgr.prompt.line_buffer import LineBuffer, normalize_single_line
from skillmgr.prompt.paste import NotPasting, PasteAggregator, PasteComplete, PasteContinuing
from skillmgr.prompt.render import SelectorView, hint_block, paint_line, write_warning
from skillmgr.prompt.selector import SelectorEngine, SelectorItem
from skillmgr.prompt.terminal import PromptError, Terminal, TerminalModeGuard
from skillmgr.prompt.theme import PLAIN_THEME, SelectorTheme

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

State = Literal[
    "normal",
    "awaiting_selector_choice",
    "awaiting_skill_argument",
    "paste_accumulating",
    "resolved",
    "cancelled",
]

ResultKind = Literal["submitted", "command", "cancelled", "eof"]

ItemsProvider = Union[Callable[[], Sequence[SelectorItem]], Sequence[SelectorItem]]

KeyListener = Callable[[KeyEvent], None]

NO_COMMANDS_MESSAGE = "No commands available."
NO_SKILLS_MESSAGE = "No user skills found. Create one first."


class ListenerConflictError(PromptError):
    """A key listener was attached while another one was still attached."""

    def __init__(self, requested: str, attached: str) -> None:
        super().__init__(f"Cannot attach {requested!r}: {attached!r} is still listening")
        self.requested = requested
        self.attached = attached


@dataclass(frozen=True)
class PromptResult:
    """What the user finally entered.

    ``kind`` is ``"submitted"`` for a line ended with Enter, ``"command"``
    for a line composed through the pickers, ``"cancelled"`` for Ctrl+C at
    the main line and ``"eof"`` when non-interactive input ran out. Ctrl+C
    in a picker or on the skill-argument line only abandons that sub-prompt.
    """

    text: str
    kind: ResultKind

    @property
    def cancelled(self) -> bool:
        return self.kind == "cancelled"


@dataclass
class _Picker:
    stage: Literal["command", "skill"]
    engine: SelectorEngine
    view: SelectorView
    # Command chosen in the first stage, e.g. "/read"
    command: SelectorItem | None = None
    # True when opened from a typed "/cmd"; cancelling then keeps the buffer
    from_typed_command: bool = False


@dataclass
class _SkillArgument:
    command: str
    skill: str
    buffer: LineBuffer

    @property
    def prompt(self) -> str:
        return f"{self.command} {self.skill} "


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class ModalInputController:
    def __init__(
        self,
        terminal: Terminal,
        *,
        prompt: str = "",
        commands: ItemsProvider = (),
        skills: ItemsProvider | None = None,
        history: Sequence[str] = (),
        theme: SelectorTheme = PLAIN_THEME,
        command_max_visible: int = 10,
        skill_max_visible: int = 8,
        guard: TerminalModeGuard | None = None,
        decoder: KeyDecoder | None = None,
    ) -> None:
        self._terminal = terminal
        self._prompt = prompt
        self._commands = commands
        self._skills = skills if skills is not None else ()
        self._theme = theme
        self._command_max_visible = command_max_visible
        self._skill_max_visible = skill_max_visible
        self._guard = guard
        self._decoder = decoder or KeyDecoder()

        self._buffer = LineBuffer()
        self._history = HistoryNavigator(history)
        self._paste = PasteAggregator()

        self._state: State = "normal"
        self._listener: KeyListener | None = None
        self._listener_owner: str | None = None
        self._paste_return: tuple[State, str, KeyListener] | None = None
        self._picker: _Picker | None = None
        self._argument: _SkillArgument | None = None
        self._result: PromptResult | None = None

    # -- public state ------------------------------------------------------

    @property
    def state(self) -> State:
        return self._state

    @property
    def buffer(self) -> LineBuffer:
        return self._buffer

    @property
    def listener_owner(self) -> str | None:
        return self._listener_owner

    @property
    def picker(self) -> SelectorEngine | None:
        return self._picker.engine if self._picker is not None else None

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> PromptResult | None:
        return self._result

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Draw the prompt and attach the line-editing listener."""
        self._switch("prompt", self._handle_normal_key)
        self._repaint()

    def feed(self, chunk: str | bytes) -> None:
        """Process one raw read from the terminal, in arrival order."""
        if self.done:
            return

        result = self._paste.feed(chunk, hold_partial=self._state == "normal")

        if isinstance(result, NotPasting):
            if result.released:
                self._dispatch(result.released)
            self._dispatch(result.data)
            return

        if result.prefix:
            self._dispatch(result.prefix)
            if self.done:
                self._paste.reset()
                return

        if isinstance(result, PasteContinuing):
            if self._state != "paste_accumulating":
                self._begin_paste()
            return

        assert isinstance(result, PasteComplete)
        if self._state == "paste_accumulating":
            self._end_paste()
        self._deliver_paste(result.text)
        if result.leftover:
            self.feed(result.leftover)

    # -- listener management -----------------------------------------------

    def _attach(self, owner: str, listener: KeyListener) -> None:
        if self._listener is not None:
            raise ListenerConflictError(owner, self._listener_owner or "<unknown>")
        self._listener = listener
        self._listener_owner = owner

    def _detach(self) -> None:
        self._listener = None
        self._listener_owner = None

    def _switch(self, owner: str, listener: KeyListener) -> None:
        self._detach()
        if self._guard is not None:
            self._guard.handoff(owner)
        self._attach(owner, listener)
        logger.debug("Input listener now %s (state %s)", owner, self._state)

    # -- key dispatch ------------------------------------------------------

    def _dispatch(self, data: str) -> None:
        for event in self._decoder.decode(data):
            if self._listener is None:
                return
            # Sub-prompts handle Ctrl+C themselves as their first check
            if event.is_key("ctrlC") and self._listener_owner in ("prompt", "paste"):
                self._cancel()
                return
            if event.is_unknown:
                continue
            self._listener(event)

    def _ignore_key(self, event: KeyEvent) -> None:
        logger.debug("Ignoring %r while a paste is in progress", event.raw)

    # -- normal mode -------------------------------------------------------

    def _handle_normal_key(self, event: KeyEvent) -> None:
        if event.is_key("enter"):
            self._terminal.write("\r\n")
            self._finish(self._buffer.content, "submitted")
            return

        if event.is_printable and event.char == "/" and not self._buffer.content:
            self._open_command_picker()
            return

        if event.is_key("escape"):
            return

        if event.is_key("up"):
            self._recall(self._history.previous(self._buffer.content))
            return

        if event.is_key("down"):
            self._recall(self._history.next())
            return

        if event.is_key("tab") or event.is_key("space"):
            command = self._typed_command_needing_skill()
            if command is not None:
                self._open_skill_picker(command, from_typed_command=True)
                return
            if event.is_key("tab"):
                return

        change = self._buffer.apply(event)
        if change == "modified":
            self._history.reset()
            self._repaint()
        elif change == "cursor":
            self._repaint()

    def _recall(self, text: str | None) -> None:
        if text is None:
            return
        self._buffer.set_content(text)
        self._repaint()

    def _typed_command_needing_skill(self) -> SelectorItem | None:
        parsed = parse_slash_command(self._buffer.content)
        if parsed is None or parsed.args:
            return None
        try:
            items = _resolve_items(self._commands)
        except Exception:
            logger.exception("Command provider failed")
            return None
        name = f"/{parsed.command}"
        for item in items:
            if item.name == name and item.needs_skill_arg:
                return item
        return None

    def _repaint(self) -> None:
        paint_line(self._terminal, self._prompt, self._buffer)

    def _return_to_normal(self, *, clear_buffer: bool) -> None:
        self._picker = None
        self._argument = None
        self._state = "normal"
        if clear_buffer:
            self._buffer.clear_line()
        self._switch("prompt", self._handle_normal_key)
        self._repaint()

    # -- pickers -----------------------------------------------------------

    def _load_items(self, provider: ItemsProvider, empty_message: str) -> list[SelectorItem]:
        try:
            items = _resolve_items(provider)
        except Exception:
            logger.exception("Item provider failed")
            items = []
        if not items:
            self._terminal.write("\r\n")
            write_warning(self._terminal, self._theme, empty_message)
        return items

    def _open_command_picker(self) -> None:
        items = self._load_items(self._commands, NO_COMMANDS_MESSAGE)
        if not items:
            self._return_to_normal(clear_buffer=False)
            return

        engine = SelectorEngine(items, self._command_max_visible, self._theme, "No matching commands")
        view = SelectorView(self._terminal, engine, self._theme, f"{self._prompt}/", separator=True)
        self._picker = _Picker(stage="command", engine=engine, view=view)
        self._state = "awaiting_selector_choice"
        self._switch("command-picker", self._handle_picker_key)
        view.open()

    def _open_skill_picker(self, command: SelectorItem, *, from_typed_command: bool) -> None:
        items = self._load_items(self._skills, NO_SKILLS_MESSAGE)
        if not items:
            self._return_to_normal(clear_buffer=not from_typed_command)
            return

        engine = SelectorEngine(items, self._skill_max_visible, self._theme, "No matching skills")
        view = SelectorView(self._terminal, engine, self._theme, f"{command.name} ")
        self._picker = _Picker(
            stage="skill",
            engine=engine,
            view=view,
            command=command,
            from_typed_command=from_typed_command,
        )
        self._state = "awaiting_selector_choice"
        self._switch("skill-picker", self._handle_picker_key)
        view.open()

    def _handle_picker_key(self, event: KeyEvent) -> None:
        picker = self._picker
        assert picker is not None
        engine = picker.engine

        if event.is_key("ctrlC") or event.is_key("escape"):
            self._cancel_picker()
        elif event.is_key("up"):
            if engine.move_up():
                picker.view.render()
        elif event.is_key("down"):
            if engine.move_down():
                picker.view.render()
        elif event.is_key("enter"):
            selected = engine.get_selected()
            if selected is None:
                self._cancel_picker()
            else:
                self._choose(selected)
        elif event.is_key("tab"):
            selected = engine.get_selected()
            if selected is not None:
                self._choose(selected)
        elif event.is_key("backspace") or event.is_key("wordBackspace"):
            if engine.filter_text:
                engine.update_filter(engine.filter_text[:-1])
                picker.view.render()
            else:
                self._cancel_picker()
        elif event.is_printable or event.is_key("space"):
            engine.update_filter(engine.filter_text + (event.char or " "))
            picker.view.render()

    def _cancel_picker(self) -> None:
        picker = self._picker
        assert picker is not None
        picker.view.close()
        logger.debug("%s picker cancelled", picker.stage)
        self._return_to_normal(clear_buffer=not picker.from_typed_command)

    def _choose(self, item: SelectorItem) -> None:
        picker = self._picker
        assert picker is not None
        picker.view.close()
        self._picker = None

        if picker.stage == "command":
            if item.needs_skill_arg:
                self._open_skill_picker(item, from_typed_command=False)
                return
            self._terminal.write(f"{self._prompt}{item.name}\r\n")
            self._finish(item.name, "command")
            return

        command = picker.command
        assert command is not None
        if command.needs_input:
            self._enter_skill_argument(command.name, item)
            return
        self._terminal.write(f"{self._prompt}{command.name} {item.name}\r\n")
        self._finish(f"{command.name} {item.name}", "command")

    # -- skill argument ----------------------------------------------------

    def _enter_skill_argument(self, command: str, skill: SelectorItem) -> None:
        skill_type = str(skill.metadata.get("type") or "skill")
        description = str(skill.metadata.get("description") or "")
        for line in hint_block(self._theme, command, skill.name, skill_type, description):
            self._terminal.write(line + "\r\n")

        self._argument = _SkillArgument(command=command, skill=skill.name, buffer=LineBuffer())
        self._state = "awaiting_skill_argument"
        self._switch("skill-argument", self._handle_argument_key)
        self._paint_argument()

    def _paint_argument(self) -> None:
        argument = self._argument
        assert argument is not None
        paint_line(self._terminal, argument.prompt, argument.buffer)

    def _handle_argument_key(self, event: KeyEvent) -> None:
        argument = self._argument
        assert argument is not None

        if event.is_key("ctrlC"):
            # Abandons this command only; the caller prompts again
            self._terminal.write("\r\n")
            write_warning(self._terminal, self._theme, "Cancelled")
            self._finish("", "submitted")
            return

        if event.is_key("enter"):
            self._terminal.write("\r\n")
            text = f"{argument.command} {argument.skill} {argument.buffer.content}".strip()
            self._finish(text, "command")
            return

        if event.is_key("escape"):
            self._terminal.write("\r\n")
            self._return_to_normal(clear_buffer=False)
            return

        if argument.buffer.apply(event) in ("modified", "cursor"):
            self._paint_argument()

    # -- paste -------------------------------------------------------------

    def _begin_paste(self) -> None:
        assert self._listener is not None and self._listener_owner is not None
        self._paste_return = (self._state, self._listener_owner, self._listener)
        self._state = "paste_accumulating"
        self._switch("paste", self._ignore_key)

    def _end_paste(self) -> None:
        assert self._paste_return is not None
        state, owner, listener = self._paste_return
        self._paste_return = None
        self._state = state
        self._switch(owner, listener)

    def _deliver_paste(self, text: str) -> None:
        if not text:
            return
        if self._state == "awaiting_selector_choice" and self._picker is not None:
            engine = self._picker.engine
            engine.update_filter(engine.filter_text + normalize_single_line(text))
            self._picker.view.render()
        elif self._state == "awaiting_skill_argument" and self._argument is not None:
            self._argument.buffer.insert_paste(text)
            self._paint_argument()
        elif self._state == "normal":
            self._buffer.insert_paste(text)
            self._history.reset()
            self._repaint()

    # -- termination -------------------------------------------------------

    def _cancel(self) -> None:
        if self._picker is not None:
            self._picker.view.close()
            self._picker = None
        self._terminal.write("\r\n")
        self._paste.reset()
        self._detach()
        self._state = "cancelled"
        self._result = PromptResult(text="", kind="cancelled")
        logger.debug("Prompt cancelled")

    def _finish(self, text: str, kind: ResultKind) -> None:
        self._detach()
        self._paste.reset()
        self._state = "resolved"
        self._result = PromptResult(text=text, kind=kind)
        logger.debug("Prompt resolved (%s)", kind)


def _resolve_items(provider: ItemsProvider) -> list[SelectorItem]:
    if callable(provider):
        return list(provider())
    return list(provider)
