"""Tests for skillmgr.prompt.controller.ModalInputController."""

from __future__ import annotations

from typing import Any

import pytest

from skillmgr.prompt import terminal as terminal_module
from skillmgr.prompt.controller import (
    NO_COMMANDS_MESSAGE,
    NO_SKILLS_MESSAGE,
    ListenerConflictError,
    ModalInputController,
    PromptResult,
)
from skillmgr.prompt.keys import BRACKETED_PASTE_END, BRACKETED_PASTE_START
from skillmgr.prompt.selector import SelectorItem, skill_items
from skillmgr.prompt.terminal import TerminalModeGuard, raw_mode_owner

from .virtual_terminal import VirtualTerminal

UP = "\x1b[A"
DOWN = "\x1b[B"
ESCAPE = "\x1b"
ENTER = "\r"
CTRL_C = "\x03"

COMMANDS = [
    SelectorItem("/list", "List skills"),
    SelectorItem("/read", "Read a skill", {"needs_skill_arg": True}),
    SelectorItem("/refine", "Improve a skill", {"needs_skill_arg": True, "needs_input": True}),
    SelectorItem("/exec", "Execute a skill", {"needs_skill_arg": True, "needs_input": True}),
]

SKILLS = skill_items(
    [
        {"name": "pdf", "type": "tskill", "description": "PDF tools"},
        {"name": "docx", "type": "cskill", "description": "Word documents"},
    ]
)


@pytest.fixture(autouse=True)
def _no_raw_mode_owner(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(terminal_module, "_raw_mode_owner", None)


def _start(**kwargs: Any) -> tuple[VirtualTerminal, ModalInputController]:
    term = kwargs.pop("terminal", None) or VirtualTerminal()
    kwargs.setdefault("prompt", "> ")
    kwargs.setdefault("commands", COMMANDS)
    kwargs.setdefault("skills", SKILLS)
    controller = ModalInputController(term, **kwargs)
    controller.start()
    return term, controller


def _feed_all(controller: ModalInputController, *chunks: str) -> None:
    for chunk in chunks:
        controller.feed(chunk)


def _filtered_names(controller: ModalInputController) -> list[str]:
    assert controller.picker is not None
    return [item.name for item in controller.picker.filtered_items]


# ---------------------------------------------------------------------------
# Normal mode
# ---------------------------------------------------------------------------


class TestNormalMode:
    def test_start_paints_prompt(self) -> None:
        term, controller = _start()
        assert controller.state == "normal"
        assert controller.listener_owner == "prompt"
        assert "> " in term.output

    def test_enter_submits_buffer(self) -> None:
        term, controller = _start()
        _feed_all(controller, "hello", ENTER)
        assert controller.result == PromptResult("hello", "submitted")
        assert controller.state == "resolved"
        assert controller.listener_owner is None
        assert term.output.endswith("\r\n")

    def test_enter_on_empty_line(self) -> None:
        _, controller = _start()
        controller.feed(ENTER)
        assert controller.result == PromptResult("", "submitted")

    def test_editing_keys(self) -> None:
        _, controller = _start()
        _feed_all(controller, "helo", "\x1b[D", "l", ENTER)
        assert controller.result is not None
        assert controller.result.text == "hello"

    def test_ctrl_backspace_deletes_word(self) -> None:
        _, controller = _start()
        _feed_all(controller, "hello", "\x08")
        assert controller.buffer.content == ""
        assert controller.buffer.cursor == 0

    def test_cursor_column_after_edit(self) -> None:
        term, controller = _start()
        _feed_all(controller, "abc", "\x1b[D")
        assert term.output.endswith("\r\x1b[K> abc\x1b[5G")

    def test_slash_after_text_is_inserted(self) -> None:
        _, controller = _start()
        _feed_all(controller, "a", "/")
        assert controller.state == "normal"
        assert controller.buffer.content == "a/"

    def test_tab_on_plain_text_is_ignored(self) -> None:
        _, controller = _start()
        _feed_all(controller, "ab", "\t")
        assert controller.buffer.content == "ab"

    def test_escape_is_a_no_op(self) -> None:
        _, controller = _start()
        _feed_all(controller, "ab", ESCAPE, "c")
        assert controller.buffer.content == "abc"

    def test_unknown_sequence_is_ignored(self) -> None:
        _, controller = _start()
        _feed_all(controller, "ab", "\x1b[99~")
        assert controller.buffer.content == "ab"
        assert not controller.done

    def test_input_after_resolution_is_ignored(self) -> None:
        _, controller = _start()
        _feed_all(controller, "a", ENTER, "b", ENTER)
        assert controller.result == PromptResult("a", "submitted")


class TestHistory:
    def test_up_and_down_walk_entries(self) -> None:
        _, controller = _start(history=["first", "second"])
        controller.feed(UP)
        assert controller.buffer.content == "second"
        controller.feed(UP)
        assert controller.buffer.content == "first"
        controller.feed(DOWN)
        assert controller.buffer.content == "second"
        controller.feed(DOWN)
        assert controller.buffer.content == ""

    def test_draft_restored(self) -> None:
        _, controller = _start(history=["first", "second"])
        _feed_all(controller, "dra", "ft", UP)
        assert controller.buffer.content == "second"
        controller.feed(DOWN)
        assert controller.buffer.content == "draft"

    def test_recalled_entry_can_be_submitted(self) -> None:
        _, controller = _start(history=["/list all"])
        _feed_all(controller, UP, ENTER)
        assert controller.result == PromptResult("/list all", "submitted")

    def test_caller_history_not_modified(self) -> None:
        history = ["one"]
        _, controller = _start(history=history)
        _feed_all(controller, "two", ENTER)
        assert history == ["one"]

    def test_no_history(self) -> None:
        _, controller = _start()
        _feed_all(controller, "x", UP)
        assert controller.buffer.content == "x"


# ---------------------------------------------------------------------------
# Command picker
# ---------------------------------------------------------------------------


class TestCommandPicker:
    def test_slash_opens_picker(self) -> None:
        term, controller = _start()
        controller.feed("/")
        assert controller.state == "awaiting_selector_choice"
        assert controller.listener_owner == "command-picker"
        assert _filtered_names(controller) == ["/list", "/read", "/refine", "/exec"]
        assert not term.cursor_visible
        assert "> /" in term.output
        assert "─" * 80 in term.output
        assert " ❯ /list" in term.output

    def test_typing_filters_and_escape_returns_to_empty_prompt(self) -> None:
        term, controller = _start()
        _feed_all(controller, "/", "r", "e")
        assert _filtered_names(controller) == ["/read", "/refine"]
        controller.feed(ESCAPE)
        assert controller.state == "normal"
        assert controller.listener_owner == "prompt"
        assert controller.picker is None
        assert controller.buffer.content == ""
        assert term.cursor_visible
        assert not controller.done

    def test_filter_in_one_chunk(self) -> None:
        _, controller = _start()
        controller.feed("/rea")
        assert _filtered_names(controller) == ["/read"]

    def test_navigate_and_choose(self) -> None:
        term, controller = _start()
        _feed_all(controller, "/", DOWN, DOWN, UP)
        assert controller.picker is not None
        assert controller.picker.get_selected() == COMMANDS[1]
        controller.feed("\t")
        # /read takes a skill, so the skill picker follows
        assert controller.listener_owner == "skill-picker"

    def test_command_without_skill_resolves(self) -> None:
        term, controller = _start()
        _feed_all(controller, "/", "l", ENTER)
        assert controller.result == PromptResult("/list", "command")
        assert "> /list\r\n" in term.output
        assert term.cursor_visible

    def test_backspace_trims_filter(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", "r", "e", "f", "\x7f")
        assert _filtered_names(controller) == ["/read", "/refine"]

    def test_backspace_on_empty_filter_closes(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", "\x7f")
        assert controller.state == "normal"
        assert controller.buffer.content == ""

    def test_enter_with_no_match_returns_to_normal(self) -> None:
        term, controller = _start()
        _feed_all(controller, "/", "zzz")
        assert "No matching commands" in term.output
        controller.feed(ENTER)
        assert controller.state == "normal"
        assert not controller.done

    def test_tab_with_no_match_does_nothing(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", "zzz", "\t")
        assert controller.state == "awaiting_selector_choice"

    def test_provider_called_on_open(self) -> None:
        calls: list[int] = []

        def provider() -> list[SelectorItem]:
            calls.append(1)
            return COMMANDS

        _, controller = _start(commands=provider)
        assert calls == []
        controller.feed("/")
        assert calls == [1]

    def test_empty_command_list_warns(self) -> None:
        term, controller = _start(commands=[])
        controller.feed("/")
        assert NO_COMMANDS_MESSAGE in term.output
        assert controller.state == "normal"
        assert controller.listener_owner == "prompt"
        assert controller.buffer.content == ""

    def test_failing_provider_treated_as_empty(self) -> None:
        def provider() -> list[SelectorItem]:
            raise RuntimeError("registry unavailable")

        term, controller = _start(commands=provider)
        controller.feed("/")
        assert NO_COMMANDS_MESSAGE in term.output
        assert controller.state == "normal"

    def test_viewport_limited_by_max_visible(self) -> None:
        items = [SelectorItem(f"/cmd{i}") for i in range(12)]
        term, controller = _start(commands=items, command_max_visible=3)
        controller.feed("/")
        assert "↓ 9 more" in term.output


# ---------------------------------------------------------------------------
# Skill picker and skill argument
# ---------------------------------------------------------------------------


class TestSkillPicker:
    def test_read_then_skill(self) -> None:
        term, controller = _start()
        _feed_all(controller, "/", "rea", ENTER)
        assert controller.state == "awaiting_selector_choice"
        assert _filtered_names(controller) == ["pdf", "docx"]
        assert "/read " in term.output
        assert "[tskill] PDF tools" in term.output
        controller.feed(ENTER)
        assert controller.result == PromptResult("/read pdf", "command")

    def test_filter_skills(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", "rea", ENTER, "word", ENTER)
        assert controller.result == PromptResult("/read docx", "command")

    def test_no_matching_skills_text(self) -> None:
        term, controller = _start()
        _feed_all(controller, "/", "rea", ENTER, "zzz")
        assert "No matching skills" in term.output

    def test_escape_from_skill_picker_clears_buffer(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", "rea", ENTER, ESCAPE)
        assert controller.state == "normal"
        assert controller.buffer.content == ""

    def test_empty_skill_list_warns(self) -> None:
        term, controller = _start(skills=[])
        _feed_all(controller, "/", "rea", ENTER)
        assert NO_SKILLS_MESSAGE in term.output
        assert controller.state == "normal"
        assert controller.buffer.content == ""
        assert not controller.done


class TestTypedCommand:
    def test_tab_after_typed_command_opens_skill_picker(self) -> None:
        _, controller = _start(history=["/read"])
        _feed_all(controller, UP, "\t")
        assert controller.listener_owner == "skill-picker"
        controller.feed(ENTER)
        assert controller.result == PromptResult("/read pdf", "command")

    def test_space_after_typed_command_opens_skill_picker(self) -> None:
        _, controller = _start(history=["/READ"])
        _feed_all(controller, UP, " ")
        assert controller.listener_owner == "skill-picker"

    def test_escape_keeps_typed_command(self) -> None:
        _, controller = _start(history=["/read"])
        _feed_all(controller, UP, "\t", ESCAPE)
        assert controller.state == "normal"
        assert controller.buffer.content == "/read"

    def test_space_after_command_without_skill_inserts(self) -> None:
        _, controller = _start(history=["/list"])
        _feed_all(controller, UP, " ")
        assert controller.state == "normal"
        assert controller.buffer.content == "/list "

    def test_command_with_args_is_not_intercepted(self) -> None:
        _, controller = _start(history=["/read pdf"])
        _feed_all(controller, UP, " ")
        assert controller.buffer.content == "/read pdf "


class TestSkillArgument:
    def _to_argument(self, command: str = "exec") -> tuple[VirtualTerminal, ModalInputController]:
        term, controller = _start()
        _feed_all(controller, "/", command, ENTER, DOWN, ENTER)
        return term, controller

    def test_exec_collects_free_text(self) -> None:
        term, controller = self._to_argument()
        assert controller.state == "awaiting_skill_argument"
        assert controller.listener_owner == "skill-argument"
        assert "  Skill: docx [cskill]" in term.output
        assert "  About: Word documents" in term.output
        assert "  Input: Type your input or press Enter to execute" in term.output
        assert "  Ctrl+C to cancel" in term.output
        assert "/exec docx " in term.output
        _feed_all(controller, "make it", ENTER)
        assert controller.result == PromptResult("/exec docx make it", "command")

    def test_refine_guidance(self) -> None:
        term, controller = self._to_argument("refi")
        assert "Describe what to improve" in term.output
        controller.feed(ENTER)
        assert controller.result == PromptResult("/refine docx", "command")

    def test_argument_editing(self) -> None:
        _, controller = self._to_argument()
        _feed_all(controller, "one two", "\x17", "three", ENTER)
        assert controller.result is not None
        assert controller.result.text == "/exec docx one three"

    def test_escape_returns_to_normal(self) -> None:
        _, controller = self._to_argument()
        _feed_all(controller, "abc", ESCAPE)
        assert controller.state == "normal"
        assert controller.listener_owner == "prompt"
        assert not controller.done

    def test_ctrl_c_abandons_only_the_command(self) -> None:
        term, controller = self._to_argument()
        _feed_all(controller, "abc", CTRL_C)
        assert controller.result == PromptResult("", "submitted")
        assert not controller.result.cancelled
        assert "Cancelled\r\n" in term.output
        assert controller.listener_owner is None

    def test_command_item_decides_follow_up(self) -> None:
        commands = [SelectorItem("/run", "Run a skill", {"needs_skill_arg": True, "needs_input": True})]
        term, controller = _start(commands=commands)
        _feed_all(controller, "/", ENTER, ENTER)
        assert controller.state == "awaiting_skill_argument"
        assert "/run pdf " in term.output
        _feed_all(controller, "fast", ENTER)
        assert controller.result == PromptResult("/run pdf fast", "command")

    def test_command_without_needs_input_resolves_on_skill(self) -> None:
        commands = [SelectorItem("/exec", "Execute", {"needs_skill_arg": True})]
        _, controller = _start(commands=commands)
        _feed_all(controller, "/", ENTER, ENTER)
        assert controller.result == PromptResult("/exec pdf", "command")

    def test_typed_command_uses_its_item(self) -> None:
        _, controller = _start(history=["/exec"])
        _feed_all(controller, UP, "\t", ENTER)
        assert controller.state == "awaiting_skill_argument"
        assert controller.listener_owner == "skill-argument"


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancel:
    def test_ctrl_c_in_normal_mode(self) -> None:
        _, controller = _start()
        _feed_all(controller, "abc", CTRL_C)
        assert controller.result is not None
        assert controller.result.cancelled
        assert controller.state == "cancelled"
        assert controller.listener_owner is None

    def test_ctrl_c_in_picker_closes_it(self) -> None:
        term, controller = _start()
        _feed_all(controller, "/", "r", CTRL_C)
        assert controller.state == "normal"
        assert controller.result is None
        assert controller.picker is None
        assert controller.buffer.content == ""
        assert controller.listener_owner == "prompt"
        assert term.cursor_visible

    def test_ctrl_c_in_skill_picker_returns_to_normal(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", "rea", ENTER, CTRL_C)
        assert controller.state == "normal"
        assert not controller.done
        _feed_all(controller, "x", ENTER)
        assert controller.result == PromptResult("x", "submitted")

    def test_ctrl_c_after_picker_cancels_prompt(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", CTRL_C, CTRL_C)
        assert controller.result == PromptResult("", "cancelled")

    def test_ctrl_c_stops_rest_of_chunk(self) -> None:
        _, controller = _start()
        controller.feed("ab\x03cd\r")
        assert controller.result == PromptResult("", "cancelled")
        assert controller.buffer.content == "ab"


# ---------------------------------------------------------------------------
# Bracketed paste
# ---------------------------------------------------------------------------


def _paste(text: str) -> str:
    return f"{BRACKETED_PASTE_START}{text}{BRACKETED_PASTE_END}"


class TestPaste:
    def test_paste_inserted_as_one_line(self) -> None:
        _, controller = _start()
        controller.feed(_paste("line one\nline two"))
        assert controller.buffer.content == "line one line two"
        assert controller.state == "normal"

    def test_pasted_enter_does_not_submit(self) -> None:
        _, controller = _start()
        controller.feed(_paste("a\r"))
        assert not controller.done
        assert controller.buffer.content == "a "

    def test_pasted_slash_does_not_open_picker(self) -> None:
        _, controller = _start()
        controller.feed(_paste("/read"))
        assert controller.state == "normal"
        assert controller.buffer.content == "/read"

    def test_multi_chunk_paste_suspends_keys(self) -> None:
        _, controller = _start()
        controller.feed(f"{BRACKETED_PASTE_START}abc")
        assert controller.state == "paste_accumulating"
        assert controller.listener_owner == "paste"
        controller.feed("\r")
        assert not controller.done
        controller.feed(f"def{BRACKETED_PASTE_END}")
        assert controller.state == "normal"
        assert controller.listener_owner == "prompt"
        assert controller.buffer.content == "abc def"

    def test_start_marker_split_across_reads(self) -> None:
        _, controller = _start()
        _feed_all(controller, "x\x1b[20", f"0~hi{BRACKETED_PASTE_END}")
        assert controller.buffer.content == "xhi"

    def test_keys_around_paste(self) -> None:
        _, controller = _start()
        controller.feed(f"ab{_paste('cd')}{ENTER}")
        assert controller.result == PromptResult("abcd", "submitted")

    def test_paste_into_picker_filter(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", _paste("ref"))
        assert controller.state == "awaiting_selector_choice"
        assert _filtered_names(controller) == ["/refine"]

    def test_paste_into_skill_argument(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", "exec", ENTER, ENTER, _paste("from\nclipboard"), ENTER)
        assert controller.result == PromptResult("/exec pdf from clipboard", "command")

    def test_multi_chunk_paste_returns_to_picker(self) -> None:
        _, controller = _start()
        _feed_all(controller, "/", f"{BRACKETED_PASTE_START}re")
        assert controller.state == "paste_accumulating"
        controller.feed(f"a{BRACKETED_PASTE_END}")
        assert controller.state == "awaiting_selector_choice"
        assert controller.listener_owner == "command-picker"
        assert _filtered_names(controller) == ["/read"]


# ---------------------------------------------------------------------------
# Listener exclusivity and raw-mode hand-off
# ---------------------------------------------------------------------------


class TestOwnership:
    def test_attaching_second_listener_raises(self) -> None:
        _, controller = _start()
        with pytest.raises(ListenerConflictError) as excinfo:
            controller._attach("intruder", lambda event: None)
        assert excinfo.value.attached == "prompt"
        assert controller.listener_owner == "prompt"

    def test_raw_mode_handed_to_each_sub_prompt(self) -> None:
        term = VirtualTerminal()
        guard = TerminalModeGuard(term)
        guard.acquire("prompt")
        _, controller = _start(terminal=term, guard=guard)

        controller.feed("/")
        assert raw_mode_owner() == "command-picker"
        _feed_all(controller, "exec", ENTER)
        assert raw_mode_owner() == "skill-picker"
        controller.feed(ENTER)
        assert raw_mode_owner() == "skill-argument"
        controller.feed(ESCAPE)
        assert raw_mode_owner() == "prompt"
        # Never dropped out of raw mode along the way
        assert term.mode_changes == ["raw"]
