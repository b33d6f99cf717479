"""Tests for prompts.py."""

from __future__ import annotations

import pytest

from skillsync.models import Choice
from skillsync.prompts import DefaultPrompter, InteractivePrompter, PromptCancelledError, ScriptedPrompter

_CHOICES = [Choice(label="First", value="one"), Choice(label="Second", value="two")]


def _answers(*values: str):
    queue = list(values)

    def _input(prompt: str) -> str:
        return queue.pop(0)

    return _input


class TestInteractivePrompter:
    def test_choose_by_number(self, capsys):
        assert InteractivePrompter(_answers("2")).choose("Pick", _CHOICES) == "two"
        out = capsys.readouterr().out
        assert "  1) First" in out
        assert "  2) Second" in out

    def test_choose_default_and_retry(self, capsys):
        assert InteractivePrompter(_answers("9", "")).choose("Pick", _CHOICES) == "one"
        assert "between 1 and 2" in capsys.readouterr().out

    @pytest.mark.parametrize(
        ("answer", "default", "expected"),
        [("y", False, True), ("no", True, False), ("", True, True), ("", False, False)],
    )
    def test_confirm(self, answer, default, expected):
        assert InteractivePrompter(_answers(answer)).confirm("Create?", default) is expected

    def test_choose_many(self):
        prompter = InteractivePrompter(_answers("", "3,1,3"))
        assert prompter.choose_many("Select", ["a", "b", "c"], ["b"]) == ["b"]
        assert prompter.choose_many("Select", ["a", "b", "c"], []) == ["c", "a"]

    def test_closed_input(self):
        def _closed(prompt: str) -> str:
            raise EOFError

        with pytest.raises(PromptCancelledError):
            InteractivePrompter(_closed).confirm("Create?")


class TestDefaultPrompter:
    def test_defaults(self):
        prompter = DefaultPrompter()
        assert prompter.choose("Pick", _CHOICES) == "one"
        assert prompter.confirm("Create?") is False
        assert prompter.confirm("Create?", default=True) is True
        assert prompter.choose_many("Select", ["a", "b"], []) == ["a"]
        assert prompter.choose_many("Select", ["a", "b"], ["b"]) == ["b"]


class TestScriptedPrompter:
    def test_records_calls(self):
        prompter = ScriptedPrompter(["two", True])
        assert prompter.choose("Pick", _CHOICES) == "two"
        assert prompter.confirm("Create?") is True
        assert prompter.calls == [("choose", "Pick", ["one", "two"]), ("confirm", "Create?", [])]
        assert prompter.remaining == 0

    def test_runs_out(self):
        with pytest.raises(AssertionError, match="No scripted answer"):
            ScriptedPrompter().confirm("Create?")
