"""Prompt capability: the only way the engine asks the user anything.

Three implementations:
- InteractivePrompter reads numbered answers from stdin.
- DefaultPrompter answers without asking (first choice, given default).
- ScriptedPrompter replays queued answers, for automation and tests.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable
from typing import Protocol

from skillsync.models import Choice


class PromptCancelledError(Exception):
    """Raised when the user closes input instead of answering."""


class Prompter(Protocol):
    def choose(self, message: str, choices: list[Choice]) -> str: ...

    def confirm(self, message: str, default: bool = False) -> bool: ...

    def choose_many(self, message: str, options: list[str], selected: list[str]) -> list[str]: ...


class InteractivePrompter:
    def __init__(self, input_fn: Callable[[str], str] | None = None) -> None:
        self._input = input_fn

    def _ask(self, prompt: str) -> str:
        read = self._input or input
        try:
            return read(prompt).strip()
        except EOFError:
            raise PromptCancelledError("input closed") from None

    def choose(self, message: str, choices: list[Choice]) -> str:
        print(message)
        for i, choice in enumerate(choices, 1):
            print(f"  {i}) {choice.label}")
        while True:
            answer = self._ask(f"Choice [1-{len(choices)}] (default: 1): ")
            if not answer:
                return choices[0].value
            if answer.isdigit() and 1 <= int(answer) <= len(choices):
                return choices[int(answer) - 1].value
            print(f"Please enter a number between 1 and {len(choices)}")

    def confirm(self, message: str, default: bool = False) -> bool:
        hint = "[Y/n]" if default else "[y/N]"
        answer = self._ask(f"{message} {hint} ").lower()
        if not answer:
            return default
        return answer.startswith("y")

    def choose_many(self, message: str, options: list[str], selected: list[str]) -> list[str]:
        print(message)
        for i, option in enumerate(options, 1):
            mark = "x" if option in selected else " "
            print(f"  {i}) [{mark}] {option}")
        default = ",".join(str(options.index(s) + 1) for s in selected if s in options)
        while True:
            answer = self._ask(f"Numbers, comma-separated (default: {default or 'none'}): ")
            if not answer:
                answer = default
            picks = [p.strip() for p in answer.split(",") if p.strip()]
            if picks and all(p.isdigit() and 1 <= int(p) <= len(options) for p in picks):
                return [options[int(p) - 1] for p in dict.fromkeys(picks)]
            print("Please select at least one assistant")


class DefaultPrompter:
    """Never asks: first choice, the given default, the pre-selection."""

    def choose(self, message: str, choices: list[Choice]) -> str:
        return choices[0].value

    def confirm(self, message: str, default: bool = False) -> bool:
        return default

    def choose_many(self, message: str, options: list[str], selected: list[str]) -> list[str]:
        return list(selected) if selected else list(options[:1])


class ScriptedPrompter:
    """Replays answers in order and records every question asked."""

    def __init__(self, answers: Iterable[object] = ()) -> None:
        self._answers: deque[object] = deque(answers)
        self.calls: list[tuple[str, str, list[str]]] = []

    def _next(self, kind: str, message: str, options: list[str]) -> object:
        self.calls.append((kind, message, options))
        if not self._answers:
            raise AssertionError(f"No scripted answer for {kind}: {message}")
        return self._answers.popleft()

    @property
    def remaining(self) -> int:
        return len(self._answers)

    def choose(self, message: str, choices: list[Choice]) -> str:
        values = [c.value for c in choices]
        answer = self._next("choose", message, values)
        if answer not in values:
            raise AssertionError(f"Scripted answer {answer!r} not offered: {values}")
        return str(answer)

    def confirm(self, message: str, default: bool = False) -> bool:
        return bool(self._next("confirm", message, []))

    def choose_many(self, message: str, options: list[str], selected: list[str]) -> list[str]:
        answer = self._next("choose_many", message, options)
        if not isinstance(answer, list):
            raise AssertionError(f"Scripted answer for {message!r} must be a list")
        return [str(a) for a in answer]
