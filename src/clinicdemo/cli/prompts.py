"""Numbered-menu terminal prompts.

Ctrl-C or end-of-input at any prompt raises UserAborted, which the menus
treat as "go back".
"""

from __future__ import annotations

from typing import Callable, Sequence, TypeVar

from ..fhir.display import format_duration

T = TypeVar("T")

Option = tuple[str, T]


class UserAborted(Exception):
    """The operator cancelled the current prompt."""


class Prompter:
    """Reads answers from ``input_func`` and writes to ``print_func``.

    Both default to the builtins; tests pass scripted replacements.
    """

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        print_func: Callable[..., None] = print,
    ):
        self._input = input_func
        self._print = print_func

    def _read(self, prompt: str) -> str:
        try:
            return self._input(prompt).strip()
        except (EOFError, KeyboardInterrupt):
            raise UserAborted() from None

    def echo(self, text: str = "") -> None:
        self._print(text)

    def ask(self, title: str, required: bool = False) -> str:
        while True:
            answer = self._read(f"{title}: ")
            if answer or not required:
                return answer
            self._print("  A value is required.")

    def confirm(self, title: str, description: str = "") -> bool:
        if description:
            self._print(f"{title}\n  {description}")
            answer = self._read("Continue? [y/N]: ")
        else:
            answer = self._read(f"{title} [y/N]: ")
        return answer.lower() in ("y", "yes")

    def select(
        self,
        title: str,
        options: Sequence[Option[T]],
        filtering: bool = False,
    ) -> T:
        """Pick one option by number.

        With ``filtering``, typing text instead of a number narrows the list
        to labels containing it (case-insensitive); an empty answer resets
        the filter.
        """
        if not options:
            raise ValueError("select requires at least one option")

        visible = list(options)
        while True:
            self._print(f"\n{title}")
            for i, (label, _) in enumerate(visible, 1):
                self._print(f"  {i}. {label}")

            hint = "number or text to filter" if filtering else "number"
            answer = self._read(f"Choose ({hint}): ")

            if answer.isdigit() and 1 <= int(answer) <= len(visible):
                return visible[int(answer) - 1][1]
            if filtering and answer and not answer.isdigit():
                matches = [opt for opt in options if answer.lower() in opt[0].lower()]
                if matches:
                    visible = matches
                else:
                    self._print(f"  No matches for '{answer}'.")
                    visible = list(options)
                continue
            if filtering and not answer:
                visible = list(options)
                continue
            self._print("  Invalid choice.")

    def show_error(self, message: str) -> None:
        self._print(f"\n  Error: {message}")

    def show_timing(self, note: str, elapsed_ms: float) -> None:
        self._print(f"  {note} in {format_duration(elapsed_ms / 1000)}")

    def press_enter(self) -> None:
        try:
            self._read("\nPress enter to continue...")
        except UserAborted:
            pass
