"""Numbered interactive menus built from a table of named operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from vboot import output, prompts
from vboot.errors import PreconditionError, VbootError


@dataclass
class MenuItem:
    label: str
    handler: Callable[[], Any]


class Menu:
    """Items are numbered from 1 in table order; the last number leaves the menu."""

    def __init__(
        self,
        title: str,
        items: list[MenuItem],
        *,
        exit_label: str = "Exit",
        pause_after: bool = False,
    ):
        self.title = title
        self.items = items
        self.exit_label = exit_label
        self.pause_after = pause_after
        self.table: dict[str, MenuItem] = {str(i): item for i, item in enumerate(items, start=1)}
        self.exit_key = str(len(items) + 1)

    def render(self) -> None:
        output.console.print()
        output.rule(self.title)
        for key, item in self.table.items():
            output.console.print(f"  {key}) {item.label}")
        output.console.print(f"  {self.exit_key}) {self.exit_label}")
        output.console.print()

    def dispatch(self, choice: str) -> bool:
        """Run the handler for ``choice``. False means leave the menu.

        Handler failures, including filesystem errors, are reported and the
        operator stays in the menu; precondition failures propagate.
        """
        choice = choice.strip()
        if choice == self.exit_key:
            return False
        item = self.table.get(choice)
        if item is None:
            output.warning(f"Invalid choice. Please select 1-{self.exit_key}.")
            return True
        try:
            item.handler()
        except PreconditionError:
            raise
        except VbootError as exc:
            output.error(str(exc))
        except OSError as exc:
            output.error(f"{item.label} failed: {exc}")
        return True

    def run(self, *, once: bool = False) -> None:
        """Loop until the exit entry is chosen (or after one choice if ``once``)."""
        while True:
            self.render()
            choice = prompts.ask_optional(f"Choose an option (1-{self.exit_key})")
            keep_going = self.dispatch(choice)
            if not keep_going or once:
                return
            if self.pause_after:
                prompts.pause()
