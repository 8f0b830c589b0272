"""Interactive prompts with validation and re-prompting."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypeVar

import typer

from vboot_common import is_valid_domain

from vboot import output
from vboot.errors import VbootError

T = TypeVar("T")


def ask(text: str, default: str | None = None, *, hide_input: bool = False) -> str:
    return typer.prompt(text, default=default, hide_input=hide_input, show_default=default is not None)


def ask_nonempty(text: str) -> str:
    while True:
        value = typer.prompt(text, default="", show_default=False).strip()
        if value:
            return value
        output.warning("Value cannot be empty.")


def ask_optional(text: str) -> str:
    return typer.prompt(text, default="", show_default=False).strip()


def confirm(text: str, default: bool = False) -> bool:
    return typer.confirm(text, default=default)


def ask_validated(text: str, parse: Callable[[str], T]) -> T:
    """Prompt until ``parse`` accepts the input (it raises VbootError or ValueError)."""
    while True:
        raw = ask_nonempty(text)
        try:
            return parse(raw)
        except (VbootError, ValueError) as exc:
            output.error(str(exc))


def ask_domain() -> str:
    while True:
        domain = ask_optional("Enter domain name (e.g., example.com)")
        if is_valid_domain(domain):
            output.success(f"Domain validated: {domain}")
            return domain
        output.error("Invalid domain name. Please try again.")


def ask_path(text: str, default: Path) -> Path:
    value = ask_optional(f"{text} (default: {default})")
    return Path(value).expanduser() if value else default


def choose(text: str, options: list[str]) -> int | None:
    """Show a numbered list and return the 0-based selection, None if invalid."""
    for i, option in enumerate(options, start=1):
        output.console.print(f"  {i}. {option}")
    raw = ask_optional(text)
    if raw.isdigit() and 1 <= int(raw) <= len(options):
        return int(raw) - 1
    return None


def pause() -> None:
    typer.prompt("Press Enter to continue", default="", show_default=False)
