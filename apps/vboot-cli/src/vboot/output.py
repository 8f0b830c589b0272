"""Operator-facing output, mirrored to the installation log."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.markup import escape

console = Console(highlight=False)
log = logging.getLogger("vboot")

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(log_file: Path | None, *, level: int = logging.INFO) -> None:
    """Append vboot messages to ``log_file`` (human readable, never truncated)."""
    log.setLevel(level)
    for handler in list(log.handlers):
        if isinstance(handler, logging.FileHandler):
            log.removeHandler(handler)
            handler.close()
    if log_file is None:
        return
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    except OSError as exc:
        console.print(f"[yellow][WARNING][/yellow] Cannot write log file {escape(str(log_file))}: {exc}")
        return
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    log.addHandler(handler)


def info(message: str) -> None:
    console.print(f"[blue][INFO][/blue]    {escape(message)}")
    log.info(message)


def success(message: str) -> None:
    console.print(f"[green][SUCCESS][/green] {escape(message)}")
    log.info(message)


def warning(message: str) -> None:
    console.print(f"[yellow][WARNING][/yellow] {escape(message)}")
    log.warning(message)


def error(message: str) -> None:
    console.print(f"[red][ERROR][/red]   {escape(message)}")
    log.error(message)


def rule(title: str) -> None:
    console.rule(f"[bold]{escape(title)}[/bold]")
