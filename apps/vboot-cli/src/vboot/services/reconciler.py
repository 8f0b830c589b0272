"""Declarative directive reconciler for line-oriented config files.

Given a document and an ordered list of directives, produce a new document in
which each ``present`` directive occurs exactly once in its desired form and
each ``absent`` directive does not occur at all. Lines not matched by any
directive are kept verbatim and in order.

Insertions that share an anchor accumulate next to it in directive order: the
first inserted line sits directly after (or before) the anchor line, the next
one follows it, and so on. Anchors are resolved against the document as it
stands at insertion time, not the original input.
"""

from __future__ import annotations

import logging
from typing import Iterable

from vboot_common import (
    Anchor,
    AnchorKind,
    Directive,
    DirectiveOutcome,
    Outcome,
    Presence,
    ReconciliationResult,
)

from vboot.errors import AnchorNotFoundError

log = logging.getLogger(__name__)


class ConfigurationDocument:
    """An ordered sequence of lines plus the file's trailing-newline state."""

    def __init__(self, lines: list[str] | None = None, *, trailing_newline: bool = True):
        self.lines = list(lines or [])
        self.trailing_newline = trailing_newline

    @classmethod
    def from_text(cls, text: str) -> ConfigurationDocument:
        if not text:
            return cls([], trailing_newline=True)
        trailing = text.endswith("\n")
        lines = text.split("\n")
        if trailing:
            lines.pop()
        return cls(lines, trailing_newline=trailing)

    def to_text(self) -> str:
        if not self.lines:
            return ""
        text = "\n".join(self.lines)
        return text + "\n" if self.trailing_newline else text

    def __len__(self) -> int:
        return len(self.lines)


class _Pass:
    """Mutable state of one reconciliation pass."""

    def __init__(self, doc: ConfigurationDocument):
        self.lines = doc.lines
        # anchor -> index where its next insertion goes
        self.cursors: dict[Anchor, int] = {}

    def matching(self, directive: Directive) -> list[int]:
        return [i for i, line in enumerate(self.lines) if directive.matches(line)]

    def delete(self, indexes: list[int]) -> None:
        for index in sorted(indexes, reverse=True):
            del self.lines[index]
            for anchor, cursor in self.cursors.items():
                if cursor > index:
                    self.cursors[anchor] = cursor - 1

    def insert(self, directive: Directive) -> int:
        anchor = directive.anchor
        pos = self._insertion_point(directive)
        self.lines.insert(pos, directive.desired_line)
        for other, cursor in self.cursors.items():
            if cursor > pos:
                self.cursors[other] = cursor + 1
        if anchor.kind is not AnchorKind.END:
            self.cursors[anchor] = pos + 1
        return pos

    def _insertion_point(self, directive: Directive) -> int:
        anchor = directive.anchor
        if anchor.kind is AnchorKind.END:
            return len(self.lines)
        if anchor.kind is AnchorKind.START:
            return self.cursors.get(anchor, 0)

        found = anchor.locate(self.lines)
        if found is None:
            raise AnchorNotFoundError(
                f"Cannot insert {directive.label!r}: anchor {anchor.describe()} not found"
            )
        if anchor in self.cursors:
            return self.cursors[anchor]
        return found + 1 if anchor.kind is AnchorKind.AFTER else found


def reconcile(
    document: str | ConfigurationDocument,
    directives: Iterable[Directive],
) -> ReconciliationResult:
    """Bring ``document`` in line with ``directives``.

    Pure: the input is never modified. Raises AnchorNotFoundError when a
    present directive has no existing line and nowhere to be inserted.
    """
    if isinstance(document, ConfigurationDocument):
        doc = ConfigurationDocument(document.lines, trailing_newline=document.trailing_newline)
    else:
        doc = ConfigurationDocument.from_text(document)

    state = _Pass(doc)
    outcomes: list[DirectiveOutcome] = []

    for directive in directives:
        matched = state.matching(directive)

        if directive.presence is Presence.ABSENT:
            if matched:
                state.delete(matched)
                outcome = Outcome.REMOVED
            else:
                outcome = Outcome.UNCHANGED

        elif not matched:
            state.insert(directive)
            outcome = Outcome.INSERTED

        elif not directive.replace_existing:
            outcome = Outcome.UNCHANGED

        else:
            first, extra = matched[0], matched[1:]
            outcome = Outcome.UNCHANGED
            if state.lines[first] != directive.desired_line:
                state.lines[first] = directive.desired_line
                outcome = Outcome.REPLACED
            if extra:
                state.delete(extra)
                outcome = Outcome.REPLACED

        log.debug("directive %s: %s", directive.label, outcome.value)
        outcomes.append(DirectiveOutcome(name=directive.label, outcome=outcome))

    return ReconciliationResult(text=doc.to_text(), outcomes=outcomes)
