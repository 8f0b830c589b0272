"""Directive model for declarative configuration reconciliation."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _check_regex(pattern: str) -> None:
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"invalid pattern {pattern!r}: {exc}") from exc


class Presence(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class MatchMode(str, Enum):
    REGEX = "regex"
    EXACT = "exact"


class AnchorKind(str, Enum):
    AFTER = "after"
    BEFORE = "before"
    START = "start"
    END = "end"


class Outcome(str, Enum):
    INSERTED = "inserted"
    REPLACED = "replaced"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


class Anchor(BaseModel):
    """Where to insert a directive that has no existing line.

    ``after``/``before`` anchors are resolved to the first line matching
    ``pattern``; ``start``/``end`` refer to the document boundaries.
    """

    model_config = ConfigDict(frozen=True)

    kind: AnchorKind = AnchorKind.END
    pattern: str | None = None

    @model_validator(mode="after")
    def _check_pattern(self) -> Anchor:
        if self.kind in (AnchorKind.AFTER, AnchorKind.BEFORE):
            if not self.pattern:
                raise ValueError(f"{self.kind.value!r} anchor requires a pattern")
            _check_regex(self.pattern)
        return self

    @classmethod
    def after(cls, pattern: str) -> Anchor:
        return cls(kind=AnchorKind.AFTER, pattern=pattern)

    @classmethod
    def before(cls, pattern: str) -> Anchor:
        return cls(kind=AnchorKind.BEFORE, pattern=pattern)

    @classmethod
    def start(cls) -> Anchor:
        return cls(kind=AnchorKind.START)

    @classmethod
    def end(cls) -> Anchor:
        return cls(kind=AnchorKind.END)

    def locate(self, lines: list[str]) -> int | None:
        """Return the index of the anchor line, or None if it is missing."""
        if self.pattern is None:
            return None
        rx = re.compile(self.pattern)
        for index, line in enumerate(lines):
            if rx.search(line):
                return index
        return None

    def describe(self) -> str:
        if self.pattern is None:
            return f"document {self.kind.value}"
        return f"{self.kind.value} /{self.pattern}/"


class Directive(BaseModel):
    """A single desired configuration fact."""

    model_config = ConfigDict(frozen=True)

    match_pattern: str
    desired_line: str = ""
    anchor: Anchor = Field(default_factory=Anchor.end)
    presence: Presence = Presence.PRESENT
    match_mode: MatchMode = MatchMode.REGEX
    # False: an existing line is kept whatever its value (insert-if-missing)
    replace_existing: bool = True
    name: str = ""

    @model_validator(mode="after")
    def _check(self) -> Directive:
        if self.match_mode is MatchMode.REGEX:
            _check_regex(self.match_pattern)
        if self.presence is Presence.PRESENT and not self.desired_line.strip():
            raise ValueError("a present directive needs a desired_line")
        if self.presence is Presence.PRESENT and not self.matches(self.desired_line):
            # otherwise every run would insert the line again
            raise ValueError(
                f"desired_line {self.desired_line!r} does not match {self.match_pattern!r}"
            )
        return self

    @property
    def label(self) -> str:
        return self.name or self.desired_line.strip() or self.match_pattern

    def matches(self, line: str) -> bool:
        if self.match_mode is MatchMode.EXACT:
            return line.strip() == self.match_pattern.strip()
        return re.search(self.match_pattern, line) is not None


class DirectiveOutcome(BaseModel):
    name: str
    outcome: Outcome


class ReconciliationResult(BaseModel):
    """New document text plus what happened to each directive."""

    text: str
    outcomes: list[DirectiveOutcome] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return any(o.outcome is not Outcome.UNCHANGED for o in self.outcomes)

    @property
    def all_unchanged(self) -> bool:
        return not self.changed

    def outcome_of(self, name: str) -> Outcome:
        for o in self.outcomes:
            if o.name == name:
                return o.outcome
        raise KeyError(name)

    def summary(self) -> dict[str, int]:
        counts = {o.value: 0 for o in Outcome}
        for o in self.outcomes:
            counts[o.outcome.value] += 1
        return counts
