"""Sentinel strings returned by the query validator.

A rejected query is reported as a SQL comment (``-- ERROR: ...`` or
``-- INFO: ...``) so that it can flow through any code expecting SQL text.
``Verdict`` gives callers a structured view of a validator output.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..utils import ValidationError

ERROR_PREFIX = "-- ERROR:"
INFO_PREFIX = "-- INFO:"

LINE_BREAK_PATTERN = re.compile(r"[\r\n]")

DESTRUCTIVE_QUERY = "Destructive queries are not permitted."
NOT_A_SELECT = "Query must start with SELECT."
INVALID_SYNTAX = "Invalid SQL syntax."
EMPTY_QUERY = "Empty query."
ONLY_SELECT_STATEMENTS = "Only SELECT statements are permitted."
AST_FAILURE = "Failed to parse SQL AST tree."


class VerdictKind(Enum):
    """Outcome category of a validated query."""
    ACCEPTED = "accepted"
    ERROR = "error"
    INFO = "info"


def error_sentinel(reason: str) -> str:
    """Build an ``-- ERROR:`` sentinel."""
    return f"{ERROR_PREFIX} {reason}"


def info_sentinel(reason: str) -> str:
    """Build an ``-- INFO:`` sentinel."""
    return f"{INFO_PREFIX} {reason}"


def sentinel_kind(text: str) -> Optional[VerdictKind]:
    """Return ERROR or INFO when ``text`` starts with a sentinel prefix.

    Matching is case-insensitive and does not require the colon, so
    ``-- error something`` also counts.
    """
    head = (text or "").lstrip().upper()
    if head.startswith("-- ERROR"):
        return VerdictKind.ERROR
    if head.startswith("-- INFO"):
        return VerdictKind.INFO
    return None


def is_sentinel(text: str) -> bool:
    """True when ``text`` starts with an ERROR or INFO sentinel prefix."""
    return sentinel_kind(text) is not None


def is_bare_sentinel(text: str) -> bool:
    """True for a single-line sentinel, i.e. nothing but a comment.

    A bare carriage return also ends a line comment, so any line break
    disqualifies the text.
    """
    return is_sentinel(text) and LINE_BREAK_PATTERN.search(text.strip()) is None


@dataclass(frozen=True)
class Verdict:
    """Structured view of a validator output string."""

    kind: VerdictKind
    sql: str
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.kind == VerdictKind.ACCEPTED

    @classmethod
    def from_output(cls, output: str) -> "Verdict":
        """Parse a string returned by ``validate_query``.

        Args:
            output: Accepted SQL or a sentinel comment

        Returns:
            Verdict with the reason text extracted for sentinels
        """
        text = (output or "").strip()
        kind = sentinel_kind(text)
        if kind is None:
            return cls(kind=VerdictKind.ACCEPTED, sql=text)

        first_line = text.splitlines()[0]
        prefix_length = len("-- ERROR") if kind == VerdictKind.ERROR else len("-- INFO")
        reason = first_line[prefix_length:].lstrip(":").strip()
        return cls(kind=kind, sql=text, reason=reason or None)

    def raise_for_error(self) -> None:
        """Raise ValidationError if this verdict is an error."""
        if self.kind == VerdictKind.ERROR:
            raise ValidationError(self.reason or "Query rejected", sentinel=self.sql)
