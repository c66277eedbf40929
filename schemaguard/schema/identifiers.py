"""Identifier cleaning shared by the schema extractor and the query validator."""

import re
from typing import List

# Characters used to quote identifiers across dialects
QUOTE_CHARS_PATTERN = re.compile(r"[\"'`\[\]]")

# One identifier part: quoted in any style, or a bare run of name characters
IDENTIFIER_PART = r"(?:\"[^\"]*\"|`[^`]*`|'[^']*'|\[[^\]]*\]|[^\s(),.;\"'`\[\]]+)"

# Dotted, possibly quoted name such as public."Users" or `db`.`orders`
QUALIFIED_NAME = rf"{IDENTIFIER_PART}(?:\s*\.\s*{IDENTIFIER_PART})*"

_PART_RE = re.compile(IDENTIFIER_PART)


def strip_quotes(name: str) -> str:
    """Remove quoting characters and surrounding whitespace from an identifier."""
    return QUOTE_CHARS_PATTERN.sub("", name).strip()


def split_qualified(name: str) -> List[str]:
    """Split a dotted name into its quote-stripped parts.

    Dots inside quoted parts are not treated as separators.
    """
    return [strip_quotes(part) for part in _PART_RE.findall(name) if strip_quotes(part)]


def bare_name(name: str) -> str:
    """Return the last part of a possibly schema-qualified name.

    The qualifier is discarded, so ``public.users`` and ``users`` both
    become ``users``.
    """
    parts = split_qualified(name)
    if parts:
        return parts[-1]
    return strip_quotes(name)


def first_identifier(column_list: str) -> str:
    """Return the first column of a parenthesised column list body.

    Composite keys are represented by their first column only.
    """
    return strip_quotes(column_list.split(",")[0])


def normalize_identifier(name: str) -> str:
    """Case-fold a quote-stripped identifier for lookups."""
    return strip_quotes(name).lower()


def format_relation(
    source_table: str,
    source_column: str,
    target_table: str,
    target_column: str,
) -> str:
    """Render a foreign-key edge as 'Source.col -> Target.col'."""
    return f"{source_table}.{source_column} -> {target_table}.{target_column}"
