"""Text-level checks that run before any parsing.

These are textual heuristics on purpose: they must also catch destructive
statements that are too broken to parse.
"""

import re
from typing import Optional

from .verdict import is_sentinel

DESTRUCTIVE_KEYWORDS = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "ALTER",
    "TRUNCATE",
    "CREATE",
    "GRANT",
    "REVOKE",
)

_KEYWORD_ALTERNATION = "|".join(DESTRUCTIVE_KEYWORDS)

# Keyword as the leading text of the query
LEADING_DESTRUCTIVE_PATTERN = re.compile(rf"^\s*({_KEYWORD_ALTERNATION})", re.IGNORECASE)

# Keyword as a word followed by whitespace anywhere in the query
EMBEDDED_DESTRUCTIVE_PATTERN = re.compile(rf"\b({_KEYWORD_ALTERNATION})\s", re.IGNORECASE)

# Opening fence, optionally tagged with a language name on its own line
FENCE_OPEN_PATTERN = re.compile(r"^```(?:[\w+-]*[ \t]*\r?\n|sql\b)?", re.IGNORECASE)
FENCE_CLOSE_PATTERN = re.compile(r"```$")


def sanitize_sql(raw_sql: Optional[str]) -> str:
    """Strip markdown code-fence markers and surrounding whitespace.

    Only a leading and a trailing fence are removed; backticks elsewhere in
    the query are left alone.
    """
    text = (raw_sql or "").strip()
    text = FENCE_OPEN_PATTERN.sub("", text, count=1)
    text = FENCE_CLOSE_PATTERN.sub("", text.rstrip(), count=1)
    return text.strip()


def find_destructive_keyword(sql: str) -> Optional[str]:
    """Return the first destructive keyword found in ``sql``, upper-cased.

    Returns None when the query contains none of DESTRUCTIVE_KEYWORDS either
    at the start or followed by whitespace.
    """
    match = LEADING_DESTRUCTIVE_PATTERN.match(sql) or EMBEDDED_DESTRUCTIVE_PATTERN.search(sql)
    if match:
        return match.group(1).upper()
    return None


def starts_with_select(sql: str) -> bool:
    """True when the query starts with SELECT or is already a sentinel."""
    return sql.lstrip().upper().startswith("SELECT") or is_sentinel(sql)
