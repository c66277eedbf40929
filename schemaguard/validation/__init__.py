"""Query validation module."""

from .verdict import (
    ERROR_PREFIX,
    INFO_PREFIX,
    Verdict,
    VerdictKind,
    error_sentinel,
    info_sentinel,
    is_sentinel,
)
from .policy import DESTRUCTIVE_KEYWORDS, sanitize_sql, find_destructive_keyword
from .validator import QueryValidator, SchemaIndex, validate_query, validate_queries

__all__ = [
    "ERROR_PREFIX",
    "INFO_PREFIX",
    "Verdict",
    "VerdictKind",
    "error_sentinel",
    "info_sentinel",
    "is_sentinel",
    "DESTRUCTIVE_KEYWORDS",
    "sanitize_sql",
    "find_destructive_keyword",
    "QueryValidator",
    "SchemaIndex",
    "validate_query",
    "validate_queries",
]
