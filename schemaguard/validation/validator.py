"""Validation of generated SQL against a read-only policy and the schema.

The pipeline runs in a fixed order and the first failing check wins:

1. sanitize code fences
2. destructive-keyword policy
3. top-level SELECT form
4. structural parse (primary dialect only)
5. projection alias harvesting
6. table references
7. column references

Other dialects stop after step 2: sqlglot parses them, but the schema checks
are only maintained for the primary dialect, so they get the reduced
guarantee of sanitization plus the keyword policy.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from .policy import find_destructive_keyword, sanitize_sql, starts_with_select
from .verdict import (
    AST_FAILURE,
    DESTRUCTIVE_QUERY,
    EMPTY_QUERY,
    INVALID_SYNTAX,
    NOT_A_SELECT,
    ONLY_SELECT_STATEMENTS,
    error_sentinel,
    is_bare_sentinel,
)
from ..config import settings
from ..schema.identifiers import normalize_identifier
from ..schema.models import SchemaMetadata
from ..utils import setup_logger, shorten

logger = setup_logger(__name__)

DIALECT_ALIASES = {
    "postgresql": "postgres",
    "pg": "postgres",
    "sqlite3": "sqlite",
    "mariadb": "mysql",
}

# Statement types accepted after parsing
QUERY_TYPES = (exp.Select, exp.Union, exp.Intersect, exp.Except, exp.Subquery)


def normalize_dialect(dialect: Optional[str]) -> str:
    """Lower-case a dialect tag and map common aliases."""
    tag = (dialect or "").strip().lower()
    return DIALECT_ALIASES.get(tag, tag)


@dataclass
class SchemaIndex:
    """Case-folded lookup tables built from SchemaMetadata."""

    table_columns: Dict[str, Set[str]] = field(default_factory=dict)
    all_columns: Set[str] = field(default_factory=set)

    @classmethod
    def from_schema(cls, schema: Optional[SchemaMetadata]) -> "SchemaIndex":
        index = cls()
        if schema is None:
            return index
        for table in schema.tables:
            # Duplicate table names are merged for lookup purposes
            columns = index.table_columns.setdefault(normalize_identifier(table.name), set())
            for column in table.columns:
                key = normalize_identifier(column)
                columns.add(key)
                index.all_columns.add(key)
        return index

    def has_table(self, name: str) -> bool:
        return normalize_identifier(name) in self.table_columns

    def table_has_column(self, table: str, column: str) -> bool:
        return normalize_identifier(column) in self.table_columns.get(normalize_identifier(table), set())

    def has_column(self, column: str) -> bool:
        return normalize_identifier(column) in self.all_columns


class QueryValidator:
    """Validates candidate SQL produced by an untrusted generator."""

    def __init__(self, primary_dialect: Optional[str] = None):
        """Initialize validator.

        Args:
            primary_dialect: Dialect that gets full AST validation
                (defaults to config, normally 'postgres')
        """
        if primary_dialect is None:
            primary_dialect = settings.get("validation.primary_dialect", "postgres")
        self.primary_dialect = normalize_dialect(primary_dialect)
        self.supported_dialects = {
            normalize_dialect(d)
            for d in settings.get("validation.supported_dialects", [self.primary_dialect])
        }

    def validate(
        self,
        candidate_sql: Optional[str],
        schema: Optional[SchemaMetadata],
        dialect: Optional[str] = None,
    ) -> str:
        """Validate a candidate query.

        Args:
            candidate_sql: Raw generator output, possibly fenced or garbled
            schema: Schema the query must reference
            dialect: Target dialect tag (defaults to the primary dialect)

        Returns:
            The sanitized query when accepted, otherwise an ``-- ERROR:``
            sentinel. Never raises.
        """
        if candidate_sql is not None and not isinstance(candidate_sql, str):
            candidate_sql = str(candidate_sql)

        sql = sanitize_sql(candidate_sql)

        # An existing sentinel is a plain comment; re-validating keeps it as is
        if is_bare_sentinel(sql):
            return sql

        keyword = find_destructive_keyword(sql)
        if keyword:
            return self._reject(DESTRUCTIVE_QUERY, sql, detail=keyword)

        target = normalize_dialect(dialect) if dialect else self.primary_dialect
        if target != self.primary_dialect:
            if target not in self.supported_dialects:
                logger.warning(f"Unknown dialect '{dialect}', applying keyword policy only")
            else:
                logger.debug(f"Dialect '{target}' is not primary, skipping structural validation")
            return sql

        if not starts_with_select(sql):
            return self._reject(NOT_A_SELECT, sql)

        try:
            return self._validate_structure(sql, schema)
        except Exception as e:
            logger.error(f"Unexpected error while walking SQL AST: {type(e).__name__}: {str(e)}")
            return error_sentinel(AST_FAILURE)

    def _validate_structure(self, sql: str, schema: Optional[SchemaMetadata]) -> str:
        """Parse and check references (pipeline steps 4-8)."""
        try:
            statements = sqlglot.parse(sql, read=self.primary_dialect)
        except (ParseError, TokenError) as e:
            logger.debug(f"Parse error: {str(e)}")
            return self._reject(INVALID_SYNTAX, sql)

        statements = [stmt for stmt in statements if stmt is not None]
        if not statements:
            return self._reject(EMPTY_QUERY, sql)

        index = SchemaIndex.from_schema(schema)

        for statement in statements:
            if not isinstance(statement, QUERY_TYPES) or statement.find(exp.Into):
                return self._reject(ONLY_SELECT_STATEMENTS, sql, detail=type(statement).__name__)

            aliases = collect_select_aliases(statement)

            error = check_table_references(statement, index)
            if error is None:
                error = check_column_references(statement, index, aliases)
            if error is not None:
                return self._reject(error, sql)

        logger.info(f"Accepted query: {shorten(sql)}")
        return sql

    def _reject(self, reason: str, sql: str, detail: Optional[str] = None) -> str:
        """Log a rejection and build the sentinel."""
        suffix = f" ({detail})" if detail else ""
        logger.warning(f"Rejected query{suffix}: {reason} | {shorten(sql)}")
        return error_sentinel(reason)


def top_level_selects(statement: exp.Expression) -> List[exp.Select]:
    """Return the outermost SELECTs of a statement.

    A set operation contributes the outermost SELECT of each branch; subqueries
    nested in FROM, WHERE or the projection list are not included.
    """
    if isinstance(statement, exp.Subquery):
        return top_level_selects(statement.this)
    if isinstance(statement, (exp.Union, exp.Intersect, exp.Except)):
        return top_level_selects(statement.this) + top_level_selects(statement.expression)
    if isinstance(statement, exp.Select):
        return [statement]
    return []


def collect_select_aliases(statement: exp.Expression) -> Set[str]:
    """Collect output aliases of the statement's own projection list.

    ``SUM(a.x) AS total`` contributes ``total``; such names are query-local
    and may be referenced unqualified in ORDER BY or HAVING. Aliases defined
    inside a subquery do not exempt references in the outer query.
    """
    aliases = set()
    for select in top_level_selects(statement):
        for projection in select.expressions:
            if isinstance(projection, exp.Alias) and projection.alias:
                aliases.add(normalize_identifier(projection.alias))
    return aliases


def check_table_references(statement: exp.Expression, index: SchemaIndex) -> Optional[str]:
    """Return the reason for the first unknown table, or None."""
    for table in statement.find_all(exp.Table, bfs=False):
        # Table-valued functions such as generate_series() are not tables
        if not isinstance(table.this, exp.Identifier):
            continue
        if not index.has_table(table.name):
            return f"Table '{table.name}' not found in schema."
    return None


def check_column_references(
    statement: exp.Expression,
    index: SchemaIndex,
    aliases: Set[str],
) -> Optional[str]:
    """Return the reason for the first unknown column, or None.

    Qualifiers that are not schema table names are assumed to be table
    aliases (``FROM orders o``) and are not resolved, so ``o.anything``
    passes.
    """
    for column in statement.find_all(exp.Column, bfs=False):
        if isinstance(column.this, exp.Star):
            continue

        name = column.name
        qualifier = column.table

        if not qualifier:
            if normalize_identifier(name) in aliases:
                continue
            if not index.has_column(name):
                return f"Column '{name}' does not exist in the schema."
            continue

        if index.has_table(qualifier) and not index.table_has_column(qualifier, name):
            return f"Column '{name}' does not exist in table '{qualifier}'."
    return None


def validate_query(
    candidate_sql: Optional[str],
    schema: Optional[SchemaMetadata],
    dialect: Optional[str] = None,
) -> str:
    """Validate ``candidate_sql`` against ``schema``. Never raises.

    Returns the sanitized query when it is read-only and references only
    known tables and columns, otherwise an ``-- ERROR:`` sentinel.
    """
    return QueryValidator().validate(candidate_sql, schema, dialect)


def validate_queries(
    candidates: List[str],
    schema: Optional[SchemaMetadata],
    dialect: Optional[str] = None,
) -> List[str]:
    """Validate several candidates against the same schema, in order."""
    validator = QueryValidator()
    return [validator.validate(sql, schema, dialect) for sql in candidates]
