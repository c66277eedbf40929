"""Unit tests for query validation."""

import pytest
from schemaguard.schema.models import SchemaMetadata
from schemaguard.utils import ValidationError
from schemaguard.validation import (
    DESTRUCTIVE_KEYWORDS,
    QueryValidator,
    Verdict,
    VerdictKind,
    error_sentinel,
    find_destructive_keyword,
    info_sentinel,
    is_sentinel,
    sanitize_sql,
    validate_query,
)
from schemaguard.validation.validator import validate_queries
from schemaguard.validation.verdict import is_bare_sentinel

DESTRUCTIVE = "-- ERROR: Destructive queries are not permitted."
NOT_SELECT = "-- ERROR: Query must start with SELECT."
INVALID_SYNTAX = "-- ERROR: Invalid SQL syntax."


class TestSanitize:
    """Test cases for code-fence stripping."""

    @pytest.mark.parametrize("raw, expected", [
        ("```sql\nSELECT id FROM users\n```", "SELECT id FROM users"),
        ("```SQL\nSELECT id FROM users```", "SELECT id FROM users"),
        ("```\nSELECT 1\n```", "SELECT 1"),
        ("```postgresql\n  SELECT 1  \n```\n", "SELECT 1"),
        ("```SELECT 1```", "SELECT 1"),
        ("```sql SELECT 1```", "SELECT 1"),
        ("   SELECT 1\n\n", "SELECT 1"),
        (None, ""),
    ])
    def test_sanitize_sql(self, raw, expected):
        assert sanitize_sql(raw) == expected


class TestDestructivePolicy:
    """Test cases for the destructive keyword heuristic."""

    @pytest.mark.parametrize("keyword", DESTRUCTIVE_KEYWORDS)
    def test_leading_keyword_is_blocked(self, keyword, shop_schema):
        """Test every blocked keyword at the start of the query, in any case."""
        for candidate in (f"{keyword} something", f"{keyword.lower()} x", keyword.capitalize()):
            assert validate_query(candidate, shop_schema, "postgres") == DESTRUCTIVE

    @pytest.mark.parametrize("keyword", DESTRUCTIVE_KEYWORDS)
    def test_blocked_for_every_dialect(self, keyword, shop_schema):
        for dialect in ("postgres", "mysql", "sqlite", "duckdb"):
            assert validate_query(f"{keyword} TABLE users", shop_schema, dialect) == DESTRUCTIVE

    def test_embedded_statement_is_blocked(self, shop_schema):
        sql = "SELECT * FROM users; DROP TABLE users"
        assert validate_query(sql, shop_schema) == DESTRUCTIVE

    def test_broken_destructive_statement_is_blocked(self, shop_schema):
        """Test the keyword check runs before parsing."""
        assert validate_query("```sql\nDELETE FROM WHERE ((\n```", shop_schema) == DESTRUCTIVE

    def test_column_names_containing_keywords(self):
        assert find_destructive_keyword("SELECT updated_at, created_by FROM users") is None
        assert find_destructive_keyword("SELECT last_update FROM t") is None
        assert find_destructive_keyword("select 1;\ndelete\tfrom t") == "DELETE"


class TestQueryValidator:
    """Test cases for the primary-dialect validation pipeline."""

    def test_valid_query_is_returned_unchanged(self, shop_schema):
        sql = "SELECT id, username FROM users WHERE email LIKE '%@example.com' ORDER BY id"
        assert validate_query(sql, shop_schema, "postgres") == sql

    def test_fenced_query_is_sanitized(self, shop_schema):
        raw = "```sql\nSELECT id FROM users\n```"
        assert validate_query(raw, shop_schema) == "SELECT id FROM users"

    def test_case_insensitive_references(self, shop_schema):
        sql = 'SELECT "ID", Username FROM USERS'
        assert validate_query(sql, shop_schema) == sql

    def test_join_with_table_aliases(self, shop_schema):
        """Test qualifiers that are aliases are not resolved."""
        sql = (
            "SELECT u.username, SUM(o.total) AS spent "
            "FROM users u JOIN orders o ON o.user_id = u.id "
            "GROUP BY u.username ORDER BY spent DESC LIMIT 10"
        )
        assert validate_query(sql, shop_schema) == sql

    def test_alias_exemption(self, shop_schema):
        """Test ORDER BY on a projection alias is not an unknown column."""
        sql = "SELECT SUM(a.x * a.y) AS total FROM t a ORDER BY total"
        assert validate_query(sql, shop_schema, "postgres") == sql

    def test_alias_in_having(self, shop_schema):
        sql = "SELECT user_id, COUNT(*) AS n FROM orders GROUP BY user_id HAVING n > 1"
        assert validate_query(sql, shop_schema) == sql

    def test_star_projections(self, shop_schema):
        for sql in (
            "SELECT * FROM users",
            "SELECT u.* FROM users u",
            "SELECT users.* FROM users",
            "SELECT COUNT(*) FROM orders",
        ):
            assert validate_query(sql, shop_schema) == sql

    def test_subquery(self, shop_schema):
        sql = (
            "SELECT username FROM users WHERE id IN "
            "(SELECT user_id FROM orders WHERE total > 100)"
        )
        assert validate_query(sql, shop_schema) == sql

    def test_unknown_table(self, shop_schema):
        assert validate_query("SELECT id FROM ghosts", shop_schema) == (
            "-- ERROR: Table 'ghosts' not found in schema."
        )

    def test_unknown_joined_table(self, shop_schema):
        sql = "SELECT u.id FROM users u JOIN payments p ON p.user_id = u.id"
        assert validate_query(sql, shop_schema) == "-- ERROR: Table 'payments' not found in schema."

    def test_table_check_precedes_column_check(self, shop_schema):
        assert validate_query("SELECT bogus FROM ghosts", shop_schema) == (
            "-- ERROR: Table 'ghosts' not found in schema."
        )

    def test_schema_qualified_table(self, shop_schema):
        sql = "SELECT id FROM public.users"
        assert validate_query(sql, shop_schema) == sql

    def test_unknown_unqualified_column(self, shop_schema):
        assert validate_query("SELECT bogus FROM users", shop_schema) == (
            "-- ERROR: Column 'bogus' does not exist in the schema."
        )

    def test_unknown_qualified_column(self, shop_schema):
        assert validate_query("SELECT users.total FROM users", shop_schema) == (
            "-- ERROR: Column 'total' does not exist in table 'users'."
        )

    def test_column_from_another_table_unqualified(self, shop_schema):
        """Test unqualified columns only need to exist somewhere in the schema."""
        sql = "SELECT total FROM users"
        assert validate_query(sql, shop_schema) == sql

    def test_qualified_alias_is_not_exempt(self, shop_schema):
        sql = "SELECT COUNT(*) AS total FROM users ORDER BY users.total"
        assert validate_query(sql, shop_schema) == (
            "-- ERROR: Column 'total' does not exist in table 'users'."
        )

    def test_first_error_wins(self, shop_schema):
        sql = "SELECT first_bad, second_bad FROM users"
        assert validate_query(sql, shop_schema) == (
            "-- ERROR: Column 'first_bad' does not exist in the schema."
        )

    @pytest.mark.parametrize("sql", [
        "SHOW TABLES",
        "WITH x AS (SELECT 1) SELECT * FROM x",
        "EXPLAIN SELECT * FROM users",
        "",
        "   ",
    ])
    def test_must_start_with_select(self, sql, shop_schema):
        assert validate_query(sql, shop_schema) == NOT_SELECT

    def test_none_candidate(self, shop_schema):
        assert validate_query(None, shop_schema) == NOT_SELECT

    def test_invalid_syntax(self, shop_schema):
        assert validate_query("SELECT (id FROM users", shop_schema) == INVALID_SYNTAX

    def test_select_into_is_rejected(self, shop_schema):
        assert validate_query("SELECT id INTO backup FROM users", shop_schema) == (
            "-- ERROR: Only SELECT statements are permitted."
        )

    def test_table_function_is_not_a_table(self, shop_schema):
        sql = "SELECT 1 FROM generate_series(1, 3)"
        assert validate_query(sql, shop_schema) == sql

    def test_subquery_alias_does_not_exempt_outer_column(self, shop_schema):
        sql = "SELECT bogus FROM users WHERE id IN (SELECT user_id AS bogus FROM orders)"
        assert validate_query(sql, shop_schema) == (
            "-- ERROR: Column 'bogus' does not exist in the schema."
        )

    def test_union_branch_aliases(self, shop_schema):
        sql = "SELECT id AS ref FROM users UNION SELECT id AS ref FROM orders ORDER BY ref"
        assert validate_query(sql, shop_schema) == sql

    def test_every_statement_is_checked(self, shop_schema):
        sql = "SELECT id FROM users; SELECT bogus FROM orders"
        assert validate_query(sql, shop_schema) == (
            "-- ERROR: Column 'bogus' does not exist in the schema."
        )

    def test_comment_only_sentinel_body(self, shop_schema):
        assert validate_query("-- INFO: first\n-- second", shop_schema) == "-- ERROR: Empty query."

    def test_sentinel_with_query_is_validated(self, shop_schema):
        sql = "-- INFO: showing all users\nSELECT id FROM users"
        assert validate_query(sql, shop_schema) == sql

    def test_empty_schema_rejects_tables(self):
        assert validate_query("SELECT 1 FROM users", SchemaMetadata()) == (
            "-- ERROR: Table 'users' not found in schema."
        )

    def test_query_without_tables(self, shop_schema):
        assert validate_query("SELECT 1", shop_schema) == "SELECT 1"

    def test_validate_queries(self, shop_schema):
        results = validate_queries(["SELECT id FROM users", "DROP TABLE users"], shop_schema)
        assert results == ["SELECT id FROM users", DESTRUCTIVE]


class TestIdempotence:
    """Re-validating a sentinel must not alter it."""

    @pytest.mark.parametrize("candidate", [
        "DROP TABLE users",
        "SHOW TABLES",
        "SELECT (id FROM users",
        "SELECT id FROM ghosts",
        "SELECT bogus FROM users",
        "SELECT users.bogus FROM users",
        "SELECT id INTO backup FROM users",
    ])
    def test_sentinel_is_stable(self, candidate, shop_schema):
        first = validate_query(candidate, shop_schema, "postgres")
        assert first.startswith("-- ERROR:")
        assert validate_query(first, shop_schema, "postgres") == first

    def test_info_sentinel_passes_through(self, shop_schema):
        info = "-- INFO: There is no 'departments' table. I can only see users and orders."
        assert validate_query(info, shop_schema) == info

    def test_sentinel_naming_a_keyword(self, shop_schema):
        sentinel = "-- ERROR: Table 'drop zone' not found in schema."
        assert validate_query(sentinel, shop_schema) == sentinel

    @pytest.mark.parametrize("separator", ["\n", "\r", "\r\n"])
    @pytest.mark.parametrize("dialect", ["postgres", "mysql"])
    def test_sentinel_followed_by_statement(self, separator, dialect, shop_schema):
        """Test a statement after any line break behind a sentinel is still checked."""
        sql = f"-- INFO: listing{separator}DROP TABLE users"
        assert validate_query(sql, shop_schema, dialect) == DESTRUCTIVE


class TestNonPrimaryDialects:
    """Other dialects get sanitization and the keyword policy only."""

    @pytest.mark.parametrize("dialect", ["mysql", "sqlite", "duckdb"])
    def test_structural_checks_are_skipped(self, dialect, shop_schema):
        sql = "SELECT bogus FROM ghosts"
        assert validate_query(f"```sql\n{sql}\n```", shop_schema, dialect) == sql

    def test_unknown_dialect_is_not_parsed(self, shop_schema):
        assert validate_query("SHOW TABLES", shop_schema, "oracle") == "SHOW TABLES"

    def test_postgres_aliases(self, shop_schema):
        assert validate_query("SELECT bogus FROM users", shop_schema, "PostgreSQL") == (
            "-- ERROR: Column 'bogus' does not exist in the schema."
        )

    def test_configurable_primary_dialect(self, shop_schema):
        validator = QueryValidator(primary_dialect="mysql")
        assert validator.validate("SELECT `id` FROM `users`", shop_schema, "mysql") == (
            "SELECT `id` FROM `users`"
        )
        assert validator.validate("SELECT bogus FROM ghosts", shop_schema, "postgres") == (
            "SELECT bogus FROM ghosts"
        )


class TestVerdict:
    """Test cases for parsing validator output."""

    def test_accepted(self):
        verdict = Verdict.from_output("SELECT 1")
        assert verdict.accepted
        assert verdict.kind == VerdictKind.ACCEPTED
        assert verdict.reason is None
        verdict.raise_for_error()

    def test_error(self):
        verdict = Verdict.from_output(DESTRUCTIVE)
        assert verdict.kind == VerdictKind.ERROR
        assert verdict.reason == "Destructive queries are not permitted."
        with pytest.raises(ValidationError, match="Destructive") as exc_info:
            verdict.raise_for_error()
        assert exc_info.value.sentinel == DESTRUCTIVE

    def test_sentinel_builders(self):
        assert error_sentinel("Empty query.") == "-- ERROR: Empty query."
        assert info_sentinel("Nothing to show.") == "-- INFO: Nothing to show."
        assert is_sentinel("  -- info: lower case prefix")
        assert not is_sentinel("SELECT 1 -- ERROR: trailing")

    def test_bare_sentinel_is_single_line(self):
        assert is_bare_sentinel("-- ERROR: Empty query.  ")
        assert not is_bare_sentinel("-- INFO: listing\nSELECT 1")
        assert not is_bare_sentinel("-- INFO: listing\rSELECT 1")
        assert not is_bare_sentinel("SELECT 1")

    def test_info(self):
        verdict = Verdict.from_output("-- INFO: No such table.\nSELECT 1")
        assert verdict.kind == VerdictKind.INFO
        assert verdict.reason == "No such table."
        verdict.raise_for_error()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
