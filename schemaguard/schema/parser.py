"""Schema parsers that turn uploaded schema text into SchemaMetadata.

Two sources are supported:
- SQL DDL (CREATE TABLE bodies plus ALTER TABLE ... FOREIGN KEY statements)
- CSV files, where the header row becomes the columns of a single table

The DDL parser is best-effort: it never raises on malformed input and simply
returns fewer tables or relations. Callers decide what an empty result means.
"""

import io
import re
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .identifiers import (
    IDENTIFIER_PART,
    QUALIFIED_NAME,
    bare_name,
    first_identifier,
    format_relation,
    strip_quotes,
)
from .models import ExtractionResult, SchemaMetadata, Table
from ..utils import SchemaError, setup_logger, shorten

logger = setup_logger(__name__)

LINE_COMMENT_PATTERN = re.compile(r"--.*$", re.MULTILINE)
BLOCK_COMMENT_PATTERN = re.compile(r"/\*.*?\*/", re.DOTALL)

CREATE_TABLE_PATTERN = re.compile(
    r"CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:GLOBAL|LOCAL)\s+)?"
    r"(?:(?:TEMP|TEMPORARY|UNLOGGED)\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    rf"({QUALIFIED_NAME})\s*\(",
    re.IGNORECASE,
)

FOREIGN_KEY_KEYWORD = re.compile(r"\bFOREIGN\s+KEY\b", re.IGNORECASE)

FOREIGN_KEY_PATTERN = re.compile(
    r"FOREIGN\s+KEY\s*\(([^)]+)\)\s*REFERENCES\s+"
    rf"({QUALIFIED_NAME})\s*\(([^)]+)\)",
    re.IGNORECASE,
)

INLINE_REFERENCES_PATTERN = re.compile(
    rf"\bREFERENCES\s+({QUALIFIED_NAME})\s*\(([^)]+)\)",
    re.IGNORECASE,
)

PRIMARY_KEY_CONSTRAINT = re.compile(r"\bPRIMARY\s+KEY\s*\(", re.IGNORECASE)

ALTER_TABLE_FK_PATTERN = re.compile(
    r"ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?"
    rf"({QUALIFIED_NAME})\s+ADD\s+(?:CONSTRAINT\s+{IDENTIFIER_PART}\s+)?"
    r"FOREIGN\s+KEY\s*\(([^)]+)\)\s*REFERENCES\s+"
    rf"({QUALIFIED_NAME})\s*\(([^)]+)\)",
    re.IGNORECASE,
)

LEADING_IDENTIFIER = re.compile(rf"\s*({IDENTIFIER_PART})(.*)$", re.DOTALL)

# Table-level clauses that can never be column definitions
RESERVED_CLAUSE_KEYWORDS = frozenset({"PRIMARY", "FOREIGN", "CONSTRAINT", "UNIQUE", "CHECK"})


def strip_sql_comments(sql: str) -> str:
    """Remove '--' line comments and '/* */' block comments."""
    return BLOCK_COMMENT_PATTERN.sub("", LINE_COMMENT_PATTERN.sub("", sql))


def match_parentheses(text: str) -> Dict[int, int]:
    """Map the index of every closed "(" to the index of its matching ")".

    One pass over the text; quoted strings and identifiers are skipped.
    Parentheses still open when the text ends have no entry.
    """
    pairs = {}
    stack = []
    quote = None
    for index, char in enumerate(text):
        if quote:
            if char == quote:
                quote = None
            continue
        if char in "'\"`":
            quote = char
        elif char == "(":
            stack.append(index)
        elif char == ")" and stack:
            pairs[stack.pop()] = index
    return pairs


def split_top_level(body: str, separator: str = ",") -> List[str]:
    """Split on separators that are outside parentheses and quotes.

    ``price decimal(10,2), qty int`` splits into two clauses, not three.
    """
    parts = []
    depth = 0
    quote = None
    current = []
    for char in body:
        if quote:
            if char == quote:
                quote = None
        elif char in "'\"`":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


class DDLSchemaParser:
    """Best-effort extractor for SQL DDL text.

    Recognises ``CREATE TABLE`` statements (columns, inline and named
    foreign keys, primary key constraints) and standalone
    ``ALTER TABLE ... ADD [CONSTRAINT x] FOREIGN KEY`` statements.

    Known simplifications:
    - schema qualification is dropped, ``public.users`` is stored as ``users``
    - composite foreign keys are recorded by their first column only
    """

    def __init__(self, ddl_text: str):
        """Initialize parser with raw DDL text.

        Args:
            ddl_text: Schema text; non-string input is treated as empty
        """
        self.ddl_text = ddl_text if isinstance(ddl_text, str) else ""
        self._skipped: List[str] = []

    def parse(self) -> ExtractionResult:
        """Extract tables and relations.

        Returns:
            ExtractionResult with the schema and notes about skipped input
        """
        self._skipped = []
        clean_sql = strip_sql_comments(self.ddl_text)

        tables, relations = self._parse_create_tables(clean_sql)
        relations.extend(self._parse_alter_tables(clean_sql))

        schema = SchemaMetadata(tables=tables, relations=relations)

        logger.info(
            f"Extracted {len(schema.tables)} tables and "
            f"{len(schema.relations)} relations from DDL"
        )
        if self._skipped:
            logger.debug(f"Skipped {len(self._skipped)} DDL fragments: {self._skipped}")

        return ExtractionResult(schema=schema, skipped=tuple(self._skipped))

    def _parse_create_tables(self, sql: str):
        """Scan for CREATE TABLE statements and parse their bodies."""
        tables: List[Table] = []
        relations: List[str] = []

        closing = match_parentheses(sql)

        position = 0
        while True:
            match = CREATE_TABLE_PATTERN.search(sql, position)
            if match is None:
                break

            open_index = match.end() - 1
            close_index = closing.get(open_index)
            if close_index is None:
                self._skipped.append(
                    f"Unterminated CREATE TABLE body for '{strip_quotes(match.group(1))}'"
                )
                position = match.end()
                continue

            table_name = bare_name(match.group(1))
            body = sql[open_index + 1:close_index]
            position = close_index + 1

            if not table_name:
                self._skipped.append(f"CREATE TABLE without a name: '{shorten(match.group(0))}'")
                continue

            columns = []
            for clause in split_top_level(body):
                column = self._parse_clause(table_name, clause, relations)
                if column:
                    columns.append(column)

            tables.append(Table(name=table_name, columns=columns))

        return tables, relations

    def _parse_clause(self, table_name: str, clause: str, relations: List[str]) -> Optional[str]:
        """Parse one top-level clause of a table body.

        Appends any foreign-key edge to ``relations`` and returns the column
        name when the clause is a column definition.
        """
        if FOREIGN_KEY_KEYWORD.search(clause):
            fk_match = FOREIGN_KEY_PATTERN.search(clause)
            if fk_match:
                relations.append(format_relation(
                    table_name,
                    first_identifier(fk_match.group(1)),
                    bare_name(fk_match.group(2)),
                    first_identifier(fk_match.group(3)),
                ))
            else:
                self._skipped.append(f"{table_name}: malformed foreign key '{shorten(clause)}'")
            return None

        if PRIMARY_KEY_CONSTRAINT.search(clause):
            return None

        ident_match = LEADING_IDENTIFIER.match(clause)
        if ident_match is None:
            self._skipped.append(f"{table_name}: unrecognised clause '{shorten(clause)}'")
            return None

        column = strip_quotes(ident_match.group(1))
        rest = ident_match.group(2).strip()

        if column.upper() in RESERVED_CLAUSE_KEYWORDS:
            self._skipped.append(f"{table_name}: constraint clause '{shorten(clause)}'")
            return None

        if not column or not rest:
            self._skipped.append(f"{table_name}: column without a type '{shorten(clause)}'")
            return None

        ref_match = INLINE_REFERENCES_PATTERN.search(rest)
        if ref_match:
            relations.append(format_relation(
                table_name,
                column,
                bare_name(ref_match.group(1)),
                first_identifier(ref_match.group(2)),
            ))

        return column

    def _parse_alter_tables(self, sql: str) -> List[str]:
        """Collect foreign keys declared by standalone ALTER TABLE statements."""
        relations = []
        for match in ALTER_TABLE_FK_PATTERN.finditer(sql):
            relations.append(format_relation(
                bare_name(match.group(1)),
                first_identifier(match.group(2)),
                bare_name(match.group(3)),
                first_identifier(match.group(4)),
            ))
        return relations


class CsvSchemaParser:
    """Parser that treats a CSV header row as the columns of one table."""

    def __init__(self, csv_text: str, table_name: str = "data"):
        """Initialize parser with CSV content.

        Args:
            csv_text: Raw CSV text; only the header row is used
            table_name: Name given to the resulting table
        """
        self.csv_text = csv_text or ""
        self.table_name = table_name

    @classmethod
    def from_file(cls, csv_path: str, encoding: str = "utf-8") -> "CsvSchemaParser":
        """Create a parser from a CSV file; the file stem becomes the table name.

        Raises:
            SchemaError: If the file doesn't exist or can't be read
        """
        path = Path(csv_path)
        if not path.exists():
            raise SchemaError(f"Schema file not found: {csv_path}")
        try:
            text = path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise SchemaError(f"Failed to read CSV file: {str(e)}") from e
        return cls(text, table_name=path.stem)

    def parse(self) -> SchemaMetadata:
        """Parse the header row.

        Returns:
            SchemaMetadata with exactly one table and no relations

        Raises:
            SchemaError: If the CSV is empty or the header can't be parsed
        """
        lines = [line for line in self.csv_text.splitlines() if line.strip()]
        if not lines:
            raise SchemaError("CSV is empty")

        try:
            frame = pd.read_csv(
                io.StringIO("\n".join(lines)),
                nrows=0,
                dtype=str,
                skipinitialspace=True,
            )
        except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
            raise SchemaError(f"Failed to parse CSV: {str(e)}") from e

        headers = []
        for column in frame.columns:
            header = strip_quotes(str(column))
            # pandas names blank headers "Unnamed: <n>"
            if header and not header.startswith("Unnamed:"):
                headers.append(header)

        logger.info(f"Parsed CSV header for table '{self.table_name}' with {len(headers)} columns")
        return SchemaMetadata(tables=[Table(name=self.table_name, columns=headers)])


def extract_schema(ddl_text: str) -> SchemaMetadata:
    """Extract SchemaMetadata from DDL text. Never raises.

    An empty ``tables`` sequence is a valid result; callers should report it
    as "no tables found".
    """
    return DDLSchemaParser(ddl_text).parse().schema


def parse_csv_schema(csv_text: str, table_name: str = "data") -> SchemaMetadata:
    """Build SchemaMetadata from the header row of a CSV document."""
    return CsvSchemaParser(csv_text, table_name=table_name).parse()
