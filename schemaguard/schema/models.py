"""Data models for extracted schema metadata."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .identifiers import normalize_identifier


@dataclass(frozen=True)
class Table:
    """A table and its column names, as written in the source schema."""

    name: str
    columns: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Table name must be non-empty")
        # Accept any iterable of names but always store a tuple
        object.__setattr__(self, "columns", tuple(self.columns))

    def has_column(self, column_name: str) -> bool:
        """Check column membership (case-insensitive, quotes ignored)."""
        wanted = normalize_identifier(column_name)
        return any(normalize_identifier(col) == wanted for col in self.columns)

    def to_dict(self) -> Dict[str, Any]:
        """Convert table to dictionary representation."""
        return {"name": self.name, "columns": list(self.columns)}

    def to_schema_string(self) -> str:
        """Compact two-line rendering used in prompt context."""
        return f"Table: {self.name}\nColumns: {', '.join(self.columns)}"


@dataclass(frozen=True)
class SchemaMetadata:
    """Canonical in-memory schema: ordered tables plus foreign-key edges.

    Relations are display strings of the form
    ``"SourceTable.SourceColumn -> TargetTable.TargetColumn"``. They are not
    checked against ``tables``; a relation may name a table that was never
    defined.
    """

    tables: Tuple[Table, ...] = ()
    relations: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "tables", tuple(self.tables))
        object.__setattr__(self, "relations", tuple(self.relations))

    @property
    def is_empty(self) -> bool:
        """True when no tables were extracted."""
        return len(self.tables) == 0

    def get_table(self, table_name: str) -> Optional[Table]:
        """Get the first table with the given name (case-insensitive)."""
        wanted = normalize_identifier(table_name)
        for table in self.tables:
            if normalize_identifier(table.name) == wanted:
                return table
        return None

    def table_names(self) -> List[str]:
        """Table names in extraction order."""
        return [table.name for table in self.tables]

    def get_all_columns(self) -> List[str]:
        """Get all column names across all tables as 'table.column'."""
        return [f"{table.name}.{col}" for table in self.tables for col in table.columns]

    def to_dict(self) -> Dict[str, Any]:
        """Convert schema to dictionary representation."""
        return {
            "tables": [table.to_dict() for table in self.tables],
            "relations": list(self.relations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaMetadata":
        """Build metadata from a plain dictionary (see ``to_dict``).

        No validation beyond what ``Table`` enforces; use
        ``schemaguard.schema.payloads.load_schema_payload`` for untrusted input.
        """
        tables = [
            Table(name=item["name"], columns=item.get("columns", []))
            for item in data.get("tables", [])
        ]
        return cls(tables=tables, relations=data.get("relations", []))

    def to_context_string(self) -> str:
        """Render the schema as compact prompt text.

        Tables are separated by blank lines and followed by a ``Relations:``
        block when any foreign keys were found.
        """
        compressed_tables = "\n\n".join(table.to_schema_string() for table in self.tables)
        compressed_relations = ""
        if self.relations:
            compressed_relations = "Relations:\n" + "\n".join(self.relations)
        return f"{compressed_tables}\n\n{compressed_relations}".strip()


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of a best-effort schema extraction.

    ``skipped`` lists human-readable notes about input that was recognised
    but dropped. It is informational only; extraction never fails.
    """

    schema: SchemaMetadata = field(default_factory=SchemaMetadata)
    skipped: Tuple[str, ...] = ()


def compress_schema(schema: SchemaMetadata) -> str:
    """Render ``schema`` as compact prompt text."""
    return schema.to_context_string()
