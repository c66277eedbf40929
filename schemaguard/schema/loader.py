"""Schema loader for managing the schema of a session.

Uploaded schema text is dispatched to the matching parser by format. The
loaded schema is held in memory until it is replaced or cleared; nothing is
persisted.
"""

from pathlib import Path
from typing import Optional

from .models import SchemaMetadata
from .parser import CsvSchemaParser, DDLSchemaParser
from .payloads import load_schema_payload
from ..config import settings
from ..utils import SchemaError, setup_logger

logger = setup_logger(__name__)

# File suffix -> source format
SUFFIX_FORMATS = {
    ".sql": "sql",
    ".ddl": "sql",
    ".csv": "csv",
    ".json": "json",
}

SOURCE_FORMATS = ("sql", "ddl", "csv", "json")


class SchemaLoader:
    """Holds the schema uploaded for one session."""

    def __init__(self):
        """Initialize an empty loader."""
        self._schema: Optional[SchemaMetadata] = None
        self._source: Optional[str] = None

    @property
    def schema(self) -> Optional[SchemaMetadata]:
        """Currently loaded schema, or None."""
        return self._schema

    @property
    def has_schema(self) -> bool:
        """True when a schema is loaded."""
        return self._schema is not None

    @property
    def source(self) -> Optional[str]:
        """Description of where the current schema came from."""
        return self._source

    def load_from_text(
        self,
        text: str,
        source_format: str = "sql",
        table_name: Optional[str] = None,
    ) -> SchemaMetadata:
        """Parse schema text and make it the current schema.

        Args:
            text: Raw schema text
            source_format: One of 'sql'/'ddl', 'csv' or 'json'
            table_name: Table name for CSV input (defaults to config)

        Returns:
            Loaded SchemaMetadata

        Raises:
            SchemaError: If the format is unknown, parsing fails, or no
                tables were found
        """
        source_format = (source_format or "").lower()
        if source_format not in SOURCE_FORMATS:
            raise SchemaError(
                f"Unsupported schema format: {source_format}. "
                f"Expected one of: {', '.join(SOURCE_FORMATS)}"
            )

        if source_format in ("sql", "ddl"):
            result = DDLSchemaParser(text).parse()
            schema = result.schema
            for note in result.skipped:
                logger.debug(f"Skipped: {note}")
        elif source_format == "csv":
            if table_name is None:
                table_name = settings.get("schema.csv_table_name", "data")
            schema = CsvSchemaParser(text, table_name=table_name).parse()
        else:
            schema = load_schema_payload(text)

        return self._accept(schema, source=f"{source_format} text")

    def load_from_file(self, schema_path: str) -> SchemaMetadata:
        """Load schema from a file, choosing the parser by file suffix.

        Args:
            schema_path: Path to a .sql, .ddl, .csv or .json file

        Returns:
            Loaded SchemaMetadata

        Raises:
            SchemaError: If the file is missing, unreadable, of an unknown
                type, or contains no tables
        """
        path = Path(schema_path)
        if not path.exists():
            raise SchemaError(f"Schema file not found: {schema_path}")

        if not path.is_file():
            raise SchemaError(f"Path is not a file: {schema_path}")

        source_format = SUFFIX_FORMATS.get(path.suffix.lower())
        if source_format is None:
            raise SchemaError(f"Unsupported schema file type: {path.suffix or path.name}")

        encoding = settings.get("schema.encoding", "utf-8")
        try:
            text = path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise SchemaError(f"Failed to read schema file: {str(e)}") from e

        logger.info(f"Loading {source_format} schema from {path.name}")

        table_name = path.stem if source_format == "csv" else None
        schema = self.load_from_text(text, source_format=source_format, table_name=table_name)
        self._source = str(path)
        return schema

    def clear(self) -> None:
        """Discard the current schema."""
        if self._schema is not None:
            logger.info(f"Cleared schema loaded from {self._source}")
        self._schema = None
        self._source = None

    def _accept(self, schema: SchemaMetadata, source: str) -> SchemaMetadata:
        """Store a parsed schema, rejecting empty results."""
        if schema.is_empty:
            logger.warning(f"No tables found in {source}")
            raise SchemaError("No tables found in schema")

        self._schema = schema
        self._source = source
        logger.info(
            f"Schema ready: {len(schema.tables)} tables, {len(schema.relations)} relations"
        )
        return schema


# Global schema loader instance
schema_loader = SchemaLoader()
