"""schemaguard: schema extraction and read-only validation for generated SQL.

This package provides the engineering core behind a natural-language-to-SQL
assistant:
- Best-effort extraction of tables, columns and foreign keys from DDL text
- CSV and JSON schema pre-parsers producing the same metadata
- Validation of model-generated SQL against the schema and a read-only policy
"""

# Utilities first: the config module imports the exception classes
from .utils import SchemaGuardError, ConfigurationError, SchemaError, ValidationError
from .config import settings

__version__ = "1.0.0"

from .schema import (
    Table,
    SchemaMetadata,
    ExtractionResult,
    DDLSchemaParser,
    CsvSchemaParser,
    SchemaLoader,
    schema_loader,
    compress_schema,
    extract_schema,
    parse_csv_schema,
    load_schema_payload,
)
from .validation import QueryValidator, Verdict, VerdictKind, validate_query

__all__ = [
    # Version
    "__version__",
    # Config
    "settings",
    # Errors
    "SchemaGuardError",
    "ConfigurationError",
    "SchemaError",
    "ValidationError",
    # Schema
    "Table",
    "SchemaMetadata",
    "ExtractionResult",
    "DDLSchemaParser",
    "CsvSchemaParser",
    "SchemaLoader",
    "schema_loader",
    "compress_schema",
    "extract_schema",
    "parse_csv_schema",
    "load_schema_payload",
    # Validation
    "QueryValidator",
    "Verdict",
    "VerdictKind",
    "validate_query",
]
