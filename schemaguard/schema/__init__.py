"""Schema extraction module."""

from .models import Table, SchemaMetadata, ExtractionResult, compress_schema
from .parser import (
    DDLSchemaParser,
    CsvSchemaParser,
    extract_schema,
    parse_csv_schema,
)
from .payloads import SchemaPayload, load_schema_payload, dump_schema_payload
from .loader import SchemaLoader, schema_loader

__all__ = [
    "Table",
    "SchemaMetadata",
    "ExtractionResult",
    "compress_schema",
    "DDLSchemaParser",
    "CsvSchemaParser",
    "extract_schema",
    "parse_csv_schema",
    "SchemaPayload",
    "load_schema_payload",
    "dump_schema_payload",
    "SchemaLoader",
    "schema_loader",
]
