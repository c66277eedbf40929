"""Pydantic schemas for schema metadata produced outside the DDL parser.

An external model can be asked to convert another schema format (an ORM
schema file, for instance) into the ``{"tables": [...], "relations": [...]}``
shape. That output is untrusted and is validated here before it becomes a
SchemaMetadata.
"""

import json
from typing import Any, Dict, List, Union

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .identifiers import strip_quotes
from .models import SchemaMetadata, Table
from ..utils import SchemaError, setup_logger

logger = setup_logger(__name__)


class TablePayload(BaseModel):
    """Schema for a single table entry."""

    name: str = Field(description="Table name")
    columns: List[str] = Field(default_factory=list, description="Column names in order")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Strip quoting and reject blank names."""
        cleaned = strip_quotes(v)
        if not cleaned:
            raise ValueError("table name must be non-empty")
        return cleaned

    @field_validator('columns')
    @classmethod
    def validate_columns(cls, v):
        """Drop blank column names."""
        return [strip_quotes(col) for col in v if strip_quotes(col)]


class SchemaPayload(BaseModel):
    """Schema for a whole metadata document."""

    tables: List[TablePayload] = Field(default_factory=list)
    relations: List[str] = Field(
        default_factory=list,
        description="Edges formatted as 'Source.col -> Target.col'",
    )

    @field_validator('relations')
    @classmethod
    def validate_relations(cls, v):
        """Trim relation strings and drop blank ones."""
        return [rel.strip() for rel in v if rel and rel.strip()]

    def to_metadata(self) -> SchemaMetadata:
        """Convert the validated payload to SchemaMetadata."""
        return SchemaMetadata(
            tables=[Table(name=t.name, columns=t.columns) for t in self.tables],
            relations=self.relations,
        )


def load_schema_payload(payload: Union[str, bytes, Dict[str, Any]]) -> SchemaMetadata:
    """Validate a JSON document (or decoded dict) into SchemaMetadata.

    Args:
        payload: JSON text or an already-decoded dictionary

    Returns:
        SchemaMetadata built from the payload

    Raises:
        SchemaError: If the payload is not valid JSON or has the wrong shape
    """
    try:
        if isinstance(payload, (str, bytes)):
            model = SchemaPayload.model_validate_json(payload)
        else:
            model = SchemaPayload.model_validate(payload)
    except PydanticValidationError as e:
        logger.warning(f"Rejected schema payload: {e.error_count()} validation errors")
        raise SchemaError(f"Invalid schema payload: {str(e)}") from e

    schema = model.to_metadata()
    logger.info(
        f"Loaded schema payload with {len(schema.tables)} tables "
        f"and {len(schema.relations)} relations"
    )
    return schema


def dump_schema_payload(schema: SchemaMetadata) -> str:
    """Serialize SchemaMetadata to the JSON document shape accepted above."""
    return json.dumps(schema.to_dict(), indent=2)
