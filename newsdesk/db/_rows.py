"""Conversions between pydantic models and database rows."""

from enum import Enum
from typing import Any, Dict

from psycopg.types.json import Jsonb
from pydantic import BaseModel

JSON_COLUMNS = frozenset({"content_variants", "draft", "parameters", "last_run_result", "summary"})


def to_db_value(column: str, value: Any) -> Any:
    """Adapt a model value for a psycopg parameter."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set)):
        return [v.value if isinstance(v, Enum) else v for v in value]
    if column in JSON_COLUMNS and value is not None:
        return Jsonb(value)
    return value


def to_db_row(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {column: to_db_value(column, value) for column, value in fields.items()}
