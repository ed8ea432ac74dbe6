"""Conversion between schema entities and Tablestore rows.

Tablestore columns hold integers, doubles, strings, booleans and binary data.
Other Python values are stored as strings: JSON for containers and models,
ISO 8601 for dates, plain text for decimals. Decoding turns them back using
the schema's field annotations.
"""

from __future__ import annotations

import json
import types
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional, Union, get_args, get_origin

from pydantic import BaseModel
from pydantic_core import to_jsonable_python
from tablestore import Row
from tablestore.metadata import INF_MAX, INF_MIN, PK_AUTO_INCR

from ots_repo.domain.schema import PrimaryKey, Schema

_JSON_ORIGINS = (dict, list, tuple, set, frozenset)
_BOUNDS = (INF_MIN, INF_MAX)


def encode_value(value: Any) -> Any:
    """Encode one attribute value for Tablestore."""

    if isinstance(value, Enum):
        return encode_value(value.value)
    if isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytearray(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    if isinstance(value, _JSON_ORIGINS):
        return json.dumps(to_jsonable_python(value), ensure_ascii=False)
    raise TypeError(f"cannot store value of type {type(value).__name__} in Tablestore")


def encode_primary_key(primary_key: PrimaryKey, autoincrement: Optional[str] = None) -> PrimaryKey:
    """Encode primary key values; an unset auto-increment key becomes ``PK_AUTO_INCR``."""

    out: PrimaryKey = []
    for name, value in primary_key:
        if value is None and name == autoincrement:
            out.append((name, PK_AUTO_INCR))
        elif value in _BOUNDS or value is PK_AUTO_INCR:
            out.append((name, value))
        elif isinstance(value, bool) or not isinstance(value, (int, str, bytes, bytearray)):
            raise TypeError(
                f"primary key {name!r} must be int, str or bytes, got {type(value).__name__}"
            )
        else:
            out.append((name, bytearray(value) if isinstance(value, bytes) else value))
    return out


def encode_attributes(values: dict[str, Any]) -> list[tuple[str, Any]]:
    """Encode attribute columns, skipping ``None`` values."""

    return [(name, encode_value(value)) for name, value in values.items() if value is not None]


def entity_to_row(entity: Schema) -> Row:
    """Build the row written by a put of ``entity``."""

    primary_key = encode_primary_key(
        entity.primary_key_values(allow_autoincrement=True), entity.__autoincrement__
    )
    return Row(primary_key, encode_attributes(entity.loaded_attributes()))


def _unwrap_optional(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _expects_json(annotation: Any) -> bool:
    target = _unwrap_optional(annotation)
    origin = get_origin(target) or target
    if origin in _JSON_ORIGINS:
        return True
    return isinstance(origin, type) and issubclass(origin, BaseModel)


def decode_value(schema: type[Schema], name: str, value: Any) -> Any:
    """Decode a stored column value for the field ``name`` of ``schema``."""

    if isinstance(value, bytearray):
        return bytes(value)
    field = schema.model_fields.get(name)
    if field is not None and isinstance(value, str) and _expects_json(field.annotation):
        return json.loads(value)
    return value


def _columns(pairs: Optional[Iterable[Any]]) -> Iterable[tuple[str, Any]]:
    # attribute columns come back as (name, value, timestamp)
    for column in pairs or ():
        yield column[0], column[1]


def row_to_dict(schema: type[Schema], row: Any) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for name, value in _columns(row.primary_key):
        data[name] = decode_value(schema, name, value)
    for name, value in _columns(getattr(row, "attribute_columns", None)):
        data[name] = decode_value(schema, name, value)
    return data


def row_to_entity(schema: type[Schema], row: Any) -> Optional[Schema]:
    """Decode a returned row; ``None`` or an empty row means not found.

    A read limited by ``columns_to_get`` or a column range may leave out
    required attributes. Those are set to ``None`` and the returned columns
    are still validated.
    """

    if row is None or not row.primary_key:
        return None
    decoded = row_to_dict(schema, row)
    data = {name: value for name, value in decoded.items() if name in schema.model_fields}
    missing = [
        name
        for name, field in schema.model_fields.items()
        if field.is_required() and name not in data
    ]
    if not missing:
        return schema.model_validate(data)
    validated = schema.validate_fields(data)
    return schema.model_construct(
        _fields_set=set(validated), **dict.fromkeys(missing), **validated
    )
