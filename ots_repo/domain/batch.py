"""Normalization of batch read/write requests into uniform groups.

``batch_get`` accepts::

    (Schema, [ids, ...])
    (Schema, [ids, ...], options)
    [entity, entity, ...]
    ([entity, entity, ...], options)

``batch_write`` accepts a mapping (or pairs) of ``put``/``update``/``delete``
to item lists, where an item is::

    put:    entity | (entity, options) | (Schema, ids, attrs, options)
    update: changeset | (changeset, options)
    delete: entity | (entity, options) | (Schema, ids, options)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from .changeset import Changeset
from .options import BatchWriteOptions, ColumnOptions
from .schema import PrimaryKey, Schema, primary_key_from


class WriteOp(StrEnum):
    PUT = "put"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ReadGroup:
    schema: type[Schema]
    primary_keys: list[PrimaryKey]
    options: ColumnOptions


@dataclass(frozen=True)
class WriteItem:
    op: WriteOp
    target: Union[Schema, Changeset[Any]]
    options: BatchWriteOptions

    @property
    def schema(self) -> type[Schema]:
        if isinstance(self.target, Changeset):
            return self.target.schema
        return type(self.target)


@dataclass(frozen=True)
class RowResult:
    """Outcome of one row of a batch write."""

    ok: bool
    entity: Optional[Schema] = None
    error: Optional[Exception] = None


def _is_schema_class(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, Schema)


def _entities_group(entities: Sequence[Schema], options: Mapping[str, Any]) -> ReadGroup:
    if not entities:
        raise ValueError("a batch_get entity group must not be empty")
    schema = type(entities[0])
    if any(type(entity) is not schema for entity in entities):
        raise ValueError("a batch_get entity group must hold entities of one schema")
    return ReadGroup(
        schema,
        [entity.primary_key_values() for entity in entities],
        ColumnOptions(**options),
    )


def normalize_gets(gets: Iterable[Any]) -> list[ReadGroup]:
    groups: list[ReadGroup] = []
    for get in gets:
        if isinstance(get, list):
            groups.append(_entities_group(get, {}))
        elif isinstance(get, tuple) and get and _is_schema_class(get[0]):
            if len(get) not in (2, 3):
                raise ValueError("expected (Schema, ids_list) or (Schema, ids_list, options)")
            schema = get[0]
            options = get[2] if len(get) == 3 else {}
            keys = [primary_key_from(schema, ids) for ids in get[1]]
            groups.append(ReadGroup(schema, keys, ColumnOptions(**options)))
        elif isinstance(get, tuple) and len(get) == 2 and isinstance(get[0], list):
            groups.append(_entities_group(get[0], get[1]))
        else:
            raise ValueError(f"unsupported batch_get item: {get!r}")

    tables = [group.schema.table_name() for group in groups]
    duplicated = sorted({table for table in tables if tables.count(table) > 1})
    if duplicated:
        raise ValueError(f"table(s) {duplicated} appear in more than one batch_get group")
    return groups


def _ids_dict(ids: Any) -> dict[str, Any]:
    return dict(ids.items() if isinstance(ids, Mapping) else ids)


def _write_item(op: WriteOp, item: Any) -> WriteItem:
    if op == WriteOp.UPDATE:
        changeset, options = item, {}
        if isinstance(item, tuple) and item:
            changeset = item[0]
            options = item[1] if len(item) > 1 else {}
        if not isinstance(changeset, Changeset):
            raise ValueError(f"update items must be changesets, got {changeset!r}")
        return WriteItem(op, changeset, BatchWriteOptions(**options))

    if isinstance(item, Schema):
        return WriteItem(op, item, BatchWriteOptions())
    if isinstance(item, tuple) and item and isinstance(item[0], Schema):
        options = item[1] if len(item) > 1 else {}
        return WriteItem(op, item[0], BatchWriteOptions(**options))
    if isinstance(item, tuple) and item and _is_schema_class(item[0]):
        schema = item[0]
        if op == WriteOp.PUT:
            if len(item) != 4:
                raise ValueError("expected (Schema, ids, attrs, options) for put")
            entity = schema.model_validate({**_ids_dict(item[1]), **_ids_dict(item[2])})
            return WriteItem(op, entity, BatchWriteOptions(**item[3]))
        if len(item) != 3:
            raise ValueError("expected (Schema, ids, options) for delete")
        entity = schema.model_construct(**dict(primary_key_from(schema, item[1])))
        return WriteItem(op, entity, BatchWriteOptions(**item[2]))
    raise ValueError(f"unsupported {op} item: {item!r}")


def normalize_writes(
    writes: Union[Mapping[Any, Iterable[Any]], Iterable[tuple[Any, Iterable[Any]]]],
) -> list[WriteItem]:
    pairs = writes.items() if isinstance(writes, Mapping) else writes
    items: list[WriteItem] = []
    for op, op_items in pairs:
        operation = WriteOp(op)
        items.extend(_write_item(operation, item) for item in op_items)
    return items
