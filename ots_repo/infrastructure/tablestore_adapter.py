from __future__ import annotations

import logging
import types
from typing import Any, Callable, Optional, Union, cast, get_args, get_origin

from tablestore import (
    BatchGetRowRequest,
    BatchWriteRowRequest,
    CapacityUnit,
    DeleteRowItem,
    OTSClient,
    OTSClientError,
    OTSServiceError,
    PutRowItem,
    ReservedThroughput,
    Row,
    TableInBatchGetRowItem,
    TableInBatchWriteRowItem,
    TableMeta,
    TableOptions,
    UpdateRowItem,
)
from tablestore import Direction as SDKDirection
from tablestore import ReturnType as SDKReturnType
from tablestore.metadata import PK_AUTO_INCR

from ots_repo.config.settings import InstanceSettings
from ots_repo.domain.batch import ReadGroup, RowResult, WriteItem, WriteOp
from ots_repo.domain.changeset import Changeset
from ots_repo.domain.filters import Existence, equals
from ots_repo.domain.options import (
    BatchWriteOptions,
    ColumnOptions,
    Direction,
    RangeOptions,
    ReadOptions,
    ReturnType,
    WriteOptions,
)
from ots_repo.domain.schema import PrimaryKey, Schema
from ots_repo.errors import (
    CONDITION_CHECK_FAIL,
    BatchError,
    ConditionCheckError,
    TablestoreError,
)
from ots_repo.logging_config import CapacityStats

from .filter_compiler import compile_condition, compile_filter
from .row_codec import (
    decode_value,
    encode_attributes,
    encode_primary_key,
    entity_to_row,
    row_to_entity,
)

logger = logging.getLogger(__name__)

_DIRECTIONS = {
    Direction.FORWARD: SDKDirection.FORWARD,
    Direction.BACKWARD: SDKDirection.BACKWARD,
}
_RETURN_TYPES = {
    ReturnType.NONE: SDKReturnType.RT_NONE,
    ReturnType.PK: SDKReturnType.RT_PK,
}
_DEFAULT_EXISTENCE = {
    WriteOp.PUT: Existence.IGNORE,
    WriteOp.UPDATE: Existence.EXPECT_EXIST,
    WriteOp.DELETE: Existence.EXPECT_EXIST,
}
_PK_TYPES = {int: "INTEGER", str: "STRING", bytes: "BINARY"}


class TablestoreAdapter:
    """Executes repository operations against Tablestore through ``OTSClient``.

    Responsibilities:
    - Encode entities and changesets into SDK rows and decode returned rows.
    - Compile filters and row conditions.
    - Group batch reads/writes by table into single requests.
    - Translate SDK exceptions into :class:`TablestoreError`; nothing is
      retried here beyond the SDK's own retry policy.
    """

    def __init__(self, client: Any, *, stats: Optional[CapacityStats] = None) -> None:
        self._client = client
        self.stats = stats if stats is not None else CapacityStats()

    @classmethod
    def connect(cls, settings: InstanceSettings, **client_options: Any) -> "TablestoreAdapter":
        """Build an adapter around a new ``OTSClient`` for ``settings``."""

        client = OTSClient(
            settings.endpoint,
            settings.access_key_id,
            settings.access_key_secret,
            settings.instance_name,
            sts_token=settings.sts_token,
            socket_timeout=settings.socket_timeout,
            max_connection=settings.max_connection,
            logger_name=f"{__name__}.sdk",
            **client_options,
        )
        logger.info(
            "Connected Tablestore client",
            extra={"instance": settings.instance_name, "endpoint": settings.endpoint},
        )
        return cls(client)

    @property
    def client(self) -> Any:
        return self._client

    # ------------------------------------------------------------------
    # Single row operations
    # ------------------------------------------------------------------
    def get_row(
        self, schema: type[Schema], primary_key: PrimaryKey, options: ReadOptions
    ) -> Optional[Schema]:
        table = schema.table_name()
        consumed, row, _next_token = self._call(
            "get_row",
            table,
            self._client.get_row,
            table,
            encode_primary_key(primary_key),
            columns_to_get=options.columns_to_get,
            column_filter=compile_filter(options.filter),
            max_version=1,
            start_column=options.start_column,
            end_column=options.end_column,
            transaction_id=options.transaction_id,
        )
        self.stats.record(consumed)
        return row_to_entity(schema, row)

    def get_range(
        self,
        schema: type[Schema],
        start_primary_key: PrimaryKey,
        end_primary_key: PrimaryKey,
        options: RangeOptions,
    ) -> tuple[list[Schema], Optional[PrimaryKey]]:
        table = schema.table_name()
        consumed, next_start, rows, _next_token = self._call(
            "get_range",
            table,
            self._client.get_range,
            table,
            _DIRECTIONS[options.direction],
            encode_primary_key(start_primary_key),
            encode_primary_key(end_primary_key),
            columns_to_get=options.columns_to_get,
            limit=options.limit,
            column_filter=compile_filter(options.filter),
            max_version=1,
            start_column=options.start_column,
            end_column=options.end_column,
            transaction_id=options.transaction_id,
        )
        self.stats.record(consumed)
        entities = [entity for entity in (row_to_entity(schema, r) for r in rows or []) if entity]
        return entities, (list(next_start) if next_start else None)

    def put_row(self, entity: Schema, options: WriteOptions) -> Schema:
        table = entity.table_name()
        return_type = _put_return_type(entity, options)
        consumed, return_row = self._call(
            "put_row",
            table,
            self._client.put_row,
            table,
            entity_to_row(entity),
            condition=compile_condition(options.condition, Existence.IGNORE),
            return_type=_RETURN_TYPES[return_type],
            transaction_id=options.transaction_id,
        )
        self.stats.record(consumed)
        return _merge_returned_pk(entity, return_row)

    def update_row(self, changeset: Changeset[Any], options: WriteOptions) -> Schema:
        if not changeset.changes:
            return changeset.data
        updated = changeset.apply()
        table = changeset.schema.table_name()
        consumed, _return_row = self._call(
            "update_row",
            table,
            self._client.update_row,
            table,
            _update_row(changeset),
            _write_condition(WriteOp.UPDATE, changeset.data, options),
            return_type=_RETURN_TYPES[options.return_type],
            transaction_id=options.transaction_id,
        )
        self.stats.record(consumed)
        return updated

    def delete_row(self, entity: Schema, options: WriteOptions) -> Schema:
        table = entity.table_name()
        consumed, _return_row = self._call(
            "delete_row",
            table,
            self._client.delete_row,
            table,
            Row(encode_primary_key(entity.primary_key_values())),
            _write_condition(WriteOp.DELETE, entity, options),
            return_type=_RETURN_TYPES[options.return_type],
            transaction_id=options.transaction_id,
        )
        self.stats.record(consumed)
        return entity

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------
    def batch_get(self, groups: list[ReadGroup]) -> dict[type[Schema], list[Schema]]:
        request = BatchGetRowRequest()
        for group in groups:
            request.add(_table_get_item(group))
        response = self._call("batch_get_row", "*", self._client.batch_get_row, request)

        results: dict[type[Schema], list[Schema]] = {}
        failures: list[TablestoreError] = []
        for group in groups:
            found: list[Schema] = []
            for item in response.get_result_by_table(group.schema.table_name()) or []:
                self.stats.record(getattr(item, "consumed", None))
                if not item.is_ok:
                    failures.append(_row_error(item))
                    continue
                entity = row_to_entity(group.schema, item.row)
                if entity is not None:
                    found.append(entity)
            results[group.schema] = found
        if failures:
            logger.warning("batch_get_row had %d failed row(s)", len(failures))
            raise BatchError(f"{len(failures)} row(s) failed in batch_get", failures)
        return results

    def batch_write(
        self, items: list[WriteItem]
    ) -> dict[type[Schema], dict[str, list[RowResult]]]:
        by_table: dict[str, list[WriteItem]] = {}
        for item in items:
            by_table.setdefault(item.schema.table_name(), []).append(item)

        request = BatchWriteRowRequest()
        for table, table_items in by_table.items():
            request.add(TableInBatchWriteRowItem(table, [_row_item(i) for i in table_items]))
        response = self._call("batch_write_row", "*", self._client.batch_write_row, request)

        getters: dict[WriteOp, Callable[[str], Any]] = {
            WriteOp.PUT: response.get_put_by_table,
            WriteOp.UPDATE: response.get_update_by_table,
            WriteOp.DELETE: response.get_delete_by_table,
        }
        results: dict[type[Schema], dict[str, list[RowResult]]] = {}
        for table, table_items in by_table.items():
            for op, getter in getters.items():
                op_items = [item for item in table_items if item.op == op]
                if not op_items:
                    continue
                responses = getter(table) or []
                for item, row_response in zip(op_items, responses):
                    self.stats.record(getattr(row_response, "consumed", None))
                    per_op = results.setdefault(item.schema, {}).setdefault(str(op), [])
                    per_op.append(_write_result(item, row_response))
        return results

    # ------------------------------------------------------------------
    # Local transactions
    # ------------------------------------------------------------------
    def start_local_transaction(self, schema: type[Schema], partition_key_value: Any) -> str:
        table = schema.table_name()
        key = encode_primary_key([(schema.partition_key_field(), partition_key_value)])
        return self._call(
            "start_local_transaction", table, self._client.start_local_transaction, table, key
        )

    def commit_transaction(self, transaction_id: str) -> None:
        self._call("commit_transaction", "*", self._client.commit_transaction, transaction_id)

    def abort_transaction(self, transaction_id: str) -> None:
        self._call("abort_transaction", "*", self._client.abort_transaction, transaction_id)

    # ------------------------------------------------------------------
    # Table management
    # ------------------------------------------------------------------
    def create_table(
        self, schema: type[Schema], *, max_versions: int = 1, time_to_live: int = -1
    ) -> None:
        table = schema.table_name()
        meta = TableMeta(table, primary_key_schema(schema))
        table_options = TableOptions(time_to_live=time_to_live, max_version=max_versions)
        reserved = ReservedThroughput(CapacityUnit(0, 0))
        self._call("create_table", table, self._client.create_table, meta, table_options, reserved)
        logger.info("Created table %s", table)

    def delete_table(self, schema: type[Schema]) -> None:
        table = schema.table_name()
        self._call("delete_table", table, self._client.delete_table, table)
        logger.info("Deleted table %s", table)

    def list_tables(self) -> list[str]:
        return list(self._call("list_table", "*", self._client.list_table) or [])

    # ------------------------------------------------------------------
    def _call(
        self, operation: str, table: str, fn: Callable[..., Any], *args: Any, **kwargs: Any
    ) -> Any:
        logger.debug("Tablestore %s", operation, extra={"table": table})
        try:
            return fn(*args, **kwargs)
        except (OTSClientError, OTSServiceError) as exc:
            error = TablestoreError.from_sdk_error(exc)
            logger.warning(
                "Tablestore %s on %s failed: %s",
                operation,
                table,
                error,
                extra={"code": error.code, "request_id": error.request_id},
            )
            raise error from exc


def primary_key_schema(schema: type[Schema]) -> list[tuple[Any, ...]]:
    """Derive the ``schema_of_primary_key`` of ``TableMeta`` from field annotations."""

    out: list[tuple[Any, ...]] = []
    for name in schema.primary_key_fields():
        annotation = schema.model_fields[name].annotation
        origin = get_origin(annotation)
        if origin is Union or origin is types.UnionType:
            args = [arg for arg in get_args(annotation) if arg is not type(None)]
            annotation = args[0] if len(args) == 1 else annotation
        pk_type = _PK_TYPES.get(annotation)
        if pk_type is None:
            raise TypeError(f"primary key {name!r} must be annotated as int, str or bytes")
        if name == schema.__autoincrement__:
            out.append((name, pk_type, PK_AUTO_INCR))
        else:
            out.append((name, pk_type))
    return out


def _put_return_type(entity: Schema, options: BatchWriteOptions) -> ReturnType:
    auto = entity.__autoincrement__
    if auto is not None and getattr(entity, auto, None) is None:
        return ReturnType.PK
    return options.return_type


def _write_condition(op: WriteOp, entity: Schema, options: BatchWriteOptions) -> Any:
    extra = equals(entity.loaded_attributes()) if options.entity_full_match else None
    return compile_condition(options.condition, _DEFAULT_EXISTENCE[op], extra)


def _update_row(changeset: Changeset[Any]) -> Row:
    puts = {name: value for name, value in changeset.changes.items() if value is not None}
    deletes = [name for name, value in changeset.changes.items() if value is None]
    columns: dict[str, Any] = {}
    if puts:
        columns["PUT"] = encode_attributes(puts)
    if deletes:
        columns["DELETE_ALL"] = deletes
    return Row(encode_primary_key(changeset.data.primary_key_values()), columns)


def _table_get_item(group: ReadGroup) -> TableInBatchGetRowItem:
    options: ColumnOptions = group.options
    return TableInBatchGetRowItem(
        group.schema.table_name(),
        [encode_primary_key(pk) for pk in group.primary_keys],
        columns_to_get=options.columns_to_get,
        column_filter=compile_filter(options.filter),
        max_version=1,
        start_column=options.start_column,
        end_column=options.end_column,
    )


def _row_item(item: WriteItem) -> Any:
    options = item.options
    if item.op == WriteOp.UPDATE:
        changeset = cast(Changeset[Any], item.target)
        return UpdateRowItem(
            _update_row(changeset),
            _write_condition(WriteOp.UPDATE, changeset.data, options),
            _RETURN_TYPES[options.return_type],
        )
    entity = cast(Schema, item.target)
    if item.op == WriteOp.PUT:
        return PutRowItem(
            entity_to_row(entity),
            compile_condition(options.condition, Existence.IGNORE),
            _RETURN_TYPES[_put_return_type(entity, options)],
        )
    return DeleteRowItem(
        Row(encode_primary_key(entity.primary_key_values())),
        _write_condition(WriteOp.DELETE, entity, options),
        _RETURN_TYPES[options.return_type],
    )


def _row_error(item: Any) -> TablestoreError:
    code = getattr(item, "error_code", None)
    error_cls = ConditionCheckError if code == CONDITION_CHECK_FAIL else TablestoreError
    return error_cls(f"{code}: {item.error_message}", code=code)


def _write_result(item: WriteItem, row_response: Any) -> RowResult:
    if not row_response.is_ok:
        return RowResult(ok=False, error=_row_error(row_response))
    if isinstance(item.target, Changeset):
        return RowResult(ok=True, entity=item.target.apply())
    if item.op == WriteOp.PUT:
        returned = getattr(row_response, "row", None)
        return RowResult(ok=True, entity=_merge_returned_pk(item.target, returned))
    return RowResult(ok=True, entity=item.target)


def _merge_returned_pk(entity: Schema, return_row: Any) -> Schema:
    """Fill primary keys generated by the server into ``entity``."""

    if return_row is None or not getattr(return_row, "primary_key", None):
        return entity
    schema = type(entity)
    returned = {
        column[0]: decode_value(schema, column[0], column[1])
        for column in return_row.primary_key
    }
    return entity.model_copy(update=returned)
