from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, ClassVar, Iterable, Iterator, Mapping, Optional, Union

from tablestore import OTSClientError

from ots_repo.config.settings import DEFAULT_INSTANCE, build_instance_settings
from ots_repo.domain.batch import RowResult, normalize_gets, normalize_writes
from ots_repo.domain.changeset import Changeset
from ots_repo.domain.filters import all_of, equals
from ots_repo.domain.options import RangeOptions, ReadOptions, WriteOptions
from ots_repo.domain.schema import Ids, PrimaryKey, Schema, primary_key_from
from ots_repo.errors import AlreadyStartedError, NotStartedError, RepoError, TablestoreError
from ots_repo.infrastructure.tablestore_adapter import TablestoreAdapter

from ..repo import Repo

logger = logging.getLogger(__name__)


class TablestoreRepo(Repo):
    """Tablestore implementation of :class:`Repo`.

    Application repositories subclass it and name their instance::

        >>> class MyRepo(TablestoreRepo, instance="MY_INSTANCE"):
        ...     pass
        >>> repo = MyRepo()
        >>> repo.start()  # reads MY_INSTANCE_* settings
        >>> repo.insert(Post(partition_key="p1", title="Hello"))
        Post(partition_key='p1', id=1, title='Hello')
    """

    instance: ClassVar[str] = DEFAULT_INSTANCE

    def __init_subclass__(cls, instance: Optional[str] = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if instance is not None:
            cls.instance = instance

    def __init__(
        self, adapter: Optional[TablestoreAdapter] = None, *, instance: Optional[str] = None
    ) -> None:
        self._adapter = adapter
        if instance is not None:
            self.instance = instance

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def adapter(self) -> TablestoreAdapter:
        if self._adapter is None:
            raise NotStartedError(f"{type(self).__name__} is not started")
        return self._adapter

    @property
    def started(self) -> bool:
        return self._adapter is not None

    def start(self, client: Any = None, **options: Any) -> Any:
        """Connect to the configured instance.

        ``client`` wraps an existing ``OTSClient``; otherwise ``options``
        override the instance settings read from the environment.
        """
        if self._adapter is not None:
            raise AlreadyStartedError(self._adapter.client)
        if client is not None:
            if options:
                raise TypeError(
                    f"settings {sorted(options)} cannot be combined with an existing client"
                )
            self._adapter = TablestoreAdapter(client)
        else:
            try:
                settings = build_instance_settings(self.instance, options)
                self._adapter = TablestoreAdapter.connect(settings)
            except (RuntimeError, ValueError, OTSClientError) as exc:
                raise RepoError(f"cannot start {type(self).__name__}: {exc}") from exc
        logger.info(
            "Started repository %s", type(self).__name__, extra={"instance": self.instance}
        )
        return self._adapter.client

    def stop(self) -> None:
        if self._adapter is None:
            return
        self._adapter.stats.log_totals()
        self._adapter = None
        logger.info("Stopped repository %s", type(self).__name__)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def one(self, entity: Schema, **options: Any) -> Optional[Schema]:
        opts = ReadOptions(**options)
        merged = all_of([equals(entity.provided_attributes()), opts.filter])
        return self.adapter.get_row(
            type(entity),
            entity.primary_key_values(),
            opts.model_copy(update={"filter": merged}),
        )

    def get(self, schema: type[Schema], ids: Ids, **options: Any) -> Optional[Schema]:
        return self.adapter.get_row(schema, primary_key_from(schema, ids), ReadOptions(**options))

    def get_range(
        self,
        schema: type[Schema],
        start_primary_keys: Ids,
        end_primary_keys: Ids,
        **options: Any,
    ) -> tuple[list[Schema], Optional[PrimaryKey]]:
        return self.adapter.get_range(
            schema,
            primary_key_from(schema, start_primary_keys),
            primary_key_from(schema, end_primary_keys),
            RangeOptions(**options),
        )

    def stream_range(
        self,
        schema: type[Schema],
        start_primary_keys: Ids,
        end_primary_keys: Ids,
        **options: Any,
    ) -> Iterator[Schema]:
        """Yield every entity of the range, following ``next_start`` pages."""
        opts = RangeOptions(**options)
        start: Optional[PrimaryKey] = primary_key_from(schema, start_primary_keys)
        end = primary_key_from(schema, end_primary_keys)
        while start is not None:
            rows, start = self.adapter.get_range(schema, start, end, opts)
            yield from rows

    def batch_get(self, gets: Iterable[Any]) -> dict[type[Schema], list[Schema]]:
        return self.adapter.batch_get(normalize_gets(gets))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def batch_write(
        self, writes: Union[Mapping[str, Iterable[Any]], Iterable[tuple[str, Iterable[Any]]]]
    ) -> dict[type[Schema], dict[str, list[RowResult]]]:
        return self.adapter.batch_write(normalize_writes(writes))

    def insert(self, struct_or_changeset: Union[Schema, Changeset[Any]], **options: Any) -> Schema:
        entity = (
            struct_or_changeset.apply()
            if isinstance(struct_or_changeset, Changeset)
            else struct_or_changeset
        )
        return self.adapter.put_row(entity, WriteOptions(**options))

    def update(self, changeset: Changeset[Any], **options: Any) -> Schema:
        if not isinstance(changeset, Changeset):
            raise TypeError("update expects a changeset, build one with change()")
        return self.adapter.update_row(changeset, WriteOptions(**options))

    def delete(self, struct_or_changeset: Union[Schema, Changeset[Any]], **options: Any) -> Schema:
        entity = (
            struct_or_changeset.data
            if isinstance(struct_or_changeset, Changeset)
            else struct_or_changeset
        )
        return self.adapter.delete_row(entity, WriteOptions(**options))

    # ------------------------------------------------------------------
    # Local transactions and tables
    # ------------------------------------------------------------------
    @contextmanager
    def local_transaction(self, schema: type[Schema], partition_key_value: Any) -> Iterator[str]:
        """Run reads/writes of one partition key inside a local transaction.

        Pass the yielded id as ``transaction_id``. The transaction commits on
        normal exit and is aborted when the block raises.
        """
        adapter = self.adapter
        transaction_id = adapter.start_local_transaction(schema, partition_key_value)
        try:
            yield transaction_id
        except BaseException:
            try:
                adapter.abort_transaction(transaction_id)
            except TablestoreError as exc:
                logger.warning(
                    "Aborting transaction %s failed: %s",
                    transaction_id,
                    exc,
                    extra={"code": exc.code},
                )
            raise
        adapter.commit_transaction(transaction_id)

    def create_table(
        self, schema: type[Schema], *, max_versions: int = 1, time_to_live: int = -1
    ) -> None:
        self.adapter.create_table(schema, max_versions=max_versions, time_to_live=time_to_live)

    def delete_table(self, schema: type[Schema]) -> None:
        self.adapter.delete_table(schema)

    def list_tables(self) -> list[str]:
        return self.adapter.list_tables()
