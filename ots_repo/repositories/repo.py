from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Optional, Union

from ots_repo.domain.batch import RowResult
from ots_repo.domain.changeset import Changeset
from ots_repo.domain.schema import Ids, PrimaryKey, Schema


class Repo(ABC):
    """Abstract repository interface binding schema classes to a data store.

    Failures are raised as :class:`ots_repo.errors.RepoError` subclasses; a
    row that does not exist is not a failure and reads return ``None``.
    """

    @property
    @abstractmethod
    def adapter(self) -> Any:
        """Return the adapter tied to the repository."""

    @abstractmethod
    def one(self, entity: Schema, **options: Any) -> Optional[Schema]:
        """
        Fetch the row matching the whole primary key of ``entity``.

        Attribute fields explicitly set on ``entity`` become ``==`` filter
        conditions; when a ``filter`` option is also given, both are merged
        into one AND filter.

        Example:
            >>> repo.one(Post(partition_key="p1", id=1, status="draft"))
            Post(partition_key='p1', id=1, status='draft', title='Hello')

        :param entity: Entity with every primary key set.
        :param options: Same as :meth:`get`.
        :return: The matched entity or None.
        """

    @abstractmethod
    def get(self, schema: type[Schema], ids: Ids, **options: Any) -> Optional[Schema]:
        """
        Fetch a single entity whose whole primary key matches ``ids``.

        Example:
            >>> repo.get(Post, {"partition_key": "p1", "id": 1}, columns_to_get=["title"])

        :param schema: Schema class of the table.
        :param ids: Primary key values as a mapping or ``(name, value)`` pairs.
        :param options: ``columns_to_get``, ``start_column`` (inclusive),
            ``end_column`` (exclusive), ``filter`` and ``transaction_id``.
        :return: The entity or None.
        """

    @abstractmethod
    def get_range(
        self,
        schema: type[Schema],
        start_primary_keys: Ids,
        end_primary_keys: Ids,
        **options: Any,
    ) -> tuple[list[Schema], Optional[PrimaryKey]]:
        """
        Read the rows between two primary keys.

        Example:
            >>> rows, next_start = repo.get_range(
            ...     Post, [("partition_key", "p1"), ("id", INF_MIN)],
            ...     [("partition_key", "p1"), ("id", INF_MAX)], direction="forward")

        :param start_primary_keys: Inclusive start, or the ``next_start`` of a
            previous call.
        :param end_primary_keys: Exclusive end.
        :param options: ``direction`` plus the options of :meth:`get` and ``limit``.
        :return: The entities and the next start primary key, None when done.
        """

    @abstractmethod
    def batch_get(self, gets: Iterable[Any]) -> dict[type[Schema], list[Schema]]:
        """
        Read rows of one or more tables in one request.

        Example:
            >>> repo.batch_get([
            ...     (Post, [{"partition_key": "p1", "id": 1}]),
            ...     [User(id=1), User(id=2)],
            ... ])
            {Post: [Post(...)], User: [User(...), User(...)]}
        """

    @abstractmethod
    def batch_write(
        self, writes: Union[Mapping[str, Iterable[Any]], Iterable[tuple[str, Iterable[Any]]]]
    ) -> dict[type[Schema], dict[str, list[RowResult]]]:
        """
        Put, update and delete rows of one or more tables in one request.

        Every row succeeds or fails on its own; see :class:`RowResult`.

        Example:
            >>> repo.batch_write({
            ...     "put": [(post, {"condition": condition("expect_not_exist")})],
            ...     "update": [change(user, name="new")],
            ...     "delete": [old_post],
            ... })
        """

    @abstractmethod
    def insert(self, struct_or_changeset: Union[Schema, Changeset[Any]], **options: Any) -> Schema:
        """
        Persist a new entity.

        :param options: ``condition``, ``return_type`` and ``transaction_id``.
        :return: The stored entity, with generated primary keys filled in.
        """

    @abstractmethod
    def update(self, changeset: Changeset[Any], **options: Any) -> Schema:
        """
        Write the changes of ``changeset``.

        :param options: ``condition``, ``return_type``, ``transaction_id`` and
            ``entity_full_match``.
        :return: The updated entity.
        """

    @abstractmethod
    def delete(self, struct_or_changeset: Union[Schema, Changeset[Any]], **options: Any) -> Schema:
        """
        Delete the row of an entity.

        :return: The deleted entity.
        """

    @abstractmethod
    def start(self, **options: Any) -> Any:
        """
        Start the repository and return its client.

        Raises ``AlreadyStartedError`` when the repository is running.
        """
