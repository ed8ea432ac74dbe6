"""Schemas and SDK fakes shared by the test suite."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field
from tablestore import OTSServiceError

from ots_repo.domain.schema import Schema


class Post(Schema):
    __tablename__ = "post"
    __primary_key__ = ("partition_key", "id")
    __autoincrement__ = "id"

    partition_key: str
    id: int | None = None
    title: str | None = None
    status: str | None = None
    tags: list[str] | None = None
    meta: dict[str, Any] | None = None
    published_at: datetime | None = None
    score: float | None = None


class User(Schema):
    __tablename__ = "user"
    __primary_key__ = ("id",)

    id: int
    name: str | None = None
    avatar: bytes | None = None


class Article(Schema):
    """Schema whose attributes are required, as partial reads leave them out."""

    __tablename__ = "article"
    __primary_key__ = ("id",)

    id: int
    title: str
    body: str
    views: int = Field(default=0, ge=0)


class FakeCapacity:
    def __init__(self, read: int = 0, write: int = 0) -> None:
        self.read = read
        self.write = write


class FakeRowItem:
    """Per-row item of batch responses."""

    def __init__(
        self,
        row: Any = None,
        *,
        is_ok: bool = True,
        error_code: str = "",
        error_message: str = "",
        consumed: Any = None,
    ) -> None:
        self.row = row
        self.is_ok = is_ok
        self.error_code = error_code
        self.error_message = error_message
        self.consumed = consumed


class FakeBatchGetResponse:
    def __init__(self, by_table: Dict[str, List[FakeRowItem]]) -> None:
        self.by_table = by_table

    def get_result_by_table(self, table_name: str) -> List[FakeRowItem]:
        return self.by_table.get(table_name, [])


class FakeBatchWriteResponse:
    def __init__(
        self,
        puts: Optional[Dict[str, List[FakeRowItem]]] = None,
        updates: Optional[Dict[str, List[FakeRowItem]]] = None,
        deletes: Optional[Dict[str, List[FakeRowItem]]] = None,
    ) -> None:
        self.puts = puts or {}
        self.updates = updates or {}
        self.deletes = deletes or {}

    def get_put_by_table(self, table_name: str) -> List[FakeRowItem]:
        return self.puts.get(table_name, [])

    def get_update_by_table(self, table_name: str) -> List[FakeRowItem]:
        return self.updates.get(table_name, [])

    def get_delete_by_table(self, table_name: str) -> List[FakeRowItem]:
        return self.deletes.get(table_name, [])


class FakeServiceError(OTSServiceError):
    def __init__(self, code: str, message: str = "failed", request_id: str = "req-1") -> None:
        Exception.__init__(self, message)
        self._code = code
        self._message = message
        self._request_id = request_id

    def get_error_code(self) -> str:
        return self._code

    def get_error_message(self) -> str:
        return self._message

    def get_http_status(self) -> int:
        return 403

    def get_request_id(self) -> str:
        return self._request_id


class FakeClient:
    """Stand-in for ``OTSClient`` that records calls and replays queued results."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []
        self._queued: Dict[str, List[Any]] = {}

    def queue(self, method: str, *results: Any) -> None:
        self._queued.setdefault(method, []).extend(results)

    def calls_to(self, method: str) -> List[Tuple[Tuple[Any, ...], Dict[str, Any]]]:
        return [(args, kwargs) for name, args, kwargs in self.calls if name == method]

    def _respond(self, method: str, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
        self.calls.append((method, args, kwargs))
        queued = self._queued.get(method)
        result = queued.pop(0) if queued else None
        if isinstance(result, Exception):
            raise result
        return result

    def get_row(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("get_row", args, kwargs)

    def get_range(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("get_range", args, kwargs)

    def put_row(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("put_row", args, kwargs)

    def update_row(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("update_row", args, kwargs)

    def delete_row(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("delete_row", args, kwargs)

    def batch_get_row(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("batch_get_row", args, kwargs)

    def batch_write_row(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("batch_write_row", args, kwargs)

    def start_local_transaction(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("start_local_transaction", args, kwargs)

    def commit_transaction(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("commit_transaction", args, kwargs)

    def abort_transaction(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("abort_transaction", args, kwargs)

    def create_table(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("create_table", args, kwargs)

    def delete_table(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("delete_table", args, kwargs)

    def list_table(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("list_table", args, kwargs)
