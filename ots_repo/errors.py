"""Exception hierarchy raised by repositories and the Tablestore adapter."""

from __future__ import annotations

from typing import Any, Optional, Sequence

CONDITION_CHECK_FAIL = "OTSConditionCheckFail"


class RepoError(RuntimeError):
    """Base class for every repository failure."""


class TablestoreError(RepoError):
    """Raised when the Tablestore SDK reports a client or service error."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.http_status = http_status
        self.request_id = request_id

    @classmethod
    def from_sdk_error(cls, exc: Exception) -> "TablestoreError":
        """Build the matching error from an ``OTSServiceError``/``OTSClientError``."""

        code = _call_getter(exc, "get_error_code")
        message = _call_getter(exc, "get_error_message") or str(exc)
        http_status = _call_getter(exc, "get_http_status")
        request_id = _call_getter(exc, "get_request_id") or None
        error_cls = ConditionCheckError if code == CONDITION_CHECK_FAIL else cls
        return error_cls(
            f"{code}: {message}" if code else str(message),
            code=code,
            http_status=http_status,
            request_id=request_id,
        )


class ConditionCheckError(TablestoreError):
    """The row condition of a write did not hold (stale or missing row)."""


class BatchError(RepoError):
    """Raised when rows of a batch read fail on the server."""

    def __init__(self, message: str, failures: Sequence[TablestoreError]) -> None:
        super().__init__(message)
        self.failures = list(failures)


class AlreadyStartedError(RepoError):
    """``start`` was called on a repository that is already running."""

    def __init__(self, client: Any) -> None:
        super().__init__("Repository is already started")
        self.client = client


class NotStartedError(RepoError):
    """A data operation was attempted before ``start``."""


def _call_getter(exc: Exception, name: str) -> Any:
    getter = getattr(exc, name, None)
    if getter is None:
        return None
    return getter()
