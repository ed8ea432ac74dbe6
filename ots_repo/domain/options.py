"""Validated option sets accepted by repository operations.

Unknown option names are rejected, so a typo such as ``colums_to_get`` fails
loudly instead of being ignored.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .filters import Existence, Expr, RowCondition


class Direction(StrEnum):
    FORWARD = "forward"
    BACKWARD = "backward"


class ReturnType(StrEnum):
    NONE = "none"
    PK = "pk"


class _Options(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ColumnOptions(_Options):
    """Column selection and filtering shared by every read."""

    columns_to_get: Optional[list[str]] = None
    start_column: Optional[str] = None
    end_column: Optional[str] = None
    filter: Optional[Any] = None

    @field_validator("filter")
    @classmethod
    def _check_filter(cls, v: Any) -> Any:
        if v is not None and not isinstance(v, Expr):
            raise ValueError("filter must be an expression built with col()")
        return v


class ReadOptions(ColumnOptions):
    transaction_id: Optional[str] = None


class RangeOptions(ReadOptions):
    direction: Direction = Direction.FORWARD
    limit: Optional[int] = Field(default=None, ge=1)


class BatchWriteOptions(_Options):
    condition: Optional[Any] = None
    return_type: ReturnType = ReturnType.NONE
    entity_full_match: bool = False

    @field_validator("condition", mode="before")
    @classmethod
    def _check_condition(cls, v: Any) -> Any:
        if v is None or isinstance(v, RowCondition):
            return v
        if isinstance(v, (str, Existence)):
            return RowCondition(Existence(v))
        raise ValueError("condition must be built with condition()")


class WriteOptions(BatchWriteOptions):
    transaction_id: Optional[str] = None
