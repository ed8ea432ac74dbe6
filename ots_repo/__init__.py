"""Declarative repositories for Alibaba Cloud Tablestore."""

from tablestore.metadata import INF_MAX, INF_MIN

from .domain import (
    Changeset,
    Direction,
    Existence,
    ReturnType,
    RowCondition,
    Schema,
    change,
    col,
    condition,
)
from .domain.batch import RowResult
from .errors import (
    AlreadyStartedError,
    BatchError,
    ConditionCheckError,
    NotStartedError,
    RepoError,
    TablestoreError,
)
from .repositories import Repo, TablestoreRepo

__all__ = [
    "INF_MAX",
    "INF_MIN",
    "AlreadyStartedError",
    "BatchError",
    "Changeset",
    "ConditionCheckError",
    "Direction",
    "Existence",
    "NotStartedError",
    "Repo",
    "RepoError",
    "ReturnType",
    "RowCondition",
    "RowResult",
    "Schema",
    "TablestoreError",
    "TablestoreRepo",
    "change",
    "col",
    "condition",
]
