from .changeset import Changeset, change
from .filters import Existence, RowCondition, col, condition
from .options import Direction, ReturnType
from .schema import Schema

__all__ = [
    "Changeset",
    "Direction",
    "Existence",
    "ReturnType",
    "RowCondition",
    "Schema",
    "change",
    "col",
    "condition",
]
