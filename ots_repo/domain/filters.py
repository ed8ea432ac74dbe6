"""Filter expressions and row conditions.

Filters are built from column references with Python operators::

    (col("name", ignore_if_missing=True) == name) & (col("age") > 1) | (col("class") == "1")

A column name may also carry its options inline, as in
``col("name[ignore_if_missing: true]")``.

``ignore_if_missing`` only matters for rows where the column does not exist:
such rows pass the check when it is true. An existing column always takes
part in the match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Iterable, Mapping, Optional, Union


class Comparator(StrEnum):
    EQ = "=="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="


class Logic(StrEnum):
    AND = "and"
    OR = "or"
    NOT = "not"


class Existence(StrEnum):
    IGNORE = "ignore"
    EXPECT_EXIST = "expect_exist"
    EXPECT_NOT_EXIST = "expect_not_exist"


class Expr:
    """Base of every filter expression node."""

    def __and__(self, other: "Expr") -> "Composite":
        return _combine(Logic.AND, self, other)

    def __or__(self, other: "Expr") -> "Composite":
        return _combine(Logic.OR, self, other)

    def __invert__(self) -> "Composite":
        return Composite(Logic.NOT, (self,))


@dataclass(frozen=True)
class Comparison(Expr):
    column: str
    comparator: Comparator
    value: Any
    ignore_if_missing: bool = False
    latest_version_only: bool = True


@dataclass(frozen=True)
class Composite(Expr):
    logic: Logic
    operands: tuple[Expr, ...]

    def __post_init__(self) -> None:
        if self.logic == Logic.NOT and len(self.operands) != 1:
            raise ValueError("'not' takes exactly one operand")
        if self.logic != Logic.NOT and len(self.operands) < 2:
            raise ValueError(f"'{self.logic}' takes at least two operands")


def _combine(logic: Logic, left: Expr, right: Expr) -> Composite:
    if not isinstance(right, Expr):
        return NotImplemented  # type: ignore[return-value]
    operands: list[Expr] = []
    for side in (left, right):
        # a and (b and c) -> and(a, b, c)
        if isinstance(side, Composite) and side.logic == logic:
            operands.extend(side.operands)
        else:
            operands.append(side)
    return Composite(logic, tuple(operands))


_INLINE_OPTIONS = re.compile(r"^\s*(?P<name>[^\[\]]+?)\s*\[(?P<options>[^\[\]]*)\]\s*$")
_COLUMN_OPTIONS = ("ignore_if_missing", "latest_version_only")


def _parse_inline(name: str) -> tuple[str, dict[str, bool]]:
    match = _INLINE_OPTIONS.match(name)
    if not match:
        return name, {}
    options: dict[str, bool] = {}
    for part in match.group("options").split(","):
        if not part.strip():
            continue
        key, sep, raw = part.partition(":")
        key = key.strip()
        value = raw.strip().lower()
        if not sep or key not in _COLUMN_OPTIONS or value not in {"true", "false"}:
            raise ValueError(f"invalid column option {part.strip()!r} in {name!r}")
        options[key] = value == "true"
    return match.group("name"), options


class Column:
    """Reference to an attribute column; comparing it yields a ``Comparison``."""

    __slots__ = ("name", "ignore_if_missing", "latest_version_only")

    def __init__(self, name: str, ignore_if_missing: bool, latest_version_only: bool) -> None:
        self.name = name
        self.ignore_if_missing = ignore_if_missing
        self.latest_version_only = latest_version_only

    def _compare(self, comparator: Comparator, value: Any) -> Comparison:
        if isinstance(value, (Column, Expr)):
            raise TypeError("a column can only be compared with a value")
        return Comparison(
            self.name, comparator, value, self.ignore_if_missing, self.latest_version_only
        )

    def __eq__(self, value: Any) -> Comparison:  # type: ignore[override]
        return self._compare(Comparator.EQ, value)

    def __ne__(self, value: Any) -> Comparison:  # type: ignore[override]
        return self._compare(Comparator.NE, value)

    def __gt__(self, value: Any) -> Comparison:
        return self._compare(Comparator.GT, value)

    def __ge__(self, value: Any) -> Comparison:
        return self._compare(Comparator.GE, value)

    def __lt__(self, value: Any) -> Comparison:
        return self._compare(Comparator.LT, value)

    def __le__(self, value: Any) -> Comparison:
        return self._compare(Comparator.LE, value)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"col({self.name!r})"


def col(
    name: str,
    *,
    ignore_if_missing: Optional[bool] = None,
    latest_version_only: Optional[bool] = None,
) -> Column:
    """Reference the attribute column ``name``.

    Keyword arguments win over options written inline in ``name``.
    """

    column, inline = _parse_inline(name)
    if ignore_if_missing is not None:
        inline["ignore_if_missing"] = ignore_if_missing
    if latest_version_only is not None:
        inline["latest_version_only"] = latest_version_only
    return Column(
        column,
        inline.get("ignore_if_missing", False),
        inline.get("latest_version_only", True),
    )


def all_of(exprs: Iterable[Optional[Expr]]) -> Optional[Expr]:
    """AND every given expression; ``None`` entries are skipped."""

    present = [expr for expr in exprs if expr is not None]
    if not present:
        return None
    result = present[0]
    for expr in present[1:]:
        result = result & expr
    return result


def equals(values: Mapping[str, Any]) -> Optional[Expr]:
    """One ``==`` comparison per column, joined with AND."""

    return all_of(col(name) == value for name, value in values.items())


@dataclass(frozen=True)
class RowCondition:
    """Row existence expectation plus an optional column filter."""

    existence: Existence = Existence.IGNORE
    filter: Optional[Expr] = None


def condition(
    existence: Union[Existence, str] = Existence.IGNORE, filter: Optional[Expr] = None
) -> RowCondition:
    """Build a row condition.

    >>> condition("expect_exist", col("status") == "draft").existence
    <Existence.EXPECT_EXIST: 'expect_exist'>
    """

    return RowCondition(Existence(existence), filter)
