from __future__ import annotations

from typing import Any, Optional

from tablestore import (
    ComparatorType,
    CompositeColumnCondition,
    Condition,
    LogicalOperator,
    RowExistenceExpectation,
    SingleColumnCondition,
)

from ots_repo.domain.filters import (
    Comparator,
    Comparison,
    Composite,
    Existence,
    Expr,
    Logic,
    RowCondition,
    all_of,
)

from .row_codec import encode_value

_COMPARATORS = {
    Comparator.EQ: ComparatorType.EQUAL,
    Comparator.NE: ComparatorType.NOT_EQUAL,
    Comparator.GT: ComparatorType.GREATER_THAN,
    Comparator.GE: ComparatorType.GREATER_EQUAL,
    Comparator.LT: ComparatorType.LESS_THAN,
    Comparator.LE: ComparatorType.LESS_EQUAL,
}

_LOGIC = {
    Logic.AND: LogicalOperator.AND,
    Logic.OR: LogicalOperator.OR,
    Logic.NOT: LogicalOperator.NOT,
}

_EXISTENCE = {
    Existence.IGNORE: RowExistenceExpectation.IGNORE,
    Existence.EXPECT_EXIST: RowExistenceExpectation.EXPECT_EXIST,
    Existence.EXPECT_NOT_EXIST: RowExistenceExpectation.EXPECT_NOT_EXIST,
}


def compile_filter(expr: Optional[Expr]) -> Any:
    """Translate a filter expression into the SDK column condition tree."""

    if expr is None:
        return None
    if isinstance(expr, Comparison):
        # ignore_if_missing maps onto the SDK's pass_if_missing flag
        return SingleColumnCondition(
            expr.column,
            encode_value(expr.value),
            _COMPARATORS[expr.comparator],
            expr.ignore_if_missing,
            expr.latest_version_only,
        )
    if isinstance(expr, Composite):
        composite = CompositeColumnCondition(_LOGIC[expr.logic])
        for operand in expr.operands:
            composite.add_sub_condition(compile_filter(operand))
        return composite
    raise TypeError(f"unsupported filter expression: {expr!r}")


def compile_condition(
    row_condition: Optional[RowCondition],
    default: Existence,
    extra_filter: Optional[Expr] = None,
) -> Condition:
    """Build the SDK ``Condition`` of a write.

    ``extra_filter`` is ANDed with the condition's own filter; it carries the
    equality checks of ``entity_full_match``.
    """

    existence = row_condition.existence if row_condition is not None else default
    own_filter = row_condition.filter if row_condition is not None else None
    column_condition = compile_filter(all_of([own_filter, extra_filter]))
    return Condition(_EXISTENCE[existence], column_condition)
