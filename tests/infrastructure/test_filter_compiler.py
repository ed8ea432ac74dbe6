from __future__ import annotations

import pytest
from tablestore import (
    ComparatorType,
    CompositeColumnCondition,
    LogicalOperator,
    RowExistenceExpectation,
    SingleColumnCondition,
)

from ots_repo.domain.filters import Existence, col, condition
from ots_repo.infrastructure.filter_compiler import compile_condition, compile_filter


def test_compile_single_comparison() -> None:
    compiled = compile_filter(col("age") >= 18)
    assert isinstance(compiled, SingleColumnCondition)
    assert compiled.column_name == "age"
    assert compiled.column_value == 18
    assert compiled.comparator == ComparatorType.GREATER_EQUAL
    # a missing column fails the check unless ignore_if_missing is set
    assert compiled.pass_if_missing is False

    ignored = compile_filter(col("name[ignore_if_missing: true]") == "x")
    assert ignored.pass_if_missing is True


def test_compile_nested_composite() -> None:
    expr = (col("name", ignore_if_missing=True) == "n") & (col("age") > 1) | (col("class") == "1")
    compiled = compile_filter(expr)

    assert isinstance(compiled, CompositeColumnCondition)
    assert compiled.combinator == LogicalOperator.OR
    inner, last = compiled.sub_conditions
    assert inner.combinator == LogicalOperator.AND
    assert [c.column_name for c in inner.sub_conditions] == ["name", "age"]
    assert last.comparator == ComparatorType.EQUAL


def test_compile_not() -> None:
    compiled = compile_filter(~(col("deleted") == True))  # noqa: E712
    assert compiled.combinator == LogicalOperator.NOT
    assert len(compiled.sub_conditions) == 1


def test_compile_filter_none_and_invalid() -> None:
    assert compile_filter(None) is None
    with pytest.raises(TypeError):
        compile_filter("age > 1")  # type: ignore[arg-type]


def test_compile_condition_defaults_and_merges() -> None:
    default = compile_condition(None, Existence.EXPECT_EXIST)
    assert default.get_row_existence_expectation() == RowExistenceExpectation.EXPECT_EXIST
    assert default.get_column_condition() is None

    explicit = compile_condition(
        condition("expect_not_exist", col("a") == 1),
        Existence.IGNORE,
        extra_filter=col("b") == 2,
    )
    assert explicit.get_row_existence_expectation() == RowExistenceExpectation.EXPECT_NOT_EXIST
    merged = explicit.get_column_condition()
    assert merged.combinator == LogicalOperator.AND
    assert [c.column_name for c in merged.sub_conditions] == ["a", "b"]
