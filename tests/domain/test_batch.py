from __future__ import annotations

import pytest
from pydantic import ValidationError

from ots_repo.domain.batch import WriteOp, normalize_gets, normalize_writes
from ots_repo.domain.changeset import change
from ots_repo.domain.filters import Existence, col, condition
from ots_repo.domain.options import ReadOptions, ReturnType
from tests.support import Post, User


def test_normalize_gets_accepts_every_form() -> None:
    groups = normalize_gets(
        [
            (Post, [{"partition_key": "a", "id": 1}, [("id", 2), ("partition_key", "a")]]),
            ([User(id=1), User(id=2)], {"columns_to_get": ["name"]}),
        ]
    )

    assert [g.schema for g in groups] == [Post, User]
    assert groups[0].primary_keys == [
        [("partition_key", "a"), ("id", 1)],
        [("partition_key", "a"), ("id", 2)],
    ]
    assert groups[1].primary_keys == [[("id", 1)], [("id", 2)]]
    assert groups[1].options.columns_to_get == ["name"]


def test_normalize_gets_with_options_and_plain_entity_list() -> None:
    expr = col("name") == "x"
    groups = normalize_gets(
        [(User, [{"id": 1}], {"filter": expr}), [Post(partition_key="a", id=1)]]
    )
    assert groups[0].options.filter == expr
    assert groups[1].schema is Post


def test_normalize_gets_rejects_bad_groups() -> None:
    with pytest.raises(ValueError, match="more than one"):
        normalize_gets([(User, [{"id": 1}]), [User(id=2)]])
    with pytest.raises(ValueError, match="one schema"):
        normalize_gets([[User(id=1), Post(partition_key="a", id=1)]])
    with pytest.raises(ValueError, match="unsupported"):
        normalize_gets(["user"])
    with pytest.raises(ValidationError):
        normalize_gets([(User, [{"id": 1}], {"transaction_id": "t"})])


def test_normalize_writes_accepts_every_form() -> None:
    user = User(id=1, name="a")
    items = normalize_writes(
        {
            "put": [
                user,
                (User(id=2), {"condition": condition("expect_not_exist")}),
                (User, {"id": 3}, {"name": "c"}, {"return_type": "pk"}),
            ],
            "update": [
                change(user, name="b"),
                (change(user, name="z"), {"entity_full_match": True}),
            ],
            "delete": [user, (user, {}), (User, {"id": 4}, {})],
        }
    )

    assert [i.op for i in items] == [WriteOp.PUT] * 3 + [WriteOp.UPDATE] * 2 + [WriteOp.DELETE] * 3
    assert items[1].options.condition.existence == Existence.EXPECT_NOT_EXIST
    assert items[2].target == User(id=3, name="c")
    assert items[2].options.return_type == ReturnType.PK
    assert items[4].options.entity_full_match is True
    assert items[7].target.id == 4
    assert all(i.schema is User for i in items)


def test_normalize_writes_accepts_pairs_and_rejects_bad_items() -> None:
    items = normalize_writes([("delete", [User(id=1)])])
    assert items[0].op == WriteOp.DELETE

    with pytest.raises(ValueError):
        normalize_writes({"upsert": [User(id=1)]})
    with pytest.raises(ValueError, match="changesets"):
        normalize_writes({"update": [User(id=1)]})
    with pytest.raises(ValidationError):
        normalize_writes({"put": [(User(id=1), {"transaction_id": "t"})]})


def test_options_reject_unknown_names_and_bad_values() -> None:
    with pytest.raises(ValidationError):
        ReadOptions(colums_to_get=["a"])
    with pytest.raises(ValidationError):
        ReadOptions(filter="age > 1")
