from __future__ import annotations

import inspect

import pytest

from ots_repo import Repo, TablestoreRepo

OPERATIONS = (
    "adapter",
    "one",
    "get",
    "get_range",
    "batch_get",
    "batch_write",
    "insert",
    "update",
    "delete",
    "start",
)


def test_repo_is_abstract() -> None:
    assert inspect.isabstract(Repo)
    assert set(Repo.__abstractmethods__) == set(OPERATIONS)
    with pytest.raises(TypeError):
        Repo()  # type: ignore[abstract]


def test_tablestore_repo_implements_every_operation() -> None:
    assert not inspect.isabstract(TablestoreRepo)
    assert issubclass(TablestoreRepo, Repo)
    repo = TablestoreRepo()
    for name in OPERATIONS[1:]:
        assert callable(getattr(repo, name))


def test_partial_repo_cannot_be_built() -> None:
    class ReadOnlyRepo(Repo):
        @property
        def adapter(self) -> None:
            return None

        def one(self, entity, **options):  # type: ignore[no-untyped-def]
            return None

    with pytest.raises(TypeError):
        ReadOnlyRepo()  # type: ignore[abstract]
