from __future__ import annotations

import pytest

from ots_repo.infrastructure.tablestore_adapter import TablestoreAdapter
from ots_repo.logging_config import CapacityStats
from ots_repo.repositories.tablestore.tablestore_repo import TablestoreRepo
from tests.support import FakeClient


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def adapter(client: FakeClient) -> TablestoreAdapter:
    return TablestoreAdapter(client, stats=CapacityStats())


@pytest.fixture
def repo(client: FakeClient) -> TablestoreRepo:
    r = TablestoreRepo()
    r.start(client=client)
    return r
