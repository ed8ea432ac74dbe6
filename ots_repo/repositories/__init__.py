"""Repository interfaces and implementations.

This package defines the abstract :class:`Repo` interface and the Tablestore
implementation under :mod:`ots_repo.repositories.tablestore`.
"""

from .repo import Repo
from .tablestore.tablestore_repo import TablestoreRepo

__all__ = ["Repo", "TablestoreRepo"]
