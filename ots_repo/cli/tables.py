from __future__ import annotations

import argparse
import importlib
from typing import Sequence

from ots_repo.domain.schema import Schema
from ots_repo.logging_config import get_logger
from ots_repo.repositories.tablestore.tablestore_repo import TablestoreRepo


def load_schema(path: str) -> type[Schema]:
    """Import ``package.module:ClassName`` and check it is a schema."""

    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"expected MODULE:Class, got {path!r}")
    target = getattr(importlib.import_module(module_name), attr)
    if not (isinstance(target, type) and issubclass(target, Schema)):
        raise ValueError(f"{path} is not a Schema subclass")
    return target


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Manage Tablestore tables of schema classes")
    p.add_argument(
        "--instance",
        default=TablestoreRepo.instance,
        help="Instance whose <INSTANCE>_* environment settings are used",
    )
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List the tables of the instance")
    create = sub.add_parser("create", help="Create tables for schema classes")
    create.add_argument("schemas", nargs="+", metavar="MODULE:Class")
    create.add_argument("--max-versions", type=int, default=1)
    create.add_argument(
        "--ttl", type=int, default=-1, help="Time to live in seconds, -1 keeps rows forever"
    )
    drop = sub.add_parser("drop", help="Delete the tables of schema classes")
    drop.add_argument("schemas", nargs="+", metavar="MODULE:Class")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    get_logger()

    schemas = [load_schema(path) for path in getattr(args, "schemas", [])]
    repo = TablestoreRepo(instance=args.instance)
    repo.start()
    try:
        if args.command == "list":
            tables = repo.list_tables()
            print("\n".join(sorted(tables)) if tables else "No tables found.")
        elif args.command == "create":
            for schema in schemas:
                repo.create_table(schema, max_versions=args.max_versions, time_to_live=args.ttl)
                print(f"Created {schema.table_name()}")
        else:
            for schema in schemas:
                repo.delete_table(schema)
                print(f"Deleted {schema.table_name()}")
    finally:
        repo.stop()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
