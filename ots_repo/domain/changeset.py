from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .schema import Schema

S = TypeVar("S", bound=Schema)


@dataclass(frozen=True)
class Changeset(Generic[S]):
    """A loaded entity paired with the field changes to write.

    A change to ``None`` removes the attribute column from the row. Changes
    are validated when the changeset is built, so an invalid value never
    reaches a write request.
    """

    data: S
    changes: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        schema = self.schema
        unknown = sorted(name for name in self.changes if name not in schema.model_fields)
        if unknown:
            raise ValueError(f"{schema.__name__} has no field(s) {unknown}")
        pk_changes = sorted(name for name in self.changes if name in schema.primary_key_fields())
        if pk_changes:
            raise ValueError(f"primary key(s) {pk_changes} cannot be changed")
        object.__setattr__(self, "changes", schema.validate_fields(self.changes))

    @property
    def schema(self) -> type[S]:
        return type(self.data)

    def apply(self) -> S:
        """Return the entity with the changes applied."""
        return self.data.model_copy(update=self.changes)


def change(entity: S, **changes: Any) -> Changeset[S]:
    """Build a changeset for ``entity``.

    >>> change(post, title="new title").changes
    {'title': 'new title'}
    """

    return Changeset(entity, dict(changes))
