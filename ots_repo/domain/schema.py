"""Schema base class mapping pydantic models to Tablestore tables.

Example:
    >>> class Post(Schema):
    ...     __tablename__ = "post"
    ...     __primary_key__ = ("partition_key", "id")
    ...     __autoincrement__ = "id"
    ...
    ...     partition_key: str
    ...     id: int | None = None
    ...     title: str | None = None
    >>> Post(partition_key="p1", id=1).primary_key_values()
    [('partition_key', 'p1'), ('id', 1)]
"""

from __future__ import annotations

from functools import lru_cache
from typing import (
    Annotated,
    Any,
    ClassVar,
    Iterable,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from pydantic import BaseModel, ConfigDict, TypeAdapter

PrimaryKey = list[Tuple[str, Any]]
Ids = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]


class Schema(BaseModel):
    """Base class of every entity stored in Tablestore.

    Subclasses set ``__tablename__`` and ``__primary_key__``; the first primary
    key field is the partition key. ``__autoincrement__`` names a primary key
    generated by the server on insert.
    """

    __tablename__: ClassVar[str]
    __primary_key__: ClassVar[Tuple[str, ...]] = ()
    __autoincrement__: ClassVar[Optional[str]] = None

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        if not hasattr(cls, "__tablename__"):
            # Intermediate base without a table
            return
        pks = tuple(cls.__primary_key__)
        if not pks:
            raise TypeError(f"{cls.__name__} must declare __primary_key__")
        missing = [name for name in pks if name not in cls.model_fields]
        if missing:
            raise TypeError(f"{cls.__name__} primary key fields are not defined: {missing}")
        auto = cls.__autoincrement__
        if auto is not None:
            if auto not in pks:
                raise TypeError(f"{cls.__name__}.__autoincrement__ must be a primary key field")
            if auto == pks[0]:
                raise TypeError("the partition key cannot be auto-increment")
        cls.__primary_key__ = pks

    @classmethod
    def table_name(cls) -> str:
        return cls.__tablename__

    @classmethod
    def primary_key_fields(cls) -> Tuple[str, ...]:
        return cls.__primary_key__

    @classmethod
    def partition_key_field(cls) -> str:
        return cls.__primary_key__[0]

    @classmethod
    def attribute_fields(cls) -> Tuple[str, ...]:
        pks = set(cls.__primary_key__)
        return tuple(name for name in cls.model_fields if name not in pks)

    @classmethod
    def validate_fields(cls, values: Mapping[str, Any]) -> dict[str, Any]:
        """Validate some field values against their declarations.

        Unlike ``model_validate`` the other fields are not required, which is
        what changesets and partial reads need.
        """
        return {
            name: _field_adapter(cls, name).validate_python(value)
            for name, value in values.items()
        }

    def primary_key_values(self, *, allow_autoincrement: bool = False) -> PrimaryKey:
        """Return the ordered ``(name, value)`` primary key of this entity.

        Raises ``ValueError`` when a key is unset, unless it is the
        auto-increment key and ``allow_autoincrement`` is true, in which case
        it is returned as ``None``.
        """
        out: PrimaryKey = []
        for name in self.__primary_key__:
            value = getattr(self, name, None)
            if value is None and not (allow_autoincrement and name == self.__autoincrement__):
                raise ValueError(
                    f"primary key {name!r} of {type(self).__name__} must be set"
                )
            out.append((name, value))
        return out

    def provided_attributes(self) -> dict[str, Any]:
        """Attribute values explicitly given when the entity was built."""
        return {
            name: getattr(self, name, None)
            for name in self.attribute_fields()
            if name in self.model_fields_set and getattr(self, name, None) is not None
        }

    def loaded_attributes(self) -> dict[str, Any]:
        """Every attribute value that is not ``None``."""
        return {
            name: getattr(self, name, None)
            for name in self.attribute_fields()
            if getattr(self, name, None) is not None
        }


def primary_key_from(schema: type[Schema], ids: Ids) -> PrimaryKey:
    """Order ``ids`` by the schema's primary key.

    ``ids`` is a mapping or a sequence of ``(name, value)`` pairs, such as the
    ``next_start_primary_key`` returned by a range read. Every primary key must
    be present and no other name is accepted.
    """

    pairs: Iterable[Tuple[str, Any]] = ids.items() if isinstance(ids, Mapping) else ids
    given: dict[str, Any] = {}
    for pair in pairs:
        name, value = pair[0], pair[1]
        given[str(name)] = value

    unknown = sorted(set(given) - set(schema.primary_key_fields()))
    if unknown:
        raise ValueError(f"{schema.__name__} has no primary key(s) {unknown}")
    missing = [name for name in schema.primary_key_fields() if name not in given]
    if missing:
        raise ValueError(f"{schema.__name__} primary key(s) {missing} must be set")
    return [(name, given[name]) for name in schema.primary_key_fields()]


@lru_cache(maxsize=None)
def _field_adapter(schema: type[Schema], name: str) -> TypeAdapter[Any]:
    # constraints such as Field(gt=0) live in the field's metadata
    field = schema.model_fields[name]
    if field.metadata:
        return TypeAdapter(Annotated[field.annotation, *field.metadata])
    return TypeAdapter(field.annotation)
