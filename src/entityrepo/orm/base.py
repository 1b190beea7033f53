"""Declarative base, identifier mixins and type-map for mapped entities.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map``
that maps Python built-in types to portable SA column types.

Mixins
------
* **IntIdEntity**: auto-increment ``int`` primary key.
* **UuidIdEntity**: caller-assigned ``uuid.UUID`` primary key.
* **StrIdEntity**: caller-assigned ``str`` primary key.

Each mixin derives from :class:`~entityrepo.entity.IdEntity`, so mapped
classes get identity equality, hashing and display templates. List the
mixin before ``EntityBase``::

    class Widget(IntIdEntity, EntityBase):
        __tablename__ = "widgets"
        name: Mapped[str] = mapped_column(default="")
"""

from __future__ import annotations

import datetime
import uuid
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, Text, Uuid, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import DeclarativeBase, Mapped, Mapper, mapped_column
from sqlalchemy.sql.schema import Column

from entityrepo.entity import IdEntity
from entityrepo.errors import InvalidArgumentError


class EntityBase(DeclarativeBase):
    """Shared declarative base for every mapped entity.

    ``type_annotation_map`` lets Mapped columns use plain Python types and
    automatically resolve to the right SA column type:

    * ``str``   → ``Text``
    * ``int``   → ``Integer``
    * ``bool``  → ``Boolean``
    * ``datetime.datetime`` → ``DateTime``
    * ``uuid.UUID`` → ``Uuid``
    * ``dict``  → ``JSON``
    * ``list``  → ``JSON``
    """

    type_annotation_map = {
        str: Text,
        int: Integer,
        bool: Boolean,
        datetime.datetime: DateTime,
        uuid.UUID: Uuid,
        dict: JSON,
        list: JSON,
    }


class IntIdEntity(IdEntity):
    """Mixin adding an auto-increment integer primary key."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class UuidIdEntity(IdEntity):
    """Mixin adding a caller-assigned UUID primary key."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)


class StrIdEntity(IdEntity):
    """Mixin adding a caller-assigned string primary key."""

    id: Mapped[str] = mapped_column(Text, primary_key=True)


def entity_mapper(entity_type: Any) -> Mapper[Any]:
    """Return the ORM mapper for *entity_type*, failing fast when unmapped."""
    try:
        mapper = inspect(entity_type)
    except NoInspectionAvailable:
        mapper = None
    if not isinstance(mapper, Mapper):
        raise InvalidArgumentError(
            f"{getattr(entity_type, '__name__', entity_type)!s} is not a mapped entity type",
            argument="entity_type",
            value=entity_type,
        )
    return mapper


def primary_key_column(entity_type: Any) -> Column[Any]:
    """Single primary key column of a mapped entity type."""
    mapper = entity_mapper(entity_type)
    if len(mapper.primary_key) != 1:
        raise InvalidArgumentError(
            f"{entity_type.__name__} has a composite primary key",
            argument="entity_type",
            value=entity_type,
        )
    return mapper.primary_key[0]


def primary_key_attribute(entity_type: Any) -> str:
    """Attribute name mapped to the primary key column."""
    column = primary_key_column(entity_type)
    return entity_mapper(entity_type).get_property_by_column(column).key
