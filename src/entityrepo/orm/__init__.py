"""SQLAlchemy 2.0 layer for entity-repo.

Modules
-------
base        EntityBase (declarative base) + IntIdEntity / UuidIdEntity / StrIdEntity
session     Engine factory, entity_session_factory, EntitySession (unit of work)

Tags:
    entity-repo, orm, sqlalchemy, declarative, unit-of-work
"""

from __future__ import annotations

from entityrepo.orm.base import (
    EntityBase,
    IntIdEntity,
    StrIdEntity,
    UuidIdEntity,
    entity_mapper,
    primary_key_attribute,
    primary_key_column,
)
from entityrepo.orm.session import (
    EntitySession,
    create_engine_from_settings,
    create_entity_engine,
    create_schema,
    entity_session_factory,
)

__all__ = [
    "EntityBase",
    "IntIdEntity",
    "UuidIdEntity",
    "StrIdEntity",
    "entity_mapper",
    "primary_key_column",
    "primary_key_attribute",
    "EntitySession",
    "create_entity_engine",
    "create_engine_from_settings",
    "entity_session_factory",
    "create_schema",
]
