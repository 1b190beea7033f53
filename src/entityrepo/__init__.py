"""entity-repo: identity-based entities and generic async repository operations.

Modules
-------
entity      Entity / IdEntity identity model and display templates
enums       TrackingMode, EntityState
errors      RepositoryError hierarchy (NotFound, Unsupported, InvalidArgument)
result      Ok / Err typed results
settings    RepositorySettings (ENTITYREPO_* environment)
logging     structlog configuration
protocols   StorageSession, RepositoryLogger
orm         Declarative base, engine factory, EntitySession
query       EntityQuery
repository  EntityRepository

Tags:
    entity-repo, repository, sqlalchemy, asyncio
"""

from __future__ import annotations

from entityrepo.entity import Entity, IdEntity, register_display, register_id_default
from entityrepo.enums import EntityState, TrackingMode
from entityrepo.errors import (
    InvalidArgumentError,
    NotFoundError,
    RepositoryError,
    UnsupportedOperationError,
)
from entityrepo.orm import (
    EntityBase,
    EntitySession,
    IntIdEntity,
    StrIdEntity,
    UuidIdEntity,
    create_entity_engine,
    create_schema,
    entity_session_factory,
)
from entityrepo.query import EntityQuery
from entityrepo.repository import EntityRepository
from entityrepo.result import Err, Ok, Result
from entityrepo.settings import RepositorySettings

__version__ = "0.1.0"

__all__ = [
    "Entity",
    "IdEntity",
    "register_display",
    "register_id_default",
    "EntityState",
    "TrackingMode",
    "RepositoryError",
    "NotFoundError",
    "UnsupportedOperationError",
    "InvalidArgumentError",
    "EntityBase",
    "IntIdEntity",
    "UuidIdEntity",
    "StrIdEntity",
    "EntitySession",
    "create_entity_engine",
    "create_schema",
    "entity_session_factory",
    "EntityQuery",
    "EntityRepository",
    "Ok",
    "Err",
    "Result",
    "RepositorySettings",
]
