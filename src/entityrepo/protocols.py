"""
Protocol definitions for the collaborators of the repository layer.

Manifesto:
    The repository talks to two external capabilities only, and both are
    described here as structural protocols so any conforming object works:

    - **StorageSession:** one unit of work against a relational store
    - **RepositoryLogger:** an optional sink for one record per mutation

Architecture:
    ::

        protocols.py
        ├── StorageSession    (implemented by orm.session.EntitySession)
        └── RepositoryLogger  (structlog loggers, logging.Logger)

Guardrails:
    ❌ DON'T: Share one StorageSession between concurrent operations
    ✅ DO: One unit of work in flight per session; separate sessions in parallel

    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep protocols pure contracts

Tags:
    protocol, storage-session, logger, contracts
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from sqlalchemy import Select
from sqlalchemy.sql.elements import ColumnElement

from entityrepo.enums import EntityState

T = TypeVar("T")

Criterion = ColumnElement[bool] | Callable[[Any], Any]


@runtime_checkable
class StorageSession(Protocol):
    """
    One unit of work against a relational store.

    Not safe for concurrent use: callers serialize operations per session.
    """

    def set(self, entity_type: type[T]) -> Select[tuple[T]]:
        """Statement selecting every row of *entity_type*."""
        ...

    def add(self, entity: Any) -> None:
        """Register *entity* for insertion."""
        ...

    def mark_modified(self, entity: Any) -> None:
        """Mark *entity* modified, re-attaching it when necessary."""
        ...

    def mark_deleted(self, entity: Any) -> None:
        """Mark the row identified by *entity* for deletion."""
        ...

    def state_of(self, entity: Any) -> EntityState:
        """Persistence state of *entity* in this unit of work."""
        ...

    async def save_changes(self) -> int:
        """Persist pending changes; return the affected-row count."""
        ...

    async def execute_delete(self, entity_type: type, criterion: Criterion) -> int:
        """Set-based delete of matching rows; return the deleted-row count."""
        ...

    async def fetch_tracked(self, statement: Select[Any]) -> list[Any]:
        """Materialize *statement* into instances tracked by this unit of work."""
        ...

    async def fetch_detached(self, statement: Select[Any]) -> list[Any]:
        """Materialize *statement* into fresh detached instances."""
        ...

    def resolve(self, entities: Sequence[Any]) -> list[Any]:
        """Map detached snapshots onto instances already seen in this unit of work."""
        ...


@runtime_checkable
class RepositoryLogger(Protocol):
    """Log sink: severity, message template, ordered arguments. Must not raise."""

    def log(self, level: int, msg: str, *args: Any) -> Any:
        ...


__all__ = [
    "Criterion",
    "StorageSession",
    "RepositoryLogger",
]
