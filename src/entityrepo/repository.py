"""Generic repository operations over a storage session.

Provides :class:`EntityRepository`, a uniform set of async CRUD and query
operations parameterized over entity type. One repository instance wraps
one unit of work (:class:`~entityrepo.orm.session.EntitySession`) and holds
its own immutable :class:`~entityrepo.settings.RepositorySettings`.

Manifesto:
    Every entity type gets the same behaviour without per-type boilerplate:

    - **Tracking per read:** each query picks tracked, detached, or
      detached-with-identity-resolution results
    - **Existence check policy:** ``check_found`` turns absent by-id targets
      into :class:`~entityrepo.errors.NotFoundError`; otherwise absence is
      ``None`` (reads, updates) or ``0`` (deletes)
    - **Zero rows is an outcome:** a write that touches nothing returns
      ``None`` / ``0``; storage faults propagate unchanged
    - **One log record per mutation:** emitted after the save succeeds

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │                        EntityRepository                          │
    │                                                                  │
    │   session: StorageSession   ← EntitySession over AsyncSession    │
    │   settings: RepositorySettings (check_found, log_level)          │
    │   logger: RepositoryLogger | None                                │
    │                                                                  │
    │   query(T, tracking)             → EntityQuery[T]                │
    │   get_by_id(T, id)               → T | None                      │
    │   try_get_by_id(T, id)           → Ok[T] | Err[NotFoundError]    │
    │   add_item(entity)               → T | None                      │
    │   update_item(entity)            → T | None                      │
    │   delete_item(T, id)             → int                           │
    │   delete_item_execute(T, id)     → int   (int keys only)         │
    │   delete_items_execute(T, pred)  → int                           │
    └──────────────────────────────────────────────────────────────────┘

Usage:
    >>> factory = entity_session_factory(engine)
    >>> async with factory() as session:
    ...     repo = EntityRepository(session, logger=get_logger("inventory"))
    ...     widget = await repo.add_item(Widget(name="bolt"))
    ...     same = await repo.get_by_id(Widget, widget.id)
    ...     await repo.delete_items_execute(Widget, Widget.name.like("b%"))

Tags:
    repository, crud, async, sqlalchemy, tracking
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy import Integer
from sqlalchemy.ext.asyncio import AsyncSession

from entityrepo.enums import DEFAULT_TRACKING, TrackingMode
from entityrepo.errors import InvalidArgumentError, NotFoundError
from entityrepo.logging import get_logger
from entityrepo.orm.base import primary_key_attribute, primary_key_column
from entityrepo.orm.session import EntitySession
from entityrepo.protocols import Criterion, RepositoryLogger, StorageSession
from entityrepo.query import EntityQuery
from entityrepo.result import Result, from_optional
from entityrepo.settings import RepositorySettings

logger = get_logger(__name__)

T = TypeVar("T")

Include = Callable[[EntityQuery[Any]], EntityQuery[Any]]


class EntityRepository:
    """Uniform CRUD operations for any mapped entity type.

    Parameters:
        session: An :class:`EntitySession` (or any ``StorageSession``), or a
            raw ``AsyncSession`` which is wrapped in an ``EntitySession``.
        settings: Policy for this repository. Defaults to
            ``RepositorySettings()`` (environment-driven).
        logger: Optional sink for one record per mutating call.

    Not safe for concurrent use: await one operation before starting the
    next. Separate repositories over separate sessions run independently.
    """

    def __init__(
        self,
        session: StorageSession | AsyncSession,
        *,
        settings: RepositorySettings | None = None,
        logger: RepositoryLogger | None = None,
    ) -> None:
        if isinstance(session, AsyncSession):
            session = EntitySession(session)
        self.session: StorageSession = session
        self.settings = settings or RepositorySettings()
        self.logger = logger

    @property
    def check_found(self) -> bool:
        return self.settings.check_found

    # -- Reads -------------------------------------------------------------

    def query(
        self,
        entity_type: type[T],
        tracking: TrackingMode | str = DEFAULT_TRACKING,
    ) -> EntityQuery[T]:
        """Lazy query over *entity_type*; nothing runs until a terminal is awaited."""
        return EntityQuery(self.session, entity_type, tracking=TrackingMode.coerce(tracking))

    async def get_by_id(
        self,
        entity_type: type[T],
        id: Any,
        *,
        tracking: TrackingMode | str = DEFAULT_TRACKING,
        include: Include | None = None,
    ) -> T | None:
        """Entity with primary key *id*, or ``None``.

        *include* shapes the query before it runs, typically with loader
        options: ``include=lambda q: q.options(selectinload(Widget.parts))``.

        Under identity resolution (the default) a repeated read returns the
        instance handed out first, refreshed from the row. Attributes the
        caller changed on it and has not saved yet keep the caller's values.

        Raises:
            NotFoundError: no row matches and ``check_found`` is enabled.
        """
        found = await self._find(entity_type, id, tracking, include)
        if found is None and self.check_found:
            raise NotFoundError(id, entity_type).with_context(operation="get_by_id")
        return found

    async def try_get_by_id(
        self,
        entity_type: type[T],
        id: Any,
        *,
        tracking: TrackingMode | str = DEFAULT_TRACKING,
        include: Include | None = None,
    ) -> Result[T]:
        """Like :meth:`get_by_id` but absence is ``Err(NotFoundError)``, whatever ``check_found`` says."""
        found = await self._find(entity_type, id, tracking, include)
        return from_optional(
            found,
            NotFoundError(id, entity_type).with_context(operation="try_get_by_id"),
        )

    # -- Writes ------------------------------------------------------------

    async def add_item(self, entity: T) -> T | None:
        """Insert *entity*; return it when a row was written."""
        self.session.add(entity)
        affected = await self.session.save_changes()
        self._log_call("add_item", entity, affected)
        return entity if affected > 0 else None

    async def update_item(self, entity: T) -> T | None:
        """Write all fields of *entity* over the row with its id.

        Works for tracked instances and for detached or newly built ones
        carrying an existing id.
        """
        if self.check_found:
            await self.get_by_id(
                type(entity),
                getattr(entity, primary_key_attribute(type(entity))),
                tracking=TrackingMode.NO_TRACKING,
            )
        self.session.mark_modified(entity)
        affected = await self.session.save_changes()
        self._log_call("update_item", entity, affected)
        return entity if affected > 0 else None

    async def delete_item(self, entity_type: type[T], id: Any) -> int:
        """Delete the row with primary key *id* without loading it."""
        if self.check_found:
            await self.get_by_id(entity_type, id, tracking=TrackingMode.NO_TRACKING)
        placeholder = entity_type(**{primary_key_attribute(entity_type): id})
        self.session.mark_deleted(placeholder)
        affected = await self.session.save_changes()
        self._log_call("delete_item", placeholder, affected)
        return affected

    async def delete_item_execute(self, entity_type: type[T], id: int) -> int:
        """Set-based delete of the row with integer primary key *id*.

        Raises:
            InvalidArgumentError: the key column is not an integer, or *id*
                is not an ``int``.
        """
        column = primary_key_column(entity_type)
        if not isinstance(column.type, Integer):
            raise InvalidArgumentError(
                f"{entity_type.__name__} does not have an integer primary key",
                argument="entity_type",
                value=entity_type,
            )
        if not isinstance(id, int) or isinstance(id, bool):
            raise InvalidArgumentError(
                f"Expected an int id, got {type(id).__name__}",
                argument="id",
                value=id,
            )
        if self.check_found:
            await self.get_by_id(entity_type, id, tracking=TrackingMode.NO_TRACKING)
        criterion = column == id
        affected = await self.session.execute_delete(entity_type, criterion)
        self._log_call("delete_item_execute", criterion, affected)
        return affected

    async def delete_items_execute(self, entity_type: type[T], predicate: Criterion) -> int:
        """``DELETE FROM <entity_type> WHERE <predicate>``; return the row count.

        *predicate* is a SQL expression (``Widget.name == "x"``) or a callable
        building one from the class (``lambda W: W.price > 10``).

        Raises:
            UnsupportedOperationError: the predicate is not expressible in SQL
                or the backend cannot run the statement.
        """
        affected = await self.session.execute_delete(entity_type, predicate)
        self._log_call("delete_items_execute", predicate, affected)
        return affected

    # -- Internals ---------------------------------------------------------

    async def _find(
        self,
        entity_type: type[T],
        id: Any,
        tracking: TrackingMode | str,
        include: Include | None,
    ) -> T | None:
        query = self.query(entity_type, tracking).where(primary_key_column(entity_type) == id)
        if include is not None:
            query = include(query)
        return await query.first()

    def _log_call(self, method: str, arg: Any, result: int) -> None:
        # Runs after the save succeeded; a broken sink must not turn that into a failure.
        if self.logger is None:
            return
        try:
            self.logger.log(self.settings.log_level_number, "%s(%s) result=%s", method, arg, result)
        except Exception:
            logger.warning("repository_log_failed", method=method, result=result, exc_info=True)


__all__ = ["EntityRepository", "Include"]
