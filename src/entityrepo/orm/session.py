"""SQLAlchemy async engine factory and the unit-of-work storage session.

Manifesto:
    Repository operations need a storage session that reports how many
    rows a save touched, can re-attach a detached instance as "modified",
    can delete by key without loading, and can hand out detached snapshots.
    ``EntitySession`` layers exactly that over one ``AsyncSession``.

This module provides:

* ``create_entity_engine``        -- Create an ``AsyncEngine`` from a URL.
* ``create_engine_from_settings`` -- Same, from ``RepositorySettings``.
* ``entity_session_factory``      -- ``async_sessionmaker`` with
  ``expire_on_commit=False``.
* ``create_schema``               -- ``metadata.create_all`` on an async engine.
* ``EntitySession``               -- The storage session (unit of work).

Architecture::

    EntitySession
    ├── AsyncSession (tracked instances: inserts, dirty, deletes)
    ├── pending keyed writes (detached MODIFIED / DELETED instances)
    ├── snapshot sessions (per read, same connection, results detached)
    └── resolved snapshots (identity → instance, per unit of work)

    save_changes():
        count(new + dirty + deleted) → flush
        + Σ rowcount(UPDATE/DELETE ... WHERE pk = :id)
        → commit (autocommit=True)
        → drop the applied keyed writes

    execute_delete(T, criterion):
        DELETE ... WHERE criterion RETURNING pk → evict each returned key
        (no RETURNING: SELECT pk ... WHERE criterion first)

Tags:
    orm, sqlalchemy, asyncio, session, unit-of-work, engine
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy import MetaData, Select, and_, delete, event, select, update
from sqlalchemy.exc import ArgumentError, CompileError, InvalidRequestError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import InstanceState, attributes
from sqlalchemy.orm.attributes import flag_modified, set_committed_value
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.elements import ColumnElement

from entityrepo.enums import EntityState
from entityrepo.errors import ConfigError, UnsupportedOperationError
from entityrepo.logging import get_logger
from entityrepo.orm.base import EntityBase, entity_mapper
from entityrepo.protocols import Criterion
from entityrepo.settings import RepositorySettings

logger = get_logger(__name__)

T = TypeVar("T")


def create_entity_engine(
    url: str = "sqlite+aiosqlite:///:memory:",
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    pool_timeout: int | None = None,
    **kwargs: Any,
) -> AsyncEngine:
    """Create a SQLAlchemy ``AsyncEngine`` with sane defaults.

    Parameters
    ----------
    url:
        Async database URL (``sqlite+aiosqlite:///…``, ``postgresql+asyncpg://…``)
    echo:
        If ``True``, log all SQL.
    pool_size, max_overflow, pool_timeout:
        Connection pool parameters (ignored for SQLite).
    **kwargs:
        Extra arguments forwarded to ``create_async_engine``.
    """

    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        # One shared connection, otherwise every checkout sees a new empty database.
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            kwargs.setdefault("poolclass", StaticPool)

        engine = create_async_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow
    if pool_timeout is not None:
        pool_kwargs["pool_timeout"] = pool_timeout

    return create_async_engine(url, echo=echo, **pool_kwargs, **kwargs)


def create_engine_from_settings(settings: RepositorySettings | None = None) -> AsyncEngine:
    """Create the engine described by *settings* (defaults when omitted).

    Raises:
        ConfigError: ``database_url`` is malformed or names a driver that is
            missing or not async.
    """
    settings = settings or RepositorySettings()
    try:
        return create_entity_engine(settings.database_url, echo=settings.echo)
    except (ArgumentError, InvalidRequestError) as exc:
        raise ConfigError(
            f"Cannot create an async engine for {settings.database_url!r}",
            cause=exc,
        ).with_context(operation="create_engine_from_settings") from exc


def entity_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return an ``async_sessionmaker`` bound to *engine*.

    Sessions keep attribute values after commit, so returned entities stay
    readable outside the unit of work.
    """
    return async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine, metadata: MetaData | None = None) -> None:
    """Create all tables of *metadata* (``EntityBase.metadata`` by default)."""
    metadata = metadata if metadata is not None else EntityBase.metadata
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


@dataclass
class _PendingWrite:
    """A keyed UPDATE or DELETE queued for the next save."""

    state: EntityState
    entity: Any


class EntitySession:
    """Unit of work over one ``AsyncSession``.

    Instances attached to the underlying session are persisted by the ORM
    flush. Instances that are not attached (detached snapshots, or new
    instances carrying an existing key) are written with keyed
    ``UPDATE``/``DELETE`` statements whose row counts are reported as-is,
    so a key that matches nothing yields ``0`` instead of an error.

    Not safe for concurrent use: one operation in flight per session.

    Parameters:
        session: The SQLAlchemy ``AsyncSession`` doing the I/O. Prefer one
            from :func:`entity_session_factory`.
        autocommit: Commit after ``save_changes`` and ``execute_delete``.
            With ``False`` changes are only flushed and the caller commits.
    """

    def __init__(self, session: AsyncSession, *, autocommit: bool = True) -> None:
        self._session = session
        self.autocommit = autocommit
        self._pending: list[_PendingWrite] = []
        self._flagged: dict[int, Any] = {}
        self._resolved: dict[Any, Any] = {}

    @property
    def session(self) -> AsyncSession:
        """The wrapped ``AsyncSession``."""
        return self._session

    # --- query roots ---

    def set(self, entity_type: type[T]) -> Select[tuple[T]]:
        entity_mapper(entity_type)
        return select(entity_type)

    # --- state transitions ---

    def add(self, entity: Any) -> None:
        entity_mapper(type(entity))
        self._session.add(entity)

    def mark_modified(self, entity: Any) -> None:
        mapper = entity_mapper(type(entity))
        if self._is_attached(entity):
            state: InstanceState[Any] = attributes.instance_state(entity)
            for prop in mapper.column_attrs:
                if prop.key in state.dict and not self._is_key(mapper, prop):
                    flag_modified(entity, prop.key)
            self._flagged[id(entity)] = entity
            return
        self._forget_pending(entity)
        self._pending.append(_PendingWrite(EntityState.MODIFIED, entity))

    def mark_deleted(self, entity: Any) -> None:
        entity_mapper(type(entity))
        self._forget_pending(entity)
        if self._is_attached(entity):
            self._session.expunge(entity)
        self._flagged.pop(id(entity), None)
        self._pending.append(_PendingWrite(EntityState.DELETED, entity))

    def detach(self, entity: Any) -> None:
        """Stop tracking *entity*; queued writes for it are dropped."""
        self._forget_pending(entity)
        self._flagged.pop(id(entity), None)
        if self._is_attached(entity):
            self._session.expunge(entity)

    def state_of(self, entity: Any) -> EntityState:
        for write in self._pending:
            if write.entity is entity:
                return write.state
        if not self._is_attached(entity):
            return EntityState.DETACHED
        state: InstanceState[Any] = attributes.instance_state(entity)
        if state.pending:
            return EntityState.ADDED
        if state.deleted:
            return EntityState.DELETED
        if id(entity) in self._flagged or self._session.is_modified(entity):
            return EntityState.MODIFIED
        return EntityState.UNCHANGED

    # --- persistence ---

    async def save_changes(self) -> int:
        """Persist pending changes and return the number of affected rows.

        Queued keyed writes stay queued until all of them succeed, so after a
        storage fault and a rollback the same save can be retried (or the
        offending instance detached first).
        """
        session = self._session
        tracked = (
            len(session.new)
            + len(session.deleted)
            + sum(
                1
                for obj in session.dirty
                if id(obj) in self._flagged or session.is_modified(obj)
            )
        )
        await session.flush()
        self._flagged.clear()

        affected = tracked
        pending = list(self._pending)
        for write in pending:
            affected += await self._apply(write)

        if self.autocommit:
            await session.commit()
        applied = {id(write) for write in pending}
        self._pending = [write for write in self._pending if id(write) not in applied]
        logger.debug("save_changes", affected=affected, keyed_writes=len(pending))
        return affected

    async def execute_delete(self, entity_type: type, criterion: Criterion) -> int:
        """``DELETE FROM <entity_type> WHERE <criterion>`` without loading rows."""
        mapper = entity_mapper(entity_type)
        predicate = criterion
        if callable(criterion) and not isinstance(criterion, ColumnElement):
            try:
                criterion = criterion(entity_type)
            except (AttributeError, TypeError) as exc:
                raise UnsupportedOperationError(
                    f"Predicate {predicate!r} cannot be translated to a SQL DELETE",
                    cause=exc,
                ).with_context(operation="execute_delete", entity_type=entity_type.__name__) from exc
        if not isinstance(criterion, ColumnElement):
            raise UnsupportedOperationError(
                f"Predicate {predicate!r} cannot be translated to a SQL DELETE"
            ).with_context(operation="execute_delete", entity_type=entity_type.__name__)

        statement = (
            delete(entity_type)
            .where(criterion)
            .execution_options(synchronize_session=False)
        )
        try:
            with self._session.sync_session.no_autoflush:
                if self._session.get_bind().dialect.delete_returning:
                    deleted = await self._delete_returning(mapper, statement)
                else:
                    deleted = await self._delete_then_evict(mapper, statement, criterion)
        except CompileError as exc:
            raise UnsupportedOperationError(
                f"Backend cannot execute a set-based delete on {entity_type.__name__}",
                cause=exc,
            ).with_context(operation="execute_delete", entity_type=entity_type.__name__) from exc

        if self.autocommit:
            await self._session.commit()
        return deleted

    async def _delete_returning(self, mapper: Any, statement: Any) -> int:
        # Keys of the deleted rows come back with the DELETE itself.
        result = await self._session.execute(statement.returning(*mapper.primary_key))
        deleted = 0
        for row in result:
            self._evict_deleted(mapper.identity_key_from_primary_key(tuple(row)))
            deleted += 1
        return deleted

    async def _delete_then_evict(self, mapper: Any, statement: Any, criterion: Any) -> int:
        # Backends without DELETE ... RETURNING: read the matching keys first.
        matched = await self._session.execute(select(*mapper.primary_key).where(criterion))
        keys = [tuple(row) for row in matched]
        result = await self._session.execute(statement)
        for key in keys:
            self._evict_deleted(mapper.identity_key_from_primary_key(key))
        return result.rowcount

    async def discard_changes(self) -> None:
        """Drop queued writes and roll back the underlying session."""
        self._pending.clear()
        self._flagged.clear()
        await self._session.rollback()

    # --- reads ---

    async def fetch_tracked(self, statement: Select[Any]) -> list[Any]:
        result = await self._session.scalars(statement)
        return list(result.unique().all())

    async def fetch_detached(self, statement: Select[Any]) -> list[Any]:
        # A throwaway session on the same connection sees this unit of work's
        # flushed rows but keeps its own identity map.
        connection = await self._session.connection()
        async with AsyncSession(bind=connection, expire_on_commit=False) as snapshot:
            result = await snapshot.scalars(statement)
            entities = list(result.unique().all())
            snapshot.expunge_all()
        return entities

    def resolve(self, entities: Sequence[Any]) -> list[Any]:
        resolved = []
        for entity in entities:
            key = attributes.instance_state(entity).key
            if key is None:
                resolved.append(entity)
                continue
            known = self._resolved.get(key)
            if known is None:
                self._resolved[key] = entity
                resolved.append(entity)
                continue
            _copy_committed(entity, known, entity_mapper(type(entity)).attrs)
            resolved.append(known)
        return resolved

    def reset(self) -> None:
        """Forget identity-resolved snapshots."""
        self._resolved.clear()

    # --- internals ---

    def _is_attached(self, entity: Any) -> bool:
        return entity in self._session

    @staticmethod
    def _is_key(mapper: Any, prop: Any) -> bool:
        return any(column in mapper.primary_key for column in prop.columns)

    def _forget_pending(self, entity: Any) -> None:
        self._pending = [write for write in self._pending if write.entity is not entity]

    async def _apply(self, write: _PendingWrite) -> int:
        entity = write.entity
        entity_type = type(entity)
        mapper = entity_mapper(entity_type)
        key_values = mapper.primary_key_from_instance(entity)
        where = and_(*(column == value for column, value in zip(mapper.primary_key, key_values)))

        if write.state is EntityState.DELETED:
            statement = delete(entity_type).where(where)
        else:
            state: InstanceState[Any] = attributes.instance_state(entity)
            values = {
                prop.key: state.dict[prop.key]
                for prop in mapper.column_attrs
                if prop.key in state.dict and not self._is_key(mapper, prop)
            }
            if not values:
                # Nothing to write; a key-for-key assignment still reports whether the row exists.
                values = {
                    mapper.get_property_by_column(column).key: value
                    for column, value in zip(mapper.primary_key, key_values)
                }
            statement = update(entity_type).where(where).values(**values)

        result = await self._session.execute(
            statement.execution_options(synchronize_session=False)
        )
        identity_key = mapper.identity_key_from_primary_key(key_values)
        if write.state is EntityState.DELETED:
            self._evict_deleted(identity_key)
        elif result.rowcount:
            _mark_committed(entity, mapper.column_attrs)
            self._evict_updated(identity_key, entity, mapper)
        return result.rowcount

    def _evict_updated(self, identity_key: Any, written: Any, mapper: Any) -> None:
        # Tracked copies of a row written by key are stale now.
        tracked = self._session.sync_session.identity_map.get(identity_key)
        if tracked is not None and tracked is not written:
            self._session.expunge(tracked)
        known = self._resolved.get(identity_key)
        if known is not None and known is not written:
            _copy_committed(written, known, mapper.column_attrs)

    def _evict_deleted(self, identity_key: Any) -> None:
        tracked = self._session.sync_session.identity_map.get(identity_key)
        if tracked is not None:
            self._session.expunge(tracked)
        self._resolved.pop(identity_key, None)


def _copy_committed(source: Any, target: Any, props: Any) -> None:
    """Copy loaded values of *props* from *source* onto *target* as committed state.

    Attributes changed on *target* since it was loaded keep the caller's value.
    """
    loaded = attributes.instance_state(source).dict
    edited = attributes.instance_state(target).committed_state
    for prop in props:
        if prop.key in loaded and prop.key not in edited:
            set_committed_value(target, prop.key, loaded[prop.key])


def _mark_committed(entity: Any, props: Any) -> None:
    """Treat the loaded values of *props* on *entity* as the stored row."""
    loaded = attributes.instance_state(entity).dict
    for prop in props:
        if prop.key in loaded:
            set_committed_value(entity, prop.key, loaded[prop.key])


__all__ = [
    "create_entity_engine",
    "create_engine_from_settings",
    "entity_session_factory",
    "create_schema",
    "EntitySession",
]
