"""Composable, lazily evaluated entity queries.

An :class:`EntityQuery` is an immutable pair of a SQLAlchemy ``Select`` and
a :class:`~entityrepo.enums.TrackingMode`. Builder methods return new
queries; nothing touches the store until one of the async terminals runs.

Architecture::

    repo.query(Widget)                      EntityQuery[Widget]
        .where(Widget.name == "x")          → new EntityQuery
        .options(selectinload(Widget.parts))
        .with_tracking(TrackingMode.TRACK_ALL)
        ↓
    await .all() / .first() / .count()
        TRACK_ALL                              → session.fetch_tracked
        NO_TRACKING                            → session.fetch_detached
        NO_TRACKING_WITH_IDENTITY_RESOLUTION   → fetch_detached + resolve

Tags:
    query, select, tracking, sqlalchemy
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select

from entityrepo.enums import DEFAULT_TRACKING, TrackingMode
from entityrepo.protocols import StorageSession

T = TypeVar("T")


class EntityQuery(Generic[T]):
    """Query over one entity type, materialized under a tracking mode."""

    __slots__ = ("_session", "_entity_type", "_statement", "_tracking")

    def __init__(
        self,
        session: StorageSession,
        entity_type: type[T],
        statement: Select[Any] | None = None,
        tracking: TrackingMode | str = DEFAULT_TRACKING,
    ) -> None:
        self._session = session
        self._entity_type = entity_type
        self._statement = statement if statement is not None else session.set(entity_type)
        self._tracking = TrackingMode.coerce(tracking)

    def __repr__(self) -> str:
        return (
            f"EntityQuery({self._entity_type.__name__}, "
            f"tracking={self._tracking.value})"
        )

    @property
    def entity_type(self) -> type[T]:
        return self._entity_type

    @property
    def statement(self) -> Select[Any]:
        """The underlying ``Select``."""
        return self._statement

    @property
    def tracking(self) -> TrackingMode:
        return self._tracking

    # -- Builders ----------------------------------------------------------

    def _derive(
        self,
        statement: Select[Any] | None = None,
        tracking: TrackingMode | None = None,
    ) -> EntityQuery[T]:
        return EntityQuery(
            self._session,
            self._entity_type,
            statement if statement is not None else self._statement,
            tracking if tracking is not None else self._tracking,
        )

    def where(self, *criteria: Any) -> EntityQuery[T]:
        return self._derive(self._statement.where(*criteria))

    def filter_by(self, **values: Any) -> EntityQuery[T]:
        return self._derive(self._statement.filter_by(**values))

    def options(self, *options: Any) -> EntityQuery[T]:
        """Loader options such as ``selectinload(Widget.parts)``."""
        return self._derive(self._statement.options(*options))

    def order_by(self, *clauses: Any) -> EntityQuery[T]:
        return self._derive(self._statement.order_by(*clauses))

    def limit(self, count: int | None) -> EntityQuery[T]:
        return self._derive(self._statement.limit(count))

    def offset(self, count: int | None) -> EntityQuery[T]:
        return self._derive(self._statement.offset(count))

    def with_tracking(self, tracking: TrackingMode | str) -> EntityQuery[T]:
        return self._derive(tracking=TrackingMode.coerce(tracking))

    # -- Terminals ---------------------------------------------------------

    async def all(self) -> list[T]:
        """Run the query and return every matching entity."""
        if self._tracking is TrackingMode.TRACK_ALL:
            return await self._session.fetch_tracked(self._statement)
        entities = await self._session.fetch_detached(self._statement)
        if self._tracking is TrackingMode.NO_TRACKING_WITH_IDENTITY_RESOLUTION:
            return self._session.resolve(entities)
        return entities

    async def first(self) -> T | None:
        """First matching entity, or ``None`` when nothing matches."""
        rows = await self.limit(1).all()
        return rows[0] if rows else None

    async def count(self) -> int:
        """Number of matching rows (ignores tracking)."""
        counted = select(func.count()).select_from(self._statement.order_by(None).subquery())
        rows = await self._session.fetch_tracked(counted)
        return int(rows[0]) if rows else 0


__all__ = ["EntityQuery"]
