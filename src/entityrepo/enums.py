"""
Shared enums for entity-repo.

STDLIB ONLY - NO PYDANTIC.
"""

from __future__ import annotations

from enum import Enum

from entityrepo.errors import InvalidArgumentError


class TrackingMode(str, Enum):
    """
    How a query materializes its results.

    TRACK_ALL: instances are attached to the unit of work; mutations are
        persisted on the next save.
    NO_TRACKING: instances are detached snapshots; every read builds new
        instances.
    NO_TRACKING_WITH_IDENTITY_RESOLUTION: detached snapshots, but reads of
        the same identity within one unit of work return the same instance.
        Default for reads.
    """

    TRACK_ALL = "track_all"
    NO_TRACKING = "no_tracking"
    NO_TRACKING_WITH_IDENTITY_RESOLUTION = "no_tracking_with_identity_resolution"

    @classmethod
    def coerce(cls, value: TrackingMode | str) -> TrackingMode:
        """Return the member for *value*, failing fast on anything unknown."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise InvalidArgumentError(
            f"Unsupported tracking mode: {value!r}",
            argument="tracking",
            value=value,
        )


class EntityState(str, Enum):
    """Persistence state of an instance within a unit of work."""

    DETACHED = "detached"
    UNCHANGED = "unchanged"
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


DEFAULT_TRACKING = TrackingMode.NO_TRACKING_WITH_IDENTITY_RESOLUTION


__all__ = [
    "TrackingMode",
    "EntityState",
    "DEFAULT_TRACKING",
]
