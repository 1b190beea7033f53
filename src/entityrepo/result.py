"""
Lookup outcomes as values.

``try_get_by_id`` returns ``Ok(entity)`` for a row that exists and
``Err(NotFoundError)`` for one that does not, whatever the existence check
policy says. Storage faults are not folded in; they still raise, so an
``Err`` always means "absent", never "the store failed".

Examples:
    >>> match await repo.try_get_by_id(Widget, 7):
    ...     case Ok(widget):
    ...         print(widget.name)
    ...     case Err(error):
    ...         print(error.message)
    Entity of type Widget with id 7 not found

    >>> (await repo.try_get_by_id(Widget, 7)).map(lambda w: w.name).unwrap_or("-")
    '-'

Tags:
    result, lookup, not-found
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from entityrepo.errors import RepositoryError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """The lookup found *value*."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        """Apply *f* to the found value."""
        return Ok(f(self.value))

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """The lookup came back empty; *error* says what was missing."""

    error: RepositoryError

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the carried error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, f: Callable[[T], U]) -> Err[U]:
        return Err(self.error)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "error": self.error.to_dict()}


Result = Ok[T] | Err[T]


def from_optional(value: T | None, error: RepositoryError) -> Result[T]:
    """``Ok(value)``, or ``Err(error)`` when *value* is ``None``."""
    if value is None:
        return Err(error)
    return Ok(value)


__all__ = [
    "Ok",
    "Err",
    "Result",
    "from_optional",
]
