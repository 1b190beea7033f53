"""
Structured error types for entity-repo.

Provides a small hierarchy of typed errors with category, structured context,
and cause chaining so callers can tell an expected "not found" apart from a
misuse of the API or a fault raised by the storage layer.

Manifesto:
    - **Typed Error Hierarchy:** NotFound, Unsupported and InvalidArgument are
      distinct types, never bare ``Exception``
    - **Storage faults stay raw:** SQLAlchemy exceptions propagate unchanged;
      this layer does not retry, back off or translate them
    - **Rich Context:** Errors carry the operation, entity type and id
    - **Error Chaining:** Original exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     RepositoryError                          │
        │            (category, context, cause)                        │
        ├─────────────────────────────────────────────────────────────┤
        │  NotFoundError         UnsupportedOperationError             │
        │  (NOT_FOUND)           (UNSUPPORTED)                         │
        │                                                              │
        │  InvalidArgumentError  ConfigError                           │
        │  (VALIDATION)          (CONFIG)                              │
        └─────────────────────────────────────────────────────────────┘

        sqlalchemy.exc.*  ──────────►  propagated as-is (DATABASE)

Examples:
    >>> error = NotFoundError(42, Widget)
    >>> error.message
    'Entity of type Widget with id 42 not found'
    >>> error.category
    <ErrorCategory.NOT_FOUND: 'NOT_FOUND'>

    >>> InvalidArgumentError("bad", argument="tracking").to_dict()["argument"]
    'tracking'

Tags:
    error-handling, exception-hierarchy, error-context, repository
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        NOT_FOUND: Requested record does not exist (existence check)
        UNSUPPORTED: Backend cannot run the requested operation
        VALIDATION: Misuse of the API (bad tracking mode, wrong id type)
        CONFIG: Missing or invalid settings
        DATABASE: Faults raised by the storage layer
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    NOT_FOUND = "NOT_FOUND"
    UNSUPPORTED = "UNSUPPORTED"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    DATABASE = "DATABASE"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set end up in ``to_dict()``, so the same context
    type works for by-id operations and for predicate deletes.

    Examples:
        >>> ErrorContext(operation="get_by_id", entity_type="Widget").to_dict()
        {'operation': 'get_by_id', 'entity_type': 'Widget'}
    """

    operation: str | None = None
    entity_type: str | None = None
    entity_id: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, dropping unset fields."""
        result: dict[str, Any] = {}
        if self.operation:
            result["operation"] = self.operation
        if self.entity_type:
            result["entity_type"] = self.entity_type
        if self.entity_id is not None:
            result["entity_id"] = self.entity_id
        result.update(self.metadata)
        return result


class RepositoryError(Exception):
    """
    Base exception for all entity-repo errors.

    Subclasses set ``default_category``; every instance carries a message,
    a category, an :class:`ErrorContext` and an optional cause. The cause is
    also chained as ``__cause__`` so tracebacks show the root failure.

    Examples:
        >>> error = RepositoryError("boom")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(operation="add_item").context.operation
        'add_item'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RepositoryError:
        """
        Add context to this error (fluent API).

        Usage:
            raise UnsupportedOperationError("...").with_context(
                operation="delete_items_execute",
                entity_type="Widget",
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class NotFoundError(RepositoryError):
    """
    Requested entity does not exist.

    Raised only when the existence check policy is enabled. Carries the
    requested id and the entity type.
    """

    default_category = ErrorCategory.NOT_FOUND

    def __init__(self, entity_id: Any, entity_type: type, **kwargs: Any):
        self.entity_id = entity_id
        self.entity_type = entity_type
        super().__init__(
            f"Entity of type {entity_type.__name__} with id {entity_id} not found",
            context=ErrorContext(entity_type=entity_type.__name__, entity_id=entity_id),
            **kwargs,
        )


class UnsupportedOperationError(RepositoryError):
    """The backend cannot execute the requested operation."""

    default_category = ErrorCategory.UNSUPPORTED


class InvalidArgumentError(RepositoryError, ValueError):
    """
    An argument is outside what the operation accepts.

    Fails fast; values are never coerced to a default.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        argument: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.argument = argument
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.argument:
            result["argument"] = self.argument
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class ConfigError(RepositoryError):
    """Configuration is missing or invalid."""

    default_category = ErrorCategory.CONFIG


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, RepositoryError):
        return error.category
    if isinstance(error, SQLAlchemyError):
        return ErrorCategory.DATABASE
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RepositoryError",
    "NotFoundError",
    "UnsupportedOperationError",
    "InvalidArgumentError",
    "ConfigError",
    "categorize_error",
]
