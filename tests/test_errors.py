"""Tests for entityrepo.errors module."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from entityrepo.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidArgumentError,
    NotFoundError,
    RepositoryError,
    UnsupportedOperationError,
    categorize_error,
)

from _support.entities import Widget


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        ctx = ErrorContext()
        assert ctx.operation is None
        assert ctx.entity_type is None
        assert ctx.metadata == {}
        assert ctx.to_dict() == {}

    def test_to_dict_drops_unset_fields(self):
        ctx = ErrorContext(operation="get_by_id", entity_id=0)
        assert ctx.to_dict() == {"operation": "get_by_id", "entity_id": 0}

    def test_metadata_merged(self):
        ctx = ErrorContext(entity_type="Widget", metadata={"attempt": 2})
        assert ctx.to_dict() == {"entity_type": "Widget", "attempt": 2}


class TestRepositoryError:
    """Test RepositoryError base class."""

    def test_default_category(self):
        error = RepositoryError("boom")
        assert error.category == ErrorCategory.INTERNAL
        assert str(error) == "boom"

    def test_explicit_category(self):
        error = RepositoryError("boom", category=ErrorCategory.DATABASE)
        assert error.category == ErrorCategory.DATABASE

    def test_cause_chained(self):
        cause = KeyError("k")
        error = RepositoryError("wrapped", cause=cause)
        assert error.cause is cause
        assert error.__cause__ is cause

    def test_with_context_sets_fields(self):
        error = RepositoryError("x").with_context(operation="add_item", entity_type="Widget")
        assert error.context.operation == "add_item"
        assert error.context.entity_type == "Widget"

    def test_with_context_unknown_keys_go_to_metadata(self):
        error = RepositoryError("x").with_context(attempt=3)
        assert error.context.metadata == {"attempt": 3}

    def test_to_dict(self):
        error = RepositoryError("x", cause=ValueError("inner")).with_context(operation="op")
        data = error.to_dict()
        assert data["error_type"] == "RepositoryError"
        assert data["message"] == "x"
        assert data["category"] == "INTERNAL"
        assert data["context"] == {"operation": "op"}
        assert data["cause"] == "inner"

    def test_repr(self):
        assert repr(RepositoryError("x")) == "RepositoryError('x', category=INTERNAL)"


class TestNotFoundError:
    """Test NotFoundError carries id and type."""

    def test_message_and_fields(self):
        error = NotFoundError(42, Widget)
        assert error.message == "Entity of type Widget with id 42 not found"
        assert error.entity_id == 42
        assert error.entity_type is Widget
        assert error.category == ErrorCategory.NOT_FOUND

    def test_context_populated(self):
        error = NotFoundError("abc", Widget)
        assert error.context.entity_type == "Widget"
        assert error.context.entity_id == "abc"

    def test_is_repository_error(self):
        with pytest.raises(RepositoryError):
            raise NotFoundError(1, Widget)


class TestOtherErrors:
    def test_unsupported_category(self):
        assert UnsupportedOperationError("no").category == ErrorCategory.UNSUPPORTED

    def test_invalid_argument_is_value_error(self):
        error = InvalidArgumentError("bad", argument="tracking", value="bogus")
        assert isinstance(error, ValueError)
        assert error.category == ErrorCategory.VALIDATION
        data = error.to_dict()
        assert data["argument"] == "tracking"
        assert data["value"] == "'bogus'"

    def test_config_error_category(self):
        assert ConfigError("missing").category == ErrorCategory.CONFIG


class TestCategorizeError:
    def test_repository_error(self):
        assert categorize_error(NotFoundError(1, Widget)) == ErrorCategory.NOT_FOUND

    def test_sqlalchemy_errors(self):
        assert categorize_error(OperationalError("stmt", {}, Exception("down"))) == ErrorCategory.DATABASE
        assert categorize_error(IntegrityError("stmt", {}, Exception("dup"))) == ErrorCategory.DATABASE

    def test_value_error(self):
        assert categorize_error(ValueError("x")) == ErrorCategory.VALIDATION

    def test_unknown(self):
        assert categorize_error(RuntimeError("x")) == ErrorCategory.UNKNOWN
