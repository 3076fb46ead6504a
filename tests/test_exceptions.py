"""Tests for Hash Sphere exception hierarchy."""

import pytest

from hashsphere.exceptions import (
    AlreadyExistsError,
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingError,
    HashCollisionError,
    HashSphereError,
    MissingTenantScopeError,
    NotFoundError,
    ValidationError,
)


class TestHashSphereError:
    """Tests for the base HashSphereError class."""

    def test_error_message(self):
        """Should store and return message."""
        error = HashSphereError("Something went wrong")
        assert error.message == "Something went wrong"
        assert str(error) == "Something went wrong"

    def test_error_code(self):
        """Should have default error code."""
        assert HashSphereError("test").code == "hashsphere_error"

    def test_to_dict(self):
        """Should convert to API-friendly dict."""
        result = HashSphereError("Something went wrong").to_dict()
        assert result == {
            "error": {
                "code": "hashsphere_error",
                "message": "Something went wrong",
            }
        }

    def test_inheritance(self):
        """All custom exceptions should inherit from HashSphereError."""
        exceptions = [
            ValidationError("field", "invalid"),
            AlreadyExistsError("a" * 64),
            NotFoundError("memory", "id"),
            DimensionMismatchError(1536, 100),
            MissingTenantScopeError("insert"),
            HashCollisionError("b" * 64),
            ConfigurationError("missing"),
            EmbeddingError("failed"),
        ]
        for exc in exceptions:
            assert isinstance(exc, HashSphereError)

    def test_catch_all(self):
        """Catching the base class catches every engine error."""
        with pytest.raises(HashSphereError):
            raise MissingTenantScopeError("query")


class TestValidationError:
    """Tests for ValidationError."""

    def test_field_and_message(self):
        error = ValidationError("embedding", "contains NaN")
        assert error.field == "embedding"
        assert error.message == "embedding: contains NaN"
        assert error.code == "validation_error"

    def test_to_dict_includes_field(self):
        result = ValidationError("top_k", "too large").to_dict()
        assert result["error"]["field"] == "top_k"
        assert result["error"]["code"] == "validation_error"


class TestAlreadyExistsError:
    """Tests for AlreadyExistsError."""

    def test_carries_universe_id(self):
        uid = "c" * 64
        error = AlreadyExistsError(uid)
        assert error.universe_id == uid
        assert error.code == "already_exists"
        assert error.to_dict()["error"]["universe_id"] == uid


class TestNotFoundError:
    """Tests for NotFoundError."""

    def test_message(self):
        error = NotFoundError("memory", "abc123")
        assert error.resource_type == "memory"
        assert error.resource_id == "abc123"
        assert "memory not found: abc123" in error.message

    def test_to_dict(self):
        result = NotFoundError("anchor", "origin").to_dict()
        assert result["error"]["code"] == "not_found"
        assert result["error"]["resource_type"] == "anchor"
        assert result["error"]["resource_id"] == "origin"


class TestDimensionMismatchError:
    """Tests for DimensionMismatchError."""

    def test_expected_and_actual(self):
        error = DimensionMismatchError(1536, 100)
        assert error.expected == 1536
        assert error.actual == 100
        assert "expected 1536, got 100" in error.message
        assert error.to_dict()["error"]["actual"] == 100


class TestMissingTenantScopeError:
    """Tests for MissingTenantScopeError."""

    def test_names_operation(self):
        error = MissingTenantScopeError("delete")
        assert error.operation == "delete"
        assert error.code == "missing_tenant_scope"
        assert error.message.startswith("delete requires a tenant scope")


class TestHashCollisionError:
    """Tests for HashCollisionError."""

    def test_code(self):
        error = HashCollisionError("d" * 64)
        assert error.code == "hash_collision"
        assert error.universe_id == "d" * 64
