"""Hash Sphere exception hierarchy.

Provides structured exceptions for error handling throughout the engine.
All exceptions inherit from HashSphereError for easy catching.

Numeric degeneracy (tangent poles, the origin in spherical coordinates) has
no exception class: it is recovered locally by clamping and never reaches
the caller.
"""

from __future__ import annotations


class HashSphereError(Exception):
    """Base exception for all Hash Sphere errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "hashsphere_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(HashSphereError):
    """Invalid input provided.

    Attributes:
        field: The field that failed validation.
        message: Description of the validation failure.
    """

    code: str = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
            }
        }


class AlreadyExistsError(HashSphereError):
    """A record with the same universe_id is already stored.

    Non-fatal: the caller may retry with a fresh timestamp, which yields
    a fresh universe_id.
    """

    code: str = "already_exists"

    def __init__(self, universe_id: str) -> None:
        self.universe_id = universe_id
        super().__init__(f"memory record already exists: {universe_id}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "universe_id": self.universe_id,
                "message": self.message,
            }
        }


class NotFoundError(HashSphereError):
    """Resource not found (or already tombstoned).

    Attributes:
        resource_type: Type of resource (e.g., "memory_record", "anchor").
        resource_id: ID of the missing resource.
    """

    code: str = "not_found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "resource_type": self.resource_type,
                "resource_id": self.resource_id,
                "message": self.message,
            }
        }


class DimensionMismatchError(HashSphereError):
    """Embedding length does not match the configured dimension.

    Fatal for the request. Vectors are never truncated or padded.
    """

    code: str = "dimension_mismatch"

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"embedding dimension mismatch: expected {expected}, got {actual}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "expected": self.expected,
                "actual": self.actual,
                "message": self.message,
            }
        }


class MissingTenantScopeError(HashSphereError):
    """An operation was attempted without a tenant scope.

    Always rejected; a tenant is never defaulted.
    """

    code: str = "missing_tenant_scope"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} requires a tenant scope (user_id)")


class HashCollisionError(HashSphereError):
    """Two different contents produced the same universe_id.

    Unrecoverable internal invariant violation. The existing record is
    never overwritten.
    """

    code: str = "hash_collision"

    def __init__(self, universe_id: str) -> None:
        self.universe_id = universe_id
        super().__init__(f"universe_id collision with differing content: {universe_id}")


class ConfigurationError(HashSphereError):
    """Required configuration is missing or invalid."""

    code: str = "configuration_error"


class EmbeddingError(HashSphereError):
    """Embedding generation failed.

    Raised when the embedding provider fails to return a vector.
    """

    code: str = "embedding_error"
