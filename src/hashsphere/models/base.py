"""Base models and shared types for the Hash Sphere memory engine."""

from __future__ import annotations

import json
import time
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from hashsphere.exceptions import MissingTenantScopeError

# A point in the projected coordinate space.
Point3: TypeAlias = tuple[float, float, float]

ORIGIN: Point3 = (0.0, 0.0, 0.0)


def now_ns() -> int:
    """Current wall-clock time in nanoseconds since the epoch."""
    return time.time_ns()


class TenantScope(BaseModel):
    """Owning tenant of a record or query.

    Every record carries one and every retrieval is filtered by one. The
    scope is supplied by the auth layer; the engine only enforces it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: str = Field(description="User who owns the memory")
    org_id: str | None = Field(default=None, description="Organization (optional)")

    @property
    def key(self) -> str:
        """Isolation key: the JSON pair [org_id, user_id], with null for no org.

        Distinct (org_id, user_id) pairs always give distinct keys.
        """
        return json.dumps([self.org_id or None, self.user_id], separators=(",", ":"))

    def as_bytes(self) -> bytes:
        """Byte form of the isolation key, mixed into universe_id derivation."""
        return self.key.encode("utf-8")

    def owns(self, user_id: str, org_id: str | None) -> bool:
        """Whether a record with this (user_id, org_id) belongs to the scope."""
        return self.user_id == user_id and (self.org_id or None) == (org_id or None)


def require_tenant(scope: TenantScope | None, operation: str) -> TenantScope:
    """Return the scope, or raise MissingTenantScopeError if it is absent or blank."""
    if scope is None or not scope.user_id or not scope.user_id.strip():
        raise MissingTenantScopeError(operation)
    return scope
