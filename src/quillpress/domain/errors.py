"""
Engine error taxonomy.

Every error carries a stable machine-readable ``kind`` and a human-readable
message. Messages never contain storage details such as SQL or constraint names.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for all errors raised at the engine boundary."""

    kind = "engine"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.field:
            data["field"] = self.field
        return data


class ValidationError(EngineError):
    """Malformed input or missing required field."""

    kind = "validation"


class NotFoundError(EngineError):
    """Unknown id, or an id filtered out of the caller's scope."""

    kind = "not_found"


class AuthorizationError(EngineError):
    """Authenticated, but the role or ownership does not allow the action."""

    kind = "authorization"


class ConflictError(EngineError):
    """Illegal state transition, duplicate action or exhausted slug race."""

    kind = "conflict"


class StaleWriteError(ConflictError):
    """A version-guarded write found the post at a different version."""

    def __init__(self, post_id: Any) -> None:
        self.post_id = post_id
        super().__init__("Post was modified concurrently; reload and retry")


class DependencyError(EngineError):
    """A collaborator (storage, asset store) is unavailable or failing."""

    kind = "dependency"
