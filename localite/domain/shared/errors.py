"""
Domain exceptions.

Typed exceptions for explicit error handling.
Services raise these; adapters raise InfrastructureError subclasses.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Raised synchronously, before any store access, when:
    - An identifier is empty or whitespace
    - A trigger type is not part of the closed enumeration
    - A badge id is not in the catalog

    Always caller-fixable, never retried automatically.

    Example:
        >>> raise ValidationError("User ID cannot be empty")
    """

    pass


class NotFoundError(DomainError):
    """
    Resource not found.

    Generic not found error. Prefer specific types like
    RecordNotFoundError.
    """

    pass


class RecordNotFoundError(NotFoundError):
    """
    Activity record not found for an owner.

    Example:
        >>> raise RecordNotFoundError("user_1", "journey-abc")
    """

    def __init__(self, owner_id: str, record_id: str):
        self.owner_id = owner_id
        self.record_id = record_id
        super().__init__(f"Journey record {record_id} not found for owner {owner_id}")


# ═══════════════════════════════════════════════════════════
# SERVICE EXCEPTIONS (wrap store failures with context)
# ═══════════════════════════════════════════════════════════


class BadgeServiceError(DomainError):
    """
    Badge bookkeeping failed.

    Wraps a store failure with the operation context (which user,
    which badge). The original error is available as ``__cause__``.

    Example:
        >>> raise BadgeServiceError("award_badge", user_id="u1", badge_id="B2-1")
    """

    def __init__(
        self,
        operation: str,
        user_id: str,
        badge_id: Optional[str] = None,
    ):
        self.operation = operation
        self.user_id = user_id
        self.badge_id = badge_id
        target = f" badge={badge_id}" if badge_id else ""
        super().__init__(f"Badge operation '{operation}' failed for user={user_id}{target}")


class RecordSyncError(DomainError):
    """
    Journey record persistence failed.

    Surfaced to the user: losing a journey record is visible data loss.
    """

    def __init__(
        self,
        operation: str,
        owner_id: str,
        record_id: Optional[str] = None,
    ):
        self.operation = operation
        self.owner_id = owner_id
        self.record_id = record_id
        target = f" record={record_id}" if record_id else ""
        super().__init__(f"Journey operation '{operation}' failed for owner={owner_id}{target}")


class MigrationError(DomainError):
    """
    Schema migration stopped on an unrecoverable error.

    Carries how far the run got so it can be resumed from the last
    committed chunk.
    """

    def __init__(self, message: str, committed_chunks: int = 0, committed_operations: int = 0):
        self.committed_chunks = committed_chunks
        self.committed_operations = committed_operations
        super().__init__(
            f"{message} (committed chunks={committed_chunks}, "
            f"operations={committed_operations})"
        )


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class InfrastructureError(DomainError):
    """
    Infrastructure layer error.

    Base class for database, cache, etc. errors.
    """

    pass


class StoreError(InfrastructureError):
    """
    Document store operation failed.

    Raised when:
    - Connection lost
    - Query failed
    - Transaction rolled back

    Example:
        >>> raise StoreError("get", "users/u1/journeys/j1")
    """

    def __init__(self, operation: str, path: str, reason: str = ""):
        self.operation = operation
        self.path = path
        detail = f": {reason}" if reason else ""
        super().__init__(f"Store operation '{operation}' failed on {path}{detail}")


class BatchLimitExceededError(StoreError):
    """
    Batch has more operations than the store accepts atomically.

    Callers must chunk and commit chunks sequentially.
    """

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            "batch_write",
            "<batch>",
            f"{size} operations exceeds the limit of {limit}",
        )
