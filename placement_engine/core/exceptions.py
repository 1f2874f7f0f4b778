"""
Engine Exceptions

Every failure the engine surfaces carries a stable `kind` plus a
human-readable message. The transport layer maps kinds to HTTP codes.

Taxonomy:
- ConstraintViolation: application cap, exclusivity, waiting-list lookups,
  invalid status transitions
- NotFound:            institution / course / application / admission absent
- Unqualified:         candidate does not meet course requirements
- ConflictRetryable:   optimistic version clash, retried with fresh reads
- StoreUnavailable:    record store failure (or retries exhausted)
- OperationTimeout:    caller deadline passed before commit
- PermissionDenied:    record owned by another principal
"""

from typing import List, Optional


class EngineError(Exception):
    """Base exception for engine operations."""

    kind = "engine_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConstraintViolation(EngineError):
    """An allocation rule was broken."""

    kind = "constraint_violation"


class NotFound(EngineError):
    """Referenced record does not exist."""

    kind = "not_found"

    def __init__(self, entity_type: str, entity_id: Optional[str] = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found")


class Unqualified(EngineError):
    """Candidate does not meet the requirement set."""

    kind = "unqualified"

    def __init__(self, message: str, failed_rules: Optional[List[str]] = None):
        self.failed_rules = failed_rules or []
        super().__init__(message)


class ConflictRetryable(EngineError):
    """A record changed between read and commit."""

    kind = "conflict"

    def __init__(self, collection: str, key: str):
        self.collection = collection
        self.key = key
        super().__init__(f"Concurrent update detected on {collection}/{key}")


class StoreUnavailable(EngineError):
    """Record store failure."""

    kind = "store_unavailable"

    def __init__(self, message: str = "Record store unavailable"):
        super().__init__(message)


class OperationTimeout(EngineError):
    """Deadline expired before anything was committed."""

    kind = "timeout"

    def __init__(self, message: str = "Operation deadline exceeded"):
        super().__init__(message)


class PermissionDenied(EngineError):
    """Principal is not allowed to touch this record."""

    kind = "permission_denied"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
