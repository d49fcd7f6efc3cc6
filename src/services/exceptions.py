"""
Shared exceptions for service layer operations.

Every exception carries an `error_code` and an HTTP `status_code` so the API
layer can turn it into a response without re-deriving the reason (see the
`ServiceError` handler in api/main.py). `extra` holds structured details that
are merged into the response body.
"""
from typing import Any
from uuid import UUID


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    error_code = "SERVICE_ERROR"
    status_code = 400

    def __init__(self, message: str, **extra: Any) -> None:
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        """Structured error body: message, error_code and any extra fields."""
        return {"message": self.message, "error_code": self.error_code, **self.extra}


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------


class NotFoundError(ServiceError):
    """A referenced entity does not exist."""

    error_code = "NOT_FOUND"
    status_code = 404
    entity_name = "Entity"

    def __init__(self, entity_id: UUID | str, message: str | None = None, **extra: Any) -> None:
        self.entity_id = entity_id
        super().__init__(message or f"{self.entity_name} not found: {entity_id}", **extra)


class ProjectNotFoundError(NotFoundError):
    """Raised when a project does not exist."""

    error_code = "PROJECT_NOT_FOUND"
    entity_name = "Project"


class TaskNotFoundError(NotFoundError):
    """Raised when a task does not exist."""

    error_code = "TASK_NOT_FOUND"
    entity_name = "Task"


class RelationshipNotFoundError(NotFoundError):
    """Raised when a task relationship does not exist."""

    error_code = "RELATIONSHIP_NOT_FOUND"
    entity_name = "Relationship"


class RelationshipTypeNotFoundError(NotFoundError):
    """Raised when a relationship type does not exist."""

    error_code = "RELATIONSHIP_TYPE_NOT_FOUND"
    entity_name = "Relationship type"


class DanglingReferenceError(NotFoundError):
    """
    Raised when a relationship points at a task or type that no longer exists.

    Only reachable when foreign keys are not enforced by the database, or when
    rows were removed outside the service layer.
    """

    error_code = "DANGLING_REFERENCE"
    entity_name = "Relationship reference"

    def __init__(self, relationship_id: UUID, missing: str) -> None:
        self.relationship_id = relationship_id
        self.missing = missing
        super().__init__(
            relationship_id,
            f"Relationship {relationship_id} references a missing {missing}",
            missing=missing,
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class InvalidRelationshipError(ServiceError):
    """Raised when a relationship violates a structural invariant (e.g. self-reference)."""

    error_code = "INVALID_RELATIONSHIP"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class InvalidRelationshipFilterError(ServiceError):
    """Raised when a relationship listing is not narrowed by exactly one filter."""

    error_code = "INVALID_RELATIONSHIP_FILTER"

    def __init__(self, filters: list[str]) -> None:
        self.filters = filters
        super().__init__(
            "Provide exactly one of source_task_id, target_task_id, relationship_type_id",
            provided=filters,
        )


class InvalidRelationshipTypeError(ServiceError):
    """Raised when a relationship type is missing required labels or status sets."""

    error_code = "INVALID_RELATIONSHIP_TYPE"

    def __init__(self, message: str) -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


class DuplicateRelationshipError(ServiceError):
    """Raised when the same (source, target, type) relationship already exists."""

    error_code = "DUPLICATE_RELATIONSHIP"
    status_code = 409

    def __init__(self) -> None:
        super().__init__("Relationship already exists")


class DuplicateRelationshipTypeError(ServiceError):
    """Raised when a relationship type name is already taken."""

    error_code = "DUPLICATE_RELATIONSHIP_TYPE"
    status_code = 409

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Relationship type '{type_name}' already exists")


# ---------------------------------------------------------------------------
# Forbidden
# ---------------------------------------------------------------------------


class SystemRelationshipTypeError(ServiceError):
    """Raised when attempting to delete a built-in relationship type."""

    error_code = "SYSTEM_RELATIONSHIP_TYPE"
    status_code = 403

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Cannot delete system relationship type '{type_name}'")


class BlockedTransitionError(ServiceError):
    """
    Raised when a task status change is vetoed by one or more blocking relationships.

    `blockers` lists every vetoing relationship so callers can show what needs
    to be resolved first.
    """

    error_code = "TRANSITION_BLOCKED"
    status_code = 403

    def __init__(
        self,
        task_id: UUID,
        proposed_status: str,
        message: str,
        blockers: list[dict[str, Any]],
    ) -> None:
        self.task_id = task_id
        self.proposed_status = proposed_status
        self.blockers = blockers
        super().__init__(
            message,
            task_id=str(task_id),
            proposed_status=proposed_status,
            blockers=blockers,
        )


# ---------------------------------------------------------------------------
# Deserialization
# ---------------------------------------------------------------------------


class DeserializationError(ServiceError):
    """Stored text could not be decoded. Never silently replaced by a default."""

    error_code = "DESERIALIZATION_ERROR"
    status_code = 500


class StatusSetDeserializationError(DeserializationError):
    """Raised when a stored status set is malformed or names an unknown status."""

    error_code = "STATUS_SET_DESERIALIZATION_ERROR"

    def __init__(self, raw: str, reason: str) -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Invalid status set {raw!r}: {reason}")


class RelationshipDataDeserializationError(DeserializationError):
    """Raised when a relationship's stored data payload is not valid JSON."""

    error_code = "RELATIONSHIP_DATA_DESERIALIZATION_ERROR"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid relationship data: {reason}")
