"""
Service layer for the relationship type catalog.

Both structural rules of a relationship type are enforced here, for every
caller, on create and on update (against the merged result):

- Directional types must have both a forward_label and a reverse_label.
- Blocking types must have non-empty blocking_disabled_statuses and
  blocking_source_statuses.
"""
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utc_now
from models.task import TaskStatus
from models.task_relationship import TaskRelationship
from models.task_relationship_type import TaskRelationshipType
from schemas.relationship_type import RelationshipTypeCreate, RelationshipTypeUpdate
from schemas.validators import parse_optional_status_set, serialize_status_set
from services.exceptions import (
    DuplicateRelationshipTypeError,
    InvalidRelationshipTypeError,
    RelationshipTypeNotFoundError,
    SystemRelationshipTypeError,
)

logger = logging.getLogger(__name__)

# Built-in types, also inserted by the initial migration.
SYSTEM_RELATIONSHIP_TYPES: tuple[dict[str, Any], ...] = (
    {
        "type_name": "context",
        "display_name": "Context Tickets",
        "description": "Tickets that provide context",
        "is_directional": True,
        "forward_label": "provides context for",
        "reverse_label": "uses context from",
        "enforces_blocking": False,
        "blocking_disabled_statuses": None,
        "blocking_source_statuses": None,
    },
    {
        "type_name": "blocked",
        "display_name": "Blocked Tickets",
        "description": "Tickets that must come before",
        "is_directional": True,
        "forward_label": "blocks",
        "reverse_label": "blocked by",
        "enforces_blocking": True,
        "blocking_disabled_statuses": [
            TaskStatus.TODO, TaskStatus.IN_REVIEW, TaskStatus.DONE, TaskStatus.CANCELLED,
        ],
        "blocking_source_statuses": [
            TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.IN_REVIEW,
        ],
    },
)


def validate_relationship_type(
    *,
    is_directional: bool,
    forward_label: str | None,
    reverse_label: str | None,
    enforces_blocking: bool,
    blocking_disabled_statuses: str | None,
    blocking_source_statuses: str | None,
) -> None:
    """
    Check the directional and blocking rules against final (stored) values.

    Status sets are given in their serialized form so the same check covers
    freshly submitted and previously stored values.

    Raises:
        InvalidRelationshipTypeError: If either rule is violated.
        StatusSetDeserializationError: If a stored status set cannot be decoded.
    """
    if is_directional and (not forward_label or not reverse_label):
        raise InvalidRelationshipTypeError(
            "Directional relationship types must have both forward_label and reverse_label",
        )
    if enforces_blocking:
        disabled = parse_optional_status_set(blocking_disabled_statuses)
        source = parse_optional_status_set(blocking_source_statuses)
        if not disabled or not source:
            raise InvalidRelationshipTypeError(
                "Blocking relationship types must have both blocking_disabled_statuses "
                "and blocking_source_statuses",
            )


def _serialize_optional(statuses: list[TaskStatus] | None) -> str | None:
    if statuses is None:
        return None
    return serialize_status_set(statuses)


async def get_relationship_type(
    db: AsyncSession,
    type_id: UUID,
    *,
    for_update: bool = False,
) -> TaskRelationshipType:
    """
    Get a relationship type by ID.

    Raises:
        RelationshipTypeNotFoundError: If no type has this ID.
    """
    stmt = select(TaskRelationshipType).where(TaskRelationshipType.id == type_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    rel_type = result.scalar_one_or_none()
    if rel_type is None:
        raise RelationshipTypeNotFoundError(type_id)
    return rel_type


async def find_by_name(db: AsyncSession, type_name: str) -> TaskRelationshipType | None:
    """Get a relationship type by its unique type_name, or None."""
    result = await db.execute(
        select(TaskRelationshipType).where(TaskRelationshipType.type_name == type_name),
    )
    return result.scalar_one_or_none()


async def find_all(db: AsyncSession, search: str | None = None) -> list[TaskRelationshipType]:
    """
    List relationship types ordered by display name.

    Args:
        db: Database session.
        search: Optional case-insensitive substring matched against type_name
            and display_name.
    """
    stmt = select(TaskRelationshipType).order_by(
        TaskRelationshipType.display_name.asc(),
        TaskRelationshipType.id.asc(),
    )
    if search:
        # Literal substring match; % and _ in the search text are not wildcards.
        needle = search.lower()
        stmt = stmt.where(
            or_(
                func.lower(TaskRelationshipType.type_name).contains(needle, autoescape=True),
                func.lower(TaskRelationshipType.display_name).contains(needle, autoescape=True),
            ),
        )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def find_system_types(db: AsyncSession) -> list[TaskRelationshipType]:
    """List built-in relationship types ordered by display name."""
    result = await db.execute(
        select(TaskRelationshipType)
        .where(TaskRelationshipType.is_system.is_(True))
        .order_by(TaskRelationshipType.display_name.asc()),
    )
    return list(result.scalars().all())


async def _ensure_name_available(
    db: AsyncSession,
    type_name: str,
    exclude_id: UUID | None = None,
) -> None:
    existing = await find_by_name(db, type_name)
    if existing is not None and existing.id != exclude_id:
        raise DuplicateRelationshipTypeError(type_name)


async def _flush_or_duplicate(db: AsyncSession, type_name: str) -> None:
    # The pre-check covers the normal case; this catches a concurrent insert.
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateRelationshipTypeError(type_name) from e


async def create_relationship_type(
    db: AsyncSession,
    data: RelationshipTypeCreate,
    *,
    is_system: bool = False,
) -> TaskRelationshipType:
    """
    Create a relationship type.

    Raises:
        InvalidRelationshipTypeError: If labels or blocking status sets are missing.
        DuplicateRelationshipTypeError: If type_name is already taken.
    """
    disabled_json = _serialize_optional(data.blocking_disabled_statuses)
    source_json = _serialize_optional(data.blocking_source_statuses)
    validate_relationship_type(
        is_directional=data.is_directional,
        forward_label=data.forward_label,
        reverse_label=data.reverse_label,
        enforces_blocking=data.enforces_blocking,
        blocking_disabled_statuses=disabled_json,
        blocking_source_statuses=source_json,
    )
    await _ensure_name_available(db, data.type_name)

    rel_type = TaskRelationshipType(
        type_name=data.type_name,
        display_name=data.display_name,
        description=data.description,
        is_system=is_system,
        is_directional=data.is_directional,
        forward_label=data.forward_label,
        reverse_label=data.reverse_label,
        enforces_blocking=data.enforces_blocking,
        blocking_disabled_statuses=disabled_json,
        blocking_source_statuses=source_json,
    )
    db.add(rel_type)
    await _flush_or_duplicate(db, data.type_name)
    await db.refresh(rel_type)
    logger.info(
        "relationship_type_created",
        extra={"type_id": str(rel_type.id), "type_name": rel_type.type_name},
    )
    return rel_type


async def update_relationship_type(
    db: AsyncSession,
    type_id: UUID,
    data: RelationshipTypeUpdate,
) -> TaskRelationshipType:
    """
    Partially update a relationship type.

    Fields missing from the payload keep their stored values. Both rules are
    re-checked against the merged result, so e.g. turning on enforces_blocking
    fails unless status sets are already stored or supplied in the same update.

    Raises:
        RelationshipTypeNotFoundError: If no type has this ID.
        InvalidRelationshipTypeError: If the merged type violates a rule.
        DuplicateRelationshipTypeError: If the new type_name is already taken.
    """
    rel_type = await get_relationship_type(db, type_id, for_update=True)
    updates = data.model_dump(exclude_unset=True)

    for field in ("blocking_disabled_statuses", "blocking_source_statuses"):
        if field in updates:
            updates[field] = _serialize_optional(updates[field])

    merged = {
        field: updates.get(field, getattr(rel_type, field))
        for field in (
            "is_directional",
            "forward_label",
            "reverse_label",
            "enforces_blocking",
            "blocking_disabled_statuses",
            "blocking_source_statuses",
        )
    }
    validate_relationship_type(**merged)

    new_name = updates.get("type_name")
    if new_name is not None and new_name != rel_type.type_name:
        await _ensure_name_available(db, new_name, exclude_id=rel_type.id)

    for field, value in updates.items():
        setattr(rel_type, field, value)
    rel_type.updated_at = utc_now()

    await _flush_or_duplicate(db, rel_type.type_name)
    await db.refresh(rel_type)
    logger.info(
        "relationship_type_updated",
        extra={"type_id": str(rel_type.id), "changed_fields": sorted(updates)},
    )
    return rel_type


async def delete_relationship_type(db: AsyncSession, type_id: UUID) -> int:
    """
    Delete a non-system relationship type and every relationship using it.

    The relationship rows are removed explicitly so the cascade also holds on
    databases that do not enforce foreign keys.

    Returns:
        Number of relationships removed along with the type.

    Raises:
        RelationshipTypeNotFoundError: If no type has this ID.
        SystemRelationshipTypeError: If the type is built in.
    """
    rel_type = await get_relationship_type(db, type_id, for_update=True)
    if rel_type.is_system:
        raise SystemRelationshipTypeError(rel_type.type_name)

    result = await db.execute(
        delete(TaskRelationship).where(TaskRelationship.relationship_type_id == type_id),
    )
    removed = result.rowcount
    await db.delete(rel_type)
    await db.flush()
    logger.info(
        "relationship_type_deleted",
        extra={
            "type_id": str(type_id),
            "type_name": rel_type.type_name,
            "relationships_removed": removed,
        },
    )
    return removed


async def seed_system_types(db: AsyncSession) -> list[TaskRelationshipType]:
    """
    Insert any missing built-in relationship types. Idempotent.

    Returns:
        The types that were created by this call.
    """
    created = []
    for definition in SYSTEM_RELATIONSHIP_TYPES:
        if await find_by_name(db, definition["type_name"]) is not None:
            continue
        created.append(
            await create_relationship_type(
                db, RelationshipTypeCreate(**definition), is_system=True,
            ),
        )
    return created
