"""Service layer for task relationship CRUD operations and graph queries."""
import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import delete, exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload
from sqlalchemy.sql import Select

from models.base import utc_now
from models.task import Task, TaskStatus
from models.task_relationship import TaskRelationship
from models.task_relationship_type import TaskRelationshipType
from schemas.relationship import RelationshipCreate, RelationshipUpdate
from schemas.validators import parse_status_set, serialize_relationship_data
from services.exceptions import (
    DanglingReferenceError,
    DuplicateRelationshipError,
    InvalidRelationshipError,
    RelationshipNotFoundError,
    RelationshipTypeNotFoundError,
    StatusSetDeserializationError,
    TaskNotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass
class RelationshipGroup:
    """Relationships of one type touching a task, split by direction."""

    relationship_type: TaskRelationshipType
    forward: list[TaskRelationship] = field(default_factory=list)
    reverse: list[TaskRelationship] = field(default_factory=list)


@dataclass(frozen=True)
class BlockingRelationship:
    """An incoming relationship whose source task currently blocks the target."""

    relationship: TaskRelationship
    source_task: Task
    relationship_type: TaskRelationshipType


def _newest_first(stmt: Select) -> Select:
    return stmt.order_by(TaskRelationship.created_at.desc(), TaskRelationship.id.desc())


def _with_details(stmt: Select) -> Select:
    # LEFT OUTER joins, so a missing endpoint or type shows up as None
    return stmt.options(
        joinedload(TaskRelationship.source_task),
        joinedload(TaskRelationship.target_task),
        joinedload(TaskRelationship.relationship_type),
    )


def _check_details(rel: TaskRelationship) -> TaskRelationship:
    if rel.source_task is None:
        raise DanglingReferenceError(rel.id, "source task")
    if rel.target_task is None:
        raise DanglingReferenceError(rel.id, "target task")
    if rel.relationship_type is None:
        raise DanglingReferenceError(rel.id, "relationship type")
    return rel


async def task_exists(db: AsyncSession, task_id: UUID) -> bool:
    """Check if a task exists."""
    result = await db.scalar(select(exists().where(Task.id == task_id)))
    return bool(result)


async def relationship_type_exists(db: AsyncSession, type_id: UUID) -> bool:
    """Check if a relationship type exists."""
    result = await db.scalar(
        select(exists().where(TaskRelationshipType.id == type_id)),
    )
    return bool(result)


async def _relationship_exists(
    db: AsyncSession,
    source_task_id: UUID,
    target_task_id: UUID,
    relationship_type_id: UUID,
    exclude_id: UUID | None = None,
) -> bool:
    conditions = [
        TaskRelationship.source_task_id == source_task_id,
        TaskRelationship.target_task_id == target_task_id,
        TaskRelationship.relationship_type_id == relationship_type_id,
    ]
    if exclude_id is not None:
        conditions.append(TaskRelationship.id != exclude_id)
    result = await db.scalar(select(exists().where(*conditions)))
    return bool(result)


async def _flush_or_duplicate(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        if "uq_task_relationship" in str(e) or "UNIQUE" in str(e):
            raise DuplicateRelationshipError from e
        raise


async def create_relationship(
    db: AsyncSession,
    source_task_id: UUID,
    data: RelationshipCreate,
) -> TaskRelationship:
    """
    Create a relationship from `source_task_id` to `data.target_task_id`.

    Raises:
        InvalidRelationshipError: If source and target are the same task.
        TaskNotFoundError: If the source or target task does not exist.
        RelationshipTypeNotFoundError: If the relationship type does not exist.
        DuplicateRelationshipError: If the same (source, target, type) edge exists.
    """
    if source_task_id == data.target_task_id:
        raise InvalidRelationshipError("Cannot create a relationship from a task to itself")

    if not await task_exists(db, source_task_id):
        raise TaskNotFoundError(source_task_id)
    if not await task_exists(db, data.target_task_id):
        raise TaskNotFoundError(data.target_task_id)
    if not await relationship_type_exists(db, data.relationship_type_id):
        raise RelationshipTypeNotFoundError(data.relationship_type_id)

    if await _relationship_exists(
        db, source_task_id, data.target_task_id, data.relationship_type_id,
    ):
        raise DuplicateRelationshipError

    rel = TaskRelationship(
        source_task_id=source_task_id,
        target_task_id=data.target_task_id,
        relationship_type_id=data.relationship_type_id,
        data=serialize_relationship_data(data.data),
        note=data.note,
    )
    db.add(rel)
    await _flush_or_duplicate(db)
    await db.refresh(rel)
    logger.info(
        "task_relationship_created",
        extra={
            "relationship_id": str(rel.id),
            "source_task_id": str(rel.source_task_id),
            "target_task_id": str(rel.target_task_id),
            "relationship_type_id": str(rel.relationship_type_id),
        },
    )
    return rel


async def get_relationship(
    db: AsyncSession,
    relationship_id: UUID,
    *,
    for_update: bool = False,
) -> TaskRelationship:
    """
    Get a single relationship by ID.

    Raises:
        RelationshipNotFoundError: If no relationship has this ID.
    """
    stmt = select(TaskRelationship).where(TaskRelationship.id == relationship_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    rel = result.scalar_one_or_none()
    if rel is None:
        raise RelationshipNotFoundError(relationship_id)
    return rel


async def update_relationship(
    db: AsyncSession,
    relationship_id: UUID,
    data: RelationshipUpdate,
) -> TaskRelationship:
    """
    Partially update a relationship.

    Fields missing from the payload keep their stored values. The source task
    never changes; the self-reference check runs against the current source and
    the prospective target.

    Raises:
        RelationshipNotFoundError: If no relationship has this ID.
        InvalidRelationshipError: If the new target is the source task.
        TaskNotFoundError: If a new target task does not exist.
        RelationshipTypeNotFoundError: If a new relationship type does not exist.
        DuplicateRelationshipError: If the merged edge already exists.
    """
    rel = await get_relationship(db, relationship_id, for_update=True)
    updates = data.model_dump(exclude_unset=True)

    target_task_id = updates.get("target_task_id", rel.target_task_id)
    relationship_type_id = updates.get("relationship_type_id", rel.relationship_type_id)

    if rel.source_task_id == target_task_id:
        raise InvalidRelationshipError("Cannot create a relationship from a task to itself")

    target_changed = target_task_id != rel.target_task_id
    type_changed = relationship_type_id != rel.relationship_type_id
    if target_changed and not await task_exists(db, target_task_id):
        raise TaskNotFoundError(target_task_id)
    if type_changed and not await relationship_type_exists(db, relationship_type_id):
        raise RelationshipTypeNotFoundError(relationship_type_id)
    if (target_changed or type_changed) and await _relationship_exists(
        db, rel.source_task_id, target_task_id, relationship_type_id, exclude_id=rel.id,
    ):
        raise DuplicateRelationshipError

    rel.target_task_id = target_task_id
    rel.relationship_type_id = relationship_type_id
    if "data" in updates:
        rel.data = serialize_relationship_data(updates["data"])
    if "note" in updates:
        rel.note = updates["note"]
    rel.updated_at = utc_now()

    await _flush_or_duplicate(db)
    await db.refresh(rel)
    logger.info(
        "task_relationship_updated",
        extra={"relationship_id": str(rel.id), "changed_fields": sorted(updates)},
    )
    return rel


async def delete_relationship(db: AsyncSession, relationship_id: UUID) -> int:
    """Delete a single relationship. Returns the number of rows removed (0 or 1)."""
    result = await db.execute(
        delete(TaskRelationship).where(TaskRelationship.id == relationship_id),
    )
    if result.rowcount:
        logger.info(
            "task_relationship_deleted",
            extra={"relationship_id": str(relationship_id)},
        )
    return result.rowcount


async def delete_relationships_for_task(db: AsyncSession, task_id: UUID) -> int:
    """
    Delete all relationships where this task is source OR target.

    Called when a task is deleted (application-level cascade).
    Returns the count of deleted relationships.
    """
    stmt = delete(TaskRelationship).where(
        or_(
            TaskRelationship.source_task_id == task_id,
            TaskRelationship.target_task_id == task_id,
        ),
    )
    result = await db.execute(stmt)
    return result.rowcount


async def find_by_source(db: AsyncSession, task_id: UUID) -> list[TaskRelationship]:
    """Relationships where the task is the source, newest first."""
    result = await db.execute(
        _newest_first(
            select(TaskRelationship).where(TaskRelationship.source_task_id == task_id),
        ),
    )
    return list(result.scalars().all())


async def find_by_target(db: AsyncSession, task_id: UUID) -> list[TaskRelationship]:
    """Relationships where the task is the target, newest first."""
    result = await db.execute(
        _newest_first(
            select(TaskRelationship).where(TaskRelationship.target_task_id == task_id),
        ),
    )
    return list(result.scalars().all())


async def find_by_type(db: AsyncSession, relationship_type_id: UUID) -> list[TaskRelationship]:
    """Relationships of a given type, newest first."""
    result = await db.execute(
        _newest_first(
            select(TaskRelationship).where(
                TaskRelationship.relationship_type_id == relationship_type_id,
            ),
        ),
    )
    return list(result.scalars().all())


async def find_with_details(db: AsyncSession, relationship_id: UUID) -> TaskRelationship:
    """
    Get a relationship with source_task, target_task and relationship_type loaded.

    Raises:
        RelationshipNotFoundError: If no relationship has this ID.
        DanglingReferenceError: If an endpoint task or the type no longer exists.
    """
    result = await db.execute(
        _with_details(select(TaskRelationship).where(TaskRelationship.id == relationship_id)),
    )
    rel = result.unique().scalar_one_or_none()
    if rel is None:
        raise RelationshipNotFoundError(relationship_id)
    return _check_details(rel)


async def _find_with_details_where(db: AsyncSession, condition: object) -> list[TaskRelationship]:
    result = await db.execute(
        _newest_first(_with_details(select(TaskRelationship).where(condition))),
    )
    return [_check_details(rel) for rel in result.unique().scalars().all()]


async def grouped_by_task(db: AsyncSession, task_id: UUID) -> list[RelationshipGroup]:
    """
    All relationships touching a task, grouped by relationship type.

    Each direction is loaded in one joined query rather than one detail lookup
    per edge. Groups are ordered by type display name; within a group both
    buckets are newest first.

    Raises:
        DanglingReferenceError: If any relationship points at a missing row.
    """
    forward = await _find_with_details_where(db, TaskRelationship.source_task_id == task_id)
    reverse = await _find_with_details_where(db, TaskRelationship.target_task_id == task_id)

    grouped: dict[UUID, RelationshipGroup] = {}
    for rel in forward:
        group = grouped.setdefault(
            rel.relationship_type_id, RelationshipGroup(rel.relationship_type),
        )
        group.forward.append(rel)
    for rel in reverse:
        group = grouped.setdefault(
            rel.relationship_type_id, RelationshipGroup(rel.relationship_type),
        )
        group.reverse.append(rel)

    return sorted(
        grouped.values(),
        key=lambda g: (g.relationship_type.display_name, str(g.relationship_type.id)),
    )


async def find_blocking_relationships(
    db: AsyncSession,
    task_id: UUID,
) -> list[BlockingRelationship]:
    """
    Incoming relationships that currently block the task.

    A relationship blocks its target when its type enforces blocking and the
    source task's status is in the type's blocking_source_statuses. Malformed
    status sets raise StatusSetDeserializationError rather than being skipped.
    """
    stmt = _newest_first(
        select(TaskRelationship, Task, TaskRelationshipType)
        .join(Task, Task.id == TaskRelationship.source_task_id)
        .join(
            TaskRelationshipType,
            TaskRelationshipType.id == TaskRelationship.relationship_type_id,
        )
        .where(
            TaskRelationship.target_task_id == task_id,
            TaskRelationshipType.enforces_blocking.is_(True),
        ),
    )
    result = await db.execute(stmt)

    blocking = []
    source_sets: dict[UUID, frozenset[TaskStatus]] = {}
    for rel, source_task, rel_type in result.all():
        if rel_type.id not in source_sets:
            source_sets[rel_type.id] = _blocking_source_statuses(rel_type)
        if source_task.status in source_sets[rel_type.id]:
            blocking.append(BlockingRelationship(rel, source_task, rel_type))
    return blocking


def _blocking_source_statuses(rel_type: TaskRelationshipType) -> frozenset[TaskStatus]:
    raw = rel_type.blocking_source_statuses
    if raw is None:
        raise StatusSetDeserializationError("null", "blocking type has no source statuses")
    return parse_status_set(raw)


def ensure_relationship_belongs_to_task(rel: TaskRelationship, task_id: UUID) -> None:
    """
    Reject a relationship that does not touch the given task.

    Used by routes nested under a task path.

    Raises:
        InvalidRelationshipError: If the task is neither source nor target.
    """
    if task_id not in (rel.source_task_id, rel.target_task_id):
        raise InvalidRelationshipError("Relationship does not belong to this task")
