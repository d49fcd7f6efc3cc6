"""Task relationship endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.relationship import (
    RelationshipCreate,
    RelationshipGroupResponse,
    RelationshipResponse,
    RelationshipUpdate,
    RelationshipWithDetailsResponse,
)
from services import relationship_service, task_service
from services.exceptions import InvalidRelationshipFilterError

# Relationships nested under the task they belong to
task_router = APIRouter(prefix="/tasks/{task_id}/relationships", tags=["relationships"])

# Relationship lookups that are not scoped to a task in the path
router = APIRouter(prefix="/relationships", tags=["relationships"])


@task_router.get("/", response_model=list[RelationshipGroupResponse])
async def get_task_relationships(
    task_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> list[RelationshipGroupResponse]:
    """All relationships of a task, grouped by type and split into forward/reverse."""
    await task_service.get_task(db, task_id)
    groups = await relationship_service.grouped_by_task(db, task_id)
    return [RelationshipGroupResponse.model_validate(g) for g in groups]


@task_router.post("/", response_model=RelationshipResponse, status_code=201)
async def create_task_relationship(
    task_id: UUID,
    data: RelationshipCreate,
    db: AsyncSession = Depends(get_async_session),
) -> RelationshipResponse:
    """Create a relationship with the task in the path as its source."""
    rel = await relationship_service.create_relationship(db, task_id, data)
    return RelationshipResponse.model_validate(rel)


@task_router.patch("/{relationship_id}", response_model=RelationshipResponse)
async def update_task_relationship(
    task_id: UUID,
    relationship_id: UUID,
    data: RelationshipUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> RelationshipResponse:
    """Update a relationship of the task. Omitted fields keep their current values."""
    await task_service.get_task(db, task_id)
    rel = await relationship_service.get_relationship(db, relationship_id)
    relationship_service.ensure_relationship_belongs_to_task(rel, task_id)
    rel = await relationship_service.update_relationship(db, relationship_id, data)
    return RelationshipResponse.model_validate(rel)


@task_router.delete("/{relationship_id}", status_code=204)
async def delete_task_relationship(
    task_id: UUID,
    relationship_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a relationship of the task."""
    await task_service.get_task(db, task_id)
    rel = await relationship_service.get_relationship(db, relationship_id)
    relationship_service.ensure_relationship_belongs_to_task(rel, task_id)
    await relationship_service.delete_relationship(db, relationship_id)


@router.get("/", response_model=list[RelationshipResponse])
async def list_relationships(
    source_task_id: UUID | None = Query(default=None),
    target_task_id: UUID | None = Query(default=None),
    relationship_type_id: UUID | None = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
) -> list[RelationshipResponse]:
    """List relationships by exactly one of source task, target task or type."""
    provided = {
        "source_task_id": source_task_id,
        "target_task_id": target_task_id,
        "relationship_type_id": relationship_type_id,
    }
    filters = [name for name, value in provided.items() if value is not None]
    if len(filters) != 1:
        raise InvalidRelationshipFilterError(filters)
    if source_task_id is not None:
        rels = await relationship_service.find_by_source(db, source_task_id)
    elif target_task_id is not None:
        rels = await relationship_service.find_by_target(db, target_task_id)
    else:
        rels = await relationship_service.find_by_type(db, relationship_type_id)
    return [RelationshipResponse.model_validate(r) for r in rels]


@router.get("/{relationship_id}", response_model=RelationshipWithDetailsResponse)
async def get_relationship(
    relationship_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> RelationshipWithDetailsResponse:
    """Get a relationship with its source task, target task and type."""
    rel = await relationship_service.find_with_details(db, relationship_id)
    return RelationshipWithDetailsResponse.model_validate(rel)
