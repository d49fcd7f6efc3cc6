"""Relationship type CRUD endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.relationship import RelationshipResponse
from schemas.relationship_type import (
    RelationshipTypeCreate,
    RelationshipTypeResponse,
    RelationshipTypeUpdate,
)
from services import relationship_service, relationship_type_service
from services.exceptions import RelationshipTypeNotFoundError

router = APIRouter(prefix="/task-relationship-types", tags=["relationship-types"])


@router.get("/", response_model=list[RelationshipTypeResponse])
async def list_relationship_types(
    search: str | None = Query(
        default=None, description="Filter by type name or display name (case-insensitive)",
    ),
    db: AsyncSession = Depends(get_async_session),
) -> list[RelationshipTypeResponse]:
    """List relationship types ordered by display name."""
    types = await relationship_type_service.find_all(db, search=search)
    return [RelationshipTypeResponse.model_validate(t) for t in types]


@router.post("/", response_model=RelationshipTypeResponse, status_code=201)
async def create_relationship_type(
    data: RelationshipTypeCreate,
    db: AsyncSession = Depends(get_async_session),
) -> RelationshipTypeResponse:
    """Create a relationship type."""
    rel_type = await relationship_type_service.create_relationship_type(db, data)
    return RelationshipTypeResponse.model_validate(rel_type)


# Fixed-prefix routes declared before wildcard /{type_id} routes
# to prevent path parameter matching conflicts.
@router.get("/system", response_model=list[RelationshipTypeResponse])
async def list_system_relationship_types(
    db: AsyncSession = Depends(get_async_session),
) -> list[RelationshipTypeResponse]:
    """List built-in relationship types."""
    types = await relationship_type_service.find_system_types(db)
    return [RelationshipTypeResponse.model_validate(t) for t in types]


@router.get("/by-name/{type_name}", response_model=RelationshipTypeResponse)
async def get_relationship_type_by_name(
    type_name: str,
    db: AsyncSession = Depends(get_async_session),
) -> RelationshipTypeResponse:
    """Get a relationship type by its type name."""
    rel_type = await relationship_type_service.find_by_name(db, type_name)
    if rel_type is None:
        raise RelationshipTypeNotFoundError(type_name)
    return RelationshipTypeResponse.model_validate(rel_type)


@router.get("/{type_id}", response_model=RelationshipTypeResponse)
async def get_relationship_type(
    type_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> RelationshipTypeResponse:
    """Get a relationship type by ID."""
    rel_type = await relationship_type_service.get_relationship_type(db, type_id)
    return RelationshipTypeResponse.model_validate(rel_type)


@router.get("/{type_id}/relationships", response_model=list[RelationshipResponse])
async def list_relationships_of_type(
    type_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> list[RelationshipResponse]:
    """List relationships of a type, newest first."""
    await relationship_type_service.get_relationship_type(db, type_id)
    rels = await relationship_service.find_by_type(db, type_id)
    return [RelationshipResponse.model_validate(r) for r in rels]


@router.patch("/{type_id}", response_model=RelationshipTypeResponse)
async def update_relationship_type(
    type_id: UUID,
    data: RelationshipTypeUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> RelationshipTypeResponse:
    """Update a relationship type. Omitted fields keep their current values."""
    rel_type = await relationship_type_service.update_relationship_type(db, type_id, data)
    return RelationshipTypeResponse.model_validate(rel_type)


@router.delete("/{type_id}", status_code=204)
async def delete_relationship_type(
    type_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a non-system relationship type and all relationships of that type."""
    await relationship_type_service.delete_relationship_type(db, type_id)
