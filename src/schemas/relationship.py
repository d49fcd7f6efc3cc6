"""Pydantic schemas for task relationship endpoints."""
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.relationship_type import RelationshipTypeResponse
from schemas.task import TaskResponse
from schemas.validators import parse_relationship_data, validate_relationship_note


class RelationshipCreate(BaseModel):
    """
    Schema for creating a relationship.

    The task in the request path is the implicit source; only the target is
    specified.
    """

    target_task_id: UUID
    relationship_type_id: UUID
    data: dict[str, Any] | None = None
    note: str | None = None

    @field_validator("note")
    @classmethod
    def validate_note_length(cls, v: str | None) -> str | None:
        """Validate note length."""
        return validate_relationship_note(v)


class RelationshipUpdate(BaseModel):
    """
    Schema for updating a relationship.

    Only fields present in the payload are applied (`exclude_unset`). `data`
    and `note` may be cleared with an explicit null.
    """

    target_task_id: UUID | None = None
    relationship_type_id: UUID | None = None
    data: dict[str, Any] | None = None
    note: str | None = None

    @field_validator("target_task_id", "relationship_type_id")
    @classmethod
    def reject_null(cls, v: UUID | None) -> UUID:
        """Endpoints and type are required; omit them to leave them unchanged."""
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("note")
    @classmethod
    def validate_note_length(cls, v: str | None) -> str | None:
        """Validate note length."""
        return validate_relationship_note(v)


class RelationshipResponse(BaseModel):
    """Schema for a single relationship. `data` is returned decoded."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    source_task_id: UUID
    target_task_id: UUID
    relationship_type_id: UUID
    data: dict[str, Any] | None
    note: str | None
    created_at: datetime
    updated_at: datetime

    @field_validator("data", mode="before")
    @classmethod
    def decode_data(cls, v: Any) -> Any:
        """Decode stored JSON text; malformed text raises RelationshipDataDeserializationError."""
        if isinstance(v, str):
            return parse_relationship_data(v)
        return v


class RelationshipWithDetailsResponse(RelationshipResponse):
    """Relationship joined with both endpoint tasks and its type."""

    source_task: TaskResponse
    target_task: TaskResponse
    relationship_type: RelationshipTypeResponse


class RelationshipGroupResponse(BaseModel):
    """
    Relationships of one type touching a task.

    `forward` holds relationships where the task is the source, `reverse` those
    where it is the target; each is ordered newest first.
    """

    model_config = ConfigDict(from_attributes=True)

    relationship_type: RelationshipTypeResponse
    forward: list[RelationshipWithDetailsResponse]
    reverse: list[RelationshipWithDetailsResponse]


class BlockerResponse(BaseModel):
    """A relationship that currently blocks its target task."""

    model_config = ConfigDict(from_attributes=True)

    relationship: RelationshipResponse
    source_task: TaskResponse
    relationship_type: RelationshipTypeResponse
