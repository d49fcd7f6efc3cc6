"""Pydantic schemas for relationship type endpoints."""
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.task import TaskStatus
from schemas.validators import parse_status_set, sort_statuses, validate_label


class RelationshipTypeCreate(BaseModel):
    """Schema for creating a relationship type."""

    type_name: str = Field(min_length=1, max_length=100)
    display_name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    is_directional: bool = False
    forward_label: str | None = Field(default=None, max_length=255)
    reverse_label: str | None = Field(default=None, max_length=255)
    enforces_blocking: bool = False
    blocking_disabled_statuses: list[TaskStatus] | None = None
    blocking_source_statuses: list[TaskStatus] | None = None

    @field_validator("type_name", "display_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Strip surrounding whitespace; names cannot be blank."""
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v

    @field_validator("forward_label", "reverse_label")
    @classmethod
    def normalize_label(cls, v: str | None) -> str | None:
        """Treat blank labels as missing."""
        return validate_label(v)


class RelationshipTypeUpdate(BaseModel):
    """
    Schema for updating a relationship type.

    Only fields present in the payload are applied (`exclude_unset`). Nullable
    fields may be cleared with an explicit null; the service re-validates the
    merged result.
    """

    type_name: str | None = Field(default=None, min_length=1, max_length=100)
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    is_directional: bool | None = None
    forward_label: str | None = Field(default=None, max_length=255)
    reverse_label: str | None = Field(default=None, max_length=255)
    enforces_blocking: bool | None = None
    blocking_disabled_statuses: list[TaskStatus] | None = None
    blocking_source_statuses: list[TaskStatus] | None = None

    @field_validator("type_name", "display_name", "is_directional", "enforces_blocking")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        """These columns are required; omit them instead of sending null."""
        if v is None:
            raise ValueError("Field cannot be null")
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Name cannot be empty")
        return v

    @field_validator("forward_label", "reverse_label")
    @classmethod
    def normalize_label(cls, v: str | None) -> str | None:
        """Treat blank labels as missing."""
        return validate_label(v)


class RelationshipTypeResponse(BaseModel):
    """Schema for a relationship type. Status sets are returned decoded."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type_name: str
    display_name: str
    description: str | None
    is_system: bool
    is_directional: bool
    forward_label: str | None
    reverse_label: str | None
    enforces_blocking: bool
    blocking_disabled_statuses: list[TaskStatus] | None
    blocking_source_statuses: list[TaskStatus] | None
    created_at: datetime
    updated_at: datetime

    @field_validator("blocking_disabled_statuses", "blocking_source_statuses", mode="before")
    @classmethod
    def decode_status_set(cls, v: Any) -> Any:
        """Decode the stored JSON text; malformed text raises StatusSetDeserializationError."""
        if isinstance(v, str):
            return sort_statuses(parse_status_set(v))
        return v
