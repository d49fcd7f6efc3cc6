"""Pydantic schemas for project and task endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from models.task import TaskStatus
from schemas.validators import validate_description, validate_title


class ProjectCreate(BaseModel):
    """Schema for creating a project."""

    name: str
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Project names follow the same rules as task titles."""
        return validate_title(v)

    @field_validator("description")
    @classmethod
    def validate_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description(v)


class ProjectResponse(BaseModel):
    """Schema for a project."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    project_id: UUID
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, v: str) -> str:
        """Validate title is non-empty and within the length limit."""
        return validate_title(v)

    @field_validator("description")
    @classmethod
    def validate_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description(v)


class TaskUpdate(BaseModel):
    """
    Schema for updating a task.

    A status change is checked against blocking relationships before it is
    written.
    """

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, v: str | None) -> str | None:
        """Validate title when provided."""
        if v is None:
            raise ValueError("Title cannot be null")
        return validate_title(v)

    @field_validator("status")
    @classmethod
    def reject_null_status(cls, v: TaskStatus | None) -> TaskStatus:
        """Status is required on the task; omit it to leave it unchanged."""
        if v is None:
            raise ValueError("Status cannot be null")
        return v

    @field_validator("description")
    @classmethod
    def validate_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description(v)


class TaskResponse(BaseModel):
    """Schema for a task."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    title: str
    description: str | None
    status: TaskStatus
    created_at: datetime
    updated_at: datetime
