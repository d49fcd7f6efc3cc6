"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.project import Project
from models.task import Task, TaskStatus
from models.task_relationship_type import TaskRelationshipType
from models.task_relationship import TaskRelationship

__all__ = [
    "Base",
    "Project",
    "Task",
    "TaskRelationship",
    "TaskRelationshipType",
    "TaskStatus",
    "TimestampMixin",
    "UUIDv7Mixin",
]
