"""Task model and the TaskStatus enum shared by storage and blocking rules."""
from enum import StrEnum
from uuid import UUID

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin


class TaskStatus(StrEnum):
    """
    Lifecycle status of a task.

    The string values are the stable representation used in the tasks table and
    in the serialized status sets of relationship types.
    """

    TODO = "todo"
    IN_PROGRESS = "inprogress"
    IN_REVIEW = "inreview"
    DONE = "done"
    CANCELLED = "cancelled"


class Task(Base, UUIDv7Mixin, TimestampMixin):
    """A unit of work inside a project."""

    __tablename__ = "tasks"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TaskStatus] = mapped_column(
        # Store enum values ('inprogress'), not member names ('IN_PROGRESS')
        Enum(
            TaskStatus,
            name="task_status",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=TaskStatus.TODO,
    )

    __table_args__ = (
        CheckConstraint("title != ''", name="ck_task_title_not_empty"),
        Index("ix_tasks_project_id", "project_id"),
    )
