"""TaskRelationship model - a typed, directed edge between two tasks."""
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.task import Task
    from models.task_relationship_type import TaskRelationshipType


class TaskRelationship(Base, UUIDv7Mixin, TimestampMixin):
    """
    Directed edge source_task -> target_task of a given relationship type.

    Rows are owned by the pair of tasks they connect: deleting either task
    deletes the edge. `data` holds a JSON object serialized as text; it is
    decoded with `schemas.validators.parse_relationship_data`.

    The ORM relationships below are never lazy-loaded (async sessions); queries
    that need them use eager-loading options.
    """

    __tablename__ = "task_relationships"

    source_task_id: Mapped[UUID] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    target_task_id: Mapped[UUID] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    relationship_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("task_relationship_types.id", ondelete="CASCADE"),
        nullable=False,
    )
    data: Mapped[str | None] = mapped_column(Text, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    source_task: Mapped["Task"] = relationship(
        foreign_keys=[source_task_id], lazy="raise",
    )
    target_task: Mapped["Task"] = relationship(
        foreign_keys=[target_task_id], lazy="raise",
    )
    relationship_type: Mapped["TaskRelationshipType"] = relationship(lazy="raise")

    __table_args__ = (
        UniqueConstraint(
            "source_task_id", "target_task_id", "relationship_type_id",
            name="uq_task_relationship",
        ),
        CheckConstraint(
            "source_task_id != target_task_id",
            name="ck_no_self_relationship",
        ),
        Index("ix_task_rel_source_type", "source_task_id", "relationship_type_id"),
        Index("ix_task_rel_target_type", "target_task_id", "relationship_type_id"),
        Index("ix_task_rel_type", "relationship_type_id"),
    )
