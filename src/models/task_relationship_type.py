"""TaskRelationshipType model - the catalog of edge kinds between tasks."""
from sqlalchemy import Boolean, CheckConstraint, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin


class TaskRelationshipType(Base, UUIDv7Mixin, TimestampMixin):
    """
    Schema of a relationship kind (e.g. 'blocked', 'context').

    Directional types carry distinct labels for each side of the edge. Blocking
    types carry two status sets, persisted as JSON text lists of TaskStatus
    values:

    - blocking_disabled_statuses: statuses the target task may not enter while
      the edge is blocking.
    - blocking_source_statuses: statuses of the source task that count as
      still blocking.

    The raw text is only read through `schemas.validators.parse_status_set`.
    """

    __tablename__ = "task_relationship_types"

    type_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_system: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(),
    )
    is_directional: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(),
    )
    forward_label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reverse_label: Mapped[str | None] = mapped_column(String(255), nullable=True)

    enforces_blocking: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(),
    )
    blocking_disabled_statuses: Mapped[str | None] = mapped_column(Text, nullable=True)
    blocking_source_statuses: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        # Mirrors the service-layer checks; the service gives the readable error.
        CheckConstraint(
            "is_directional = false OR "
            "(forward_label IS NOT NULL AND reverse_label IS NOT NULL)",
            name="ck_directional_labels",
        ),
        CheckConstraint(
            "enforces_blocking = false OR "
            "(blocking_disabled_statuses IS NOT NULL AND blocking_source_statuses IS NOT NULL)",
            name="ck_blocking_statuses",
        ),
    )
