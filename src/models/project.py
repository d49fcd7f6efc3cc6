"""Project model - the container that owns tasks."""
from sqlalchemy import CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin


class Project(Base, UUIDv7Mixin, TimestampMixin):
    """A project groups tasks together. Deleting a project deletes its tasks."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("name != ''", name="ck_project_name_not_empty"),
    )
