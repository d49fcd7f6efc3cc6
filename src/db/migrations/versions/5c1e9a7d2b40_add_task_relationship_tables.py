"""
Add projects, tasks and task relationship tables; seed system relationship types.

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-18 09:12:44.502113
"""
import json
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from uuid6 import uuid7

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d2b40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


SYSTEM_TYPES = [
    {
        "type_name": "context",
        "display_name": "Context Tickets",
        "description": "Tickets that provide context",
        "is_directional": True,
        "forward_label": "provides context for",
        "reverse_label": "uses context from",
        "enforces_blocking": False,
        "blocking_disabled_statuses": None,
        "blocking_source_statuses": None,
    },
    {
        "type_name": "blocked",
        "display_name": "Blocked Tickets",
        "description": "Tickets that must come before",
        "is_directional": True,
        "forward_label": "blocks",
        "reverse_label": "blocked by",
        "enforces_blocking": True,
        "blocking_disabled_statuses": json.dumps(["todo", "inreview", "done", "cancelled"]),
        "blocking_source_statuses": json.dumps(["todo", "inprogress", "inreview"]),
    },
]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False,
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("name != ''", name="ck_project_name_not_empty"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_projects_updated_at"), "projects", ["updated_at"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "todo", "inprogress", "inreview", "done", "cancelled",
                name="task_status", native_enum=False, length=20,
            ),
            nullable=False,
        ),
        *_timestamps(),
        sa.CheckConstraint("title != ''", name="ck_task_title_not_empty"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index(op.f("ix_tasks_updated_at"), "tasks", ["updated_at"])

    op.create_table(
        "task_relationship_types",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("type_name", sa.String(length=100), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_system", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_directional", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("forward_label", sa.String(length=255), nullable=True),
        sa.Column("reverse_label", sa.String(length=255), nullable=True),
        sa.Column(
            "enforces_blocking", sa.Boolean(), server_default=sa.false(), nullable=False,
        ),
        sa.Column("blocking_disabled_statuses", sa.Text(), nullable=True),
        sa.Column("blocking_source_statuses", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "is_directional = false OR "
            "(forward_label IS NOT NULL AND reverse_label IS NOT NULL)",
            name="ck_directional_labels",
        ),
        sa.CheckConstraint(
            "enforces_blocking = false OR "
            "(blocking_disabled_statuses IS NOT NULL AND blocking_source_statuses IS NOT NULL)",
            name="ck_blocking_statuses",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("type_name"),
    )
    op.create_index(
        op.f("ix_task_relationship_types_updated_at"),
        "task_relationship_types",
        ["updated_at"],
    )

    op.create_table(
        "task_relationships",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("source_task_id", sa.Uuid(), nullable=False),
        sa.Column("target_task_id", sa.Uuid(), nullable=False),
        sa.Column("relationship_type_id", sa.Uuid(), nullable=False),
        sa.Column("data", sa.Text(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("source_task_id != target_task_id", name="ck_no_self_relationship"),
        sa.ForeignKeyConstraint(["source_task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["relationship_type_id"], ["task_relationship_types.id"], ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "source_task_id", "target_task_id", "relationship_type_id",
            name="uq_task_relationship",
        ),
    )
    op.create_index(
        "ix_task_rel_source_type", "task_relationships",
        ["source_task_id", "relationship_type_id"],
    )
    op.create_index(
        "ix_task_rel_target_type", "task_relationships",
        ["target_task_id", "relationship_type_id"],
    )
    op.create_index("ix_task_rel_type", "task_relationships", ["relationship_type_id"])
    op.create_index(
        op.f("ix_task_relationships_updated_at"), "task_relationships", ["updated_at"],
    )

    relationship_types = sa.table(
        "task_relationship_types",
        sa.column("id", sa.Uuid),
        sa.column("type_name", sa.String),
        sa.column("display_name", sa.String),
        sa.column("description", sa.Text),
        sa.column("is_system", sa.Boolean),
        sa.column("is_directional", sa.Boolean),
        sa.column("forward_label", sa.String),
        sa.column("reverse_label", sa.String),
        sa.column("enforces_blocking", sa.Boolean),
        sa.column("blocking_disabled_statuses", sa.Text),
        sa.column("blocking_source_statuses", sa.Text),
    )
    op.bulk_insert(
        relationship_types,
        [{"id": uuid7(), "is_system": True, **definition} for definition in SYSTEM_TYPES],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_task_relationships_updated_at"), table_name="task_relationships")
    op.drop_index("ix_task_rel_type", table_name="task_relationships")
    op.drop_index("ix_task_rel_target_type", table_name="task_relationships")
    op.drop_index("ix_task_rel_source_type", table_name="task_relationships")
    op.drop_table("task_relationships")
    op.drop_index(
        op.f("ix_task_relationship_types_updated_at"), table_name="task_relationship_types",
    )
    op.drop_table("task_relationship_types")
    op.drop_index(op.f("ix_tasks_updated_at"), table_name="tasks")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index(op.f("ix_projects_updated_at"), table_name="projects")
    op.drop_table("projects")
