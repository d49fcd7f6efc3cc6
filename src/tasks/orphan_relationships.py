"""
Orphan relationship detection and cleanup.

Detects task_relationships rows whose source task, target task or relationship
type no longer exists. The services delete relationships together with the
rows they reference, and foreign keys cascade on PostgreSQL, so orphans only
appear when rows are removed outside the service layer or on a database
without foreign key enforcement.

Usage:
    python -m tasks.orphan_relationships           # Report only (default)
    python -m tasks.orphan_relationships --delete   # Report and delete orphans
"""
import argparse
import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy import ColumnElement, delete as sa_delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_session_factory
from models.task import Task
from models.task_relationship import TaskRelationship
from models.task_relationship_type import TaskRelationshipType

logger = logging.getLogger(__name__)


def _missing_conditions() -> dict[str, ColumnElement[bool]]:
    """NOT EXISTS condition per referenced side of a relationship."""
    return {
        "source_task": ~select(Task.id)
        .where(Task.id == TaskRelationship.source_task_id)
        .exists(),
        "target_task": ~select(Task.id)
        .where(Task.id == TaskRelationship.target_task_id)
        .exists(),
        "relationship_type": ~select(TaskRelationshipType.id)
        .where(TaskRelationshipType.id == TaskRelationship.relationship_type_id)
        .exists(),
    }


@dataclass
class OrphanStats:
    """Statistics from an orphan relationship cleanup run."""

    orphaned_source: int = 0
    orphaned_target: int = 0
    orphaned_type: int = 0
    total_deleted: int = 0
    by_missing: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, int]:
        """Convert to simple dict for logging/return."""
        return {
            "orphaned_source": self.orphaned_source,
            "orphaned_target": self.orphaned_target,
            "orphaned_type": self.orphaned_type,
            "total_deleted": self.total_deleted,
        }


async def find_orphaned_relationships(db: AsyncSession) -> list[TaskRelationship]:
    """
    Find relationships whose source task, target task or type no longer exists.

    A relationship orphaned on several sides is returned once.

    Returns:
        Deduplicated list of orphaned TaskRelationship objects.
    """
    orphan_ids: set = set()
    all_orphans: list[TaskRelationship] = []

    for condition in _missing_conditions().values():
        result = await db.execute(select(TaskRelationship).where(condition))
        for rel in result.scalars().all():
            if rel.id not in orphan_ids:
                orphan_ids.add(rel.id)
                all_orphans.append(rel)

    return all_orphans


async def cleanup_orphaned_relationships(
    db: AsyncSession,
    delete: bool = False,
) -> OrphanStats:
    """
    Find and optionally delete orphaned relationships.

    In delete mode, total_deleted reflects rows actually removed: a row
    deleted for a missing source is not found again by the later checks.

    In report mode, the per-side counts may add up to more than the number of
    unique orphans when a row is missing several references.

    Args:
        db: Database session.
        delete: If True, delete orphaned relationships. If False (default),
                only report them.

    Returns:
        OrphanStats with breakdown of orphans found/deleted.
    """
    stats = OrphanStats()

    for missing, condition in _missing_conditions().items():
        if delete:
            result = await db.execute(sa_delete(TaskRelationship).where(condition))
            count = result.rowcount
        else:
            count = await db.scalar(
                select(func.count(TaskRelationship.id)).where(condition),
            ) or 0

        if count > 0:
            stats.by_missing[missing] = count
            logger.info(
                "%s %d orphaned relationships with missing %s",
                "Deleted" if delete else "Found",
                count,
                missing,
            )

    stats.orphaned_source = stats.by_missing.get("source_task", 0)
    stats.orphaned_target = stats.by_missing.get("target_task", 0)
    stats.orphaned_type = stats.by_missing.get("relationship_type", 0)
    stats.total_deleted = sum(stats.by_missing.values()) if delete else 0

    if delete:
        await db.commit()

    return stats


async def run_orphan_cleanup(
    db: AsyncSession | None = None,
    delete: bool = False,
) -> OrphanStats:
    """
    Entry point for orphan relationship cleanup.

    Args:
        db: Database session. If None, creates one from the session factory.
        delete: If True, delete orphaned relationships.

    Returns:
        OrphanStats with results.
    """
    logger.info("Starting orphan relationship cleanup (delete=%s)", delete)

    if db is not None:
        stats = await cleanup_orphaned_relationships(db, delete=delete)
    else:
        async with get_session_factory()() as session:
            stats = await cleanup_orphaned_relationships(session, delete=delete)

    logger.info("Orphan relationship cleanup complete: %s", stats.to_dict())
    return stats


def main() -> None:
    """CLI entry point with --delete flag."""
    parser = argparse.ArgumentParser(
        description="Detect and optionally remove orphaned task relationships.",
    )
    parser.add_argument(
        "--delete",
        action="store_true",
        help="Delete orphaned relationships (default: report only)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_orphan_cleanup(delete=args.delete))


if __name__ == "__main__":
    main()
