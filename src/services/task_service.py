"""
Service layer for projects and tasks.

This is the collaborator store the relationship engine relies on: task lookup
by id, status updates guarded by blocking relationships, and deletion that
cascades to relationships.
"""
import logging
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utc_now
from models.project import Project
from models.task import Task
from models.task_relationship import TaskRelationship
from schemas.task import ProjectCreate, TaskCreate, TaskUpdate
from services.blocking_service import check_status_transition
from services.exceptions import ProjectNotFoundError, TaskNotFoundError
from services.relationship_service import delete_relationships_for_task

logger = logging.getLogger(__name__)


async def create_project(db: AsyncSession, data: ProjectCreate) -> Project:
    """Create a project."""
    project = Project(name=data.name, description=data.description)
    db.add(project)
    await db.flush()
    await db.refresh(project)
    return project


async def get_project(db: AsyncSession, project_id: UUID) -> Project:
    """
    Get a project by ID.

    Raises:
        ProjectNotFoundError: If no project has this ID.
    """
    project = await db.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


async def list_projects(db: AsyncSession) -> list[Project]:
    """List projects, newest first."""
    result = await db.execute(
        select(Project).order_by(Project.created_at.desc(), Project.id.desc()),
    )
    return list(result.scalars().all())


async def delete_project(db: AsyncSession, project_id: UUID) -> int:
    """
    Delete a project with its tasks and every relationship touching those tasks.

    Returns:
        Number of tasks deleted.

    Raises:
        ProjectNotFoundError: If no project has this ID.
    """
    project = await get_project(db, project_id)
    task_ids = select(Task.id).where(Task.project_id == project_id)
    await db.execute(
        delete(TaskRelationship).where(
            or_(
                TaskRelationship.source_task_id.in_(task_ids),
                TaskRelationship.target_task_id.in_(task_ids),
            ),
        ),
    )
    result = await db.execute(delete(Task).where(Task.project_id == project_id))
    await db.delete(project)
    await db.flush()
    logger.info(
        "project_deleted",
        extra={"project_id": str(project_id), "tasks_deleted": result.rowcount},
    )
    return result.rowcount


async def create_task(db: AsyncSession, data: TaskCreate) -> Task:
    """
    Create a task in an existing project.

    Raises:
        ProjectNotFoundError: If the project does not exist.
    """
    await get_project(db, data.project_id)
    task = Task(
        project_id=data.project_id,
        title=data.title,
        description=data.description,
        status=data.status,
    )
    db.add(task)
    await db.flush()
    await db.refresh(task)
    return task


async def get_task(db: AsyncSession, task_id: UUID, *, for_update: bool = False) -> Task:
    """
    Get a task by ID.

    Raises:
        TaskNotFoundError: If no task has this ID.
    """
    stmt = select(Task).where(Task.id == task_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    task = result.scalar_one_or_none()
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


async def list_tasks(db: AsyncSession, project_id: UUID) -> list[Task]:
    """
    List tasks of a project, newest first.

    Raises:
        ProjectNotFoundError: If the project does not exist.
    """
    await get_project(db, project_id)
    result = await db.execute(
        select(Task)
        .where(Task.project_id == project_id)
        .order_by(Task.created_at.desc(), Task.id.desc()),
    )
    return list(result.scalars().all())


async def update_task(db: AsyncSession, task_id: UUID, data: TaskUpdate) -> Task:
    """
    Partially update a task.

    A status change is checked against blocking relationships before anything
    is written.

    Raises:
        TaskNotFoundError: If no task has this ID.
        BlockedTransitionError: If a blocking relationship forbids the new status.
    """
    task = await get_task(db, task_id, for_update=True)
    updates = data.model_dump(exclude_unset=True)

    new_status = updates.get("status")
    if new_status is not None and new_status != task.status:
        await check_status_transition(db, task.id, new_status)

    for field, value in updates.items():
        setattr(task, field, value)
    task.updated_at = utc_now()

    await db.flush()
    await db.refresh(task)
    return task


async def delete_task(db: AsyncSession, task_id: UUID) -> int:
    """
    Delete a task and every relationship where it is source or target.

    Returns:
        Number of relationships removed.

    Raises:
        TaskNotFoundError: If no task has this ID.
    """
    task = await get_task(db, task_id)
    removed = await delete_relationships_for_task(db, task_id)
    await db.delete(task)
    await db.flush()
    logger.info(
        "task_deleted",
        extra={"task_id": str(task_id), "relationships_removed": removed},
    )
    return removed
