"""Project and task endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.relationship import BlockerResponse
from schemas.task import (
    ProjectCreate,
    ProjectResponse,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
)
from services import blocking_service, task_service

projects_router = APIRouter(prefix="/projects", tags=["projects"])
router = APIRouter(prefix="/tasks", tags=["tasks"])


@projects_router.post("/", response_model=ProjectResponse, status_code=201)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_async_session),
) -> ProjectResponse:
    """Create a project."""
    project = await task_service.create_project(db, data)
    return ProjectResponse.model_validate(project)


@projects_router.get("/", response_model=list[ProjectResponse])
async def list_projects(
    db: AsyncSession = Depends(get_async_session),
) -> list[ProjectResponse]:
    """List projects, newest first."""
    projects = await task_service.list_projects(db)
    return [ProjectResponse.model_validate(p) for p in projects]


@projects_router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> ProjectResponse:
    """Get a project by ID."""
    project = await task_service.get_project(db, project_id)
    return ProjectResponse.model_validate(project)


@projects_router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a project, its tasks and their relationships."""
    await task_service.delete_project(db, project_id)


@router.post("/", response_model=TaskResponse, status_code=201)
async def create_task(
    data: TaskCreate,
    db: AsyncSession = Depends(get_async_session),
) -> TaskResponse:
    """Create a task."""
    task = await task_service.create_task(db, data)
    return TaskResponse.model_validate(task)


@router.get("/", response_model=list[TaskResponse])
async def list_tasks(
    project_id: UUID = Query(description="Project whose tasks to list"),
    db: AsyncSession = Depends(get_async_session),
) -> list[TaskResponse]:
    """List the tasks of a project, newest first."""
    tasks = await task_service.list_tasks(db, project_id)
    return [TaskResponse.model_validate(t) for t in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> TaskResponse:
    """Get a task by ID."""
    task = await task_service.get_task(db, task_id)
    return TaskResponse.model_validate(task)


@router.get("/{task_id}/blockers", response_model=list[BlockerResponse])
async def get_task_blockers(
    task_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> list[BlockerResponse]:
    """Relationships whose source task currently blocks this task."""
    await task_service.get_task(db, task_id)
    blockers = await blocking_service.get_blockers(db, task_id)
    return [BlockerResponse.model_validate(b) for b in blockers]


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> TaskResponse:
    """
    Update a task.

    Returns 403 with error_code TRANSITION_BLOCKED when a blocking relationship
    forbids the requested status.
    """
    task = await task_service.update_task(db, task_id, data)
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a task and every relationship touching it."""
    await task_service.delete_task(db, task_id)
