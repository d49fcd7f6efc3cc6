"""Tests for project and task services, including relationship cascades."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from uuid6 import uuid7

from models.project import Project
from models.task import Task, TaskStatus
from models.task_relationship import TaskRelationship
from models.task_relationship_type import TaskRelationshipType
from schemas.relationship import RelationshipCreate
from schemas.task import ProjectCreate, TaskCreate, TaskUpdate
from services import task_service
from services.exceptions import (
    BlockedTransitionError,
    ProjectNotFoundError,
    TaskNotFoundError,
)
from services.relationship_service import create_relationship, find_by_source, find_by_target


async def _count_relationships(db: AsyncSession) -> int:
    return await db.scalar(select(func.count()).select_from(TaskRelationship))


class TestProjects:
    """Tests for project operations."""

    @pytest.mark.asyncio
    async def test__create_and_get_project(self, db_session: AsyncSession) -> None:
        project = await task_service.create_project(
            db_session, ProjectCreate(name="  Launch  ", description="Q4"),
        )

        fetched = await task_service.get_project(db_session, project.id)

        assert fetched.name == "Launch"
        assert fetched.description == "Q4"

    @pytest.mark.asyncio
    async def test__get_project__missing(self, db_session: AsyncSession) -> None:
        with pytest.raises(ProjectNotFoundError):
            await task_service.get_project(db_session, uuid7())

    @pytest.mark.asyncio
    async def test__list_projects__newest_first(self, db_session: AsyncSession) -> None:
        first = await task_service.create_project(db_session, ProjectCreate(name="First"))
        second = await task_service.create_project(db_session, ProjectCreate(name="Second"))

        projects = await task_service.list_projects(db_session)

        assert [p.id for p in projects] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test__delete_project__removes_tasks_and_relationships(
        self,
        db_session: AsyncSession,
        project: Project,
        make_task,
        system_types: dict[str, TaskRelationshipType],
    ) -> None:
        task_a = await make_task("A")
        task_b = await make_task("B")
        other_project = await task_service.create_project(db_session, ProjectCreate(name="Other"))
        outsider = await task_service.create_task(
            db_session, TaskCreate(project_id=other_project.id, title="Outsider"),
        )
        await create_relationship(
            db_session,
            task_a.id,
            RelationshipCreate(
                target_task_id=task_b.id, relationship_type_id=system_types["context"].id,
            ),
        )
        await create_relationship(
            db_session,
            outsider.id,
            RelationshipCreate(
                target_task_id=task_a.id, relationship_type_id=system_types["context"].id,
            ),
        )

        deleted = await task_service.delete_project(db_session, project.id)

        assert deleted == 2
        assert await _count_relationships(db_session) == 0
        remaining = await db_session.scalar(select(func.count()).select_from(Task))
        assert remaining == 1
        with pytest.raises(ProjectNotFoundError):
            await task_service.get_project(db_session, project.id)


class TestTasks:
    """Tests for task operations."""

    @pytest.mark.asyncio
    async def test__create_task__defaults_to_todo(
        self, db_session: AsyncSession, project: Project,
    ) -> None:
        task = await task_service.create_task(
            db_session, TaskCreate(project_id=project.id, title="Write docs"),
        )

        assert task.status == TaskStatus.TODO
        assert task.project_id == project.id

    @pytest.mark.asyncio
    async def test__create_task__missing_project(self, db_session: AsyncSession) -> None:
        with pytest.raises(ProjectNotFoundError):
            await task_service.create_task(
                db_session, TaskCreate(project_id=uuid7(), title="Orphan"),
            )

    @pytest.mark.asyncio
    async def test__get_task__missing(self, db_session: AsyncSession) -> None:
        with pytest.raises(TaskNotFoundError):
            await task_service.get_task(db_session, uuid7())

    @pytest.mark.asyncio
    async def test__list_tasks__scoped_to_project(
        self, db_session: AsyncSession, project: Project, make_task,
    ) -> None:
        first = await make_task("First")
        second = await make_task("Second")
        other = await task_service.create_project(db_session, ProjectCreate(name="Other"))
        await task_service.create_task(db_session, TaskCreate(project_id=other.id, title="X"))

        tasks = await task_service.list_tasks(db_session, project.id)

        assert [t.id for t in tasks] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test__update_task__title_only_skips_blocking_check(
        self,
        db_session: AsyncSession,
        make_task,
        system_types: dict[str, TaskRelationshipType],
    ) -> None:
        task_a = await make_task("A")
        task_b = await make_task("B")
        await create_relationship(
            db_session,
            task_b.id,
            RelationshipCreate(
                target_task_id=task_a.id, relationship_type_id=system_types["blocked"].id,
            ),
        )

        updated = await task_service.update_task(db_session, task_a.id, TaskUpdate(title="A2"))

        assert updated.title == "A2"
        assert updated.status == TaskStatus.TODO

    @pytest.mark.asyncio
    async def test__update_task__blocked_status_not_written(
        self,
        db_session: AsyncSession,
        make_task,
        system_types: dict[str, TaskRelationshipType],
    ) -> None:
        task_a = await make_task("A", status=TaskStatus.IN_PROGRESS)
        task_b = await make_task("B", status=TaskStatus.IN_PROGRESS)
        await create_relationship(
            db_session,
            task_b.id,
            RelationshipCreate(
                target_task_id=task_a.id, relationship_type_id=system_types["blocked"].id,
            ),
        )

        with pytest.raises(BlockedTransitionError):
            await task_service.update_task(
                db_session, task_a.id, TaskUpdate(status=TaskStatus.DONE, title="Changed"),
            )

        task = await task_service.get_task(db_session, task_a.id)
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.title == "A"

    @pytest.mark.asyncio
    async def test__update_task__allowed_once_blocker_done(
        self,
        db_session: AsyncSession,
        make_task,
        system_types: dict[str, TaskRelationshipType],
    ) -> None:
        task_a = await make_task("A", status=TaskStatus.IN_PROGRESS)
        task_b = await make_task("B", status=TaskStatus.IN_PROGRESS)
        await create_relationship(
            db_session,
            task_b.id,
            RelationshipCreate(
                target_task_id=task_a.id, relationship_type_id=system_types["blocked"].id,
            ),
        )

        await task_service.update_task(db_session, task_b.id, TaskUpdate(status=TaskStatus.DONE))
        updated = await task_service.update_task(
            db_session, task_a.id, TaskUpdate(status=TaskStatus.DONE),
        )

        assert updated.status == TaskStatus.DONE

    @pytest.mark.asyncio
    async def test__delete_task__cascades_relationships(
        self,
        db_session: AsyncSession,
        make_task,
        system_types: dict[str, TaskRelationshipType],
    ) -> None:
        task_a = await make_task("A")
        task_b = await make_task("B")
        task_c = await make_task("C")
        context_id = system_types["context"].id
        await create_relationship(
            db_session,
            task_b.id,
            RelationshipCreate(target_task_id=task_a.id, relationship_type_id=context_id),
        )
        await create_relationship(
            db_session,
            task_c.id,
            RelationshipCreate(target_task_id=task_b.id, relationship_type_id=context_id),
        )
        await create_relationship(
            db_session,
            task_a.id,
            RelationshipCreate(target_task_id=task_c.id, relationship_type_id=context_id),
        )

        removed = await task_service.delete_task(db_session, task_b.id)

        assert removed == 2
        assert await find_by_source(db_session, task_b.id) == []
        assert await find_by_target(db_session, task_b.id) == []
        assert await _count_relationships(db_session) == 1
        with pytest.raises(TaskNotFoundError):
            await task_service.get_task(db_session, task_b.id)

    @pytest.mark.asyncio
    async def test__delete_task__missing(self, db_session: AsyncSession) -> None:
        with pytest.raises(TaskNotFoundError):
            await task_service.delete_task(db_session, uuid7())
