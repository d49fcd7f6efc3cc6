"""Pytest fixtures for testing."""
import os

# Must be set before any app imports that trigger Settings validation.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from models.base import Base  # noqa: E402
from models.project import Project  # noqa: E402
from models.task import Task, TaskStatus  # noqa: E402
from models.task_relationship_type import TaskRelationshipType  # noqa: E402
from services.relationship_type_service import seed_system_types  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TaskFactory = Callable[..., Awaitable[Task]]


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create a fresh in-memory database per test.

    Foreign keys are left unenforced so tests can insert orphaned rows; the
    services cascade deletes themselves.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create an async session on the per-test database."""
    session_factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
async def system_types(db_session: AsyncSession) -> dict[str, TaskRelationshipType]:
    """Seed the built-in relationship types, keyed by type_name."""
    created = await seed_system_types(db_session)
    return {rel_type.type_name: rel_type for rel_type in created}


@pytest.fixture
async def project(db_session: AsyncSession) -> Project:
    """Create a test project."""
    project = Project(name="Test Project")
    db_session.add(project)
    await db_session.flush()
    return project


@pytest.fixture
def make_task(db_session: AsyncSession, project: Project) -> TaskFactory:
    """Factory creating tasks in the test project."""

    async def _make_task(title: str = "Task", status: TaskStatus = TaskStatus.TODO) -> Task:
        task = Task(project_id=project.id, title=title, status=status)
        db_session.add(task)
        await db_session.flush()
        return task

    return _make_task


@pytest.fixture
async def client(
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session override."""
    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
