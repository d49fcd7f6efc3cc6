"""Test fixtures for MCP server tests."""

from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import respx
from fastmcp import Client

from mcp_server import server


@pytest.fixture
def mock_api() -> Generator[respx.MockRouter]:
    """Mock the task API behind the MCP tools."""
    # Reset the module-level HTTP client to ensure respx captures requests
    server._http_client = None
    with respx.mock(base_url="http://localhost:8000") as respx_mock:
        yield respx_mock
    server._http_client = None


@pytest.fixture
async def mcp_client() -> AsyncGenerator[Client]:
    """Create an MCP client connected to the server in memory."""
    async with Client(transport=server.mcp) as client:
        yield client


@pytest.fixture
def sample_task_ids() -> dict[str, str]:
    """IDs for tasks A, B and C."""
    return {
        "a": "0190d3a2-0000-7000-8000-00000000000a",
        "b": "0190d3a2-0000-7000-8000-00000000000b",
        "c": "0190d3a2-0000-7000-8000-00000000000c",
    }


@pytest.fixture
def sample_blocked_type() -> dict[str, Any]:
    """The built-in blocking relationship type as returned by the API."""
    return {
        "id": "0190d3a2-0000-7000-8000-0000000000f1",
        "type_name": "blocked",
        "display_name": "Blocked Tickets",
        "description": None,
        "is_system": True,
        "is_directional": True,
        "forward_label": "blocks",
        "reverse_label": "blocked by",
        "enforces_blocking": True,
        "blocking_disabled_statuses": ["todo", "inreview", "done", "cancelled"],
        "blocking_source_statuses": ["todo", "inprogress", "inreview"],
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:00:00Z",
    }


def _task(task_id: str, title: str, status: str = "todo") -> dict[str, Any]:
    return {
        "id": task_id,
        "project_id": "0190d3a2-0000-7000-8000-000000000001",
        "title": title,
        "description": None,
        "status": status,
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:00:00Z",
    }


@pytest.fixture
def sample_relationship(
    sample_task_ids: dict[str, str], sample_blocked_type: dict[str, Any],
) -> dict[str, Any]:
    """A relationship where B blocks A."""
    return {
        "id": "0190d3a2-0000-7000-8000-0000000000e1",
        "source_task_id": sample_task_ids["b"],
        "target_task_id": sample_task_ids["a"],
        "relationship_type_id": sample_blocked_type["id"],
        "data": None,
        "note": "waiting on B",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:00:00Z",
    }


@pytest.fixture
def sample_grouped(
    sample_task_ids: dict[str, str],
    sample_blocked_type: dict[str, Any],
    sample_relationship: dict[str, Any],
) -> list[dict[str, Any]]:
    """Grouped relationships of task A: B blocks A."""
    detailed = {
        **sample_relationship,
        "source_task": _task(sample_task_ids["b"], "B"),
        "target_task": _task(sample_task_ids["a"], "A"),
        "relationship_type": sample_blocked_type,
    }
    return [{"relationship_type": sample_blocked_type, "forward": [], "reverse": [detailed]}]


@pytest.fixture
def sample_blockers(
    sample_task_ids: dict[str, str],
    sample_blocked_type: dict[str, Any],
    sample_relationship: dict[str, Any],
) -> list[dict[str, Any]]:
    """Blockers of task A."""
    return [{
        "relationship": sample_relationship,
        "source_task": _task(sample_task_ids["b"], "B", status="inprogress"),
        "relationship_type": sample_blocked_type,
    }]
