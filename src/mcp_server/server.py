"""FastMCP server for managing task relationships through the task API."""

from typing import Annotated, Any, Literal, NoReturn
from uuid import UUID

import httpx
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from .api_client import (
    api_delete,
    api_get,
    api_patch,
    api_post,
    get_api_base_url,
    get_default_timeout,
)

mcp = FastMCP(
    name="Task Relationships MCP Server",
    instructions="""
Links tasks to each other with typed relationships. Some relationship types
enforce blocking: a task cannot move into certain statuses while a related
task is still open.

Available tools:
- `list_relationship_types`: Discover relationship type names (e.g. `blocked`, `context`)
- `manage_task_relationships`: List, add, update or delete the relationships of a task
- `get_task_blockers`: Show which tasks currently block a task

Example workflows:

1. "Task A can't be finished until task B is done"
   - Call `manage_task_relationships(task_id=<B>, action="add",
     target_task_id=<A>, relationship_type="blocked")`

2. "Why can't I close this task?"
   - Call `get_task_blockers(task_id=<task>)`

Relationship types are referenced by `type_name`; call `list_relationship_types()`
when unsure which names exist.
""".strip(),
)


# Module-level client for connection reuse (can be overridden in tests)
_http_client: httpx.AsyncClient | None = None


async def _get_http_client() -> httpx.AsyncClient:
    """Get or create the HTTP client for API requests."""
    global _http_client  # noqa: PLW0603
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            base_url=get_api_base_url(),
            timeout=get_default_timeout(),
        )
    return _http_client


def _handle_api_error(e: httpx.HTTPStatusError, context: str = "") -> NoReturn:
    """Translate API errors to MCP ToolErrors. Always raises."""
    status = e.response.status_code

    try:
        detail = e.response.json().get("detail", {})
    except ValueError:
        raise ToolError(f"API error {status}{': ' + context if context else ''}")

    if isinstance(detail, dict):
        message = detail.get("message", str(detail))
        error_code = detail.get("error_code", "")
        if error_code:
            raise ToolError(f"{message} (code: {error_code})")
        raise ToolError(message)
    raise ToolError(str(detail))


async def _resolve_type_id(client: httpx.AsyncClient, type_name: str) -> str:
    """Look up a relationship type ID by its type name."""
    try:
        rel_type = await api_get(client, f"/task-relationship-types/by-name/{type_name}")
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 404:
            raise ToolError(f"Relationship type '{type_name}' not found")
        _handle_api_error(e, f"looking up relationship type '{type_name}'")
    return rel_type["id"]


def _summarize(
    rel: dict[str, Any],
    rel_type: dict[str, Any],
    direction: str | None,
    include_notes: bool,
) -> dict[str, Any]:
    """Flatten a detailed relationship into the shape returned by the tool."""
    return {
        "relationship_id": rel["id"],
        "relationship_type": rel_type["type_name"],
        "relationship_type_display": rel_type["display_name"],
        "source_task_id": rel["source_task"]["id"],
        "source_task_title": rel["source_task"]["title"],
        "target_task_id": rel["target_task"]["id"],
        "target_task_title": rel["target_task"]["title"],
        "direction": direction if rel_type["is_directional"] else None,
        "note": rel.get("note") if include_notes else None,
    }


async def _list_relationships(
    client: httpx.AsyncClient, task_id: UUID, include_notes: bool,
) -> dict[str, Any]:
    groups = await api_get(client, f"/tasks/{task_id}/relationships/")
    summaries = []
    for group in groups:
        rel_type = group["relationship_type"]
        summaries.extend(
            _summarize(rel, rel_type, "forward", include_notes) for rel in group["forward"]
        )
        summaries.extend(
            _summarize(rel, rel_type, "reverse", include_notes) for rel in group["reverse"]
        )
    return {"relationships": summaries}


@mcp.tool(
    description="List relationship types, optionally filtered by a name substring",
    annotations={"readOnlyHint": True},
)
async def list_relationship_types(
    search: Annotated[
        str | None,
        Field(description="Case-insensitive text matched against type and display names"),
    ] = None,
) -> dict[str, Any]:
    """List relationship types with their labels and blocking rules."""
    client = await _get_http_client()
    params = {"search": search} if search else None

    try:
        types = await api_get(client, "/task-relationship-types/", params)
    except httpx.HTTPStatusError as e:
        _handle_api_error(e, "listing relationship types")
    except httpx.RequestError as e:
        raise ToolError(f"API unavailable: {e}")
    return {"relationship_types": types}


@mcp.tool(
    description=(
        "Manage task relationships (add, update, delete, or list relationships "
        "between tasks)."
    ),
    annotations={"readOnlyHint": False},
)
async def manage_task_relationships(
    task_id: Annotated[UUID, Field(description="The task whose relationships are managed")],
    action: Annotated[
        Literal["list", "add", "update", "delete"],
        Field(description="Action to perform"),
    ],
    relationship_id: Annotated[
        UUID | None,
        Field(description="Relationship ID (required for 'update' and 'delete')"),
    ] = None,
    target_task_id: Annotated[
        UUID | None,
        Field(description="Target task ID (required for 'add', optional for 'update')"),
    ] = None,
    relationship_type: Annotated[
        str | None,
        Field(description="Relationship type name (required for 'add', optional for 'update')"),
    ] = None,
    note: Annotated[str | None, Field(description="Optional note about the relationship")] = None,
    data: Annotated[
        dict[str, Any] | None,
        Field(description="Optional JSON object stored with the relationship"),
    ] = None,
    include_notes: Annotated[
        bool, Field(description="Whether to include notes in the response"),
    ] = True,
) -> dict[str, Any]:
    """
    List, add, update or delete relationships of a task.

    `add` creates a relationship with `task_id` as the source. `update` and
    `delete` accept relationships where `task_id` is either endpoint.
    """
    client = await _get_http_client()

    try:
        if action == "list":
            return await _list_relationships(client, task_id, include_notes)

        if action == "add":
            if relationship_type is None:
                raise ToolError("relationship_type is required for 'add' action")
            if target_task_id is None:
                raise ToolError("target_task_id is required for 'add' action")
            payload: dict[str, Any] = {
                "target_task_id": str(target_task_id),
                "relationship_type_id": await _resolve_type_id(client, relationship_type),
                "note": note,
                "data": data,
            }
            rel = await api_post(client, f"/tasks/{task_id}/relationships/", payload)
            return {"relationship": rel}

        if relationship_id is None:
            raise ToolError(f"relationship_id is required for '{action}' action")
        path = f"/tasks/{task_id}/relationships/{relationship_id}"

        if action == "update":
            payload = {}
            if target_task_id is not None:
                payload["target_task_id"] = str(target_task_id)
            if relationship_type is not None:
                payload["relationship_type_id"] = await _resolve_type_id(
                    client, relationship_type,
                )
            if note is not None:
                payload["note"] = note
            if data is not None:
                payload["data"] = data
            if not payload:
                raise ToolError("Nothing to update")
            rel = await api_patch(client, path, payload)
            return {"relationship": rel}

        await api_delete(client, path)
        return {"deleted": str(relationship_id)}
    except httpx.HTTPStatusError as e:
        _handle_api_error(e, f"{action} relationships of task {task_id}")
    except httpx.RequestError as e:
        raise ToolError(f"API unavailable: {e}")


@mcp.tool(
    description="Show the relationships that currently block a task's status changes",
    annotations={"readOnlyHint": True},
)
async def get_task_blockers(
    task_id: Annotated[UUID, Field(description="The blocked task")],
) -> dict[str, Any]:
    """Each blocker names the source task, its status and the relationship type."""
    client = await _get_http_client()

    try:
        blockers = await api_get(client, f"/tasks/{task_id}/blockers")
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 404:
            raise ToolError(f"Task {task_id} not found")
        _handle_api_error(e, f"getting blockers of task {task_id}")
    except httpx.RequestError as e:
        raise ToolError(f"API unavailable: {e}")
    return {
        "blockers": [
            {
                "relationship_id": b["relationship"]["id"],
                "source_task_id": b["source_task"]["id"],
                "source_task_title": b["source_task"]["title"],
                "source_task_status": b["source_task"]["status"],
                "relationship_type": b["relationship_type"]["type_name"],
            }
            for b in blockers
        ],
    }
