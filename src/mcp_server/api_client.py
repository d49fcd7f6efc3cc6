"""HTTP client helpers for forwarding tool calls to the task API."""

import os
from typing import Any

import httpx


def get_api_base_url() -> str:
    """Get the API base URL from environment."""
    return os.getenv("TASKS_API_URL", "http://localhost:8000")


def get_default_timeout() -> float:
    """Get the default request timeout."""
    return float(os.getenv("MCP_API_TIMEOUT", "30.0"))


def _get_headers() -> dict[str, str]:
    """Get common headers for API requests."""
    return {"X-Request-Source": "mcp-tasks"}


async def api_get(
    client: httpx.AsyncClient,
    path: str,
    params: dict[str, Any] | None = None,
) -> Any:
    """Make a GET request to the API."""
    response = await client.get(path, params=params, headers=_get_headers())
    response.raise_for_status()
    return response.json()


async def api_post(
    client: httpx.AsyncClient,
    path: str,
    json: dict[str, Any] | None = None,
) -> Any:
    """Make a POST request to the API."""
    response = await client.post(path, json=json, headers=_get_headers())
    response.raise_for_status()
    return response.json()


async def api_patch(
    client: httpx.AsyncClient,
    path: str,
    json: dict[str, Any],
) -> Any:
    """Make a PATCH request to the API."""
    response = await client.patch(path, json=json, headers=_get_headers())
    response.raise_for_status()
    return response.json()


async def api_delete(client: httpx.AsyncClient, path: str) -> None:
    """Make a DELETE request to the API. Successful deletes have no body."""
    response = await client.delete(path, headers=_get_headers())
    response.raise_for_status()
