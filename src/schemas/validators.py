"""
Shared validation and storage codecs for Pydantic schemas and services.

Relationship types persist their blocking status sets, and relationships their
`data` payload, as JSON text. The functions here are the only place that text
is encoded or decoded: decode failures raise service-level deserialization
errors instead of falling back to an empty value, since an empty status set
would silently weaken the blocking guarantee.
"""
import json
from collections.abc import Iterable
from typing import Any

from pydantic import TypeAdapter, ValidationError

from core.config import get_settings
from models.task import TaskStatus
from services.exceptions import (
    RelationshipDataDeserializationError,
    StatusSetDeserializationError,
)

_STATUS_LIST_ADAPTER = TypeAdapter(list[TaskStatus])

# Declaration order, used to render status sets deterministically
_STATUS_ORDER = {status: index for index, status in enumerate(TaskStatus)}


def sort_statuses(statuses: Iterable[TaskStatus]) -> list[TaskStatus]:
    """Return statuses in TaskStatus declaration order."""
    return sorted(statuses, key=_STATUS_ORDER.__getitem__)


def parse_status_set(raw: str) -> frozenset[TaskStatus]:
    """
    Decode a stored status set (JSON list of status names) into TaskStatus values.

    Raises:
        StatusSetDeserializationError: If the text is not a JSON list of strings
            or names an unknown status.
    """
    try:
        statuses = _STATUS_LIST_ADAPTER.validate_json(raw)
    except ValidationError as e:
        reasons = "; ".join(err["msg"] for err in e.errors())
        raise StatusSetDeserializationError(raw, reasons) from e
    return frozenset(statuses)


def parse_optional_status_set(raw: str | None) -> frozenset[TaskStatus] | None:
    """Decode a nullable status set column. None stays None."""
    if raw is None:
        return None
    return parse_status_set(raw)


def serialize_status_set(statuses: Iterable[TaskStatus | str]) -> str:
    """
    Encode statuses as a JSON list of status names.

    Duplicates are dropped; first-seen order is kept.
    """
    seen: dict[str, None] = {}
    for status in statuses:
        seen.setdefault(TaskStatus(status).value, None)
    return json.dumps(list(seen))


def parse_relationship_data(raw: str | None) -> dict[str, Any] | None:
    """
    Decode a relationship's stored data payload.

    Raises:
        RelationshipDataDeserializationError: If the text is not a JSON object.
    """
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RelationshipDataDeserializationError(str(e)) from e
    if not isinstance(value, dict):
        raise RelationshipDataDeserializationError(
            f"expected a JSON object, got {type(value).__name__}",
        )
    return value


def serialize_relationship_data(data: dict[str, Any] | None) -> str | None:
    """Encode a relationship data payload as JSON text."""
    if data is None:
        return None
    return json.dumps(data)


def validate_relationship_note(note: str | None) -> str | None:
    """Validate relationship note length."""
    if note is None:
        return None
    max_length = get_settings().max_note_length
    if len(note) > max_length:
        raise ValueError(f"Note must be at most {max_length} characters")
    return note


def validate_title(title: str) -> str:
    """Strip a required title and enforce the configured maximum length."""
    title = title.strip()
    if not title:
        raise ValueError("Title cannot be empty")
    max_length = get_settings().max_title_length
    if len(title) > max_length:
        raise ValueError(f"Title must be at most {max_length} characters")
    return title


def validate_description(description: str | None) -> str | None:
    """Enforce the configured maximum description length."""
    if description is None:
        return None
    max_length = get_settings().max_description_length
    if len(description) > max_length:
        raise ValueError(f"Description must be at most {max_length} characters")
    return description


def validate_label(label: str | None) -> str | None:
    """Strip a directional label; blank labels count as missing."""
    if label is None:
        return None
    label = label.strip()
    return label or None
