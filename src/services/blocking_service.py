"""
Blocking constraint evaluation for task status transitions.

`can_transition` is a pure decision over one relationship type. The composite
check (`check_status_transition`) gathers every relationship currently
blocking a task and vetoes the transition if any single one denies it. It runs
synchronously before a status write; there is no soft veto.
"""
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from models.task import TaskStatus
from models.task_relationship_type import TaskRelationshipType
from schemas.validators import parse_status_set, sort_statuses
from services.exceptions import BlockedTransitionError, StatusSetDeserializationError
from services.relationship_service import BlockingRelationship, find_blocking_relationships

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionDecision:
    """Outcome of evaluating one relationship type against a proposed status."""

    allowed: bool
    message: str | None = None


ALLOWED = TransitionDecision(allowed=True)


def _required_status_set(raw: str | None, field_name: str) -> frozenset[TaskStatus]:
    if raw is None:
        raise StatusSetDeserializationError("null", f"{field_name} is missing")
    return parse_status_set(raw)


def _join(statuses: Iterable[TaskStatus]) -> str:
    return ", ".join(status.value for status in sort_statuses(statuses))


def can_transition(
    relationship_type: TaskRelationshipType,
    proposed_status: TaskStatus,
    blocking_source_statuses: Iterable[TaskStatus],
) -> TransitionDecision:
    """
    Decide whether a target task may move to `proposed_status`.

    Args:
        relationship_type: Type of the incoming relationship.
        proposed_status: Status the target task wants to enter.
        blocking_source_statuses: Observed statuses of the source tasks linked
            to the target through this type.

    Returns:
        TransitionDecision; denied decisions name the offending source statuses
        and the statuses disabled by the type.

    Raises:
        StatusSetDeserializationError: If the type's stored status sets cannot
            be decoded. Evaluation fails closed.
    """
    if not relationship_type.enforces_blocking:
        return ALLOWED

    disabled = _required_status_set(
        relationship_type.blocking_disabled_statuses, "blocking_disabled_statuses",
    )
    source = _required_status_set(
        relationship_type.blocking_source_statuses, "blocking_source_statuses",
    )

    if proposed_status not in disabled:
        return ALLOWED

    offending = source.intersection(blocking_source_statuses)
    if not offending:
        return ALLOWED

    return TransitionDecision(
        allowed=False,
        message=(
            f"Cannot set status to '{proposed_status.value}' because task is blocked by "
            f"tasks in statuses: {_join(offending)}. "
            f"Blocked statuses: {_join(disabled)}"
        ),
    )


def _describe_blocker(blocker: BlockingRelationship) -> dict[str, Any]:
    return {
        "relationship_id": str(blocker.relationship.id),
        "source_task_id": str(blocker.source_task.id),
        "source_task_title": blocker.source_task.title,
        "source_task_status": blocker.source_task.status.value,
        "relationship_type": blocker.relationship_type.type_name,
    }


async def get_blockers(db: AsyncSession, task_id: UUID) -> list[BlockingRelationship]:
    """Relationships currently blocking the task, regardless of any proposed status."""
    return await find_blocking_relationships(db, task_id)


async def check_status_transition(
    db: AsyncSession,
    task_id: UUID,
    proposed_status: TaskStatus,
) -> None:
    """
    Veto a status transition that any blocking relationship forbids.

    Raises:
        BlockedTransitionError: If at least one relationship denies the
            transition. Carries every denying relationship.
        StatusSetDeserializationError: If a stored status set is malformed.
    """
    vetoes: list[tuple[BlockingRelationship, TransitionDecision]] = []
    for blocker in await find_blocking_relationships(db, task_id):
        decision = can_transition(
            blocker.relationship_type, proposed_status, {blocker.source_task.status},
        )
        if not decision.allowed:
            vetoes.append((blocker, decision))

    if not vetoes:
        return

    # Several edges of the same type produce the same message; keep one of each
    messages = list(dict.fromkeys(decision.message for _, decision in vetoes))
    blockers = [_describe_blocker(blocker) for blocker, _ in vetoes]
    logger.info(
        "task_transition_blocked",
        extra={
            "task_id": str(task_id),
            "proposed_status": proposed_status.value,
            "blocker_count": len(blockers),
        },
    )
    raise BlockedTransitionError(
        task_id=task_id,
        proposed_status=proposed_status.value,
        message=" ".join(messages),
        blockers=blockers,
    )
