"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from services import relationship_type_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    system_relationship_types: int


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    """Check application and database health, and that built-in types are seeded."""
    db_status = "healthy"
    system_types = 0
    try:
        await db.execute(text("SELECT 1"))
        system_types = len(await relationship_type_service.find_system_types(db))
    except Exception:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    healthy = db_status == "healthy" and system_types > 0
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        database=db_status,
        system_relationship_types=system_types,
    )
