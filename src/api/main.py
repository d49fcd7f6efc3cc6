"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routers import health, relationship_types, relationships, tasks
from core.config import get_settings
from services.exceptions import DeserializationError, ServiceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()
    logging.basicConfig(
        level=app_settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    yield


app_settings = get_settings()

app = FastAPI(
    title="Task Relationships API",
    description="Projects, tasks and typed relationships with status blocking rules.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ServiceError)
async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    """Translate service-layer errors into their HTTP status with a structured detail."""
    if isinstance(exc, DeserializationError):
        logger.error(
            "stored_value_deserialization_failed",
            extra={"error_code": exc.error_code, "error": exc.message},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.to_detail()},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(tasks.projects_router)
app.include_router(tasks.router)
app.include_router(relationships.task_router)
app.include_router(relationships.router)
app.include_router(relationship_types.router)
