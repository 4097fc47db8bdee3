"""Health check endpoints for Docker probes and the frontend."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError

from multitune.api.dependencies import get_db
from multitune.api.schemas import HealthResponse
from multitune.infrastructure.persistence import Database

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    """Liveness text, no dependencies."""
    return "Multitune backend is running!"


# Docker HEALTHCHECK: curl -f http://localhost:8000/api/health || exit 1
@router.get("/api/health", response_model=HealthResponse)
async def health(db: Database = Depends(get_db)) -> HealthResponse | JSONResponse:
    """Readiness: the app is up AND the database answers."""
    try:
        await db.ping()
    except (SQLAlchemyError, OSError) as e:
        logger.error("Health check: database unreachable: %s", e)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "error"},
        )
    return HealthResponse(status="healthy", database="ok")
