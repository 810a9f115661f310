"""Health check endpoint with storage backend connectivity check."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import get_context
from app.core.context import AppContext
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(context: Annotated[AppContext, Depends(get_context)]) -> HealthResponse:
    """
    Return service health status and storage connectivity.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if context.is_storage_connected() else "disconnected"

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(UTC),
        environment=context.settings.APP_ENV,
        database=db_status,
    )
