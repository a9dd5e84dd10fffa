"""Health check endpoint with database connectivity and OpenID status."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from switchyard.core.config import settings
from switchyard.core.database import check_db_connected, get_db
from switchyard.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(request: Request, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"
    openid_enabled = getattr(request.app.state, "openid_provider", None) is not None

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        openid=openid_enabled,
    )
