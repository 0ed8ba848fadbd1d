"""Health check endpoints."""

from fastapi import APIRouter, Request

from ... import __version__
from ..schemas import HealthResponse

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Report whether the tool host is connected, with its tools and session count.",
)
def health_check(request: Request) -> HealthResponse:
    """Return health status of the API server."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None or orchestrator.loop is None:
        return HealthResponse(status="unhealthy", version=__version__)
    return HealthResponse(
        status="healthy",
        version=__version__,
        tools=orchestrator.catalog.names,
        sessions=len(orchestrator.store),
    )
