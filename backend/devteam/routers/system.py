from fastapi import APIRouter

from devteam.schemas import HealthStatus

router = APIRouter()

API_VERSION = "1.0.0"


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="API health",
    description="Report that the API is up. Does not require authentication.",
)
async def api_health():
    return HealthStatus(status="ok", version=API_VERSION)
