from fastapi import APIRouter
from datetime import datetime
from schemas.presence import HealthResponse

health_router = APIRouter(tags=["health"])


@health_router.get("/health")
async def health() -> HealthResponse:
    return HealthResponse(
        status="success",
        message="Realtime matchmaking service is running",
        timestamp=datetime.now().isoformat(),
    )
