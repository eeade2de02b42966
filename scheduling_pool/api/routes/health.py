from fastapi import APIRouter, Depends

from scheduling_pool.core.config import Settings, get_settings
from scheduling_pool.schemas.health import HealthResponse
from scheduling_pool.services.health_service import HealthService

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def healthcheck(settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthService(settings).get_status()
