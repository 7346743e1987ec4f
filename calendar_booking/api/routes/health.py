from fastapi import APIRouter, Depends

from calendar_booking.core.config import Settings, get_settings
from calendar_booking.schemas.health import HealthResponse
from calendar_booking.services.health_service import HealthService

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
def healthcheck(settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthService(settings).get_status()
