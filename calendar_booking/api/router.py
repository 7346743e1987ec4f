from fastapi import APIRouter

from calendar_booking.api.routes.auth import router as auth_router
from calendar_booking.api.routes.booking import router as booking_router
from calendar_booking.api.routes.health import router as health_router
from calendar_booking.api.routes.pages import router as pages_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(pages_router)
api_router.include_router(auth_router)
api_router.include_router(booking_router)
