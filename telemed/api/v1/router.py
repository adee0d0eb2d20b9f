"""API v1 router configuration."""

from fastapi import APIRouter

from telemed.api.v1.endpoints import appointments, health, notifications, professionals

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(professionals.router, prefix="/professionals", tags=["Professionals"])
api_router.include_router(notifications.router, tags=["Notifications"])
