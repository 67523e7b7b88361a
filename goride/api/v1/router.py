"""API v1 router configuration."""

from fastapi import APIRouter

from goride.api.v1.endpoints import auth, health, profile, rides

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(rides.router, tags=["Rides"])
api_router.include_router(profile.router, tags=["Profile"])
