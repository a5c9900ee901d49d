"""API router configuration."""

from fastapi import APIRouter

from app.api.v1.endpoints import account, alexa, health, manage, preferences
from app.config import settings

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, prefix=settings.api_v1_prefix, tags=["Health"])
api_router.include_router(preferences.router, prefix=settings.api_prefix, tags=["Preferences"])
api_router.include_router(account.router, prefix="/account", tags=["Account"])
api_router.include_router(manage.router, prefix="/manage", tags=["Manage"])
api_router.include_router(alexa.router, prefix="/alexa", tags=["Alexa"])
