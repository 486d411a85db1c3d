"""Main API v1 router aggregating all sub-routers."""
from fastapi import APIRouter

from inflio.api.v1.health import router as health_router
from inflio.api.v1.personas import router as personas_router
from inflio.api.v1.posts import router as posts_router
from inflio.api.v1.projects import router as projects_router
from inflio.api.v1.social import router as social_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["Health"])
api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])
api_router.include_router(posts_router, tags=["Posts"])
api_router.include_router(social_router, prefix="/social", tags=["Social"])
api_router.include_router(personas_router, prefix="/personas", tags=["Personas"])
