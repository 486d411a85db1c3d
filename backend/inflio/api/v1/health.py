"""Health check endpoint."""
from fastapi import APIRouter

from inflio.database import check_db_connection
from inflio.services.scheduler_service import get_scheduler
from inflio.social.oauth_config import PLATFORM_CONFIGS, validate_platform_config

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Liveness plus what the publishing path depends on.

    Returns 200 with ``degraded`` status when the database is unreachable.
    """
    db_ok = await check_db_connection()

    return {
        "status": "healthy" if db_ok else "degraded",
        "database": "connected" if db_ok else "disconnected",
        "scheduler": "running" if get_scheduler().running else "stopped",
        "platforms_configured": sorted(
            name for name in PLATFORM_CONFIGS if validate_platform_config(name)
        ),
        "version": "1.0.0",
    }
