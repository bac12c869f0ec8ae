"""
Admin Routes for Data Maintenance

Cache invalidation and override cleanup.
Protected by API key authentication.
"""

import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, status

from clepfinder.api.dependencies import CacheDep, UpdateServiceDep
from clepfinder.config.settings import get_settings


logger = logging.getLogger(__name__)


# =============================================================================
# Admin API Key Authentication
# =============================================================================

async def verify_admin_api_key(
    x_admin_key: str = Header(..., description="Admin API key for protected operations")
) -> bool:
    """Check the X-Admin-Key header against ADMIN_API_KEY."""
    expected_key = get_settings().admin_api_key

    if not expected_key:
        logger.error("ADMIN_API_KEY environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin authentication not configured"
        )

    if not secrets.compare_digest(x_admin_key, expected_key):
        logger.warning("Invalid admin API key attempt")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin API key"
        )

    return True


router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_api_key)]
)


@router.post("/cache/clear")
async def clear_cache(cache: CacheDep):
    """Drop the cached institution collection; the next read reloads it."""
    cache.clear()
    return {"success": True, "message": "Institution cache cleared"}


@router.delete("/institutions/{di_code}/overrides")
async def clear_institution_overrides(di_code: int, service: UpdateServiceDep):
    """Remove every override an institution has made."""
    deleted = await service.clear_overrides(di_code)
    logger.info(f"Admin cleared {deleted} overrides for {di_code}")
    return {"success": True, "deleted": deleted}
