"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

import os
from typing import Any, Dict

from fastapi import APIRouter

from openimage.config.logging import get_logger
from openimage.config.settings import get_settings
from openimage.core.rendering import client_rasterizer
from openimage.models.schemas import HealthStatus

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


async def check_browser_pool_health() -> Dict[str, Any]:
    """Check browser pool health status."""
    pool = client_rasterizer._global_browser_pool
    if pool is None:
        # Started lazily on the first export
        return {"healthy": True, "status": "not_initialized", "available_browsers": 0}

    available_browsers = len(pool.browsers)
    return {
        "healthy": available_browsers > 0,
        "status": "healthy" if available_browsers > 0 else "no_browsers_available",
        "available_browsers": available_browsers,
        "pool_size": pool.pool_size,
    }


def check_storage_health() -> bool:
    """Editor store directory exists and is writable."""
    storage_path = get_settings().storage_path
    return storage_path.is_dir() and os.access(storage_path, os.W_OK)


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    """
    Get application health status.

    Reports browser pool availability and whether the editor store can be
    written. A missing store makes the service unhealthy; a drained browser
    pool only degrades it, since the image endpoint does not need one.
    """
    browser_pool_health = await check_browser_pool_health()
    storage_healthy = check_storage_health()

    if not storage_healthy:
        overall_status = "unhealthy"
    elif not browser_pool_health["healthy"]:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    logger.info(
        "Health check completed",
        status=overall_status,
        browser_pool_status=browser_pool_health["status"],
        available_browsers=browser_pool_health["available_browsers"],
    )
    return HealthStatus(
        status=overall_status,
        version=get_settings().app_version,
        browser_pool=bool(browser_pool_health["healthy"]),
        storage=storage_healthy,
    )
