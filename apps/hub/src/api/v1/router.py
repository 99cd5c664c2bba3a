from fastapi import APIRouter

from config import settings
from .gauges_router import router as gauges_router

router = APIRouter(prefix="/api/v1", tags=["v1"])
router.include_router(gauges_router)


@router.get("/health")
async def health():
    return {"status": "ok", "version": settings.app_version}


@router.get("/info")
async def info():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "debug": settings.debug,
        "cors_origins": settings.cors_origins,
        "wmis_base_url": settings.wmis_base_url,
        "recency_window_months": settings.recency_window_months,
        "cache_ttl_seconds": {
            "snapshot": settings.snapshot_cache_ttl,
            "series": settings.series_cache_ttl,
            "water_quality": settings.water_quality_cache_ttl,
        },
    }
