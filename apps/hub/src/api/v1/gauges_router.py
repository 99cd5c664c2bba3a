from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel, Field

from services.gauge_models import MetricKind, station_number
from services.gauges import gauge_service

router = APIRouter(tags=["gauges"])


class SeriesPoint(BaseModel):
    dt: str = Field(description="Observation timestamp exactly as reported by WMIS")
    v: float | None = Field(default=None, description="Observed value; null when WMIS reported a non-numeric value")


class StationSummary(BaseModel):
    station_id: str
    water_flow: str
    water_level: str
    dissolved_oxygen: str
    conductivity: str
    last_updated: str | None = None
    available: bool = False


def validate_station_id(station_id: str = Path(..., min_length=1, max_length=32)) -> str:
    if not station_number(station_id):
        raise HTTPException(status_code=400, detail="Station id must contain a numeric gauge number")
    return station_id


async def _series(station_id: str, metric: MetricKind) -> list[dict[str, object]]:
    observations = await gauge_service.get_series(station_id, metric)
    return [obs.to_payload() for obs in observations]


@router.get("/flow/{station_id}", response_model=list[SeriesPoint])
async def get_flow(station_id: str = Depends(validate_station_id)):
    return await _series(station_id, MetricKind.FLOW)


@router.get("/waterlevel/{station_id}", response_model=list[SeriesPoint])
async def get_water_level(station_id: str = Depends(validate_station_id)):
    return await _series(station_id, MetricKind.WATER_LEVEL)


@router.get("/conductivity/{station_id}", response_model=list[SeriesPoint])
async def get_conductivity(station_id: str = Depends(validate_station_id)):
    return await _series(station_id, MetricKind.CONDUCTIVITY)


@router.get("/dissolved-oxygen/{station_id}", response_model=list[SeriesPoint])
async def get_dissolved_oxygen(station_id: str = Depends(validate_station_id)):
    return await _series(station_id, MetricKind.DISSOLVED_OXYGEN)


@router.get("/station/{station_id}")
async def get_station_snapshot(station_id: str = Depends(validate_station_id)) -> list[Any]:
    readings = await gauge_service.get_snapshot(station_id)
    return [reading.to_payload() for reading in readings]


@router.get("/station/{station_id}/summary", response_model=StationSummary)
async def get_station_summary(station_id: str = Depends(validate_station_id)):
    summary = await gauge_service.get_summary(station_id)
    return StationSummary(station_id=station_id, **summary)


@router.get("/cache")
async def get_cache_state() -> dict[str, Any]:
    return gauge_service.cache.describe()
