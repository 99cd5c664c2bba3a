from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from services.gauge_cache import FreshnessCache
from services.gauge_models import MetricKind, MetricPayload, Observation, SnapshotReading
from services.metric_router import MetricRouter
from services.wmis import WmisClient

logger = logging.getLogger("rivergauge.hub.gauges")

# (summary field, phrase matched against a snapshot reading's parameterLabel)
SUMMARY_PARAMETERS: tuple[tuple[str, str], ...] = (
    ("water_flow", "Stream Discharge"),
    ("water_level", "Stream Water Level"),
    ("dissolved_oxygen", "Dissolved Oxygen"),
    ("conductivity", "Conductivity"),
)
NOT_AVAILABLE = "N/A"


def find_reading(readings: tuple[SnapshotReading, ...], phrase: str) -> Optional[SnapshotReading]:
    needle = phrase.lower()
    for reading in readings:
        if needle in reading.parameter_label.lower():
            return reading
    return None


def format_reading(reading: Optional[SnapshotReading]) -> str:
    if reading is None or reading.value is None:
        return NOT_AVAILABLE
    return f"{reading.value} {reading.units}".strip()


class GaugeService:
    """Entry point used by the HTTP layer to read station telemetry."""

    def __init__(self, client: Optional[WmisClient] = None) -> None:
        self._client = client or WmisClient()
        self._router = MetricRouter(self._client)
        self.cache = FreshnessCache(self._load)

    async def _load(self, station_id: str, metric: MetricKind, now: datetime) -> MetricPayload:
        return await self._router.get_metric(station_id, metric, now=now)

    async def close(self) -> None:
        await self._client.close()

    async def get_series(self, station_id: str, metric: MetricKind) -> tuple[Observation, ...]:
        if metric is MetricKind.LATEST_SNAPSHOT:
            raise ValueError("Snapshot readings are not a time series")
        return await self.cache.get(station_id, metric)  # type: ignore[return-value]

    async def get_snapshot(self, station_id: str) -> tuple[SnapshotReading, ...]:
        return await self.cache.get(station_id, MetricKind.LATEST_SNAPSHOT)  # type: ignore[return-value]

    async def get_summary(self, station_id: str) -> dict[str, Any]:
        readings = await self.get_snapshot(station_id)
        if not readings:
            logger.debug("No snapshot readings for station %s", station_id)
        summary: dict[str, Any] = {
            field: format_reading(find_reading(readings, phrase)) for field, phrase in SUMMARY_PARAMETERS
        }
        summary["last_updated"] = readings[0].timestamp if readings else None
        summary["available"] = bool(readings)
        return summary


gauge_service = GaugeService()
