from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

from config import settings
from services.gauge_models import CacheEntry, MetricKind, MetricPayload, station_number

logger = logging.getLogger("rivergauge.hub.gauges.cache")

Loader = Callable[[str, MetricKind, datetime], Awaitable[MetricPayload]]
CacheKey = tuple[str, MetricKind]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def default_ttl(metric: MetricKind) -> timedelta:
    if metric is MetricKind.LATEST_SNAPSHOT:
        seconds = settings.snapshot_cache_ttl
    elif metric in (MetricKind.FLOW, MetricKind.WATER_LEVEL):
        seconds = settings.series_cache_ttl
    else:
        seconds = settings.water_quality_cache_ttl
    return timedelta(seconds=seconds)


class FreshnessCache:
    """Per (station, metric) memo with metric TTLs and single-flight loading.

    Concurrent misses for the same key share one loader task. The task keeps
    running when a waiting caller is cancelled and still populates the cache.
    Empty payloads are cached like any other.
    """

    def __init__(
        self,
        loader: Loader,
        *,
        clock: Callable[[], datetime] = _utc_now,
        ttl_for: Callable[[MetricKind], timedelta] = default_ttl,
    ) -> None:
        self._loader = loader
        self._clock = clock
        self._ttl_for = ttl_for
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._inflight: dict[CacheKey, asyncio.Task[MetricPayload]] = {}

    @staticmethod
    def key_for(station_id: str, metric: MetricKind) -> CacheKey:
        return (station_number(station_id) or station_id, metric)

    async def get(self, station_id: str, metric: MetricKind) -> MetricPayload:
        now = self._clock()
        key = self.key_for(station_id, metric)
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(now):
            logger.debug("Cache hit for %s/%s", key[0], metric.value)
            return entry.payload

        self._prune(now)
        # No await between the lookup and the registration below.
        task = self._inflight.get(key)
        if task is None:
            logger.debug("Cache miss for %s/%s", key[0], metric.value)
            task = asyncio.ensure_future(self._load(key, station_id, metric, now))
            self._inflight[key] = task
        else:
            logger.debug("Joining in-flight fetch for %s/%s", key[0], metric.value)
        return await asyncio.shield(task)

    async def _load(self, key: CacheKey, station_id: str, metric: MetricKind, now: datetime) -> MetricPayload:
        try:
            payload = await self._loader(station_id, metric, now)
            ttl = self._ttl_for(metric)
            if ttl > timedelta(0):
                self._entries[key] = CacheEntry(key=key, payload=payload, fetched_at=self._clock(), ttl=ttl)
            return payload
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

    def _prune(self, now: datetime) -> None:
        stale = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("Evicted %d expired cache entries", len(stale))

    def clear(self) -> None:
        self._entries.clear()
        self._inflight.clear()

    def describe(self) -> dict[str, Any]:
        now = self._clock()
        entries = [
            {
                "station": entry.key[0],
                "metric": entry.key[1].value,
                "fetched_at": entry.fetched_at.isoformat(),
                "ttl_seconds": entry.ttl.total_seconds(),
                "fresh": entry.is_fresh(now),
                "size": len(entry.payload),
            }
            for entry in sorted(self._entries.values(), key=lambda e: (e.key[0], e.key[1].value))
        ]
        return {"entries": entries, "count": len(entries), "in_flight": len(self._inflight)}
