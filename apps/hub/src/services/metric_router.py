from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

from config import settings
from services.gauge_models import MetricKind, MetricPayload, station_number
from services.normalize import (
    filter_recent,
    months_before,
    normalize_snapshot,
    normalize_trace,
    normalize_tuples,
)
from services.wmis import (
    EndpointSpec,
    FetchFailure,
    WmisClient,
    latest_window_endpoint,
    snapshot_endpoint,
    trace_endpoint,
)

logger = logging.getLogger("rivergauge.hub.gauges.router")


@dataclass(frozen=True, slots=True)
class MetricRoute:
    """How one metric is fetched, normalized and windowed."""

    kind: MetricKind
    endpoint: Callable[[str, datetime], EndpointSpec]
    normalize: Callable[[Any], Sequence[Any]]
    recency_filtered: bool = False


def _latest_window(resource: str) -> Callable[[str, datetime], EndpointSpec]:
    def _build(site: str, now: datetime) -> EndpointSpec:
        return latest_window_endpoint(site, resource)

    return _build


def _trace(varcode_setting: str) -> Callable[[str, datetime], EndpointSpec]:
    def _build(site: str, now: datetime) -> EndpointSpec:
        start = months_before(now, settings.recency_window_months)
        return trace_endpoint(
            site,
            getattr(settings, varcode_setting),
            start.date(),
            now.date(),
            datasource=settings.wmis_datasource,
        )

    return _build


def _snapshot(site: str, now: datetime) -> EndpointSpec:
    return snapshot_endpoint(site)


ROUTES: Mapping[MetricKind, MetricRoute] = {
    MetricKind.FLOW: MetricRoute(
        MetricKind.FLOW, _latest_window("streamflow"), normalize_tuples, recency_filtered=True
    ),
    MetricKind.WATER_LEVEL: MetricRoute(
        MetricKind.WATER_LEVEL, _latest_window("streamwaterlevel"), normalize_tuples, recency_filtered=True
    ),
    MetricKind.CONDUCTIVITY: MetricRoute(
        MetricKind.CONDUCTIVITY, _trace("wmis_conductivity_varcode"), normalize_trace
    ),
    MetricKind.DISSOLVED_OXYGEN: MetricRoute(
        MetricKind.DISSOLVED_OXYGEN, _trace("wmis_dissolved_oxygen_varcode"), normalize_trace
    ),
    MetricKind.LATEST_SNAPSHOT: MetricRoute(MetricKind.LATEST_SNAPSHOT, _snapshot, normalize_snapshot),
}


class MetricRouter:
    def __init__(self, client: WmisClient, routes: Mapping[MetricKind, MetricRoute] = ROUTES) -> None:
        self._client = client
        self._routes = routes

    async def get_metric(
        self,
        station_id: str,
        metric: MetricKind,
        *,
        now: Optional[datetime] = None,
    ) -> MetricPayload:
        """Fetch one metric for one station.

        ``now`` anchors both the requested date range and the recency cutoff; it
        is read from the clock once when omitted. Upstream failures are logged
        and produce an empty result.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        route = self._routes[metric]
        site = station_number(station_id)
        if not site:
            logger.warning("Station id %r has no numeric component; returning no %s data", station_id, metric.value)
            return ()

        spec = route.endpoint(site, now)
        try:
            raw = await self._client.fetch_raw(spec)
        except FetchFailure as exc:
            logger.warning(
                "WMIS %s fetch failed for station %s (%s): %s",
                metric.value,
                site,
                exc.reason,
                exc,
            )
            return ()

        try:
            records = route.normalize(raw)
            if route.recency_filtered:
                records = filter_recent(records, now=now, window_months=settings.recency_window_months)
        except Exception:  # noqa: BLE001 - a bad payload must only empty this metric
            logger.warning("Unusable WMIS %s payload for station %s", metric.value, site, exc_info=True)
            return ()
        return tuple(records)
