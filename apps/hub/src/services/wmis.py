from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote

import httpx

from config import settings

logger = logging.getLogger("rivergauge.hub.wmis")

WEBSERVICE_PATH = "/WMIS/cgi/webservice.exe"
STATIONS_PATH = "/WMIS/data/anon/internet/stations/0"
LATEST_WINDOW_RESOURCE = "latest 12 months.json"


class FetchFailure(RuntimeError):
    """Raised when a single WMIS request does not yield a JSON document."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, marker: str = "upstream") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.marker = marker

    @property
    def reason(self) -> str:
        return str(self.status_code) if self.status_code is not None else self.marker


class TransportFailure(FetchFailure):
    """Network unreachable, connection reset or timeout."""


class UpstreamStatusFailure(FetchFailure):
    """WMIS answered with a non-success HTTP status."""


class MalformedPayload(FetchFailure):
    """WMIS answered 2xx but the body was not JSON."""


class Protocol(str, Enum):
    TRACE = "trace"
    LATEST_WINDOW = "latest_window"
    SNAPSHOT = "snapshot"


@dataclass(frozen=True, slots=True)
class EndpointSpec:
    """Everything needed to address one WMIS request."""

    protocol: Protocol
    path: str
    query: Optional[dict[str, Any]] = field(default=None)

    def url(self, base_url: str) -> str:
        url = f"{base_url.rstrip('/')}{self.path}"
        if self.query is not None:
            # The CGI endpoint takes a JSON document as the raw query string
            url += "?" + quote(json.dumps(self.query, separators=(",", ":")), safe="")
        return url


def trace_endpoint(
    site: str,
    varcode: str,
    start: date,
    end: date,
    *,
    datasource: str = "A",
) -> EndpointSpec:
    query = {
        "function": "get_ts_traces",
        "site_list": site,
        "datasource": datasource,
        "varfrom": varcode,
        "varto": varcode,
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        "data_type": "mean",
        "interval": "day",
        "multiplier": 1,
    }
    return EndpointSpec(protocol=Protocol.TRACE, path=WEBSERVICE_PATH, query=query)


def latest_window_endpoint(site: str, resource: str) -> EndpointSpec:
    path = f"{STATIONS_PATH}/{quote(site)}/{quote(resource)}/{quote(LATEST_WINDOW_RESOURCE)}"
    return EndpointSpec(protocol=Protocol.LATEST_WINDOW, path=path)


def snapshot_endpoint(site: str) -> EndpointSpec:
    return EndpointSpec(protocol=Protocol.SNAPSHOT, path=f"{STATIONS_PATH}/{quote(site)}/latest.json")


class WmisClient:
    """Issues exactly one GET per call against WMIS; never retries."""

    def __init__(self, base_url: Optional[str] = None) -> None:
        self._base_url = base_url
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url or settings.wmis_base_url

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "User-Agent": settings.wmis_user_agent,
                "Accept": "application/json",
            }
            self._client = httpx.AsyncClient(headers=headers, timeout=settings.wmis_request_timeout)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_raw(self, spec: EndpointSpec) -> Any:
        client = await self._get_client()
        url = spec.url(self.base_url)
        logger.debug("Fetching %s payload from %s", spec.protocol.value, url)
        try:
            response = await client.get(url)
        except httpx.TimeoutException as exc:
            raise TransportFailure(f"WMIS request timed out: {exc}", marker="timeout") from exc
        except httpx.RequestError as exc:
            raise TransportFailure(f"WMIS request failed: {exc}", marker="transport") from exc

        if not response.is_success:
            raise UpstreamStatusFailure(
                f"WMIS returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedPayload(
                f"WMIS returned a non-JSON body: {exc}",
                marker="malformed",
            ) from exc
