from __future__ import annotations

import json
from datetime import date
from urllib.parse import unquote

import httpx
import pytest
from httpx import Response

from services.wmis import (
    MalformedPayload,
    Protocol,
    TransportFailure,
    UpstreamStatusFailure,
    WmisClient,
    latest_window_endpoint,
    snapshot_endpoint,
    trace_endpoint,
)

BASE_URL = "https://data.water.vic.gov.au"
STATIONS_PREFIX = "/WMIS/data/anon/internet/stations/0/"


@pytest.fixture
async def wmis_client():
    client = WmisClient(base_url=BASE_URL)
    yield client
    await client.close()


def test_trace_endpoint_encodes_json_query() -> None:
    spec = trace_endpoint("415247", "62", date(2024, 3, 10), date(2024, 6, 10))
    assert spec.protocol is Protocol.TRACE
    url = httpx.URL(spec.url(BASE_URL))
    assert url.path == "/WMIS/cgi/webservice.exe"
    assert json.loads(unquote(url.query.decode())) == {
        "function": "get_ts_traces",
        "site_list": "415247",
        "datasource": "A",
        "varfrom": "62",
        "varto": "62",
        "start_time": "2024-03-10",
        "end_time": "2024-06-10",
        "data_type": "mean",
        "interval": "day",
        "multiplier": 1,
    }


def test_latest_window_endpoint_encodes_space() -> None:
    spec = latest_window_endpoint("415247", "streamwaterlevel")
    assert spec.url(BASE_URL + "/") == (
        f"{BASE_URL}{STATIONS_PREFIX}415247/streamwaterlevel/latest%2012%20months.json"
    )


def test_snapshot_endpoint_url() -> None:
    assert snapshot_endpoint("415247").url(BASE_URL) == f"{BASE_URL}{STATIONS_PREFIX}415247/latest.json"


@pytest.mark.anyio
async def test_fetch_raw_returns_json(respx_mock, wmis_client: WmisClient) -> None:
    route = respx_mock.get(host="data.water.vic.gov.au", path__startswith=f"{STATIONS_PREFIX}415247/streamflow/").mock(
        return_value=Response(200, json={"data": [["2024-06-05", "7.8"]]})
    )

    payload = await wmis_client.fetch_raw(latest_window_endpoint("415247", "streamflow"))

    assert payload == {"data": [["2024-06-05", "7.8"]]}
    assert route.call_count == 1
    request = route.calls.last.request
    assert request.headers["Accept"] == "application/json"
    assert str(request.url).endswith("/415247/streamflow/latest%2012%20months.json")


@pytest.mark.anyio
async def test_fetch_raw_raises_status_failure(respx_mock, wmis_client: WmisClient) -> None:
    route = respx_mock.get(host="data.water.vic.gov.au").mock(return_value=Response(503))

    with pytest.raises(UpstreamStatusFailure) as excinfo:
        await wmis_client.fetch_raw(snapshot_endpoint("415247"))

    assert excinfo.value.status_code == 503
    assert excinfo.value.reason == "503"
    assert route.call_count == 1


@pytest.mark.anyio
@pytest.mark.parametrize(
    "error, marker",
    [(httpx.ConnectError("unreachable"), "transport"), (httpx.ReadTimeout("slow"), "timeout")],
)
async def test_fetch_raw_raises_transport_failure(respx_mock, wmis_client: WmisClient, error, marker) -> None:
    route = respx_mock.get(host="data.water.vic.gov.au").mock(side_effect=error)

    with pytest.raises(TransportFailure) as excinfo:
        await wmis_client.fetch_raw(snapshot_endpoint("415247"))

    assert excinfo.value.status_code is None
    assert excinfo.value.marker == marker
    assert route.call_count == 1


@pytest.mark.anyio
async def test_fetch_raw_rejects_non_json(respx_mock, wmis_client: WmisClient) -> None:
    respx_mock.get(host="data.water.vic.gov.au").mock(return_value=Response(200, text="<html>maintenance</html>"))

    with pytest.raises(MalformedPayload) as excinfo:
        await wmis_client.fetch_raw(snapshot_endpoint("415247"))

    assert excinfo.value.marker == "malformed"
