import typing

import httpx
import pytest
from pydantic import BaseModel

from dhl_wrapper.apis.base import (
    ApiBase,
    DeserializationError,
    DhlApiError,
    NetworkError,
    UpstreamError,
)
from dhl_wrapper.apis.location_finder import (
    GetLocationById,
    GetLocationsByGeo,
    LocationFinderApi,
    LocationsResponse,
)
from dhl_wrapper.apis.shipment_tracking import (
    GetShipmentTracking,
    ShipmentTrackingApi,
    ShipmentTrackingResponse,
)

LOCATIONS_JSON = {
    "locations": [
        {
            "url": "/locations/8003-4103681",
            "location": {
                "ids": [{"locationId": "8003-4103681", "provider": "parcel"}],
                "keyword": "Packstation",
                "keywordId": "133",
                "type": "locker",
            },
            "name": "Packstation 133",
            "distance": 372,
            "place": {
                "address": {"countryCode": "DE", "postalCode": "20357", "addressLocality": "Hamburg"},
                "geo": {"latitude": 53.5626, "longitude": 9.96495},
            },
            "openingHours": [],
            "closurePeriods": [],
            "serviceTypes": ["parcel:pick-up"],
        }
    ]
}


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc(f"boom: {request.url.host}", request=request)
        return self.response


def sync_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_send_success_builds_url_and_header():
    rec = Recorder(httpx.Response(200, json=LOCATIONS_JSON))
    api = LocationFinderApi("k")
    with sync_client(rec) as client:
        res = api.send(GetLocationsByGeo(53.575264, 9.954053), client=client)

    assert isinstance(res, LocationsResponse)
    assert res.locations[0].name == "Packstation 133"
    assert res.locations[0].place.geo.longitude == 9.96495

    assert len(rec.requests) == 1
    sent = rec.requests[0]
    assert sent.method == "GET"
    assert (
        str(sent.url)
        == "https://api.dhl.com/location-finder/v1/find-by-geo?latitude=53.575264&longitude=9.954053"
    )
    assert sent.headers["DHL-API-Key"] == "k"
    assert sent.headers["Accept"] == "application/json"


def test_send_single_location_by_id():
    rec = Recorder(httpx.Response(200, json=LOCATIONS_JSON["locations"][0]))
    with sync_client(rec) as client:
        loc = LocationFinderApi("k", "sandbox").send(GetLocationById("8003-4103681"), client=client)
    assert loc.location_id == "8003-4103681"
    assert rec.requests[0].url.path == "/location-finder/v1/locations/8003-4103681"
    assert rec.requests[0].url.host == "api-sandbox.dhl.com"


def test_401_raises_upstream_error_with_problem_details():
    problem = {"status": 401, "title": "Unauthorized", "detail": "Invalid API key"}
    rec = Recorder(httpx.Response(401, json=problem))
    with sync_client(rec) as client:
        with pytest.raises(UpstreamError) as ei:
            LocationFinderApi("bad").send(GetLocationsByGeo(53.5, 9.9), client=client)
    err = ei.value
    assert err.status == 401
    assert err.title == "Unauthorized"
    assert err.detail == "Invalid API key"
    assert "Invalid API key" in err.body
    assert err.url.startswith("https://api.dhl.com/location-finder/v1/find-by-geo")
    assert "401" in str(err)


def test_non_json_error_body_is_kept():
    rec = Recorder(httpx.Response(404, text="Not Found"))
    with sync_client(rec) as client:
        with pytest.raises(UpstreamError) as ei:
            ShipmentTrackingApi("k").send(GetShipmentTracking("123"), client=client)
    assert ei.value.status == 404
    assert ei.value.body == "Not Found"
    assert ei.value.title is None


def test_problem_json_sent_as_plain_text_is_parsed():
    body = '{"status": 400, "title": "Bad Request", "detail": "Invalid trackingNumber"}'
    rec = Recorder(httpx.Response(400, text=body))
    assert rec.response.headers["Content-Type"].startswith("text/plain")
    with sync_client(rec) as client:
        with pytest.raises(UpstreamError) as ei:
            ShipmentTrackingApi("k").send(GetShipmentTracking("123"), client=client)
    assert ei.value.status == 400
    assert ei.value.title == "Bad Request"
    assert ei.value.detail == "Invalid trackingNumber"
    assert ei.value.body == body


def test_server_error_is_not_retried():
    rec = Recorder(httpx.Response(503, text="busy"))
    with sync_client(rec) as client:
        with pytest.raises(UpstreamError):
            ShipmentTrackingApi("k").send(GetShipmentTracking("123"), client=client)
    assert len(rec.requests) == 1


def test_malformed_json_raises_deserialization_error():
    rec = Recorder(
        httpx.Response(200, content=b"{not json", headers={"Content-Type": "application/json"})
    )
    with sync_client(rec) as client:
        with pytest.raises(DeserializationError):
            LocationFinderApi("k").send(GetLocationsByGeo(53.5, 9.9), client=client)


def test_schema_mismatch_raises_deserialization_error():
    rec = Recorder(httpx.Response(200, json={"locations": [{"url": "/x"}]}))
    with sync_client(rec) as client:
        with pytest.raises(DeserializationError):
            LocationFinderApi("k").send(GetLocationsByGeo(53.5, 9.9), client=client)


def test_transport_failure_raises_network_error_and_client_stays_usable():
    api = ShipmentTrackingApi("k")
    failing = Recorder(exc=httpx.ConnectError)
    with sync_client(failing) as client:
        with pytest.raises(NetworkError) as ei:
            api.send(GetShipmentTracking("123"), client=client)
    assert isinstance(ei.value.__cause__, httpx.ConnectError)
    assert isinstance(ei.value, DhlApiError)

    ok = Recorder(httpx.Response(200, json={"shipments": [{"id": "123"}]}))
    with sync_client(ok) as client:
        res = api.send(GetShipmentTracking("123"), client=client)
    assert isinstance(res, ShipmentTrackingResponse)
    assert res.primary_shipment.id == "123"


def test_timeout_is_a_network_error():
    rec = Recorder(exc=httpx.ReadTimeout)
    with sync_client(rec) as client:
        with pytest.raises(NetworkError):
            LocationFinderApi("k").send(GetLocationsByGeo(53.5, 9.9), client=client)


def test_send_without_client_uses_configured_timeout(monkeypatch):
    rec = Recorder(httpx.Response(200, json={"locations": []}))
    timeouts = []
    original_init = httpx.Client.__init__

    def init(self, *args, **kwargs):
        timeouts.append(kwargs.get("timeout"))
        kwargs["transport"] = httpx.MockTransport(rec)
        original_init(self, *args, **kwargs)

    monkeypatch.setattr(httpx.Client, "__init__", init)
    res = LocationFinderApi("k", timeout=3).send(GetLocationsByGeo(1.0, 2.0))
    assert isinstance(res, LocationsResponse)
    assert not res.has_locations
    assert timeouts == [3.0]
    assert len(rec.requests) == 1
    assert rec.requests[0].method == "GET"


def test_send_is_annotated_with_response_model_base():
    for method in (ApiBase.send, ApiBase.send_async):
        assert typing.get_type_hints(method)["return"] is BaseModel
    req = GetLocationById("8003-4103681")
    assert issubclass(req.response_model, BaseModel)


@pytest.mark.asyncio
async def test_send_async_without_client_uses_configured_timeout(monkeypatch):
    rec = Recorder(httpx.Response(200, json={"shipments": []}))
    timeouts = []
    original_init = httpx.AsyncClient.__init__

    def init(self, *args, **kwargs):
        timeouts.append(kwargs.get("timeout"))
        kwargs["transport"] = httpx.MockTransport(rec)
        original_init(self, *args, **kwargs)

    monkeypatch.setattr(httpx.AsyncClient, "__init__", init)
    api = ShipmentTrackingApi("k", "sandbox", timeout=7.5)
    res = await api.send_async(GetShipmentTracking("123"))
    assert isinstance(res, ShipmentTrackingResponse)
    assert not res.has_shipments
    assert timeouts == [7.5]
    assert len(rec.requests) == 1
    assert rec.requests[0].method == "GET"
    assert rec.requests[0].url.host == "api-test.dhl.com"


@pytest.mark.asyncio
async def test_send_async_success():
    rec = Recorder(httpx.Response(200, json={"shipments": [{"id": "00340434161094042557"}]}))
    api = ShipmentTrackingApi("k", "sandbox")
    async with httpx.AsyncClient(transport=httpx.MockTransport(rec)) as client:
        res = await api.send_async(
            GetShipmentTracking("00340434161094042557", language="en"), client=client
        )
    assert res.primary_shipment.id == "00340434161094042557"
    sent = rec.requests[0]
    assert (
        str(sent.url)
        == "https://api-test.dhl.com/track/shipments?trackingNumber=00340434161094042557&language=en"
    )
    assert sent.headers["DHL-API-Key"] == "k"


@pytest.mark.asyncio
async def test_send_async_maps_errors():
    api = LocationFinderApi("k")
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(Recorder(httpx.Response(401, json={"title": "Unauthorized"})))
    ) as client:
        with pytest.raises(UpstreamError) as ei:
            await api.send_async(GetLocationsByGeo(53.5, 9.9), client=client)
    assert ei.value.status == 401

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(Recorder(exc=httpx.ConnectError))
    ) as client:
        with pytest.raises(NetworkError):
            await api.send_async(GetLocationsByGeo(53.5, 9.9), client=client)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(Recorder(httpx.Response(200, text="<html>")))
    ) as client:
        with pytest.raises(DeserializationError):
            await api.send_async(GetLocationsByGeo(53.5, 9.9), client=client)
