import pytest
from pydantic import ValidationError

from dhl_wrapper.apis.base import ApiMode, InvalidInputError
from dhl_wrapper.apis.location_finder import (
    GetLocationById,
    GetLocationByKeywordId,
    GetLocationsByAddress,
    GetLocationsByGeo,
    LocationFinderApi,
    LocationType,
    ProviderType,
    ServiceType,
)
from dhl_wrapper.apis.shipment_tracking import GetShipmentTracking


def test_find_by_geo_production_url():
    api = LocationFinderApi("k", ApiMode.PRODUCTION)
    req = GetLocationsByGeo(53.575264, 9.954053)
    assert (
        api.build_url(req)
        == "https://api.dhl.com/location-finder/v1/find-by-geo?latitude=53.575264&longitude=9.954053"
    )
    assert api.build_headers()["DHL-API-Key"] == "k"


def test_mode_changes_only_base_url():
    req = GetLocationsByGeo(53.575264, 9.954053, radius=500)
    prod = LocationFinderApi("k", ApiMode.PRODUCTION).build_url(req)
    sandbox = LocationFinderApi("k", ApiMode.SANDBOX).build_url(req)
    assert prod.startswith("https://api.dhl.com/")
    assert sandbox.startswith("https://api-sandbox.dhl.com/")
    assert prod.replace("https://api.dhl.com", "") == sandbox.replace(
        "https://api-sandbox.dhl.com", ""
    )


def test_geo_query_keeps_exact_coordinates():
    req = GetLocationsByGeo(-33.8688, 151.2093)
    assert req.query_params() == {"latitude": "-33.8688", "longitude": "151.2093"}


def test_geo_query_never_uses_exponent_notation():
    req = GetLocationsByGeo(0.00001, -0.0000001)
    assert req.query_params() == {"latitude": "0.00001", "longitude": "-0.0000001"}
    assert GetLocationsByGeo(0.0, 90.0).query_params() == {
        "latitude": "0.0",
        "longitude": "90.0",
    }


def test_geo_filters_are_camel_cased_in_order():
    req = GetLocationsByGeo(
        53.575264,
        9.954053,
        provider_type=ProviderType.PARCEL,
        location_type="locker",
        service_type=ServiceType.PARCEL_PICK_UP,
        radius=2500,
        limit=15,
        hide_closed_locations=True,
    )
    params = req.query_params()
    assert list(params) == [
        "latitude",
        "longitude",
        "providerType",
        "locationType",
        "serviceType",
        "radius",
        "limit",
        "hideClosedLocations",
    ]
    assert params["locationType"] == "locker"
    assert params["serviceType"] == "parcel:pick-up"
    assert params["hideClosedLocations"] == "true"
    assert req.location_type is LocationType.LOCKER


def test_same_request_always_builds_same_url():
    api = LocationFinderApi("k")
    req = GetLocationsByAddress("DE", postal_code="20357", limit=5)
    assert api.build_url(req) == api.build_url(req)


def test_find_by_address_url():
    api = LocationFinderApi("k", "sandbox")
    req = GetLocationsByAddress(
        "de", address_locality="Hamburg", postal_code="20357", street_address="Schanzenstrasse"
    )
    assert req.country_code == "DE"
    assert api.build_url(req) == (
        "https://api-sandbox.dhl.com/location-finder/v1/find-by-address"
        "?countryCode=DE&addressLocality=Hamburg&postalCode=20357"
        "&streetAddress=Schanzenstrasse"
    )


def test_find_by_keyword_id_url():
    api = LocationFinderApi("k")
    req = GetLocationByKeywordId("433", "DE", "20357")
    assert api.build_url(req) == (
        "https://api.dhl.com/location-finder/v1/find-by-keyword-id"
        "?keywordId=433&countryCode=DE&postalCode=20357"
    )


def test_location_by_id_goes_into_path():
    api = LocationFinderApi("k")
    assert (
        api.build_url(GetLocationById("8003-4103681"))
        == "https://api.dhl.com/location-finder/v1/locations/8003-4103681"
    )
    assert GetLocationById("a b/c").build_path() == "/location-finder/v1/locations/a%20b%2Fc"
    assert GetLocationById("8003-4103681").query_params() == {}


@pytest.mark.parametrize(
    "lat,lon",
    [(90.5, 0.0), (-91, 0.0), (0.0, 180.01), (float("nan"), 0.0), (0.0, float("inf"))],
)
def test_geo_rejects_out_of_range_coordinates(lat, lon):
    with pytest.raises(InvalidInputError):
        GetLocationsByGeo(lat, lon)


def test_invalid_filters_raise_invalid_input():
    with pytest.raises(InvalidInputError):
        GetLocationsByGeo(53.5, 9.9, limit=51)
    with pytest.raises(InvalidInputError):
        GetLocationsByGeo(53.5, 9.9, radius=0)
    with pytest.raises(InvalidInputError):
        GetLocationsByGeo(53.5, 9.9, location_type="castle")
    with pytest.raises(InvalidInputError):
        GetLocationsByAddress("DEU")
    with pytest.raises(InvalidInputError):
        GetLocationByKeywordId("433", "DE", "   ")
    with pytest.raises(InvalidInputError):
        GetLocationsByGeo(53.5, 9.9, unknown_filter=1)


def test_invalid_input_is_a_value_error():
    with pytest.raises(ValueError):
        GetLocationById("")


def test_requests_are_immutable():
    req = GetLocationsByGeo(53.5, 9.9)
    with pytest.raises(ValidationError):
        req.latitude = 1.0


def test_client_validates_key_and_mode():
    with pytest.raises(InvalidInputError):
        LocationFinderApi("   ")
    with pytest.raises(InvalidInputError):
        LocationFinderApi("k", "staging")
    assert LocationFinderApi("k", "TEST").mode is ApiMode.SANDBOX
    assert LocationFinderApi("k", "prod").base_url == "https://api.dhl.com"


def test_client_refuses_other_api_family():
    api = LocationFinderApi("k")
    with pytest.raises(InvalidInputError):
        api.build_url(GetShipmentTracking("123"))
    with pytest.raises(InvalidInputError):
        api.send(GetShipmentTracking("123"))


def test_from_env_prefers_family_key(monkeypatch):
    monkeypatch.setenv("DHL_API_KEY", "generic")
    monkeypatch.setenv("LOCATION_FINDER_API_KEY", "specific")
    monkeypatch.setenv("DHL_SERVER", "test")
    monkeypatch.delenv("DHL_API_MODE", raising=False)
    api = LocationFinderApi.from_env()
    assert api.api_key == "specific"
    assert api.mode is ApiMode.SANDBOX
    assert LocationFinderApi.from_env(mode="production").mode is ApiMode.PRODUCTION
