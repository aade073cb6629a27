"""Typed client for DHL REST APIs (Location Finder, Shipment Tracking)."""

__version__ = "0.3.0"

from .apis import REGISTRY, get_api_names
from .apis.base import (
    ApiBase,
    ApiMode,
    ApiRequest,
    DeserializationError,
    DhlApiError,
    InvalidInputError,
    MissingCredentialsError,
    NetworkError,
    UpstreamError,
)
from .apis.location_finder import (
    GetLocationById,
    GetLocationByKeywordId,
    GetLocationsByAddress,
    GetLocationsByGeo,
    Location,
    LocationFinderApi,
    LocationsResponse,
)
from .apis.shipment_tracking import (
    GetShipmentTracking,
    Shipment,
    ShipmentTrackingApi,
    ShipmentTrackingResponse,
)

__all__ = [
    "__version__",
    "REGISTRY",
    "get_api_names",
    "ApiBase",
    "ApiMode",
    "ApiRequest",
    "DeserializationError",
    "DhlApiError",
    "InvalidInputError",
    "MissingCredentialsError",
    "NetworkError",
    "UpstreamError",
    "GetLocationById",
    "GetLocationByKeywordId",
    "GetLocationsByAddress",
    "GetLocationsByGeo",
    "Location",
    "LocationFinderApi",
    "LocationsResponse",
    "GetShipmentTracking",
    "Shipment",
    "ShipmentTrackingApi",
    "ShipmentTrackingResponse",
]
