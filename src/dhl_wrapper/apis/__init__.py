"""API registry for dhl_wrapper.

Expose a simple mapping from API family name to its client class, so the CLI
and other callers can look families up in one place.
"""
from __future__ import annotations

from typing import Type

from .base import ApiBase
from .location_finder import LocationFinderApi
from .shipment_tracking import ShipmentTrackingApi

REGISTRY: dict[str, Type[ApiBase]] = {
    LocationFinderApi.api_name: LocationFinderApi,
    ShipmentTrackingApi.api_name: ShipmentTrackingApi,
}


def get_api_names() -> list[str]:
    return sorted(REGISTRY.keys())
