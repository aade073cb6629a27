"""DHL Shipment Tracking (Unified) API.

One endpoint tracks shipments across all DHL divisions. Authentication is the
DHL-API-Key header; sandbox and production keys are different.

API Documentation: https://developer.dhl.com/api-reference/shipment-tracking
OpenAPI Spec Version: 1.5.6
"""

from enum import Enum
from typing import Any, List, Optional, Tuple
from urllib.parse import quote

from pydantic import Field

from ..models import (
    Address,
    CountryCode,
    DhlModel,
    LanguageCode,
    NonEmptyStr,
    Timestamp,
)
from ..utils import lang2, to_utc
from .base import ApiBase, ApiMode, ApiRequest

# Test server for development/testing (requires test API key)
SANDBOX_BASE = "https://api-test.dhl.com"
# Production server for live tracking (requires production API key)
PROD_BASE = "https://api-eu.dhl.com"

TRACK_PATH = "/track/shipments"


class Division(str, Enum):
    """DHL business units a tracking number can belong to.

    - express: DHL Express (time-definite international)
    - freight: DHL Freight (road freight)
    - parcel-de/nl/pl/uk: DHL Parcel regional services
    - ecommerce*: DHL eCommerce
    - dgf: DHL Global Forwarding
    - post-de: Deutsche Post (German postal service)
    """

    DGF = "dgf"
    DSC = "dsc"
    ECOMMERCE = "ecommerce"
    ECOMMERCE_APAC = "ecommerce-apac"
    ECOMMERCE_EUROPE = "ecommerce-europe"
    ECOMMERCE_PPL = "ecommerce-ppl"
    ECOMMERCE_IBERIA = "ecommerce-iberia"
    EXPRESS = "express"
    FREIGHT = "freight"
    PARCEL_DE = "parcel-de"
    PARCEL_NL = "parcel-nl"
    PARCEL_PL = "parcel-pl"
    PARCEL_UK = "parcel-uk"
    POST_DE = "post-de"
    POST_INTERNATIONAL = "post-international"
    SAMEDAY = "sameday"
    SVB = "svb"


class StatusCode(str, Enum):
    """The five UTAPI status codes.

    - pre-transit: Label created, awaiting pickup
    - transit: In transit between facilities
    - delivered: Successfully delivered to recipient
    - failure: Delivery failed or exception occurred
    - unknown: Status cannot be determined
    """

    PRE_TRANSIT = "pre-transit"
    TRANSIT = "transit"
    DELIVERED = "delivered"
    FAILURE = "failure"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "StatusCode":
        if isinstance(value, str):
            v = value.strip().lower()
            for member in cls:
                if member.value == v:
                    return member
        return cls.UNKNOWN


class ReferenceType(str, Enum):
    CUSTOMER_REFERENCE = "customer-reference"
    CUSTOMER_CONFIRMATION_NUMBER = "customer-confirmation-number"
    LOCAL_TRACKING_NUMBER = "local-tracking-number"
    ECOMMERCE_NUMBER = "ecommerce-number"
    HOUSEBILL = "housebill"
    MASTERBILL = "masterbill"
    CONTAINER_NUMBER = "container-number"
    SHIPMENT_ID = "shipment-id"
    DOMESTIC_CONSIGNMENT_ID = "domestic-consignment-id"
    REFERENCE = "reference"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "ReferenceType":
        return cls.UNKNOWN


def tracking_page_url(tracking_number: str, *, language: str = "en") -> str:
    """Return the human-facing DHL tracking page for a shipment.

    Global tracker pattern:
    https://www.dhl.com/track?tracking-id={id}&language={lang2}
    """
    return (
        f"https://www.dhl.com/track?tracking-id={quote(tracking_number)}"
        f"&language={lang2(language)}"
    )


# --- Response models ---


class SimpleServicePoint(DhlModel):
    """DHL service point on a shipment's route."""

    url: Optional[str] = None
    label: Optional[str] = None


class ShipmentPathPoint(DhlModel):
    """A stop on a shipment's route: origin, destination or event location."""

    address: Address = Field(default_factory=Address)
    service_point: Optional[SimpleServicePoint] = None

    def display_label(self) -> Optional[str]:
        """Prefer "locality, country"; fall back to the service point label."""
        locality = self.address.address_locality
        country = self.address.country_code
        if locality and country:
            return f"{locality}, {country}"
        if locality:
            return locality
        if self.service_point and self.service_point.label:
            return self.service_point.label
        return country


class ShipmentEvent(DhlModel):
    """Significant point in time during shipment processing."""

    timestamp: Timestamp
    location: Optional[ShipmentPathPoint] = None
    status_code: Optional[StatusCode] = None
    status: Optional[str] = Field(None, description="Short title, sometimes a code")
    status_detailed: Optional[str] = None
    description: Optional[str] = None
    piece_ids: Optional[List[str]] = None
    remark: Optional[str] = None
    next_steps: Optional[str] = None

    def display_text(self) -> Tuple[str, Optional[str]]:
        """Choose a human-friendly status line and details.

        DHL sometimes returns cryptic 2-3 letter codes (ZN, PO, EE) as status;
        then the description is the better headline. Remaining fields are
        folded into details.
        """
        status_text = (self.status or "").strip()
        desc = (self.description or self.status_detailed or "").strip()
        next_steps = (self.next_steps or "").strip()
        remark = (self.remark or "").strip()

        if _looks_like_short_code(status_text) and desc:
            status_out = desc
        else:
            status_out = status_text or desc

        details_parts: List[str] = []
        if desc and status_out != desc:
            details_parts.append(desc)
        if next_steps:
            details_parts.append(f"Next: {next_steps}")
        if remark:
            details_parts.append(f"Remark: {remark}")

        return status_out, (" | ".join(details_parts) if details_parts else None)


def _looks_like_short_code(s: str) -> bool:
    return bool(s) and len(s) <= 3 and s.isupper()


class ShipmentStatus(ShipmentEvent):
    """Current status of a shipment (same shape as an event)."""

    timestamp: Optional[Timestamp] = None


class EstimatedDeliveryTimeFrame(DhlModel):
    estimated_from: Optional[Timestamp] = None
    estimated_through: Optional[Timestamp] = None


class ShipmentParty(DhlModel):
    """Identification data for a sender, receiver, carrier or signer."""

    type: Optional[str] = Field(None, alias="@type")
    organization_name: Optional[str] = None
    family_name: Optional[str] = None
    given_name: Optional[str] = None
    name: Optional[str] = None


class ShipmentProduct(DhlModel):
    product_name: Optional[str] = None


class ProofOfDelivery(DhlModel):
    timestamp: Optional[Timestamp] = None
    signature_url: Optional[str] = None
    document_url: Optional[str] = None
    signed: Optional[ShipmentParty] = None


class QuantityWithUnit(DhlModel):
    """Float value with a unit, e.g. weight in kg."""

    value: float
    unit_text: Optional[str] = None


class Dimensions(DhlModel):
    width: Optional[QuantityWithUnit] = None
    height: Optional[QuantityWithUnit] = None
    length: Optional[QuantityWithUnit] = None


class Reference(DhlModel):
    number: str
    type: Optional[str] = Field(None, description="Reference kind as sent by DHL")

    @property
    def kind(self) -> ReferenceType:
        return ReferenceType(self.type) if self.type else ReferenceType.UNKNOWN


class DgfLocation(DhlModel):
    location_name: Optional[str] = Field(None, alias="dgf:locationName")
    location_code: Optional[str] = Field(None, alias="dgf:locationCode")
    country_code: Optional[str] = None


class DgfRoute(DhlModel):
    """DHL Global Forwarding leg (vessel or flight)."""

    vessel_name: Optional[str] = Field(None, alias="dgf:vesselName")
    voyage_flight_number: Optional[str] = Field(None, alias="dgf:voyageFlightNumber")
    airport_of_departure: Optional[DgfLocation] = Field(
        None, alias="dgf:airportOfDeparture"
    )
    airport_of_destination: Optional[DgfLocation] = Field(
        None, alias="dgf:airportOfDestination"
    )
    estimated_departure_date: Optional[Timestamp] = Field(
        None, alias="dgf:estimatedDepartureDate"
    )
    estimated_arrival_date: Optional[Timestamp] = Field(
        None, alias="dgf:estimatedArrivalDate"
    )
    place_of_acceptance: Optional[DgfLocation] = Field(
        None, alias="dgf:placeOfAcceptance"
    )
    port_of_loading: Optional[DgfLocation] = Field(None, alias="dgf:portOfLoading")
    port_of_unloading: Optional[DgfLocation] = Field(None, alias="dgf:portOfUnloading")
    place_of_delivery: Optional[DgfLocation] = Field(None, alias="dgf:placeOfDelivery")


class ShipmentDetails(DhlModel):
    carrier: Optional[ShipmentParty] = None
    receiver: Optional[ShipmentParty] = None
    sender: Optional[ShipmentParty] = None
    product: Optional[ShipmentProduct] = None
    proof_of_delivery_signed_available: Optional[bool] = None
    proof_of_delivery: Optional[ProofOfDelivery] = None
    total_number_of_pieces: Optional[int] = None
    piece_ids: List[str] = Field(default_factory=list)
    weight: Optional[QuantityWithUnit] = None
    volume: Optional[QuantityWithUnit] = None
    loading_meters: Optional[float] = None
    dimensions: Optional[Dimensions] = None
    references: List[Reference] = Field(default_factory=list)
    dgf_routes: List[DgfRoute] = Field(default_factory=list, alias="dgf:routes")


class Shipment(DhlModel):
    """A shipment with its tracking information like status or ETA."""

    id: str
    service: Optional[str] = Field(None, description="Division value, e.g. express")
    origin: Optional[ShipmentPathPoint] = None
    destination: Optional[ShipmentPathPoint] = None
    status: Optional[ShipmentStatus] = None
    estimated_time_of_delivery: Optional[Timestamp] = None
    estimated_delivery_time_frame: Optional[EstimatedDeliveryTimeFrame] = None
    estimated_time_of_delivery_remark: Optional[str] = None
    service_url: Optional[str] = None
    reroute_url: Optional[str] = None
    details: ShipmentDetails = Field(default_factory=ShipmentDetails)
    events: List[ShipmentEvent] = Field(default_factory=list)

    def sorted_events(self) -> List[ShipmentEvent]:
        """Events in ascending time order (DHL sends newest first)."""
        return sorted(self.events, key=lambda e: to_utc(e.timestamp))

    @property
    def status_code(self) -> StatusCode:
        """Shipment-level statusCode, else the latest event's, else unknown."""
        if self.status is not None and self.status.status_code is not None:
            if self.status.status_code != StatusCode.UNKNOWN:
                return self.status.status_code
        for ev in reversed(self.sorted_events()):
            if ev.status_code is not None and ev.status_code != StatusCode.UNKNOWN:
                return ev.status_code
        return StatusCode.UNKNOWN


class ShipmentTrackingResponse(DhlModel):
    """Result page of a tracking query.

    The *_url fields are pagination links; possibleAdditionalShipmentsUrl lists
    queries for other divisions that may know the same tracking number.
    """

    url: Optional[str] = None
    prev_url: Optional[str] = None
    next_url: Optional[str] = None
    first_url: Optional[str] = None
    last_url: Optional[str] = None
    shipments: List[Shipment] = Field(default_factory=list)
    possible_additional_shipments_url: List[str] = Field(default_factory=list)

    @property
    def has_shipments(self) -> bool:
        return len(self.shipments) > 0

    @property
    def primary_shipment(self) -> Optional[Shipment]:
        return self.shipments[0] if self.shipments else None


# --- Requests ---


class ShipmentTrackingRequest(ApiRequest):
    """Any request the ShipmentTrackingApi can send."""


class GetShipmentTracking(ShipmentTrackingRequest):
    """Track one shipment.

    Parameter behavior:
    - tracking_number: Required, the shipment tracking number
    - service: Optional hint for the DHL division (express, parcel-de, ...)
    - requester_country_code: ISO 3166-1 alpha-2 country of the API consumer
    - origin_country_code: ISO 3166-1 alpha-2 shipment origin country
    - recipient_postal_code: Postal code for additional qualification;
      parcel-nl and parcel-de only return full data with it
    - language: ISO 639-1 code for event descriptions (DHL default: en)
    - offset, limit: Pagination (DHL default limit: 5)
    """

    path = TRACK_PATH
    response_model = ShipmentTrackingResponse

    tracking_number: NonEmptyStr
    service: Optional[Division] = None
    requester_country_code: Optional[CountryCode] = None
    origin_country_code: Optional[CountryCode] = None
    recipient_postal_code: Optional[NonEmptyStr] = None
    language: Optional[LanguageCode] = None
    offset: Optional[int] = Field(None, ge=0)
    limit: Optional[int] = Field(None, ge=1)

    def __init__(self, tracking_number: str, **data: Any) -> None:
        super().__init__(tracking_number=tracking_number, **data)


class ShipmentTrackingApi(ApiBase):
    """Client for the Shipment Tracking (Unified) API.

    Example:
        api = ShipmentTrackingApi(api_key)
        res = api.send(GetShipmentTracking("00340434161094042557"))
        shipment = res.primary_shipment
    """

    api_name = "shipment-tracking"
    base_urls = {
        ApiMode.SANDBOX: SANDBOX_BASE,
        ApiMode.PRODUCTION: PROD_BASE,
    }
    request_type = ShipmentTrackingRequest
    api_key_env = ("SHIPMENT_TRACKING_API_KEY", "DHL_API_KEY")
