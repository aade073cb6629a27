"""DHL Location Finder (Unified) API.

Finds DHL service points (parcel shops, lockers, post offices, Postbank
branches and Express drop-off points) by address, by geo-coordinates or by
keyword id, and looks single locations up by id.

API Documentation: https://developer.dhl.com/api-reference/location-finder
"""

from datetime import time
from enum import Enum
from typing import Annotated, Any, List, Optional

from pydantic import Field

from ..models import Address, CountryCode, DhlModel, NonEmptyStr
from .base import ApiBase, ApiMode, ApiRequest

SANDBOX_BASE = "https://api-sandbox.dhl.com"
PROD_BASE = "https://api.dhl.com"

PATH_PREFIX = "/location-finder/v1"


class ProviderType(str, Enum):
    """DHL business unit operating the location."""

    PARCEL = "parcel"
    EXPRESS = "express"


class LocationType(str, Enum):
    SERVICEPOINT = "servicepoint"
    LOCKER = "locker"
    POSTOFFICE = "postoffice"
    POSTBANK = "postbank"


class ServiceType(str, Enum):
    """Services a location can offer; usable as a search filter."""

    PARCEL_PICK_UP = "parcel:pick-up"
    PARCEL_DROP_OFF = "parcel:drop-off"
    EXPRESS_PICK_UP = "express:pick-up"
    EXPRESS_DROP_OFF = "express:drop-off"
    EXPRESS_DROP_OFF_ACCOUNT = "express:drop-off-account"
    EXPRESS_DROP_OFF_EASY = "express:drop-off-easy"
    EXPRESS_DROP_OFF_PRELABELED = "express:drop-off-prelabeled"
    PARCEL_PICK_UP_REGISTERED = "parcel:pick-up-registered"
    PARCEL_PICK_UP_UNREGISTERED = "parcel:pick-up-unregistered"
    PARCEL_DROP_OFF_UNREGISTERED = "parcel:drop-off-unregistered"
    LETTER_SERVICE = "letter-service"
    POSTBANK = "postbank"
    CASH_ON_DELIVERY = "cash-on-delivery"
    FRANKING = "franking"
    CASH_SERVICE = "cash-service"
    PACKAGING_MATERIAL = "packaging-material"
    POSTIDENT = "postident"
    AGE_VERIFICATION = "age-verification"
    HANDICAPPED_ACCESS = "handicapped-access"
    PARKING = "parking"


SCHEMA_ORG = "http://schema.org/"


class Weekday(str, Enum):
    """Day of week as DHL sends it (schema.org URIs)."""

    MONDAY = SCHEMA_ORG + "Monday"
    TUESDAY = SCHEMA_ORG + "Tuesday"
    WEDNESDAY = SCHEMA_ORG + "Wednesday"
    THURSDAY = SCHEMA_ORG + "Thursday"
    FRIDAY = SCHEMA_ORG + "Friday"
    SATURDAY = SCHEMA_ORG + "Saturday"
    SUNDAY = SCHEMA_ORG + "Sunday"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Weekday"]:
        # Also accept bare names ("Monday", "mon")
        if isinstance(value, str):
            name = value.rsplit("/", 1)[-1].strip().lower()
            for member in cls:
                day = member.value[len(SCHEMA_ORG):].lower()
                if name and (name == day or name == day[:3]):
                    return member
        return None

    @property
    def short_name(self) -> str:
        return self.value[len(SCHEMA_ORG):][:3]


class Capacity(str, Enum):
    """Typical load of a location on a given weekday."""

    VERY_LOW = "very-low"
    LOW = "low"
    HIGH = "high"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "Capacity":
        return cls.UNKNOWN


# --- Response models ---


class LocationId(DhlModel):
    location_id: str
    provider: Optional[str] = None


class LocationInfo(DhlModel):
    """Identification of a service point across DHL provider systems."""

    ids: List[LocationId] = Field(default_factory=list)
    keyword: Optional[str] = None
    keyword_id: Optional[str] = None
    type: Optional[str] = Field(None, description="servicepoint, locker, ...")
    lean_locker: Optional[bool] = None


class GeoCoordinates(DhlModel):
    latitude: float
    longitude: float


class Place(DhlModel):
    address: Address = Field(default_factory=Address)
    geo: Optional[GeoCoordinates] = None


class OpeningHours(DhlModel):
    opens: time
    closes: time
    day_of_week: Weekday


class ClosurePeriod(DhlModel):
    type: Optional[str] = None
    from_date: Optional[str] = None
    to_date: Optional[str] = None


class WeekdayCapacity(DhlModel):
    day_of_week: Weekday
    capacity: Capacity = Capacity.UNKNOWN


class Location(DhlModel):
    """A DHL service point."""

    url: str = Field(description="Relative URL of this location resource")
    location: LocationInfo
    name: str
    distance: Optional[float] = Field(
        None, description="Meters from the searched position (search results only)"
    )
    place: Place
    opening_hours: List[OpeningHours] = Field(default_factory=list)
    closure_periods: List[ClosurePeriod] = Field(default_factory=list)
    service_types: List[str] = Field(
        default_factory=list,
        description="Offered services, mostly ServiceType values",
    )
    average_capacity_day_of_week: List[WeekdayCapacity] = Field(default_factory=list)

    @property
    def location_id(self) -> Optional[str]:
        """First provider location id, the value GetLocationById expects."""
        ids = self.location.ids
        return ids[0].location_id if ids else None

    def opening_hours_on(self, day: Weekday) -> List[OpeningHours]:
        return [oh for oh in self.opening_hours if oh.day_of_week == day]

    def offers(self, service: ServiceType) -> bool:
        return service.value in self.service_types


class LocationsResponse(DhlModel):
    """Search result: service points ordered by distance."""

    locations: List[Location] = Field(default_factory=list)

    @property
    def has_locations(self) -> bool:
        return len(self.locations) > 0


# --- Requests ---


class LocationFinderRequest(ApiRequest):
    """Any request the LocationFinderApi can send."""


Radius = Annotated[int, Field(ge=1, description="Search radius in meters")]
Limit = Annotated[int, Field(ge=1, le=50, description="Max number of locations")]


class GetLocationsByAddress(LocationFinderRequest):
    """Find service points near an address; only the country is required."""

    path = PATH_PREFIX + "/find-by-address"
    response_model = LocationsResponse

    country_code: CountryCode
    address_locality: Optional[NonEmptyStr] = None
    postal_code: Optional[NonEmptyStr] = None
    street_address: Optional[NonEmptyStr] = None
    provider_type: Optional[ProviderType] = None
    location_type: Optional[LocationType] = None
    service_type: Optional[ServiceType] = None
    radius: Optional[Radius] = None
    limit: Optional[Limit] = None
    hide_closed_locations: Optional[bool] = None

    def __init__(self, country_code: str, **data: Any) -> None:
        super().__init__(country_code=country_code, **data)


class GetLocationsByGeo(LocationFinderRequest):
    """Find service points around a latitude/longitude pair."""

    path = PATH_PREFIX + "/find-by-geo"
    response_model = LocationsResponse

    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)
    provider_type: Optional[ProviderType] = None
    location_type: Optional[LocationType] = None
    service_type: Optional[ServiceType] = None
    radius: Optional[Radius] = None
    limit: Optional[Limit] = None
    hide_closed_locations: Optional[bool] = None

    def __init__(self, latitude: float, longitude: float, **data: Any) -> None:
        super().__init__(latitude=latitude, longitude=longitude, **data)


class GetLocationByKeywordId(LocationFinderRequest):
    """Look up one location by its keyword id (e.g. Packstation number)."""

    path = PATH_PREFIX + "/find-by-keyword-id"
    response_model = Location

    keyword_id: NonEmptyStr
    country_code: CountryCode
    postal_code: NonEmptyStr

    def __init__(
        self, keyword_id: str, country_code: str, postal_code: str, **data: Any
    ) -> None:
        super().__init__(
            keyword_id=keyword_id,
            country_code=country_code,
            postal_code=postal_code,
            **data,
        )


class GetLocationById(LocationFinderRequest):
    path = PATH_PREFIX + "/locations/{id}"
    path_fields = ("id",)
    response_model = Location

    id: NonEmptyStr

    def __init__(self, id: str, **data: Any) -> None:
        super().__init__(id=id, **data)


class LocationFinderApi(ApiBase):
    """Client for the Location Finder (Unified) API.

    Example:
        api = LocationFinderApi(api_key, ApiMode.SANDBOX)
        res = api.send(GetLocationsByGeo(53.575264, 9.954053, radius=1000))
        for loc in res.locations:
            print(loc.name, loc.distance)
    """

    api_name = "location-finder"
    base_urls = {
        ApiMode.SANDBOX: SANDBOX_BASE,
        ApiMode.PRODUCTION: PROD_BASE,
    }
    request_type = LocationFinderRequest
    api_key_env = ("LOCATION_FINDER_API_KEY", "DHL_API_KEY")
