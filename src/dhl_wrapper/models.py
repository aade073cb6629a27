"""
Pydantic building blocks shared by the DHL API families.

Every model mirrors DHL's camelCase JSON. Unknown fields are ignored so that
new upstream attributes never break deserialization, and optional fields that
are missing become None (or an empty list), never an error.
"""

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from .utils import parse_dt_iso


# ISO 3166-1 alpha-2, e.g. "DE"
CountryCode = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_upper=True, pattern=r"^[A-Za-z]{2}$"),
]

# ISO 639-1, e.g. "en"
LanguageCode = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, pattern=r"^[A-Za-z]{2}$"),
]

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class DhlModel(BaseModel):
    """Base for all DHL payload models (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Address(DhlModel):
    """Postal address as returned by both Location Finder and Tracking."""

    country_code: Optional[str] = Field(None, description="ISO 3166-1 alpha-2")
    postal_code: Optional[str] = None
    address_locality: Optional[str] = Field(None, description="City/town")
    street_address: Optional[str] = None

    def one_line(self) -> str:
        """Human-readable single-line rendering, skipping empty parts."""
        locality = " ".join(p for p in (self.postal_code, self.address_locality) if p)
        parts = [p for p in (self.street_address, locality, self.country_code) if p]
        return ", ".join(parts)


def coerce_timestamp(value: Any) -> Any:
    """Before-validator hook: parse DHL's assorted ISO-8601 flavours.

    Values that do not parse are passed through so pydantic reports them.
    """
    if isinstance(value, str):
        parsed = parse_dt_iso(value)
        if parsed is not None:
            return parsed
    return value


# datetime parsed with coerce_timestamp first
Timestamp = Annotated[datetime, BeforeValidator(coerce_timestamp)]
