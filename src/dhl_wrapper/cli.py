import argparse
import logging
import sys
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .apis import REGISTRY as API_REGISTRY, get_api_names
from .apis.base import ApiBase, ApiMode, ApiRequest, DhlApiError
from .apis.location_finder import (
    GetLocationById,
    GetLocationByKeywordId,
    GetLocationsByAddress,
    GetLocationsByGeo,
    Location,
    LocationFinderApi,
    LocationType,
    LocationsResponse,
    ProviderType,
    ServiceType,
)
from .apis.shipment_tracking import (
    Division,
    GetShipmentTracking,
    ShipmentTrackingApi,
    ShipmentTrackingResponse,
    tracking_page_url,
)

# Load environment variables from .env if present
load_dotenv()

logger = logging.getLogger(__name__)


def _run(api_cls: type, request: ApiRequest, args: argparse.Namespace) -> BaseModel:
    api: ApiBase = api_cls.from_env(mode=args.mode)
    logger.debug("Using %r", api)
    return api.send(request)


def cmd_track(args: argparse.Namespace) -> int:
    request = GetShipmentTracking(
        args.code,
        service=args.service,
        requester_country_code=args.requester_country,
        origin_country_code=args.origin_country,
        recipient_postal_code=args.postal_code,
        language=args.language,
        offset=args.offset,
        limit=args.limit,
    )
    response = _run(ShipmentTrackingApi, request, args)
    if args.json:
        _print_json(response)
    else:
        print_tracking(response, args.code, language=args.language or "en")
    return 0


def _search_filters(args: argparse.Namespace) -> dict:
    return {
        "provider_type": args.provider_type,
        "location_type": args.location_type,
        "service_type": args.service_type,
        "radius": args.radius,
        "limit": args.limit,
        "hide_closed_locations": True if args.hide_closed else None,
    }


def cmd_locations(args: argparse.Namespace) -> int:
    request: ApiRequest
    if args.by == "geo":
        request = GetLocationsByGeo(args.latitude, args.longitude, **_search_filters(args))
    elif args.by == "address":
        request = GetLocationsByAddress(
            args.country,
            address_locality=args.locality,
            postal_code=args.postal_code,
            street_address=args.street,
            **_search_filters(args),
        )
    elif args.by == "keyword":
        request = GetLocationByKeywordId(args.keyword_id, args.country, args.postal_code)
    else:
        request = GetLocationById(args.id)

    response = _run(LocationFinderApi, request, args)
    if args.json:
        _print_json(response)
    elif isinstance(response, LocationsResponse):
        print_locations(response)
    else:
        print_location(response)
    return 0


def cmd_apis(_args: argparse.Namespace) -> int:
    for name in get_api_names():
        api_cls = API_REGISTRY[name]
        urls = ", ".join(f"{m.value}={u}" for m, u in api_cls.base_urls.items())
        print(f"{name}\t{urls}")
    return 0


def _print_json(model: BaseModel) -> None:
    print(model.model_dump_json(indent=2, by_alias=True, exclude_none=True))


def print_tracking(
    response: ShipmentTrackingResponse, code: str, *, language: str = "en"
) -> None:
    if not response.has_shipments:
        print("No shipments found")
        print(f"Tracking page: {tracking_page_url(code, language=language)}")
        return

    for shipment in response.shipments:
        print(f"\nShipment: {shipment.id}")
        if shipment.service:
            print(f"Service: {shipment.service}")
        status_line = f"Status: {shipment.status_code.value}"
        if shipment.status is not None:
            headline, _ = shipment.status.display_text()
            if headline:
                status_line += f" ({headline})"
        print(status_line)

        product = shipment.details.product
        if product and product.product_name:
            print(f"Product: {product.product_name}")
        if shipment.origin and shipment.origin.display_label():
            print(f"Origin: {shipment.origin.display_label()}")
        if shipment.destination and shipment.destination.display_label():
            print(f"Destination: {shipment.destination.display_label()}")
        if shipment.estimated_time_of_delivery:
            eta = shipment.estimated_time_of_delivery.strftime("%Y-%m-%d %H:%M")
            print(f"Estimated delivery: {eta}")

        events = shipment.sorted_events()
        if not events:
            print("No tracking events")
        else:
            print("\nTracking Events:")
            for event in events:
                timestamp = event.timestamp.strftime("%Y-%m-%d %H:%M")
                status, details = event.display_text()
                print(f"- {timestamp}: {status}")
                where = event.location.display_label() if event.location else None
                if where:
                    print(f"  Location: {where}")
                if details:
                    print(f"  Details: {details}")
        print(f"Tracking page: {tracking_page_url(shipment.id, language=language)}")


def print_location(location: Location) -> None:
    header = location.name
    if location.distance is not None:
        header += f" ({location.distance:.0f} m)"
    print(header)
    line = location.place.address.one_line()
    if line:
        print(f"  Address: {line}")
    if location.location_id:
        print(f"  Id: {location.location_id}")
    if location.location.type:
        print(f"  Type: {location.location.type}")
    if location.opening_hours:
        hours = ", ".join(
            f"{oh.day_of_week.short_name} {oh.opens:%H:%M}-{oh.closes:%H:%M}"
            for oh in location.opening_hours
        )
        print(f"  Opening hours: {hours}")
    if location.service_types:
        print(f"  Services: {', '.join(location.service_types)}")


def print_locations(response: LocationsResponse) -> None:
    if not response.has_locations:
        print("No locations found")
        return
    for location in response.locations:
        print_location(location)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--mode",
        choices=[m.value for m in ApiMode],
        default=None,
        help="API environment (default: $DHL_API_MODE, $DHL_SERVER or production)",
    )
    common.add_argument("--json", action="store_true", help="Output raw JSON payload")
    common.add_argument(
        "--verbose", "-v", action="store_true", help="Log requests and responses"
    )

    search = argparse.ArgumentParser(add_help=False)
    search.add_argument("--provider-type", choices=[p.value for p in ProviderType])
    search.add_argument("--location-type", choices=[t.value for t in LocationType])
    search.add_argument("--service-type", choices=[s.value for s in ServiceType])
    search.add_argument("--radius", type=int, help="Search radius in meters")
    search.add_argument("--limit", type=int, help="Max number of locations (1-50)")
    search.add_argument(
        "--hide-closed", action="store_true", help="Skip locations closed right now"
    )

    parser = argparse.ArgumentParser(
        prog="dhl-wrapper", description="Query DHL Location Finder and Tracking APIs."
    )
    subparsers = parser.add_subparsers(dest="command")

    p_track = subparsers.add_parser("track", parents=[common], help="Track a shipment")
    p_track.add_argument("code", help="Tracking number")
    p_track.add_argument("--service", choices=[d.value for d in Division])
    p_track.add_argument("--language", "-l", default=None, help="Two-letter code, e.g. en")
    p_track.add_argument("--requester-country", default=None)
    p_track.add_argument("--origin-country", default=None)
    p_track.add_argument("--postal-code", default=None, help="Recipient postal code")
    p_track.add_argument("--offset", type=int, default=None)
    p_track.add_argument("--limit", type=int, default=None)
    p_track.set_defaults(func=cmd_track)

    p_loc = subparsers.add_parser("locations", help="Find DHL service points")
    loc_sub = p_loc.add_subparsers(dest="by")

    p_geo = loc_sub.add_parser("geo", parents=[common, search], help="Near coordinates")
    p_geo.add_argument("latitude", type=float)
    p_geo.add_argument("longitude", type=float)

    p_addr = loc_sub.add_parser("address", parents=[common, search], help="Near an address")
    p_addr.add_argument("country", help="Two-letter country code")
    p_addr.add_argument("--locality", default=None)
    p_addr.add_argument("--postal-code", default=None)
    p_addr.add_argument("--street", default=None)

    p_kw = loc_sub.add_parser("keyword", parents=[common], help="By keyword id")
    p_kw.add_argument("keyword_id")
    p_kw.add_argument("country")
    p_kw.add_argument("postal_code")

    p_id = loc_sub.add_parser("id", parents=[common], help="By location id")
    p_id.add_argument("id")

    for p in (p_geo, p_addr, p_kw, p_id):
        p.set_defaults(func=cmd_locations)

    p_apis = subparsers.add_parser("apis", help="List supported API families")
    p_apis.set_defaults(func=cmd_apis)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 1
    if getattr(args, "verbose", False):
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s"
        )
    try:
        return args.func(args)
    except DhlApiError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
