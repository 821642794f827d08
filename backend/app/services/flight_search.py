"""
Flight and airport search on top of the Amadeus client.

Provider responses are flattened into ``NormalizedFlightOffer`` and
``NormalizedAirport`` so the rest of the app never touches itinerary/segment
structures.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from app.services.amadeus_client import AmadeusClient, InvalidSearchRequest

logger = logging.getLogger(__name__)

_ISO_DURATION_RE = re.compile(r"P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?")


def parse_iso_duration(value: Optional[str]) -> int:
    """Parse an ISO-8601 duration like ``PT2H30M`` into minutes.

    Hours and minutes are each optional and default to 0; a leading day
    component (``P1DT2H``) is honoured. Anything unparseable is 0.
    """
    if not value:
        return 0
    match = _ISO_DURATION_RE.search(value)
    if not match:
        return 0
    days, hours, minutes = (int(group or 0) for group in match.groups())
    return days * 24 * 60 + hours * 60 + minutes


@dataclass
class NormalizedFlightOffer:
    price: Decimal
    currency: str
    airline: str  # carrier code
    flight_number: str
    departure_time: str
    arrival_time: str
    duration: int  # minutes, outbound
    stops: int
    airline_name: Optional[str] = None
    departure_airport: Optional[str] = None
    arrival_airport: Optional[str] = None
    return_departure_time: Optional[str] = None
    return_arrival_time: Optional[str] = None
    return_duration: Optional[int] = None
    return_stops: Optional[int] = None

    @property
    def has_return(self) -> bool:
        return self.return_departure_time is not None


@dataclass
class NormalizedAirport:
    name: str
    iata_code: str
    city_name: str
    country_code: str = ""


def normalize_offer(offer: dict, carriers: dict) -> NormalizedFlightOffer:
    """Flatten one flight-offer into outbound fields plus an optional return leg."""
    itineraries = offer["itineraries"]
    outbound = itineraries[0]
    segments = outbound["segments"]
    first_seg, last_seg = segments[0], segments[-1]

    result = NormalizedFlightOffer(
        price=Decimal(str(offer["price"]["grandTotal"])),
        currency=offer["price"]["currency"],
        airline=first_seg["carrierCode"],
        airline_name=carriers.get(first_seg["carrierCode"]),
        flight_number=f"{first_seg['carrierCode']}{first_seg.get('number', '')}",
        departure_time=first_seg["departure"]["at"],
        arrival_time=last_seg["arrival"]["at"],
        departure_airport=first_seg["departure"].get("iataCode"),
        arrival_airport=last_seg["arrival"].get("iataCode"),
        duration=parse_iso_duration(outbound.get("duration")),
        stops=len(segments) - 1,
    )

    if len(itineraries) > 1:
        inbound = itineraries[1]
        return_segments = inbound["segments"]
        result.return_departure_time = return_segments[0]["departure"]["at"]
        result.return_arrival_time = return_segments[-1]["arrival"]["at"]
        result.return_duration = parse_iso_duration(inbound.get("duration"))
        result.return_stops = len(return_segments) - 1

    return result


def normalize_airport(location: dict) -> NormalizedAirport:
    address = location.get("address") or {}
    return NormalizedAirport(
        name=location.get("name", ""),
        iata_code=location.get("iataCode", ""),
        city_name=address.get("cityName", ""),
        country_code=address.get("countryCode", ""),
    )


class FlightSearchGateway:
    """Search flights and airports through Amadeus."""

    def __init__(self, client: Optional[AmadeusClient] = None):
        self.client = client or AmadeusClient()

    async def close(self):
        await self.client.close()

    async def __aenter__(self) -> "FlightSearchGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def search_flights(
        self,
        origin: Optional[str],
        destination: Optional[str],
        departure_date: date,
        return_date: Optional[date] = None,
    ) -> List[NormalizedFlightOffer]:
        if not origin or not destination:
            raise InvalidSearchRequest("Origin and destination airport codes are required")

        response = await self.client.fetch_flight_offers(
            origin=origin,
            destination=destination,
            departure_date=departure_date.isoformat(),
            return_date=return_date.isoformat() if return_date else None,
        )
        carriers = (response.get("dictionaries") or {}).get("carriers") or {}

        offers = []
        for raw in response.get("data", []):
            try:
                offers.append(normalize_offer(raw, carriers))
            except (KeyError, IndexError, ValueError, ArithmeticError) as e:
                logger.warning(f"Skipping malformed offer {raw.get('id')}: {e}")

        logger.info(f"Amadeus returned {len(offers)} offers for {origin}-{destination} on {departure_date}")
        return offers

    async def search_airports(self, keyword: str) -> List[NormalizedAirport]:
        response = await self.client.fetch_airport_search(keyword)
        return [normalize_airport(location) for location in response.get("data", [])]
