"""
Apply an alert's preferences to normalized offers.

All checks are independent; an offer is kept only if it passes every one.
Departure hours are evaluated in UTC.
"""
from typing import Iterable, List, Optional, Sequence

from app.models.flight_alert import DayShift, TripType
from app.services.flight_search import NormalizedFlightOffer
from app.utils.clock import parse_timestamp

# [start, end) hours; NIGHT wraps midnight (18:00-05:00)
DAY_SHIFT_HOURS = {
    DayShift.MORNING: (5, 12),
    DayShift.AFTERNOON: (12, 18),
    DayShift.NIGHT: (18, 29),
}


def _hour_in_shift(hour: int, shift: str) -> bool:
    try:
        start, end = DAY_SHIFT_HOURS[DayShift(shift)]
    except ValueError:
        # Unknown shift names never exclude an offer
        return True
    if end > 24:
        return hour >= start or hour < end - 24
    return start <= hour < end


def departure_matches_shifts(departure_time: str, shifts: Optional[Sequence[str]]) -> bool:
    """True if the departure hour falls in any of ``shifts``; no shifts accepts all."""
    if not shifts:
        return True
    hour = parse_timestamp(departure_time).hour
    return any(_hour_in_shift(hour, shift) for shift in shifts)


def offer_matches(offer: NormalizedFlightOffer, alert) -> bool:
    if not departure_matches_shifts(offer.departure_time, alert.departure_day_shift):
        return False

    if (
        alert.trip_type == TripType.ROUND_TRIP
        and offer.return_departure_time
        and not departure_matches_shifts(offer.return_departure_time, alert.return_day_shift)
    ):
        return False

    airlines = alert.airlines or []
    if airlines and offer.airline not in airlines:
        return False

    if alert.max_flight_duration and offer.duration > alert.max_flight_duration:
        return False

    return True


def filter_offers(offers: Iterable[NormalizedFlightOffer], alert) -> List[NormalizedFlightOffer]:
    """Keep the offers that satisfy the alert's shift, airline and duration limits.

    ``alert`` is anything with the FlightAlert preference attributes
    (``trip_type``, ``departure_day_shift``, ``return_day_shift``,
    ``airlines``, ``max_flight_duration``).
    """
    return [offer for offer in offers if offer_matches(offer, alert)]
