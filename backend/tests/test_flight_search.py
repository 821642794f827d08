"""Tests for the Amadeus client and the flight search gateway."""
import asyncio
import json
from datetime import date
from decimal import Decimal

import httpx
import pytest

from app.services.amadeus_client import (
    AmadeusClient,
    AmadeusTokenCache,
    InvalidSearchRequest,
    SearchProviderError,
    is_client_error,
)
from app.services.flight_search import (
    FlightSearchGateway,
    normalize_offer,
    parse_iso_duration,
)


def make_raw_offer(offer_id="1", price="2899.50", itineraries=None):
    if itineraries is None:
        itineraries = [
            {
                "duration": "PT12H5M",
                "segments": [
                    {
                        "carrierCode": "LA",
                        "number": "8084",
                        "departure": {"iataCode": "GRU", "at": "2026-12-01T08:10:00"},
                        "arrival": {"iataCode": "MAD", "at": "2026-12-01T18:00:00"},
                    },
                    {
                        "carrierCode": "IB",
                        "number": "3102",
                        "departure": {"iataCode": "MAD", "at": "2026-12-01T19:10:00"},
                        "arrival": {"iataCode": "LIS", "at": "2026-12-01T20:15:00"},
                    },
                ],
            }
        ]
    return {
        "id": offer_id,
        "price": {"grandTotal": price, "currency": "BRL"},
        "itineraries": itineraries,
    }


class FakeAmadeus:
    """httpx MockTransport handler that plays the Amadeus endpoints."""

    def __init__(self, search_responses=None, locations=None):
        self.token_calls = 0
        self.search_calls = []
        self.search_responses = list(search_responses or [])
        self.locations = locations or []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            self.token_calls += 1
            return httpx.Response(
                200,
                json={"access_token": f"token-{self.token_calls}", "expires_in": 1799},
            )
        if request.url.path == "/v2/shopping/flight-offers":
            self.search_calls.append(request)
            if self.search_responses:
                return self.search_responses.pop(0)
            return httpx.Response(200, json={"data": [make_raw_offer()]})
        if request.url.path == "/v1/reference-data/locations":
            return httpx.Response(200, json={"data": self.locations})
        return httpx.Response(404, text="unknown path")


def make_gateway(handler, token_cache=None) -> FlightSearchGateway:
    client = AmadeusClient(
        client_id="key",
        client_secret="secret",
        base_url="https://amadeus.test",
        token_cache=token_cache or AmadeusTokenCache(),
        transport=httpx.MockTransport(handler),
    )
    return FlightSearchGateway(client)


class TestParseIsoDuration:
    def test_hours_and_minutes(self):
        assert parse_iso_duration("PT2H30M") == 150

    def test_components_optional(self):
        assert parse_iso_duration("PT5H") == 300
        assert parse_iso_duration("PT45M") == 45

    def test_days(self):
        assert parse_iso_duration("P1DT2H") == 26 * 60

    def test_missing_or_garbage(self):
        assert parse_iso_duration(None) == 0
        assert parse_iso_duration("") == 0
        assert parse_iso_duration("soon") == 0


class TestNormalizeOffer:
    def test_one_way(self):
        offer = normalize_offer(make_raw_offer(), {"LA": "LATAM AIRLINES"})

        assert offer.price == Decimal("2899.50")
        assert offer.currency == "BRL"
        assert offer.airline == "LA"
        assert offer.airline_name == "LATAM AIRLINES"
        assert offer.flight_number == "LA8084"
        assert offer.departure_time == "2026-12-01T08:10:00"
        assert offer.arrival_time == "2026-12-01T20:15:00"
        assert offer.departure_airport == "GRU"
        assert offer.arrival_airport == "LIS"
        assert offer.duration == 725
        assert offer.stops == 1
        assert offer.has_return is False
        assert offer.return_duration is None

    def test_second_itinerary_is_return_leg(self):
        raw = make_raw_offer()
        raw["itineraries"].append({
            "duration": "PT10H",
            "segments": [{
                "carrierCode": "LA",
                "number": "8085",
                "departure": {"iataCode": "LIS", "at": "2026-12-10T23:00:00"},
                "arrival": {"iataCode": "GRU", "at": "2026-12-11T06:00:00"},
            }],
        })

        offer = normalize_offer(raw, {})

        assert offer.has_return
        assert offer.return_departure_time == "2026-12-10T23:00:00"
        assert offer.return_arrival_time == "2026-12-11T06:00:00"
        assert offer.return_duration == 600
        assert offer.return_stops == 0


class TestSearchFlights:
    async def test_returns_normalized_offers(self):
        fake = FakeAmadeus(search_responses=[
            httpx.Response(200, json={
                "data": [make_raw_offer("1"), make_raw_offer("2", price="3100.00")],
                "dictionaries": {"carriers": {"LA": "LATAM AIRLINES"}},
            })
        ])

        async with make_gateway(fake) as gateway:
            offers = await gateway.search_flights("GRU", "LIS", date(2026, 12, 1))

        assert [o.price for o in offers] == [Decimal("2899.50"), Decimal("3100.00")]
        params = fake.search_calls[0].url.params
        assert params["originLocationCode"] == "GRU"
        assert params["destinationLocationCode"] == "LIS"
        assert params["departureDate"] == "2026-12-01"
        assert "returnDate" not in params
        assert fake.search_calls[0].headers["Authorization"] == "Bearer token-1"

    async def test_return_date_sent_for_round_trip(self):
        fake = FakeAmadeus()
        async with make_gateway(fake) as gateway:
            await gateway.search_flights("GRU", "LIS", date(2026, 12, 1), date(2026, 12, 10))

        assert fake.search_calls[0].url.params["returnDate"] == "2026-12-10"

    async def test_malformed_offer_skipped(self):
        fake = FakeAmadeus(search_responses=[
            httpx.Response(200, json={"data": [make_raw_offer(), {"id": "broken"}]})
        ])
        async with make_gateway(fake) as gateway:
            offers = await gateway.search_flights("GRU", "LIS", date(2026, 12, 1))

        assert len(offers) == 1

    async def test_missing_airport_code_is_client_error(self):
        fake = FakeAmadeus()
        async with make_gateway(fake) as gateway:
            with pytest.raises(InvalidSearchRequest) as exc_info:
                await gateway.search_flights(None, "LIS", date(2026, 12, 1))

        assert is_client_error(exc_info.value)
        assert fake.search_calls == []

    async def test_4xx_carries_status(self):
        fake = FakeAmadeus(search_responses=[
            httpx.Response(400, json={"errors": [{"code": 425, "title": "PAST_DATE"}]})
        ])
        async with make_gateway(fake) as gateway:
            with pytest.raises(SearchProviderError) as exc_info:
                await gateway.search_flights("GRU", "LIS", date(2026, 12, 1))

        assert exc_info.value.status_code == 400
        assert "(400)" in str(exc_info.value)
        assert is_client_error(exc_info.value)

    async def test_5xx_is_not_client_error(self):
        fake = FakeAmadeus(search_responses=[httpx.Response(503, text="Service Unavailable")])
        async with make_gateway(fake) as gateway:
            with pytest.raises(SearchProviderError) as exc_info:
                await gateway.search_flights("GRU", "LIS", date(2026, 12, 1))

        assert exc_info.value.status_code == 503
        assert not is_client_error(exc_info.value)

    async def test_transport_failure_is_not_client_error(self):
        def handler(request):
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "t", "expires_in": 1799})
            raise httpx.ConnectError("connection refused", request=request)

        async with make_gateway(handler) as gateway:
            with pytest.raises(SearchProviderError) as exc_info:
                await gateway.search_flights("GRU", "LIS", date(2026, 12, 1))

        assert exc_info.value.status_code is None
        assert not is_client_error(exc_info.value)


class TestTokenHandling:
    async def test_token_reused_between_requests(self):
        fake = FakeAmadeus()
        async with make_gateway(fake) as gateway:
            await gateway.search_flights("GRU", "LIS", date(2026, 12, 1))
            await gateway.search_flights("GRU", "LIS", date(2026, 12, 2))

        assert fake.token_calls == 1

    async def test_401_refreshes_token_and_retries_once(self):
        fake = FakeAmadeus(search_responses=[httpx.Response(401, text="expired")])
        async with make_gateway(fake) as gateway:
            offers = await gateway.search_flights("GRU", "LIS", date(2026, 12, 1))

        assert len(offers) == 1
        assert fake.token_calls == 2
        assert fake.search_calls[1].headers["Authorization"] == "Bearer token-2"

    async def test_second_401_propagates(self):
        fake = FakeAmadeus(search_responses=[
            httpx.Response(401, text="expired"),
            httpx.Response(401, text="still expired"),
        ])
        async with make_gateway(fake) as gateway:
            with pytest.raises(SearchProviderError) as exc_info:
                await gateway.search_flights("GRU", "LIS", date(2026, 12, 1))

        assert exc_info.value.status_code == 401
        assert len(fake.search_calls) == 2

    async def test_concurrent_requests_share_one_refresh(self):
        cache = AmadeusTokenCache()
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "shared-token", 1799

        tokens = await asyncio.gather(*(cache.get(fetch) for _ in range(5)))

        assert calls == 1
        assert set(tokens) == {"shared-token"}

    async def test_token_refreshed_before_expiry(self):
        cache = AmadeusTokenCache()
        values = iter(["first", "second"])

        async def fetch():
            # Expires inside the refresh margin, so it is never served from cache
            return next(values), 30

        assert await cache.get(fetch) == "first"
        assert await cache.get(fetch) == "second"

    def test_invalidate_keeps_newer_token(self):
        cache = AmadeusTokenCache()

        async def fetch():
            return "fresh", 1799

        asyncio.run(cache.get(fetch))
        cache.invalidate("stale")

        assert cache.peek() == "fresh"
        cache.invalidate("fresh")
        assert cache.peek() is None

    async def test_token_endpoint_failure(self):
        def handler(request):
            return httpx.Response(401, text="invalid_client")

        async with make_gateway(handler) as gateway:
            with pytest.raises(SearchProviderError, match=r"OAuth2 failed \(401\)"):
                await gateway.search_flights("GRU", "LIS", date(2026, 12, 1))


class TestSearchAirports:
    async def test_normalizes_locations(self):
        fake = FakeAmadeus(locations=[
            {
                "name": "GUARULHOS INTL",
                "iataCode": "GRU",
                "address": {"cityName": "SAO PAULO", "countryCode": "BR"},
            },
            {"name": "SAO PAULO", "iataCode": "SAO"},
        ])
        async with make_gateway(fake) as gateway:
            airports = await gateway.search_airports("sao")

        assert airports[0].iata_code == "GRU"
        assert airports[0].city_name == "SAO PAULO"
        assert airports[0].country_code == "BR"
        assert airports[1].city_name == ""


class TestIsClientError:
    def test_matches_status_in_foreign_message(self):
        assert is_client_error(Exception("Amadeus API error (404): not found"))
        assert not is_client_error(Exception("Amadeus API error (500): boom"))
        assert not is_client_error(RuntimeError("timeout"))
