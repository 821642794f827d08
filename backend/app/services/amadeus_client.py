"""
Amadeus Self-Service API client.

Handles OAuth2 client-credentials authentication and raw GET requests against
the flight-offers and location endpoints. The access token is cached per
process in ``AmadeusTokenCache`` and shared by every client instance, so the
price-check workers and the API reuse one token until it is about to expire.
"""
import asyncio
import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Tuple

import httpx

from app.config import get_settings
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/security/oauth2/token"
FLIGHT_OFFERS_PATH = "/v2/shopping/flight-offers"
LOCATIONS_PATH = "/v1/reference-data/locations"

_CLIENT_ERROR_RE = re.compile(r"\(4\d{2}\)")


class SearchProviderError(Exception):
    """A failed call to the flight search provider.

    ``status_code`` is the HTTP status returned by the provider, or None for
    transport failures (timeouts, connection errors). The status is also part
    of the message, e.g. ``Amadeus API error (400): ...``.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500


class InvalidSearchRequest(SearchProviderError):
    """Search parameters that can never succeed (missing airport codes)."""

    @property
    def is_client_error(self) -> bool:
        return True


def is_client_error(exc: BaseException) -> bool:
    """True for non-retryable provider failures (HTTP 4xx)."""
    if isinstance(exc, SearchProviderError):
        return exc.is_client_error
    return bool(_CLIENT_ERROR_RE.search(str(exc)))


@dataclass
class AccessToken:
    value: str
    expires_at: datetime


class AmadeusTokenCache:
    """
    Process-wide bearer token cache.

    The token is fetched on first use and refreshed REFRESH_MARGIN before the
    declared expiry. Refreshes are single-flight per event loop: the first
    caller fetches while the others wait on the lock and then reuse its token.
    """

    REFRESH_MARGIN = timedelta(seconds=60)

    def __init__(self):
        self._token: Optional[AccessToken] = None
        self._guard = threading.Lock()
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def peek(self) -> Optional[str]:
        """Return the cached token if it is still valid."""
        token = self._token
        if token and utcnow() < token.expires_at:
            return token.value
        return None

    def invalidate(self, stale: Optional[str] = None) -> None:
        """Drop the cached token.

        With ``stale`` given, only drop it if it is still that token, so a
        401 on an old token does not throw away a fresh one.
        """
        with self._guard:
            if stale is None or (self._token and self._token.value == stale):
                self._token = None

    def _refresh_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        with self._guard:
            if self._lock is None or self._lock_loop is not loop:
                self._lock = asyncio.Lock()
                self._lock_loop = loop
            return self._lock

    async def get(self, fetch: Callable[[], Awaitable[Tuple[str, int]]]) -> str:
        """Return a valid token, calling ``fetch`` -> (token, expires_in) if needed."""
        token = self.peek()
        if token:
            return token

        async with self._refresh_lock():
            token = self.peek()
            if token:
                return token

            value, expires_in = await fetch()
            expires_at = utcnow() + timedelta(seconds=expires_in) - self.REFRESH_MARGIN
            with self._guard:
                self._token = AccessToken(value=value, expires_at=expires_at)
            logger.debug(f"Amadeus token refreshed, valid until {expires_at.isoformat()}")
            return value


_token_cache = AmadeusTokenCache()


def get_token_cache() -> AmadeusTokenCache:
    return _token_cache


class AmadeusClient:
    """
    Thin async HTTP client for Amadeus.

    Usage:
        async with AmadeusClient() as client:
            data = await client.fetch_flight_offers("GRU", "LIS", "2026-12-01")
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        token_cache: Optional[AmadeusTokenCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        settings = get_settings()
        self.client_id = client_id if client_id is not None else settings.amadeus_api_key
        self.client_secret = client_secret if client_secret is not None else settings.amadeus_api_secret
        self.base_url = (base_url or settings.amadeus_base_url).rstrip("/")
        self.currency = settings.amadeus_currency
        self.max_offers = settings.amadeus_max_offers
        self.token_cache = token_cache or get_token_cache()
        self._transport = transport
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "AmadeusClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _fetch_token(self) -> Tuple[str, int]:
        client = await self._get_client()
        try:
            response = await client.post(
                TOKEN_PATH,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
        except httpx.RequestError as e:
            raise SearchProviderError(f"Amadeus OAuth2 request failed: {e}") from e

        if not response.is_success:
            raise SearchProviderError(
                f"Amadeus OAuth2 failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        data = response.json()
        return data["access_token"], int(data.get("expires_in", 1799))

    async def get_access_token(self) -> str:
        return await self.token_cache.get(self._fetch_token)

    async def request(self, path: str, params: Optional[dict] = None, retry: bool = True) -> Any:
        """GET ``path`` with a bearer token; retries once on 401 with a fresh token."""
        token = await self.get_access_token()
        client = await self._get_client()
        query = {key: value for key, value in (params or {}).items() if value}

        try:
            response = await client.get(
                path,
                params=query,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.RequestError as e:
            raise SearchProviderError(f"Amadeus request failed: {e}") from e

        if response.status_code == 401 and retry:
            logger.info("Amadeus rejected the cached token, refreshing")
            self.token_cache.invalidate(token)
            return await self.request(path, params, retry=False)

        if not response.is_success:
            raise SearchProviderError(
                f"Amadeus API error ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        return response.json()

    async def fetch_flight_offers(
        self,
        origin: str,
        destination: str,
        departure_date: str,
        return_date: Optional[str] = None,
        adults: int = 1,
    ) -> dict:
        return await self.request(
            FLIGHT_OFFERS_PATH,
            {
                "originLocationCode": origin,
                "destinationLocationCode": destination,
                "departureDate": departure_date,
                "returnDate": return_date,
                "adults": str(adults),
                "max": str(self.max_offers),
                "currencyCode": self.currency,
            },
        )

    async def fetch_airport_search(self, keyword: str) -> dict:
        return await self.request(
            LOCATIONS_PATH,
            {
                "subType": "AIRPORT,CITY",
                "keyword": keyword,
                "page[limit]": "10",
                "view": "FULL",
            },
        )
