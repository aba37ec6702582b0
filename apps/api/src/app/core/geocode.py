"""
Geocoding via Nominatim (OpenStreetMap)

Address to coordinate lookups with an injected, bounded LRU cache that
lives for the life of the process. Nominatim's usage policy requires a
descriptive User-Agent and low request volume, so every distinct address
(including ones that fail to resolve) is looked up at most once until it
is evicted.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinates:
    """A resolved point."""

    lat: float
    lng: float
    display_name: str | None = None


class GeocodeCache:
    """
    Least-recently-used cache of geocoding results.

    Misses are stored as None so a failing address is not re-queried.
    """

    def __init__(self, max_entries: int = 2048):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, Coordinates | None] = OrderedDict()

    @staticmethod
    def normalize(address: str) -> str:
        return address.strip().lower()

    def __contains__(self, address: str) -> bool:
        return self.normalize(address) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, address: str) -> Coordinates | None:
        """Return the cached result and mark it recently used. Check ``in`` first."""
        key = self.normalize(address)
        self._entries.move_to_end(key)
        return self._entries[key]

    def set(self, address: str, coords: Coordinates | None) -> None:
        key = self.normalize(address)
        self._entries[key] = coords
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Geocode cache evicted: {evicted}")


class Geocoder:
    """Nominatim client backed by a GeocodeCache."""

    def __init__(
        self,
        cache: GeocodeCache,
        *,
        base_url: str,
        user_agent: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.cache = cache
        self.base_url = base_url
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={
                "User-Agent": user_agent,
                "Accept-Language": "en-US,en",
            },
        )

    async def geocode(self, address: str | None) -> Coordinates | None:
        """
        Resolve an address to coordinates.

        Returns:
            Coordinates, or None when the address is blank, unknown, or the
            lookup fails. Failures are logged, never raised.
        """
        if not address or not address.strip():
            return None

        if address in self.cache:
            return self.cache.get(address)

        coords: Coordinates | None = None
        try:
            response = await self._client.get(
                self.base_url,
                params={
                    "q": address,
                    "format": "json",
                    "limit": 1,
                    "countrycodes": "us",
                },
            )
            if response.status_code != 200:
                logger.error(f"Nominatim HTTP {response.status_code} for: {address}")
            else:
                results = response.json()
                if results:
                    first = results[0]
                    coords = Coordinates(
                        lat=float(first["lat"]),
                        lng=float(first["lon"]),
                        display_name=first.get("display_name"),
                    )
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Geocoding failed for {address}: {e}")

        self.cache.set(address, coords)
        return coords

    async def close(self) -> None:
        await self._client.aclose()


# Process-wide instance, created on first use
_geocoder: Geocoder | None = None


def get_geocoder() -> Geocoder:
    """
    FastAPI dependency returning the shared Geocoder.

    Override it in tests with ``app.dependency_overrides[get_geocoder]``.
    """
    global _geocoder
    if _geocoder is None:
        _geocoder = Geocoder(
            GeocodeCache(settings.geocode_cache_size),
            base_url=settings.geocoder_url,
            user_agent=settings.geocoder_user_agent,
            timeout=settings.geocoder_timeout_seconds,
        )
    return _geocoder


async def close_geocoder() -> None:
    """Close the shared HTTP client. Call on application shutdown."""
    global _geocoder
    if _geocoder is not None:
        await _geocoder.close()
        _geocoder = None
