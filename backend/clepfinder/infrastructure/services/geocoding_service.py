"""
Geocoding Service for CLEP Finder

Geocoder implementation on the OpenStreetMap Nominatim search API.
Successful lookups are memoized per (postal code, city, state) in a
bounded LRU cache; Nominatim asks clients not to repeat queries.

API Docs: https://nominatim.org/release-docs/latest/api/Search/
"""

import logging
from typing import Optional

import httpx
from cachetools import LRUCache

from clepfinder.domain.interfaces import Coordinates


logger = logging.getLogger(__name__)


def build_query(postal_code: str, city: str = "", state: str = "") -> str:
    """Free-form Nominatim query: "<zip>, <city>, <state>, USA"."""
    return f"{postal_code}, {city}, {state}, USA"


class NominatimGeocoder:
    """
    Geocoder backed by Nominatim.

    Args:
        base_url: Search endpoint URL
        user_agent: Identifying User-Agent (required by the usage policy)
        timeout: Request timeout in seconds
        cache_size: Most lookups kept in the memo before the least recently
            used are evicted
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout: float = 10.0,
        cache_size: int = 1024,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport
        self._memo: LRUCache = LRUCache(maxsize=cache_size)

    async def geocode(
        self,
        postal_code: str,
        city: str = "",
        state: str = "",
    ) -> Optional[Coordinates]:
        """
        Resolve a postal code (plus city/state hints) to coordinates.

        Returns:
            Coordinates of the first match, or None when nothing matches
            or the request fails
        """
        if not postal_code or not str(postal_code).strip():
            return None

        key = (str(postal_code).strip(), city or "", state or "")
        cached = self._memo.get(key)
        if cached is not None:
            return cached

        coordinates = await self._search(build_query(*key))
        # Failed requests are not memoized so they can be retried
        if coordinates is not None:
            self._memo[key] = coordinates
        return coordinates

    async def _search(self, query: str) -> Optional[Coordinates]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": self.user_agent},
            ) as client:
                response = await client.get(
                    self.base_url,
                    params={"format": "json", "q": query, "limit": 1},
                )
                response.raise_for_status()
                results = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"[GEOCODE] HTTP {e.response.status_code} for '{query}'")
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[GEOCODE] Error geocoding '{query}': {e}")
            return None

        if not results:
            logger.info(f"[GEOCODE] No results for '{query}'")
            return None

        try:
            first = results[0]
            return Coordinates(lat=float(first["lat"]), lng=float(first["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[GEOCODE] Unexpected result shape for '{query}': {e}")
            return None
