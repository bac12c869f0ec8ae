"""
Map Service for CLEP Finder

Builds map markers for institutions by geocoding their ZIP codes.
Institutions that cannot be geocoded are left off the map.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence

from clepfinder.domain.interfaces import Geocoder
from clepfinder.domain.models import Institution


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapMarker:
    id: int
    name: str
    city: str
    state: str
    lat: float
    lng: float
    exams_accepted: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "city": self.city,
            "state": self.state,
            "lat": self.lat,
            "lng": self.lng,
            "exams_accepted": self.exams_accepted,
        }


class MapService:
    """Turns institutions into map markers through a Geocoder."""

    def __init__(self, geocoder: Geocoder):
        self._geocoder = geocoder

    async def build_markers(
        self,
        institutions: Sequence[Institution],
        limit: int = 50,
    ) -> List[MapMarker]:
        """
        Geocode up to `limit` institutions, in the given order.

        Lookups run one at a time to stay within the geocoder's rate limit.
        """
        markers: List[MapMarker] = []
        skipped = 0

        for institution in list(institutions)[:limit]:
            if not institution.zip:
                skipped += 1
                continue

            coordinates = await self._geocoder.geocode(
                institution.zip, institution.city, institution.state
            )
            if coordinates is None:
                skipped += 1
                continue

            markers.append(MapMarker(
                id=institution.id,
                name=institution.name,
                city=institution.city,
                state=institution.state,
                lat=coordinates.lat,
                lng=coordinates.lng,
                exams_accepted=institution.exams_accepted,
            ))

        if skipped:
            logger.info(f"Map: {len(markers)} markers, {skipped} institutions not geocoded")
        return markers
