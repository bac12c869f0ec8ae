"""
Institution Cache for CLEP Finder

Holds the bulk-loaded institution collection for a fixed time window.
Invalidated by expiry or an explicit clear; readers may see data up to
ttl_seconds old.
"""

import logging
import time
from typing import Awaitable, Callable, List, Optional

from clepfinder.domain.models import Institution


logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class InstitutionCache:
    """TTL cache for the institution collection with an injectable clock."""

    def __init__(self, ttl_seconds: float = 300, clock: Clock = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._institutions: Optional[List[Institution]] = None
        self._loaded_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        if self._institutions is None or self._loaded_at is None:
            return False
        return (self._clock() - self._loaded_at) < self.ttl_seconds

    def get(self) -> Optional[List[Institution]]:
        """Cached institutions, or None if empty or expired."""
        if not self._is_fresh():
            return None
        return self._institutions

    def set(self, institutions: List[Institution]) -> None:
        self._institutions = list(institutions)
        self._loaded_at = self._clock()

    def clear(self) -> None:
        self._institutions = None
        self._loaded_at = None
        logger.info("Institution cache cleared")

    @property
    def age_seconds(self) -> Optional[float]:
        if self._loaded_at is None:
            return None
        return self._clock() - self._loaded_at

    async def get_or_load(
        self,
        loader: Callable[[], Awaitable[List[Institution]]],
    ) -> List[Institution]:
        """Return cached institutions, calling the loader on a miss."""
        cached = self.get()
        if cached is not None:
            return cached

        institutions = await loader()
        self.set(institutions)
        logger.info(f"Loaded {len(institutions)} institutions into cache")
        return self._institutions
