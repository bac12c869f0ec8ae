"""
Institution Catalog Service for CLEP Finder

Read side of the institution data:
1. Bulk collection from the backing store, held in the TTL cache
2. Search = free-text query -> filter criteria -> explicit sort
3. Effective institutions: bulk policies with overrides merged on top,
   computed fresh on every read; search and statistics use them
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Union

from clepfinder.domain.aggregation import (
    CollectionSummary,
    ExamStatistics,
    collection_summary,
    exam_statistics,
)
from clepfinder.domain.catalog import resolve_exam_name
from clepfinder.domain.filtering import (
    FilterCriteria,
    filter_institutions,
    find_by_di_code,
    find_by_id,
    search_institutions,
    sort_institutions,
)
from clepfinder.domain.interfaces import InstitutionStore
from clepfinder.domain.models import Institution, OverrideRecord, SortOrder
from clepfinder.domain.overrides import apply_overrides
from clepfinder.infrastructure.cache import InstitutionCache
from clepfinder.infrastructure.exceptions import DatabaseError


logger = logging.getLogger(__name__)


class InstitutionCatalogService:
    """
    Cached, read-only access to institutions.

    The cache is owned by the caller (one per process in the API layer)
    so it survives across requests while the store is per-request.
    """

    def __init__(self, store: InstitutionStore, cache: InstitutionCache):
        self._store = store
        self._cache = cache

    async def list_institutions(self) -> List[Institution]:
        return await self._cache.get_or_load(self._store.list_institutions)

    async def get_institution(self, institution_id: int) -> Optional[Institution]:
        return find_by_id(await self.list_institutions(), institution_id)

    async def get_by_di_code(self, di_code: int) -> Optional[Institution]:
        return find_by_di_code(await self.list_institutions(), di_code)

    async def get_effective_institution(self, di_code: int) -> Optional[Institution]:
        """
        Institution with its overrides applied.

        If overrides cannot be read, the bulk institution is returned.
        """
        institution = await self.get_by_di_code(di_code)
        if institution is None:
            return None

        try:
            overrides = await self._store.list_policy_overrides(di_code)
        except DatabaseError as e:
            logger.error(f"Serving bulk data for {di_code}, overrides unavailable: {e.message}")
            return institution

        return apply_overrides(institution, overrides)

    async def list_effective_institutions(self) -> List[Institution]:
        """
        Whole collection with every institution's overrides merged on top.

        Overrides are read fresh on each call; only the bulk list is cached.
        If overrides cannot be read, the bulk collection is returned.
        """
        institutions = await self.list_institutions()

        try:
            overrides = await self._store.list_all_policy_overrides()
        except DatabaseError as e:
            logger.error(f"Serving bulk data, overrides unavailable: {e.message}")
            return institutions

        by_institution: Dict[int, List[OverrideRecord]] = defaultdict(list)
        for record in overrides:
            by_institution[record.institution_key].append(record)

        return [
            apply_overrides(i, by_institution[i.di_code]) if i.di_code in by_institution else i
            for i in institutions
        ]

    async def search(
        self,
        criteria: Optional[FilterCriteria] = None,
        query: Optional[str] = None,
        sort: Union[SortOrder, str] = SortOrder.NAME,
        limit: Optional[int] = None,
    ) -> List[Institution]:
        """
        Text search, then criteria filter, then sort, then limit.

        Args:
            criteria: Filter criteria (None for no restriction)
            query: Free-text match on name, city or state
            sort: Result ordering
            limit: Maximum results, None for all
        """
        institutions = await self.list_effective_institutions()
        matched = search_institutions(institutions, query)
        filtered = filter_institutions(matched, criteria)
        ordered = sort_institutions(filtered, sort)

        logger.info(
            f"Search matched {len(ordered)} of {len(institutions)} institutions"
        )
        return ordered[:limit] if limit is not None else ordered

    async def exam_statistics(self, exam_name: str) -> Optional[ExamStatistics]:
        canonical = resolve_exam_name(exam_name)
        if canonical is None:
            return None
        return exam_statistics(await self.list_effective_institutions(), canonical)

    async def summary(self) -> CollectionSummary:
        return collection_summary(await self.list_effective_institutions())
