"""
University Routes

Public endpoints for the student-facing search: exam catalog, per-exam
statistics, multi-criteria search, institution detail and map markers.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from clepfinder.api.dependencies import CatalogServiceDep, MapServiceDep
from clepfinder.domain.catalog import EXAM_CATALOG, is_catalog_exam, resolve_exam_name
from clepfinder.domain.filtering import FilterCriteria
from clepfinder.domain.models import SortOrder, UserExamScore
from clepfinder.infrastructure.exceptions import NotFoundError


router = APIRouter(prefix="/api/universities", tags=["Universities"])


# ============================================================================
# Request/Response Models
# ============================================================================

class UserExamScoreRequest(BaseModel):
    exam: str
    score: Optional[float] = Field(None, ge=0)


class SearchRequest(BaseModel):
    """Search criteria; every field is optional."""
    query: Optional[str] = Field(None, max_length=200, description="Name, city or state text")
    state: Optional[str] = Field(None, max_length=50)
    min_score: Optional[float] = Field(None, ge=0)
    min_credits: Optional[float] = Field(None, ge=0)
    exam_names: Optional[List[str]] = None
    user_exam_scores: List[UserExamScoreRequest] = Field(default_factory=list)
    min_exams_accepted: Optional[int] = Field(None, ge=0)
    sort: SortOrder = SortOrder.NAME
    limit: Optional[int] = Field(None, ge=1, le=1000)
    include_policies: bool = False

    def to_criteria(self) -> FilterCriteria:
        """Exam names are mapped onto their catalog spelling; unknown names are kept."""
        exam_names = None
        if self.exam_names:
            exam_names = [resolve_exam_name(name) or name for name in self.exam_names]

        return FilterCriteria(
            state=self.state or None,
            min_score=self.min_score,
            min_credits=self.min_credits,
            exam_names=exam_names,
            user_exam_scores=[
                UserExamScore(exam=resolve_exam_name(s.exam) or s.exam, score=s.score)
                for s in self.user_exam_scores
            ],
            min_exams_accepted=self.min_exams_accepted,
        )


class SearchResponse(BaseModel):
    total: int
    results: List[dict]


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/exams")
async def list_exams():
    """The CLEP exam catalog in canonical order."""
    return {"exams": list(EXAM_CATALOG)}


@router.get("/summary")
async def get_summary(service: CatalogServiceDep):
    """Collection-wide averages."""
    summary = await service.summary()
    return summary.to_dict()


@router.get("/exams/{exam_name}/statistics")
async def get_exam_statistics(exam_name: str, service: CatalogServiceDep):
    """Acceptance statistics for one exam across all institutions."""
    if not is_catalog_exam(exam_name):
        raise HTTPException(status_code=404, detail=f"Unknown exam: {exam_name}")

    statistics = await service.exam_statistics(exam_name)
    if statistics is None:
        raise HTTPException(status_code=404, detail=f"No institution accepts {exam_name}")
    return statistics.to_dict()


@router.post("/search", response_model=SearchResponse)
async def search_universities(request: SearchRequest, service: CatalogServiceDep):
    """
    Filter and sort institutions.

    Institutions without any accepted exam are kept by score and credit
    thresholds, but dropped as soon as exam_names is given.
    """
    results = await service.search(
        criteria=request.to_criteria(),
        query=request.query,
        sort=request.sort,
    )
    limited = results[:request.limit] if request.limit else results
    return SearchResponse(
        total=len(results),
        results=[i.to_dict(include_policies=request.include_policies) for i in limited],
    )


@router.get("/map")
async def get_map_markers(
    service: CatalogServiceDep,
    map_service: MapServiceDep,
    state: Optional[str] = Query(None, max_length=50),
    limit: int = Query(50, ge=1, le=500),
):
    """Geocoded markers; institutions that cannot be located are omitted."""
    institutions = await service.search(criteria=FilterCriteria(state=state))
    markers = await map_service.build_markers(institutions, limit=limit)
    return {"markers": [m.to_dict() for m in markers]}


@router.get("/di/{di_code}")
async def get_university_by_di_code(di_code: int, service: CatalogServiceDep):
    """Institution by DI code, with its overrides applied."""
    institution = await service.get_effective_institution(di_code)
    if institution is None:
        raise NotFoundError(
            f"No institution with DI code {di_code}",
            operation="get_university_by_di_code",
            table="universities",
        )
    return institution.to_dict()


@router.get("/{institution_id}")
async def get_university(institution_id: int, service: CatalogServiceDep):
    institution = await service.get_institution(institution_id)
    if institution is None:
        raise NotFoundError(
            f"No institution with id {institution_id}",
            operation="get_university",
            table="universities",
        )

    # Records without a DI code cannot carry overrides
    if institution.di_code <= 0:
        return institution.to_dict()

    effective = await service.get_effective_institution(institution.di_code)
    return (effective or institution).to_dict()
