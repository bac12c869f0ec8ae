"""
Institution Routes

Endpoints for the institution portal: reading and editing an
institution's exam overrides, the editable data table, and the
update assistant.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from clepfinder.api.dependencies import (
    AssistantServiceDep,
    CatalogServiceDep,
    SessionActorDep,
    UpdateServiceDep,
)
from clepfinder.domain.overrides import ExamRow, UpdateAction, build_exam_rows, row_statistics


router = APIRouter(prefix="/api/institutions", tags=["Institutions"])


# ============================================================================
# Request/Response Models
# ============================================================================

class OverrideUpdateRequest(BaseModel):
    """Fields to change; omitted fields keep their stored value."""
    min_score: Optional[str] = Field(None, max_length=20)
    credits: Optional[str] = Field(None, max_length=20)
    course_code: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)


class UpdateActionRequest(BaseModel):
    exam: str = Field(..., min_length=1, max_length=100)
    field: str = Field(..., min_length=1, max_length=50)
    value: str = Field("", max_length=255)


class BatchUpdateRequest(BaseModel):
    actions: List[UpdateActionRequest] = Field(..., max_length=200)


class ExamRowModel(BaseModel):
    exam_name: str
    min_score: str = ""
    credits: str = ""
    course_code: str = ""
    last_updated: str = "Never"
    category: str = "General"

    def to_row(self) -> ExamRow:
        return ExamRow(**self.model_dump())


class SaveChangesRequest(BaseModel):
    original: List[ExamRowModel]
    current: List[ExamRowModel]


class AssistantRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/{di_code}/overrides")
async def list_overrides(di_code: int, service: UpdateServiceDep):
    await service.initialize_defaults(di_code)
    overrides = await service.get_overrides(di_code)
    return {"overrides": [o.to_dict() for o in overrides]}


@router.get("/{di_code}/overrides/{exam_name}")
async def get_override(di_code: int, exam_name: str, service: UpdateServiceDep):
    override = await service.get_override(di_code, exam_name)
    if override is None:
        raise HTTPException(status_code=404, detail=f"No override for {exam_name}")
    return override.to_dict()


@router.put("/{di_code}/overrides/{exam_name}")
async def upsert_override(
    di_code: int,
    exam_name: str,
    request: OverrideUpdateRequest,
    service: UpdateServiceDep,
    actor: SessionActorDep,
):
    """
    Merge the provided fields into the override for one exam.

    Unknown exams and non-positive scores or credits are rejected with
    400; a store failure reports success=false rather than an error status.
    """
    fields = request.model_dump(exclude_unset=True)
    success = await service.upsert_override(di_code, exam_name, fields)
    return {
        "success": success,
        "message": "Saved" if success else f"Failed to save {exam_name}, please retry",
    }


@router.post("/{di_code}/overrides/batch")
async def apply_batch(
    di_code: int,
    request: BatchUpdateRequest,
    service: UpdateServiceDep,
    actor: SessionActorDep,
):
    """Apply confirmed update actions; partial success is reported with counts."""
    actions = [UpdateAction(exam=a.exam, field=a.field, value=a.value) for a in request.actions]
    result = await service.apply_actions(di_code, actions)
    return result.to_dict()


@router.get("/{di_code}/exam-data")
async def get_exam_data(
    di_code: int,
    catalog: CatalogServiceDep,
    service: UpdateServiceDep,
):
    """Editable rows (overrides over bulk values) plus dashboard statistics."""
    await service.initialize_defaults(di_code)
    institution = await catalog.get_by_di_code(di_code)
    overrides = await service.get_overrides(di_code)

    if institution is None and not overrides:
        raise HTTPException(status_code=404, detail=f"No institution with DI code {di_code}")

    rows = build_exam_rows(institution, overrides)
    return {
        "institution": institution.to_dict(include_policies=False) if institution else None,
        "rows": [r.to_dict() for r in rows],
        "statistics": row_statistics(rows).to_dict(),
    }


@router.post("/{di_code}/exam-data/save")
async def save_exam_data(
    di_code: int,
    request: SaveChangesRequest,
    service: UpdateServiceDep,
    actor: SessionActorDep,
):
    """Persist only the cells that changed between original and current rows."""
    result = await service.save_changes(
        di_code,
        [r.to_row() for r in request.original],
        [r.to_row() for r in request.current],
    )
    return result.to_dict()


@router.post("/{di_code}/assistant/propose")
async def propose_updates(
    di_code: int,
    request: AssistantRequest,
    assistant: AssistantServiceDep,
    actor: SessionActorDep,
):
    """
    Extract update actions from a chat message.

    Nothing is saved here; confirmed actions go to /overrides/batch.
    """
    proposal = await assistant.propose_updates(request.message)
    return proposal.to_dict()
