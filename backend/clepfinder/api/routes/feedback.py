"""
Feedback Routes

Up/down votes on institution exam policies. Votes belong to the
session actor and last only as long as the process.
"""

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from clepfinder.api.dependencies import FeedbackLedgerDep
from clepfinder.domain.catalog import resolve_exam_name
from clepfinder.domain.models import VoteDirection
from clepfinder.infrastructure.exceptions import ValidationError


router = APIRouter(prefix="/api/feedback", tags=["Feedback"])


class VoteRequest(BaseModel):
    institution_id: int = Field(..., ge=1)
    exam_name: str = Field(..., min_length=1, max_length=100)
    direction: VoteDirection


def _canonical_exam(exam_name: str) -> str:
    canonical = resolve_exam_name(exam_name)
    if canonical is None:
        raise ValidationError(f"Unknown exam: {exam_name}", exam=exam_name)
    return canonical


@router.post("/votes")
async def cast_vote(request: VoteRequest, ledger: FeedbackLedgerDep):
    """Vote; repeating the current vote clears it."""
    exam = _canonical_exam(request.exam_name)
    vote = ledger.vote(request.institution_id, exam, request.direction)
    return {
        "institution_id": request.institution_id,
        "exam_name": exam,
        "vote": vote.value if vote else None,
        "counts": ledger.counts_for(exam).to_dict(),
    }


@router.get("/votes")
async def get_vote(
    ledger: FeedbackLedgerDep,
    institution_id: int = Query(..., ge=1),
    exam_name: str = Query(..., min_length=1),
):
    exam = _canonical_exam(exam_name)
    vote = ledger.vote_for(institution_id, exam)
    return {
        "institution_id": institution_id,
        "exam_name": exam,
        "vote": vote.value if vote else None,
    }


@router.get("/exams/{exam_name}")
async def get_exam_counts(exam_name: str, ledger: FeedbackLedgerDep):
    exam = _canonical_exam(exam_name)
    return {"exam_name": exam, **ledger.counts_for(exam).to_dict()}
