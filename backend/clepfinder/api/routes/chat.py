"""
Chat Routes

Student question answering over the institution database.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from clepfinder.api.dependencies import AssistantServiceDep, CatalogServiceDep


router = APIRouter(prefix="/api", tags=["Chat"])


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class ChatResponse(BaseModel):
    reply: str


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    catalog: CatalogServiceDep,
    assistant: AssistantServiceDep,
):
    """Answer a CLEP question; model failures come back as a friendly reply."""
    institutions = await catalog.list_effective_institutions()
    reply = await assistant.answer(institutions, request.message)
    return ChatResponse(reply=reply)
