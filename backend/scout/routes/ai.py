"""
Knowledge Scout Backend - AI Routes
===================================

POST /api/documents/{id}/summary    {userId} → SummaryResponse
POST /api/documents/{id}/questions  {userId} → QuestionsResponse

Both require the document to be processed ('completed'); otherwise 422.
LLM outages surface as 503 through the global handlers.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scout.database import get_db_session
from scout.dependencies import ensure_same_user, get_ai_service, get_current_user
from scout.models import User
from scout.schemas.ai import QuestionsResponse, SummaryResponse, UserScopedRequest
from scout.schemas.common import ErrorResponse
from scout.services.ai_service import AIService

router = APIRouter(prefix="/api/documents", tags=["AI"])

RESPONSES = {
    404: {"model": ErrorResponse, "description": "Document not found"},
    422: {"model": ErrorResponse, "description": "Document not processed yet"},
    503: {"model": ErrorResponse, "description": "AI service unavailable"},
}


@router.post("/{document_id}/summary", response_model=SummaryResponse, responses=RESPONSES)
async def generate_summary(
    document_id: str,
    body: UserScopedRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    ai: AIService = Depends(get_ai_service),
) -> SummaryResponse:
    ensure_same_user(body.user_id, user)
    return await ai.generate_summary(db, user, document_id)


@router.post("/{document_id}/questions", response_model=QuestionsResponse, responses=RESPONSES)
async def generate_questions(
    document_id: str,
    body: UserScopedRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    ai: AIService = Depends(get_ai_service),
) -> QuestionsResponse:
    ensure_same_user(body.user_id, user)
    return await ai.generate_questions(db, user, document_id)
