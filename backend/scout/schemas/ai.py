from typing import List

from scout.schemas.base import CamelModel


class UserScopedRequest(CamelModel):
    """Body of the summary and questions endpoints."""
    user_id: str


class SummaryResponse(CamelModel):
    document_id: str
    summary: str


class QuestionsResponse(CamelModel):
    document_id: str
    questions: List[str]
