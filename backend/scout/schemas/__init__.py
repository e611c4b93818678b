"""
Knowledge Scout - Pydantic Request/Response Schemas
===================================================

What:  The API contract shared by the FastAPI routes (response_model) and
       the typed client (response validation).
Why:   One definition per envelope keeps both ends of the pipeline in step.
How:   Fields are snake_case in Python and camelCase on the wire.
"""

from scout.schemas.ai import QuestionsResponse, SummaryResponse, UserScopedRequest
from scout.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserOut
from scout.schemas.chat import (
    ChatMessageOut,
    ChatSessionOut,
    ChatSessionResponse,
    ChatSessionsResponse,
    CreateChatSessionRequest,
    MessagesResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from scout.schemas.common import (
    ErrorResponse,
    HealthResponse,
    LivenessResponse,
    MessageResponse,
    RootResponse,
)
from scout.schemas.documents import (
    DocumentOut,
    DocumentResponse,
    DocumentsResponse,
    ExtractionFailed,
    ExtractionResult,
    ExtractionSucceeded,
    ReprocessResponse,
)

__all__ = [
    "AuthResponse",
    "ChatMessageOut",
    "ChatSessionOut",
    "ChatSessionResponse",
    "ChatSessionsResponse",
    "CreateChatSessionRequest",
    "DocumentOut",
    "DocumentResponse",
    "DocumentsResponse",
    "ErrorResponse",
    "ExtractionFailed",
    "ExtractionResult",
    "ExtractionSucceeded",
    "HealthResponse",
    "LivenessResponse",
    "LoginRequest",
    "MessageResponse",
    "MessagesResponse",
    "QuestionsResponse",
    "RegisterRequest",
    "ReprocessResponse",
    "RootResponse",
    "SendMessageRequest",
    "SendMessageResponse",
    "SummaryResponse",
    "UserOut",
    "UserScopedRequest",
]
