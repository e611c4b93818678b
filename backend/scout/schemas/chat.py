from datetime import datetime
from typing import List, Optional

from pydantic import Field

from scout.schemas.base import CamelModel


class CreateChatSessionRequest(CamelModel):
    document_id: str
    user_id: str
    title: Optional[str] = Field(default=None, max_length=255)


class SendMessageRequest(CamelModel):
    message: str = Field(min_length=1)
    user_id: str


class ChatSessionOut(CamelModel):
    id: str
    user_id: str
    document_id: str
    title: str
    created_at: datetime
    updated_at: datetime


class ChatMessageOut(CamelModel):
    id: str
    session_id: str
    role: str = Field(description="user or assistant")
    content: str
    created_at: datetime


class ChatSessionResponse(CamelModel):
    session: ChatSessionOut


class ChatSessionsResponse(CamelModel):
    sessions: List[ChatSessionOut]


class MessagesResponse(CamelModel):
    messages: List[ChatMessageOut]


class SendMessageResponse(CamelModel):
    user_message: ChatMessageOut
    assistant_message: ChatMessageOut
