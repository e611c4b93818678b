"""
Knowledge Scout Backend - Chat Routes
=====================================

Sessions belong to the authenticated user; the `userId` sent by the client
(query parameter or body) must match the token's user, otherwise 403.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from scout.database import get_db_session
from scout.dependencies import ensure_same_user, get_chat_service, get_current_user
from scout.models import User
from scout.schemas.chat import (
    ChatSessionResponse,
    ChatSessionsResponse,
    CreateChatSessionRequest,
    MessagesResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from scout.schemas.common import ErrorResponse, MessageResponse
from scout.services.chat_service import ChatService

router = APIRouter(prefix="/api/chat", tags=["Chat"])

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Session or document not found"}}


@router.post("/sessions", status_code=201, response_model=ChatSessionResponse, responses=NOT_FOUND)
async def create_session(
    body: CreateChatSessionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    chat: ChatService = Depends(get_chat_service),
) -> ChatSessionResponse:
    ensure_same_user(body.user_id, user)
    return await chat.create_session(db, user, body.document_id, body.title)


@router.get("/sessions", response_model=ChatSessionsResponse)
async def list_sessions(
    user_id: str = Query(..., alias="userId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    chat: ChatService = Depends(get_chat_service),
) -> ChatSessionsResponse:
    ensure_same_user(user_id, user)
    return await chat.list_sessions(db, user)


@router.get("/sessions/{session_id}", response_model=MessagesResponse, responses=NOT_FOUND)
async def get_session(
    session_id: str,
    user_id: str = Query(..., alias="userId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    chat: ChatService = Depends(get_chat_service),
) -> MessagesResponse:
    ensure_same_user(user_id, user)
    return await chat.list_messages(db, user, session_id)


@router.post(
    "/sessions/{session_id}/messages",
    response_model=SendMessageResponse,
    responses={
        **NOT_FOUND,
        422: {"model": ErrorResponse, "description": "Document not processed yet"},
        503: {"model": ErrorResponse, "description": "AI service unavailable"},
    },
)
async def send_message(
    session_id: str,
    body: SendMessageRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    chat: ChatService = Depends(get_chat_service),
) -> SendMessageResponse:
    ensure_same_user(body.user_id, user)
    return await chat.send_message(db, user, session_id, body.message)


@router.get("/sessions/{session_id}/messages", response_model=MessagesResponse, responses=NOT_FOUND)
async def get_messages(
    session_id: str,
    user_id: str = Query(..., alias="userId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    chat: ChatService = Depends(get_chat_service),
) -> MessagesResponse:
    ensure_same_user(user_id, user)
    return await chat.list_messages(db, user, session_id)


@router.delete("/sessions/{session_id}", response_model=MessageResponse, responses=NOT_FOUND)
async def delete_session(
    session_id: str,
    user_id: str = Query(..., alias="userId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    chat: ChatService = Depends(get_chat_service),
) -> MessageResponse:
    ensure_same_user(user_id, user)
    return await chat.delete_session(db, user, session_id)
