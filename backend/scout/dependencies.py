"""
Knowledge Scout Backend - FastAPI Dependencies
==============================================

What:  Per-request access to the services stored on app.state, and the
       authenticated user.
Why:   Services belong to an app instance (not to module globals), so two
       apps in one process never share state.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from scout.database import get_db_session
from scout.exceptions import AuthenticationError, PermissionDeniedError
from scout.models import User
from scout.services.ai_service import AIService
from scout.services.auth_service import AuthService
from scout.services.chat_service import ChatService
from scout.services.document_service import DocumentService

# auto_error=False: a missing header becomes our structured 401, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """
    Resolve `Authorization: Bearer <token>` to a User.

    Raises:
        AuthenticationError: header missing, token invalid/expired, or the
        user no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    payload = auth.decode_token(credentials.credentials)
    return await auth.get_user(db, payload["sub"])


def ensure_same_user(user_id: str, user: User) -> None:
    """The userId a client sends must be the token's own user."""
    if user_id != user.id:
        raise PermissionDeniedError(
            "userId does not match the authenticated user",
            context={"user_id": user_id},
        )
