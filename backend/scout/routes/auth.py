"""
Knowledge Scout Backend - Auth Routes
=====================================

POST /api/auth/register → 201 AuthResponse
POST /api/auth/login    → 200 AuthResponse
GET  /api/auth/me       → 200 UserOut (bearer token required)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scout.database import get_db_session
from scout.dependencies import get_auth_service, get_current_user
from scout.models import User
from scout.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserOut
from scout.schemas.common import ErrorResponse
from scout.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}},
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await auth.register(db, name=body.name, email=body.email, password=body.password)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await auth.login(db, email=body.email, password=body.password)


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(user)
