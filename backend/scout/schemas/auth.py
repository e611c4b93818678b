from datetime import datetime

from pydantic import EmailStr, Field

from scout.schemas.base import CamelModel


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)


class UserOut(CamelModel):
    id: str
    name: str
    email: str
    created_at: datetime


class AuthResponse(CamelModel):
    """
    Returned by login and register.

    `token` is the bearer token the client stores and sends back as
    `Authorization: Bearer <token>`.
    """
    message: str
    token: str
    user: UserOut
