"""
Knowledge Scout Backend - Auth Service
======================================

What:  Registration, login, bearer token issue/verify, demo account seeding.
How:   bcrypt password hashes, HS256 JWTs (python-jose). The token subject
       is the user id; routes resolve it back to a User row per request.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scout.config import Settings
from scout.exceptions import AuthenticationError, ConflictError
from scout.models import User
from scout.schemas.auth import AuthResponse, UserOut

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(self, settings: Settings):
        self.settings = settings

    # ── Passwords ─────────────────────────────────────────────────────────

    @staticmethod
    def hash_password(password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        return bcrypt.checkpw(password.encode(), password_hash.encode())

    # ── Tokens ────────────────────────────────────────────────────────────

    def issue_token(self, user: User) -> str:
        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=self.settings.access_token_expires_minutes
        )
        payload = {"sub": user.id, "email": user.email, "type": "access", "exp": expires_at}
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Raises:
            AuthenticationError: bad signature, expired, or wrong token type.
        """
        try:
            payload = jwt.decode(
                token, self.settings.jwt_secret, algorithms=[self.settings.jwt_algorithm]
            )
        except JWTError as e:
            raise AuthenticationError("Invalid or expired token") from e
        if payload.get("type") != "access" or not payload.get("sub"):
            raise AuthenticationError("Invalid or expired token")
        return payload

    # ── Users ─────────────────────────────────────────────────────────────

    async def get_user_by_email(self, db: AsyncSession, email: str):
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_user(self, db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            # Token outlived its user
            raise AuthenticationError("User no longer exists")
        return user

    async def register(self, db: AsyncSession, name: str, email: str, password: str) -> AuthResponse:
        if await self.get_user_by_email(db, email) is not None:
            raise ConflictError("An account with this email already exists")

        user = User(name=name, email=email.lower(), password_hash=self.hash_password(password))
        db.add(user)
        await db.commit()
        logger.info("Registered user %s", user.id)

        return AuthResponse(
            message="User registered successfully",
            token=self.issue_token(user),
            user=UserOut.model_validate(user),
        )

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        user = await self.get_user_by_email(db, email)
        if user is None or not self.verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        return AuthResponse(
            message="Login successful",
            token=self.issue_token(user),
            user=UserOut.model_validate(user),
        )

    async def ensure_demo_user(self, db: AsyncSession) -> bool:
        """
        Create the demo account if it does not exist yet.

        Returns True when the account was created, False when it was already
        there. Idempotent across restarts.
        """
        if await self.get_user_by_email(db, self.settings.demo_email) is not None:
            return False
        db.add(
            User(
                name=self.settings.demo_name,
                email=self.settings.demo_email.lower(),
                password_hash=self.hash_password(self.settings.demo_password),
            )
        )
        await db.commit()
        return True
