"""
Knowledge Scout Backend - Auth Service Unit Tests
=================================================

What:  Password hashing, token issue/verify and demo account seeding.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from scout.exceptions import AuthenticationError, ConflictError
from scout.models import User
from scout.services.auth_service import AuthService


@pytest.fixture
def auth(settings) -> AuthService:
    return AuthService(settings)


class TestPasswords:

    def test_hash_verifies_only_the_right_password(self, auth):
        hashed = auth.hash_password("admin123")

        assert hashed != "admin123"
        assert auth.verify_password("admin123", hashed)
        assert not auth.verify_password("admin124", hashed)


class TestTokens:

    def test_issued_token_decodes_to_user(self, auth):
        user = User(id="u-1", name="Ada", email="ada@mail.com", password_hash="x")

        payload = auth.decode_token(auth.issue_token(user))

        assert payload["sub"] == "u-1"
        assert payload["email"] == "ada@mail.com"

    def test_expired_token_is_rejected(self, auth, settings):
        token = jwt.encode(
            {"sub": "u-1", "type": "access", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(AuthenticationError):
            auth.decode_token(token)

    def test_foreign_signature_is_rejected(self, auth, settings):
        token = jwt.encode(
            {"sub": "u-1", "type": "access"}, "another-secret", algorithm=settings.jwt_algorithm
        )

        with pytest.raises(AuthenticationError):
            auth.decode_token(token)

    def test_token_without_access_type_is_rejected(self, auth, settings):
        token = jwt.encode({"sub": "u-1"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)

        with pytest.raises(AuthenticationError):
            auth.decode_token(token)


class TestUsers:

    @pytest.mark.asyncio
    async def test_register_login_and_conflict(self, app):
        auth: AuthService = app.state.auth_service

        async with app.state.database.session() as db:
            registered = await auth.register(db, name="Ada", email="Ada@Mail.com", password="lovelace")
            assert registered.user.email == "ada@mail.com"

            logged_in = await auth.login(db, email="ada@mail.com", password="lovelace")
            assert logged_in.user.id == registered.user.id

            with pytest.raises(ConflictError):
                await auth.register(db, name="Ada", email="ada@mail.com", password="lovelace")

            with pytest.raises(AuthenticationError):
                await auth.login(db, email="ada@mail.com", password="wrong")

    @pytest.mark.asyncio
    async def test_demo_user_is_created_once(self, app):
        auth: AuthService = app.state.auth_service

        async with app.state.database.session() as db:
            assert await auth.ensure_demo_user(db) is True
            assert await auth.ensure_demo_user(db) is False
            demo = await auth.get_user_by_email(db, "admin@mail.com")

        assert demo is not None
        assert auth.verify_password("admin123", demo.password_hash)
