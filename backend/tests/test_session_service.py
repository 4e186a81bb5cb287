"""
Evanescent Backend: Session Service Tests
===========================================

What:  Signup, login, refresh and user-info against a real SQLite database.

What we test:
    ✅ Signup stores a hash, never the plaintext
    ✅ Duplicate email is rejected and leaves the first account untouched
    ✅ Unknown email and wrong password fail identically, with the same hashing work
    ✅ Refresh: missing, tampered, expired and valid refresh tokens
    ✅ User info counts writeups and sums likes
    ✅ Store failures surface as StoreError
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from evanescent.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    NoRefreshTokenError,
    NotFoundError,
    StoreError,
)
from evanescent.models.user import User
from evanescent.models.writeup import Writeup


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_creates_user_with_hash(self, db_session, session_service, password_service):
        user = await session_service.signup(db_session, name="Ada", email="ada@example.com", password="pw-1")
        await db_session.commit()

        assert user.id is not None
        assert user.email == "ada@example.com"

        stored = (await db_session.execute(select(User).where(User.id == user.id))).scalar_one()
        assert stored.password_hash != "pw-1"
        assert password_service.verify("pw-1", stored.password_hash)

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, database, session_service):
        async with database.session() as s:
            await session_service.signup(s, name="First", email="dup@example.com", password="one")
            await s.commit()

        async with database.session() as s:
            with pytest.raises(DuplicateEmailError) as exc_info:
                await session_service.signup(s, name="Second", email="dup@example.com", password="two")
            await s.rollback()
        assert exc_info.value.message == "Email already exists."

        async with database.session() as s:
            users = (await s.execute(select(User).where(User.email == "dup@example.com"))).scalars().all()
        assert len(users) == 1
        assert users[0].name == "First"


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_issues_token_pair(self, db_session, session_service, token_service):
        user = await session_service.signup(db_session, name="Bo", email="bo@example.com", password="pw")
        await db_session.commit()

        pair = await session_service.login(db_session, email="bo@example.com", password="pw")

        assert pair.user_id == user.id
        assert token_service.verify_access_token(pair.access_token).user_id == user.id
        assert token_service.verify_refresh_token(pair.refresh_token).user_id == user.id

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_are_indistinguishable(self, db_session, session_service):
        await session_service.signup(db_session, name="Cy", email="cy@example.com", password="right")
        await db_session.commit()

        with pytest.raises(InvalidCredentialsError) as unknown:
            await session_service.login(db_session, email="nobody@example.com", password="right")
        with pytest.raises(InvalidCredentialsError) as wrong:
            await session_service.login(db_session, email="cy@example.com", password="wrong")

        assert unknown.value.message == wrong.value.message == "Invalid credentials."
        assert unknown.value.status_code == wrong.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_email_still_verifies_a_hash(self, db_session, session_service, password_service):
        with patch.object(password_service, "verify", wraps=password_service.verify) as verify:
            with pytest.raises(InvalidCredentialsError):
                await session_service.login(db_session, email="nobody@example.com", password="guess")

        verify.assert_called_once_with("guess", password_service.dummy_hash)

    @pytest.mark.asyncio
    async def test_store_failure_becomes_store_error(self, mock_db_session, session_service):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("db down"))

        with pytest.raises(StoreError) as exc_info:
            await session_service.login(mock_db_session, email="a@example.com", password="pw")
        assert exc_info.value.context["operation"] == "login"


class TestRefresh:
    def test_missing_cookie(self, session_service):
        with pytest.raises(NoRefreshTokenError):
            session_service.refresh_access_token(None)
        with pytest.raises(NoRefreshTokenError):
            session_service.refresh_access_token("")

    def test_tampered_token(self, session_service, token_service):
        token = token_service.issue_refresh_token(5)
        with pytest.raises(InvalidRefreshTokenError):
            session_service.refresh_access_token(token[:-4] + "AAAA")

    def test_access_token_is_not_a_refresh_token(self, session_service, token_service):
        with pytest.raises(InvalidRefreshTokenError):
            session_service.refresh_access_token(token_service.issue_access_token(5))

    def test_expired_token(self, session_service, token_service):
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        token = token_service.issue_refresh_token(5, now=issued)

        with pytest.raises(InvalidRefreshTokenError) as exc_info:
            session_service.refresh_access_token(token)
        assert exc_info.value.context["reason"] == "expired"

    def test_valid_token_mints_access_token(self, session_service, token_service):
        access = session_service.refresh_access_token(token_service.issue_refresh_token(5))
        assert token_service.verify_access_token(access).user_id == 5


class TestUserInfo:
    @pytest.mark.asyncio
    async def test_counts_and_likes(self, db_session, session_service):
        user = await session_service.signup(db_session, name="Di", email="di@example.com", password="pw")
        db_session.add_all([
            Writeup(user_id=user.id, title="one", content="", likes=3),
            Writeup(user_id=user.id, title="two", content="", likes=4),
        ])
        await db_session.commit()

        info = await session_service.get_user_info(db_session, user.id)

        assert info.name == "Di"
        assert info.email == "di@example.com"
        assert info.post_count == 2
        assert info.total_likes == 7

    @pytest.mark.asyncio
    async def test_user_without_writeups(self, db_session, session_service):
        user = await session_service.signup(db_session, name="Ed", email="ed@example.com", password="pw")
        await db_session.commit()

        info = await session_service.get_user_info(db_session, user.id)
        assert info.post_count == 0
        assert info.total_likes == 0

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session, session_service):
        with pytest.raises(NotFoundError):
            await session_service.get_user_info(db_session, 999)
