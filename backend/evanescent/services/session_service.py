"""
Evanescent Backend: Session Service
=====================================

What:  Signup, login, access-token refresh and the user-info summary.
Why:   Keeps credential handling and token issuance out of the route layer,
       so the whole lifecycle can be tested against a database without HTTP.
How:   Composes PasswordService (one-way hash + verify), TokenService (two
       independently keyed JWTs) and the users table.

Client states:
    Anonymous ──login──▶ Authenticated-Active ──access expires──▶ Authenticated-Stale
        ▲                        ▲                                        │
        │                        └──────────── refresh ───────────────────┘
        └─────────────── logout (cookie cleared) ◀── any authenticated state

    Refresh mints a new access token only. The refresh token is reused until
    its own expiry; there is no per-use rotation and no server-side registry.

Error Handling Strategy:
    Expected outcomes raise domain errors (DuplicateEmailError,
    InvalidCredentialsError, NoRefreshTokenError, InvalidRefreshTokenError,
    NotFoundError). SQLAlchemy failures become StoreError at this boundary.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from evanescent.database import translate_store_errors
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
from evanescent.schemas.auth import UserInfoResponse, UserPublic
from evanescent.services.password_service import PasswordService
from evanescent.services.token_service import (
    TokenExpiredError,
    TokenService,
    TokenVerificationError,
)

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


@dataclass(frozen=True)
class SessionPair:
    """Tokens issued on login. Never persisted server-side."""
    access_token: str
    refresh_token: str
    user_id: int


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    # SQLite reports constraint failures only through the message
    return "UNIQUE" in str(orig).upper()


class SessionService:
    """
    Authentication lifecycle for a single client.

    Stateless apart from its collaborators; one instance is built at startup
    and shared by every request.
    """

    def __init__(self, passwords: PasswordService, tokens: TokenService):
        self.passwords = passwords
        self.tokens = tokens

    async def signup(
        self,
        db: AsyncSession,
        name: str,
        email: str,
        password: str,
    ) -> UserPublic:
        """
        Create an account.

        The argon2 hash is computed in the thread pool so the event loop keeps
        serving other requests while it runs.

        Raises:
            DuplicateEmailError: email already registered (→ 400)
            StoreError: any other persistence failure (→ 500)
        """
        password_hash = await run_in_threadpool(self.passwords.hash, password)
        user = User(name=name, email=email, password_hash=password_hash)

        try:
            db.add(user)
            await db.flush()
            await db.commit()
        except IntegrityError as e:
            if _is_unique_violation(e):
                logger.info("Signup rejected: email already registered")
                raise DuplicateEmailError() from e
            logger.error("Integrity error during signup", exc_info=True)
            raise StoreError(context={"operation": "signup"}) from e
        except SQLAlchemyError as e:
            logger.error("Database error during signup: %s", type(e).__name__, exc_info=True)
            raise StoreError(context={"operation": "signup", "error_type": type(e).__name__}) from e

        logger.info("User %s signed up", user.id)
        return UserPublic.model_validate(user)

    async def login(self, db: AsyncSession, email: str, password: str) -> SessionPair:
        """
        Verify credentials and issue an access + refresh token pair.

        Unknown email and wrong password raise the same InvalidCredentialsError.
        """
        with translate_store_errors("login"):
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()

        if user is None:
            # Same argon2 work as a wrong password, so timing does not reveal
            # whether the email is registered
            await run_in_threadpool(self.passwords.verify, password, self.passwords.dummy_hash)
            raise InvalidCredentialsError()

        matches = await run_in_threadpool(self.passwords.verify, password, user.password_hash)
        if not matches:
            raise InvalidCredentialsError()

        logger.info("User %s logged in", user.id)
        return SessionPair(
            access_token=self.tokens.issue_access_token(user.id),
            refresh_token=self.tokens.issue_refresh_token(user.id),
            user_id=user.id,
        )

    def refresh_access_token(self, refresh_token: Optional[str]) -> str:
        """
        Mint a new access token from the refresh cookie value.

        Raises:
            NoRefreshTokenError: cookie absent or empty (→ 401)
            InvalidRefreshTokenError: bad signature or expired (→ 403)
        """
        if not refresh_token:
            raise NoRefreshTokenError()

        try:
            claims = self.tokens.verify_refresh_token(refresh_token)
        except TokenExpiredError as e:
            raise InvalidRefreshTokenError(context={"reason": "expired"}) from e
        except TokenVerificationError as e:
            raise InvalidRefreshTokenError(context={"reason": "invalid"}) from e

        return self.tokens.issue_access_token(claims.user_id)

    async def get_user_info(self, db: AsyncSession, user_id: int) -> UserInfoResponse:
        """Name, email, number of writeups and total likes received."""
        with translate_store_errors("user_info", user_id=user_id):
            result = await db.execute(select(User.name, User.email).where(User.id == user_id))
            row = result.one_or_none()
            if row is None:
                raise NotFoundError(resource="user", resource_id=user_id, message="User not found")

            stats = await db.execute(
                select(
                    func.count(Writeup.id),
                    func.coalesce(func.sum(Writeup.likes), 0),
                ).where(Writeup.user_id == user_id)
            )
            post_count, total_likes = stats.one()

        return UserInfoResponse(
            name=row.name,
            email=row.email,
            post_count=int(post_count),
            total_likes=int(total_likes),
        )
