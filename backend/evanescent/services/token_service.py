"""
Evanescent Backend: Token Issuer
==================================

What:  Issues and verifies the two signed, time-bound JWTs that represent a
       logged-in user.
How:   PyJWT, HS256, payload `{"id": <user id>, "iat", "exp"}`.

    ┌───────────────┬────────────────────────┬──────────────────────────┐
    │ token         │ secret                 │ lifetime                 │
    ├───────────────┼────────────────────────┼──────────────────────────┤
    │ access        │ ACCESS_TOKEN_SECRET    │ ACCESS_TOKEN_TTL_MINUTES │
    │ refresh       │ REFRESH_TOKEN_SECRET   │ REFRESH_TOKEN_TTL_DAYS   │
    └───────────────┴────────────────────────┴──────────────────────────┘

Tokens are self-contained: the server keeps no registry of issued tokens,
so an access token stays valid until it expires, even after logout.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from evanescent.config import Settings, settings as default_settings


class TokenVerificationError(Exception):
    """Base class for tokens that must not be trusted."""


class TokenExpiredError(TokenVerificationError):
    """Signature is valid but `exp` is in the past."""


class TokenSignatureError(TokenVerificationError):
    """Signature does not verify, the token is malformed, or the payload lacks an id."""


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified token."""
    user_id: int


class TokenService:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
    ):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "TokenService":
        return cls(
            access_secret=config.access_token_secret,
            refresh_secret=config.refresh_token_secret,
            access_ttl=timedelta(minutes=config.access_token_ttl_minutes),
            refresh_ttl=timedelta(days=config.refresh_token_ttl_days),
            algorithm=config.jwt_algorithm,
        )

    def _issue(self, user_id: int, secret: str, ttl: timedelta, now: Optional[datetime]) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "id": user_id,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def issue_access_token(self, user_id: int, now: Optional[datetime] = None) -> str:
        """Create a short-lived access token signed with the access secret."""
        return self._issue(user_id, self.access_secret, self.access_ttl, now)

    def issue_refresh_token(self, user_id: int, now: Optional[datetime] = None) -> str:
        """Create a long-lived refresh token signed with the refresh secret."""
        return self._issue(user_id, self.refresh_secret, self.refresh_ttl, now)

    def verify(self, token: str, secret: str) -> TokenClaims:
        """
        Verify signature and expiry, and return the embedded identity.

        Raises:
            TokenExpiredError: the token expired.
            TokenSignatureError: anything else that makes the token untrustworthy.
        """
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "id"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired") from None
        except jwt.InvalidTokenError as e:
            raise TokenSignatureError(str(e)) from None

        user_id = payload.get("id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise TokenSignatureError("Token payload has no usable id")
        return TokenClaims(user_id=user_id)

    def verify_access_token(self, token: str) -> TokenClaims:
        return self.verify(token, self.access_secret)

    def verify_refresh_token(self, token: str) -> TokenClaims:
        return self.verify(token, self.refresh_secret)
