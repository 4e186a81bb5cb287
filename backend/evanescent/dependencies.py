"""
Evanescent Backend: Request Dependencies
==========================================

What:  FastAPI dependencies that hand route handlers their collaborators and
       the authenticated user id.
How:   Services live on `app.state` (built by create_app); these functions
       only look them up, so tests can install differently configured
       services without patching modules.

AuthenticationGate (`get_current_user_id`):
    Authorization header missing / not "Bearer"  → UnauthenticatedError (401)
    signature or expiry check fails              → InvalidTokenError (403)
    otherwise                                    → the token's user id
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from evanescent.exceptions import InvalidTokenError, UnauthenticatedError
from evanescent.services.session_service import SessionService
from evanescent.services.token_service import TokenService, TokenVerificationError
from evanescent.services.writeup_service import WriteupService

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must map to our 401, not FastAPI's 403
_bearer = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_session_service(request: Request) -> SessionService:
    return request.app.state.session_service


def get_writeup_service(request: Request) -> WriteupService:
    return request.app.state.writeup_service


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> int:
    """Authenticate the request from its bearer access token."""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()

    try:
        claims = tokens.verify_access_token(credentials.credentials)
    except TokenVerificationError as e:
        logger.debug("Rejected access token: %s", e)
        raise InvalidTokenError() from e

    return claims.user_id
