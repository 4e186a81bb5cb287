"""
Evanescent Backend: Session Route Handlers
============================================

What:  POST /signup, /login, /refresh-token, /logout and GET /user-info.
How:   Thin handlers: parse the body, call SessionService, and deal with the
       one HTTP-specific concern the service cannot see: the refresh cookie.

Refresh cookie:
    Set on login, read on refresh, cleared on logout. HTTP-only (page
    scripts cannot read it), Secure, SameSite from settings, Max-Age equal to
    the refresh token lifetime. The access token is returned in the body only.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from evanescent.config import settings
from evanescent.database import get_db_session
from evanescent.dependencies import get_current_user_id, get_session_service
from evanescent.schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    SignupRequest,
    SignupResponse,
    UserInfoResponse,
)
from evanescent.schemas.common import ErrorResponse, MessageResponse
from evanescent.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh_token,
        max_age=settings.refresh_cookie_max_age,
        path="/",
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite=settings.refresh_cookie_samesite,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        path="/",
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite=settings.refresh_cookie_samesite,
    )


@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    response_model=SignupResponse,
    responses={
        400: {"description": "Email already exists", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
    sessions: SessionService = Depends(get_session_service),
) -> SignupResponse:
    user = await sessions.signup(db, name=body.name, email=body.email, password=body.password)
    return SignupResponse(user=user)


@router.post(
    "/login",
    response_model=AccessTokenResponse,
    responses={
        400: {"description": "Invalid credentials", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Log in and receive an access token",
    description=(
        "Returns the access token in the body and sets the refresh token as an "
        "HTTP-only cookie."
    ),
)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    sessions: SessionService = Depends(get_session_service),
) -> AccessTokenResponse:
    pair = await sessions.login(db, email=body.email, password=body.password)
    _set_refresh_cookie(response, pair.refresh_token)
    return AccessTokenResponse(access_token=pair.access_token)


@router.post(
    "/refresh-token",
    response_model=AccessTokenResponse,
    responses={
        401: {"description": "No refresh token cookie", "model": ErrorResponse},
        403: {"description": "Invalid or expired refresh token", "model": ErrorResponse},
    },
    summary="Exchange the refresh cookie for a new access token",
)
async def refresh_token(
    request: Request,
    sessions: SessionService = Depends(get_session_service),
) -> AccessTokenResponse:
    token = request.cookies.get(settings.refresh_cookie_name)
    return AccessTokenResponse(access_token=sessions.refresh_access_token(token))


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Clear the refresh cookie",
    description=(
        "Stateless logout: the refresh cookie is cleared so the session cannot be "
        "renewed. Access tokens already issued stay valid until they expire."
    ),
)
async def logout(response: Response) -> MessageResponse:
    _clear_refresh_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/user-info",
    response_model=UserInfoResponse,
    responses={
        401: {"description": "No bearer token", "model": ErrorResponse},
        403: {"description": "Invalid bearer token", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Profile summary of the current user",
)
async def user_info(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    sessions: SessionService = Depends(get_session_service),
) -> UserInfoResponse:
    return await sessions.get_user_info(db, user_id)
