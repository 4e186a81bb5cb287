"""
Evanescent Backend: Writeup Route Handlers
============================================

What:  The /writeups resource: feed, creation, likes, claims and deletion.
How:   Every route sits behind the authentication gate and delegates to
       WriteupService; the handlers only pick status codes and messages.

Route Inventory:
    GET    /writeups                 feed (public + own), newest first
    POST   /writeups                 create (201)
    GET    /writeups/myclaims        bottles the caller currently holds
    POST   /writeups/{id}/like       {"likes": n}
    POST   /writeups/{id}/unlike     {"likes": n}, never below 0
    POST   /writeups/claim/{id}      400 if someone already holds it
    POST   /writeups/unclaim/{id}    403 unless the caller holds it
    DELETE /writeups/{id}            owner only
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from evanescent.database import get_db_session
from evanescent.dependencies import get_current_user_id, get_writeup_service
from evanescent.schemas.common import ErrorResponse, MessageResponse
from evanescent.schemas.writeup import (
    LikesResponse,
    WriteupCreate,
    WriteupListItem,
    WriteupResponse,
)
from evanescent.services.writeup_service import WriteupService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/writeups", tags=["Writeups"])

_NOT_FOUND = {404: {"description": "Bottle not found", "model": ErrorResponse}}
_SERVER_ERROR = {500: {"description": "Server error", "model": ErrorResponse}}


@router.get("", response_model=List[WriteupListItem], responses=_SERVER_ERROR)
async def list_writeups(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    writeups: WriteupService = Depends(get_writeup_service),
) -> List[WriteupListItem]:
    return await writeups.list_writeups(db, user_id)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=WriteupResponse,
    responses=_SERVER_ERROR,
)
async def create_writeup(
    body: WriteupCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    writeups: WriteupService = Depends(get_writeup_service),
) -> WriteupResponse:
    return await writeups.create_writeup(
        db,
        requester_id=user_id,
        title=body.title,
        content=body.content,
        is_public=body.is_public,
    )


@router.get("/myclaims", response_model=List[WriteupResponse], responses=_SERVER_ERROR)
async def list_my_claims(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    writeups: WriteupService = Depends(get_writeup_service),
) -> List[WriteupResponse]:
    return await writeups.list_my_claims(db, user_id)


@router.post(
    "/{writeup_id}/like",
    response_model=LikesResponse,
    responses={**_NOT_FOUND, **_SERVER_ERROR},
)
async def like_writeup(
    writeup_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    writeups: WriteupService = Depends(get_writeup_service),
) -> LikesResponse:
    return LikesResponse(likes=await writeups.like(db, writeup_id))


@router.post(
    "/{writeup_id}/unlike",
    response_model=LikesResponse,
    responses={**_NOT_FOUND, **_SERVER_ERROR},
)
async def unlike_writeup(
    writeup_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    writeups: WriteupService = Depends(get_writeup_service),
) -> LikesResponse:
    return LikesResponse(likes=await writeups.unlike(db, writeup_id))


@router.post(
    "/claim/{writeup_id}",
    response_model=MessageResponse,
    responses={
        400: {"description": "Already claimed", "model": ErrorResponse},
        **_NOT_FOUND,
        **_SERVER_ERROR,
    },
)
async def claim_writeup(
    writeup_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    writeups: WriteupService = Depends(get_writeup_service),
) -> MessageResponse:
    await writeups.claim(db, writeup_id, user_id)
    return MessageResponse(message="Bottle claimed successfully!")


@router.post(
    "/unclaim/{writeup_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Not the current claimant", "model": ErrorResponse},
        **_NOT_FOUND,
        **_SERVER_ERROR,
    },
)
async def unclaim_writeup(
    writeup_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    writeups: WriteupService = Depends(get_writeup_service),
) -> MessageResponse:
    await writeups.unclaim(db, writeup_id, user_id)
    return MessageResponse(message="Bottle thrown back to sea!")


@router.delete(
    "/{writeup_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Not the owner", "model": ErrorResponse},
        **_NOT_FOUND,
        **_SERVER_ERROR,
    },
)
async def delete_writeup(
    writeup_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    writeups: WriteupService = Depends(get_writeup_service),
) -> MessageResponse:
    await writeups.delete_writeup(db, writeup_id, user_id)
    return MessageResponse(message="Writeup deleted successfully")
