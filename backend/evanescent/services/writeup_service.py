"""
Evanescent Backend: Writeup Service (Claim Controller)
========================================================

What:  Feed listing, creation, likes, deletion and the claim state machine
       for writeups ("bottles").
Why:   Requests run concurrently with no in-process locks, so every state
       transition has to be decided by the database in one statement.
How:   Each mutation is a single conditional UPDATE/DELETE. Its affected-row
       count (or RETURNING value) is the outcome. Only when nothing matched
       does the service issue a read-only probe to tell "missing" apart from
       "not allowed".

       Writes commit inside the service, under translate_store_errors, so a
       failed commit is a StoreError (500) before any response is built.

Claim state machine:
    ┌───────────┐   claim(r)  [claimed_by IS NULL]   ┌────────────────┐
    │ Unclaimed │ ─────────────────────────────────▶ │ ClaimedBy(r)   │
    │           │ ◀───────────────────────────────── │                │
    └───────────┘   unclaim(r) [claimed_by = r]      └────────────────┘

    claim   → UPDATE writeups SET claimed_by = :r
              WHERE id = :id AND claimed_by IS NULL
    unclaim → UPDATE writeups SET claimed_by = NULL
              WHERE id = :id AND claimed_by = :r

    Two concurrent claims on an unclaimed bottle both target the same row;
    the database serializes the row update, the second statement re-checks
    `claimed_by IS NULL` against the committed value and matches 0 rows.
    Exactly one caller wins, the other gets AlreadyClaimedError.

Counters:
    like    → SET likes = likes + 1                                  RETURNING likes
    unlike  → SET likes = CASE WHEN likes > 0 THEN likes - 1 ELSE 0  RETURNING likes
"""

import logging
from typing import List

from sqlalchemy import case, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from evanescent.database import translate_store_errors
from evanescent.exceptions import AlreadyClaimedError, ForbiddenError, NotFoundError
from evanescent.models.user import User
from evanescent.models.writeup import Writeup
from evanescent.schemas.writeup import WriteupListItem, WriteupResponse

logger = logging.getLogger(__name__)

BOTTLE_EMPTY = "Bottle Empty"


def _bottle_not_found(writeup_id: int) -> NotFoundError:
    return NotFoundError(resource="writeup", resource_id=writeup_id, message=BOTTLE_EMPTY)


class WriteupService:
    """
    Business logic layer for writeups.

    Responsibilities:
        - list_writeups() / list_my_claims(): read-only feeds, newest first
        - create_writeup(): insert owned by the requester
        - like() / unlike(): atomic counter updates
        - claim() / unclaim(): atomic compare-and-set on claimed_by
        - delete_writeup(): owner-only delete
    """

    async def _exists(self, db: AsyncSession, writeup_id: int) -> bool:
        result = await db.execute(select(Writeup.id).where(Writeup.id == writeup_id))
        return result.scalar_one_or_none() is not None

    async def list_writeups(self, db: AsyncSession, requester_id: int) -> List[WriteupListItem]:
        """Public writeups plus the requester's own private ones, with author names."""
        stmt = (
            select(Writeup, User.name)
            .join(User, Writeup.user_id == User.id)
            .where(or_(Writeup.is_public.is_(True), Writeup.user_id == requester_id))
            .order_by(Writeup.created_at.desc(), Writeup.id.desc())
        )
        with translate_store_errors("list_writeups", requester_id=requester_id):
            rows = (await db.execute(stmt)).all()

        return [
            WriteupListItem(
                **WriteupResponse.model_validate(writeup).model_dump(),
                author_name=author_name,
            )
            for writeup, author_name in rows
        ]

    async def list_my_claims(self, db: AsyncSession, requester_id: int) -> List[WriteupResponse]:
        stmt = (
            select(Writeup)
            .where(Writeup.claimed_by == requester_id)
            .order_by(Writeup.created_at.desc(), Writeup.id.desc())
        )
        with translate_store_errors("list_my_claims", requester_id=requester_id):
            writeups = (await db.execute(stmt)).scalars().all()
        return [WriteupResponse.model_validate(w) for w in writeups]

    async def create_writeup(
        self,
        db: AsyncSession,
        requester_id: int,
        title: str,
        content: str,
        is_public: bool,
    ) -> WriteupResponse:
        """Insert a new writeup with likes = 0 and no claimant."""
        writeup = Writeup(
            user_id=requester_id,
            title=title,
            content=content,
            is_public=is_public,
            likes=0,
            claimed_by=None,
        )
        with translate_store_errors("create_writeup", requester_id=requester_id):
            db.add(writeup)
            await db.flush()
            await db.commit()

        logger.info("Writeup %s created by user %s", writeup.id, requester_id)
        return WriteupResponse.model_validate(writeup)

    async def like(self, db: AsyncSession, writeup_id: int) -> int:
        """Increment likes by one; returns the new count."""
        stmt = (
            update(Writeup)
            .where(Writeup.id == writeup_id)
            .values(likes=Writeup.likes + 1)
            .returning(Writeup.likes)
            .execution_options(synchronize_session=False)
        )
        with translate_store_errors("like", writeup_id=writeup_id):
            likes = (await db.execute(stmt)).scalar_one_or_none()
            if likes is not None:
                await db.commit()

        if likes is None:
            raise _bottle_not_found(writeup_id)
        return likes

    async def unlike(self, db: AsyncSession, writeup_id: int) -> int:
        """Decrement likes by one, floored at zero; returns the new count."""
        stmt = (
            update(Writeup)
            .where(Writeup.id == writeup_id)
            .values(likes=case((Writeup.likes > 0, Writeup.likes - 1), else_=0))
            .returning(Writeup.likes)
            .execution_options(synchronize_session=False)
        )
        with translate_store_errors("unlike", writeup_id=writeup_id):
            likes = (await db.execute(stmt)).scalar_one_or_none()
            if likes is not None:
                await db.commit()

        if likes is None:
            raise _bottle_not_found(writeup_id)
        return likes

    async def claim(self, db: AsyncSession, writeup_id: int, requester_id: int) -> None:
        """
        Unclaimed → ClaimedBy(requester).

        Raises:
            NotFoundError: no such writeup (→ 404)
            AlreadyClaimedError: claimed_by was not NULL when the update ran,
                including when the requester already holds it (→ 400)
        """
        stmt = (
            update(Writeup)
            .where(Writeup.id == writeup_id, Writeup.claimed_by.is_(None))
            .values(claimed_by=requester_id)
            .execution_options(synchronize_session=False)
        )
        with translate_store_errors("claim", writeup_id=writeup_id, requester_id=requester_id):
            result = await db.execute(stmt)
            if result.rowcount == 1:
                await db.commit()
                logger.info("Writeup %s claimed by user %s", writeup_id, requester_id)
                return
            exists = await self._exists(db, writeup_id)

        if not exists:
            raise _bottle_not_found(writeup_id)
        logger.info("Claim on writeup %s by user %s lost: already claimed", writeup_id, requester_id)
        raise AlreadyClaimedError(writeup_id)

    async def unclaim(self, db: AsyncSession, writeup_id: int, requester_id: int) -> None:
        """
        ClaimedBy(requester) → Unclaimed.

        An unclaimed bottle and one claimed by someone else are
        indistinguishable here: both are ForbiddenError.
        """
        stmt = (
            update(Writeup)
            .where(Writeup.id == writeup_id, Writeup.claimed_by == requester_id)
            .values(claimed_by=None)
            .execution_options(synchronize_session=False)
        )
        with translate_store_errors("unclaim", writeup_id=writeup_id, requester_id=requester_id):
            result = await db.execute(stmt)
            if result.rowcount == 1:
                await db.commit()
                logger.info("Writeup %s released by user %s", writeup_id, requester_id)
                return
            exists = await self._exists(db, writeup_id)

        if not exists:
            raise _bottle_not_found(writeup_id)
        raise ForbiddenError(
            message="You can only unclaim your own claimed bottles",
            context={"writeup_id": writeup_id, "requester_id": requester_id},
        )

    async def delete_writeup(self, db: AsyncSession, writeup_id: int, requester_id: int) -> None:
        """Owner-only delete."""
        stmt = (
            delete(Writeup)
            .where(Writeup.id == writeup_id, Writeup.user_id == requester_id)
            .execution_options(synchronize_session=False)
        )
        with translate_store_errors("delete_writeup", writeup_id=writeup_id):
            result = await db.execute(stmt)
            if result.rowcount == 1:
                await db.commit()
                logger.info("Writeup %s deleted by owner %s", writeup_id, requester_id)
                return
            exists = await self._exists(db, writeup_id)

        if not exists:
            raise NotFoundError(resource="writeup", resource_id=writeup_id, message="Writeup not found")
        raise ForbiddenError(
            message="Unauthorized to delete this writeup",
            context={"writeup_id": writeup_id, "requester_id": requester_id},
        )
